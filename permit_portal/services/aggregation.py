"""
Dashboard aggregation
Reduces collections of applications, permits and inspections into the
summary counts shown on the role dashboards.

Functions accept ORM rows or plain mappings, never modify their input and
give the same result for any ordering of it.
"""

import math
import statistics
from collections import Counter
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Iterable, Tuple

from permit_portal.models.enums import (
    ApplicationStatus, ApplicationType, ProvinceType, PermitStatus,
    InspectionStatus, ComplianceStatus, SlaStatus
)
from permit_portal.schemas.analytics import (
    ApplicationSummary, PermitSummary, InspectionSummary, ProcessingTimes
)
from permit_portal.services.sla_calculator import (
    DEFAULT_LOOKAHEAD_DAYS, as_datetime, compute_sla_status, effective_permit_status, elapsed_days
)
from permit_portal.services.status_taxonomy import TERMINAL_STATUSES

DECIDED_STATUSES = (ApplicationStatus.APPROVED.value, ApplicationStatus.REJECTED.value)
PENDING_REVIEW_STATUSES = (ApplicationStatus.SUBMITTED.value, ApplicationStatus.UNDER_REVIEW.value)


def _field(record, name, default=None):
    if isinstance(record, Mapping):
        return record.get(name, default)
    return getattr(record, name, default)


def _code(value):
    """Enum member or raw string -> string code"""
    if value is None:
        return None
    return getattr(value, "value", value)


def _in_local_frame(value, now: datetime) -> datetime:
    """Express `value` in now's timezone so calendar fields line up"""
    moment = as_datetime(value)
    if now.tzinfo is not None:
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        return moment.astimezone(now.tzinfo)
    if moment.tzinfo is not None:
        return moment.astimezone(timezone.utc).replace(tzinfo=None)
    return moment


def _previous_month(now: datetime) -> Tuple[int, int]:
    if now.month == 1:
        return now.year - 1, 12
    return now.year, now.month - 1


def calculate_trend(current: int, previous: int) -> Tuple[float, str]:
    """Calculate percentage change and trend direction (5% dead-band)"""
    if previous == 0:
        return 100.0 if current > 0 else 0.0, "up" if current > 0 else "flat"

    change_percent = ((current - previous) / previous) * 100

    if change_percent > 5:
        trend = "up"
    elif change_percent < -5:
        trend = "down"
    else:
        trend = "flat"

    return round(change_percent, 1), trend


def _zero_filled(enum_class, counts: Counter) -> dict:
    """Every enum value present, plus any unrecognised codes seen"""
    result = {member.value: counts.get(member.value, 0) for member in enum_class}
    extra = sorted((code for code in counts if code is not None and code not in result), key=str)
    for code in extra:
        result[str(code)] = counts[code]
    return result


def _is_overdue(record, now: datetime) -> bool:
    status = _code(_field(record, "status"))
    due_date = _field(record, "due_date")
    if due_date is None:
        return _code(_field(record, "sla_status")) == SlaStatus.OVERDUE.value

    completed_at = None
    if status in {s.value for s in TERMINAL_STATUSES}:
        # Decided or withdrawn work stops the clock
        completed_at = _field(record, "approved_at") or _field(record, "updated_at") or now
    return compute_sla_status(now, due_date, completed_at) == SlaStatus.OVERDUE


def processing_times(applications: Iterable) -> ProcessingTimes:
    """Statistics over days from submission to approval/rejection"""
    durations = []
    for record in applications:
        if _code(_field(record, "status")) not in DECIDED_STATUSES:
            continue
        submitted_at = _field(record, "submitted_at")
        decided_at = _field(record, "approved_at")
        if submitted_at is None or decided_at is None:
            continue
        durations.append(elapsed_days(submitted_at, decided_at))

    if not durations:
        return ProcessingTimes()

    durations.sort()
    return ProcessingTimes(
        sample_size=len(durations),
        # fsum is exactly rounded, so the mean does not depend on input order
        average_days=round(math.fsum(durations) / len(durations), 1),
        median_days=round(statistics.median(durations), 1),
        fastest_days=round(durations[0], 1),
        slowest_days=round(durations[-1], 1),
    )


def summarize_applications(applications: Iterable, now: datetime) -> ApplicationSummary:
    """
    Summarise applications for a dashboard

    Args:
        applications: ORM rows or mappings with at least `status`
        now: Reference time for the monthly buckets and overdue checks

    Returns:
        ApplicationSummary with zero-filled status counts and an approval
        rate of 0.0 when nothing has been decided yet
    """
    records = list(applications)
    now = as_datetime(now)

    status_counts = Counter(_code(_field(r, "status")) for r in records)
    type_counts = Counter(_code(_field(r, "application_type")) for r in records)
    province_counts = Counter(_code(_field(r, "province")) for r in records)

    last_year, last_month = _previous_month(now)
    created_this_month = 0
    created_last_month = 0
    for record in records:
        created_at = _field(record, "created_at")
        if created_at is None:
            continue
        local = _in_local_frame(created_at, now)
        if (local.year, local.month) == (now.year, now.month):
            created_this_month += 1
        elif (local.year, local.month) == (last_year, last_month):
            created_last_month += 1

    change_percent, trend = calculate_trend(created_this_month, created_last_month)

    approved = status_counts.get(ApplicationStatus.APPROVED.value, 0)
    rejected = status_counts.get(ApplicationStatus.REJECTED.value, 0)
    decided = approved + rejected
    approval_rate = approved / decided if decided else 0.0

    return ApplicationSummary(
        total=len(records),
        by_status=_zero_filled(ApplicationStatus, status_counts),
        by_type=_zero_filled(ApplicationType, type_counts),
        by_province=_zero_filled(ProvinceType, province_counts),
        created_this_month=created_this_month,
        created_last_month=created_last_month,
        monthly_change_percent=change_percent,
        trend=trend,
        approved=approved,
        rejected=rejected,
        approval_rate=approval_rate,
        approval_rate_percent=round(approval_rate * 100, 1),
        pending_review=sum(status_counts.get(code, 0) for code in PENDING_REVIEW_STATUSES),
        overdue=sum(1 for r in records if _is_overdue(r, now)),
        processing_times=processing_times(records),
    )


def summarize_permits(permits: Iterable, now: datetime, lookahead_days: int = DEFAULT_LOOKAHEAD_DAYS) -> PermitSummary:
    """Permit counts by derived status"""
    records = list(permits)
    now = as_datetime(now)

    statuses = Counter(
        effective_permit_status(
            now,
            _field(r, "expiry_date"),
            lookahead_days,
            suspended=bool(_field(r, "suspended", False)),
            revoked=bool(_field(r, "revoked", False)),
        ).value
        for r in records
    )
    issued_this_year = sum(
        1 for r in records
        if _field(r, "issued_date") is not None and as_datetime(_field(r, "issued_date")).year == now.year
    )

    return PermitSummary(
        total=len(records),
        active=statuses.get(PermitStatus.ACTIVE.value, 0),
        expiring_soon=statuses.get(PermitStatus.EXPIRING_SOON.value, 0),
        expired=statuses.get(PermitStatus.EXPIRED.value, 0),
        suspended=statuses.get(PermitStatus.SUSPENDED.value, 0),
        revoked=statuses.get(PermitStatus.REVOKED.value, 0),
        issued_this_year=issued_this_year,
        by_status=_zero_filled(PermitStatus, statuses),
    )


def summarize_inspections(inspections: Iterable, now: datetime) -> InspectionSummary:
    """Inspection counts by progress and compliance finding"""
    records = list(inspections)
    now = as_datetime(now)

    status_counts = Counter(_code(_field(r, "status")) for r in records)
    compliance_counts = Counter(_code(_field(r, "compliance_status")) for r in records)

    completed_this_month = 0
    for record in records:
        completed_date = _field(record, "completed_date")
        if completed_date is None:
            continue
        local = _in_local_frame(completed_date, now)
        if (local.year, local.month) == (now.year, now.month):
            completed_this_month += 1

    with_finding = sum(compliance_counts.get(c.value, 0) for c in ComplianceStatus)
    compliant = compliance_counts.get(ComplianceStatus.COMPLIANT.value, 0)

    return InspectionSummary(
        total=len(records),
        by_status=_zero_filled(InspectionStatus, status_counts),
        by_compliance=_zero_filled(ComplianceStatus, compliance_counts),
        completed_this_month=completed_this_month,
        follow_up_required=sum(1 for r in records if _field(r, "follow_up_required")),
        compliance_rate=round(compliant / with_finding, 4) if with_finding else 0.0,
    )
