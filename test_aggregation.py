"""
Dashboard aggregation tests
"""

import copy
import itertools
from datetime import date, datetime, timedelta, timezone

import pytest

from permit_portal.models.enums import ApplicationStatus, ComplianceStatus, InspectionStatus, PermitStatus
from permit_portal.services.aggregation import (
    calculate_trend, processing_times, summarize_applications, summarize_inspections, summarize_permits
)

NOW = datetime(2024, 6, 20, 12, 0, tzinfo=timezone.utc)


def _application(status, created_at=None, **extra):
    record = {
        "status": status,
        "application_type": "domestic",
        "province": "Kigali",
        "created_at": created_at or NOW - timedelta(days=2),
    }
    record.update(extra)
    return record


@pytest.fixture
def applications():
    return [
        _application("approved", submitted_at=NOW - timedelta(days=10), approved_at=NOW - timedelta(days=4)),
        _application("approved", submitted_at=NOW - timedelta(days=20), approved_at=NOW - timedelta(days=8)),
        _application("rejected", submitted_at=NOW - timedelta(days=9), approved_at=NOW - timedelta(days=6)),
        _application("submitted", created_at=datetime(2024, 5, 30, 10, 0, tzinfo=timezone.utc),
                     due_date=NOW - timedelta(days=1)),
        _application("under_review", due_date=NOW + timedelta(days=12), application_type="industrial"),
        _application("draft", created_at=datetime(2024, 5, 2, 10, 0, tzinfo=timezone.utc), province="Northern"),
    ]


def test_empty_input_gives_zero_counts():
    summary = summarize_applications([], NOW)
    assert summary.total == 0
    assert summary.approval_rate == 0.0
    assert summary.approval_rate_percent == 0.0
    assert set(summary.by_status) == {s.value for s in ApplicationStatus}
    assert all(count == 0 for count in summary.by_status.values())
    assert summary.processing_times.sample_size == 0


def test_approval_rate_literal_example():
    records = [_application("approved"), _application("approved"), _application("rejected")]
    summary = summarize_applications(records, NOW)
    assert summary.total == 3
    assert summary.approved == 2
    assert summary.rejected == 1
    assert summary.approval_rate_percent == 66.7


def test_counts(applications):
    summary = summarize_applications(applications, NOW)
    assert summary.total == 6
    assert summary.by_status["approved"] == 2
    assert summary.by_status["draft"] == 1
    assert summary.by_status["cancelled"] == 0
    assert summary.by_type["industrial"] == 1
    assert summary.by_province["Northern"] == 1
    assert summary.pending_review == 2
    assert summary.overdue == 1


def test_monthly_trend(applications):
    summary = summarize_applications(applications, NOW)
    assert summary.created_this_month == 4
    assert summary.created_last_month == 2
    assert summary.monthly_change_percent == 100.0
    assert summary.trend == "up"


def test_processing_times(applications):
    times = processing_times(applications)
    assert times.sample_size == 3
    assert times.fastest_days == 3.0
    assert times.slowest_days == 12.0
    assert times.median_days == 6.0
    assert times.average_days == 7.0


def test_result_does_not_depend_on_order(applications):
    expected = summarize_applications(applications, NOW)
    for ordering in itertools.islice(itertools.permutations(applications), 50):
        assert summarize_applications(list(ordering), NOW) == expected


def test_input_is_not_modified(applications):
    snapshot = copy.deepcopy(applications)
    summarize_applications(applications, NOW)
    assert applications == snapshot


def test_unknown_status_codes_are_still_counted():
    summary = summarize_applications([_application("archived")], NOW)
    assert summary.total == 1
    assert summary.by_status["archived"] == 1


@pytest.mark.parametrize("current,previous,expected", [
    (0, 0, (0.0, "flat")),
    (3, 0, (100.0, "up")),
    (10, 10, (0.0, "flat")),
    (102, 100, (2.0, "flat")),
    (15, 10, (50.0, "up")),
    (5, 10, (-50.0, "down")),
])
def test_calculate_trend(current, previous, expected):
    assert calculate_trend(current, previous) == expected


def test_permit_summary():
    permits = [
        {"expiry_date": date(2029, 1, 1), "issued_date": date(2024, 1, 1)},
        {"expiry_date": date(2024, 6, 25), "issued_date": date(2019, 6, 25)},
        {"expiry_date": date(2024, 6, 1), "issued_date": date(2019, 6, 1)},
        {"expiry_date": date(2029, 3, 1), "issued_date": date(2024, 3, 1), "suspended": True},
        {"expiry_date": date(2029, 3, 1), "issued_date": date(2024, 3, 1), "revoked": True, "suspended": True},
    ]
    summary = summarize_permits(permits, NOW)
    assert summary.total == 5
    assert summary.active == 1
    assert summary.expiring_soon == 1
    assert summary.expired == 1
    assert summary.suspended == 1
    assert summary.revoked == 1
    assert summary.issued_this_year == 3
    assert summary.by_status[PermitStatus.EXPIRING_SOON.value] == 1


def test_inspection_summary():
    inspections = [
        {"status": "completed", "compliance_status": "compliant", "completed_date": NOW - timedelta(days=3)},
        {"status": "completed", "compliance_status": "major_violations", "completed_date": NOW - timedelta(days=40),
         "follow_up_required": True},
        {"status": "scheduled", "compliance_status": None},
    ]
    summary = summarize_inspections(inspections, NOW)
    assert summary.total == 3
    assert summary.by_status[InspectionStatus.COMPLETED.value] == 2
    assert summary.by_status[InspectionStatus.CANCELLED.value] == 0
    assert summary.by_compliance[ComplianceStatus.MAJOR_VIOLATIONS.value] == 1
    assert summary.completed_this_month == 1
    assert summary.follow_up_required == 1
    assert summary.compliance_rate == 0.5
