"""
SLA and expiry calculations
Pure functions of their inputs: the current time is always passed in.
Dates are compared as midnight of that day; a naive datetime mixed with an
aware one is taken to be UTC.
"""

import math
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Union

from permit_portal.models.enums import PermitStatus, SlaStatus

DEFAULT_LOOKAHEAD_DAYS = 30

DateLike = Union[date, datetime]


def as_datetime(value: DateLike) -> datetime:
    """Promote a date to midnight of that day"""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    raise TypeError(f"Expected date or datetime, got {type(value).__name__}")


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalise to an aware UTC datetime (naive values are taken as UTC)"""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _aligned(first: DateLike, second: DateLike):
    """Return both values as comparable datetimes"""
    a, b = as_datetime(first), as_datetime(second)
    if (a.tzinfo is None) != (b.tzinfo is None):
        if a.tzinfo is None:
            a = a.replace(tzinfo=timezone.utc)
        else:
            b = b.replace(tzinfo=timezone.utc)
    return a, b


def compute_permit_status(now: DateLike, expiry_date: DateLike, lookahead_days: int = DEFAULT_LOOKAHEAD_DAYS) -> PermitStatus:
    """
    Derive a permit's status from its expiry date

    expired:        expiry_date <= now  (a permit expiring exactly now is expired)
    expiring-soon:  now < expiry_date <= now + lookahead_days
    active:         expiry_date > now + lookahead_days
    """
    if lookahead_days < 0:
        raise ValueError("lookahead_days must not be negative")

    current, expiry = _aligned(now, expiry_date)
    if expiry <= current:
        return PermitStatus.EXPIRED
    if expiry <= current + timedelta(days=lookahead_days):
        return PermitStatus.EXPIRING_SOON
    return PermitStatus.ACTIVE


def effective_permit_status(
    now: DateLike,
    expiry_date: DateLike,
    lookahead_days: int = DEFAULT_LOOKAHEAD_DAYS,
    *,
    suspended: bool = False,
    revoked: bool = False
) -> PermitStatus:
    """Derived status with administrative overrides applied (revoked wins over suspended)"""
    if revoked:
        return PermitStatus.REVOKED
    if suspended:
        return PermitStatus.SUSPENDED
    return compute_permit_status(now, expiry_date, lookahead_days)


def days_until_expiry(now: DateLike, expiry_date: DateLike) -> int:
    """Whole days left, rounded up; negative once expired"""
    current, expiry = _aligned(now, expiry_date)
    return math.ceil((expiry - current).total_seconds() / 86400)


def compute_due_date(submitted_at: DateLike, review_days: int) -> datetime:
    """Review deadline for a submission"""
    return as_datetime(submitted_at) + timedelta(days=review_days)


def compute_sla_status(now: DateLike, due_date: Optional[DateLike], completed_at: Optional[DateLike] = None) -> SlaStatus:
    """
    Classify an application against its review deadline

    Completed work is judged by when it finished; open work by the current time.
    No deadline means nothing can be late.
    """
    if due_date is None:
        return SlaStatus.ON_TIME
    reference = completed_at if completed_at is not None else now
    moment, deadline = _aligned(reference, due_date)
    return SlaStatus.OVERDUE if moment > deadline else SlaStatus.ON_TIME


def elapsed_days(start: DateLike, end: DateLike) -> float:
    """Fractional days between two instants"""
    begin, finish = _aligned(start, end)
    return (finish - begin).total_seconds() / 86400
