"""
SLA and permit expiry calculation tests
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from permit_portal.crud.crud_permit import add_years
from permit_portal.models.enums import PermitStatus, SlaStatus
from permit_portal.services.sla_calculator import (
    compute_due_date, compute_permit_status, compute_sla_status, days_until_expiry,
    effective_permit_status, elapsed_days
)

NOW = datetime(2024, 6, 20, 12, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize("days_past", [0.001, 1, 29, 30, 31, 365, 3650])
@pytest.mark.parametrize("lookahead", [0, 1, 30, 90, 1000])
def test_past_expiry_is_expired_for_any_lookahead(days_past, lookahead):
    expiry = NOW - timedelta(days=days_past)
    assert compute_permit_status(NOW, expiry, lookahead) == PermitStatus.EXPIRED


@pytest.mark.parametrize("delta", [
    timedelta(seconds=1), timedelta(hours=1), timedelta(days=1), timedelta(days=15),
    timedelta(days=29, hours=23), timedelta(days=30),
])
def test_expiry_inside_window_is_expiring_soon(delta):
    assert compute_permit_status(NOW, NOW + delta) == PermitStatus.EXPIRING_SOON


@pytest.mark.parametrize("delta", [
    timedelta(days=30, seconds=1), timedelta(days=31), timedelta(days=365),
])
def test_expiry_beyond_window_is_active(delta):
    assert compute_permit_status(NOW, NOW + delta) == PermitStatus.ACTIVE


def test_expiry_exactly_now_is_expired():
    assert compute_permit_status(NOW, NOW) == PermitStatus.EXPIRED


def test_lookahead_window_is_configurable():
    expiry = NOW + timedelta(days=45)
    assert compute_permit_status(NOW, expiry, 30) == PermitStatus.ACTIVE
    assert compute_permit_status(NOW, expiry, 60) == PermitStatus.EXPIRING_SOON


def test_negative_lookahead_rejected():
    with pytest.raises(ValueError):
        compute_permit_status(NOW, NOW + timedelta(days=1), -1)


def test_permit_literal_example():
    """Permit issued 2024-01-01 expiring 2024-06-25"""
    issued = date(2024, 1, 1)
    expiry = date(2024, 6, 25)
    assert issued < expiry

    assert compute_permit_status(date(2024, 6, 20), expiry) == PermitStatus.EXPIRING_SOON
    assert days_until_expiry(date(2024, 6, 20), expiry) == 5
    assert compute_permit_status(date(2024, 7, 1), expiry) == PermitStatus.EXPIRED


def test_dates_and_datetimes_can_be_mixed():
    """A date expiry counts from midnight; naive datetimes are taken as UTC"""
    expiry = date(2024, 6, 25)
    assert compute_permit_status(datetime(2024, 6, 24, 23, 59, tzinfo=timezone.utc), expiry) == PermitStatus.EXPIRING_SOON
    assert compute_permit_status(datetime(2024, 6, 25, 0, 0, 1), expiry) == PermitStatus.EXPIRED
    assert compute_permit_status(NOW.replace(tzinfo=None), NOW + timedelta(days=90)) == PermitStatus.ACTIVE


def test_administrative_overrides_win():
    far_future = NOW + timedelta(days=900)
    assert effective_permit_status(NOW, far_future, suspended=True) == PermitStatus.SUSPENDED
    assert effective_permit_status(NOW, far_future, suspended=True, revoked=True) == PermitStatus.REVOKED
    assert effective_permit_status(NOW, NOW - timedelta(days=1), revoked=True) == PermitStatus.REVOKED
    assert effective_permit_status(NOW, far_future) == PermitStatus.ACTIVE


def test_days_until_expiry_rounds_up():
    assert days_until_expiry(NOW, NOW + timedelta(hours=1)) == 1
    assert days_until_expiry(NOW, NOW + timedelta(days=2)) == 2
    assert days_until_expiry(NOW, NOW - timedelta(days=3)) == -3


def test_sla_status():
    submitted = datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc)
    due = compute_due_date(submitted, 30)
    assert due == datetime(2024, 5, 31, 8, 0, tzinfo=timezone.utc)

    assert compute_sla_status(due - timedelta(days=1), due) == SlaStatus.ON_TIME
    assert compute_sla_status(due, due) == SlaStatus.ON_TIME
    assert compute_sla_status(due + timedelta(minutes=1), due) == SlaStatus.OVERDUE

    # Finished work is judged by its completion time
    assert compute_sla_status(due + timedelta(days=10), due, completed_at=due - timedelta(days=2)) == SlaStatus.ON_TIME
    assert compute_sla_status(due + timedelta(days=10), due, completed_at=due + timedelta(days=1)) == SlaStatus.OVERDUE

    assert compute_sla_status(NOW, None) == SlaStatus.ON_TIME


def test_elapsed_days():
    start = datetime(2024, 3, 1, tzinfo=timezone.utc)
    assert elapsed_days(start, start + timedelta(days=2, hours=12)) == 2.5


def test_add_years_handles_leap_day():
    assert add_years(date(2024, 1, 1), 5) == date(2029, 1, 1)
    assert add_years(date(2024, 2, 29), 5) == date(2029, 2, 28)
    assert add_years(date(2024, 2, 29), 4) == date(2028, 2, 29)
