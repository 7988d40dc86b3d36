"""
Signup flow state machine tests
"""

import logging
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from pydantic import ValidationError

from permit_portal.core.exceptions import VerificationError
from permit_portal.schemas.user import ConfirmationView
from permit_portal.services.notification_service import LoggingCodeDispatcher, mask_email
from permit_portal.services.signup_flow import SignupFlow, SignupState, load_flow, store_flow

DETAILS = {
    "email": "Jean.Habimana@Example.rw",
    "password": "Applicant123!",
    "confirm_password": "Applicant123!",
    "account_type": "individual",
    "first_name": "Jean",
    "last_name": "Habimana",
}


@pytest.fixture
def flow(dispatcher, clock):
    return SignupFlow(dispatcher=dispatcher, clock=clock)


def _wrong(code: str) -> str:
    return "0000" if code != "0000" else "1111"


def test_happy_path(flow, dispatcher, clock):
    assert flow.state == SignupState.COLLECTING_DETAILS

    assert flow.submit_details(DETAILS) == SignupState.AWAITING_CODE
    assert flow.recipient == "jean.habimana@example.rw"
    code = dispatcher.last_code_for("jean.habimana@example.rw")
    assert len(code) == 4 and code.isdigit()
    assert flow.countdown == 30

    # Resend during the cooldown leaves everything as it was
    clock.advance(seconds=10)
    assert flow.countdown == 20
    assert flow.resend() is False
    assert flow.state == SignupState.AWAITING_CODE
    assert len(dispatcher.sent) == 1

    view = flow.submit_code(code)
    assert flow.state == SignupState.CONFIRMED
    assert view == ConfirmationView()
    assert flow.confirmation_view == view
    assert flow.countdown == 0


def test_invalid_details_keep_state(flow, dispatcher):
    with pytest.raises(ValidationError):
        flow.submit_details({**DETAILS, "last_name": None})
    with pytest.raises(ValidationError):
        flow.submit_details({**DETAILS, "confirm_password": "Different123!"})
    assert flow.state == SignupState.COLLECTING_DETAILS
    assert dispatcher.sent == []


def test_resend_after_cooldown_issues_new_code(flow, dispatcher, clock):
    flow.submit_details(DETAILS)
    first_hash = flow.challenge.code_hash

    clock.advance(seconds=30)
    assert flow.countdown == 0
    assert flow.resend() is True
    assert len(dispatcher.sent) == 2
    assert flow.challenge.code_hash != first_hash
    assert flow.countdown == 30

    code = dispatcher.last_code_for(flow.recipient)
    flow.submit_code(code)
    assert flow.state == SignupState.CONFIRMED


@pytest.mark.parametrize("code", ["", "12", "12345", "12a4", None])
def test_incomplete_code_does_not_use_an_attempt(flow, code):
    flow.submit_details(DETAILS)
    with pytest.raises(VerificationError) as exc_info:
        flow.submit_code(code)
    assert exc_info.value.reason == "incomplete_code"
    assert flow.challenge.attempts == 0
    assert flow.state == SignupState.AWAITING_CODE


def test_wrong_code_counts_attempts(flow, dispatcher):
    flow.submit_details(DETAILS)
    code = dispatcher.last_code_for(flow.recipient)

    with pytest.raises(VerificationError) as exc_info:
        flow.submit_code(_wrong(code))
    assert exc_info.value.reason == "invalid_code"
    assert flow.attempts_remaining == 4

    # Surrounding whitespace is ignored
    flow.submit_code(f" {code} ")
    assert flow.state == SignupState.CONFIRMED


def test_too_many_attempts_until_resend(flow, dispatcher, clock):
    flow.submit_details(DETAILS)
    code = dispatcher.last_code_for(flow.recipient)

    reasons = []
    for _ in range(5):
        with pytest.raises(VerificationError) as exc_info:
            flow.submit_code(_wrong(code))
        reasons.append(exc_info.value.reason)
    assert reasons == ["invalid_code"] * 4 + ["too_many_attempts"]

    # Even the right code is refused now
    with pytest.raises(VerificationError) as exc_info:
        flow.submit_code(code)
    assert exc_info.value.reason == "too_many_attempts"

    clock.advance(seconds=31)
    assert flow.resend() is True
    flow.submit_code(dispatcher.last_code_for(flow.recipient))
    assert flow.state == SignupState.CONFIRMED


def test_expired_code(flow, dispatcher, clock):
    flow.submit_details(DETAILS)
    code = dispatcher.last_code_for(flow.recipient)
    clock.advance(minutes=10)
    with pytest.raises(VerificationError) as exc_info:
        flow.submit_code(code)
    assert exc_info.value.reason == "code_expired"
    assert flow.state == SignupState.AWAITING_CODE


def test_events_out_of_order_are_rejected(flow, dispatcher):
    with pytest.raises(VerificationError) as exc_info:
        flow.submit_code("1234")
    assert exc_info.value.reason == "invalid_state"
    with pytest.raises(VerificationError):
        flow.resend()

    flow.submit_details(DETAILS)
    with pytest.raises(VerificationError) as exc_info:
        flow.submit_details(DETAILS)
    assert exc_info.value.reason == "invalid_state"

    flow.submit_code(dispatcher.last_code_for(flow.recipient))
    with pytest.raises(VerificationError):
        flow.resend()
    with pytest.raises(VerificationError):
        flow.submit_code("1234")


def test_confirmation_view_is_configurable(dispatcher, clock):
    view = ConfirmationView(redirect_url="/permits/apply", redirect_label="Start an application")
    flow = SignupFlow(dispatcher=dispatcher, clock=clock, confirmation=view)
    assert flow.confirmation_view is None
    flow.submit_details(DETAILS)
    assert flow.submit_code(dispatcher.last_code_for(flow.recipient)).redirect_url == "/permits/apply"


def test_flow_survives_a_round_trip_through_a_user_row(flow, dispatcher, clock):
    flow.submit_details(DETAILS)
    code = dispatcher.last_code_for(flow.recipient)
    with pytest.raises(VerificationError):
        flow.submit_code(_wrong(code))

    row = SimpleNamespace(
        email=flow.recipient, signup_state=None, verification_code_hash=None,
        verification_code_expires_at=None, verification_sent_at=None, verification_attempts=0,
    )
    store_flow(row, flow)
    assert row.signup_state == "awaiting_code"
    assert row.verification_attempts == 1

    clock.advance(seconds=5)
    resumed = load_flow(row, dispatcher=dispatcher, clock=clock)
    assert resumed.state == SignupState.AWAITING_CODE
    assert resumed.countdown == 25
    assert resumed.attempts_remaining == 4
    resumed.submit_code(code)

    store_flow(row, resumed)
    assert row.signup_state == "confirmed"
    assert row.verification_code_hash is None


def test_mask_email():
    assert mask_email("amina@example.rw") == "a***@example.rw"
    assert mask_email("not-an-email") == "***"


def test_logging_dispatcher_keeps_codes_out_of_the_log(caplog):
    caplog.set_level(logging.DEBUG, logger="permit_portal.services.notification_service")
    LoggingCodeDispatcher().send_code("amina@example.rw", "4821", datetime(2024, 6, 20, 12, 10, tzinfo=timezone.utc))

    assert "a***@example.rw" in caplog.text
    assert "4821" not in caplog.text
    assert "amina@example.rw" not in caplog.text
