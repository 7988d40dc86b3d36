"""
Signup Flow - collecting details -> awaiting code -> confirmed

A small state machine driving the three signup steps. The flow owns the
verification challenge (hashed code, expiry, attempt counter) and the resend
cooldown; persistence is left to the caller through `load_flow` and
`store_flow`, which map the flow onto a pending user row.

Transitions only move forward:

    collecting_details --submit_details--> awaiting_code
    awaiting_code      --submit_code-----> confirmed     (code verified)
    awaiting_code      --resend----------> awaiting_code (only once the cooldown ends)
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum as PythonEnum
from typing import Callable, Mapping, Optional, Union

from permit_portal.core.config import get_settings
from permit_portal.core.exceptions import VerificationError
from permit_portal.core.security import (
    generate_verification_code, hash_verification_code, verify_verification_code
)
from permit_portal.schemas.user import ConfirmationView, RegisterRequest
from permit_portal.services.notification_service import CodeDispatcher, mask_email
from permit_portal.services.sla_calculator import as_utc

logger = logging.getLogger(__name__)

settings = get_settings()

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def get_clock() -> Clock:
    """FastAPI dependency - tests override it to freeze time"""
    return utc_now


class SignupState(str, PythonEnum):
    COLLECTING_DETAILS = "collecting_details"
    AWAITING_CODE = "awaiting_code"
    CONFIRMED = "confirmed"


@dataclass
class VerificationChallenge:
    """The code currently outstanding for a signup"""
    code_hash: str
    expires_at: datetime
    sent_at: datetime
    attempts: int = 0


class SignupFlow:
    """
    Signup state machine

    Args:
        dispatcher: Channel that delivers codes to the user
        clock: Returns the current time; injected so cooldowns are testable
        state: Starting state (rebuilt flows resume where they left off)
        confirmation: View shown once confirmed - redirect target and label
            are configurable per caller
    """

    def __init__(
        self,
        *,
        dispatcher: CodeDispatcher,
        clock: Clock = utc_now,
        state: SignupState = SignupState.COLLECTING_DETAILS,
        recipient: Optional[str] = None,
        challenge: Optional[VerificationChallenge] = None,
        confirmation: Optional[ConfirmationView] = None,
        code_length: Optional[int] = None,
        code_ttl: Optional[timedelta] = None,
        max_attempts: Optional[int] = None,
        cooldown: Optional[timedelta] = None
    ):
        self.dispatcher = dispatcher
        self.clock = clock
        self.state = SignupState(state)
        self.recipient = recipient
        self.challenge = challenge
        self.details: Optional[RegisterRequest] = None
        self.confirmation = confirmation or ConfirmationView()
        self.code_length = code_length or settings.VERIFICATION_CODE_LENGTH
        self.code_ttl = code_ttl or timedelta(minutes=settings.VERIFICATION_CODE_TTL_MINUTES)
        self.max_attempts = max_attempts or settings.VERIFICATION_MAX_ATTEMPTS
        self.cooldown = cooldown if cooldown is not None else timedelta(seconds=settings.VERIFICATION_RESEND_COOLDOWN_SECONDS)

    def _now(self) -> datetime:
        return as_utc(self.clock())

    def _require(self, expected: SignupState, event: str):
        if self.state != expected:
            raise VerificationError(
                f"Cannot {event} while signup is {self.state.value}",
                reason="invalid_state"
            )

    @property
    def countdown(self) -> int:
        """Seconds until a new code may be requested (0 = resend allowed)"""
        if self.state != SignupState.AWAITING_CODE or self.challenge is None:
            return 0
        elapsed = self._now() - as_utc(self.challenge.sent_at)
        remaining = (self.cooldown - elapsed).total_seconds()
        return max(0, math.ceil(remaining))

    @property
    def attempts_remaining(self) -> Optional[int]:
        if self.challenge is None:
            return None
        return max(0, self.max_attempts - self.challenge.attempts)

    def _issue_code(self) -> None:
        """Create a fresh challenge and hand the code to the dispatcher"""
        now = self._now()
        code = generate_verification_code(self.code_length)
        self.challenge = VerificationChallenge(
            code_hash=hash_verification_code(code),
            expires_at=now + self.code_ttl,
            sent_at=now,
        )
        self.dispatcher.send_code(self.recipient, code, self.challenge.expires_at)
        logger.info(f"Signup code issued for {mask_email(self.recipient)}")

    def submit_details(self, details: Union[RegisterRequest, Mapping]) -> SignupState:
        """
        Accept the signup form and send the first code

        Raises:
            pydantic.ValidationError: details are incomplete or invalid (state unchanged)
            VerificationError: flow is past the details step
        """
        self._require(SignupState.COLLECTING_DETAILS, "submit details")
        if not isinstance(details, RegisterRequest):
            details = RegisterRequest.model_validate(details)

        self.details = details
        self.recipient = details.email
        self._issue_code()
        self.state = SignupState.AWAITING_CODE
        return self.state

    def validate_code_format(self, code: str) -> str:
        """Reject incomplete codes locally; they do not use up an attempt"""
        cleaned = (code or "").strip()
        if len(cleaned) != self.code_length or not cleaned.isdigit():
            raise VerificationError(
                f"Enter the {self.code_length}-digit code sent to you",
                reason="incomplete_code"
            )
        return cleaned

    def submit_code(self, code: str) -> ConfirmationView:
        """
        Check a code against the outstanding challenge

        Returns:
            ConfirmationView once the signup is confirmed

        Raises:
            VerificationError: with reason incomplete_code, no_active_code,
            code_expired, invalid_code or too_many_attempts. The flow stays
            in awaiting_code in every case.
        """
        self._require(SignupState.AWAITING_CODE, "submit a code")
        cleaned = self.validate_code_format(code)

        challenge = self.challenge
        if challenge is None:
            raise VerificationError("No active code, request a new one", reason="no_active_code")
        if challenge.attempts >= self.max_attempts:
            raise VerificationError("Too many incorrect codes, request a new one", reason="too_many_attempts")
        if self._now() >= as_utc(challenge.expires_at):
            raise VerificationError("This code has expired, request a new one", reason="code_expired")

        if not verify_verification_code(cleaned, challenge.code_hash):
            challenge.attempts += 1
            if challenge.attempts >= self.max_attempts:
                # Spent until a resend issues a new code
                logger.warning(f"Signup code attempts exhausted for {mask_email(self.recipient)}")
                raise VerificationError("Too many incorrect codes, request a new one", reason="too_many_attempts")
            raise VerificationError(
                f"Incorrect code, {self.attempts_remaining} attempts remaining",
                reason="invalid_code"
            )

        self.state = SignupState.CONFIRMED
        self.challenge = None
        logger.info(f"Signup confirmed for {mask_email(self.recipient)}")
        return self.confirmation

    def resend(self) -> bool:
        """
        Send a new code if the cooldown has run out

        Returns:
            True if a code was sent, False while the cooldown is running
        """
        self._require(SignupState.AWAITING_CODE, "resend a code")
        if self.countdown > 0:
            return False
        self._issue_code()
        return True

    @property
    def confirmation_view(self) -> Optional[ConfirmationView]:
        return self.confirmation if self.state == SignupState.CONFIRMED else None


def load_flow(user, *, dispatcher: CodeDispatcher, clock: Clock = utc_now, **options) -> SignupFlow:
    """Rebuild a flow from the verification fields of a user row"""
    challenge = None
    if user.verification_code_expires_at is not None and user.verification_sent_at is not None:
        challenge = VerificationChallenge(
            code_hash=user.verification_code_hash or "",
            expires_at=as_utc(user.verification_code_expires_at),
            sent_at=as_utc(user.verification_sent_at),
            attempts=user.verification_attempts or 0,
        )
    return SignupFlow(
        dispatcher=dispatcher,
        clock=clock,
        state=SignupState(user.signup_state or SignupState.COLLECTING_DETAILS.value),
        recipient=user.email,
        challenge=challenge,
        **options
    )


def store_flow(user, flow: SignupFlow) -> None:
    """Copy flow state back onto the user row (caller commits)"""
    user.signup_state = flow.state.value
    challenge = flow.challenge
    if challenge is None:
        user.verification_code_hash = None
        user.verification_code_expires_at = None
        user.verification_attempts = 0
    else:
        user.verification_code_hash = challenge.code_hash
        user.verification_code_expires_at = challenge.expires_at
        user.verification_sent_at = challenge.sent_at
        user.verification_attempts = challenge.attempts
