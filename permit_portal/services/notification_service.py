"""
Verification code dispatch
The portal only needs to hand a code to a delivery channel. The default
channel records the dispatch in the log without the code itself.
"""

import logging
from datetime import datetime
from typing import List, Tuple

logger = logging.getLogger(__name__)


def mask_email(email: str) -> str:
    """j***@example.com"""
    local, _, domain = email.partition("@")
    if not domain:
        return "***"
    return f"{local[:1]}***@{domain}"


class CodeDispatcher:
    """Delivery channel for signup verification codes"""

    def send_code(self, recipient: str, code: str, expires_at: datetime) -> None:
        raise NotImplementedError


class LoggingCodeDispatcher(CodeDispatcher):
    """Logs that a code went out; the code and full address stay out of the log"""

    def send_code(self, recipient: str, code: str, expires_at: datetime) -> None:
        logger.info(f"Verification code dispatched to {mask_email(recipient)}, valid until {expires_at.isoformat()}")


class RecordingCodeDispatcher(CodeDispatcher):
    """Keeps dispatched codes in memory (tests and local demos)"""

    def __init__(self):
        self.sent: List[Tuple[str, str, datetime]] = []

    def send_code(self, recipient: str, code: str, expires_at: datetime) -> None:
        self.sent.append((recipient, code, expires_at))

    def last_code_for(self, recipient: str) -> str:
        for sent_to, code, _ in reversed(self.sent):
            if sent_to == recipient:
                return code
        raise LookupError(f"No code sent to {recipient}")


_default_dispatcher: CodeDispatcher = LoggingCodeDispatcher()


def get_code_dispatcher() -> CodeDispatcher:
    """FastAPI dependency - override to plug in SMS or email delivery"""
    return _default_dispatcher
