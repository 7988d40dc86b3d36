"""
Domain exceptions for the Water Permit Portal

Record store failures are split so callers can tell a missing record from a
rejected request, an unreachable store or a role violation.
"""

from typing import Optional


class RecordStoreError(Exception):
    """Base class for all record store failures"""
    status_code = 500
    error_type = "store_error"

    def __init__(self, message: str, *, resource: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.resource = resource


class RecordNotFoundError(RecordStoreError):
    """Requested record id has no match"""
    status_code = 404
    error_type = "not_found"

    def __init__(self, resource: str, record_id):
        super().__init__(f"{resource} {record_id} not found", resource=resource)
        self.record_id = record_id


class RecordValidationError(RecordStoreError):
    """Store rejected the request (constraint violation or invalid input)"""
    status_code = 422
    error_type = "validation_error"


class RecordTransportError(RecordStoreError):
    """Store could not be reached or the connection failed mid-request"""
    status_code = 503
    error_type = "transport_error"


class PermissionDeniedError(RecordStoreError):
    """Caller's role does not allow the operation"""
    status_code = 403
    error_type = "permission_denied"


class InvalidTransitionError(RecordValidationError):
    """Status change is not allowed by the application lifecycle"""
    error_type = "invalid_transition"

    def __init__(self, from_status, to_status):
        from_value = getattr(from_status, "value", from_status)
        to_value = getattr(to_status, "value", to_status)
        super().__init__(f"Cannot move application from '{from_value}' to '{to_value}'", resource="Application")
        self.from_status = from_status
        self.to_status = to_status


class VerificationError(Exception):
    """Signup code could not be accepted"""

    def __init__(self, message: str, *, reason: str = "invalid_code"):
        super().__init__(message)
        self.message = message
        self.reason = reason


class CertificateRenderError(Exception):
    """Certificate PDF could not be laid out"""
