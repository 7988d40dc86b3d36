"""
Services package for the Water Permit Portal
"""

from .audit_service import AuditService, UserContext, AuditLogData, create_user_context
from .certificate_generator import CertificateTemplate, build_certificate_data, certificate_template
from .notification_service import CodeDispatcher, LoggingCodeDispatcher, RecordingCodeDispatcher, get_code_dispatcher
from .signup_flow import SignupFlow, SignupState, get_clock, load_flow, store_flow

__all__ = [
    "AuditService",
    "UserContext",
    "AuditLogData",
    "create_user_context",
    "CertificateTemplate",
    "build_certificate_data",
    "certificate_template",
    "CodeDispatcher",
    "LoggingCodeDispatcher",
    "RecordingCodeDispatcher",
    "get_code_dispatcher",
    "SignupFlow",
    "SignupState",
    "get_clock",
    "load_flow",
    "store_flow",
]
