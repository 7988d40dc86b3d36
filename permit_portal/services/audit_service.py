"""
Water Permit Portal - Audit Service
Records workflow transitions, logins and deletions for compliance
"""

from typing import Dict, Any, Optional
from dataclasses import dataclass, asdict
import uuid

import structlog
from sqlalchemy.orm import Session

from permit_portal.models.audit import AuditLog
from permit_portal.models.user import User

logger = structlog.get_logger()


@dataclass
class UserContext:
    """User context for audit logging"""
    user_id: Optional[str] = None
    email: Optional[str] = None
    ip_address: str = "unknown"
    user_agent: Optional[str] = None

    def dict(self):
        return asdict(self)


@dataclass
class AuditLogData:
    """Data structure for audit log entries"""
    action_type: str  # CREATE, UPDATE, DELETE, STATUS_CHANGE, LOGIN, LOGOUT, ...
    resource_type: str  # APPLICATION, PERMIT, INSPECTION, USER, AUTHENTICATION
    resource_id: Optional[str] = None
    old_values: Optional[Dict[str, Any]] = None
    new_values: Optional[Dict[str, Any]] = None
    success: bool = True
    error_message: Optional[str] = None
    user_id: Optional[str] = None
    email: Optional[str] = None
    ip_address: str = "unknown"
    user_agent: Optional[str] = None

    def dict(self):
        return asdict(self)


class AuditService:
    """
    Audit service for the Water Permit Portal

    Entries are added to the caller's session and committed together with
    the change they describe.
    """

    def __init__(self, db_session: Session):
        self.db = db_session

    def log_action(self, action_data: AuditLogData) -> AuditLog:
        """Add an audit entry to the current unit of work"""
        audit_log = AuditLog(
            user_id=uuid.UUID(action_data.user_id) if action_data.user_id else None,
            action=action_data.action_type,
            table_name=action_data.resource_type,
            record_id=action_data.resource_id,
            old_values=action_data.old_values,
            new_values=action_data.new_values,
            ip_address=action_data.ip_address,
            user_agent=action_data.user_agent,
            success=action_data.success,
            error_message=action_data.error_message,
        )
        self.db.add(audit_log)

        logger.info(
            "Audit log created",
            action=f"{action_data.action_type}:{action_data.resource_type}",
            resource_id=action_data.resource_id,
            user=action_data.email or action_data.user_id,
            success=action_data.success
        )
        return audit_log

    def log_status_change(self, resource_type: str, resource_id: str,
                          old_status: Optional[str], new_status: str,
                          user_context: UserContext, comment: Optional[str] = None) -> AuditLog:
        """Log a workflow transition"""
        audit_data = AuditLogData(
            action_type="STATUS_CHANGE",
            resource_type=resource_type,
            resource_id=resource_id,
            old_values={"status": old_status},
            new_values={"status": new_status, "comment": comment},
            **user_context.dict()
        )
        return self.log_action(audit_data)

    def log_creation(self, resource_type: str, resource_id: str,
                     resource_data: Dict[str, Any], user_context: UserContext) -> AuditLog:
        """Log resource creation"""
        audit_data = AuditLogData(
            action_type="CREATE",
            resource_type=resource_type,
            resource_id=resource_id,
            new_values=resource_data,
            **user_context.dict()
        )
        return self.log_action(audit_data)

    def log_deletion(self, resource_type: str, resource_id: str,
                     resource_data: Dict[str, Any], user_context: UserContext) -> AuditLog:
        """Log resource deletion"""
        audit_data = AuditLogData(
            action_type="DELETE",
            resource_type=resource_type,
            resource_id=resource_id,
            old_values=resource_data,
            **user_context.dict()
        )
        return self.log_action(audit_data)

    def log_authentication(self, email: str, success: bool, ip_address: str = "unknown",
                           user_agent: Optional[str] = None, error_message: Optional[str] = None,
                           user_id: Optional[str] = None, action_type: Optional[str] = None) -> AuditLog:
        """Log authentication attempts, logouts and signup confirmations"""
        audit_data = AuditLogData(
            action_type=action_type or ("LOGIN" if success else "LOGIN_FAILED"),
            resource_type="AUTHENTICATION",
            user_id=user_id,
            email=email,
            ip_address=ip_address,
            user_agent=user_agent,
            success=success,
            error_message=error_message,
        )
        return self.log_action(audit_data)


def create_user_context(user: Optional[User], request=None) -> UserContext:
    """Create user context from current user and request"""
    client = getattr(request, "client", None) if request is not None else None
    return UserContext(
        user_id=str(user.id) if user else None,
        email=user.email if user else None,
        ip_address=client.host if client else "unknown",
        user_agent=request.headers.get("user-agent") if request is not None else None,
    )
