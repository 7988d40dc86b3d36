"""
Audit Log Model
Tracks workflow transitions, logins and deletions for compliance
"""

from sqlalchemy import Column, String, Boolean, Text, ForeignKey, JSON
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from permit_portal.models.base import BaseModel


class AuditLog(BaseModel):
    """Audit trail entry"""
    __tablename__ = "audit_logs"

    user_id = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=True, index=True)

    # Action details
    action = Column(String(100), nullable=False, comment="Action performed, e.g. STATUS_CHANGE")
    table_name = Column(String(100), nullable=True, comment="Record type affected")
    record_id = Column(String(100), nullable=True, index=True, comment="ID of affected record")
    old_values = Column(JSON, nullable=True)
    new_values = Column(JSON, nullable=True)

    # Request details
    ip_address = Column(String(45), nullable=True, comment="Client IP address")
    user_agent = Column(Text, nullable=True, comment="Client user agent")

    # Result details
    success = Column(Boolean, nullable=False, default=True)
    error_message = Column(Text, nullable=True)

    user = relationship("User")

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', table='{self.table_name}', record_id='{self.record_id}')>"
