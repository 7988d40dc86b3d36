"""
Field Inspection Model
Inspection records are linked to an application (and to the permit once one
is issued). Findings are kept as a nested JSON document mirroring the
inspection form; compliance status is lifted into its own column so it can
be filtered and counted.
"""

from sqlalchemy import Column, String, DateTime, Boolean, Text, ForeignKey, JSON
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from permit_portal.models.base import BaseModel, EnumValueType
from permit_portal.models.enums import InspectionStatus, InspectionType, ComplianceStatus


class Inspection(BaseModel):
    """Site inspection record"""
    __tablename__ = "inspections"

    inspection_number = Column(String(20), nullable=False, unique=True, index=True, comment="Unique inspection number (INS-YYYY-NNNNN)")
    application_id = Column(UUID(as_uuid=True), ForeignKey('applications.id'), nullable=False, index=True)
    permit_id = Column(UUID(as_uuid=True), ForeignKey('permits.id'), nullable=True, index=True)
    inspector_id = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=False, index=True)

    inspection_type = Column(EnumValueType(InspectionType), nullable=False, default=InspectionType.INITIAL)
    status = Column(EnumValueType(InspectionStatus), nullable=False, default=InspectionStatus.SCHEDULED, index=True)
    scheduled_date = Column(DateTime(timezone=True), nullable=True)
    completed_date = Column(DateTime(timezone=True), nullable=True)

    # Findings
    findings = Column(JSON, nullable=True, comment="Nested inspection findings")
    compliance_status = Column(EnumValueType(ComplianceStatus), nullable=True, index=True)
    recommendations = Column(Text, nullable=True)
    follow_up_required = Column(Boolean, nullable=False, default=False)
    follow_up_date = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)

    # Relationships
    application = relationship("Application", back_populates="inspections")
    permit = relationship("Permit", back_populates="inspections")
    inspector = relationship("User", foreign_keys=[inspector_id])

    def __repr__(self):
        return f"<Inspection(id={self.id}, number='{self.inspection_number}', status='{self.status}')>"
