"""
Water Permit Application Models
Implements the application workflow of the Rwanda Water Resources Board

Features:
- 6 application types: domestic, industrial, agricultural, commercial, municipal, mining
- 8 application statuses: from DRAFT through to APPROVED/REJECTED/CANCELLED
- Location hierarchy: province > district > sector > cell > village
- Technical, industry, infrastructure and environmental project details
- Reviewer / inspector / approver assignment
- Review SLA tracking (due date + on_time/overdue)
- Status change history for every workflow transition
"""

from sqlalchemy import Column, String, DateTime, Boolean, Text, ForeignKey, Numeric
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from permit_portal.models.base import BaseModel, EnumValueType
from permit_portal.models.enums import (
    ApplicationStatus, ApplicationType, WaterSourceType, WaterPurpose,
    SlaStatus, ProvinceType
)


class Application(BaseModel):
    """
    Water-use permit application

    Status only moves along the lifecycle in `status_taxonomy.ALLOWED_TRANSITIONS`;
    use `crud_application.transition_status` rather than writing `status` directly.
    """
    __tablename__ = "applications"

    # Core application information
    application_number = Column(String(20), nullable=False, unique=True, index=True, comment="Unique application number (RWB-YY-NNNNN)")
    applicant_id = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=False, index=True, comment="Applicant user")
    previous_application_id = Column(UUID(as_uuid=True), ForeignKey('applications.id'), nullable=True, index=True, comment="Application sent back for revision that this one resubmits")
    status = Column(EnumValueType(ApplicationStatus), nullable=False, default=ApplicationStatus.DRAFT, index=True, comment="Current application status")
    application_type = Column(EnumValueType(ApplicationType), nullable=False, index=True, comment="Type of water use")

    # Water use
    water_source = Column(EnumValueType(WaterSourceType), nullable=False, comment="Source the water is taken from")
    water_purpose = Column(EnumValueType(WaterPurpose), nullable=False, comment="Intended use of the water")
    water_usage_volume = Column(Numeric(14, 2), nullable=True, comment="Requested volume")
    water_usage_unit = Column(String(20), nullable=True, default="m3/day", comment="Unit of the requested volume")

    # Location hierarchy
    province = Column(EnumValueType(ProvinceType), nullable=True, index=True)
    district = Column(String(100), nullable=True, index=True)
    sector = Column(String(100), nullable=True)
    cell = Column(String(100), nullable=True)
    village = Column(String(100), nullable=True)
    gps_coordinates = Column(String(100), nullable=True)

    # Project
    project_title = Column(String(255), nullable=True)
    project_description = Column(Text, nullable=True)
    project_value = Column(Numeric(16, 2), nullable=True, comment="Estimated project value (RWF)")

    # Technical details
    taking_method = Column(String(255), nullable=True, comment="How water is abstracted")
    measuring_method = Column(String(255), nullable=True)
    storage_method = Column(String(255), nullable=True)
    return_flow_method = Column(String(255), nullable=True)

    # Industry details
    electricity_capacity = Column(Numeric(12, 2), nullable=True, comment="Hydropower capacity (kW)")
    mining_operations = Column(Text, nullable=True)
    diversion_details = Column(Text, nullable=True)

    # Infrastructure
    pipe_details = Column(Text, nullable=True)
    pump_details = Column(Text, nullable=True)
    valve_details = Column(Text, nullable=True)
    meter_details = Column(Text, nullable=True)

    # Environmental
    environmental_assessment = Column(Boolean, nullable=False, default=False, comment="EIA submitted")
    mitigation_measures = Column(Text, nullable=True)
    land_ownership = Column(String(100), nullable=True)

    # Assignment
    assigned_reviewer_id = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=True, index=True)
    assigned_inspector_id = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=True, index=True)
    assigned_approver_id = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=True)

    # Review SLA
    sla_status = Column(EnumValueType(SlaStatus), nullable=False, default=SlaStatus.ON_TIME, index=True)
    due_date = Column(DateTime(timezone=True), nullable=True, comment="Review deadline, set on submission")

    # Workflow timestamps
    submitted_at = Column(DateTime(timezone=True), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    inspected_at = Column(DateTime(timezone=True), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True, comment="Decision time (approval or rejection)")

    # Notes
    revision_notes = Column(Text, nullable=True, comment="What the applicant must change")
    rejection_reason = Column(Text, nullable=True)
    internal_notes = Column(Text, nullable=True, comment="Staff-only notes")

    # Relationships
    applicant = relationship("User", foreign_keys=[applicant_id], back_populates="applications")
    assigned_reviewer = relationship("User", foreign_keys=[assigned_reviewer_id])
    assigned_inspector = relationship("User", foreign_keys=[assigned_inspector_id])
    assigned_approver = relationship("User", foreign_keys=[assigned_approver_id])
    status_history = relationship("ApplicationStatusHistory", back_populates="application", cascade="all, delete-orphan", order_by="ApplicationStatusHistory.changed_at")
    inspections = relationship("Inspection", back_populates="application", cascade="all, delete-orphan")
    permit = relationship("Permit", back_populates="application", uselist=False)

    def __repr__(self):
        return f"<Application(id={self.id}, number='{self.application_number}', status='{self.status}')>"

    @property
    def location_display(self) -> str:
        """Village, Cell, Sector, District, Province - skipping blanks"""
        parts = [self.village, self.cell, self.sector, self.district]
        if self.province is not None:
            parts.append(getattr(self.province, "value", self.province))
        return ", ".join(part for part in parts if part)


class ApplicationStatusHistory(BaseModel):
    """Status change history for applications"""
    __tablename__ = "application_status_history"

    application_id = Column(UUID(as_uuid=True), ForeignKey('applications.id'), nullable=False, index=True, comment="Application ID")
    previous_status = Column(EnumValueType(ApplicationStatus), nullable=True, comment="Previous status")
    new_status = Column(EnumValueType(ApplicationStatus), nullable=False, comment="New status")

    # Change details
    action = Column(String(50), nullable=True, comment="Workflow action, e.g. submit/approve")
    comment = Column(Text, nullable=True, comment="Reviewer or applicant comment")

    # Change metadata
    changed_by = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=True, comment="User who made the change")
    changed_at = Column(DateTime(timezone=True), nullable=False, comment="When the change was made")

    # Relationships
    application = relationship("Application", back_populates="status_history")
    changed_by_user = relationship("User", foreign_keys=[changed_by])

    def __repr__(self):
        return f"<ApplicationStatusHistory(application_id={self.application_id}, {self.previous_status} -> {self.new_status})>"
