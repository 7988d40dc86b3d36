"""
Water Permit Model
A permit is issued from an approved application. Its status
(active / expiring-soon / expired) is derived from expiry_date on read and
never stored; suspension and revocation are administrative flags that
override the derived value.
"""

from sqlalchemy import Column, String, Date, Boolean, Text, ForeignKey, Numeric, JSON
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from permit_portal.models.base import BaseModel, EnumValueType
from permit_portal.models.enums import WaterSourceType, WaterPurpose


class Permit(BaseModel):
    """Issued water-use permit"""
    __tablename__ = "permits"

    application_id = Column(UUID(as_uuid=True), ForeignKey('applications.id'), nullable=False, unique=True, index=True, comment="Originating application")
    permit_number = Column(String(20), nullable=False, unique=True, index=True, comment="Unique permit number (PRM-YYYY-NNNNN)")

    # Grant
    water_source = Column(EnumValueType(WaterSourceType), nullable=False)
    purpose = Column(EnumValueType(WaterPurpose), nullable=False)
    water_allowance = Column(Numeric(14, 2), nullable=True, comment="Permitted volume")
    allowance_unit = Column(String(20), nullable=True, default="m3/day")
    issuing_authority = Column(String(200), nullable=False)

    # Validity window
    issued_date = Column(Date, nullable=False, index=True)
    expiry_date = Column(Date, nullable=False, index=True)

    # Terms
    conditions = Column(JSON, nullable=True, comment="JSON array of permit conditions")
    monitoring_frequency = Column(String(50), nullable=True, comment="e.g. monthly, quarterly")
    reporting_requirements = Column(Text, nullable=True)
    renewable = Column(Boolean, nullable=False, default=True)
    transferable = Column(Boolean, nullable=False, default=False)

    # Administrative overrides
    suspended = Column(Boolean, nullable=False, default=False)
    revoked = Column(Boolean, nullable=False, default=False)
    status_reason = Column(Text, nullable=True, comment="Reason for suspension/revocation")

    # Relationships
    application = relationship("Application", back_populates="permit")
    inspections = relationship("Inspection", back_populates="permit")

    def __repr__(self):
        return f"<Permit(id={self.id}, number='{self.permit_number}', expiry={self.expiry_date})>"
