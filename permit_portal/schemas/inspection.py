"""
Inspection Schemas for the Water Permit Portal API
Findings mirror the field inspection form
"""

from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
import uuid

from permit_portal.models.enums import (
    InspectionStatus, InspectionType, ComplianceStatus,
    ProjectStatus, InfrastructureCondition, EnvironmentalImpact
)


class InspectionFindings(BaseModel):
    """Nested findings recorded on site"""
    location_accurate: Optional[bool] = None
    actual_location: Optional[str] = None
    project_status: Optional[ProjectStatus] = None
    project_matches_application: Optional[bool] = None

    # Technical verification
    water_source_verified: Optional[bool] = None
    extraction_method_verified: Optional[bool] = None
    flow_measurement_verified: Optional[bool] = None
    infrastructure_condition: Optional[InfrastructureCondition] = None

    # Environmental
    environmental_impact: Optional[EnvironmentalImpact] = None
    mitigation_measures: Optional[str] = None

    # Evidence
    photos_collected: bool = False
    photo_count: int = Field(0, ge=0)
    samples_collected: bool = False
    sample_count: int = Field(0, ge=0)


class InspectionCreate(BaseModel):
    application_id: uuid.UUID
    permit_id: Optional[uuid.UUID] = None
    inspector_id: Optional[uuid.UUID] = Field(None, description="Defaults to the current inspector")
    inspection_type: InspectionType = InspectionType.INITIAL
    status: InspectionStatus = InspectionStatus.SCHEDULED
    scheduled_date: Optional[datetime] = None
    completed_date: Optional[datetime] = None
    findings: Optional[InspectionFindings] = None
    compliance_status: Optional[ComplianceStatus] = None
    recommendations: Optional[str] = None
    follow_up_required: bool = False
    follow_up_date: Optional[datetime] = None
    notes: Optional[str] = None


class InspectionUpdate(BaseModel):
    status: Optional[InspectionStatus] = None
    scheduled_date: Optional[datetime] = None
    completed_date: Optional[datetime] = None
    findings: Optional[InspectionFindings] = None
    compliance_status: Optional[ComplianceStatus] = None
    recommendations: Optional[str] = None
    follow_up_required: Optional[bool] = None
    follow_up_date: Optional[datetime] = None
    notes: Optional[str] = None


class InspectionFilters(BaseModel):
    status: Optional[List[InspectionStatus]] = None
    compliance_status: Optional[List[ComplianceStatus]] = None
    application_id: Optional[uuid.UUID] = None
    permit_id: Optional[uuid.UUID] = None
    inspector_id: Optional[uuid.UUID] = None


class InspectionResponse(BaseModel):
    id: uuid.UUID
    inspection_number: str
    application_id: uuid.UUID
    permit_id: Optional[uuid.UUID] = None
    inspector_id: uuid.UUID
    inspection_type: InspectionType
    status: InspectionStatus
    scheduled_date: Optional[datetime] = None
    completed_date: Optional[datetime] = None
    findings: Optional[InspectionFindings] = None
    compliance_status: Optional[ComplianceStatus] = None
    compliance_label: Optional[str] = None
    recommendations: Optional[str] = None
    follow_up_required: bool = False
    follow_up_date: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class InspectionListResponse(BaseModel):
    inspections: List[InspectionResponse]
    total: int
    skip: int
    limit: int
