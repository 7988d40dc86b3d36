"""
Pydantic schemas for Water Permit Applications
Handles validation and serialization for application data, list filters and
workflow transitions
"""

from typing import List, Optional
from pydantic import BaseModel, Field, validator
from datetime import datetime
from decimal import Decimal
import uuid

from permit_portal.models.enums import (
    ApplicationStatus, ApplicationType, WaterSourceType, WaterPurpose,
    SlaStatus, ProvinceType
)


class ApplicationBase(BaseModel):
    """Fields an applicant fills in"""
    application_type: ApplicationType
    water_source: WaterSourceType
    water_purpose: WaterPurpose
    water_usage_volume: Optional[Decimal] = Field(None, ge=0, description="Requested volume")
    water_usage_unit: Optional[str] = Field("m3/day", max_length=20)

    province: Optional[ProvinceType] = None
    district: Optional[str] = Field(None, max_length=100)
    sector: Optional[str] = Field(None, max_length=100)
    cell: Optional[str] = Field(None, max_length=100)
    village: Optional[str] = Field(None, max_length=100)
    gps_coordinates: Optional[str] = Field(None, max_length=100)

    project_title: Optional[str] = Field(None, max_length=255)
    project_description: Optional[str] = None
    project_value: Optional[Decimal] = Field(None, ge=0, description="Estimated project value (RWF)")

    taking_method: Optional[str] = Field(None, max_length=255)
    measuring_method: Optional[str] = Field(None, max_length=255)
    storage_method: Optional[str] = Field(None, max_length=255)
    return_flow_method: Optional[str] = Field(None, max_length=255)

    electricity_capacity: Optional[Decimal] = Field(None, ge=0)
    mining_operations: Optional[str] = None
    diversion_details: Optional[str] = None

    pipe_details: Optional[str] = None
    pump_details: Optional[str] = None
    valve_details: Optional[str] = None
    meter_details: Optional[str] = None

    environmental_assessment: bool = False
    mitigation_measures: Optional[str] = None
    land_ownership: Optional[str] = Field(None, max_length=100)


class ApplicationCreate(ApplicationBase):
    """Schema for creating a new application (always starts as draft)"""
    applicant_id: Optional[uuid.UUID] = Field(None, description="Staff may file on behalf of an applicant")

    @validator('project_title')
    def strip_title(cls, v):
        return v.strip() if v else v


class ApplicationUpdate(BaseModel):
    """Partial update - status is changed through the transition endpoint only"""
    application_type: Optional[ApplicationType] = None
    water_source: Optional[WaterSourceType] = None
    water_purpose: Optional[WaterPurpose] = None
    water_usage_volume: Optional[Decimal] = Field(None, ge=0)
    water_usage_unit: Optional[str] = Field(None, max_length=20)

    province: Optional[ProvinceType] = None
    district: Optional[str] = Field(None, max_length=100)
    sector: Optional[str] = Field(None, max_length=100)
    cell: Optional[str] = Field(None, max_length=100)
    village: Optional[str] = Field(None, max_length=100)
    gps_coordinates: Optional[str] = Field(None, max_length=100)

    project_title: Optional[str] = Field(None, max_length=255)
    project_description: Optional[str] = None
    project_value: Optional[Decimal] = Field(None, ge=0)

    taking_method: Optional[str] = None
    measuring_method: Optional[str] = None
    storage_method: Optional[str] = None
    return_flow_method: Optional[str] = None
    electricity_capacity: Optional[Decimal] = Field(None, ge=0)
    mining_operations: Optional[str] = None
    diversion_details: Optional[str] = None
    pipe_details: Optional[str] = None
    pump_details: Optional[str] = None
    valve_details: Optional[str] = None
    meter_details: Optional[str] = None
    environmental_assessment: Optional[bool] = None
    mitigation_measures: Optional[str] = None
    land_ownership: Optional[str] = None

    # Staff fields
    assigned_reviewer_id: Optional[uuid.UUID] = None
    assigned_inspector_id: Optional[uuid.UUID] = None
    assigned_approver_id: Optional[uuid.UUID] = None
    internal_notes: Optional[str] = None


STAFF_ONLY_UPDATE_FIELDS = frozenset({
    "assigned_reviewer_id", "assigned_inspector_id", "assigned_approver_id", "internal_notes",
})


class ApplicationFilters(BaseModel):
    """List filters - set filters match any of the given values"""
    status: Optional[List[ApplicationStatus]] = None
    application_type: Optional[List[ApplicationType]] = None
    province: Optional[List[ProvinceType]] = None
    district: Optional[List[str]] = None
    water_source: Optional[List[WaterSourceType]] = None
    sla_status: Optional[List[SlaStatus]] = None
    applicant_id: Optional[uuid.UUID] = None
    assigned_reviewer_id: Optional[uuid.UUID] = None
    assigned_inspector_id: Optional[uuid.UUID] = None
    created_from: Optional[datetime] = Field(None, description="created_at >= this")
    created_to: Optional[datetime] = Field(None, description="created_at <= this")
    search: Optional[str] = Field(None, description="Application number or project title contains")


class StatusTransitionRequest(BaseModel):
    """Move an application to a new status"""
    new_status: ApplicationStatus
    comment: Optional[str] = Field(None, description="Reason or note recorded in the history")
    rejection_reason: Optional[str] = None
    revision_notes: Optional[str] = None

    @validator('rejection_reason', always=True)
    def rejection_needs_reason(cls, v, values):
        if values.get('new_status') == ApplicationStatus.REJECTED and not (v or values.get('comment')):
            raise ValueError('A reason is required to reject an application')
        return v


class StatusHistoryResponse(BaseModel):
    id: uuid.UUID
    previous_status: Optional[ApplicationStatus] = None
    new_status: ApplicationStatus
    action: Optional[str] = None
    comment: Optional[str] = None
    changed_by: Optional[uuid.UUID] = None
    changed_at: datetime

    class Config:
        from_attributes = True


class ApplicationResponse(ApplicationBase):
    """Schema for application API responses"""
    id: uuid.UUID
    application_number: str
    applicant_id: uuid.UUID
    previous_application_id: Optional[uuid.UUID] = None
    status: ApplicationStatus
    status_label: str = ""
    sla_status: SlaStatus
    due_date: Optional[datetime] = None
    assigned_reviewer_id: Optional[uuid.UUID] = None
    assigned_inspector_id: Optional[uuid.UUID] = None
    assigned_approver_id: Optional[uuid.UUID] = None
    submitted_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    inspected_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    revision_notes: Optional[str] = None
    rejection_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    allowed_transitions: List[ApplicationStatus] = Field(default_factory=list)

    class Config:
        from_attributes = True


class ApplicationListResponse(BaseModel):
    applications: List[ApplicationResponse]
    total: int
    skip: int
    limit: int
