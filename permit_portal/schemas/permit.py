"""
Permit Schemas for the Water Permit Portal API
Includes the display record consumed by the certificate renderer
"""

from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import date, datetime
from decimal import Decimal
import uuid

from permit_portal.models.enums import PermitStatus, WaterSourceType, WaterPurpose


class PermitIssueRequest(BaseModel):
    """Issue a permit from an approved application"""
    application_id: uuid.UUID
    issued_date: Optional[date] = Field(None, description="Defaults to today")
    expiry_date: Optional[date] = Field(None, description="Defaults to issued_date + PERMIT_VALIDITY_YEARS")
    water_allowance: Optional[Decimal] = Field(None, ge=0, description="Defaults to the requested volume")
    allowance_unit: Optional[str] = Field(None, max_length=20)
    conditions: List[str] = Field(default_factory=list)
    monitoring_frequency: Optional[str] = Field(None, max_length=50)
    reporting_requirements: Optional[str] = None
    renewable: bool = True
    transferable: bool = False


class PermitUpdate(BaseModel):
    """Administrative changes to an issued permit"""
    expiry_date: Optional[date] = None
    conditions: Optional[List[str]] = None
    monitoring_frequency: Optional[str] = Field(None, max_length=50)
    reporting_requirements: Optional[str] = None
    suspended: Optional[bool] = None
    revoked: Optional[bool] = None
    status_reason: Optional[str] = None


class PermitFilters(BaseModel):
    status: Optional[List[PermitStatus]] = Field(None, description="Derived status in set")
    expiring_soon: Optional[bool] = Field(None, description="Only permits inside the lookahead window")
    application_id: Optional[uuid.UUID] = None
    applicant_id: Optional[uuid.UUID] = None


class PermitResponse(BaseModel):
    """Schema for permit API responses - status is derived on read"""
    id: uuid.UUID
    application_id: uuid.UUID
    permit_number: str
    water_source: WaterSourceType
    purpose: WaterPurpose
    water_allowance: Optional[Decimal] = None
    allowance_unit: Optional[str] = None
    issuing_authority: str
    issued_date: date
    expiry_date: date
    conditions: List[str] = Field(default_factory=list)
    monitoring_frequency: Optional[str] = None
    reporting_requirements: Optional[str] = None
    renewable: bool = True
    transferable: bool = False
    suspended: bool = False
    revoked: bool = False
    status: PermitStatus
    status_label: str
    days_until_expiry: int
    created_at: datetime

    class Config:
        from_attributes = True


class PermitListResponse(BaseModel):
    permits: List[PermitResponse]
    total: int
    skip: int
    limit: int


class CertificateApplicantDetails(BaseModel):
    """Optional applicant section of the certificate"""
    applicant_name: str
    applicant_type: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    land_ownership: Optional[str] = None
    environmental_assessment: Optional[bool] = None


class CertificateInspection(BaseModel):
    date: str
    status: str
    notes: Optional[str] = None


class PermitCertificateData(BaseModel):
    """Fully populated permit-for-display record"""
    permit_number: str
    title: str
    permit_type: str
    status: str = Field(description="Permit status code, labelled through the status taxonomy")
    issue_date: str
    expiry_date: str
    water_source: str
    purpose: str
    water_allowance: str
    location: str
    issuing_authority: str
    applicant: Optional[CertificateApplicantDetails] = None
    conditions: List[str] = Field(default_factory=list)
    inspections: List[CertificateInspection] = Field(default_factory=list)
