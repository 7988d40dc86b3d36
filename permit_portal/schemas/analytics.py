"""
Analytics Schema Definitions for the Water Permit Portal
Pydantic schemas for dashboard summaries and API responses
"""

from pydantic import BaseModel, Field
from typing import List, Optional, Dict


class ProcessingTimes(BaseModel):
    """Days from submission to decision"""
    sample_size: int = Field(0, description="Decided applications with both timestamps")
    average_days: float = 0.0
    median_days: float = 0.0
    fastest_days: float = 0.0
    slowest_days: float = 0.0


class ApplicationSummary(BaseModel):
    """Application counts for dashboard widgets"""
    total: int = Field(description="Total applications")
    by_status: Dict[str, int] = Field(description="Count per status (every status present)")
    by_type: Dict[str, int] = Field(default_factory=dict, description="Count per application type")
    by_province: Dict[str, int] = Field(default_factory=dict, description="Count per province")
    created_this_month: int = Field(description="Created in the current calendar month")
    created_last_month: int = Field(description="Created in the previous calendar month")
    monthly_change_percent: float = Field(description="Percentage change from previous month")
    trend: str = Field(description="Trend direction: up, down, flat")
    approved: int = 0
    rejected: int = 0
    approval_rate: float = Field(description="approved / (approved + rejected), 0.0 when nothing decided")
    approval_rate_percent: float = Field(description="Approval rate as a percentage, one decimal")
    pending_review: int = Field(description="Submitted or under review")
    overdue: int = Field(description="Past the review deadline")
    processing_times: ProcessingTimes = Field(default_factory=ProcessingTimes)


class PermitSummary(BaseModel):
    """Permit counts by derived status"""
    total: int
    active: int
    expiring_soon: int
    expired: int
    suspended: int = 0
    revoked: int = 0
    issued_this_year: int = 0
    by_status: Dict[str, int] = Field(default_factory=dict)


class InspectionSummary(BaseModel):
    """Inspection counts and compliance outcome"""
    total: int
    by_status: Dict[str, int]
    by_compliance: Dict[str, int]
    completed_this_month: int = 0
    follow_up_required: int = 0
    compliance_rate: float = Field(0.0, description="compliant / inspections with a finding")


class DashboardItem(BaseModel):
    """Compact application row for dashboard lists"""
    id: str
    application_number: str
    status: str
    status_label: str
    application_type: str
    project_title: Optional[str] = None
    sla_status: Optional[str] = None
    due_date: Optional[str] = None
    days_until_due: Optional[int] = None


class ExpiringPermitItem(BaseModel):
    id: str
    permit_number: str
    expiry_date: str
    days_until_expiry: int
    status: str


class DashboardResponse(BaseModel):
    """Role dashboard payload"""
    role: str
    generated_at: str
    applications: ApplicationSummary
    permits: Optional[PermitSummary] = None
    inspections: Optional[InspectionSummary] = None
    work_queue: List[DashboardItem] = Field(default_factory=list, description="Items waiting on this role")
    expiring_permits: List[ExpiringPermitItem] = Field(default_factory=list)
