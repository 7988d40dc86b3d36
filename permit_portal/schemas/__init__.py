"""
Pydantic schemas for request/response validation
"""

# User and signup schemas
from permit_portal.schemas.user import (
    RegisterRequest, VerifyCodeRequest, ResendCodeRequest, ConfirmationView,
    SignupStateResponse, LoginRequest, LoginResponse, UserResponse, UserSummary,
    UserCreate, UserUpdate, UserFilters, UserListResponse
)

# Application schemas
from permit_portal.schemas.application import (
    ApplicationCreate, ApplicationUpdate, ApplicationFilters, ApplicationResponse,
    ApplicationListResponse, StatusTransitionRequest, StatusHistoryResponse
)

# Permit schemas
from permit_portal.schemas.permit import (
    PermitIssueRequest, PermitUpdate, PermitFilters, PermitResponse, PermitListResponse,
    PermitCertificateData, CertificateApplicantDetails, CertificateInspection
)

# Inspection schemas
from permit_portal.schemas.inspection import (
    InspectionFindings, InspectionCreate, InspectionUpdate, InspectionFilters,
    InspectionResponse, InspectionListResponse
)

# Analytics and lookup schemas
from permit_portal.schemas.analytics import (
    ApplicationSummary, PermitSummary, InspectionSummary, ProcessingTimes, DashboardResponse
)
from permit_portal.schemas.lookup import StatusBadge, EnumOption, EnumOptionsResponse
