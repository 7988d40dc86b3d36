"""
Shared Enums for the Water Permit Portal
Standardized enumerations used across multiple modules
"""

from enum import Enum as PythonEnum


class UserRole(str, PythonEnum):
    """Portal roles - determine which dashboard a user lands on"""
    APPLICANT = "applicant"
    REVIEWER = "reviewer"
    INSPECTOR = "inspector"
    APPROVER = "approver"
    ADMIN = "admin"


class UserStatus(str, PythonEnum):
    """User account status"""
    PENDING_VERIFICATION = "pending_verification"   # Signed up, code not yet confirmed
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class AccountType(str, PythonEnum):
    INDIVIDUAL = "individual"
    COMPANY = "company"


class IdType(str, PythonEnum):
    """Identity documents accepted at signup"""
    NATIONAL_ID = "national_id"
    PASSPORT = "passport"
    DRIVING_LICENSE = "driving_license"


class ProvinceType(str, PythonEnum):
    """Rwanda provinces (plus the City of Kigali)"""
    KIGALI = "Kigali"
    NORTHERN = "Northern"
    SOUTHERN = "Southern"
    EASTERN = "Eastern"
    WESTERN = "Western"


class ApplicationStatus(str, PythonEnum):
    """Application lifecycle"""
    DRAFT = "draft"                             # Saved but not submitted
    SUBMITTED = "submitted"                     # Submitted, waiting for a reviewer
    UNDER_REVIEW = "under_review"               # Reviewer working on it
    PENDING_INSPECTION = "pending_inspection"   # Field inspection requested
    APPROVED = "approved"                       # Terminal - permit can be issued
    REJECTED = "rejected"                       # Terminal
    REVISION_REQUIRED = "revision_required"     # Sent back; applicant resubmits as a new draft
    CANCELLED = "cancelled"                     # Terminal


class ApplicationType(str, PythonEnum):
    DOMESTIC = "domestic"
    INDUSTRIAL = "industrial"
    AGRICULTURAL = "agricultural"
    COMMERCIAL = "commercial"
    MUNICIPAL = "municipal"
    MINING_WATER_USE = "mining_water_use"


class WaterSourceType(str, PythonEnum):
    BOREHOLE = "borehole"
    SURFACE_WATER = "surface_water"
    RIVER = "river"
    GROUNDWATER = "groundwater"
    LAKE = "lake"
    SPRING = "spring"
    OTHER = "other"


class WaterPurpose(str, PythonEnum):
    DOMESTIC = "domestic"
    IRRIGATION = "irrigation"
    INDUSTRIAL = "industrial"
    LIVESTOCK = "livestock"
    AQUACULTURE = "aquaculture"
    RECREATION = "recreation"
    ELECTRICITY_GENERATION = "electricity_generation"
    MINING = "mining"
    MUNICIPAL_SUPPLY = "municipal_supply"
    OTHER = "other"


class SlaStatus(str, PythonEnum):
    """Review deadline classification"""
    ON_TIME = "on_time"
    OVERDUE = "overdue"


class PermitStatus(str, PythonEnum):
    """Permit status - ACTIVE/EXPIRING_SOON/EXPIRED are derived from expiry_date"""
    ACTIVE = "active"
    EXPIRING_SOON = "expiring-soon"
    EXPIRED = "expired"
    SUSPENDED = "suspended"     # Administrative override
    REVOKED = "revoked"         # Administrative override


class InspectionStatus(str, PythonEnum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class InspectionType(str, PythonEnum):
    INITIAL = "initial"
    FOLLOW_UP = "follow_up"
    ANNUAL = "annual"
    COMPLAINT = "complaint"
    RENEWAL = "renewal"


class ComplianceStatus(str, PythonEnum):
    """Inspector's overall finding"""
    COMPLIANT = "compliant"
    MINOR_ISSUES = "minor_issues"
    MAJOR_VIOLATIONS = "major_violations"


class ProjectStatus(str, PythonEnum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class InfrastructureCondition(str, PythonEnum):
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


class EnvironmentalImpact(str, PythonEnum):
    MINIMAL = "minimal"
    MODERATE = "moderate"
    SIGNIFICANT = "significant"


# Display names mapping for frontend
USER_ROLE_DISPLAY_NAMES = {
    UserRole.APPLICANT: "Applicant",
    UserRole.REVIEWER: "Reviewer",
    UserRole.INSPECTOR: "Inspector",
    UserRole.APPROVER: "Approver",
    UserRole.ADMIN: "Administrator",
}

APPLICATION_TYPE_DISPLAY_NAMES = {
    ApplicationType.DOMESTIC: "Domestic",
    ApplicationType.INDUSTRIAL: "Industrial",
    ApplicationType.AGRICULTURAL: "Agricultural",
    ApplicationType.COMMERCIAL: "Commercial",
    ApplicationType.MUNICIPAL: "Municipal",
    ApplicationType.MINING_WATER_USE: "Mining Water Use",
}

WATER_SOURCE_DISPLAY_NAMES = {
    WaterSourceType.BOREHOLE: "Borehole",
    WaterSourceType.SURFACE_WATER: "Surface Water",
    WaterSourceType.RIVER: "River",
    WaterSourceType.GROUNDWATER: "Groundwater",
    WaterSourceType.LAKE: "Lake",
    WaterSourceType.SPRING: "Spring",
    WaterSourceType.OTHER: "Other",
}

WATER_PURPOSE_DISPLAY_NAMES = {
    WaterPurpose.DOMESTIC: "Domestic",
    WaterPurpose.IRRIGATION: "Irrigation",
    WaterPurpose.INDUSTRIAL: "Industrial",
    WaterPurpose.LIVESTOCK: "Livestock",
    WaterPurpose.AQUACULTURE: "Aquaculture",
    WaterPurpose.RECREATION: "Recreation",
    WaterPurpose.ELECTRICITY_GENERATION: "Electricity Generation",
    WaterPurpose.MINING: "Mining",
    WaterPurpose.MUNICIPAL_SUPPLY: "Municipal Supply",
    WaterPurpose.OTHER: "Other",
}

INSPECTION_TYPE_DISPLAY_NAMES = {
    InspectionType.INITIAL: "Initial",
    InspectionType.FOLLOW_UP: "Follow-up",
    InspectionType.ANNUAL: "Annual",
    InspectionType.COMPLAINT: "Complaint",
    InspectionType.RENEWAL: "Renewal",
}
