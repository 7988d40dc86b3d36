"""
Database models for the Water Permit Portal
"""

from permit_portal.models.base import Base, BaseModel
from permit_portal.models.user import User
from permit_portal.models.application import Application, ApplicationStatusHistory
from permit_portal.models.permit import Permit
from permit_portal.models.inspection import Inspection
from permit_portal.models.audit import AuditLog
from permit_portal.models.enums import (
    UserRole, UserStatus, AccountType, IdType, ProvinceType,
    ApplicationStatus, ApplicationType, WaterSourceType, WaterPurpose, SlaStatus,
    PermitStatus, InspectionStatus, InspectionType, ComplianceStatus
)

__all__ = [
    "Base",
    "BaseModel",
    "User",
    "Application",
    "ApplicationStatusHistory",
    "Permit",
    "Inspection",
    "AuditLog",
    "UserRole",
    "UserStatus",
    "AccountType",
    "IdType",
    "ProvinceType",
    "ApplicationStatus",
    "ApplicationType",
    "WaterSourceType",
    "WaterPurpose",
    "SlaStatus",
    "PermitStatus",
    "InspectionStatus",
    "InspectionType",
    "ComplianceStatus",
]
