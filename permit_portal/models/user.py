"""
User Account Model for the Water Permit Portal
Covers citizen/company applicants and internal staff (reviewer, inspector,
approver, admin). Pending signups live on the same row until the emailed
code is confirmed.
"""

from sqlalchemy import Column, Integer, String, DateTime, Date, Boolean, Text
from sqlalchemy.orm import relationship

from permit_portal.models.base import BaseModel, EnumValueType
from permit_portal.models.enums import UserRole, UserStatus, AccountType, IdType, ProvinceType


class User(BaseModel):
    """
    Portal user account

    Role decides which dashboard the user lands on and which endpoints
    `require_roles` lets through. Admins pass every role check.
    """
    __tablename__ = "users"

    # Authentication credentials
    email = Column(String(255), nullable=False, unique=True, index=True, comment="Login email address")
    phone = Column(String(20), nullable=True, comment="Contact phone number")
    password_hash = Column(String(255), nullable=False, comment="Hashed password")

    role = Column(EnumValueType(UserRole), nullable=False, default=UserRole.APPLICANT, index=True, comment="Portal role")
    status = Column(EnumValueType(UserStatus), nullable=False, default=UserStatus.PENDING_VERIFICATION, comment="Account status")
    account_type = Column(EnumValueType(AccountType), nullable=False, default=AccountType.INDIVIDUAL, comment="Individual or company account")

    # Individual applicant details
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    date_of_birth = Column(Date, nullable=True)
    id_number = Column(String(30), nullable=True, index=True, comment="National ID / passport number")
    id_type = Column(EnumValueType(IdType), nullable=True)

    # Company applicant details
    company_name = Column(String(200), nullable=True)
    company_tin = Column(String(30), nullable=True, comment="Tax identification number")
    company_address = Column(Text, nullable=True)
    company_phone = Column(String(20), nullable=True)

    # Location
    province = Column(EnumValueType(ProvinceType), nullable=True)
    district = Column(String(100), nullable=True)
    sector = Column(String(100), nullable=True)
    cell = Column(String(100), nullable=True)
    village = Column(String(100), nullable=True)
    address = Column(Text, nullable=True)

    # Activity
    last_login_at = Column(DateTime(timezone=True), nullable=True, comment="Last successful login timestamp")
    login_count = Column(Integer, nullable=False, default=0)
    profile_completed = Column(Boolean, nullable=False, default=False)

    # Signup verification challenge (code is stored hashed)
    signup_state = Column(String(30), nullable=False, default="collecting_details", comment="Signup flow state")
    verification_code_hash = Column(String(255), nullable=True)
    verification_code_expires_at = Column(DateTime(timezone=True), nullable=True)
    verification_attempts = Column(Integer, nullable=False, default=0, comment="Wrong codes submitted for the current challenge")
    verification_sent_at = Column(DateTime(timezone=True), nullable=True, comment="Last dispatch - drives the resend cooldown")
    verified_at = Column(DateTime(timezone=True), nullable=True)

    # Session management
    current_token_id = Column(String(255), nullable=True, comment="Current active token ID")
    token_expires_at = Column(DateTime(timezone=True), nullable=True, comment="Current token expiration")

    # Relationships
    applications = relationship("Application", foreign_keys="Application.applicant_id", back_populates="applicant")

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}', status='{self.status}')>"

    @property
    def full_name(self) -> str:
        """Display name - company name for company accounts"""
        if self.account_type == AccountType.COMPANY and self.company_name:
            return self.company_name
        return " ".join(part for part in (self.first_name, self.last_name) if part) or self.email

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE

    def has_role(self, *roles: UserRole) -> bool:
        """Check role membership - admin holds every role"""
        if self.role == UserRole.ADMIN:
            return True
        return self.role in roles
