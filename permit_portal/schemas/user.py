"""
User and Signup Schemas for the Water Permit Portal API
Pydantic models for request/response validation
"""

from pydantic import BaseModel, EmailStr, Field, validator
from typing import List, Optional
from datetime import datetime, date
import uuid

from permit_portal.core.security import validate_password_strength
from permit_portal.models.enums import UserRole, UserStatus, AccountType, IdType, ProvinceType


class RegisterRequest(BaseModel):
    """Signup details - first step of the signup flow"""
    email: EmailStr = Field(..., description="Email address (login)")
    password: str = Field(..., min_length=8, description="Password")
    confirm_password: str = Field(..., description="Password confirmation")
    phone: Optional[str] = Field(None, max_length=20, description="Phone number")
    account_type: AccountType = Field(AccountType.INDIVIDUAL, description="Individual or company")

    # Individual
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    date_of_birth: Optional[date] = None
    id_number: Optional[str] = Field(None, max_length=30)
    id_type: Optional[IdType] = None

    # Company
    company_name: Optional[str] = Field(None, max_length=200)
    company_tin: Optional[str] = Field(None, max_length=30)
    company_address: Optional[str] = None
    company_phone: Optional[str] = Field(None, max_length=20)

    # Location
    province: Optional[ProvinceType] = None
    district: Optional[str] = Field(None, max_length=100)
    sector: Optional[str] = Field(None, max_length=100)
    cell: Optional[str] = Field(None, max_length=100)
    village: Optional[str] = Field(None, max_length=100)
    address: Optional[str] = None

    accept_terms: bool = Field(True, description="Terms and conditions accepted")

    @validator('email')
    def normalise_email(cls, v):
        return v.lower()

    @validator('password')
    def password_strength(cls, v):
        result = validate_password_strength(v)
        if not result["valid"]:
            raise ValueError("; ".join(result["errors"]))
        return v

    @validator('confirm_password')
    def passwords_match(cls, v, values):
        if 'password' in values and v != values['password']:
            raise ValueError('Passwords do not match')
        return v

    @validator('last_name', always=True)
    def individual_names_required(cls, v, values):
        if values.get('account_type') == AccountType.INDIVIDUAL:
            if not values.get('first_name') or not v:
                raise ValueError('First and last name are required for individual accounts')
        return v

    @validator('company_name', always=True)
    def company_name_required(cls, v, values):
        if values.get('account_type') == AccountType.COMPANY and not v:
            raise ValueError('Company name is required for company accounts')
        return v

    @validator('id_number')
    def validate_id_number(cls, v):
        if v is None:
            return v
        cleaned = v.replace(' ', '').replace('-', '')
        if not cleaned.isalnum():
            raise ValueError('ID number contains invalid characters')
        return cleaned.upper()

    @validator('accept_terms')
    def terms_accepted(cls, v):
        if not v:
            raise ValueError('Terms and conditions must be accepted')
        return v


class VerifyCodeRequest(BaseModel):
    """Code entered on the verification step"""
    email: EmailStr
    code: str = Field(..., description="Verification code")


class ResendCodeRequest(BaseModel):
    email: EmailStr


class ConfirmationView(BaseModel):
    """What the portal shows once signup is confirmed"""
    title: str = "Account Verified"
    message: str = "Your account has been verified successfully."
    redirect_url: str = "/dashboard"
    redirect_label: str = "Go to Dashboard"


class SignupStateResponse(BaseModel):
    """Current step of a signup"""
    email: EmailStr
    state: str = Field(description="collecting_details, awaiting_code or confirmed")
    countdown: int = Field(0, description="Seconds until a new code may be requested")
    attempts_remaining: Optional[int] = None
    code_expires_at: Optional[datetime] = None
    confirmation: Optional[ConfirmationView] = None
    message: Optional[str] = None


class LoginRequest(BaseModel):
    """User login request"""
    email: EmailStr = Field(..., description="Email address")
    password: str = Field(..., description="Password")


class UserResponse(BaseModel):
    """Schema for user API responses"""
    id: uuid.UUID
    email: str
    phone: Optional[str] = None
    role: UserRole
    status: UserStatus
    account_type: AccountType
    full_name: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    company_name: Optional[str] = None
    province: Optional[ProvinceType] = None
    district: Optional[str] = None
    profile_completed: bool = False
    last_login_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class UserSummary(BaseModel):
    """Minimal user info for assignment lists"""
    id: uuid.UUID
    email: str
    full_name: str
    role: UserRole

    class Config:
        from_attributes = True


class UserCreate(BaseModel):
    """Staff account creation (admin only)"""
    email: EmailStr
    password: str = Field(..., min_length=8)
    role: UserRole
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=20)

    @validator('email')
    def normalise_email(cls, v):
        return v.lower()

    @validator('password')
    def password_strength(cls, v):
        result = validate_password_strength(v)
        if not result["valid"]:
            raise ValueError("; ".join(result["errors"]))
        return v


class UserUpdate(BaseModel):
    phone: Optional[str] = Field(None, max_length=20)
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    role: Optional[UserRole] = None
    status: Optional[UserStatus] = None


class LoginResponse(BaseModel):
    """User login response"""
    access_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds
    user: UserResponse
    redirect_url: str = Field(description="Dashboard for the user's role")


class UserFilters(BaseModel):
    role: Optional[UserRole] = None
    status: Optional[UserStatus] = None


class UserListResponse(BaseModel):
    users: List[UserResponse]
    total: int
    skip: int
    limit: int
