"""
Security Module for the Water Permit Portal
Handles password hashing, JWT session tokens and signup verification codes
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Union, Optional
from jose import jwt, JWTError
from passlib.context import CryptContext
import secrets
import uuid

from permit_portal.core.config import get_settings

settings = get_settings()

# Password hashing context (bcrypt 4.0.x, see pyproject pin)
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def create_access_token(
    subject: Union[str, Any],
    expires_delta: Optional[timedelta] = None,
    additional_claims: Optional[dict] = None
) -> tuple:
    """
    Create JWT access token for a user session

    Args:
        subject: User ID to encode in token
        expires_delta: Custom expiration time (defaults to settings)
        additional_claims: Additional claims to include in token

    Returns:
        (encoded token, token id) - the token id is stored on the user so
        logout can invalidate the session
    """
    now = datetime.now(timezone.utc)
    if expires_delta:
        expire = now + expires_delta
    else:
        expire = now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    token_id = uuid.uuid4().hex
    to_encode = {
        "exp": expire,
        "sub": str(subject),
        "iat": now,
        "jti": token_id,
        "type": "access"
    }

    if additional_claims:
        to_encode.update(additional_claims)

    encoded_jwt = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return encoded_jwt, token_id


def verify_token(token: str) -> Optional[dict]:
    """
    Verify and decode JWT token

    Returns:
        Token payload if valid, None if invalid
    """
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain text password against its hash"""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Generate password hash from plain text password"""
    return pwd_context.hash(password)


def generate_verification_code(length: Optional[int] = None) -> str:
    """
    Generate a numeric signup verification code

    Args:
        length: Number of digits (defaults to VERIFICATION_CODE_LENGTH)
    """
    length = length or settings.VERIFICATION_CODE_LENGTH
    return "".join(secrets.choice("0123456789") for _ in range(length))


def hash_verification_code(code: str) -> str:
    """Codes are stored hashed, like passwords"""
    return pwd_context.hash(code)


def verify_verification_code(code: str, code_hash: str) -> bool:
    return pwd_context.verify(code, code_hash)


def validate_password_strength(password: str) -> dict:
    """
    Validate password strength for portal accounts

    Returns:
        Dictionary with validation results
    """
    errors = []
    warnings = []

    if len(password) < 8:
        errors.append("Password must be at least 8 characters long")

    has_upper = any(c.isupper() for c in password)
    has_lower = any(c.islower() for c in password)
    has_digit = any(c.isdigit() for c in password)
    has_special = any(c in "!@#$%^&*()_+-=[]{}|;:,.<>?" for c in password)

    if not has_upper:
        errors.append("Password must contain at least one uppercase letter")

    if not has_lower:
        errors.append("Password must contain at least one lowercase letter")

    if not has_digit:
        errors.append("Password must contain at least one number")

    if not has_special:
        warnings.append("Password should contain at least one special character")

    common_passwords = [
        "password", "123456", "password123", "admin", "rwanda",
        "qwerty", "abc123", "letmein", "welcome", "water123"
    ]

    if password.lower() in common_passwords:
        errors.append("Password is too common, please choose a different one")

    return {
        "valid": len(errors) == 0,
        "errors": errors,
        "warnings": warnings
    }
