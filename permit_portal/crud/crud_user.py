"""
CRUD operations for User accounts
"""

import logging
from typing import Optional
from sqlalchemy.orm import Query, Session
from datetime import datetime, timezone

from permit_portal.core.exceptions import RecordValidationError
from permit_portal.core.security import get_password_hash, verify_password
from permit_portal.crud.base import CRUDBase
from permit_portal.models.enums import UserRole, UserStatus, AccountType
from permit_portal.models.user import User
from permit_portal.schemas.user import RegisterRequest, UserCreate, UserUpdate

logger = logging.getLogger(__name__)


class CRUDUser(CRUDBase[User, UserCreate, UserUpdate]):
    """CRUD operations for Users"""

    def get_by_email(self, db: Session, *, email: str) -> Optional[User]:
        return self.get_by_field(db, "email", email.lower())

    def apply_filters(self, query: Query, filters) -> Query:
        if filters is None:
            return query
        role = getattr(filters, "role", None)
        if role:
            query = query.filter(User.role == role)
        status = getattr(filters, "status", None)
        if status:
            query = query.filter(User.status == status)
        return query

    def create_pending(self, db: Session, *, details: RegisterRequest) -> User:
        """
        Create an applicant account awaiting code verification

        Raises:
            RecordValidationError: email already belongs to a verified account
        """
        existing = self.get_by_email(db, email=details.email)
        if existing is not None and existing.status != UserStatus.PENDING_VERIFICATION:
            raise RecordValidationError("An account with this email already exists", resource=self.resource)

        data = details.model_dump(exclude={"password", "confirm_password", "accept_terms"})
        data["password_hash"] = get_password_hash(details.password)
        data["role"] = UserRole.APPLICANT
        data["status"] = UserStatus.PENDING_VERIFICATION
        data["profile_completed"] = self._profile_completed(details)

        if existing is not None:
            # Restarted signup - overwrite the pending details
            return self.update(db, db_obj=existing, obj_in=data)
        return self.create(db, obj_in=data)

    @staticmethod
    def _profile_completed(details: RegisterRequest) -> bool:
        if details.account_type == AccountType.COMPANY:
            return bool(details.company_name and details.company_tin and details.province)
        return bool(details.first_name and details.last_name and details.id_number and details.province)

    def create_staff(self, db: Session, *, obj_in: UserCreate, created_by=None) -> User:
        """Create an active staff account (no signup verification)"""
        if self.get_by_email(db, email=obj_in.email) is not None:
            raise RecordValidationError("An account with this email already exists", resource=self.resource)
        data = obj_in.model_dump(exclude={"password"})
        data["password_hash"] = get_password_hash(obj_in.password)
        data["status"] = UserStatus.ACTIVE
        data["signup_state"] = "confirmed"
        data["profile_completed"] = True
        return self.create(db, obj_in=data, created_by=created_by)

    def authenticate(self, db: Session, *, email: str, password: str) -> Optional[User]:
        """Authenticate an active user by email and password"""
        user = self.get_by_email(db, email=email)
        if not user:
            return None
        if not verify_password(password, user.password_hash):
            return None
        if user.status != UserStatus.ACTIVE:
            return None
        return user

    def start_session(self, db: Session, *, user: User, token_id: str, expires_at: datetime) -> User:
        """Record a successful login and the token that now identifies the session"""
        user.current_token_id = token_id
        user.token_expires_at = expires_at
        user.last_login_at = datetime.now(timezone.utc)
        user.login_count = (user.login_count or 0) + 1
        with self.store_call(db, "login"):
            db.commit()
            db.refresh(user)
        return user

    def end_session(self, db: Session, *, user: User) -> User:
        """Invalidate the user's current session token"""
        user.current_token_id = None
        user.token_expires_at = None
        with self.store_call(db, "logout"):
            db.commit()
            db.refresh(user)
        return user


user = CRUDUser(User)
