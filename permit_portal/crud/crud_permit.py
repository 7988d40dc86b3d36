"""
CRUD operations for Water Permits
Permit status is derived from expiry_date, so status filters are expressed
as expiry-date ranges relative to the reference time
"""

import logging
from typing import List, Optional
from sqlalchemy.orm import Query, Session
from sqlalchemy import and_, desc, or_
from datetime import date, datetime, timedelta, timezone
import uuid

from permit_portal.core.config import get_settings
from permit_portal.core.exceptions import RecordValidationError
from permit_portal.crud.base import CRUDBase
from permit_portal.models.application import Application
from permit_portal.models.enums import ApplicationStatus, PermitStatus
from permit_portal.models.permit import Permit
from permit_portal.schemas.permit import PermitIssueRequest, PermitUpdate, PermitFilters
from permit_portal.services.audit_service import AuditService, UserContext
from permit_portal.services.sla_calculator import as_utc

logger = logging.getLogger(__name__)

settings = get_settings()

PERMIT_NUMBER_PREFIX = "PRM"


def add_years(value: date, years: int) -> date:
    """Same calendar day `years` later (29 Feb falls back to 28 Feb)"""
    try:
        return value.replace(year=value.year + years)
    except ValueError:
        return value.replace(year=value.year + years, day=28)


class CRUDPermit(CRUDBase[Permit, PermitIssueRequest, PermitUpdate]):
    """CRUD operations for Permits"""

    def __init__(self, model, *, lookahead_days: Optional[int] = None):
        super().__init__(model)
        self.lookahead_days = lookahead_days if lookahead_days is not None else settings.PERMIT_EXPIRY_LOOKAHEAD_DAYS

    def default_order(self) -> list:
        return [desc(Permit.issued_date), desc(Permit.created_at)]

    def _status_clause(self, status: PermitStatus, now: datetime):
        """
        SQL condition equivalent to effective_permit_status(now, expiry_date) == status

        Expiry dates count from midnight, so a permit is expired once its
        expiry date is on or before today and expiring soon while its expiry
        date is on or before the horizon day.
        """
        now = as_utc(now)
        today = now.date()
        horizon = (now + timedelta(days=self.lookahead_days)).date()
        not_overridden = and_(Permit.suspended.is_(False), Permit.revoked.is_(False))

        if status == PermitStatus.REVOKED:
            return Permit.revoked.is_(True)
        if status == PermitStatus.SUSPENDED:
            return and_(Permit.suspended.is_(True), Permit.revoked.is_(False))
        if status == PermitStatus.EXPIRED:
            return and_(not_overridden, Permit.expiry_date <= today)
        if status == PermitStatus.EXPIRING_SOON:
            return and_(not_overridden, Permit.expiry_date > today, Permit.expiry_date <= horizon)
        return and_(not_overridden, Permit.expiry_date > horizon)

    def apply_filters(self, query: Query, filters: Optional[PermitFilters], now: Optional[datetime] = None) -> Query:
        if filters is None:
            return query
        now = now or datetime.now(timezone.utc)

        if filters.status:
            query = query.filter(or_(*[self._status_clause(status, now) for status in filters.status]))
        if filters.expiring_soon:
            query = query.filter(self._status_clause(PermitStatus.EXPIRING_SOON, now))
        if filters.application_id:
            query = query.filter(Permit.application_id == filters.application_id)
        if filters.applicant_id:
            query = query.join(Application, Permit.application_id == Application.id).filter(
                Application.applicant_id == filters.applicant_id
            )
        return query

    def get_by_number(self, db: Session, *, permit_number: str) -> Optional[Permit]:
        return self.get_by_field(db, "permit_number", permit_number)

    def get_by_application(self, db: Session, *, application_id: uuid.UUID) -> Optional[Permit]:
        return self.get_by_field(db, "application_id", application_id)

    def generate_permit_number(self, db: Session, issued_date: date) -> str:
        """Generate unique permit number: PRM-{YYYY}-{SEQUENCE}"""
        prefix = f"{PERMIT_NUMBER_PREFIX}-{issued_date.year}"

        with self.store_call(db, "number generation"):
            last_permit = db.query(Permit).filter(
                Permit.permit_number.like(f"{prefix}-%")
            ).order_by(desc(Permit.permit_number)).first()

        if last_permit:
            try:
                next_sequence = int(last_permit.permit_number.split('-')[-1]) + 1
            except (ValueError, IndexError):
                next_sequence = 1
        else:
            next_sequence = 1

        return f"{prefix}-{next_sequence:05d}"

    def issue_from_application(
        self,
        db: Session,
        *,
        application: Application,
        obj_in: PermitIssueRequest,
        issued_by: Optional[uuid.UUID] = None,
        user_context: Optional[UserContext] = None,
        today: Optional[date] = None
    ) -> Permit:
        """
        Issue a permit for an approved application

        Raises:
            RecordValidationError: application not approved, already has a
            permit, or the validity window is empty
        """
        if application.status != ApplicationStatus.APPROVED:
            raise RecordValidationError(
                f"Permits can only be issued for approved applications (status: {getattr(application.status, 'value', application.status)})",
                resource=self.resource
            )
        if self.get_by_application(db, application_id=application.id) is not None:
            raise RecordValidationError(
                f"Application {application.application_number} already has a permit",
                resource=self.resource
            )

        issued_date = obj_in.issued_date or today or datetime.now(timezone.utc).date()
        expiry_date = obj_in.expiry_date or add_years(issued_date, settings.PERMIT_VALIDITY_YEARS)
        if expiry_date <= issued_date:
            raise RecordValidationError("Expiry date must be after the issue date", resource=self.resource)

        permit = Permit(
            application_id=application.id,
            permit_number=self.generate_permit_number(db, issued_date),
            water_source=application.water_source,
            purpose=application.water_purpose,
            water_allowance=obj_in.water_allowance if obj_in.water_allowance is not None else application.water_usage_volume,
            allowance_unit=obj_in.allowance_unit or application.water_usage_unit,
            issuing_authority=settings.ISSUING_AUTHORITY,
            issued_date=issued_date,
            expiry_date=expiry_date,
            conditions=list(obj_in.conditions),
            monitoring_frequency=obj_in.monitoring_frequency,
            reporting_requirements=obj_in.reporting_requirements,
            renewable=obj_in.renewable,
            transferable=obj_in.transferable,
            created_by=issued_by,
            updated_by=issued_by,
        )

        with self.store_call(db, "issue"):
            db.add(permit)
            db.flush()
            AuditService(db).log_creation(
                "PERMIT",
                str(permit.id),
                {"permit_number": permit.permit_number, "application_id": str(application.id),
                 "issued_date": issued_date.isoformat(), "expiry_date": expiry_date.isoformat()},
                user_context or UserContext(user_id=str(issued_by) if issued_by else None),
            )
            db.commit()
            db.refresh(permit)

        logger.info(f"Issued permit {permit.permit_number} for application {application.application_number}")
        return permit

    def get_expiring(self, db: Session, *, now: Optional[datetime] = None, limit: int = 20) -> List[Permit]:
        """Permits inside the lookahead window, soonest expiry first"""
        now = now or datetime.now(timezone.utc)
        with self.store_call(db, "list"):
            return db.query(Permit).filter(
                self._status_clause(PermitStatus.EXPIRING_SOON, now)
            ).order_by(Permit.expiry_date.asc()).limit(limit).all()


crud_permit = CRUDPermit(Permit)
