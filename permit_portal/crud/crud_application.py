"""
CRUD operations for Water Permit Applications
Handles application storage, list filters and lifecycle transitions with
status history and audit tracking
"""

import logging
from typing import List, Optional, Union, Dict, Any
from sqlalchemy.orm import Query, Session
from sqlalchemy import desc, or_
from datetime import datetime, timezone
import uuid

from permit_portal.core.config import get_settings
from permit_portal.core.exceptions import InvalidTransitionError, RecordValidationError
from permit_portal.crud.base import CRUDBase
from permit_portal.models.application import Application, ApplicationStatusHistory
from permit_portal.models.enums import ApplicationStatus, SlaStatus
from permit_portal.schemas.application import ApplicationBase, ApplicationCreate, ApplicationUpdate, ApplicationFilters
from permit_portal.services.audit_service import AuditService, UserContext
from permit_portal.services.sla_calculator import as_utc, compute_due_date, compute_sla_status
from permit_portal.services.status_taxonomy import TRANSITION_ACTIONS, TERMINAL_STATUSES, can_transition

logger = logging.getLogger(__name__)

settings = get_settings()

APPLICATION_NUMBER_PREFIX = "RWB"


class CRUDApplication(CRUDBase[Application, ApplicationCreate, ApplicationUpdate]):
    """CRUD operations for Applications"""

    def generate_application_number(self, db: Session, now: Optional[datetime] = None) -> str:
        """Generate unique application number: RWB-{YY}-{SEQUENCE}"""
        now = now or datetime.now(timezone.utc)
        prefix = f"{APPLICATION_NUMBER_PREFIX}-{now:%y}"

        with self.store_call(db, "number generation"):
            last_app = db.query(Application).filter(
                Application.application_number.like(f"{prefix}-%")
            ).order_by(desc(Application.application_number)).first()

        if last_app:
            try:
                next_sequence = int(last_app.application_number.split('-')[-1]) + 1
            except (ValueError, IndexError):
                next_sequence = 1
        else:
            next_sequence = 1

        return f"{prefix}-{next_sequence:05d}"

    def create_application(
        self,
        db: Session,
        *,
        obj_in: Union[ApplicationCreate, Dict[str, Any]],
        applicant_id: uuid.UUID,
        created_by: Optional[uuid.UUID] = None,
        now: Optional[datetime] = None
    ) -> Application:
        """Create a draft application with its initial status history"""
        now = now or datetime.now(timezone.utc)
        obj_data = dict(obj_in) if isinstance(obj_in, dict) else obj_in.model_dump()
        obj_data.pop("applicant_id", None)
        obj_data.pop("status", None)

        with self.store_call(db, "create"):
            try:
                db_obj = Application(
                    application_number=self.generate_application_number(db, now),
                    applicant_id=applicant_id,
                    status=ApplicationStatus.DRAFT,
                    sla_status=SlaStatus.ON_TIME,
                    **obj_data
                )
            except TypeError as e:
                raise RecordValidationError(str(e), resource=self.resource) from e
            db_obj.created_by = created_by or applicant_id
            db_obj.updated_by = created_by or applicant_id
            db.add(db_obj)
            db.flush()  # Get the ID

            db.add(ApplicationStatusHistory(
                application_id=db_obj.id,
                previous_status=None,
                new_status=ApplicationStatus.DRAFT,
                action="create",
                changed_by=created_by or applicant_id,
                changed_at=now,
            ))
            db.commit()
            db.refresh(db_obj)

        logger.info(f"Created application {db_obj.application_number}")
        return db_obj

    def apply_filters(self, query: Query, filters: Optional[ApplicationFilters]) -> Query:
        if filters is None:
            return query

        if filters.status:
            query = query.filter(Application.status.in_(filters.status))
        if filters.application_type:
            query = query.filter(Application.application_type.in_(filters.application_type))
        if filters.province:
            query = query.filter(Application.province.in_(filters.province))
        if filters.district:
            query = query.filter(Application.district.in_(filters.district))
        if filters.water_source:
            query = query.filter(Application.water_source.in_(filters.water_source))
        if filters.sla_status:
            query = query.filter(Application.sla_status.in_(filters.sla_status))
        if filters.applicant_id:
            query = query.filter(Application.applicant_id == filters.applicant_id)
        if filters.assigned_reviewer_id:
            query = query.filter(Application.assigned_reviewer_id == filters.assigned_reviewer_id)
        if filters.assigned_inspector_id:
            query = query.filter(Application.assigned_inspector_id == filters.assigned_inspector_id)
        if filters.created_from:
            query = query.filter(Application.created_at >= as_utc(filters.created_from))
        if filters.created_to:
            query = query.filter(Application.created_at <= as_utc(filters.created_to))
        if filters.search:
            term = f"%{filters.search.strip()}%"
            query = query.filter(or_(
                Application.application_number.ilike(term),
                Application.project_title.ilike(term),
            ))
        return query

    def get_by_number(self, db: Session, *, application_number: str) -> Optional[Application]:
        return self.get_by_field(db, "application_number", application_number)

    def transition_status(
        self,
        db: Session,
        *,
        application: Application,
        new_status: ApplicationStatus,
        changed_by: Optional[uuid.UUID] = None,
        comment: Optional[str] = None,
        rejection_reason: Optional[str] = None,
        revision_notes: Optional[str] = None,
        user_context: Optional[UserContext] = None,
        now: Optional[datetime] = None
    ) -> Application:
        """
        Move an application along its lifecycle

        Validates the change, stamps the workflow timestamps, starts the review
        clock on submission, writes a status history row and an audit entry.

        Raises:
            InvalidTransitionError: the lifecycle does not allow the change
        """
        now = now or datetime.now(timezone.utc)
        old_status = application.status
        if not can_transition(old_status, new_status):
            raise InvalidTransitionError(old_status, new_status)

        if new_status == ApplicationStatus.SUBMITTED:
            application.submitted_at = now
            application.due_date = compute_due_date(now, settings.REVIEW_SLA_DAYS)
            application.sla_status = SlaStatus.ON_TIME
        elif old_status == ApplicationStatus.UNDER_REVIEW:
            application.reviewed_at = now
        if old_status == ApplicationStatus.PENDING_INSPECTION:
            application.inspected_at = now

        if new_status in (ApplicationStatus.APPROVED, ApplicationStatus.REJECTED):
            application.approved_at = now
        if new_status in TERMINAL_STATUSES or new_status == ApplicationStatus.REVISION_REQUIRED:
            application.sla_status = compute_sla_status(now, application.due_date, now)

        if new_status == ApplicationStatus.REJECTED:
            application.rejection_reason = rejection_reason or comment
        elif new_status == ApplicationStatus.REVISION_REQUIRED:
            application.revision_notes = revision_notes or comment

        application.status = new_status
        application.updated_by = changed_by
        application.updated_at = now

        with self.store_call(db, "status change"):
            db.add(ApplicationStatusHistory(
                application_id=application.id,
                previous_status=old_status,
                new_status=new_status,
                action=TRANSITION_ACTIONS.get(new_status),
                comment=comment,
                changed_by=changed_by,
                changed_at=now,
            ))
            AuditService(db).log_status_change(
                "APPLICATION",
                str(application.id),
                getattr(old_status, "value", old_status),
                new_status.value,
                user_context or UserContext(user_id=str(changed_by) if changed_by else None),
                comment=comment,
            )
            db.commit()
            db.refresh(application)

        logger.info(f"Application {application.application_number}: {getattr(old_status, 'value', old_status)} -> {new_status.value}")
        return application

    def resubmit_application(
        self,
        db: Session,
        *,
        application: Application,
        changed_by: Optional[uuid.UUID] = None,
        user_context: Optional[UserContext] = None,
        now: Optional[datetime] = None
    ) -> Application:
        """
        Start a new draft from an application sent back for revision

        The draft copies the applicant's details and links back to the
        original, which is closed as cancelled.

        Raises:
            InvalidTransitionError: the application is not awaiting revision
        """
        now = now or datetime.now(timezone.utc)
        if application.status != ApplicationStatus.REVISION_REQUIRED:
            raise InvalidTransitionError(application.status, ApplicationStatus.CANCELLED)

        details = {field: getattr(application, field) for field in ApplicationBase.model_fields}
        details["previous_application_id"] = application.id
        draft = self.create_application(
            db, obj_in=details, applicant_id=application.applicant_id, created_by=changed_by, now=now
        )
        self.transition_status(
            db,
            application=application,
            new_status=ApplicationStatus.CANCELLED,
            changed_by=changed_by,
            comment=f"Superseded by {draft.application_number}",
            user_context=user_context,
            now=now,
        )
        return draft

    def get_status_history(self, db: Session, *, application_id: uuid.UUID) -> List[ApplicationStatusHistory]:
        with self.store_call(db, "history"):
            return db.query(ApplicationStatusHistory).filter(
                ApplicationStatusHistory.application_id == application_id
            ).order_by(ApplicationStatusHistory.changed_at.asc()).all()

    def refresh_sla_status(self, db: Session, *, now: Optional[datetime] = None) -> int:
        """
        Re-evaluate sla_status of applications still waiting on staff

        Returns:
            Number of applications that changed
        """
        now = now or datetime.now(timezone.utc)
        changed = 0
        with self.store_call(db, "SLA refresh"):
            open_apps = db.query(Application).filter(
                Application.due_date.isnot(None),
                Application.status.notin_(list(TERMINAL_STATUSES | {ApplicationStatus.REVISION_REQUIRED}))
            ).all()
            for application in open_apps:
                sla_status = compute_sla_status(now, application.due_date)
                if application.sla_status != sla_status:
                    application.sla_status = sla_status
                    changed += 1
            db.commit()

        if changed:
            logger.info(f"SLA refresh updated {changed} applications")
        return changed


crud_application = CRUDApplication(Application)
