"""
Role Dashboard Endpoints for the Water Permit Portal
One payload per role: summary counts plus the work waiting on that role
"""

from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from datetime import datetime
import logging

from permit_portal.api.v1.endpoints.auth import get_current_user
from permit_portal.core.database import get_db
from permit_portal.core.exceptions import PermissionDeniedError
from permit_portal.crud.crud_application import crud_application
from permit_portal.crud.crud_inspection import crud_inspection
from permit_portal.crud.crud_permit import crud_permit
from permit_portal.models.application import Application
from permit_portal.models.enums import ApplicationStatus, UserRole
from permit_portal.models.user import User
from permit_portal.schemas.analytics import DashboardItem, DashboardResponse, ExpiringPermitItem
from permit_portal.schemas.application import ApplicationFilters
from permit_portal.schemas.inspection import InspectionFilters
from permit_portal.schemas.permit import PermitFilters
from permit_portal.services.aggregation import summarize_applications, summarize_inspections, summarize_permits
from permit_portal.services.signup_flow import Clock, get_clock
from permit_portal.services.sla_calculator import as_datetime, as_utc, days_until_expiry, effective_permit_status
from permit_portal.services.status_taxonomy import get_status_label

logger = logging.getLogger(__name__)
router = APIRouter()

# Statuses each role has to act on
WORK_QUEUE_STATUSES = {
    UserRole.APPLICANT: [ApplicationStatus.DRAFT, ApplicationStatus.REVISION_REQUIRED],
    UserRole.REVIEWER: [ApplicationStatus.SUBMITTED, ApplicationStatus.UNDER_REVIEW],
    UserRole.INSPECTOR: [ApplicationStatus.PENDING_INSPECTION],
    UserRole.APPROVER: [ApplicationStatus.UNDER_REVIEW, ApplicationStatus.PENDING_INSPECTION],
    UserRole.ADMIN: [ApplicationStatus.SUBMITTED, ApplicationStatus.UNDER_REVIEW, ApplicationStatus.PENDING_INSPECTION],
}

WORK_QUEUE_SIZE = 20


def _queue_item(application: Application, now: datetime) -> DashboardItem:
    return DashboardItem(
        id=str(application.id),
        application_number=application.application_number,
        status=application.status.value,
        status_label=get_status_label("application", application.status),
        application_type=application.application_type.value,
        project_title=application.project_title,
        sla_status=application.sla_status.value if application.sla_status else None,
        due_date=application.due_date.isoformat() if application.due_date else None,
        days_until_due=days_until_expiry(now, application.due_date) if application.due_date else None,
    )


def _work_queue(applications: List[Application], now: datetime) -> List[DashboardItem]:
    """Most urgent first: earliest due date, undated work last"""
    ordered = sorted(
        applications,
        key=lambda a: (a.due_date is None, as_utc(as_datetime(a.due_date or a.created_at)))
    )
    return [_queue_item(a, now) for a in ordered[:WORK_QUEUE_SIZE]]


@router.get("/{role}", response_model=DashboardResponse)
def get_role_dashboard(
    role: UserRole,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock)
) -> DashboardResponse:
    """
    Dashboard for one role

    Users open their own role's dashboard; admins may open any.
    """
    if current_user.role != UserRole.ADMIN and current_user.role != role:
        raise PermissionDeniedError(f"The {role.value} dashboard is not available to your role")

    now = clock()
    response = DashboardResponse(
        role=role.value,
        generated_at=now.isoformat(),
        applications=summarize_applications([], now),
    )

    if role == UserRole.APPLICANT:
        own_filter = ApplicationFilters(applicant_id=current_user.id)
        applications = crud_application.get_all(db, filters=own_filter)
        response.applications = summarize_applications(applications, now)
        response.permits = summarize_permits(
            crud_permit.get_all(db, filters=PermitFilters(applicant_id=current_user.id)),
            now,
            crud_permit.lookahead_days,
        )
        queue_statuses = WORK_QUEUE_STATUSES[role]
        response.work_queue = _work_queue([a for a in applications if a.status in queue_statuses], now)
        return response

    applications = crud_application.get_all(db)
    response.applications = summarize_applications(applications, now)
    queued = crud_application.get_all(db, filters=ApplicationFilters(status=WORK_QUEUE_STATUSES[role]))

    if role == UserRole.REVIEWER:
        queued = [a for a in queued if a.assigned_reviewer_id in (None, current_user.id)]
    elif role == UserRole.INSPECTOR:
        queued = [a for a in queued if a.assigned_inspector_id in (None, current_user.id)]
        inspector_filter = None if current_user.role == UserRole.ADMIN else InspectionFilters(inspector_id=current_user.id)
        response.inspections = summarize_inspections(crud_inspection.get_all(db, filters=inspector_filter), now)
    elif role == UserRole.APPROVER:
        queued = [a for a in queued if a.assigned_approver_id in (None, current_user.id)]

    if role in (UserRole.APPROVER, UserRole.ADMIN):
        response.permits = summarize_permits(crud_permit.get_all(db), now, crud_permit.lookahead_days)
        response.expiring_permits = [
            ExpiringPermitItem(
                id=str(permit.id),
                permit_number=permit.permit_number,
                expiry_date=permit.expiry_date.isoformat(),
                days_until_expiry=days_until_expiry(now, permit.expiry_date),
                status=effective_permit_status(
                    now, permit.expiry_date, crud_permit.lookahead_days,
                    suspended=permit.suspended, revoked=permit.revoked
                ).value,
            )
            for permit in crud_permit.get_expiring(db, now=now)
        ]
    if role == UserRole.ADMIN:
        response.inspections = summarize_inspections(crud_inspection.get_all(db), now)

    response.work_queue = _work_queue(queued, now)
    return response
