"""
Application Management API Endpoints for the Water Permit Portal
REST API for water permit applications with the full review workflow
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query, Request
from sqlalchemy.orm import Session
from datetime import datetime
import uuid
import logging

from permit_portal.api.v1.endpoints.auth import get_current_user, require_roles
from permit_portal.core.database import get_db
from permit_portal.core.exceptions import PermissionDeniedError
from permit_portal.crud.crud_application import crud_application
from permit_portal.models.application import Application
from permit_portal.models.enums import (
    ApplicationStatus, ApplicationType, ProvinceType, SlaStatus, UserRole, WaterSourceType
)
from permit_portal.models.user import User
from permit_portal.schemas.analytics import ApplicationSummary
from permit_portal.schemas.application import (
    ApplicationCreate, ApplicationFilters, ApplicationListResponse, ApplicationResponse,
    ApplicationUpdate, StatusHistoryResponse, StatusTransitionRequest, STAFF_ONLY_UPDATE_FIELDS
)
from permit_portal.services.aggregation import summarize_applications
from permit_portal.services.audit_service import AuditService, create_user_context
from permit_portal.services.signup_flow import Clock, get_clock
from permit_portal.services.status_taxonomy import TRANSITION_ROLES, allowed_next_statuses, get_status_label

logger = logging.getLogger(__name__)
router = APIRouter()

# Applicants may only edit while the application is a draft
APPLICANT_EDITABLE_STATUSES = (ApplicationStatus.DRAFT,)


def application_to_response(application: Application) -> ApplicationResponse:
    response = ApplicationResponse.model_validate(application)
    response.status_label = get_status_label("application", application.status)
    response.allowed_transitions = allowed_next_statuses(application.status)
    return response


def ensure_application_access(application: Application, current_user: User) -> None:
    """Applicants only see their own applications; staff see all"""
    if current_user.role == UserRole.APPLICANT and application.applicant_id != current_user.id:
        raise PermissionDeniedError("You can only access your own applications", resource="Application")


@router.get("/", response_model=ApplicationListResponse)
def get_applications(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    status: Optional[List[ApplicationStatus]] = Query(None),
    application_type: Optional[List[ApplicationType]] = Query(None),
    province: Optional[List[ProvinceType]] = Query(None),
    district: Optional[List[str]] = Query(None),
    water_source: Optional[List[WaterSourceType]] = Query(None),
    sla_status: Optional[List[SlaStatus]] = Query(None),
    applicant_id: Optional[uuid.UUID] = None,
    assigned_reviewer_id: Optional[uuid.UUID] = None,
    assigned_inspector_id: Optional[uuid.UUID] = None,
    created_from: Optional[datetime] = None,
    created_to: Optional[datetime] = None,
    search: Optional[str] = None
) -> ApplicationListResponse:
    """
    Get applications with optional filtering, newest first

    Applicants always get their own applications only.
    """
    filters = ApplicationFilters(
        status=status,
        application_type=application_type,
        province=province,
        district=district,
        water_source=water_source,
        sla_status=sla_status,
        applicant_id=applicant_id,
        assigned_reviewer_id=assigned_reviewer_id,
        assigned_inspector_id=assigned_inspector_id,
        created_from=created_from,
        created_to=created_to,
        search=search,
    )
    if current_user.role == UserRole.APPLICANT:
        filters.applicant_id = current_user.id

    applications = crud_application.get_multi(db, filters=filters, skip=skip, limit=limit)
    total = crud_application.count(db, filters=filters)

    return ApplicationListResponse(
        applications=[application_to_response(a) for a in applications],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.get("/summary", response_model=ApplicationSummary)
def get_application_summary(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock)
) -> ApplicationSummary:
    """Dashboard counts over the applications visible to the caller"""
    filters = None
    if current_user.role == UserRole.APPLICANT:
        filters = ApplicationFilters(applicant_id=current_user.id)
    return summarize_applications(crud_application.get_all(db, filters=filters), clock())


@router.post("/sla-refresh")
def refresh_sla_status(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.ADMIN)),
    clock: Clock = Depends(get_clock)
):
    """Re-evaluate the review deadline of every open application"""
    updated = crud_application.refresh_sla_status(db, now=clock())
    return {"updated": updated}


@router.post("/", response_model=ApplicationResponse, status_code=status.HTTP_201_CREATED)
def create_application(
    application_in: ApplicationCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.APPLICANT)),
    clock: Clock = Depends(get_clock)
) -> ApplicationResponse:
    """
    Create a draft application

    Applicants file for themselves; admins may file on behalf of an applicant.
    """
    applicant_id = current_user.id
    if application_in.applicant_id and application_in.applicant_id != current_user.id:
        if current_user.role != UserRole.ADMIN:
            raise PermissionDeniedError("Applicants can only file applications for themselves", resource="Application")
        applicant_id = application_in.applicant_id

    application = crud_application.create_application(
        db,
        obj_in=application_in,
        applicant_id=applicant_id,
        created_by=current_user.id,
        now=clock(),
    )
    return application_to_response(application)


@router.get("/{application_id}", response_model=ApplicationResponse)
def get_application(
    application_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
) -> ApplicationResponse:
    application = crud_application.get_or_404(db, application_id)
    ensure_application_access(application, current_user)
    return application_to_response(application)


@router.put("/{application_id}", response_model=ApplicationResponse)
def update_application(
    application_id: uuid.UUID,
    application_in: ApplicationUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
) -> ApplicationResponse:
    """
    Update application details

    Applicants may edit their own drafts; an application sent back for
    revision is resubmitted as a new draft. Assignment and internal notes
    are staff-only.
    """
    application = crud_application.get_or_404(db, application_id)
    ensure_application_access(application, current_user)

    if current_user.role == UserRole.APPLICANT:
        if application.status not in APPLICANT_EDITABLE_STATUSES:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Application cannot be edited while {get_status_label('application', application.status)}"
            )
        staff_fields = STAFF_ONLY_UPDATE_FIELDS & application_in.model_fields_set
        if staff_fields:
            raise PermissionDeniedError(
                f"Only staff can change: {', '.join(sorted(staff_fields))}", resource="Application"
            )

    application = crud_application.update(db, db_obj=application, obj_in=application_in, updated_by=current_user.id)
    logger.info(f"Application {application.application_number} updated by {current_user.id}")
    return application_to_response(application)


@router.delete("/{application_id}")
def delete_application(
    application_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.APPLICANT))
):
    """Delete a draft application (admins may delete any application)"""
    application = crud_application.get_or_404(db, application_id)
    ensure_application_access(application, current_user)
    if current_user.role != UserRole.ADMIN and application.status != ApplicationStatus.DRAFT:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Only draft applications can be deleted"
        )

    AuditService(db).log_deletion(
        "APPLICATION",
        str(application.id),
        {"application_number": application.application_number, "status": application.status.value},
        create_user_context(current_user, request),
    )
    if not crud_application.remove(db, id=application_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Application not found")

    return {"message": "Application deleted successfully"}


@router.post("/{application_id}/transition", response_model=ApplicationResponse)
def transition_application(
    application_id: uuid.UUID,
    transition: StatusTransitionRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock)
) -> ApplicationResponse:
    """
    Move an application along its lifecycle

    Each target status has the roles allowed to reach it; applicants act on
    their own applications only.
    """
    application = crud_application.get_or_404(db, application_id)
    ensure_application_access(application, current_user)

    allowed_roles = TRANSITION_ROLES.get(transition.new_status, frozenset())
    if not current_user.has_role(*allowed_roles):
        raise PermissionDeniedError(
            f"Your role cannot move applications to {get_status_label('application', transition.new_status)}",
            resource="Application"
        )

    application = crud_application.transition_status(
        db,
        application=application,
        new_status=transition.new_status,
        changed_by=current_user.id,
        comment=transition.comment,
        rejection_reason=transition.rejection_reason,
        revision_notes=transition.revision_notes,
        user_context=create_user_context(current_user, request),
        now=clock(),
    )
    return application_to_response(application)


@router.post("/{application_id}/resubmit", response_model=ApplicationResponse, status_code=status.HTTP_201_CREATED)
def resubmit_application(
    application_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.APPLICANT)),
    clock: Clock = Depends(get_clock)
) -> ApplicationResponse:
    """
    Resubmit an application sent back for revision

    Returns a new draft carrying the original details and a link to the
    original application, which is closed as cancelled.
    """
    application = crud_application.get_or_404(db, application_id)
    ensure_application_access(application, current_user)

    draft = crud_application.resubmit_application(
        db,
        application=application,
        changed_by=current_user.id,
        user_context=create_user_context(current_user, request),
        now=clock(),
    )
    return application_to_response(draft)


@router.get("/{application_id}/history", response_model=List[StatusHistoryResponse])
def get_application_history(
    application_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
) -> List[StatusHistoryResponse]:
    """Status changes, oldest first"""
    application = crud_application.get_or_404(db, application_id)
    ensure_application_access(application, current_user)
    history = crud_application.get_status_history(db, application_id=application.id)
    return [StatusHistoryResponse.model_validate(h) for h in history]
