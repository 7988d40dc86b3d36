"""
Permit API Endpoints for the Water Permit Portal
Issued permits, their derived status and the printable certificate
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.orm import Session
from datetime import datetime
import uuid
import logging

from permit_portal.api.v1.endpoints.applications import ensure_application_access
from permit_portal.api.v1.endpoints.auth import get_current_user, require_roles
from permit_portal.core.database import get_db
from permit_portal.crud.crud_application import crud_application
from permit_portal.crud.crud_inspection import crud_inspection
from permit_portal.crud.crud_permit import crud_permit
from permit_portal.models.enums import PermitStatus, UserRole
from permit_portal.models.permit import Permit
from permit_portal.models.user import User
from permit_portal.schemas.analytics import PermitSummary
from permit_portal.schemas.inspection import InspectionFilters
from permit_portal.schemas.permit import (
    PermitFilters, PermitIssueRequest, PermitListResponse, PermitResponse, PermitUpdate
)
from permit_portal.services.aggregation import summarize_permits
from permit_portal.services.audit_service import create_user_context
from permit_portal.services.certificate_generator import build_certificate_data, certificate_template
from permit_portal.services.signup_flow import Clock, get_clock
from permit_portal.services.sla_calculator import days_until_expiry, effective_permit_status
from permit_portal.services.status_taxonomy import get_status_label

logger = logging.getLogger(__name__)
router = APIRouter()


def permit_status(permit: Permit, now: datetime) -> PermitStatus:
    return effective_permit_status(
        now,
        permit.expiry_date,
        crud_permit.lookahead_days,
        suspended=bool(permit.suspended),
        revoked=bool(permit.revoked),
    )


def permit_to_response(permit: Permit, now: datetime) -> PermitResponse:
    """Build the API view - status is derived from the expiry date on every read"""
    current_status = permit_status(permit, now)
    return PermitResponse(
        id=permit.id,
        application_id=permit.application_id,
        permit_number=permit.permit_number,
        water_source=permit.water_source,
        purpose=permit.purpose,
        water_allowance=permit.water_allowance,
        allowance_unit=permit.allowance_unit,
        issuing_authority=permit.issuing_authority,
        issued_date=permit.issued_date,
        expiry_date=permit.expiry_date,
        conditions=permit.conditions or [],
        monitoring_frequency=permit.monitoring_frequency,
        reporting_requirements=permit.reporting_requirements,
        renewable=permit.renewable,
        transferable=permit.transferable,
        suspended=permit.suspended,
        revoked=permit.revoked,
        status=current_status,
        status_label=get_status_label("permit", current_status),
        days_until_expiry=days_until_expiry(now, permit.expiry_date),
        created_at=permit.created_at,
    )


def _get_visible_permit(db: Session, permit_id: uuid.UUID, current_user: User) -> Permit:
    permit = crud_permit.get_or_404(db, permit_id)
    ensure_application_access(permit.application, current_user)
    return permit


@router.get("/", response_model=PermitListResponse)
def get_permits(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    status: Optional[List[PermitStatus]] = Query(None, description="Derived status in set"),
    expiring_soon: Optional[bool] = None,
    application_id: Optional[uuid.UUID] = None
) -> PermitListResponse:
    """
    Get permits, latest issue date first

    Status filters are evaluated against the current time.
    """
    now = clock()
    filters = PermitFilters(status=status, expiring_soon=expiring_soon, application_id=application_id)
    if current_user.role == UserRole.APPLICANT:
        filters.applicant_id = current_user.id

    with crud_permit.store_call(db, "list"):
        query = crud_permit.apply_filters(db.query(Permit), filters, now=now)
        total = query.count()
        permits = query.order_by(*crud_permit.default_order()).offset(skip).limit(limit).all()

    return PermitListResponse(
        permits=[permit_to_response(p, now) for p in permits],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.get("/summary", response_model=PermitSummary)
def get_permit_summary(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock)
) -> PermitSummary:
    filters = None
    if current_user.role == UserRole.APPLICANT:
        filters = PermitFilters(applicant_id=current_user.id)
    permits = crud_permit.get_all(db, filters=filters)
    return summarize_permits(permits, clock(), crud_permit.lookahead_days)


@router.post("/", response_model=PermitResponse, status_code=status.HTTP_201_CREATED)
def issue_permit(
    permit_in: PermitIssueRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.APPROVER)),
    clock: Clock = Depends(get_clock)
) -> PermitResponse:
    """Issue a permit for an approved application"""
    now = clock()
    application = crud_application.get_or_404(db, permit_in.application_id)
    permit = crud_permit.issue_from_application(
        db,
        application=application,
        obj_in=permit_in,
        issued_by=current_user.id,
        user_context=create_user_context(current_user, request),
        today=now.date(),
    )
    return permit_to_response(permit, now)


@router.get("/{permit_id}", response_model=PermitResponse)
def get_permit(
    permit_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock)
) -> PermitResponse:
    permit = _get_visible_permit(db, permit_id, current_user)
    return permit_to_response(permit, clock())


@router.put("/{permit_id}", response_model=PermitResponse)
def update_permit(
    permit_id: uuid.UUID,
    permit_in: PermitUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.APPROVER)),
    clock: Clock = Depends(get_clock)
) -> PermitResponse:
    """Change conditions, extend validity, suspend or revoke"""
    permit = crud_permit.get_or_404(db, permit_id)
    permit = crud_permit.update(db, db_obj=permit, obj_in=permit_in, updated_by=current_user.id)
    logger.info(f"Permit {permit.permit_number} updated by {current_user.id}")
    return permit_to_response(permit, clock())


@router.get("/{permit_id}/certificate")
def get_permit_certificate(
    permit_id: uuid.UUID,
    include_applicant: bool = Query(True, description="Include the applicant section"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock)
):
    """
    Render the permit certificate as PDF

    The document is generated on every request and not stored.
    """
    now = clock()
    permit = _get_visible_permit(db, permit_id, current_user)
    application = permit.application
    inspections = crud_inspection.get_all(db, filters=InspectionFilters(application_id=application.id))

    data = build_certificate_data(
        permit,
        application,
        permit_status(permit, now).value,
        inspections=inspections,
        applicant=application.applicant if include_applicant else None,
    )
    pdf_data = certificate_template.generate(data, printed_on=now.date())

    return Response(
        content=pdf_data,
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="{permit.permit_number}.pdf"'}
    )
