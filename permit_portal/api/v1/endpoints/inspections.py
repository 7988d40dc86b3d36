"""
Field Inspection API Endpoints for the Water Permit Portal
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query, Request
from sqlalchemy.orm import Session
import uuid
import logging

from permit_portal.api.v1.endpoints.auth import require_roles
from permit_portal.core.database import get_db
from permit_portal.core.exceptions import PermissionDeniedError
from permit_portal.crud.crud_application import crud_application
from permit_portal.crud.crud_inspection import crud_inspection
from permit_portal.models.enums import ComplianceStatus, InspectionStatus, UserRole
from permit_portal.models.inspection import Inspection
from permit_portal.models.user import User
from permit_portal.schemas.inspection import (
    InspectionCreate, InspectionFilters, InspectionListResponse, InspectionResponse, InspectionUpdate
)
from permit_portal.services.audit_service import AuditService, create_user_context
from permit_portal.services.status_taxonomy import get_status_label

logger = logging.getLogger(__name__)
router = APIRouter()

STAFF_ROLES = (UserRole.REVIEWER, UserRole.INSPECTOR, UserRole.APPROVER)


def inspection_to_response(inspection: Inspection) -> InspectionResponse:
    response = InspectionResponse.model_validate(inspection)
    if inspection.compliance_status is not None:
        response.compliance_label = get_status_label("inspection", inspection.compliance_status)
    return response


@router.get("/", response_model=InspectionListResponse)
def get_inspections(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*STAFF_ROLES)),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    status: Optional[List[InspectionStatus]] = Query(None),
    compliance_status: Optional[List[ComplianceStatus]] = Query(None),
    application_id: Optional[uuid.UUID] = None,
    permit_id: Optional[uuid.UUID] = None,
    inspector_id: Optional[uuid.UUID] = None
) -> InspectionListResponse:
    filters = InspectionFilters(
        status=status,
        compliance_status=compliance_status,
        application_id=application_id,
        permit_id=permit_id,
        inspector_id=inspector_id,
    )
    inspections = crud_inspection.get_multi(db, filters=filters, skip=skip, limit=limit)
    return InspectionListResponse(
        inspections=[inspection_to_response(i) for i in inspections],
        total=crud_inspection.count(db, filters=filters),
        skip=skip,
        limit=limit,
    )


@router.post("/", response_model=InspectionResponse, status_code=status.HTTP_201_CREATED)
def create_inspection(
    inspection_in: InspectionCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.INSPECTOR, UserRole.REVIEWER))
) -> InspectionResponse:
    """
    Schedule or record an inspection

    Inspectors record their own visits; reviewers schedule on behalf of an
    inspector.
    """
    application = crud_application.get_or_404(db, inspection_in.application_id)

    inspector_id = inspection_in.inspector_id or current_user.id
    if current_user.role == UserRole.INSPECTOR and inspector_id != current_user.id:
        raise PermissionDeniedError("Inspectors can only record their own inspections", resource="Inspection")

    inspection = crud_inspection.create_inspection(
        db, obj_in=inspection_in, inspector_id=inspector_id, created_by=current_user.id
    )
    AuditService(db).log_creation(
        "INSPECTION",
        str(inspection.id),
        {"inspection_number": inspection.inspection_number, "application_id": str(application.id)},
        create_user_context(current_user, request),
    )
    with crud_inspection.store_call(db, "audit"):
        db.commit()

    return inspection_to_response(inspection)


@router.get("/{inspection_id}", response_model=InspectionResponse)
def get_inspection(
    inspection_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*STAFF_ROLES))
) -> InspectionResponse:
    return inspection_to_response(crud_inspection.get_or_404(db, inspection_id))


@router.put("/{inspection_id}", response_model=InspectionResponse)
def update_inspection(
    inspection_id: uuid.UUID,
    inspection_in: InspectionUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.INSPECTOR))
) -> InspectionResponse:
    """Record findings - only the assigned inspector (or an admin)"""
    inspection = crud_inspection.get_or_404(db, inspection_id)
    if current_user.role != UserRole.ADMIN and inspection.inspector_id != current_user.id:
        raise PermissionDeniedError("Only the assigned inspector can update this inspection", resource="Inspection")

    inspection = crud_inspection.update_inspection(
        db, db_obj=inspection, obj_in=inspection_in, updated_by=current_user.id
    )
    return inspection_to_response(inspection)


@router.delete("/{inspection_id}")
def delete_inspection(
    inspection_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.ADMIN))
):
    inspection = crud_inspection.get_or_404(db, inspection_id)
    AuditService(db).log_deletion(
        "INSPECTION",
        str(inspection.id),
        {"inspection_number": inspection.inspection_number},
        create_user_context(current_user, request),
    )
    if not crud_inspection.remove(db, id=inspection_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Inspection not found")
    return {"message": "Inspection deleted successfully"}
