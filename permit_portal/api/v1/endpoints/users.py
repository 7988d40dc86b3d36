"""
User Management Endpoints for the Water Permit Portal
Staff account administration and assignee lookups
"""

from fastapi import APIRouter, Depends, HTTPException, status, Query, Request
from sqlalchemy.orm import Session
from typing import List, Optional
import uuid

from permit_portal.api.v1.endpoints.auth import require_roles
from permit_portal.core.database import get_db
from permit_portal.crud.crud_user import user as crud_user
from permit_portal.models.enums import UserRole, UserStatus
from permit_portal.models.user import User
from permit_portal.schemas.user import (
    UserCreate, UserFilters, UserListResponse, UserResponse, UserSummary, UserUpdate
)
from permit_portal.services.audit_service import AuditService, create_user_context

router = APIRouter()


@router.get("/", response_model=UserListResponse, summary="List Users")
def list_users(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    role: Optional[UserRole] = Query(None, description="Filter by role"),
    status: Optional[UserStatus] = Query(None, description="Filter by status"),
    current_user: User = Depends(require_roles(UserRole.ADMIN)),
    db: Session = Depends(get_db)
):
    filters = UserFilters(role=role, status=status)
    users = crud_user.get_multi(db, filters=filters, skip=skip, limit=limit)
    return UserListResponse(
        users=[UserResponse.model_validate(u) for u in users],
        total=crud_user.count(db, filters=filters),
        skip=skip,
        limit=limit,
    )


@router.get("/staff/{role}", response_model=List[UserSummary], summary="Assignable Staff")
def list_staff(
    role: UserRole,
    current_user: User = Depends(require_roles(UserRole.REVIEWER, UserRole.APPROVER)),
    db: Session = Depends(get_db)
):
    """Active staff of one role, for assignment dropdowns"""
    if role == UserRole.APPLICANT:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Applicants are not staff")
    staff = crud_user.get_all(db, filters=UserFilters(role=role, status=UserStatus.ACTIVE))
    return [UserSummary.model_validate(u) for u in staff]


@router.get("/{user_id}", response_model=UserResponse, summary="Get User")
def get_user(
    user_id: uuid.UUID,
    current_user: User = Depends(require_roles(UserRole.ADMIN)),
    db: Session = Depends(get_db)
):
    return UserResponse.model_validate(crud_user.get_or_404(db, user_id))


@router.post("/", response_model=UserResponse, status_code=status.HTTP_201_CREATED, summary="Create Staff User")
def create_user(
    user_in: UserCreate,
    request: Request,
    current_user: User = Depends(require_roles(UserRole.ADMIN)),
    db: Session = Depends(get_db)
):
    """Create an active staff account; applicants sign up themselves"""
    new_user = crud_user.create_staff(db, obj_in=user_in, created_by=current_user.id)
    AuditService(db).log_creation(
        "USER",
        str(new_user.id),
        {"email": new_user.email, "role": new_user.role.value},
        create_user_context(current_user, request),
    )
    with crud_user.store_call(db, "audit"):
        db.commit()
    return UserResponse.model_validate(new_user)


@router.put("/{user_id}", response_model=UserResponse, summary="Update User")
def update_user(
    user_id: uuid.UUID,
    user_in: UserUpdate,
    current_user: User = Depends(require_roles(UserRole.ADMIN)),
    db: Session = Depends(get_db)
):
    updated = crud_user.update_by_id(db, id=user_id, obj_in=user_in, updated_by=current_user.id)
    return UserResponse.model_validate(updated)


@router.delete("/{user_id}", summary="Delete User")
def delete_user(
    user_id: uuid.UUID,
    request: Request,
    current_user: User = Depends(require_roles(UserRole.ADMIN)),
    db: Session = Depends(get_db)
):
    if user_id == current_user.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot delete your own account")

    target = crud_user.get_or_404(db, user_id)
    AuditService(db).log_deletion(
        "USER", str(target.id), {"email": target.email}, create_user_context(current_user, request)
    )
    if not crud_user.remove(db, id=user_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return {"message": "User deleted successfully"}
