"""
Authentication Endpoints for the Water Permit Portal
Handles signup with code verification, login, logout and the current user
"""

from fastapi import APIRouter, Depends, HTTPException, status, Query, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from datetime import datetime, timezone, timedelta
from typing import Optional
import logging
import uuid

from permit_portal.core.config import get_settings
from permit_portal.core.database import get_db
from permit_portal.core.exceptions import PermissionDeniedError, RecordNotFoundError, VerificationError
from permit_portal.core.security import create_access_token, verify_token
from permit_portal.crud.crud_user import user as crud_user
from permit_portal.models.enums import UserRole, UserStatus
from permit_portal.models.user import User
from permit_portal.schemas.user import (
    LoginRequest, LoginResponse, RegisterRequest, ResendCodeRequest,
    SignupStateResponse, UserResponse, VerifyCodeRequest
)
from permit_portal.services.audit_service import AuditService, create_user_context
from permit_portal.services.notification_service import CodeDispatcher, get_code_dispatcher
from permit_portal.services.signup_flow import (
    Clock, SignupFlow, SignupState, get_clock, load_flow, store_flow
)

logger = logging.getLogger(__name__)
router = APIRouter()
security = HTTPBearer(auto_error=False)

settings = get_settings()

DASHBOARD_PATHS = {
    UserRole.APPLICANT: "/dashboard/applicant",
    UserRole.REVIEWER: "/dashboard/reviewer",
    UserRole.INSPECTOR: "/dashboard/inspector",
    UserRole.APPROVER: "/dashboard/approver",
    UserRole.ADMIN: "/dashboard/admin",
}


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """
    Get current authenticated user from JWT token

    The token id must match the session stored on the user, so a token stops
    working as soon as the user logs out or logs in elsewhere.
    """
    if credentials is None:
        raise _unauthorized("Not authenticated")

    payload = verify_token(credentials.credentials)
    if payload is None or payload.get("type") != "access":
        raise _unauthorized("Invalid authentication credentials")

    try:
        user_id = uuid.UUID(payload.get("sub"))
    except (TypeError, ValueError):
        raise _unauthorized("Invalid authentication credentials")

    user = crud_user.get(db, user_id)
    if user is None or not user.is_active:
        raise _unauthorized("User not found or inactive")

    token_id = payload.get("jti")
    if not token_id or user.current_token_id != token_id:
        raise _unauthorized("Session has ended, please log in again")

    return user


def require_roles(*roles: UserRole):
    """
    Dependency factory restricting an endpoint to the given roles

    Admins pass every role check.
    """
    def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if not current_user.has_role(*roles):
            allowed = ", ".join(role.value for role in roles)
            raise PermissionDeniedError(f"This action requires one of the roles: {allowed}")
        return current_user

    return role_checker


# Signup

def _state_response(account: User, flow: SignupFlow, message: Optional[str] = None) -> SignupStateResponse:
    awaiting = flow.state == SignupState.AWAITING_CODE
    return SignupStateResponse(
        email=account.email,
        state=flow.state.value,
        countdown=flow.countdown,
        attempts_remaining=flow.attempts_remaining if awaiting else None,
        code_expires_at=flow.challenge.expires_at if awaiting and flow.challenge else None,
        confirmation=flow.confirmation_view,
        message=message,
    )


def _get_signup_account(db: Session, email: str) -> User:
    account = crud_user.get_by_email(db, email=email)
    if account is None:
        raise RecordNotFoundError("Signup", email)
    return account


def _save_flow(db: Session, account: User, flow: SignupFlow) -> None:
    store_flow(account, flow)
    with crud_user.store_call(db, "signup"):
        db.commit()
        db.refresh(account)


@router.post("/register", response_model=SignupStateResponse, status_code=status.HTTP_201_CREATED, summary="Start Signup")
def register(
    details: RegisterRequest,
    db: Session = Depends(get_db),
    dispatcher: CodeDispatcher = Depends(get_code_dispatcher),
    clock: Clock = Depends(get_clock)
):
    """
    Create a pending applicant account and send the verification code

    Re-registering an unverified email restarts the signup once the resend
    cooldown of the previous code has run out.
    """
    existing = crud_user.get_by_email(db, email=details.email)
    if existing is not None and existing.status == UserStatus.PENDING_VERIFICATION:
        previous = load_flow(existing, dispatcher=dispatcher, clock=clock)
        if previous.countdown > 0:
            raise VerificationError(
                f"Please wait {previous.countdown} seconds before requesting a new code",
                reason="cooldown_active"
            )

    account = crud_user.create_pending(db, details=details)
    flow = SignupFlow(dispatcher=dispatcher, clock=clock, recipient=account.email)
    flow.submit_details(details)
    _save_flow(db, account, flow)

    logger.info(f"Signup started for account {account.id}")
    return _state_response(account, flow, message="A verification code has been sent")


@router.post("/verify", response_model=SignupStateResponse, summary="Verify Signup Code")
def verify_code(
    payload: VerifyCodeRequest,
    request: Request,
    db: Session = Depends(get_db),
    dispatcher: CodeDispatcher = Depends(get_code_dispatcher),
    clock: Clock = Depends(get_clock)
):
    """
    Check the code and activate the account

    Wrong codes are counted even though the request fails.
    """
    account = _get_signup_account(db, payload.email)
    flow = load_flow(account, dispatcher=dispatcher, clock=clock)
    try:
        flow.submit_code(payload.code)
    except VerificationError:
        _save_flow(db, account, flow)
        raise

    account.status = UserStatus.ACTIVE
    account.verified_at = flow.clock()
    AuditService(db).log_authentication(
        account.email, True,
        ip_address=request.client.host if request.client else "unknown",
        user_agent=request.headers.get("user-agent"),
        user_id=str(account.id),
        action_type="SIGNUP_VERIFIED",
    )
    _save_flow(db, account, flow)

    return _state_response(account, flow, message=flow.confirmation.message)


@router.post("/resend-code", response_model=SignupStateResponse, summary="Resend Signup Code")
def resend_code(
    payload: ResendCodeRequest,
    db: Session = Depends(get_db),
    dispatcher: CodeDispatcher = Depends(get_code_dispatcher),
    clock: Clock = Depends(get_clock)
):
    """Send a new code; does nothing while the cooldown is running"""
    account = _get_signup_account(db, payload.email)
    flow = load_flow(account, dispatcher=dispatcher, clock=clock)

    if flow.resend():
        _save_flow(db, account, flow)
        message = "A new verification code has been sent"
    else:
        message = f"Please wait {flow.countdown} seconds before requesting a new code"

    return _state_response(account, flow, message=message)


@router.get("/signup-state", response_model=SignupStateResponse, summary="Signup State")
def get_signup_state(
    email: str = Query(..., description="Email used at signup"),
    db: Session = Depends(get_db),
    dispatcher: CodeDispatcher = Depends(get_code_dispatcher),
    clock: Clock = Depends(get_clock)
):
    """Current step, resend countdown and attempts left"""
    account = _get_signup_account(db, email)
    flow = load_flow(account, dispatcher=dispatcher, clock=clock)
    return _state_response(account, flow)


# Session

@router.post("/login", response_model=LoginResponse, summary="User Login")
def login(
    login_data: LoginRequest,
    request: Request,
    db: Session = Depends(get_db)
):
    """
    Authenticate user and return an access token

    The token id is stored on the user; logging in again replaces the
    previous session.
    """
    audit = AuditService(db)
    ip_address = request.client.host if request.client else "unknown"
    user_agent = request.headers.get("user-agent")

    user = crud_user.authenticate(db, email=login_data.email, password=login_data.password)
    if not user:
        audit.log_authentication(
            login_data.email, False, ip_address=ip_address, user_agent=user_agent,
            error_message="Invalid email or password"
        )
        with crud_user.store_call(db, "login audit"):
            db.commit()
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password"
        )

    expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    access_token, token_id = create_access_token(
        user.id,
        expires_delta=expires_delta,
        additional_claims={"role": user.role.value}
    )
    audit.log_authentication(user.email, True, ip_address=ip_address, user_agent=user_agent, user_id=str(user.id))
    user = crud_user.start_session(
        db, user=user, token_id=token_id, expires_at=datetime.now(timezone.utc) + expires_delta
    )

    return LoginResponse(
        access_token=access_token,
        token_type="bearer",
        expires_in=int(expires_delta.total_seconds()),
        user=UserResponse.model_validate(user),
        redirect_url=DASHBOARD_PATHS.get(user.role, "/dashboard"),
    )


@router.post("/logout", summary="User Logout")
def logout(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Logout current user and invalidate the session token
    """
    context = create_user_context(current_user, request)
    AuditService(db).log_authentication(
        current_user.email, True,
        ip_address=context.ip_address,
        user_agent=context.user_agent,
        user_id=context.user_id,
        action_type="LOGOUT",
    )
    crud_user.end_session(db, user=current_user)

    return {"message": "Successfully logged out"}


@router.get("/me", response_model=UserResponse, summary="Get Current User")
def get_current_user_info(
    current_user: User = Depends(get_current_user)
):
    """
    Get current authenticated user information
    """
    return UserResponse.model_validate(current_user)
