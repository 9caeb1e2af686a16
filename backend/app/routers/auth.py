"""Account endpoints: register, login, logout, profile, password change."""
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from app.audit import AuditService, RequestContext
from app.auth import create_access_token, get_current_user, hash_password, verify_password
from app.config import get_settings
from app.database import get_db
from app.dependencies import get_audit_service, get_request_context
from app.limiter import limiter
from app.models import AuditAction, User
from app.schemas import (
    ChangePasswordRequest,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    TokenResponse,
    UserProfile,
)

router = APIRouter(prefix="/api", tags=["auth"])
settings = get_settings()
logger = logging.getLogger("expense_tracker.auth")


@router.post("/register", response_model=MessageResponse, status_code=201)
@limiter.limit(settings.auth_rate_limit)
def register(request: Request, data: RegisterRequest, db: Session = Depends(get_db)):
    """Create a new user account."""
    email = data.email.lower()
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already exists. Please use a different email or login.",
        )

    user = User(name=data.name, email=email, password_hash=hash_password(data.password))
    db.add(user)
    db.commit()
    logger.info("Registered user %s", user.id)
    return {"message": "Registration successful"}


@router.post("/login", response_model=TokenResponse)
@limiter.limit(settings.auth_rate_limit)
def login(
    request: Request,
    data: LoginRequest,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
):
    """Login and get an access token."""
    user = db.query(User).filter(User.email == data.email.lower()).first()
    if not user or not verify_password(data.password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    token = create_access_token(user)
    AuditService(db, user.id, context).record(
        AuditAction.LOGIN, description=f"User logged in: {user.email}"
    )
    return TokenResponse(token=token)


@router.post("/logout", status_code=204)
def logout(
    user: User = Depends(get_current_user),
    audit: AuditService = Depends(get_audit_service),
):
    """Record the logout; the client discards its token."""
    audit.record(AuditAction.LOGOUT, description=f"User logged out: {user.email}")


@router.get("/user-profile", response_model=UserProfile)
def get_profile(current_user: User = Depends(get_current_user)):
    """Get the current authenticated user."""
    return current_user


@router.put("/change-password", response_model=MessageResponse)
def change_password(
    data: ChangePasswordRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Replace the caller's password. Not written to the audit trail."""
    if not verify_password(data.current_password, current_user.password_hash):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Current password is incorrect")

    current_user.password_hash = hash_password(data.new_password)
    db.commit()
    return {"message": "Password changed successfully"}
