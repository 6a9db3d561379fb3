# fxdojo/modules/auth/routes.py
from fastapi import APIRouter, Body, Depends, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from fxdojo.db.deps import get_current_active_user, get_current_admin, get_db
from fxdojo.modules.auth.models import User
from fxdojo.modules.auth.service import AuthService
from fxdojo.schemas.auth import (
    ApprovalDecision,
    LogoutRequest,
    PendingUserAdminRead,
    PendingUserRead,
    RefreshRequest,
    RegisterRequest,
    Token,
    TokenCheck,
)
from fxdojo.schemas.user import ProfileUpdate, UserRead

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/register",
    response_model=PendingUserRead,
    status_code=status.HTTP_201_CREATED,
)
def register(
    payload: RegisterRequest = Body(...),
    db: Session = Depends(get_db),
):
    """Request an account; an administrator approves it before login works."""
    auth_service = AuthService(db)
    return auth_service.request_registration(
        email=payload.email,
        password=payload.password,
        full_name=payload.full_name,
        invite_code=payload.invite_code,
        discord_name=payload.discord_name,
    )


@router.post("/login", response_model=Token)
def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
):
    """Login user and return JWT tokens."""
    auth_service = AuthService(db)
    tokens = auth_service.login(email=form_data.username, password=form_data.password)
    return Token(**tokens)


@router.post("/refresh", response_model=Token)
def refresh(
    payload: RefreshRequest,
    db: Session = Depends(get_db),
):
    auth_service = AuthService(db)
    return Token(**auth_service.refresh(payload.refresh_token))


@router.post("/logout")
def logout(
    payload: LogoutRequest = Body(default=LogoutRequest()),
    db: Session = Depends(get_db),
):
    AuthService(db).logout(payload.refresh_token)
    return {"success": True}


@router.post("/logout-all")
def logout_all(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    deleted = AuthService(db).logout_all(current_user)
    return {"success": True, "sessions_deleted": deleted}


@router.get("/me", response_model=UserRead)
def me(current_user: User = Depends(get_current_active_user)):
    return current_user


@router.get("/verify-token", response_model=TokenCheck)
def verify_token(current_user: User = Depends(get_current_active_user)):
    return TokenCheck(
        valid=True,
        user_id=current_user.id,
        email=current_user.email,
        roles=current_user.role_names,
    )


@router.put("/update-profile", response_model=UserRead)
def update_profile(
    payload: ProfileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    return AuthService(db).update_profile(
        current_user,
        full_name=payload.full_name,
        discord_name=payload.discord_name,
        avatar_color=payload.avatar_color,
    )


@router.post("/approve/{token}", response_model=PendingUserRead)
def decide_registration(
    token: str,
    payload: ApprovalDecision,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    """Approve or reject a pending registration (admin only)."""
    return AuthService(db).decide_registration(
        token=token,
        approved=payload.approved,
        admin=admin,
        rejection_reason=payload.rejection_reason,
    )


@router.get("/pending-users", response_model=list[PendingUserAdminRead])
def pending_users(
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    return AuthService(db).list_pending()
