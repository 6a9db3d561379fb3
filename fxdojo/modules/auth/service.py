from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException, status
from jose import JWTError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from fxdojo.core.config import settings
from fxdojo.core.logging import get_logger
from fxdojo.core.security import (
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    generate_token,
    get_password_hash,
    verify_password,
)
from fxdojo.modules.auth.models import (
    ROLE_STUDENT,
    PendingUser,
    PendingUserStatus,
    User,
    UserStatus,
)
from fxdojo.modules.auth.repository import (
    PendingUserRepository,
    RoleRepository,
    SessionRepository,
    UserRepository,
    UserRoleRepository,
)
from fxdojo.modules.invites.service import InviteService
from fxdojo.tasks.email_tasks import send_approval_request_email, send_approval_result_email

logger = get_logger(__name__)

DEFAULT_REJECTION_REASON = "rejected by administrator"


class AuthService:
    """Service layer for registration, approval and session handling."""

    def __init__(self, db: Session):
        self.db = db
        self.user_repo = UserRepository(db)
        self.role_repo = RoleRepository(db)
        self.user_role_repo = UserRoleRepository(db)
        self.session_repo = SessionRepository(db)
        self.pending_repo = PendingUserRepository(db)
        self.invite_service = InviteService(db)

    # ---------- registration ----------

    def request_registration(
        self,
        email: str,
        password: str,
        full_name: str,
        invite_code: str,
        discord_name: Optional[str] = None,
    ) -> PendingUser:
        """Record a registration request and ask the administrator to approve it."""
        email = email.lower()
        invite = self.invite_service.require_valid(invite_code)

        if self.user_repo.get_by_email(email):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Email already registered",
            )
        if self.pending_repo.get_pending_by_email(email):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="A registration request for this email is already pending",
            )

        try:
            pending = self.pending_repo.create(
                email=email,
                full_name=full_name,
                discord_name=discord_name,
                password_hash=get_password_hash(password),
                approval_token=generate_token(32),
                invite_id=invite.id,
                status=PendingUserStatus.pending,
            )
            self.db.commit()
            self.db.refresh(pending)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("registration request failed", email=email, error=str(e))
            raise HTTPException(status_code=500, detail="Registration failed")

        try:
            send_approval_request_email.delay(
                pending.email, pending.full_name, pending.discord_name, pending.approval_token
            )
        except Exception as e:  # broker or SMTP trouble must not lose the request
            logger.warning(
                "approval request email not dispatched",
                pending_user_id=str(pending.id),
                error=str(e),
            )

        logger.info("registration requested", pending_user_id=str(pending.id), email=email)
        return pending

    def list_pending(self) -> list[PendingUser]:
        return self.pending_repo.list_pending()

    def decide_registration(
        self,
        token: str,
        approved: bool,
        admin: User,
        rejection_reason: Optional[str] = None,
    ) -> PendingUser:
        pending = self.pending_repo.get_by_token(token)
        if not pending:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Registration request not found",
            )
        if pending.status != PendingUserStatus.pending:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Registration request has already been processed",
            )

        now = datetime.utcnow()
        if approved:
            if self.user_repo.get_by_email(pending.email):
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Email already registered",
                )
            user = self.user_repo.create(
                email=pending.email,
                full_name=pending.full_name,
                discord_name=pending.discord_name,
                password_hash=pending.password_hash,
                email_verified=True,
            )
            student_role = self.role_repo.get_or_create(ROLE_STUDENT)
            self.user_role_repo.assign_role(user.id, student_role.id)

            # the invite was validated when the request was made
            if pending.invite_id is not None:
                invite = self.invite_service.invite_repo.get_by_id(pending.invite_id)
                if invite is not None:
                    self.invite_service.record_registration(invite, user.id)

            pending.status = PendingUserStatus.approved
            pending.approved_at = now
            pending.approved_by = admin.id
        else:
            pending.status = PendingUserStatus.rejected
            pending.rejected_at = now
            pending.rejection_reason = rejection_reason or DEFAULT_REJECTION_REASON

        self.db.commit()
        self.db.refresh(pending)

        try:
            send_approval_result_email.delay(
                pending.email, pending.full_name, approved, pending.rejection_reason
            )
        except Exception as e:
            logger.warning(
                "approval result email not dispatched",
                pending_user_id=str(pending.id),
                error=str(e),
            )

        logger.info(
            "registration decided",
            pending_user_id=str(pending.id),
            approved=approved,
            admin_id=str(admin.id),
        )
        return pending

    # ---------- sessions ----------

    def authenticate_user(self, email: str, password: str) -> Optional[User]:
        """Authenticate a user by email and password."""
        user = self.user_repo.get_by_email(email.lower())
        if not user:
            return None
        if not verify_password(password, user.password_hash):
            return None
        return user

    def _issue_tokens(self, user: User) -> tuple[str, str, datetime]:
        access_token = create_access_token(subject=str(user.id))
        refresh_token = create_refresh_token(subject=str(user.id))
        expires_at = datetime.utcnow() + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
        return access_token, refresh_token, expires_at

    def login(self, email: str, password: str) -> dict:
        """Login user and return an access/refresh token pair."""
        user = self.authenticate_user(email, password)
        if not user:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Incorrect email or password",
                headers={"WWW-Authenticate": "Bearer"},
            )
        if user.status != UserStatus.active:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Account is disabled",
            )

        access_token, refresh_token, expires_at = self._issue_tokens(user)
        self.session_repo.create(user.id, refresh_token, expires_at)
        self.session_repo.prune(user.id, keep=settings.MAX_SESSIONS_PER_USER)
        user.last_login_at = datetime.utcnow()
        self.db.commit()

        logger.info("user logged in", user_id=str(user.id), email=user.email)
        return {"access_token": access_token, "refresh_token": refresh_token}

    def refresh(self, refresh_token: str) -> dict:
        invalid = HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid refresh token",
        )
        try:
            payload = decode_refresh_token(refresh_token)
            user_id = uuid.UUID(payload.get("sub", ""))
        except (JWTError, ValueError):
            raise invalid

        session = self.session_repo.get_by_token(refresh_token)
        if session is None or session.user_id != user_id:
            raise invalid
        if session.expires_at < datetime.utcnow():
            self.session_repo.delete(session)
            self.db.commit()
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Refresh token expired",
            )

        user = self.user_repo.get_by_id(user_id)
        if user is None or user.status != UserStatus.active:
            raise invalid

        access_token, new_refresh_token, expires_at = self._issue_tokens(user)
        session.refresh_token = new_refresh_token
        session.expires_at = expires_at
        self.db.commit()
        return {"access_token": access_token, "refresh_token": new_refresh_token}

    def logout(self, refresh_token: Optional[str]) -> None:
        if not refresh_token:
            return
        session = self.session_repo.get_by_token(refresh_token)
        if session is not None:
            self.session_repo.delete(session)
            self.db.commit()

    def logout_all(self, user: User) -> int:
        deleted = self.session_repo.delete_for_user(user.id)
        self.db.commit()
        logger.info("user logged out everywhere", user_id=str(user.id), sessions=deleted)
        return deleted

    def update_profile(
        self,
        user: User,
        full_name: str,
        discord_name: Optional[str] = None,
        avatar_color: Optional[str] = None,
    ) -> User:
        if not full_name.strip():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Name is required",
            )
        user.full_name = full_name.strip()
        if discord_name is not None:
            user.discord_name = discord_name
        if avatar_color is not None:
            user.avatar_color = avatar_color
        self.db.commit()
        self.db.refresh(user)
        return user
