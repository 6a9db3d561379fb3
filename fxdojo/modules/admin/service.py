from __future__ import annotations

import math
import uuid
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from fxdojo.core.config import settings
from fxdojo.core.logging import get_logger
from fxdojo.modules.admin.repository import AdminRepository
from fxdojo.modules.auth.models import ROLE_ADMIN, ROLE_INSTRUCTOR, ROLE_STUDENT, User, UserStatus
from fxdojo.modules.auth.repository import (
    PendingUserRepository,
    RoleRepository,
    SessionRepository,
    UserRepository,
    UserRoleRepository,
)
from fxdojo.modules.chat.service import ChatService
from fxdojo.modules.courses.repository import CourseRepository, LessonRepository
from fxdojo.modules.progress.repository import ProgressRepository
from fxdojo.modules.rooms.service import DEFAULT_MAX_MEMBERS
from fxdojo.schemas.user import AdminUserUpdate

logger = get_logger(__name__)

ASSIGNABLE_ROLES = (ROLE_ADMIN, ROLE_INSTRUCTOR, ROLE_STUDENT)


class AdminService:
    def __init__(self, db: Session):
        self.db = db
        self.admin_repo = AdminRepository(db)
        self.user_repo = UserRepository(db)
        self.role_repo = RoleRepository(db)
        self.user_role_repo = UserRoleRepository(db)
        self.session_repo = SessionRepository(db)
        self.pending_repo = PendingUserRepository(db)
        self.course_repo = CourseRepository(db)
        self.lesson_repo = LessonRepository(db)
        self.progress_repo = ProgressRepository(db)

    def dashboard(self) -> dict:
        now = datetime.utcnow()
        return {
            "total_users": self.admin_repo.count_users(),
            "total_courses": self.course_repo.count(),
            "total_lessons": self.lesson_repo.count(),
            "active_users_30d": self.admin_repo.count_users_active_since(now - timedelta(days=30)),
            "completed_lessons": self.progress_repo.count_completed(),
            "pending_registrations": self.pending_repo.count_pending(),
            "new_registrations_7d": self.admin_repo.count_users_created_since(now - timedelta(days=7)),
            "recent_messages": ChatService(self.db).list_recent(limit=10),
        }

    # ---------- users ----------

    def list_users(
        self,
        search: Optional[str] = None,
        role: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> dict:
        users, total = self.admin_repo.search_users(search, role, (page - 1) * limit, limit)
        return {
            "items": users,
            "total": total,
            "page": page,
            "limit": limit,
            "pages": math.ceil(total / limit) if total else 0,
        }

    def get_user(self, user_id: uuid.UUID) -> User:
        user = self.user_repo.get_by_id(user_id)
        if not user:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User not found",
            )
        return user

    def update_user(self, user_id: uuid.UUID, payload: AdminUserUpdate) -> User:
        user = self.get_user(user_id)
        fields = payload.model_dump(exclude_unset=True)

        if fields.get("email"):
            email = fields["email"].lower()
            existing = self.user_repo.get_by_email(email)
            if existing and existing.id != user.id:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Email already registered",
                )
            fields["email"] = email

        for key, value in fields.items():
            if value is not None:
                setattr(user, key, value)
        self.db.commit()
        self.db.refresh(user)
        logger.info("user updated by admin", user_id=str(user.id), fields=sorted(fields))
        return user

    def _ensure_not_last_admin(self, user: User) -> None:
        if user.is_admin and self.user_role_repo.count_users_with_role(ROLE_ADMIN) <= 1:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot remove the last administrator",
            )

    def set_role(self, user_id: uuid.UUID, role_name: str) -> User:
        if role_name not in ASSIGNABLE_ROLES:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid role: {role_name}",
            )
        user = self.get_user(user_id)
        if role_name != ROLE_ADMIN:
            self._ensure_not_last_admin(user)

        role = self.role_repo.get_or_create(role_name)
        self.user_role_repo.clear_roles(user.id)
        self.user_role_repo.assign_role(user.id, role.id)
        self.db.commit()
        self.db.expire(user)
        self.db.refresh(user)
        logger.info("user role changed", user_id=str(user.id), role=role_name)
        return user

    def set_status(self, user_id: uuid.UUID, new_status: UserStatus, admin: User) -> User:
        user = self.get_user(user_id)
        if user.id == admin.id and new_status == UserStatus.blocked:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="You cannot block yourself",
            )
        user.status = new_status
        if new_status == UserStatus.blocked:
            # blocked users lose their refresh sessions
            self.session_repo.delete_for_user(user.id)
        self.db.commit()
        self.db.refresh(user)
        logger.info("user status changed", user_id=str(user.id), status=new_status.value)
        return user

    def delete_user(self, user_id: uuid.UUID, admin: User) -> None:
        user = self.get_user(user_id)
        if user.id == admin.id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="You cannot delete your own account",
            )
        self._ensure_not_last_admin(user)
        self.admin_repo.purge_user(user)
        self.db.commit()
        logger.info("user deleted", user_id=str(user_id), deleted_by=str(admin.id))

    # ---------- content ----------

    def list_courses(self):
        return self.course_repo.list_all()

    def list_lessons(self, course_id: Optional[uuid.UUID] = None):
        return self.lesson_repo.list_all(course_id)

    def platform_settings(self) -> dict:
        return {
            "site_name": "FX Dojo",
            "registration_mode": "invite_only",
            "max_sessions_per_user": settings.MAX_SESSIONS_PER_USER,
            "access_token_expire_minutes": settings.ACCESS_TOKEN_EXPIRE_MINUTES,
            "refresh_token_expire_days": settings.REFRESH_TOKEN_EXPIRE_DAYS,
            "default_room_max_members": DEFAULT_MAX_MEMBERS,
            "currency": "JPY",
            "features": {
                "chat": True,
                "direct_messages": True,
                "private_rooms": True,
                "subscriptions": True,
                "email": settings.EMAIL_ENABLED,
            },
        }
