from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from fxdojo.modules.access.models import UserLessonAccess


class AdhocAccessRepository:
    """Repository for UserLessonAccess grants."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: uuid.UUID, lesson_id: uuid.UUID) -> Optional[UserLessonAccess]:
        return (
            self.db.query(UserLessonAccess)
            .filter(
                UserLessonAccess.user_id == user_id,
                UserLessonAccess.lesson_id == lesson_id,
            )
            .first()
        )

    def upsert(
        self,
        user_id: uuid.UUID,
        lesson_id: uuid.UUID,
        granted_by: Optional[uuid.UUID],
        reason: Optional[str],
        start_date: datetime,
        end_date: Optional[datetime],
    ) -> UserLessonAccess:
        access = self.get(user_id, lesson_id)
        if access is None:
            access = UserLessonAccess(user_id=user_id, lesson_id=lesson_id)
            self.db.add(access)
        access.granted_by = granted_by
        access.reason = reason
        access.start_date = start_date
        access.end_date = end_date
        access.is_active = True
        self.db.flush()
        return access

    def list_active_for_user(self, user_id: uuid.UUID, now: datetime) -> list[UserLessonAccess]:
        return (
            self.db.query(UserLessonAccess)
            .filter(
                UserLessonAccess.user_id == user_id,
                UserLessonAccess.is_active.is_(True),
                or_(UserLessonAccess.end_date.is_(None), UserLessonAccess.end_date >= now),
            )
            .order_by(UserLessonAccess.created_at.desc())
            .all()
        )

    def list_active_for_lesson(self, lesson_id: uuid.UUID) -> list[UserLessonAccess]:
        return (
            self.db.query(UserLessonAccess)
            .filter(
                UserLessonAccess.lesson_id == lesson_id,
                UserLessonAccess.is_active.is_(True),
            )
            .order_by(UserLessonAccess.created_at.desc())
            .all()
        )
