from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from fxdojo.modules.courses.models import Lesson
from fxdojo.modules.progress.models import Progress


class ProgressRepository:
    """Repository for per-lesson Progress rows."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: uuid.UUID, lesson_id: uuid.UUID) -> Optional[Progress]:
        return (
            self.db.query(Progress)
            .filter(Progress.user_id == user_id, Progress.lesson_id == lesson_id)
            .first()
        )

    def get_or_create(self, user_id: uuid.UUID, lesson_id: uuid.UUID) -> Progress:
        progress = self.get(user_id, lesson_id)
        if progress is None:
            progress = Progress(user_id=user_id, lesson_id=lesson_id, watched_seconds=0, completed=False)
            self.db.add(progress)
            self.db.flush()
        return progress

    def list_for_user(
        self, user_id: uuid.UUID, course_id: Optional[uuid.UUID] = None
    ) -> list[Progress]:
        query = self.db.query(Progress).filter(Progress.user_id == user_id)
        if course_id is not None:
            query = query.join(Lesson, Lesson.id == Progress.lesson_id).filter(
                Lesson.course_id == course_id
            )
        return query.order_by(Progress.last_watched_at.desc()).all()

    def list_watched_since(self, user_id: uuid.UUID, since: datetime) -> list[Progress]:
        return (
            self.db.query(Progress)
            .filter(Progress.user_id == user_id, Progress.last_watched_at >= since)
            .all()
        )

    def is_completed(self, user_id: uuid.UUID, lesson_id: uuid.UUID) -> bool:
        progress = self.get(user_id, lesson_id)
        return bool(progress and progress.completed)

    def count_completed(self, course_id: Optional[uuid.UUID] = None) -> int:
        query = self.db.query(Progress).filter(Progress.completed.is_(True))
        if course_id is not None:
            query = query.join(Lesson, Lesson.id == Progress.lesson_id).filter(
                Lesson.course_id == course_id
            )
        return query.count()

    def watched_totals(self, course_id: uuid.UUID) -> tuple[int, float]:
        """(sum, average) of watched seconds over a course's progress rows."""
        total, average = (
            self.db.query(
                func.coalesce(func.sum(Progress.watched_seconds), 0),
                func.coalesce(func.avg(Progress.watched_seconds), 0),
            )
            .join(Lesson, Lesson.id == Progress.lesson_id)
            .filter(Lesson.course_id == course_id)
            .one()
        )
        return int(total), float(average)
