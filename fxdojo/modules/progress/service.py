from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from fxdojo.core.logging import get_logger
from fxdojo.modules.auth.models import User
from fxdojo.modules.courses.models import Lesson
from fxdojo.modules.courses.repository import EnrollmentRepository, LessonRepository
from fxdojo.modules.progress.models import Progress
from fxdojo.modules.progress.repository import ProgressRepository

logger = get_logger(__name__)


class ProgressService:
    """Service layer for lesson watch progress."""

    def __init__(self, db: Session):
        self.db = db
        self.progress_repo = ProgressRepository(db)
        self.lesson_repo = LessonRepository(db)
        self.enrollment_repo = EnrollmentRepository(db)

    def _get_trackable_lesson(self, lesson_id: uuid.UUID, user: User) -> Lesson:
        lesson = self.lesson_repo.get_by_id(lesson_id)
        if not lesson:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Lesson not found",
            )
        if not user.is_staff and not self.enrollment_repo.get_by_user_and_course(
            user.id, lesson.course_id
        ):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Not enrolled in this course",
            )
        return lesson

    def update_progress(
        self,
        lesson_id: uuid.UUID,
        user: User,
        watched_seconds: int,
        completed: Optional[bool] = None,
    ) -> Progress:
        self._get_trackable_lesson(lesson_id, user)

        now = datetime.utcnow()
        progress = self.progress_repo.get_or_create(user.id, lesson_id)
        progress.watched_seconds = max(0, watched_seconds)
        progress.last_watched_at = now
        if completed is not None:
            progress.completed = completed
        # completed_at records the first completion only
        if progress.completed and progress.completed_at is None:
            progress.completed_at = now

        self.db.commit()
        self.db.refresh(progress)
        logger.info(
            "updated lesson progress",
            user_id=str(user.id),
            lesson_id=str(lesson_id),
            watched_seconds=progress.watched_seconds,
            completed=progress.completed,
        )
        return progress

    def complete_lesson(self, lesson_id: uuid.UUID, user: User) -> Progress:
        lesson = self._get_trackable_lesson(lesson_id, user)
        return self.update_progress(lesson_id, user, lesson.duration or 0, completed=True)

    def get_progress(self, lesson_id: uuid.UUID, user: User) -> dict:
        progress = self.progress_repo.get(user.id, lesson_id)
        if progress is None:
            return {"lesson_id": lesson_id, "watched_seconds": 0, "completed": False}
        return progress

    def list_my_progress(self, user: User, course_id: Optional[uuid.UUID] = None) -> list[dict]:
        rows = []
        for progress in self.progress_repo.list_for_user(user.id, course_id):
            course = progress.lesson.course
            rows.append(
                {
                    "id": progress.id,
                    "lesson_id": progress.lesson_id,
                    "watched_seconds": progress.watched_seconds,
                    "completed": progress.completed,
                    "completed_at": progress.completed_at,
                    "last_watched_at": progress.last_watched_at,
                    "lesson_title": progress.lesson.title,
                    "course_id": course.id,
                    "course_title": course.title,
                    "course_slug": course.slug,
                }
            )
        return rows
