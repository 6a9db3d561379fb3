from __future__ import annotations

import uuid
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from fxdojo.core.logging import get_logger
from fxdojo.integrations.vimeo.client import VimeoClient, get_vimeo_client
from fxdojo.modules.access.service import LessonAccessService
from fxdojo.modules.auth.models import User
from fxdojo.modules.courses.models import Course, Enrollment, Lesson
from fxdojo.modules.courses.repository import (
    CourseRepository,
    EnrollmentRepository,
    LessonRepository,
)
from fxdojo.modules.progress.repository import ProgressRepository
from fxdojo.schemas.course import (
    CourseCreate,
    CourseRead,
    CourseUpdate,
    LessonCreate,
    LessonRead,
    LessonUpdate,
)
from fxdojo.schemas.progress import ProgressRead

logger = get_logger(__name__)


class CourseService:
    def __init__(self, db: Session, vimeo: Optional[VimeoClient] = None):
        self.db = db
        self.course_repo = CourseRepository(db)
        self.lesson_repo = LessonRepository(db)
        self.enrollment_repo = EnrollmentRepository(db)
        self.progress_repo = ProgressRepository(db)
        self.access = LessonAccessService(db)
        self._vimeo = vimeo

    @property
    def vimeo(self) -> VimeoClient:
        if self._vimeo is None:
            self._vimeo = get_vimeo_client()
        return self._vimeo

    # ---------- lookups ----------

    def get_course_or_404(self, course_id: uuid.UUID) -> Course:
        course = self.course_repo.get_by_id(course_id)
        if not course:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Course not found",
            )
        return course

    def get_lesson_or_404(self, lesson_id: uuid.UUID) -> Lesson:
        lesson = self.lesson_repo.get_by_id(lesson_id)
        if not lesson:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Lesson not found",
            )
        return lesson

    # ---------- annotated views ----------

    def annotate_lesson(self, lesson: Lesson, user: Optional[User]) -> dict:
        """Lesson as `user` sees it: access verdict, progress, video hidden when locked."""
        decision = self.access.check(user, lesson)
        data = LessonRead.model_validate(lesson).model_dump()
        if not decision.has_access:
            data["video_url"] = None

        progress = None
        if user is not None:
            row = self.progress_repo.get(user.id, lesson.id)
            if row is not None:
                progress = ProgressRead.model_validate(row)

        data.update(
            has_access=decision.has_access,
            access_reason=decision.reason,
            available_in=decision.available_in,
            requires_completion=decision.requires_completion,
            progress=progress,
        )
        return data

    def annotate_course(self, course: Course, user: Optional[User]) -> dict:
        data = CourseRead.model_validate(course).model_dump()
        enrollment = None
        if user is not None:
            enrollment = self.enrollment_repo.get_by_user_and_course(user.id, course.id)

        lessons = self.lesson_repo.list_by_course(course.id)
        data.update(
            is_enrolled=enrollment is not None,
            enrolled_at=enrollment.enrolled_at if enrollment else None,
            lesson_count=len(lessons),
            lessons=[self.annotate_lesson(lesson, user) for lesson in lessons],
        )
        return data

    def list_courses(self, user: Optional[User]) -> list[dict]:
        return [self.annotate_course(course, user) for course in self.course_repo.list_published()]

    def get_course_by_slug(self, slug: str, user: Optional[User]) -> dict:
        course = self.course_repo.get_by_slug(slug)
        if not course or (not course.is_published and not (user and user.is_staff)):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Course not found",
            )
        return self.annotate_course(course, user)

    def list_lessons(self, user: Optional[User], course_id: Optional[uuid.UUID] = None) -> list[dict]:
        return [self.annotate_lesson(lesson, user) for lesson in self.lesson_repo.list_all(course_id)]

    def get_lesson(self, lesson_id: uuid.UUID, user: Optional[User]) -> dict:
        return self.annotate_lesson(self.get_lesson_or_404(lesson_id), user)

    # ---------- course management ----------

    def create_course(self, payload: CourseCreate) -> Course:
        if self.course_repo.get_by_slug(payload.slug):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Course with this slug already exists",
            )
        course = self.course_repo.create(**payload.model_dump())
        self.db.commit()
        self.db.refresh(course)
        logger.info("course created", course_id=str(course.id), slug=course.slug)
        return course

    def update_course(self, course_id: uuid.UUID, payload: CourseUpdate) -> Course:
        course = self.get_course_or_404(course_id)
        fields = payload.model_dump(exclude_unset=True)

        new_slug = fields.get("slug")
        if new_slug and new_slug != course.slug and self.course_repo.get_by_slug(new_slug):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Course with this slug already exists",
            )

        self.course_repo.update(course, **fields)
        self.db.commit()
        self.db.refresh(course)
        logger.info("course updated", course_id=str(course.id), fields=sorted(fields))
        return course

    def publish_course(self, course_id: uuid.UUID, is_published: bool) -> Course:
        course = self.get_course_or_404(course_id)
        course.is_published = is_published
        self.db.commit()
        self.db.refresh(course)
        logger.info("course publish state changed", course_id=str(course.id), is_published=is_published)
        return course

    def delete_course(self, course_id: uuid.UUID) -> None:
        course = self.get_course_or_404(course_id)
        if self.enrollment_repo.count_by_course(course.id) > 0:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot delete a course with enrolled students",
            )
        self.course_repo.delete(course)
        self.db.commit()
        logger.info("course deleted", course_id=str(course_id))

    def enroll(self, course_id: uuid.UUID, user: User) -> Enrollment:
        course = self.get_course_or_404(course_id)
        if self.enrollment_repo.get_by_user_and_course(user.id, course.id):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Already enrolled in this course",
            )
        enrollment = self.enrollment_repo.create(user_id=user.id, course_id=course.id)
        self.db.commit()
        self.db.refresh(enrollment)
        logger.info("user enrolled", user_id=str(user.id), course_id=str(course.id))
        return enrollment

    def course_stats(self, course_id: uuid.UUID) -> dict:
        course = self.get_course_or_404(course_id)
        enrollment_count = self.enrollment_repo.count_by_course(course.id)
        lesson_count = self.lesson_repo.count(course.id)
        completed_count = self.progress_repo.count_completed(course.id)
        total_watched, average_watched = self.progress_repo.watched_totals(course.id)

        possible = lesson_count * enrollment_count
        completion_rate = round(completed_count / possible * 100, 2) if possible else 0.0

        return {
            "course_id": course.id,
            "enrollment_count": enrollment_count,
            "lesson_count": lesson_count,
            "completed_count": completed_count,
            "completion_rate": completion_rate,
            "average_watched_seconds": round(average_watched, 2),
            "total_watched_seconds": total_watched,
        }

    # ---------- lesson management ----------

    def _check_prerequisite(self, prerequisite_id: Optional[uuid.UUID], lesson_id: Optional[uuid.UUID] = None):
        if prerequisite_id is None:
            return
        if prerequisite_id == lesson_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="A lesson cannot be its own prerequisite",
            )
        if not self.lesson_repo.get_by_id(prerequisite_id):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Prerequisite lesson not found",
            )

    def create_lesson(self, payload: LessonCreate) -> Lesson:
        self.get_course_or_404(payload.course_id)
        self._check_prerequisite(payload.prerequisite_id)

        fields = payload.model_dump()
        if not fields.get("thumbnail") and fields.get("video_url"):
            fields["thumbnail"] = self.vimeo.get_thumbnail(fields["video_url"])

        lesson = self.lesson_repo.create(**fields)
        self.db.commit()
        self.db.refresh(lesson)
        logger.info("lesson created", lesson_id=str(lesson.id), course_id=str(lesson.course_id))
        return lesson

    def update_lesson(self, lesson_id: uuid.UUID, payload: LessonUpdate) -> Lesson:
        lesson = self.get_lesson_or_404(lesson_id)
        fields = payload.model_dump(exclude_unset=True)
        if "prerequisite_id" in fields:
            self._check_prerequisite(fields["prerequisite_id"], lesson.id)

        self.lesson_repo.update(lesson, **fields)
        self.db.commit()
        self.db.refresh(lesson)
        logger.info("lesson updated", lesson_id=str(lesson.id), fields=sorted(fields))
        return lesson

    def delete_lesson(self, lesson_id: uuid.UUID) -> None:
        lesson = self.get_lesson_or_404(lesson_id)
        self.lesson_repo.delete(lesson)
        self.db.commit()
        logger.info("lesson deleted", lesson_id=str(lesson_id))
