from __future__ import annotations

import uuid
from typing import Optional

from sqlalchemy.orm import Session

from fxdojo.modules.courses.models import Course, Enrollment, Lesson


class CourseRepository:
    """Repository for Course entity with CRUD operations."""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, course_id: uuid.UUID) -> Optional[Course]:
        return self.db.query(Course).filter(Course.id == course_id).first()

    def get_by_slug(self, slug: str) -> Optional[Course]:
        return self.db.query(Course).filter(Course.slug == slug).first()

    def list_published(self) -> list[Course]:
        return (
            self.db.query(Course)
            .filter(Course.is_published.is_(True))
            .order_by(Course.created_at.desc())
            .all()
        )

    def list_all(self) -> list[Course]:
        return self.db.query(Course).order_by(Course.created_at.desc()).all()

    def count(self) -> int:
        return self.db.query(Course).count()

    def create(self, **fields) -> Course:
        course = Course(**fields)
        self.db.add(course)
        self.db.flush()
        return course

    def update(self, course: Course, **fields) -> Course:
        for key, value in fields.items():
            setattr(course, key, value)
        self.db.flush()
        return course

    def delete(self, course: Course) -> None:
        self.db.delete(course)
        self.db.flush()


class LessonRepository:
    """Repository for Lesson entity."""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, lesson_id: uuid.UUID) -> Optional[Lesson]:
        return self.db.query(Lesson).filter(Lesson.id == lesson_id).first()

    def list_by_course(self, course_id: uuid.UUID) -> list[Lesson]:
        return (
            self.db.query(Lesson)
            .filter(Lesson.course_id == course_id)
            .order_by(Lesson.order_index.asc())
            .all()
        )

    def list_all(self, course_id: Optional[uuid.UUID] = None) -> list[Lesson]:
        query = self.db.query(Lesson)
        if course_id is not None:
            query = query.filter(Lesson.course_id == course_id)
        return query.order_by(Lesson.course_id, Lesson.order_index.asc()).all()

    def count(self, course_id: Optional[uuid.UUID] = None) -> int:
        query = self.db.query(Lesson)
        if course_id is not None:
            query = query.filter(Lesson.course_id == course_id)
        return query.count()

    def create(self, **fields) -> Lesson:
        lesson = Lesson(**fields)
        self.db.add(lesson)
        self.db.flush()
        return lesson

    def update(self, lesson: Lesson, **fields) -> Lesson:
        for key, value in fields.items():
            setattr(lesson, key, value)
        self.db.flush()
        return lesson

    def delete(self, lesson: Lesson) -> None:
        self.db.delete(lesson)
        self.db.flush()


class EnrollmentRepository:
    """Repository for Enrollment entity."""

    def __init__(self, db: Session):
        self.db = db

    def get_by_user_and_course(
        self, user_id: uuid.UUID, course_id: uuid.UUID
    ) -> Optional[Enrollment]:
        return (
            self.db.query(Enrollment)
            .filter(
                Enrollment.user_id == user_id,
                Enrollment.course_id == course_id,
            )
            .first()
        )

    def count_by_course(self, course_id: uuid.UUID) -> int:
        return self.db.query(Enrollment).filter(Enrollment.course_id == course_id).count()

    def create(self, user_id: uuid.UUID, course_id: uuid.UUID) -> Enrollment:
        enrollment = Enrollment(user_id=user_id, course_id=course_id)
        self.db.add(enrollment)
        self.db.flush()
        return enrollment
