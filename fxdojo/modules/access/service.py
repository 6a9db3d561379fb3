from __future__ import annotations

import calendar
import math
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from fxdojo.core.logging import get_logger
from fxdojo.modules.access.models import UserLessonAccess
from fxdojo.modules.access.repository import AdhocAccessRepository
from fxdojo.modules.auth.models import User
from fxdojo.modules.auth.repository import UserRepository
from fxdojo.modules.courses.models import Lesson, ReleaseType
from fxdojo.modules.courses.repository import EnrollmentRepository, LessonRepository
from fxdojo.modules.progress.repository import ProgressRepository

logger = get_logger(__name__)

NOT_AUTHENTICATED = "not_authenticated"
LESSON_NOT_FOUND = "lesson_not_found"
STAFF_ACCESS = "staff_access"
ADHOC_ACCESS = "adhoc_access"
NOT_ENROLLED = "not_enrolled"
NOT_YET_SCHEDULED = "not_yet_scheduled"
NOT_YET_AVAILABLE = "not_yet_available"
PREREQUISITE_NOT_COMPLETED = "prerequisite_not_completed"

# monthly drip opens two lessons per calendar month
LESSONS_PER_MONTH = 2


@dataclass
class AccessDecision:
    has_access: bool
    reason: Optional[str] = None
    available_in: Optional[int] = None
    requires_completion: Optional[uuid.UUID] = None


def add_months(moment: datetime, months: int) -> datetime:
    """Shift by whole calendar months, clamping the day to the target month's end."""
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def months_between(start: datetime, end: datetime) -> int:
    months = (end.year - start.year) * 12 + (end.month - start.month)
    if end.day < start.day:
        months -= 1
    return max(0, months)


def _days_until(moment: datetime, now: datetime) -> int:
    return math.ceil((moment - now) / timedelta(days=1))


class LessonAccessService:
    """Decides whether a user may watch a lesson right now."""

    def __init__(self, db: Session):
        self.db = db
        self.lesson_repo = LessonRepository(db)
        self.enrollment_repo = EnrollmentRepository(db)
        self.progress_repo = ProgressRepository(db)
        self.adhoc_repo = AdhocAccessRepository(db)
        self.user_repo = UserRepository(db)

    def check_lesson_access(
        self,
        user: Optional[User],
        lesson_id: uuid.UUID,
        now: Optional[datetime] = None,
    ) -> AccessDecision:
        lesson = self.lesson_repo.get_by_id(lesson_id)
        return self.check(user, lesson, now=now)

    def check(
        self,
        user: Optional[User],
        lesson: Optional[Lesson],
        now: Optional[datetime] = None,
    ) -> AccessDecision:
        now = now or datetime.utcnow()

        if user is None:
            return AccessDecision(has_access=False, reason=NOT_AUTHENTICATED)
        if lesson is None:
            return AccessDecision(has_access=False, reason=LESSON_NOT_FOUND)

        if user.is_staff:
            return AccessDecision(has_access=True, reason=STAFF_ACCESS)

        grant = self.adhoc_repo.get(user.id, lesson.id)
        if grant is not None and grant.is_active:
            if grant.end_date is not None and grant.end_date < now:
                grant.is_active = False
                self.db.commit()
                logger.info(
                    "adhoc access expired",
                    user_id=str(user.id),
                    lesson_id=str(lesson.id),
                )
            elif now >= grant.start_date:
                return AccessDecision(has_access=True, reason=ADHOC_ACCESS)

        enrollment = self.enrollment_repo.get_by_user_and_course(user.id, lesson.course_id)
        if enrollment is None:
            return AccessDecision(has_access=False, reason=NOT_ENROLLED)

        if lesson.release_type == ReleaseType.scheduled:
            if lesson.release_date is not None and lesson.release_date > now:
                return AccessDecision(
                    has_access=False,
                    reason=NOT_YET_SCHEDULED,
                    available_in=_days_until(lesson.release_date, now),
                )

        elif lesson.release_type == ReleaseType.drip:
            enrolled_at = enrollment.enrolled_at
            if lesson.release_days is not None:
                days_since = math.floor((now - enrolled_at) / timedelta(days=1))
                if days_since < lesson.release_days:
                    return AccessDecision(
                        has_access=False,
                        reason=NOT_YET_AVAILABLE,
                        available_in=lesson.release_days - days_since,
                    )
            else:
                required = lesson.order_index // LESSONS_PER_MONTH
                if months_between(enrolled_at, now) < required:
                    return AccessDecision(
                        has_access=False,
                        reason=NOT_YET_AVAILABLE,
                        available_in=_days_until(add_months(enrolled_at, required), now),
                    )

        elif lesson.release_type == ReleaseType.prerequisite:
            if lesson.prerequisite_id is not None and not self.progress_repo.is_completed(
                user.id, lesson.prerequisite_id
            ):
                return AccessDecision(
                    has_access=False,
                    reason=PREREQUISITE_NOT_COMPLETED,
                    requires_completion=lesson.prerequisite_id,
                )

        return AccessDecision(has_access=True)

    # ---------- ad-hoc grants ----------

    def _get_user_or_404(self, user_id: uuid.UUID) -> User:
        user = self.user_repo.get_by_id(user_id)
        if not user:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User not found",
            )
        return user

    def _get_lesson_or_404(self, lesson_id: uuid.UUID) -> Lesson:
        lesson = self.lesson_repo.get_by_id(lesson_id)
        if not lesson:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Lesson not found",
            )
        return lesson

    def grant(
        self,
        admin: User,
        user_id: uuid.UUID,
        lesson_id: uuid.UUID,
        reason: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> UserLessonAccess:
        self._get_user_or_404(user_id)
        self._get_lesson_or_404(lesson_id)

        start_date = start_date or datetime.utcnow()
        if end_date is not None and end_date <= start_date:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="end_date must be after start_date",
            )

        access = self.adhoc_repo.upsert(
            user_id=user_id,
            lesson_id=lesson_id,
            granted_by=admin.id,
            reason=reason,
            start_date=start_date,
            end_date=end_date,
        )
        self.db.commit()
        self.db.refresh(access)
        logger.info(
            "adhoc access granted",
            user_id=str(user_id),
            lesson_id=str(lesson_id),
            granted_by=str(admin.id),
        )
        return access

    def revoke(self, user_id: uuid.UUID, lesson_id: uuid.UUID) -> UserLessonAccess:
        access = self.adhoc_repo.get(user_id, lesson_id)
        if access is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Access grant not found",
            )
        access.is_active = False
        self.db.commit()
        self.db.refresh(access)
        logger.info("adhoc access revoked", user_id=str(user_id), lesson_id=str(lesson_id))
        return access

    def bulk_grant(
        self,
        admin: User,
        user_ids: list[uuid.UUID],
        lesson_id: uuid.UUID,
        reason: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> dict:
        self._get_lesson_or_404(lesson_id)

        successful = 0
        errors: list[str] = []
        for user_id in user_ids:
            try:
                self.grant(admin, user_id, lesson_id, reason, start_date, end_date)
                successful += 1
            except HTTPException as exc:
                self.db.rollback()
                errors.append(f"{user_id}: {exc.detail}")

        return {"successful": successful, "failed": len(errors), "errors": errors}

    def list_for_user(self, user_id: uuid.UUID) -> list[UserLessonAccess]:
        return self.adhoc_repo.list_active_for_user(user_id, datetime.utcnow())

    def list_for_lesson(self, lesson_id: uuid.UUID) -> list[UserLessonAccess]:
        return self.adhoc_repo.list_active_for_lesson(lesson_id)
