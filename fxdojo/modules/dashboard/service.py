from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy import Integer, cast, func
from sqlalchemy.orm import Session

from fxdojo.modules.auth.models import ROLE_STUDENT, User
from fxdojo.modules.auth.repository import SessionRepository
from fxdojo.modules.courses.models import Enrollment
from fxdojo.modules.courses.repository import LessonRepository
from fxdojo.modules.progress.models import Progress
from fxdojo.modules.progress.repository import ProgressRepository

RECENT_ACTIVITY_LIMIT = 5
LEADERBOARD_SIZE = 10


def to_minutes(seconds: int) -> float:
    return round(seconds / 60, 1)


class DashboardService:
    """Per-student learning statistics and the watch-time leaderboard."""

    def __init__(self, db: Session):
        self.db = db
        self.progress_repo = ProgressRepository(db)
        self.lesson_repo = LessonRepository(db)
        self.session_repo = SessionRepository(db)

    def _login_days(self, user: User) -> int:
        moments = [s.created_at for s in self.session_repo.list_for_user(user.id)]
        moments += [user.last_login_at, user.created_at]
        return len({moment.date() for moment in moments if moment is not None})

    def user_statistics(self, user: User) -> dict:
        progress_rows = self.progress_repo.list_for_user(user.id)
        completed = [p for p in progress_rows if p.completed]
        total_seconds = sum(p.watched_seconds for p in progress_rows)

        week_ago = datetime.utcnow() - timedelta(days=7)
        weekly_seconds = sum(
            p.watched_seconds for p in self.progress_repo.list_watched_since(user.id, week_ago)
        )

        completed_lesson_ids = {p.lesson_id for p in completed}
        enrollments = (
            self.db.query(Enrollment)
            .filter(Enrollment.user_id == user.id)
            .order_by(Enrollment.enrolled_at.asc())
            .all()
        )
        course_progress = []
        for enrollment in enrollments:
            lessons = self.lesson_repo.list_by_course(enrollment.course_id)
            done = sum(1 for lesson in lessons if lesson.id in completed_lesson_ids)
            course_progress.append(
                {
                    "course_id": enrollment.course_id,
                    "course_name": enrollment.course.title,
                    "total_lessons": len(lessons),
                    "completed_lessons": done,
                    "progress_percentage": round(done / len(lessons) * 100) if lessons else 0,
                }
            )

        recent_activity = [
            {
                "lesson_id": p.lesson_id,
                "lesson_title": p.lesson.title,
                "course_name": p.lesson.course.title if p.lesson.course else None,
                "watched_seconds": p.watched_seconds,
                "completed": p.completed,
                "updated_at": p.last_watched_at,
            }
            for p in progress_rows[:RECENT_ACTIVITY_LIMIT]
        ]

        return {
            "user_id": user.id,
            "statistics": {
                "completed_lessons": len(completed),
                "total_watched_minutes": to_minutes(total_seconds),
                "total_login_days": self._login_days(user),
                "weekly_watched_minutes": to_minutes(weekly_seconds),
            },
            "course_progress": course_progress,
            "recent_activity": recent_activity,
        }

    def leaderboard(self) -> list[dict]:
        rows = (
            self.db.query(
                Progress.user_id,
                func.coalesce(func.sum(Progress.watched_seconds), 0),
                func.coalesce(func.sum(cast(Progress.completed, Integer)), 0),
            )
            .group_by(Progress.user_id)
            .all()
        )
        totals = {user_id: (int(seconds), int(done)) for user_id, seconds, done in rows}
        if not totals:
            return []

        users = self.db.query(User).filter(User.id.in_(list(totals))).all()
        entries = [
            {
                "user_id": user.id,
                "name": user.full_name,
                "total_watched_minutes": to_minutes(totals[user.id][0]),
                "completed_lessons": totals[user.id][1],
            }
            for user in users
            if user.primary_role == ROLE_STUDENT
        ]
        entries.sort(key=lambda entry: entry["total_watched_minutes"], reverse=True)
        return entries[:LEADERBOARD_SIZE]
