from uuid import UUID
from typing import Optional
from datetime import datetime

from pydantic import BaseModel


class LearningStatistics(BaseModel):
    completed_lessons: int
    total_watched_minutes: float
    total_login_days: int
    weekly_watched_minutes: float


class CourseProgressStat(BaseModel):
    course_id: UUID
    course_name: str
    total_lessons: int
    completed_lessons: int
    progress_percentage: int


class RecentActivity(BaseModel):
    lesson_id: UUID
    lesson_title: str
    course_name: Optional[str] = None
    watched_seconds: int
    completed: bool
    updated_at: datetime


class UserStatistics(BaseModel):
    user_id: UUID
    statistics: LearningStatistics
    course_progress: list[CourseProgressStat]
    recent_activity: list[RecentActivity]


class LeaderboardEntry(BaseModel):
    user_id: UUID
    name: Optional[str] = None
    total_watched_minutes: float
    completed_lessons: int
