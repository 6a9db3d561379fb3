from uuid import UUID
from typing import Optional
from datetime import datetime

from pydantic import BaseModel, ConfigDict


class ProgressUpdate(BaseModel):
    watched_seconds: int = 0
    completed: Optional[bool] = None


class ProgressRead(BaseModel):
    lesson_id: UUID
    watched_seconds: int = 0
    completed: bool = False
    completed_at: Optional[datetime] = None
    last_watched_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ProgressWithLesson(ProgressRead):
    id: UUID
    lesson_title: str
    course_id: UUID
    course_title: str
    course_slug: str
