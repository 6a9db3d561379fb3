from uuid import UUID
from typing import Optional
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from fxdojo.modules.courses.models import ReleaseType
from fxdojo.schemas.common import UTCDatetime
from fxdojo.schemas.progress import ProgressRead


class CourseBase(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    thumbnail: Optional[str] = None
    slug: str = Field(min_length=1, max_length=255, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    is_published: bool = False
    price: Optional[int] = Field(default=None, ge=0)


class CourseCreate(CourseBase):
    pass


class CourseUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    thumbnail: Optional[str] = None
    slug: Optional[str] = Field(default=None, min_length=1, max_length=255, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    is_published: Optional[bool] = None
    price: Optional[int] = Field(default=None, ge=0)


class CoursePublish(BaseModel):
    is_published: bool = True


class CourseRead(CourseBase):
    id: UUID
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class LessonBase(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    video_url: Optional[str] = None
    thumbnail: Optional[str] = None
    duration: int = Field(default=0, ge=0)
    order_index: int = Field(default=0, ge=0)
    release_type: ReleaseType = ReleaseType.immediate
    release_days: Optional[int] = Field(default=None, ge=0)
    release_date: Optional[UTCDatetime] = None
    prerequisite_id: Optional[UUID] = None


class LessonCreate(LessonBase):
    course_id: UUID


class LessonUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    video_url: Optional[str] = None
    thumbnail: Optional[str] = None
    duration: Optional[int] = Field(default=None, ge=0)
    order_index: Optional[int] = Field(default=None, ge=0)
    release_type: Optional[ReleaseType] = None
    release_days: Optional[int] = Field(default=None, ge=0)
    release_date: Optional[UTCDatetime] = None
    prerequisite_id: Optional[UUID] = None


class LessonRead(LessonBase):
    id: UUID
    course_id: UUID
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class LessonWithAccess(LessonRead):
    """A lesson as a given user sees it; video_url is withheld without access."""
    has_access: bool
    access_reason: Optional[str] = None
    available_in: Optional[int] = None
    requires_completion: Optional[UUID] = None
    progress: Optional[ProgressRead] = None


class CourseWithLessons(CourseRead):
    is_enrolled: bool = False
    enrolled_at: Optional[datetime] = None
    lesson_count: int = 0
    lessons: list[LessonWithAccess] = []


class EnrollmentRead(BaseModel):
    id: UUID
    user_id: UUID
    course_id: UUID
    enrolled_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CourseStats(BaseModel):
    course_id: UUID
    enrollment_count: int
    lesson_count: int
    completed_count: int
    completion_rate: float
    average_watched_seconds: float
    total_watched_seconds: int
