from uuid import UUID
from typing import Optional
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from fxdojo.modules.courses.models import ReleaseType
from fxdojo.schemas.common import UTCDatetime
from fxdojo.schemas.user import UserSummary


class AccessResult(BaseModel):
    has_access: bool
    reason: Optional[str] = None
    available_in: Optional[int] = None
    requires_completion: Optional[UUID] = None


class LessonAccessSummary(BaseModel):
    id: UUID
    title: str
    description: Optional[str] = None
    release_type: ReleaseType
    release_date: Optional[datetime] = None
    release_days: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class LessonAccessCheck(AccessResult):
    lesson: LessonAccessSummary


class AdhocGrant(BaseModel):
    user_id: UUID
    lesson_id: UUID
    reason: Optional[str] = Field(default=None, max_length=500)
    start_date: Optional[UTCDatetime] = None
    end_date: Optional[UTCDatetime] = None


class AdhocBulkGrant(BaseModel):
    user_ids: list[UUID] = Field(min_length=1)
    lesson_id: UUID
    reason: Optional[str] = Field(default=None, max_length=500)
    start_date: Optional[UTCDatetime] = None
    end_date: Optional[UTCDatetime] = None


class AdhocRevoke(BaseModel):
    user_id: UUID
    lesson_id: UUID


class AdhocAccessRead(BaseModel):
    id: UUID
    user_id: UUID
    lesson_id: UUID
    granted_by: Optional[UUID] = None
    reason: Optional[str] = None
    start_date: datetime
    end_date: Optional[datetime] = None
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class AdhocAccessWithUser(AdhocAccessRead):
    user: UserSummary


class AdhocAccessWithLesson(AdhocAccessRead):
    lesson: LessonAccessSummary


class BulkGrantResult(BaseModel):
    successful: int
    failed: int
    errors: list[str] = []
