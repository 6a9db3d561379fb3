from uuid import UUID
from typing import Optional
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, StrictBool

from fxdojo.schemas.common import UTCDatetime


class InviteCreate(BaseModel):
    max_uses: Optional[int] = Field(default=None, ge=1)
    expires_at: Optional[UTCDatetime] = None
    description: Optional[str] = Field(default=None, max_length=255)


class InviteRead(BaseModel):
    id: UUID
    code: str
    created_by: Optional[UUID] = None
    max_uses: Optional[int] = None
    used_count: int
    remaining_uses: Optional[int] = None
    expires_at: Optional[datetime] = None
    is_active: bool
    description: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class InviteRegistrationRead(BaseModel):
    id: UUID
    invite_id: UUID
    user_id: UUID
    registered_at: datetime

    model_config = ConfigDict(from_attributes=True)


class InviteDetail(InviteRead):
    registrations: list[InviteRegistrationRead] = []


class InviteCode(BaseModel):
    code: str


class InviteValidation(BaseModel):
    valid: bool
    reason: Optional[str] = None
    remaining_uses: Optional[int] = None
    invite: Optional[InviteRead] = None


class InviteToggle(BaseModel):
    is_active: StrictBool


class InvitePage(BaseModel):
    items: list[InviteRead]
    total: int
    page: int
    limit: int
    pages: int


class InviteStats(BaseModel):
    total_invites: int
    active_invites: int
    total_registrations: int
    recent_registrations_count: int
    recent_registrations: list[InviteRegistrationRead]
