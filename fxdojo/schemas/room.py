from uuid import UUID
from typing import Optional
from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from fxdojo.modules.rooms.models import RoomRole
from fxdojo.schemas.user import UserSummary


class RoomCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    access_key: Optional[str] = Field(default=None, min_length=1, max_length=128)
    is_public: bool = False
    max_members: int = 50
    allow_invites: bool = True
    require_approval: bool = False


class RoomUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    access_key: Optional[str] = Field(default=None, max_length=128)
    is_public: Optional[bool] = None
    max_members: Optional[int] = None
    allow_invites: Optional[bool] = None
    require_approval: Optional[bool] = None


class RoomRead(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    slug: str
    is_public: bool
    has_access_key: bool
    max_members: int
    allow_invites: bool
    require_approval: bool
    created_by: UUID
    active_member_count: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RoomMemberRead(BaseModel):
    id: UUID
    user_id: UUID
    role: RoomRole
    is_active: bool
    is_banned: bool
    invited_by: Optional[UUID] = None
    joined_at: datetime
    user: UserSummary

    model_config = ConfigDict(from_attributes=True)


class RoomJoin(BaseModel):
    access_key: Optional[str] = None


class RoomInvite(BaseModel):
    email: EmailStr


class RoomVerify(BaseModel):
    slug: str
    access_key: str


class RoomVerifyResult(BaseModel):
    valid: bool
    room: Optional[RoomRead] = None
