from uuid import UUID
from typing import Optional
from datetime import datetime

from pydantic import BaseModel, EmailStr, ConfigDict

from fxdojo.modules.auth.models import UserStatus


class UserBase(BaseModel):
    email: EmailStr
    full_name: Optional[str] = None
    discord_name: Optional[str] = None


class UserRead(UserBase):
    id: UUID
    status: UserStatus
    email_verified: bool
    avatar_color: Optional[str] = None
    avatar_image: Optional[str] = None
    role_names: list[str] = []
    last_login_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserSummary(BaseModel):
    """The public face of a user in chat, rooms and leaderboards."""
    id: UUID
    full_name: Optional[str] = None
    primary_role: str
    avatar_color: Optional[str] = None
    avatar_image: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class ProfileUpdate(BaseModel):
    full_name: str
    discord_name: Optional[str] = None
    avatar_color: Optional[str] = None


class AdminUserUpdate(BaseModel):
    email: Optional[EmailStr] = None
    full_name: Optional[str] = None
    discord_name: Optional[str] = None
    avatar_color: Optional[str] = None


class UserRoleUpdate(BaseModel):
    role: str


class UserStatusUpdate(BaseModel):
    status: UserStatus


class UserPage(BaseModel):
    items: list[UserRead]
    total: int
    page: int
    limit: int
    pages: int


class AvatarUpdated(BaseModel):
    message: str
    user: UserRead
    avatar_url: Optional[str] = None
