from uuid import UUID
from typing import Optional
from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

from fxdojo.modules.auth.models import PendingUserStatus


class Token(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"


class RefreshRequest(BaseModel):
    refresh_token: str


class LogoutRequest(BaseModel):
    refresh_token: Optional[str] = None


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8)
    password_confirmation: str
    full_name: str = Field(min_length=1, max_length=255)
    discord_name: Optional[str] = Field(default=None, max_length=100)
    invite_code: str

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.password_confirmation:
            raise ValueError("Passwords do not match")
        return self


class PendingUserRead(BaseModel):
    id: UUID
    email: EmailStr
    full_name: str
    discord_name: Optional[str] = None
    status: PendingUserStatus
    requested_at: datetime
    approved_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class PendingUserAdminRead(PendingUserRead):
    approval_token: str


class ApprovalDecision(BaseModel):
    approved: bool
    rejection_reason: Optional[str] = None


class TokenCheck(BaseModel):
    valid: bool
    user_id: UUID
    email: EmailStr
    roles: list[str]
