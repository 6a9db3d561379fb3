from typing import Any

from pydantic import BaseModel

from fxdojo.schemas.chat import ChatMessageRead


class AdminDashboard(BaseModel):
    total_users: int
    total_courses: int
    total_lessons: int
    active_users_30d: int
    completed_lessons: int
    pending_registrations: int
    new_registrations_7d: int
    recent_messages: list[ChatMessageRead]


class PlatformSettings(BaseModel):
    site_name: str
    registration_mode: str
    max_sessions_per_user: int
    access_token_expire_minutes: int
    refresh_token_expire_days: int
    default_room_max_members: int
    currency: str
    features: dict[str, Any]
