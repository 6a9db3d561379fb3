from uuid import UUID
from typing import Literal, Optional
from datetime import datetime

from pydantic import BaseModel, Field

from fxdojo.modules.chat.models import DEFAULT_CHANNEL, MessageType
from fxdojo.schemas.user import UserSummary

RoomType = Literal["course", "lesson", "private", "dm"]


class ChatMessageRead(BaseModel):
    id: UUID
    user_id: UUID
    user_name: Optional[str] = None
    user_role: str
    avatar_color: Optional[str] = None
    avatar_image: Optional[str] = None
    content: str
    type: MessageType
    channel_id: str
    lesson_id: Optional[UUID] = None
    course_id: Optional[UUID] = None
    private_room_id: Optional[UUID] = None
    dm_room_id: Optional[str] = None
    is_edited: bool
    created_at: datetime


class ChatMessageCreate(BaseModel):
    content: str = Field(max_length=5000)
    channel_id: str = Field(default=DEFAULT_CHANNEL, max_length=100)
    room_type: RoomType = "course"
    room_id: Optional[UUID] = None
    type: MessageType = MessageType.text


class ChatMessageSent(BaseModel):
    success: bool = True
    message: ChatMessageRead


class ChatMessageList(BaseModel):
    success: bool = True
    messages: list[ChatMessageRead]


class UnreadCount(BaseModel):
    unread_count: int
    channel_unread_counts: dict[str, int]
    dm_unread_counts: dict[str, int]


class MarkRead(BaseModel):
    message_ids: list[UUID]


class MarkChannelRead(BaseModel):
    channel_id: Optional[str] = None
    lesson_id: Optional[UUID] = None
    private_room_id: Optional[UUID] = None
    dm_room_id: Optional[str] = None


class MarkChannelReadResult(BaseModel):
    success: bool = True
    marked_count: int


class UnreadSince(BaseModel):
    success: bool = True
    total_unread: int
    messages_by_channel: dict[str, int]
    messages_by_dm: dict[str, int]
    messages_by_private_room: dict[str, int]
    since: datetime


class DMMessageCreate(BaseModel):
    content: str = Field(max_length=5000)
    other_user_id: UUID


class DMConversation(BaseModel):
    dm_room_id: str
    other_user: Optional[UserSummary] = None
    messages: list[ChatMessageRead]


class DMLastMessage(BaseModel):
    id: UUID
    user_id: UUID
    user_name: Optional[str] = None
    content: str
    created_at: datetime


class DMRecent(BaseModel):
    dm_room_id: str
    other_user: Optional[UserSummary] = None
    last_message: DMLastMessage


class ModerateMessage(BaseModel):
    content: str = Field(min_length=1, max_length=5000)
