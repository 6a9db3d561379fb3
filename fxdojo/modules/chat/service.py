from __future__ import annotations

import uuid
from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from fxdojo.core.logging import get_logger
from fxdojo.modules.auth.models import User
from fxdojo.modules.chat.models import DEFAULT_CHANNEL, ChatMessage, MessageType
from fxdojo.modules.chat.repository import ChatRepository
from fxdojo.modules.courses.repository import CourseRepository, LessonRepository
from fxdojo.modules.rooms.repository import RoomRepository
from fxdojo.modules.rooms.service import PrivateRoomService
from fxdojo.realtime.manager import manager, user_room

logger = get_logger(__name__)

ROOM_TYPES = ("course", "lesson", "private", "dm")


def make_dm_room_id(user_a, user_b) -> str:
    return "_".join(sorted([str(user_a), str(user_b)]))


def dm_participants(dm_room_id: str) -> list[str]:
    return dm_room_id.split("_")


def _as_uuid(value: Optional[str]) -> Optional[uuid.UUID]:
    if value is None:
        return None
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def serialize_message(message: ChatMessage) -> dict:
    user = message.user
    return {
        "id": message.id,
        "user_id": message.user_id,
        "user_name": user.full_name if user else None,
        "user_role": user.primary_role if user else "student",
        "avatar_color": user.avatar_color if user else None,
        "avatar_image": user.avatar_image if user else None,
        "content": message.content,
        "type": message.type,
        "channel_id": message.channel_id,
        "lesson_id": message.lesson_id,
        "course_id": message.course_id,
        "private_room_id": message.private_room_id,
        "dm_room_id": message.dm_room_id,
        "is_edited": message.is_edited,
        "created_at": message.created_at,
    }


@dataclass
class ChatScope:
    """Where a message lives; maps one-to-one onto a realtime room name."""

    room_type: str
    channel_id: str = DEFAULT_CHANNEL
    course_id: Optional[uuid.UUID] = None
    lesson_id: Optional[uuid.UUID] = None
    private_room_id: Optional[uuid.UUID] = None
    dm_room_id: Optional[str] = None

    @property
    def room(self) -> str:
        if self.room_type == "dm":
            return f"dm:{self.dm_room_id}"
        if self.room_type == "lesson":
            base = str(self.lesson_id)
        elif self.room_type == "private":
            base = str(self.private_room_id)
        else:
            base = str(self.course_id) if self.course_id else DEFAULT_CHANNEL
        name = f"{self.room_type}:{base}"
        if self.channel_id != DEFAULT_CHANNEL:
            name = f"{name}_{self.channel_id}"
        return name

    def message_fields(self) -> dict:
        return {
            "channel_id": self.channel_id,
            "course_id": self.course_id,
            "lesson_id": self.lesson_id,
            "private_room_id": self.private_room_id,
            "dm_room_id": self.dm_room_id,
        }

    def filters(self) -> list:
        if self.room_type == "dm":
            return [ChatMessage.dm_room_id == self.dm_room_id]
        filters = [ChatMessage.channel_id == self.channel_id]
        if self.room_type == "lesson":
            filters.append(ChatMessage.lesson_id == self.lesson_id)
        elif self.room_type == "private":
            filters.append(ChatMessage.private_room_id == self.private_room_id)
        else:
            filters += [
                ChatMessage.lesson_id.is_(None),
                ChatMessage.private_room_id.is_(None),
                ChatMessage.dm_room_id.is_(None),
                ChatMessage.course_id == self.course_id
                if self.course_id
                else ChatMessage.course_id.is_(None),
            ]
        return filters


class ChatService:
    def __init__(self, db: Session):
        self.db = db
        self.chat_repo = ChatRepository(db)
        self.course_repo = CourseRepository(db)
        self.lesson_repo = LessonRepository(db)
        self.room_repo = RoomRepository(db)

    # ---------- scopes ----------

    def resolve_scope(
        self,
        user: User,
        room_type: str,
        room_id: Optional[str] = None,
        channel_id: Optional[str] = None,
    ) -> ChatScope:
        """Turn a client's (room_type, room_id) into a checked ChatScope.

        Outside DMs a room id of the form `<base>_<channel>` selects a channel.
        """
        if room_type not in ROOM_TYPES:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Unknown room type: {room_type}",
            )

        if room_type == "dm":
            parts = dm_participants(room_id or "")
            if len(parts) != 2 or str(user.id) not in parts:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail="Not a participant of this conversation",
                )
            return ChatScope(room_type="dm", dm_room_id=make_dm_room_id(*parts))

        base = room_id or None
        split_channel = None
        if base and "_" in base:
            base, _, split_channel = base.partition("_")
        channel = channel_id or split_channel or DEFAULT_CHANNEL

        if room_type == "course":
            course_id = _as_uuid(base)
            if course_id is not None and not self.course_repo.get_by_id(course_id):
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail="Course not found",
                )
            return ChatScope(room_type="course", channel_id=channel, course_id=course_id)

        if room_type == "lesson":
            lesson_id = _as_uuid(base)
            if lesson_id is None or not self.lesson_repo.get_by_id(lesson_id):
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail="Lesson not found",
                )
            return ChatScope(room_type="lesson", channel_id=channel, lesson_id=lesson_id)

        room_uuid = _as_uuid(base)
        if room_uuid is not None:
            room = self.room_repo.get_by_id(room_uuid)
        else:
            room = self.room_repo.get_by_slug(base) if base else None
        if room is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Room not found",
            )
        if not PrivateRoomService(self.db).is_member(room, user.id):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Not a member of this room",
            )
        return ChatScope(room_type="private", channel_id=channel, private_room_id=room.id)

    # ---------- messages ----------

    def create_message(
        self,
        user: User,
        scope: ChatScope,
        content: str,
        message_type: MessageType = MessageType.text,
    ) -> ChatMessage:
        content = (content or "").strip()
        if not content:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Message content cannot be empty",
            )

        message = self.chat_repo.create(
            user_id=user.id,
            content=content,
            type=message_type,
            **scope.message_fields(),
        )
        # the author has read their own message
        self.chat_repo.add_reads(user.id, [message.id])
        self.db.commit()
        self.db.refresh(message)
        logger.info(
            "chat message created",
            message_id=str(message.id),
            user_id=str(user.id),
            room=scope.room,
        )
        return message

    def post_message(
        self,
        user: User,
        scope: ChatScope,
        content: str,
        message_type: MessageType = MessageType.text,
    ) -> dict:
        """Store a message sent over HTTP and fan it out to the realtime room."""
        message = self.create_message(user, scope, content, message_type)
        payload = serialize_message(message)
        manager.emit_threadsafe(scope.room, "new_message", payload)
        if scope.dm_room_id:
            for participant in dm_participants(scope.dm_room_id):
                if participant != str(user.id):
                    self.push_unread_counts(uuid.UUID(participant))
        return payload

    def list_messages(self, scope: ChatScope, limit: int = 50) -> list[dict]:
        return [serialize_message(m) for m in self.chat_repo.latest(scope.filters(), limit)]

    # ---------- unread ----------

    def unread_counts(self, user: User) -> dict:
        channel_counts = self.chat_repo.unread_channel_counts(user.id)
        return {
            "unread_count": sum(channel_counts.values()),
            "channel_unread_counts": channel_counts,
            "dm_unread_counts": self.chat_repo.unread_dm_counts(user.id),
        }

    def push_unread_counts(self, user_id: uuid.UUID) -> None:
        if not manager.is_online(user_id):
            return
        user = self.db.get(User, user_id)
        if user is not None:
            manager.emit_threadsafe(user_room(user_id), "unread_count_update", self.unread_counts(user))

    def mark_read(self, user: User, message_ids: list[uuid.UUID]) -> int:
        """Record reads for existing messages; unknown ids are skipped."""
        message_ids = list(dict.fromkeys(message_ids))
        existing = self.chat_repo.existing_message_ids(message_ids)
        already_read = self.chat_repo.read_message_ids(user.id, message_ids)
        to_mark = [mid for mid in message_ids if mid in existing and mid not in already_read]
        marked = self.chat_repo.add_reads(user.id, to_mark)
        self.db.commit()
        return marked

    def mark_channel_read(
        self,
        user: User,
        channel_id: Optional[str] = None,
        lesson_id: Optional[uuid.UUID] = None,
        private_room_id: Optional[uuid.UUID] = None,
        dm_room_id: Optional[str] = None,
    ) -> int:
        if dm_room_id:
            if str(user.id) not in dm_participants(dm_room_id):
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail="Not a participant of this conversation",
                )
            filters = [ChatMessage.dm_room_id == dm_room_id]
        elif private_room_id:
            room = self.room_repo.get_by_id(private_room_id)
            if room is None:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail="Room not found",
                )
            if not PrivateRoomService(self.db).is_member(room, user.id):
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail="Not a member of this room",
                )
            filters = [ChatMessage.private_room_id == private_room_id]
        elif lesson_id:
            filters = [
                ChatMessage.lesson_id == lesson_id,
                ChatMessage.channel_id == (channel_id or DEFAULT_CHANNEL),
            ]
        else:
            filters = [
                ChatMessage.channel_id == (channel_id or DEFAULT_CHANNEL),
                ChatMessage.lesson_id.is_(None),
                ChatMessage.dm_room_id.is_(None),
            ]

        unread = self.chat_repo.unread(user.id, filters)
        marked = self.chat_repo.add_reads(user.id, [m.id for m in unread])
        self.db.commit()
        logger.info("chat channel marked read", user_id=str(user.id), marked_count=marked)

        self.push_unread_counts(user.id)
        return marked

    def unread_since(self, user: User, since: datetime) -> dict:
        room_ids = self.room_repo.room_ids_for_member(user.id)
        messages = self.chat_repo.unread_since(user.id, since, room_ids)

        by_channel: Counter = Counter()
        by_dm: Counter = Counter()
        by_private_room: Counter = Counter()
        for message in messages:
            if message.dm_room_id:
                by_dm[message.dm_room_id] += 1
            elif message.private_room_id:
                by_private_room[str(message.private_room_id)] += 1
            else:
                by_channel[message.channel_id] += 1

        return {
            "total_unread": len(messages),
            "messages_by_channel": dict(by_channel),
            "messages_by_dm": dict(by_dm),
            "messages_by_private_room": dict(by_private_room),
            "since": since,
        }

    # ---------- moderation ----------

    def get_message_or_404(self, message_id: uuid.UUID) -> ChatMessage:
        message = self.chat_repo.get_by_id(message_id)
        if not message:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Message not found",
            )
        return message

    def list_recent(self, limit: int = 50, offset: int = 0) -> list[dict]:
        return [serialize_message(m) for m in self.chat_repo.list_recent(limit, offset)]

    def moderate_message(self, message_id: uuid.UUID, content: str, moderator: User) -> dict:
        message = self.get_message_or_404(message_id)
        message.content = content
        message.is_edited = True
        message.edited_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(message)
        logger.info("chat message moderated", message_id=str(message.id), moderator_id=str(moderator.id))
        return serialize_message(message)

    def delete_message(self, message_id: uuid.UUID, moderator: User) -> None:
        message = self.get_message_or_404(message_id)
        self.chat_repo.delete(message)
        self.db.commit()
        logger.info("chat message deleted", message_id=str(message_id), moderator_id=str(moderator.id))
