from __future__ import annotations

import uuid
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import and_, exists, func, or_
from sqlalchemy.orm import Query, Session

from fxdojo.modules.chat.models import ChatMessage, MessageRead


class ChatRepository:
    """Repository for chat messages and their read receipts."""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, message_id: uuid.UUID) -> Optional[ChatMessage]:
        return self.db.query(ChatMessage).filter(ChatMessage.id == message_id).first()

    def create(self, **fields) -> ChatMessage:
        message = ChatMessage(**fields)
        self.db.add(message)
        self.db.flush()
        return message

    def delete(self, message: ChatMessage) -> None:
        self.db.delete(message)
        self.db.flush()

    def latest(self, filters: Iterable, limit: int) -> list[ChatMessage]:
        """Newest `limit` messages matching `filters`, returned oldest first."""
        rows = (
            self.db.query(ChatMessage)
            .filter(*filters)
            .order_by(ChatMessage.created_at.desc())
            .limit(limit)
            .all()
        )
        rows.reverse()
        return rows

    def list_recent(self, limit: int = 50, offset: int = 0) -> list[ChatMessage]:
        return (
            self.db.query(ChatMessage)
            .order_by(ChatMessage.created_at.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def count(self) -> int:
        return self.db.query(ChatMessage).count()

    # ---------- reads ----------

    def _unread_by(self, user_id: uuid.UUID) -> Query:
        """Messages of other users that `user_id` has no read receipt for."""
        has_read = exists().where(
            and_(MessageRead.message_id == ChatMessage.id, MessageRead.user_id == user_id)
        )
        return self.db.query(ChatMessage).filter(
            ChatMessage.user_id != user_id,
            ~has_read,
        )

    def unread(self, user_id: uuid.UUID, filters: Iterable = ()) -> list[ChatMessage]:
        return self._unread_by(user_id).filter(*filters).all()

    def unread_channel_counts(self, user_id: uuid.UUID) -> dict[str, int]:
        rows = (
            self._unread_by(user_id)
            .filter(ChatMessage.dm_room_id.is_(None), ChatMessage.private_room_id.is_(None))
            .with_entities(ChatMessage.channel_id, func.count(ChatMessage.id))
            .group_by(ChatMessage.channel_id)
            .all()
        )
        return {channel: count for channel, count in rows}

    def unread_dm_counts(self, user_id: uuid.UUID) -> dict[str, int]:
        rows = (
            self._unread_by(user_id)
            .filter(ChatMessage.dm_room_id.contains(str(user_id)))
            .with_entities(ChatMessage.dm_room_id, func.count(ChatMessage.id))
            .group_by(ChatMessage.dm_room_id)
            .all()
        )
        return {room: count for room, count in rows}

    def unread_since(
        self,
        user_id: uuid.UUID,
        since: datetime,
        private_room_ids: list[uuid.UUID],
        limit: int = 100,
    ) -> list[ChatMessage]:
        visible = [
            and_(ChatMessage.dm_room_id.is_(None), ChatMessage.private_room_id.is_(None)),
            ChatMessage.dm_room_id.contains(str(user_id)),
        ]
        if private_room_ids:
            visible.append(ChatMessage.private_room_id.in_(private_room_ids))
        return (
            self._unread_by(user_id)
            .filter(ChatMessage.created_at > since, or_(*visible))
            .order_by(ChatMessage.created_at.desc())
            .limit(limit)
            .all()
        )

    def read_message_ids(self, user_id: uuid.UUID, message_ids: list[uuid.UUID]) -> set[uuid.UUID]:
        if not message_ids:
            return set()
        rows = (
            self.db.query(MessageRead.message_id)
            .filter(MessageRead.user_id == user_id, MessageRead.message_id.in_(message_ids))
            .all()
        )
        return {row[0] for row in rows}

    def existing_message_ids(self, message_ids: list[uuid.UUID]) -> set[uuid.UUID]:
        if not message_ids:
            return set()
        rows = self.db.query(ChatMessage.id).filter(ChatMessage.id.in_(message_ids)).all()
        return {row[0] for row in rows}

    def add_reads(self, user_id: uuid.UUID, message_ids: Iterable[uuid.UUID]) -> int:
        now = datetime.utcnow()
        count = 0
        for message_id in message_ids:
            self.db.add(MessageRead(user_id=user_id, message_id=message_id, read_at=now))
            count += 1
        self.db.flush()
        return count

    def dm_messages_for_user(self, user_id: uuid.UUID, limit: int = 50) -> list[ChatMessage]:
        return (
            self.db.query(ChatMessage)
            .filter(ChatMessage.dm_room_id.contains(str(user_id)))
            .order_by(ChatMessage.created_at.desc())
            .limit(limit)
            .all()
        )
