from __future__ import annotations

import uuid

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from fxdojo.core.logging import get_logger
from fxdojo.modules.auth.models import User
from fxdojo.modules.auth.repository import UserRepository
from fxdojo.modules.chat.repository import ChatRepository
from fxdojo.modules.chat.service import (
    ChatScope,
    ChatService,
    dm_participants,
    make_dm_room_id,
    serialize_message,
)
from fxdojo.schemas.user import UserSummary

logger = get_logger(__name__)

CONVERSATION_LIMIT = 100
RECENT_SCAN_LIMIT = 50


class DirectMessageService:
    """One-to-one conversations stored as chat messages with a dm_room_id."""

    def __init__(self, db: Session):
        self.db = db
        self.user_repo = UserRepository(db)
        self.chat_repo = ChatRepository(db)
        self.chat = ChatService(db)

    def _get_other_user(self, user_id: uuid.UUID) -> User:
        other = self.user_repo.get_by_id(user_id)
        if not other:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User not found",
            )
        return other

    def list_users(self, user: User) -> list[User]:
        return self.user_repo.list_active_except(user.id)

    def conversation(self, user: User, other_user_id: uuid.UUID) -> dict:
        other = self._get_other_user(other_user_id)
        scope = ChatScope(room_type="dm", dm_room_id=make_dm_room_id(user.id, other.id))
        return {
            "dm_room_id": scope.dm_room_id,
            "other_user": UserSummary.model_validate(other),
            "messages": self.chat.list_messages(scope, CONVERSATION_LIMIT),
        }

    def recent(self, user: User) -> list[dict]:
        """Latest message per conversation, newest conversation first."""
        latest: dict[str, object] = {}
        for message in self.chat_repo.dm_messages_for_user(user.id, RECENT_SCAN_LIMIT):
            if message.dm_room_id not in latest:
                latest[message.dm_room_id] = message

        conversations = []
        for dm_room_id, message in latest.items():
            other_ids = [p for p in dm_participants(dm_room_id) if p != str(user.id)]
            other = self.user_repo.get_by_id(uuid.UUID(other_ids[0])) if other_ids else None
            data = serialize_message(message)
            conversations.append(
                {
                    "dm_room_id": dm_room_id,
                    "other_user": UserSummary.model_validate(other) if other else None,
                    "last_message": {
                        "id": data["id"],
                        "user_id": data["user_id"],
                        "user_name": data["user_name"],
                        "content": data["content"],
                        "created_at": data["created_at"],
                    },
                }
            )
        return conversations

    def send(self, user: User, other_user_id: uuid.UUID, content: str) -> dict:
        if not (content or "").strip():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Message content cannot be empty",
            )
        other = self._get_other_user(other_user_id)
        if other.id == user.id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot send a direct message to yourself",
            )
        scope = ChatScope(room_type="dm", dm_room_id=make_dm_room_id(user.id, other.id))
        return self.chat.post_message(user, scope, content)
