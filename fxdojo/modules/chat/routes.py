# fxdojo/modules/chat/routes.py
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from fxdojo.db.deps import get_current_active_user, get_db
from fxdojo.modules.auth.models import User
from fxdojo.modules.chat.models import DEFAULT_CHANNEL
from fxdojo.modules.chat.service import ChatService
from fxdojo.schemas.chat import (
    ChatMessageCreate,
    ChatMessageList,
    ChatMessageSent,
    MarkChannelRead,
    MarkChannelReadResult,
    MarkRead,
    RoomType,
    UnreadCount,
    UnreadSince,
)
from fxdojo.schemas.common import as_naive_utc

router = APIRouter(prefix="/chat", tags=["chat"])


@router.post("/message", response_model=ChatMessageSent, status_code=status.HTTP_201_CREATED)
def send_message(
    payload: ChatMessageCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    service = ChatService(db)
    scope = service.resolve_scope(
        current_user,
        payload.room_type,
        str(payload.room_id) if payload.room_id else None,
        payload.channel_id,
    )
    message = service.post_message(current_user, scope, payload.content, payload.type)
    return {"success": True, "message": message}


@router.get("/messages", response_model=ChatMessageList)
def list_messages(
    channel_id: str = Query(default=DEFAULT_CHANNEL, max_length=100),
    room_type: RoomType = Query(default="course"),
    room_id: Optional[str] = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    service = ChatService(db)
    scope = service.resolve_scope(current_user, room_type, room_id, channel_id)
    return {"success": True, "messages": service.list_messages(scope, limit)}


@router.get("/unread-count", response_model=UnreadCount)
def unread_count(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    return ChatService(db).unread_counts(current_user)


@router.post("/mark-read")
def mark_read(
    payload: MarkRead,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    marked = ChatService(db).mark_read(current_user, payload.message_ids)
    return {"success": True, "marked_count": marked}


@router.post("/mark-channel-read", response_model=MarkChannelReadResult)
def mark_channel_read(
    payload: MarkChannelRead,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    marked = ChatService(db).mark_channel_read(
        current_user,
        channel_id=payload.channel_id,
        lesson_id=payload.lesson_id,
        private_room_id=payload.private_room_id,
        dm_room_id=payload.dm_room_id,
    )
    return {"success": True, "marked_count": marked}


@router.get("/unread-since", response_model=UnreadSince)
def unread_since(
    since: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Unread messages after `since` (ISO 8601), grouped by where they were posted."""
    if not since:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="since parameter is required",
        )
    try:
        since_dt = as_naive_utc(datetime.fromisoformat(since.replace("Z", "+00:00")))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid since timestamp",
        )
    return ChatService(db).unread_since(current_user, since_dt)
