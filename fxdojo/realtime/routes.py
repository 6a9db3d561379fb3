# fxdojo/realtime/routes.py
import uuid
from typing import Any, Callable, Optional

from fastapi import APIRouter, HTTPException, Query, WebSocket, WebSocketDisconnect, status
from fastapi.concurrency import run_in_threadpool

from fxdojo.core.logging import get_logger
from fxdojo.db.deps import get_user_from_token, open_session
from fxdojo.modules.auth.models import User, UserStatus
from fxdojo.modules.chat.models import MessageType
from fxdojo.modules.chat.service import ChatScope, ChatService, dm_participants, serialize_message
from fxdojo.realtime.manager import Client, manager, user_room

logger = get_logger(__name__)

router = APIRouter()

HISTORY_LIMIT = 50


def authenticate(token: str) -> Optional[tuple[str, Optional[str], str]]:
    """(user id, name, role) for an active user's access token, else None."""
    with open_session() as db:
        user = get_user_from_token(db, token)
        if user is None or user.status != UserStatus.active:
            return None
        return str(user.id), user.full_name, user.primary_role


def resolve_scope(chat: ChatService, user: User, data: dict) -> ChatScope:
    return chat.resolve_scope(
        user,
        data.get("room_type") or "course",
        str(data["room_id"]) if data.get("room_id") is not None else None,
    )


def join_scope(chat: ChatService, user: User, data: dict, limit: int) -> tuple[ChatScope, list[dict]]:
    scope = resolve_scope(chat, user, data)
    return scope, chat.list_messages(scope, limit)


def store_message(chat: ChatService, user: User, scope: ChatScope, content: str, message_type: MessageType) -> dict:
    return serialize_message(chat.create_message(user, scope, content, message_type))


def recipient_unread_counts(chat: ChatService, user: User, recipient_ids: list[str]) -> dict[str, dict]:
    counts = {}
    for recipient_id in recipient_ids:
        other = chat.db.get(User, uuid.UUID(recipient_id))
        if other is not None:
            counts[recipient_id] = chat.unread_counts(other)
    return counts


class ChatSocketHandler:
    """Dispatches the JSON events of one authenticated socket.

    Database work for a frame runs in the threadpool on its own session,
    closed before the frame's events are sent.
    """

    def __init__(self, client: Client):
        self.client = client

    async def run_db(self, work: Callable[..., Any], *args) -> Any:
        def call():
            with open_session() as db:
                user = db.get(User, uuid.UUID(self.client.user_id))
                if user is None or user.status != UserStatus.active:
                    raise HTTPException(
                        status_code=status.HTTP_403_FORBIDDEN,
                        detail="Inactive or blocked user",
                    )
                return work(ChatService(db), user, *args)

        return await run_in_threadpool(call)

    async def error(self, message: str) -> None:
        await manager.send(self.client.sid, "error", {"message": message})

    async def handle(self, event: str, data: dict) -> None:
        handler = getattr(self, f"on_{event}", None)
        if handler is None:
            await self.error(f"Unknown event: {event}")
            return
        try:
            await handler(data)
        except HTTPException as exc:
            await self.error(str(exc.detail))

    async def _leave(self, room: str) -> None:
        manager.leave(self.client.sid, room)
        manager.set_typing(room, self.client.user_id, False)
        await manager.emit(
            room,
            "user_left",
            {"user_id": self.client.user_id, "user_name": self.client.user_name, "room": room},
        )

    async def on_join_room(self, data: dict) -> None:
        scope, messages = await self.run_db(join_scope, data, HISTORY_LIMIT)
        room = scope.room

        for previous in manager.chat_rooms_of(self.client.sid):
            if previous != room:
                await self._leave(previous)

        manager.join(self.client.sid, room)
        await manager.send(
            self.client.sid,
            "room_joined",
            {"room": room, "room_type": scope.room_type, "channel_id": scope.channel_id},
        )
        await manager.emit(
            room,
            "user_joined",
            {"user_id": self.client.user_id, "user_name": self.client.user_name, "room": room},
            skip_sid=self.client.sid,
        )
        await manager.send(self.client.sid, "message_history", {"room": room, "messages": messages})
        await manager.send(
            self.client.sid,
            "room_online_users",
            {"room": room, "users": manager.room_users(room)},
        )

    async def on_leave_room(self, data: dict) -> None:
        room = (await self.run_db(resolve_scope, data)).room
        if manager.in_room(self.client.sid, room):
            await self._leave(room)

    async def on_send_message(self, data: dict) -> None:
        scope = await self.run_db(resolve_scope, data)
        if not manager.in_room(self.client.sid, scope.room):
            await self.error("Join the room before sending messages")
            return

        try:
            message_type = MessageType(data.get("type") or MessageType.text.value)
        except ValueError:
            await self.error("Invalid message type")
            return

        message = await self.run_db(store_message, scope, data.get("content") or "", message_type)
        manager.set_typing(scope.room, self.client.user_id, False)
        await manager.emit(scope.room, "new_message", message)

        if scope.dm_room_id:
            recipients = [
                participant
                for participant in dm_participants(scope.dm_room_id)
                if participant != self.client.user_id and manager.is_online(participant)
            ]
            if recipients:
                counts = await self.run_db(recipient_unread_counts, recipients)
                for recipient_id, unread in counts.items():
                    await manager.emit(user_room(recipient_id), "unread_count_update", unread)

    async def _typing(self, data: dict, is_typing: bool) -> None:
        room = (await self.run_db(resolve_scope, data)).room
        if not manager.in_room(self.client.sid, room):
            return
        manager.set_typing(room, self.client.user_id, is_typing)
        await manager.emit(
            room,
            "user_typing",
            {
                "user_id": self.client.user_id,
                "user_name": self.client.user_name,
                "room": room,
                "is_typing": is_typing,
            },
            skip_sid=self.client.sid,
        )

    async def on_typing_start(self, data: dict) -> None:
        await self._typing(data, True)

    async def on_typing_stop(self, data: dict) -> None:
        await self._typing(data, False)

    async def on_get_history(self, data: dict) -> None:
        try:
            limit = max(1, min(int(data.get("limit") or HISTORY_LIMIT), 200))
        except (TypeError, ValueError):
            limit = HISTORY_LIMIT
        scope, messages = await self.run_db(join_scope, data, limit)
        await manager.send(self.client.sid, "message_history", {"room": scope.room, "messages": messages})

    async def on_get_online_users(self, data: dict) -> None:
        await manager.send(
            self.client.sid,
            "online_users",
            {"user_ids": manager.online_user_ids()},
        )


@router.websocket("/ws/chat")
async def chat_socket(websocket: WebSocket, token: Optional[str] = Query(default=None)):
    identity = await run_in_threadpool(authenticate, token) if token else None
    if identity is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    user_id, user_name, user_role = identity
    client = await manager.connect(websocket, user_id, user_name, user_role)
    handler = ChatSocketHandler(client)
    try:
        while True:
            try:
                frame: Any = await websocket.receive_json()
            except ValueError:
                await handler.error("Frames must be JSON objects")
                continue
            if not isinstance(frame, dict) or not isinstance(frame.get("event"), str):
                await handler.error("Frames must look like {\"event\": ..., \"data\": {...}}")
                continue
            data = frame.get("data") or {}
            if not isinstance(data, dict):
                await handler.error("Event data must be an object")
                continue
            await handler.handle(frame["event"], data)
    except WebSocketDisconnect as exc:
        logger.debug("websocket closed by client", user_id=client.user_id, code=exc.code)
    finally:
        await manager.disconnect(client.sid)
