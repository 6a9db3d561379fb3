"""In-process WebSocket hub: connections, rooms, presence and typing state.

Rooms are plain strings (`course:general`, `lesson:<id>`, `private:<id>`,
`dm:<a>_<b>`, `user:<id>`). Delivery is best effort; nothing is queued for
clients that are not connected.
"""

from __future__ import annotations

import uuid
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Optional

import anyio.from_thread
from fastapi import WebSocket, WebSocketDisconnect
from fastapi.encoders import jsonable_encoder

from fxdojo.core.logging import get_logger

logger = get_logger(__name__)


def user_room(user_id) -> str:
    return f"user:{user_id}"


@dataclass
class Client:
    sid: str
    websocket: WebSocket
    user_id: str
    user_name: Optional[str]
    user_role: str


class ConnectionManager:
    def __init__(self):
        self.clients: dict[str, Client] = {}
        self.rooms: dict[str, set[str]] = defaultdict(set)
        self.client_rooms: dict[str, set[str]] = defaultdict(set)
        self.user_sockets: dict[str, set[str]] = defaultdict(set)
        self.typing: dict[str, set[str]] = defaultdict(set)

    # ---------- connection lifecycle ----------

    async def connect(self, websocket: WebSocket, user_id, user_name, user_role) -> Client:
        await websocket.accept()
        client = Client(
            sid=uuid.uuid4().hex,
            websocket=websocket,
            user_id=str(user_id),
            user_name=user_name,
            user_role=user_role,
        )
        self.clients[client.sid] = client
        first_connection = not self.user_sockets[client.user_id]
        self.user_sockets[client.user_id].add(client.sid)
        self.join(client.sid, user_room(client.user_id))

        logger.info("websocket connected", user_id=client.user_id, sid=client.sid)
        if first_connection:
            await self.broadcast(
                "user_status_changed",
                {"user_id": client.user_id, "status": "online"},
            )
        return client

    async def disconnect(self, sid: str) -> None:
        client = self.clients.pop(sid, None)
        if client is None:
            return

        for room in list(self.client_rooms.get(sid, ())):
            self.leave(sid, room)
            if self.is_chat_room(room):
                await self.emit(
                    room,
                    "user_left",
                    {"user_id": client.user_id, "user_name": client.user_name, "room": room},
                )
        self.client_rooms.pop(sid, None)

        sockets = self.user_sockets.get(client.user_id)
        if sockets is not None:
            sockets.discard(sid)
            if not sockets:
                del self.user_sockets[client.user_id]
                for typers in self.typing.values():
                    typers.discard(client.user_id)
                await self.broadcast(
                    "user_status_changed",
                    {"user_id": client.user_id, "status": "offline"},
                )

        logger.info("websocket disconnected", user_id=client.user_id, sid=sid)

    # ---------- rooms ----------

    @staticmethod
    def is_chat_room(room: str) -> bool:
        return not room.startswith("user:")

    def join(self, sid: str, room: str) -> None:
        self.rooms[room].add(sid)
        self.client_rooms[sid].add(room)

    def leave(self, sid: str, room: str) -> None:
        members = self.rooms.get(room)
        if members is not None:
            members.discard(sid)
            if not members:
                del self.rooms[room]
                self.typing.pop(room, None)
        self.client_rooms.get(sid, set()).discard(room)

    def chat_rooms_of(self, sid: str) -> list[str]:
        return [room for room in self.client_rooms.get(sid, ()) if self.is_chat_room(room)]

    def in_room(self, sid: str, room: str) -> bool:
        return room in self.client_rooms.get(sid, ())

    def room_users(self, room: str) -> list[dict]:
        seen: dict[str, dict] = {}
        for sid in self.rooms.get(room, ()):
            client = self.clients.get(sid)
            if client is not None and client.user_id not in seen:
                seen[client.user_id] = {
                    "user_id": client.user_id,
                    "user_name": client.user_name,
                    "user_role": client.user_role,
                }
        return list(seen.values())

    def online_user_ids(self) -> list[str]:
        return list(self.user_sockets)

    def is_online(self, user_id) -> bool:
        return str(user_id) in self.user_sockets

    def set_typing(self, room: str, user_id: str, is_typing: bool) -> None:
        if is_typing:
            self.typing[room].add(user_id)
        else:
            self.typing.get(room, set()).discard(user_id)

    # ---------- delivery ----------

    async def send(self, sid: str, event: str, data: Any) -> None:
        client = self.clients.get(sid)
        if client is None:
            return
        try:
            await client.websocket.send_json({"event": event, "data": jsonable_encoder(data)})
        except (WebSocketDisconnect, RuntimeError, OSError) as e:
            logger.warning("websocket send failed", sid=sid, event=event, error=str(e))

    async def emit(self, room: str, event: str, data: Any, skip_sid: Optional[str] = None) -> None:
        for sid in list(self.rooms.get(room, ())):
            if sid != skip_sid:
                await self.send(sid, event, data)

    async def broadcast(self, event: str, data: Any) -> None:
        for sid in list(self.clients):
            await self.send(sid, event, data)

    def emit_threadsafe(self, room: str, event: str, data: Any) -> None:
        """Emit from synchronous request handlers running in a worker thread."""
        if not self.rooms.get(room):
            return
        try:
            anyio.from_thread.run(self.emit, room, event, data)
        except RuntimeError as e:
            logger.warning("realtime emit skipped", room=room, event=event, error=str(e))


manager = ConnectionManager()
