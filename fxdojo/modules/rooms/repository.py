from __future__ import annotations

import uuid
from typing import Optional

from sqlalchemy.orm import Session

from fxdojo.modules.rooms.models import PrivateRoom, PrivateRoomMember, RoomRole


class RoomRepository:
    """Repository for private rooms and their memberships."""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, room_id: uuid.UUID) -> Optional[PrivateRoom]:
        return self.db.query(PrivateRoom).filter(PrivateRoom.id == room_id).first()

    def get_by_slug(self, slug: str) -> Optional[PrivateRoom]:
        return self.db.query(PrivateRoom).filter(PrivateRoom.slug == slug).first()

    def slug_exists(self, slug: str) -> bool:
        return self.get_by_slug(slug) is not None

    def create(self, **fields) -> PrivateRoom:
        room = PrivateRoom(**fields)
        self.db.add(room)
        self.db.flush()
        return room

    def delete(self, room: PrivateRoom) -> None:
        self.db.delete(room)
        self.db.flush()

    def list_for_member(self, user_id: uuid.UUID) -> list[PrivateRoom]:
        return (
            self.db.query(PrivateRoom)
            .join(PrivateRoomMember, PrivateRoomMember.room_id == PrivateRoom.id)
            .filter(
                PrivateRoomMember.user_id == user_id,
                PrivateRoomMember.is_active.is_(True),
                PrivateRoomMember.is_banned.is_(False),
            )
            .order_by(PrivateRoom.created_at.desc())
            .all()
        )

    def room_ids_for_member(self, user_id: uuid.UUID) -> list[uuid.UUID]:
        rows = (
            self.db.query(PrivateRoomMember.room_id)
            .filter(
                PrivateRoomMember.user_id == user_id,
                PrivateRoomMember.is_active.is_(True),
                PrivateRoomMember.is_banned.is_(False),
            )
            .all()
        )
        return [row[0] for row in rows]

    def get_member(self, room_id: uuid.UUID, user_id: uuid.UUID) -> Optional[PrivateRoomMember]:
        return (
            self.db.query(PrivateRoomMember)
            .filter(
                PrivateRoomMember.room_id == room_id,
                PrivateRoomMember.user_id == user_id,
            )
            .first()
        )

    def list_active_members(self, room_id: uuid.UUID) -> list[PrivateRoomMember]:
        return (
            self.db.query(PrivateRoomMember)
            .filter(
                PrivateRoomMember.room_id == room_id,
                PrivateRoomMember.is_active.is_(True),
                PrivateRoomMember.is_banned.is_(False),
            )
            .order_by(PrivateRoomMember.joined_at.asc())
            .all()
        )

    def count_active_members(self, room_id: uuid.UUID) -> int:
        return (
            self.db.query(PrivateRoomMember)
            .filter(
                PrivateRoomMember.room_id == room_id,
                PrivateRoomMember.is_active.is_(True),
                PrivateRoomMember.is_banned.is_(False),
            )
            .count()
        )

    def add_member(
        self,
        room_id: uuid.UUID,
        user_id: uuid.UUID,
        role: RoomRole = RoomRole.member,
        invited_by: Optional[uuid.UUID] = None,
    ) -> PrivateRoomMember:
        member = PrivateRoomMember(
            room_id=room_id,
            user_id=user_id,
            role=role,
            invited_by=invited_by,
        )
        self.db.add(member)
        self.db.flush()
        return member
