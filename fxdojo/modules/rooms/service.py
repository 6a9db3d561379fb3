from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from fxdojo.core.logging import get_logger
from fxdojo.core.security import get_password_hash, verify_password
from fxdojo.core.slug import unique_slug
from fxdojo.modules.auth.models import User
from fxdojo.modules.auth.repository import UserRepository
from fxdojo.modules.rooms.models import PrivateRoom, PrivateRoomMember, RoomRole
from fxdojo.modules.rooms.repository import RoomRepository
from fxdojo.schemas.room import RoomCreate, RoomUpdate

logger = get_logger(__name__)

MIN_MEMBERS = 1
MAX_MEMBERS = 100
DEFAULT_MAX_MEMBERS = 50


def clamp_max_members(value: int) -> int:
    return max(MIN_MEMBERS, min(MAX_MEMBERS, value))


class PrivateRoomService:
    """Private chat rooms: membership, access keys and invitations."""

    def __init__(self, db: Session):
        self.db = db
        self.room_repo = RoomRepository(db)
        self.user_repo = UserRepository(db)

    # ---------- helpers ----------

    def get_room_or_404(self, room_id: uuid.UUID) -> PrivateRoom:
        room = self.room_repo.get_by_id(room_id)
        if not room:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Room not found",
            )
        return room

    def is_member(self, room: PrivateRoom, user_id: uuid.UUID) -> bool:
        """Creator, or an active member who is not banned."""
        if room.created_by == user_id:
            return True
        member = self.room_repo.get_member(room.id, user_id)
        return bool(member and member.is_active and not member.is_banned)

    def _require_creator(self, room: PrivateRoom, user: User) -> None:
        if room.created_by != user.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only the room creator can do this",
            )

    def _require_capacity(self, room: PrivateRoom) -> None:
        if self.room_repo.count_active_members(room.id) >= room.max_members:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Room is full",
            )

    # ---------- rooms ----------

    def create_room(self, payload: RoomCreate, creator: User) -> PrivateRoom:
        room = self.room_repo.create(
            name=payload.name,
            description=payload.description,
            slug=unique_slug(payload.name, self.room_repo.slug_exists),
            access_key_hash=get_password_hash(payload.access_key) if payload.access_key else None,
            is_public=payload.is_public,
            max_members=clamp_max_members(payload.max_members),
            allow_invites=payload.allow_invites,
            require_approval=payload.require_approval,
            created_by=creator.id,
        )
        self.room_repo.add_member(room.id, creator.id, role=RoomRole.owner)
        self.db.commit()
        self.db.refresh(room)
        logger.info("private room created", room_id=str(room.id), slug=room.slug, user_id=str(creator.id))
        return room

    def list_my_rooms(self, user: User) -> list[PrivateRoom]:
        return self.room_repo.list_for_member(user.id)

    def get_room(self, room_id: uuid.UUID, user: User) -> PrivateRoom:
        room = self.get_room_or_404(room_id)
        if not self.is_member(room, user.id):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Not a member of this room",
            )
        return room

    def update_room(self, room_id: uuid.UUID, payload: RoomUpdate, user: User) -> PrivateRoom:
        room = self.get_room_or_404(room_id)
        self._require_creator(room, user)

        fields = payload.model_dump(exclude_unset=True)
        if "access_key" in fields:
            access_key = fields.pop("access_key")
            room.access_key_hash = get_password_hash(access_key) if access_key else None
        if fields.get("max_members") is not None:
            fields["max_members"] = clamp_max_members(fields["max_members"])

        for key, value in fields.items():
            if value is not None:
                setattr(room, key, value)

        self.db.commit()
        self.db.refresh(room)
        logger.info("private room updated", room_id=str(room.id))
        return room

    def delete_room(self, room_id: uuid.UUID, user: User) -> None:
        room = self.get_room_or_404(room_id)
        self._require_creator(room, user)
        self.room_repo.delete(room)
        self.db.commit()
        logger.info("private room deleted", room_id=str(room_id), user_id=str(user.id))

    # ---------- membership ----------

    def join_room(self, room_id: uuid.UUID, user: User, access_key: Optional[str] = None) -> PrivateRoomMember:
        room = self.get_room_or_404(room_id)
        member = self.room_repo.get_member(room.id, user.id)

        if member is not None:
            if member.is_banned:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail="You are banned from this room",
                )
            if member.is_active:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Already a member of this room",
                )
            member.is_active = True
            member.joined_at = datetime.utcnow()
            self.db.commit()
            self.db.refresh(member)
            logger.info("private room member rejoined", room_id=str(room.id), user_id=str(user.id))
            return member

        self._require_capacity(room)

        if not room.is_public and room.access_key_hash and not (
            access_key and verify_password(access_key, room.access_key_hash)
        ):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Invalid access key",
            )

        member = self.room_repo.add_member(room.id, user.id)
        self.db.commit()
        self.db.refresh(member)
        logger.info("private room joined", room_id=str(room.id), user_id=str(user.id))
        return member

    def leave_room(self, room_id: uuid.UUID, user: User) -> None:
        room = self.get_room_or_404(room_id)
        if room.created_by == user.id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="The room creator cannot leave the room",
            )
        member = self.room_repo.get_member(room.id, user.id)
        if member is None or not member.is_active:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Not a member of this room",
            )
        member.is_active = False
        self.db.commit()
        logger.info("private room left", room_id=str(room.id), user_id=str(user.id))

    def list_members(self, room_id: uuid.UUID, user: User) -> list[PrivateRoomMember]:
        room = self.get_room(room_id, user)
        return self.room_repo.list_active_members(room.id)

    def invite_user(self, room_id: uuid.UUID, email: str, inviter: User) -> PrivateRoomMember:
        room = self.get_room_or_404(room_id)
        inviter_member = self.room_repo.get_member(room.id, inviter.id)
        if inviter_member is None or not inviter_member.is_active or inviter_member.is_banned:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Not a member of this room",
            )
        if inviter_member.role == RoomRole.member and not room.allow_invites:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only owners and moderators can invite to this room",
            )

        invitee = self.user_repo.get_by_email(email.lower())
        if not invitee:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User not found",
            )

        member = self.room_repo.get_member(room.id, invitee.id)
        if member is not None and member.is_banned:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="User is banned from this room",
            )
        if member is not None and member.is_active:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="User is already a member of this room",
            )
        self._require_capacity(room)

        if member is None:
            member = self.room_repo.add_member(room.id, invitee.id, invited_by=inviter.id)
        else:
            member.is_active = True
            member.invited_by = inviter.id
            member.joined_at = datetime.utcnow()

        self.db.commit()
        self.db.refresh(member)
        logger.info(
            "private room invite",
            room_id=str(room.id),
            user_id=str(invitee.id),
            invited_by=str(inviter.id),
        )
        return member

    def remove_member(self, room_id: uuid.UUID, user_id: uuid.UUID, actor: User) -> None:
        room = self.get_room_or_404(room_id)
        if user_id == actor.id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Use leave to remove yourself",
            )
        if user_id == room.created_by:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="The room creator cannot be removed",
            )

        target = self.room_repo.get_member(room.id, user_id)
        if target is None or not target.is_active:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Member not found",
            )

        if room.created_by != actor.id:
            actor_member = self.room_repo.get_member(room.id, actor.id)
            is_moderator = (
                actor_member is not None
                and actor_member.is_active
                and actor_member.role == RoomRole.moderator
            )
            if not is_moderator or target.role != RoomRole.member:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail="Insufficient permissions",
                )

        target.is_active = False
        self.db.commit()
        logger.info("private room member removed", room_id=str(room.id), user_id=str(user_id), removed_by=str(actor.id))

    def verify_access_key(self, slug: str, access_key: str) -> Optional[PrivateRoom]:
        """The room when `access_key` opens it, else None."""
        room = self.room_repo.get_by_slug(slug)
        if room is None or room.access_key_hash is None:
            return None
        if not verify_password(access_key, room.access_key_hash):
            return None
        return room
