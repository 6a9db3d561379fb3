# fxdojo/modules/rooms/routes.py
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from fxdojo.db.deps import get_current_active_user, get_db
from fxdojo.modules.auth.models import User
from fxdojo.modules.rooms.service import PrivateRoomService
from fxdojo.schemas.room import (
    RoomCreate,
    RoomInvite,
    RoomJoin,
    RoomMemberRead,
    RoomRead,
    RoomUpdate,
    RoomVerify,
    RoomVerifyResult,
)

router = APIRouter(prefix="/rooms", tags=["rooms"])


@router.post("", response_model=RoomRead, status_code=status.HTTP_201_CREATED)
def create_room(
    payload: RoomCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    return PrivateRoomService(db).create_room(payload, current_user)


@router.get("", response_model=list[RoomRead])
def list_rooms(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    return PrivateRoomService(db).list_my_rooms(current_user)


@router.post("/verify-password", response_model=RoomVerifyResult)
def verify_room_password(
    payload: RoomVerify,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    room = PrivateRoomService(db).verify_access_key(payload.slug, payload.access_key)
    return RoomVerifyResult(
        valid=room is not None,
        room=RoomRead.model_validate(room) if room is not None else None,
    )


@router.get("/{room_id}", response_model=RoomRead)
def get_room(
    room_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    return PrivateRoomService(db).get_room(room_id, current_user)


@router.put("/{room_id}", response_model=RoomRead)
def update_room(
    room_id: UUID,
    payload: RoomUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    return PrivateRoomService(db).update_room(room_id, payload, current_user)


@router.delete("/{room_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_room(
    room_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    PrivateRoomService(db).delete_room(room_id, current_user)
    return None


@router.post("/{room_id}/join", response_model=RoomMemberRead)
def join_room(
    room_id: UUID,
    payload: RoomJoin,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    return PrivateRoomService(db).join_room(room_id, current_user, payload.access_key)


@router.post("/{room_id}/leave")
def leave_room(
    room_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    PrivateRoomService(db).leave_room(room_id, current_user)
    return {"success": True}


@router.get("/{room_id}/members", response_model=list[RoomMemberRead])
def list_members(
    room_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    return PrivateRoomService(db).list_members(room_id, current_user)


@router.post("/{room_id}/invite", response_model=RoomMemberRead, status_code=status.HTTP_201_CREATED)
def invite_to_room(
    room_id: UUID,
    payload: RoomInvite,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    return PrivateRoomService(db).invite_user(room_id, payload.email, current_user)


@router.delete("/{room_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_member(
    room_id: UUID,
    user_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    PrivateRoomService(db).remove_member(room_id, user_id, current_user)
    return None
