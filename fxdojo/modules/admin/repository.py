from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from fxdojo.modules.access.models import UserLessonAccess
from fxdojo.modules.auth.models import PendingUser, Role, User, UserRole, UserSession
from fxdojo.modules.chat.models import ChatMessage, MessageRead
from fxdojo.modules.invites.models import InviteRegistration
from fxdojo.modules.progress.models import Progress
from fxdojo.modules.rooms.models import PrivateRoom, PrivateRoomMember
from fxdojo.modules.subscriptions.models import Payment, Subscription


class AdminRepository:
    """Cross-module queries used by the administration console."""

    def __init__(self, db: Session):
        self.db = db

    def search_users(
        self,
        search: Optional[str],
        role: Optional[str],
        offset: int,
        limit: int,
    ) -> tuple[list[User], int]:
        query = self.db.query(User)
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(
                    User.email.ilike(pattern),
                    User.full_name.ilike(pattern),
                    User.discord_name.ilike(pattern),
                )
            )
        if role:
            query = (
                query.join(UserRole, UserRole.user_id == User.id)
                .join(Role, Role.id == UserRole.role_id)
                .filter(Role.name == role)
            )
        total = query.count()
        users = query.order_by(User.created_at.desc()).offset(offset).limit(limit).all()
        return users, total

    def count_users(self) -> int:
        return self.db.query(User).count()

    def count_users_active_since(self, since: datetime) -> int:
        return self.db.query(User).filter(User.last_login_at >= since).count()

    def count_users_created_since(self, since: datetime) -> int:
        return self.db.query(User).filter(User.created_at >= since).count()

    def purge_user(self, user: User) -> None:
        """Delete a user and every row that belongs to them."""
        user_id = user.id

        own_message_ids = [
            row[0]
            for row in self.db.query(ChatMessage.id).filter(ChatMessage.user_id == user_id).all()
        ]
        reads = self.db.query(MessageRead).filter(MessageRead.user_id == user_id)
        if own_message_ids:
            reads = self.db.query(MessageRead).filter(
                or_(MessageRead.user_id == user_id, MessageRead.message_id.in_(own_message_ids))
            )
        reads.delete(synchronize_session=False)
        self.db.query(ChatMessage).filter(ChatMessage.user_id == user_id).delete(synchronize_session=False)

        owned_room_ids = [
            row[0]
            for row in self.db.query(PrivateRoom.id).filter(PrivateRoom.created_by == user_id).all()
        ]
        if owned_room_ids:
            self.db.query(PrivateRoomMember).filter(
                PrivateRoomMember.room_id.in_(owned_room_ids)
            ).delete(synchronize_session=False)
            self.db.query(PrivateRoom).filter(PrivateRoom.id.in_(owned_room_ids)).delete(
                synchronize_session=False
            )
        self.db.query(PrivateRoomMember).filter(PrivateRoomMember.user_id == user_id).delete(
            synchronize_session=False
        )

        self.db.query(Payment).filter(Payment.user_id == user_id).delete(synchronize_session=False)
        self.db.query(Subscription).filter(Subscription.user_id == user_id).delete(synchronize_session=False)
        self.db.query(Progress).filter(Progress.user_id == user_id).delete(synchronize_session=False)
        self.db.query(UserLessonAccess).filter(UserLessonAccess.user_id == user_id).delete(
            synchronize_session=False
        )
        self.db.query(InviteRegistration).filter(InviteRegistration.user_id == user_id).delete(
            synchronize_session=False
        )
        self.db.query(UserSession).filter(UserSession.user_id == user_id).delete(synchronize_session=False)
        self.db.query(UserRole).filter(UserRole.user_id == user_id).delete(synchronize_session=False)
        self.db.query(PendingUser).filter(PendingUser.approved_by == user_id).update(
            {PendingUser.approved_by: None}, synchronize_session=False
        )

        self.db.expire(user)
        self.db.delete(user)
        self.db.flush()

    def get_user(self, user_id: uuid.UUID) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()
