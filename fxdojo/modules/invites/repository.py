from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from fxdojo.modules.invites.models import InviteLink, InviteRegistration


class InviteRepository:
    """Repository for InviteLink and InviteRegistration entities."""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, invite_id: uuid.UUID) -> Optional[InviteLink]:
        return self.db.query(InviteLink).filter(InviteLink.id == invite_id).first()

    def get_by_code(self, code: str) -> Optional[InviteLink]:
        return self.db.query(InviteLink).filter(InviteLink.code == code).first()

    def create(
        self,
        code: str,
        created_by: Optional[uuid.UUID],
        max_uses: Optional[int],
        expires_at: Optional[datetime],
        description: Optional[str],
    ) -> InviteLink:
        invite = InviteLink(
            code=code,
            created_by=created_by,
            max_uses=max_uses,
            expires_at=expires_at,
            description=description,
            is_active=True,
            used_count=0,
        )
        self.db.add(invite)
        self.db.flush()
        return invite

    def list_page(self, offset: int, limit: int) -> list[InviteLink]:
        return (
            self.db.query(InviteLink)
            .order_by(InviteLink.created_at.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def count(self, active_only: bool = False) -> int:
        query = self.db.query(InviteLink)
        if active_only:
            query = query.filter(InviteLink.is_active.is_(True))
        return query.count()

    def delete(self, invite: InviteLink) -> None:
        self.db.query(InviteRegistration).filter(
            InviteRegistration.invite_id == invite.id
        ).delete(synchronize_session=False)
        self.db.delete(invite)
        self.db.flush()

    def get_registration_for_user(self, user_id: uuid.UUID) -> Optional[InviteRegistration]:
        return (
            self.db.query(InviteRegistration)
            .filter(InviteRegistration.user_id == user_id)
            .first()
        )

    def create_registration(self, invite: InviteLink, user_id: uuid.UUID) -> InviteRegistration:
        registration = InviteRegistration(invite_id=invite.id, user_id=user_id)
        self.db.add(registration)
        invite.used_count = invite.used_count + 1
        self.db.flush()
        return registration

    def count_registrations(self, since: Optional[datetime] = None) -> int:
        query = self.db.query(InviteRegistration)
        if since is not None:
            query = query.filter(InviteRegistration.registered_at >= since)
        return query.count()

    def recent_registrations(self, since: datetime, limit: int = 10) -> list[InviteRegistration]:
        return (
            self.db.query(InviteRegistration)
            .filter(InviteRegistration.registered_at >= since)
            .order_by(InviteRegistration.registered_at.desc())
            .limit(limit)
            .all()
        )
