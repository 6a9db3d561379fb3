from __future__ import annotations

import math
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from fxdojo.core.logging import get_logger
from fxdojo.core.security import generate_token
from fxdojo.modules.auth.models import User
from fxdojo.modules.invites.models import InviteLink, InviteRegistration
from fxdojo.modules.invites.repository import InviteRepository

logger = get_logger(__name__)

REASON_INVALID = "invalid"
REASON_DEACTIVATED = "deactivated"
REASON_EXPIRED = "expired"
REASON_USAGE_LIMIT = "usage_limit_reached"

REASON_MESSAGES = {
    REASON_INVALID: "Invalid invite code",
    REASON_DEACTIVATED: "This invite link has been deactivated",
    REASON_EXPIRED: "This invite link has expired",
    REASON_USAGE_LIMIT: "This invite link has reached its usage limit",
}


@dataclass
class InviteCheck:
    valid: bool
    reason: Optional[str] = None
    invite: Optional[InviteLink] = None

    @property
    def remaining_uses(self) -> Optional[int]:
        return self.invite.remaining_uses if self.invite is not None else None


class InviteService:
    """Invite links gate who may request an account."""

    def __init__(self, db: Session):
        self.db = db
        self.invite_repo = InviteRepository(db)

    def create_invite(
        self,
        created_by: User,
        max_uses: Optional[int] = None,
        expires_at: Optional[datetime] = None,
        description: Optional[str] = None,
    ) -> InviteLink:
        code = generate_token(16)
        while self.invite_repo.get_by_code(code) is not None:
            code = generate_token(16)

        invite = self.invite_repo.create(
            code=code,
            created_by=created_by.id,
            max_uses=max_uses,
            expires_at=expires_at,
            description=description,
        )
        self.db.commit()
        self.db.refresh(invite)
        logger.info("invite created", invite_id=str(invite.id), max_uses=max_uses)
        return invite

    def check_code(self, code: str, now: Optional[datetime] = None) -> InviteCheck:
        now = now or datetime.utcnow()
        invite = self.invite_repo.get_by_code(code)
        if invite is None:
            return InviteCheck(valid=False, reason=REASON_INVALID)
        if not invite.is_active:
            return InviteCheck(valid=False, reason=REASON_DEACTIVATED, invite=invite)
        if invite.expires_at is not None and invite.expires_at < now:
            return InviteCheck(valid=False, reason=REASON_EXPIRED, invite=invite)
        if invite.max_uses is not None and invite.used_count >= invite.max_uses:
            return InviteCheck(valid=False, reason=REASON_USAGE_LIMIT, invite=invite)
        return InviteCheck(valid=True, invite=invite)

    def require_valid(self, code: str) -> InviteLink:
        """Return the invite for `code` or raise 400 naming why it is unusable."""
        check = self.check_code(code)
        if not check.valid:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=REASON_MESSAGES[check.reason],
            )
        return check.invite

    def record_registration(self, invite: InviteLink, user_id: uuid.UUID) -> InviteRegistration:
        """Attach a user to the invite they came through; caller commits."""
        if self.invite_repo.get_registration_for_user(user_id) is not None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="User has already registered with an invite",
            )
        return self.invite_repo.create_registration(invite, user_id)

    def use_invite(self, code: str, user: User) -> InviteRegistration:
        invite = self.require_valid(code)
        registration = self.record_registration(invite, user.id)
        self.db.commit()
        self.db.refresh(registration)
        logger.info("invite used", invite_id=str(invite.id), user_id=str(user.id))
        return registration

    def get_invite(self, invite_id: uuid.UUID) -> InviteLink:
        invite = self.invite_repo.get_by_id(invite_id)
        if not invite:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Invite not found",
            )
        return invite

    def list_invites(self, page: int, limit: int) -> dict:
        total = self.invite_repo.count()
        items = self.invite_repo.list_page(offset=(page - 1) * limit, limit=limit)
        return {
            "items": items,
            "total": total,
            "page": page,
            "limit": limit,
            "pages": math.ceil(total / limit) if total else 0,
        }

    def set_active(self, invite_id: uuid.UUID, is_active: bool) -> InviteLink:
        invite = self.get_invite(invite_id)
        invite.is_active = is_active
        self.db.commit()
        self.db.refresh(invite)
        logger.info("invite toggled", invite_id=str(invite.id), is_active=is_active)
        return invite

    def delete_invite(self, invite_id: uuid.UUID) -> None:
        invite = self.get_invite(invite_id)
        self.invite_repo.delete(invite)
        self.db.commit()
        logger.info("invite deleted", invite_id=str(invite_id))

    def stats(self, now: Optional[datetime] = None) -> dict:
        now = now or datetime.utcnow()
        since = now - timedelta(days=30)
        return {
            "total_invites": self.invite_repo.count(),
            "active_invites": self.invite_repo.count(active_only=True),
            "total_registrations": self.invite_repo.count_registrations(),
            "recent_registrations_count": self.invite_repo.count_registrations(since=since),
            "recent_registrations": self.invite_repo.recent_registrations(since, limit=10),
        }

    def get_user_registration(self, user: User) -> Optional[InviteRegistration]:
        return self.invite_repo.get_registration_for_user(user.id)
