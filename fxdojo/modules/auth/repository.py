from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from fxdojo.modules.auth.models import (
    PendingUser,
    PendingUserStatus,
    Role,
    User,
    UserRole,
    UserSession,
    UserStatus,
)


class UserRepository:
    """Repository for User entity with CRUD operations."""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        """Get user by ID."""
        return self.db.query(User).filter(User.id == user_id).first()

    def get_by_email(self, email: str) -> Optional[User]:
        """Get user by email."""
        return self.db.query(User).filter(User.email == email).first()

    def create(
        self,
        email: str,
        full_name: str,
        password_hash: str,
        discord_name: Optional[str] = None,
        email_verified: bool = False,
    ) -> User:
        """Create a new user."""
        user = User(
            email=email,
            full_name=full_name,
            discord_name=discord_name,
            password_hash=password_hash,
            email_verified=email_verified,
            status=UserStatus.active,
        )
        self.db.add(user)
        self.db.flush()  # flush to get the ID without committing
        return user

    def list_active_except(self, user_id: uuid.UUID) -> list[User]:
        return (
            self.db.query(User)
            .filter(User.id != user_id, User.status == UserStatus.active)
            .order_by(User.full_name.asc())
            .all()
        )

    def delete(self, user: User) -> None:
        """Delete user."""
        self.db.delete(user)
        self.db.flush()


class RoleRepository:
    """Repository for Role entity."""

    def __init__(self, db: Session):
        self.db = db

    def get_by_name(self, name: str) -> Optional[Role]:
        """Get role by name."""
        return self.db.query(Role).filter(Role.name == name).first()

    def get_or_create(self, name: str) -> Role:
        role = self.get_by_name(name)
        if role is None:
            role = Role(name=name)
            self.db.add(role)
            self.db.flush()
        return role


class UserRoleRepository:
    """Repository for UserRole links."""

    def __init__(self, db: Session):
        self.db = db

    def assign_role(self, user_id: uuid.UUID, role_id: uuid.UUID) -> UserRole:
        """Assign a role to a user."""
        user_role = UserRole(user_id=user_id, role_id=role_id)
        self.db.add(user_role)
        self.db.flush()
        return user_role

    def clear_roles(self, user_id: uuid.UUID) -> None:
        self.db.query(UserRole).filter(UserRole.user_id == user_id).delete(
            synchronize_session=False
        )
        self.db.flush()

    def count_users_with_role(self, role_name: str) -> int:
        return (
            self.db.query(UserRole)
            .join(Role, Role.id == UserRole.role_id)
            .filter(Role.name == role_name)
            .count()
        )


class SessionRepository:
    """Repository for refresh-token sessions."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, user_id: uuid.UUID, refresh_token: str, expires_at: datetime) -> UserSession:
        session = UserSession(user_id=user_id, refresh_token=refresh_token, expires_at=expires_at)
        self.db.add(session)
        self.db.flush()
        return session

    def get_by_token(self, refresh_token: str) -> Optional[UserSession]:
        return (
            self.db.query(UserSession)
            .filter(UserSession.refresh_token == refresh_token)
            .first()
        )

    def list_for_user(self, user_id: uuid.UUID) -> list[UserSession]:
        return (
            self.db.query(UserSession)
            .filter(UserSession.user_id == user_id)
            .order_by(UserSession.created_at.desc())
            .all()
        )

    def prune(self, user_id: uuid.UUID, keep: int) -> int:
        """Delete all but the `keep` newest sessions of a user."""
        stale = self.list_for_user(user_id)[keep:]
        for session in stale:
            self.db.delete(session)
        self.db.flush()
        return len(stale)

    def delete(self, session: UserSession) -> None:
        self.db.delete(session)
        self.db.flush()

    def delete_for_user(self, user_id: uuid.UUID) -> int:
        deleted = (
            self.db.query(UserSession)
            .filter(UserSession.user_id == user_id)
            .delete(synchronize_session=False)
        )
        self.db.flush()
        return deleted


class PendingUserRepository:
    """Repository for registration requests awaiting approval."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, **fields) -> PendingUser:
        pending = PendingUser(**fields)
        self.db.add(pending)
        self.db.flush()
        return pending

    def get_by_token(self, token: str) -> Optional[PendingUser]:
        return (
            self.db.query(PendingUser)
            .filter(PendingUser.approval_token == token)
            .first()
        )

    def get_pending_by_email(self, email: str) -> Optional[PendingUser]:
        return (
            self.db.query(PendingUser)
            .filter(
                PendingUser.email == email,
                PendingUser.status == PendingUserStatus.pending,
            )
            .first()
        )

    def list_pending(self) -> list[PendingUser]:
        return (
            self.db.query(PendingUser)
            .filter(PendingUser.status == PendingUserStatus.pending)
            .order_by(PendingUser.requested_at.desc())
            .all()
        )

    def count_pending(self) -> int:
        return (
            self.db.query(PendingUser)
            .filter(PendingUser.status == PendingUserStatus.pending)
            .count()
        )
