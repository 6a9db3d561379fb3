from __future__ import annotations

from collections.abc import Callable, Generator
import uuid
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.orm import Session

from fxdojo.db.session import SessionLocal
from fxdojo.core.security import decode_access_token
from fxdojo.modules.auth.models import ROLE_ADMIN, STAFF_ROLES, User, UserStatus


# ---------- DB DEPENDENCY ----------


def open_session() -> Session:
    """A fresh session for work outside a request, e.g. one websocket frame."""
    return SessionLocal()


def get_db() -> Generator[Session, None, None]:
    db = open_session()
    try:
        yield db
    finally:
        db.close()


# ---------- AUTH DEPENDENCIES ----------

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")
optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)


def get_user_from_token(db: Session, token: str) -> Optional[User]:
    """Resolve an access token to its user, or None when it does not verify."""
    try:
        payload = decode_access_token(token)
        sub = payload.get("sub")
        if sub is None or payload.get("type") != "access":
            return None
        user_id = uuid.UUID(sub)
    except (JWTError, ValueError):
        return None

    return db.query(User).filter(User.id == user_id).first()


def get_current_user(
    db: Session = Depends(get_db),
    token: str = Depends(oauth2_scheme),
) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if not token:
        raise credentials_exception

    user = get_user_from_token(db, token)
    if user is None:
        raise credentials_exception

    return user


def get_current_active_user(
    current_user: User = Depends(get_current_user),
) -> User:
    if current_user.status != UserStatus.active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Inactive or blocked user",
        )
    return current_user


def get_optional_user(
    db: Session = Depends(get_db),
    token: Optional[str] = Depends(optional_oauth2_scheme),
) -> Optional[User]:
    """Like get_current_active_user, but anonymous callers get None instead of 401."""
    if not token:
        return None
    user = get_user_from_token(db, token)
    if user is None or user.status != UserStatus.active:
        return None
    return user


def require_roles(*allowed: str) -> Callable[..., User]:
    """Dependency factory: the current user must hold one of `allowed` roles."""

    def checker(current_user: User = Depends(get_current_active_user)) -> User:
        if not any(name in allowed for name in current_user.role_names):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return current_user

    return checker


get_current_admin = require_roles(ROLE_ADMIN)
get_current_staff = require_roles(*STAFF_ROLES)
