import time
from pathlib import PurePath
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from fxdojo.core.logging import get_logger
from fxdojo.integrations.storage import LocalStorage
from fxdojo.modules.auth.models import User

logger = get_logger(__name__)

MAX_AVATAR_BYTES = 5 * 1024 * 1024
AVATAR_CONTENT_TYPES = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
}


class AvatarService:
    def __init__(self, db: Session, storage: LocalStorage):
        self.db = db
        self.storage = storage

    def _drop_current(self, user: User) -> None:
        key = self.storage.key_for(user.avatar_image)
        if key:
            self.storage.delete_object(key)

    def upload(self, user: User, filename: Optional[str], content_type: Optional[str], body: bytes) -> User:
        """Store a new avatar image; it replaces the colour avatar and any previous image."""
        if content_type not in AVATAR_CONTENT_TYPES:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid file type. Only JPEG, PNG, GIF and WebP are allowed.",
            )
        if len(body) > MAX_AVATAR_BYTES:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail="Avatar images are limited to 5MB",
            )

        ext = PurePath(filename or "").suffix.lower() or AVATAR_CONTENT_TYPES[content_type]
        key = f"avatars/avatar_{user.id}_{int(time.time() * 1000)}{ext}"
        url = self.storage.put_object(key, body, content_type)

        self._drop_current(user)
        user.avatar_image = url
        user.avatar_color = None
        self.db.commit()
        self.db.refresh(user)

        logger.info("avatar uploaded", user_id=str(user.id), key=key)
        return user

    def delete(self, user: User) -> User:
        self._drop_current(user)
        user.avatar_image = None
        self.db.commit()
        self.db.refresh(user)
        return user
