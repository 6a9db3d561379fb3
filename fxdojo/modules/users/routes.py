# fxdojo/modules/users/routes.py
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from sqlalchemy.orm import Session

from fxdojo.db.deps import get_current_active_user, get_db
from fxdojo.integrations.storage import LocalStorage, get_storage
from fxdojo.modules.auth.models import User
from fxdojo.modules.users.service import MAX_AVATAR_BYTES, AvatarService
from fxdojo.schemas.user import AvatarUpdated

router = APIRouter(prefix="/user", tags=["user"])


@router.post("/avatar", response_model=AvatarUpdated)
def upload_avatar(
    avatar: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    storage: LocalStorage = Depends(get_storage),
    current_user: User = Depends(get_current_active_user),
):
    """Upload a profile image (multipart field `avatar`, max 5MB)."""
    if avatar is None or not avatar.filename:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No file uploaded",
        )
    # one byte past the limit is enough to reject
    body = avatar.file.read(MAX_AVATAR_BYTES + 1)
    user = AvatarService(db, storage).upload(current_user, avatar.filename, avatar.content_type, body)
    return {"message": "Avatar image uploaded", "user": user, "avatar_url": user.avatar_image}


@router.delete("/avatar", response_model=AvatarUpdated)
def delete_avatar(
    db: Session = Depends(get_db),
    storage: LocalStorage = Depends(get_storage),
    current_user: User = Depends(get_current_active_user),
):
    user = AvatarService(db, storage).delete(current_user)
    return {"message": "Avatar image deleted", "user": user, "avatar_url": None}
