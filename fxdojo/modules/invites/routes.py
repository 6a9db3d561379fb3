# fxdojo/modules/invites/routes.py
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from fxdojo.db.deps import get_current_active_user, get_current_admin, get_db
from fxdojo.modules.auth.models import User
from fxdojo.modules.invites.service import InviteService
from fxdojo.schemas.invite import (
    InviteCode,
    InviteCreate,
    InviteDetail,
    InvitePage,
    InviteRead,
    InviteRegistrationRead,
    InviteStats,
    InviteToggle,
    InviteValidation,
)

router = APIRouter(prefix="/invites", tags=["invites"])


@router.post("", response_model=InviteRead, status_code=status.HTTP_201_CREATED)
def create_invite(
    payload: InviteCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    return InviteService(db).create_invite(
        created_by=admin,
        max_uses=payload.max_uses,
        expires_at=payload.expires_at,
        description=payload.description,
    )


@router.post("/validate", response_model=InviteValidation)
def validate_invite(
    payload: InviteCode,
    db: Session = Depends(get_db),
):
    """Public check used by the registration form."""
    check = InviteService(db).check_code(payload.code)
    return InviteValidation(
        valid=check.valid,
        reason=check.reason,
        remaining_uses=check.remaining_uses if check.valid else None,
        invite=InviteRead.model_validate(check.invite) if check.valid else None,
    )


@router.post("/use", response_model=InviteRegistrationRead, status_code=status.HTTP_201_CREATED)
def use_invite(
    payload: InviteCode,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    return InviteService(db).use_invite(payload.code, current_user)


@router.get("", response_model=InvitePage)
def list_invites(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    return InviteService(db).list_invites(page=page, limit=limit)


@router.get("/stats/overview", response_model=InviteStats)
def invite_stats(
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    return InviteService(db).stats()


@router.get("/user/registration", response_model=Optional[InviteRegistrationRead])
def my_invite_registration(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    return InviteService(db).get_user_registration(current_user)


@router.get("/{invite_id}", response_model=InviteDetail)
def get_invite(
    invite_id: UUID,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    return InviteService(db).get_invite(invite_id)


@router.patch("/{invite_id}/toggle", response_model=InviteRead)
def toggle_invite(
    invite_id: UUID,
    payload: InviteToggle,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    return InviteService(db).set_active(invite_id, payload.is_active)


@router.delete("/{invite_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_invite(
    invite_id: UUID,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    InviteService(db).delete_invite(invite_id)
    return None
