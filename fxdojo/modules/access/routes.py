# fxdojo/modules/access/routes.py
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from fxdojo.db.deps import get_current_admin, get_db
from fxdojo.modules.access.service import LessonAccessService
from fxdojo.modules.auth.models import User
from fxdojo.schemas.access import (
    AdhocAccessRead,
    AdhocAccessWithLesson,
    AdhocAccessWithUser,
    AdhocBulkGrant,
    AdhocGrant,
    AdhocRevoke,
    BulkGrantResult,
)

router = APIRouter(prefix="/admin/adhoc-access", tags=["adhoc-access"])


@router.post("/grant", response_model=AdhocAccessRead)
def grant_access(
    payload: AdhocGrant,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    return LessonAccessService(db).grant(
        admin,
        user_id=payload.user_id,
        lesson_id=payload.lesson_id,
        reason=payload.reason,
        start_date=payload.start_date,
        end_date=payload.end_date,
    )


@router.post("/revoke", response_model=AdhocAccessRead)
def revoke_access(
    payload: AdhocRevoke,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    return LessonAccessService(db).revoke(payload.user_id, payload.lesson_id)


@router.post("/bulk-grant", response_model=BulkGrantResult)
def bulk_grant_access(
    payload: AdhocBulkGrant,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    return LessonAccessService(db).bulk_grant(
        admin,
        user_ids=payload.user_ids,
        lesson_id=payload.lesson_id,
        reason=payload.reason,
        start_date=payload.start_date,
        end_date=payload.end_date,
    )


@router.get("/user/{user_id}", response_model=list[AdhocAccessWithLesson])
def list_user_access(
    user_id: UUID,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    return LessonAccessService(db).list_for_user(user_id)


@router.get("/lesson/{lesson_id}", response_model=list[AdhocAccessWithUser])
def list_lesson_access(
    lesson_id: UUID,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    return LessonAccessService(db).list_for_lesson(lesson_id)
