# fxdojo/modules/progress/routes.py
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from fxdojo.db.deps import get_current_active_user, get_db
from fxdojo.modules.auth.models import User
from fxdojo.modules.progress.service import ProgressService
from fxdojo.schemas.progress import ProgressRead, ProgressUpdate, ProgressWithLesson

router = APIRouter(tags=["progress"])


@router.post("/lessons/{lesson_id}/progress", response_model=ProgressRead)
def update_lesson_progress(
    lesson_id: UUID,
    payload: ProgressUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    return ProgressService(db).update_progress(
        lesson_id,
        current_user,
        watched_seconds=payload.watched_seconds,
        completed=payload.completed,
    )


@router.post("/lessons/{lesson_id}/complete", response_model=ProgressRead)
def complete_lesson(
    lesson_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    return ProgressService(db).complete_lesson(lesson_id, current_user)


@router.get("/lessons/{lesson_id}/progress", response_model=ProgressRead)
def get_lesson_progress(
    lesson_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    return ProgressService(db).get_progress(lesson_id, current_user)


@router.get("/progress/me", response_model=list[ProgressWithLesson])
def my_progress(
    course_id: Optional[UUID] = Query(default=None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """The caller's progress rows, most recently watched first."""
    return ProgressService(db).list_my_progress(current_user, course_id)
