# fxdojo/modules/courses/lesson_routes.py
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from fxdojo.db.deps import (
    get_current_active_user,
    get_current_admin,
    get_current_staff,
    get_db,
    get_optional_user,
)
from fxdojo.modules.access.service import LessonAccessService
from fxdojo.modules.auth.models import User
from fxdojo.modules.courses.service import CourseService
from fxdojo.schemas.access import LessonAccessCheck, LessonAccessSummary
from fxdojo.schemas.course import LessonCreate, LessonRead, LessonUpdate, LessonWithAccess

router = APIRouter(prefix="/lessons", tags=["lessons"])


@router.get("", response_model=list[LessonWithAccess])
def list_lessons(
    course_id: Optional[UUID] = Query(default=None),
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user),
):
    return CourseService(db).list_lessons(current_user, course_id)


@router.post("", response_model=LessonRead, status_code=status.HTTP_201_CREATED)
def create_lesson(
    payload: LessonCreate,
    db: Session = Depends(get_db),
    staff: User = Depends(get_current_staff),
):
    return CourseService(db).create_lesson(payload)


@router.get("/{lesson_id}", response_model=LessonWithAccess)
def get_lesson(
    lesson_id: UUID,
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user),
):
    return CourseService(db).get_lesson(lesson_id, current_user)


@router.get("/{lesson_id}/access", response_model=LessonAccessCheck)
def check_lesson_access(
    lesson_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    lesson = CourseService(db).get_lesson_or_404(lesson_id)
    decision = LessonAccessService(db).check(current_user, lesson)
    return LessonAccessCheck(
        has_access=decision.has_access,
        reason=decision.reason,
        available_in=decision.available_in,
        requires_completion=decision.requires_completion,
        lesson=LessonAccessSummary.model_validate(lesson),
    )


@router.put("/{lesson_id}", response_model=LessonRead)
def update_lesson(
    lesson_id: UUID,
    payload: LessonUpdate,
    db: Session = Depends(get_db),
    staff: User = Depends(get_current_staff),
):
    return CourseService(db).update_lesson(lesson_id, payload)


@router.delete("/{lesson_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_lesson(
    lesson_id: UUID,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    CourseService(db).delete_lesson(lesson_id)
    return None
