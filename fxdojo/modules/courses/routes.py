# fxdojo/modules/courses/routes.py
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from fxdojo.db.deps import (
    get_current_active_user,
    get_current_admin,
    get_current_staff,
    get_db,
    get_optional_user,
)
from fxdojo.modules.auth.models import User
from fxdojo.modules.courses.service import CourseService
from fxdojo.schemas.course import (
    CourseCreate,
    CoursePublish,
    CourseRead,
    CourseStats,
    CourseUpdate,
    CourseWithLessons,
    EnrollmentRead,
)

router = APIRouter(prefix="/courses", tags=["courses"])


@router.get("", response_model=list[CourseWithLessons])
def list_courses(
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user),
):
    return CourseService(db).list_courses(current_user)


@router.post("", response_model=CourseRead, status_code=status.HTTP_201_CREATED)
def create_course(
    payload: CourseCreate,
    db: Session = Depends(get_db),
    staff: User = Depends(get_current_staff),
):
    return CourseService(db).create_course(payload)


@router.get("/{slug}", response_model=CourseWithLessons)
def get_course(
    slug: str,
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user),
):
    return CourseService(db).get_course_by_slug(slug, current_user)


@router.put("/{course_id}", response_model=CourseRead)
def update_course(
    course_id: UUID,
    payload: CourseUpdate,
    db: Session = Depends(get_db),
    staff: User = Depends(get_current_staff),
):
    return CourseService(db).update_course(course_id, payload)


@router.put("/{course_id}/publish", response_model=CourseRead)
def publish_course(
    course_id: UUID,
    payload: CoursePublish,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    return CourseService(db).publish_course(course_id, payload.is_published)


@router.delete("/{course_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_course(
    course_id: UUID,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    CourseService(db).delete_course(course_id)
    return None


@router.post(
    "/{course_id}/enroll",
    response_model=EnrollmentRead,
    status_code=status.HTTP_201_CREATED,
)
def enroll_in_course(
    course_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    return CourseService(db).enroll(course_id, current_user)


@router.get("/{course_id}/stats", response_model=CourseStats)
def course_stats(
    course_id: UUID,
    db: Session = Depends(get_db),
    staff: User = Depends(get_current_staff),
):
    return CourseService(db).course_stats(course_id)
