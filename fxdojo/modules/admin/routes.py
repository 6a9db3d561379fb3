# fxdojo/modules/admin/routes.py
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from fxdojo.db.deps import get_current_admin, get_current_staff, get_db
from fxdojo.modules.admin.service import AdminService
from fxdojo.modules.auth.models import User
from fxdojo.modules.chat.service import ChatService
from fxdojo.schemas.admin import AdminDashboard, PlatformSettings
from fxdojo.schemas.chat import ChatMessageRead, ModerateMessage
from fxdojo.schemas.course import CourseRead, LessonRead
from fxdojo.schemas.user import AdminUserUpdate, UserPage, UserRead, UserRoleUpdate, UserStatusUpdate

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/dashboard", response_model=AdminDashboard)
def admin_dashboard(
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    return AdminService(db).dashboard()


# ---------- users ----------


@router.get("/users", response_model=UserPage)
def list_users(
    search: Optional[str] = Query(default=None),
    role: Optional[str] = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    return AdminService(db).list_users(search=search, role=role, page=page, limit=limit)


@router.get("/users/{user_id}", response_model=UserRead)
def get_user(
    user_id: UUID,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    return AdminService(db).get_user(user_id)


@router.put("/users/{user_id}", response_model=UserRead)
def update_user(
    user_id: UUID,
    payload: AdminUserUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    return AdminService(db).update_user(user_id, payload)


@router.put("/users/{user_id}/role", response_model=UserRead)
def update_user_role(
    user_id: UUID,
    payload: UserRoleUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    return AdminService(db).set_role(user_id, payload.role)


@router.put("/users/{user_id}/status", response_model=UserRead)
def update_user_status(
    user_id: UUID,
    payload: UserStatusUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    return AdminService(db).set_status(user_id, payload.status, admin)


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: UUID,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    AdminService(db).delete_user(user_id, admin)
    return None


# ---------- content ----------


@router.get("/courses", response_model=list[CourseRead])
def list_all_courses(
    db: Session = Depends(get_db),
    staff: User = Depends(get_current_staff),
):
    return AdminService(db).list_courses()


@router.get("/lessons", response_model=list[LessonRead])
def list_all_lessons(
    course_id: Optional[UUID] = Query(default=None),
    db: Session = Depends(get_db),
    staff: User = Depends(get_current_staff),
):
    return AdminService(db).list_lessons(course_id)


# ---------- chat moderation ----------


@router.get("/chat/messages", response_model=list[ChatMessageRead])
def list_chat_messages(
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    return ChatService(db).list_recent(limit=limit, offset=offset)


@router.delete("/chat/messages/{message_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_chat_message(
    message_id: UUID,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    ChatService(db).delete_message(message_id, admin)
    return None


@router.put("/chat/messages/{message_id}/moderate", response_model=ChatMessageRead)
def moderate_chat_message(
    message_id: UUID,
    payload: ModerateMessage,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    return ChatService(db).moderate_message(message_id, payload.content, admin)


@router.get("/settings", response_model=PlatformSettings)
def platform_settings(
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    return AdminService(db).platform_settings()
