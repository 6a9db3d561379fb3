# fxdojo/modules/dm/routes.py
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from fxdojo.db.deps import get_current_active_user, get_db
from fxdojo.modules.auth.models import User
from fxdojo.modules.dm.service import DirectMessageService
from fxdojo.schemas.chat import ChatMessageSent, DMConversation, DMMessageCreate, DMRecent
from fxdojo.schemas.user import UserSummary

router = APIRouter(prefix="/dm", tags=["direct-messages"])


@router.get("/users", response_model=list[UserSummary])
def list_dm_users(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    return DirectMessageService(db).list_users(current_user)


@router.get("/conversation/{other_user_id}", response_model=DMConversation)
def get_conversation(
    other_user_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    return DirectMessageService(db).conversation(current_user, other_user_id)


@router.get("/recent", response_model=list[DMRecent])
def recent_conversations(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    return DirectMessageService(db).recent(current_user)


@router.post("/message", response_model=ChatMessageSent, status_code=status.HTTP_201_CREATED)
def send_direct_message(
    payload: DMMessageCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    message = DirectMessageService(db).send(current_user, payload.other_user_id, payload.content)
    return {"success": True, "message": message}
