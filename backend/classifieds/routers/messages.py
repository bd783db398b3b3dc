from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from classifieds.database import get_db
from classifieds.dependencies import get_current_identity
from classifieds.schemas.messaging import ConversationResponse, MessageResponse, SendMessageRequest
from classifieds.services import messaging
from classifieds.services.permissions import Identity

router = APIRouter()


@router.post("", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
def send_message(
    data: SendMessageRequest,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    return messaging.send_message(db, identity, data.model_dump(exclude_unset=True))


@router.get("/conversations", response_model=list[ConversationResponse])
def list_conversations(
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    return messaging.list_conversations(db, identity)


@router.get("/conversations/{conversation_id}", response_model=list[MessageResponse])
def get_conversation_messages(
    conversation_id: int,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """Messages in a conversation; incoming ones are marked read."""
    return messaging.get_messages(db, identity, conversation_id)


@router.get("/unread-count")
def unread_count(
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    return {"unread_count": messaging.unread_count(db, identity)}
