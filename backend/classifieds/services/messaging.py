import json
import logging

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Session

from classifieds.database import transaction, with_db_retry
from classifieds.errors import NotFound, ValidationError
from classifieds.models import Conversation, Message, User
from classifieds.schemas.messaging import SendMessageRequest
from classifieds.services.listings import resolve
from classifieds.services.permissions import Identity

logger = logging.getLogger(__name__)


def _listing_snapshot(db: Session, listing_type: str, listing_id: int) -> tuple[str, dict]:
    category, model = resolve(listing_type)
    listing = db.query(model).filter(model.id == listing_id).first()
    if listing is None:
        raise NotFound(f"{model.__name__} not found")
    snapshot = {
        "title": listing.display_title,
        "price": str(listing.price) if getattr(listing, "price", None) is not None else None,
        "primary_image_url": listing.primary_image_url,
        "owner_id": listing.user_id,
    }
    return category, snapshot


def _participant_conversation(db: Session, identity: Identity, conversation_id: int) -> Conversation:
    """Fetch a conversation the caller takes part in; anything else is NotFound."""
    conversation = db.query(Conversation).filter(Conversation.id == conversation_id).first()
    if conversation is None or not conversation.has_participant(identity.id):
        raise NotFound("Conversation not found")
    return conversation


def _find_conversation(db: Session, user_a: int, user_b: int, listing_type: str | None,
                       listing_id: int | None) -> Conversation | None:
    return (
        db.query(Conversation)
        .filter(
            or_(
                and_(Conversation.participant1_id == user_a, Conversation.participant2_id == user_b),
                and_(Conversation.participant1_id == user_b, Conversation.participant2_id == user_a),
            ),
            Conversation.listing_type.is_(None) if listing_type is None else Conversation.listing_type == listing_type,
            Conversation.listing_id.is_(None) if listing_id is None else Conversation.listing_id == listing_id,
        )
        .first()
    )


@with_db_retry
def send_message(db: Session, identity: Identity, attrs: dict) -> Message:
    """Send a message, opening a conversation with the recipient if needed.

    Conversations are per pair of users and per listing, so asking two
    sellers about two different cars gives two threads.
    """
    try:
        data = SendMessageRequest(**attrs)
    except PydanticValidationError as exc:
        raise ValidationError.from_pydantic(exc)

    if data.conversation_id is not None:
        conversation = _participant_conversation(db, identity, data.conversation_id)
        recipient_id = conversation.other_participant_id(identity.id)
    else:
        recipient_id = data.recipient_id
        if recipient_id == identity.id:
            raise ValidationError("recipient_id", "You cannot send a message to yourself")
        if db.query(User.id).filter(User.id == recipient_id).first() is None:
            raise NotFound("Recipient not found")

        listing_type = None
        snapshot = None
        if data.listing_type is not None:
            listing_type, snapshot = _listing_snapshot(db, data.listing_type, data.listing_id)

        conversation = _find_conversation(db, identity.id, recipient_id, listing_type, data.listing_id)
        if conversation is None:
            conversation = Conversation(
                participant1_id=identity.id,
                participant2_id=recipient_id,
                subject=data.subject or (snapshot["title"] if snapshot else None),
                listing_type=listing_type,
                listing_id=data.listing_id,
                listing_details=json.dumps(snapshot) if snapshot else None,
            )
            db.add(conversation)

    message = Message(
        conversation=conversation,
        sender_id=identity.id,
        recipient_id=recipient_id,
        content=data.content,
    )
    with transaction(db):
        db.add(message)
    db.refresh(message)
    logger.info("User %d sent message %d in conversation %d", identity.id, message.id, message.conversation_id)
    return message


@with_db_retry
def list_conversations(db: Session, identity: Identity) -> list[dict]:
    """The caller's conversations, most recently active first."""
    conversations = (
        db.query(Conversation)
        .filter(or_(Conversation.participant1_id == identity.id, Conversation.participant2_id == identity.id))
        .order_by(Conversation.updated_at.desc(), Conversation.id.desc())
        .all()
    )
    if not conversations:
        return []

    ids = [conversation.id for conversation in conversations]
    unread = dict(
        db.query(Message.conversation_id, func.count(Message.id))
        .filter(
            Message.conversation_id.in_(ids),
            Message.recipient_id == identity.id,
            Message.read == False,
        )
        .group_by(Message.conversation_id)
        .all()
    )
    other_ids = {conversation.other_participant_id(identity.id) for conversation in conversations}
    usernames = dict(db.query(User.id, User.username).filter(User.id.in_(other_ids)).all())

    result = []
    for conversation in conversations:
        other_id = conversation.other_participant_id(identity.id)
        last_message = (
            db.query(Message)
            .filter(Message.conversation_id == conversation.id)
            .order_by(Message.created_at.desc(), Message.id.desc())
            .first()
        )
        result.append({
            "id": conversation.id,
            "subject": conversation.subject,
            "listing_type": conversation.listing_type,
            "listing_id": conversation.listing_id,
            "listing_details": conversation.listing_snapshot,
            "other_participant": {"id": other_id, "username": usernames.get(other_id, "")},
            "last_message": last_message,
            "unread_count": unread.get(conversation.id, 0),
            "created_at": conversation.created_at,
            "updated_at": conversation.updated_at,
        })
    return result


@with_db_retry
def get_messages(db: Session, identity: Identity, conversation_id: int) -> list[Message]:
    """Messages in a conversation, oldest first. Marks incoming ones read."""
    conversation = _participant_conversation(db, identity, conversation_id)
    with transaction(db):
        db.query(Message).filter(
            Message.conversation_id == conversation.id,
            Message.recipient_id == identity.id,
            Message.read == False,
        ).update({Message.read: True}, synchronize_session=False)

    return (
        db.query(Message)
        .filter(Message.conversation_id == conversation.id)
        .order_by(Message.created_at, Message.id)
        .all()
    )


@with_db_retry
def unread_count(db: Session, identity: Identity) -> int:
    return (
        db.query(func.count(Message.id))
        .filter(Message.recipient_id == identity.id, Message.read == False)
        .scalar()
    )
