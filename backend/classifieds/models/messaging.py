import json

from sqlalchemy import (
    Column, Integer, String, Text, Boolean, DateTime, ForeignKey, CheckConstraint, event, update,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from classifieds.database import Base


class Conversation(Base):
    __tablename__ = "conversations"

    id = Column(Integer, primary_key=True, index=True)
    participant1_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    participant2_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    subject = Column(String(255), nullable=True)
    listing_type = Column(String(50), nullable=True)
    listing_id = Column(Integer, nullable=True)
    listing_details = Column(Text, nullable=True)  # JSON snapshot taken when the conversation started
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    participant1 = relationship("User", foreign_keys=[participant1_id])
    participant2 = relationship("User", foreign_keys=[participant2_id])
    messages = relationship(
        "Message",
        back_populates="conversation",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Message.created_at",
    )

    __table_args__ = (
        CheckConstraint("participant1_id <> participant2_id", name="ck_conversation_distinct_participants"),
    )

    def has_participant(self, user_id: int) -> bool:
        return user_id in (self.participant1_id, self.participant2_id)

    def other_participant_id(self, user_id: int) -> int:
        return self.participant2_id if self.participant1_id == user_id else self.participant1_id

    @property
    def listing_snapshot(self) -> dict | None:
        if not self.listing_details:
            return None
        return json.loads(self.listing_details)


class Message(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, index=True)
    conversation_id = Column(
        Integer, ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sender_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    recipient_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    conversation = relationship("Conversation", back_populates="messages")


@event.listens_for(Message, "after_insert")
def touch_conversation(mapper, connection, target):
    """Keep conversations.updated_at in step with the newest message."""
    connection.execute(
        update(Conversation.__table__)
        .where(Conversation.__table__.c.id == target.conversation_id)
        .values(updated_at=func.now())
    )
