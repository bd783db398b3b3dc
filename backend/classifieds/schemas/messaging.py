from datetime import datetime

from pydantic import BaseModel, field_validator, model_validator


class SendMessageRequest(BaseModel):
    content: str
    conversation_id: int | None = None
    recipient_id: int | None = None
    subject: str | None = None
    listing_type: str | None = None
    listing_id: int | None = None

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Message cannot be empty")
        if len(v) > 5000:
            raise ValueError("Message must be at most 5000 characters")
        return v

    @model_validator(mode="after")
    def validate_target(self) -> "SendMessageRequest":
        if self.conversation_id is None and self.recipient_id is None:
            raise ValueError("Either conversation_id or recipient_id is required")
        if (self.listing_type is None) != (self.listing_id is None):
            raise ValueError("listing_type and listing_id must be given together")
        return self


class MessageResponse(BaseModel):
    id: int
    conversation_id: int
    sender_id: int
    recipient_id: int
    content: str
    read: bool
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class ParticipantResponse(BaseModel):
    id: int
    username: str


class ConversationResponse(BaseModel):
    id: int
    subject: str | None = None
    listing_type: str | None = None
    listing_id: int | None = None
    listing_details: dict | None = None
    other_participant: ParticipantResponse
    last_message: MessageResponse | None = None
    unread_count: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None
