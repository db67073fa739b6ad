"""Message-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, Field


class MessageCreate(BaseModel):
    """Schema for sending a new message."""

    receiver_id: str = Field(..., min_length=1, max_length=64, description="Recipient user id")
    content: str = Field(..., description="Plaintext message body")


class MessageRead(BaseModel):
    """A message as seen by a participant, with its content decrypted."""

    id: int
    conversation_id: int
    sender_id: str
    receiver_id: str
    content: str
    is_read: bool
    created_at: datetime


class MarkReadResponse(BaseModel):
    """Result of marking a conversation read."""

    updated: int
