"""Conversation-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, Field


class ConversationCreate(BaseModel):
    """Schema for explicitly opening a conversation with a peer."""

    peer_id: str = Field(..., min_length=1, max_length=64, description="The other participant")


class ConversationCreated(BaseModel):
    """Identity of the conversation for a pair."""

    conversation_id: int


class ConversationSummary(BaseModel):
    """A conversation from the point of view of one participant."""

    id: int
    peer_id: str
    unread_count: int
    last_message_preview: str | None
    last_message_at: datetime | None
    created_at: datetime
    updated_at: datetime
