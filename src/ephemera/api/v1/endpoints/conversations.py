# src/ephemera/api/v1/endpoints/conversations.py
"""Conversation endpoints for the Ephemera API."""

from __future__ import annotations

from fastapi import APIRouter, Query

from ephemera.schemas.conversation import (
    ConversationCreate,
    ConversationCreated,
    ConversationSummary,
)
from ephemera.schemas.message import MarkReadResponse, MessageRead

from ..dependencies import CurrentUserDep, MessagingServiceDep, SessionDep

router = APIRouter(prefix="/conversations", tags=["conversations"])


@router.post("")
async def open_conversation_with_peer(
    payload: ConversationCreate,
    current_user_id: CurrentUserDep,
    db: SessionDep,
    service: MessagingServiceDep,
) -> ConversationCreated:
    """Return the caller's conversation with ``peer_id``, creating it on first use."""
    conversation_id = await service.start_conversation(db, current_user_id, payload.peer_id)
    return ConversationCreated(conversation_id=conversation_id)


@router.get("")
async def list_conversations(
    current_user_id: CurrentUserDep,
    db: SessionDep,
    service: MessagingServiceDep,
) -> list[ConversationSummary]:
    """List the caller's conversations, most recently active first."""
    return service.list_conversations(db, current_user_id)


@router.get("/{conversation_id}/messages")
async def get_conversation_messages(
    conversation_id: int,
    current_user_id: CurrentUserDep,
    db: SessionDep,
    service: MessagingServiceDep,
    mark_read: bool = Query(default=True),
) -> list[MessageRead]:
    """Return every message of a conversation in chronological order.

    Args:
        conversation_id: Conversation to open
        current_user_id: Authenticated participant
        db: Database session
        service: Messaging service
        mark_read: Whether to mark the caller's incoming messages as read

    Returns:
        Decrypted messages, oldest first
    """
    return await service.open_conversation(
        db, conversation_id, current_user_id, mark_read=mark_read
    )


@router.post("/{conversation_id}/read")
async def mark_conversation_read(
    conversation_id: int,
    current_user_id: CurrentUserDep,
    db: SessionDep,
    service: MessagingServiceDep,
) -> MarkReadResponse:
    """Mark every message addressed to the caller in the conversation as read."""
    updated = await service.mark_read(db, conversation_id, current_user_id)
    return MarkReadResponse(updated=updated)
