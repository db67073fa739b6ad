# src/ephemera/api/v1/endpoints/messages.py
"""Direct message endpoints for the Ephemera API."""

from __future__ import annotations

from fastapi import APIRouter, status

from ephemera.schemas.message import MessageCreate, MessageRead

from ..dependencies import CurrentUserDep, MessagingServiceDep, SessionDep

router = APIRouter(prefix="/messages", tags=["messages"])


@router.post("/", status_code=status.HTTP_201_CREATED)
async def send_message(
    message_data: MessageCreate,
    current_user_id: CurrentUserDep,
    db: SessionDep,
    service: MessagingServiceDep,
) -> MessageRead:
    """Send a message, opening the conversation with the receiver if needed."""
    return await service.send(
        db,
        sender_id=current_user_id,
        receiver_id=message_data.receiver_id,
        content=message_data.content,
    )
