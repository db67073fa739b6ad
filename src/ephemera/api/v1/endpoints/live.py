# src/ephemera/api/v1/endpoints/live.py
"""Live updates over WebSocket.

After connecting with ``?token=...`` the client receives a ``conversations``
snapshot, then a fresh one whenever any of its conversations changes. Sending
``{"type": "open", "conversation_id": N}`` adds ``messages`` snapshots for that
conversation until ``{"type": "close"}`` or another ``open``.
"""

from __future__ import annotations

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from sqlalchemy.orm import Session, sessionmaker

from ephemera.core.errors import MessagingError
from ephemera.core.security import decode_principal
from ephemera.db.session import get_session_factory
from ephemera.services.live import LiveSession

from ..dependencies import MessagingServiceDep, NotifierDep

logger = logging.getLogger(__name__)

router = APIRouter(tags=["live"])

# Application-defined close code for rejected credentials
WS_UNAUTHORIZED = 4401

SessionFactoryDep = Annotated[sessionmaker[Session], Depends(get_session_factory)]


@router.websocket("/live")
async def live_updates(
    websocket: WebSocket,
    notifier: NotifierDep,
    service: MessagingServiceDep,
    session_factory: SessionFactoryDep,
    token: str = Query(default=""),
) -> None:
    try:
        user_id = decode_principal(token)
    except ValueError:
        await websocket.close(code=WS_UNAUTHORIZED)
        return

    await websocket.accept()

    async def fetch_conversations() -> list[dict[str, Any]]:
        with session_factory() as session:
            return [
                summary.model_dump(mode="json")
                for summary in service.list_conversations(session, user_id)
            ]

    async def fetch_messages(conversation_id: int) -> list[dict[str, Any]]:
        with session_factory() as session:
            messages = await service.open_conversation(session, conversation_id, user_id)
            return [message.model_dump(mode="json") for message in messages]

    live = LiveSession(
        notifier,
        user_id,
        fetch_conversations,
        fetch_messages,
        websocket.send_json,
    )
    try:
        async with live:
            while True:
                try:
                    command = await websocket.receive_json()
                except ValueError:
                    await websocket.send_json(
                        {"type": "error", "kind": "bad_request", "detail": "Expected JSON"}
                    )
                    continue
                await _handle_command(websocket, live, command)
    except WebSocketDisconnect:
        logger.debug("Live session for %s disconnected", user_id)


async def _handle_command(websocket: WebSocket, live: LiveSession, command: Any) -> None:
    kind = command.get("type") if isinstance(command, dict) else None
    if kind == "open":
        conversation_id = command.get("conversation_id")
        if not isinstance(conversation_id, int):
            await websocket.send_json(
                {"type": "error", "kind": "bad_request", "detail": "conversation_id is required"}
            )
            return
        try:
            await live.open_conversation(conversation_id)
        except MessagingError as exc:
            await websocket.send_json({"type": "error", **exc.as_dict()})
    elif kind == "close":
        await live.close_conversation()
    else:
        await websocket.send_json(
            {"type": "error", "kind": "bad_request", "detail": f"Unknown command {kind!r}"}
        )
