"""Per-participant read state of conversations."""

from __future__ import annotations

import logging

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ephemera.core.errors import StoreUnavailable
from ephemera.db.time import utcnow
from ephemera.models import Conversation, Message
from ephemera.services.conversations import (
    ConversationDirectory,
    require_participant,
    unread_count_for,
)

logger = logging.getLogger(__name__)


class ReadStateTracker:
    """Flips read flags and keeps the two unread counters in step."""

    def __init__(self, directory: ConversationDirectory | None = None) -> None:
        self._directory = directory or ConversationDirectory()

    def mark_read(self, session: Session, conversation_id: int, reader_id: str) -> int:
        """Mark every message addressed to ``reader_id`` as read.

        The flag flips and the counter reset are committed as one unit.

        Args:
            session: Database session
            conversation_id: Conversation being opened
            reader_id: Participant who read it

        Returns:
            Number of messages that flipped from unread to read

        Raises:
            NotFound: If the conversation does not exist or ``reader_id`` is not in it
            StoreUnavailable: If the store fails
        """
        conversation = require_participant(
            self._directory.get(session, conversation_id), reader_id
        )
        counter = (
            Conversation.unread_count_lo
            if reader_id == conversation.lo_user_id
            else Conversation.unread_count_hi
        )
        try:
            flipped = session.execute(
                update(Message)
                .where(
                    Message.conversation_id == conversation_id,
                    Message.receiver_id == reader_id,
                    Message.is_read.is_(False),
                )
                .values(is_read=True)
                .execution_options(synchronize_session=False)
            ).rowcount
            session.execute(
                update(Conversation)
                .where(Conversation.id == conversation_id)
                .values({counter: 0, Conversation.updated_at: utcnow()})
                .execution_options(synchronize_session=False)
            )
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            raise StoreUnavailable(f"Could not mark conversation {conversation_id} read") from exc

        logger.debug("Marked %d message(s) read in conversation %s for %s", flipped, conversation_id, reader_id)
        return int(flipped or 0)

    def unread_count(self, session: Session, conversation_id: int, user_id: str) -> int:
        """Return the stored unread counter of ``user_id`` in a conversation."""
        conversation = self._directory.get(session, conversation_id)
        return unread_count_for(conversation, user_id)

    def reconcile(self, session: Session, conversation_id: int) -> tuple[int, int]:
        """Recompute both counters from the message rows.

        Repairs counters left stale by a partially failed read marking or by
        retention deletes.

        Returns:
            The new ``(unread_count_lo, unread_count_hi)``
        """
        conversation = self._directory.get(session, conversation_id)
        lo, hi = conversation.participants
        try:
            rows = session.execute(
                select(Message.receiver_id, func.count(Message.id))
                .where(Message.conversation_id == conversation_id, Message.is_read.is_(False))
                .group_by(Message.receiver_id)
            ).all()
            counts = {receiver: int(total) for receiver, total in rows}
            session.execute(
                update(Conversation)
                .where(Conversation.id == conversation_id)
                .values(
                    unread_count_lo=counts.get(lo, 0),
                    unread_count_hi=counts.get(hi, 0),
                )
                .execution_options(synchronize_session=False)
            )
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            raise StoreUnavailable(f"Could not reconcile conversation {conversation_id}") from exc
        return counts.get(lo, 0), counts.get(hi, 0)


def get_read_state_tracker() -> ReadStateTracker:
    """Return a read-state tracker instance."""
    return ReadStateTracker()
