"""Retention sweep: permanently purge messages past their lifetime."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from typing import Final

from sqlalchemy import delete, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ephemera.core.errors import StoreUnavailable
from ephemera.db.time import utcnow
from ephemera.models import Conversation, Message

logger = logging.getLogger(__name__)

MESSAGE_TTL: Final[timedelta] = timedelta(days=2)


@dataclass(frozen=True)
class SweepResult:
    """Counts reported by one sweep pass."""

    deleted_messages: int
    pruned_conversations: int

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


class RetentionSweeper:
    """Stateless, idempotent retention job.

    Scheduling is external; each call runs exactly one pass.
    """

    def __init__(self, ttl: timedelta = MESSAGE_TTL) -> None:
        self.ttl = ttl

    def cutoff(self, now: datetime | None = None) -> datetime:
        """Return the creation time before which messages expire."""
        return (now or utcnow()) - self.ttl

    def sweep(self, session: Session, now: datetime | None = None) -> SweepResult:
        """Delete expired messages, then conversations left without messages.

        Both steps commit together. Only the age of a message decides its
        fate; read state and counters are left alone. Empty conversations that
        never carried a message are kept until they are older than the cutoff,
        so one opened just before its first send survives.

        Args:
            session: Database session
            now: Reference time, defaults to the current UTC time

        Returns:
            Number of deleted messages and pruned conversations

        Raises:
            StoreUnavailable: If the pass failed; nothing was deleted
        """
        cutoff = self.cutoff(now)
        try:
            deleted_messages = session.execute(
                delete(Message)
                .where(Message.created_at < cutoff)
                .execution_options(synchronize_session=False)
            ).rowcount
            pruned_conversations = session.execute(
                delete(Conversation)
                .where(
                    Conversation.id.not_in(select(Message.conversation_id)),
                    or_(
                        Conversation.last_message_at.is_not(None),
                        Conversation.created_at < cutoff,
                    ),
                )
                .execution_options(synchronize_session=False)
            ).rowcount
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error("Retention sweep failed (cutoff %s)", cutoff.isoformat(), exc_info=True)
            raise StoreUnavailable("Retention sweep failed; the next run will retry") from exc

        result = SweepResult(
            deleted_messages=int(deleted_messages or 0),
            pruned_conversations=int(pruned_conversations or 0),
        )
        logger.info(
            "Retention sweep removed %d message(s) and %d conversation(s) older than %s",
            result.deleted_messages,
            result.pruned_conversations,
            cutoff.isoformat(),
        )
        return result


def get_retention_sweeper() -> RetentionSweeper:
    """Return a sweeper using the fixed message lifetime."""
    return RetentionSweeper()
