"""Conversation directory: one conversation per unordered pair of users."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ephemera.core.errors import ConflictRetry, InvalidParticipants, NotFound, StoreUnavailable
from ephemera.models import Conversation

logger = logging.getLogger(__name__)


def canonical_pair(user_a: str, user_b: str) -> tuple[str, str]:
    """Return ``(lo, hi)`` for two distinct user ids.

    Raises:
        InvalidParticipants: If either id is blank or both ids are equal
    """
    if not user_a or not user_b or not user_a.strip() or not user_b.strip():
        raise InvalidParticipants("Both participant ids are required")
    if user_a == user_b:
        raise InvalidParticipants("A conversation needs two different participants")
    return (user_a, user_b) if user_a < user_b else (user_b, user_a)


def other_participant(conversation: Conversation, viewer_id: str) -> str:
    """Return the participant of ``conversation`` that is not ``viewer_id``."""
    if viewer_id == conversation.lo_user_id:
        return conversation.hi_user_id
    if viewer_id == conversation.hi_user_id:
        return conversation.lo_user_id
    raise NotFound(f"Conversation {conversation.id} not found")


def unread_count_for(conversation: Conversation, user_id: str) -> int:
    """Return the unread counter kept for ``user_id``."""
    if user_id == conversation.lo_user_id:
        return conversation.unread_count_lo
    if user_id == conversation.hi_user_id:
        return conversation.unread_count_hi
    raise NotFound(f"Conversation {conversation.id} not found")


def require_participant(conversation: Conversation, user_id: str) -> Conversation:
    """Return ``conversation`` if ``user_id`` takes part in it.

    Other users' conversations are reported as missing rather than forbidden.
    """
    if not conversation.has_participant(user_id):
        raise NotFound(f"Conversation {conversation.id} not found")
    return conversation


class ConversationDirectory:
    """Resolves user pairs to their conversation, creating it lazily."""

    def get(self, session: Session, conversation_id: int) -> Conversation:
        """Return a conversation by id.

        Raises:
            NotFound: If no such conversation exists
        """
        try:
            conversation = session.get(Conversation, conversation_id)
        except SQLAlchemyError as exc:
            raise StoreUnavailable(f"Could not load conversation {conversation_id}") from exc
        if conversation is None:
            raise NotFound(f"Conversation {conversation_id} not found")
        return conversation

    def find(self, session: Session, user_a: str, user_b: str) -> Conversation | None:
        """Return the pair's conversation, or None if it was never created."""
        lo, hi = canonical_pair(user_a, user_b)
        try:
            return self._lookup(session, lo, hi)
        except SQLAlchemyError as exc:
            raise StoreUnavailable("Could not look up conversation") from exc

    def resolve_or_create(self, session: Session, user_a: str, user_b: str) -> int:
        """Return the id of the pair's conversation, creating it if needed.

        ``resolve_or_create(a, b) == resolve_or_create(b, a)``, and concurrent
        first calls for a pair converge on a single row through the
        ``(lo_user_id, hi_user_id)`` unique constraint.

        Args:
            session: Database session; committed when a row is inserted
            user_a: One participant
            user_b: The other participant

        Returns:
            The conversation id

        Raises:
            InvalidParticipants: If the ids do not form a valid pair
            StoreUnavailable: If the store fails
        """
        return self.resolve(session, user_a, user_b)[0]

    def resolve(self, session: Session, user_a: str, user_b: str) -> tuple[int, bool]:
        """Like :meth:`resolve_or_create`, also reporting whether this call created the row."""
        lo, hi = canonical_pair(user_a, user_b)
        try:
            existing = self._lookup(session, lo, hi)
            if existing is not None:
                return existing.id, False
            try:
                return self._insert(session, lo, hi), True
            except ConflictRetry:
                winner = self._lookup(session, lo, hi)
        except SQLAlchemyError as exc:
            session.rollback()
            raise StoreUnavailable("Could not resolve conversation") from exc

        if winner is None:
            raise StoreUnavailable("Conversation vanished after a creation conflict")
        logger.debug("Lost creation race for pair (%s, %s); using %s", lo, hi, winner.id)
        return winner.id, False

    def list_for_user(self, session: Session, user_id: str) -> list[Conversation]:
        """Return every conversation of ``user_id``, most recently active first.

        Conversations without messages sort last; ties fall back to id.
        """
        stmt = (
            select(Conversation)
            .where((Conversation.lo_user_id == user_id) | (Conversation.hi_user_id == user_id))
            .order_by(
                Conversation.last_message_at.is_(None),
                Conversation.last_message_at.desc(),
                Conversation.id.desc(),
            )
        )
        try:
            return list(session.scalars(stmt))
        except SQLAlchemyError as exc:
            raise StoreUnavailable("Could not list conversations") from exc

    def _lookup(self, session: Session, lo: str, hi: str) -> Conversation | None:
        stmt = select(Conversation).where(
            Conversation.lo_user_id == lo,
            Conversation.hi_user_id == hi,
        )
        return session.scalars(stmt).first()

    def _insert(self, session: Session, lo: str, hi: str) -> int:
        conversation = Conversation(
            lo_user_id=lo,
            hi_user_id=hi,
            unread_count_lo=0,
            unread_count_hi=0,
        )
        session.add(conversation)
        try:
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            raise ConflictRetry(f"Conversation for ({lo}, {hi}) created concurrently") from exc
        logger.info("Created conversation %s for (%s, %s)", conversation.id, lo, hi)
        return conversation.id


def get_conversation_directory() -> ConversationDirectory:
    """Return a conversation directory instance."""
    return ConversationDirectory()
