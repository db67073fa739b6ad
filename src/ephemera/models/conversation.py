# src/ephemera/models/conversation.py
"""Models describing one-to-one conversations."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ephemera.db.session import Base
from ephemera.db.time import utcnow

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from .message import Message

USER_ID_LENGTH = 64


class Conversation(Base):
    """The single conversation shared by an unordered pair of users.

    The pair is stored canonically so that ``lo_user_id < hi_user_id`` in code
    point order. Only ``canonical_pair`` enforces that order, since a database
    CHECK would compare under the column collation. Each participant owns the
    unread counter of its slot.
    """

    __tablename__ = "conversation"
    __table_args__ = (
        UniqueConstraint("lo_user_id", "hi_user_id", name="uq_conversation_pair"),
        CheckConstraint("unread_count_lo >= 0", name="ck_conversation_unread_lo"),
        CheckConstraint("unread_count_hi >= 0", name="ck_conversation_unread_hi"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    lo_user_id: Mapped[str] = mapped_column(String(USER_ID_LENGTH), nullable=False, index=True)
    hi_user_id: Mapped[str] = mapped_column(String(USER_ID_LENGTH), nullable=False, index=True)

    # Decrypted display text of the latest message.
    last_message_preview: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_message_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    unread_count_lo: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    unread_count_hi: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    messages: Mapped[list[Message]] = relationship(
        "Message",
        back_populates="conversation",
        cascade="all, delete-orphan",
    )

    @property
    def participants(self) -> tuple[str, str]:
        """Return the canonical ``(lo, hi)`` participant pair."""
        return self.lo_user_id, self.hi_user_id

    def has_participant(self, user_id: str) -> bool:
        """Return True if ``user_id`` is one of the two participants."""
        return user_id in (self.lo_user_id, self.hi_user_id)
