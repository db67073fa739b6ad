# src/ephemera/models/message.py
"""Models describing direct messages between users."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ephemera.db.session import Base
from ephemera.db.time import utcnow

from .conversation import USER_ID_LENGTH

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from .conversation import Conversation


class Message(Base):
    """Encrypted message exchanged inside a conversation.

    Content is only ever stored as ciphertext produced by the message cipher.
    """

    __tablename__ = "message"
    __table_args__ = (
        Index("ix_message_conversation_created", "conversation_id", "created_at"),
        Index("ix_message_created_at", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # No database cascade: a conversation cannot be removed while it has messages.
    conversation_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("conversation.id"), nullable=False
    )

    sender_id: Mapped[str] = mapped_column(String(USER_ID_LENGTH), nullable=False)
    receiver_id: Mapped[str] = mapped_column(String(USER_ID_LENGTH), nullable=False)

    ciphertext: Mapped[str] = mapped_column(Text, nullable=False)

    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    conversation: Mapped[Conversation] = relationship("Conversation", back_populates="messages")
