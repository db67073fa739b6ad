"""Message store: encrypted append and decrypted, ordered reads."""

from __future__ import annotations

import logging

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ephemera.core.errors import InvalidContent, InvalidParticipants, NotFound, StoreUnavailable
from ephemera.core.settings import settings
from ephemera.db.time import utcnow
from ephemera.models import Conversation, Message
from ephemera.schemas.message import MessageRead
from ephemera.services.cipher import MessageCipher, get_message_cipher
from ephemera.services.conversations import ConversationDirectory

logger = logging.getLogger(__name__)


def validate_content(plaintext: str | None) -> str:
    """Return the stripped body, rejecting empty or blank input."""
    if plaintext is None or not plaintext.strip():
        raise InvalidContent("Message content cannot be empty")
    return plaintext.strip()


class MessageStore:
    """Appends encrypted messages and returns them decrypted in order."""

    def __init__(
        self,
        cipher: MessageCipher | None = None,
        directory: ConversationDirectory | None = None,
        preview_max_length: int | None = None,
    ) -> None:
        self._cipher = cipher or get_message_cipher()
        self._directory = directory or ConversationDirectory()
        self._preview_max_length = preview_max_length or settings.preview_max_length

    def to_read_model(self, message: Message) -> MessageRead:
        """Return a detached, decrypted view of ``message``."""
        return MessageRead(
            id=message.id,
            conversation_id=message.conversation_id,
            sender_id=message.sender_id,
            receiver_id=message.receiver_id,
            content=str(self._cipher.decrypt(message.ciphertext)),
            is_read=message.is_read,
            created_at=message.created_at,
        )

    def append(
        self,
        session: Session,
        conversation_id: int,
        sender_id: str,
        receiver_id: str,
        plaintext: str,
    ) -> MessageRead:
        """Encrypt and store a message, updating its conversation.

        The insert, the preview/timestamp update and the receiver's unread
        increment are committed together.

        Args:
            session: Database session
            conversation_id: Target conversation
            sender_id: Author, one of the participants
            receiver_id: The other participant
            plaintext: Message body

        Returns:
            The stored message, decrypted

        Raises:
            InvalidContent: If the body is empty or blank
            InvalidParticipants: If sender/receiver are not the conversation's pair
            NotFound: If the conversation does not exist
            StoreUnavailable: If the store fails
        """
        content = validate_content(plaintext)
        conversation = self._directory.get(session, conversation_id)
        if sender_id == receiver_id or not (
            conversation.has_participant(sender_id) and conversation.has_participant(receiver_id)
        ):
            raise InvalidParticipants(
                f"Sender and receiver must be the participants of conversation {conversation_id}"
            )

        now = utcnow()
        message = Message(
            conversation_id=conversation_id,
            sender_id=sender_id,
            receiver_id=receiver_id,
            ciphertext=self._cipher.encrypt(content),
            is_read=False,
            created_at=now,
        )
        counter = (
            Conversation.unread_count_lo
            if receiver_id == conversation.lo_user_id
            else Conversation.unread_count_hi
        )
        try:
            session.add(message)
            session.flush()
            result = session.execute(
                update(Conversation)
                .where(Conversation.id == conversation_id)
                .values(
                    {
                        Conversation.last_message_preview: content[: self._preview_max_length],
                        Conversation.last_message_at: now,
                        Conversation.updated_at: now,
                        counter: counter + 1,
                    }
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                session.rollback()
                raise NotFound(f"Conversation {conversation_id} not found")
            session.commit()
        except IntegrityError as exc:
            # The conversation row was pruned between lookup and insert.
            session.rollback()
            raise NotFound(f"Conversation {conversation_id} not found") from exc
        except SQLAlchemyError as exc:
            session.rollback()
            raise StoreUnavailable(f"Could not store message in conversation {conversation_id}") from exc

        logger.debug("Stored message %s in conversation %s", message.id, conversation_id)
        return self.to_read_model(message)

    def list_by_conversation(self, session: Session, conversation_id: int) -> list[MessageRead]:
        """Return every message of a conversation, oldest first, decrypted.

        Raises:
            NotFound: If the conversation does not exist
            StoreUnavailable: If the store fails
        """
        self._directory.get(session, conversation_id)
        stmt = (
            select(Message)
            .where(Message.conversation_id == conversation_id)
            .order_by(Message.created_at.asc(), Message.id.asc())
        )
        try:
            messages = list(session.scalars(stmt))
        except SQLAlchemyError as exc:
            raise StoreUnavailable(f"Could not load messages of conversation {conversation_id}") from exc
        return [self.to_read_model(message) for message in messages]


def get_message_store() -> MessageStore:
    """Return a message store wired to the configured cipher."""
    return MessageStore()
