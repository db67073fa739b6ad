"""Messaging facade tying the directory, store, read state and notifier together."""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from ephemera.core.errors import MessagingError, NotFound
from ephemera.models import Conversation
from ephemera.schemas.conversation import ConversationSummary
from ephemera.schemas.events import ChangeEvent
from ephemera.schemas.message import MessageRead
from ephemera.services.conversations import (
    ConversationDirectory,
    other_participant,
    require_participant,
    unread_count_for,
)
from ephemera.services.messages import MessageStore, validate_content
from ephemera.services.notifier import (
    ChangeNotifier,
    conversation_topic,
    get_notifier,
    message_topic,
)
from ephemera.services.read_state import ReadStateTracker

logger = logging.getLogger(__name__)


def summarize(conversation: Conversation, viewer_id: str) -> ConversationSummary:
    """Return ``conversation`` as seen by ``viewer_id``."""
    return ConversationSummary(
        id=conversation.id,
        peer_id=other_participant(conversation, viewer_id),
        unread_count=unread_count_for(conversation, viewer_id),
        last_message_preview=conversation.last_message_preview,
        last_message_at=conversation.last_message_at,
        created_at=conversation.created_at,
        updated_at=conversation.updated_at,
    )


class MessagingService:
    """Entry point for the send, open and list flows."""

    def __init__(
        self,
        notifier: ChangeNotifier | None = None,
        directory: ConversationDirectory | None = None,
        store: MessageStore | None = None,
        tracker: ReadStateTracker | None = None,
    ) -> None:
        self.notifier = notifier or get_notifier()
        self.directory = directory or ConversationDirectory()
        self.store = store or MessageStore(directory=self.directory)
        self.tracker = tracker or ReadStateTracker(directory=self.directory)

    async def start_conversation(self, session: Session, user_id: str, peer_id: str) -> int:
        """Return the conversation with ``peer_id``, creating it if needed."""
        conversation_id, created = self.directory.resolve(session, user_id, peer_id)
        if created:
            await self._publish_conversation(conversation_id, (user_id, peer_id), "insert")
        return conversation_id

    async def send(
        self,
        session: Session,
        sender_id: str,
        receiver_id: str,
        content: str,
    ) -> MessageRead:
        """Send ``content`` from ``sender_id`` to ``receiver_id``.

        Resolves (or creates) the pair's conversation, stores the message and
        notifies both participants and any open view of the conversation.

        Raises:
            InvalidContent: If the body is empty or blank
            InvalidParticipants: If the pair is invalid
            StoreUnavailable: If the store fails
        """
        content = validate_content(content)
        conversation_id, created = self.directory.resolve(session, sender_id, receiver_id)
        try:
            message = self.store.append(session, conversation_id, sender_id, receiver_id, content)
        except NotFound:
            # Pruned by a retention sweep between resolve and append.
            logger.warning("Conversation %s disappeared while sending; resolving again", conversation_id)
            conversation_id, created = self.directory.resolve(session, sender_id, receiver_id)
            message = self.store.append(session, conversation_id, sender_id, receiver_id, content)

        await self.notifier.publish(
            message_topic(conversation_id),
            ChangeEvent(
                table="message",
                kind="insert",
                row_id=message.id,
                conversation_id=conversation_id,
            ),
        )
        await self._publish_conversation(
            conversation_id, (sender_id, receiver_id), "insert" if created else "update"
        )
        return message

    async def mark_read(self, session: Session, conversation_id: int, reader_id: str) -> int:
        """Mark the conversation read for ``reader_id`` and notify viewers.

        Message viewers hear about it when a row flipped; conversation viewers
        also hear about a stale counter being reset to zero.
        """
        conversation = require_participant(self.directory.get(session, conversation_id), reader_id)
        participants = conversation.participants
        unread_before = unread_count_for(conversation, reader_id)
        flipped = self.tracker.mark_read(session, conversation_id, reader_id)
        if flipped:
            await self.notifier.publish(
                message_topic(conversation_id),
                ChangeEvent(table="message", kind="update", conversation_id=conversation_id),
            )
        if flipped or unread_before:
            await self._publish_conversation(conversation_id, participants, "update")
        return flipped

    async def open_conversation(
        self,
        session: Session,
        conversation_id: int,
        viewer_id: str,
        mark_read: bool = True,
    ) -> list[MessageRead]:
        """Return the conversation's messages and mark them read for the viewer.

        Failing to update read state never prevents the messages from being
        returned.
        """
        require_participant(self.directory.get(session, conversation_id), viewer_id)
        messages = self.store.list_by_conversation(session, conversation_id)
        if mark_read:
            try:
                await self.mark_read(session, conversation_id, viewer_id)
            except MessagingError as exc:
                logger.warning(
                    "Could not mark conversation %s read for %s: %s",
                    conversation_id,
                    viewer_id,
                    exc.detail,
                )
        return messages

    def list_conversations(self, session: Session, user_id: str) -> list[ConversationSummary]:
        """Return the viewer's conversations, most recently active first."""
        return [
            summarize(conversation, user_id)
            for conversation in self.directory.list_for_user(session, user_id)
        ]

    async def _publish_conversation(
        self,
        conversation_id: int,
        participants: tuple[str, str],
        kind: str,
    ) -> None:
        event = ChangeEvent(
            table="conversation",
            kind=kind,  # type: ignore[arg-type]
            row_id=conversation_id,
            conversation_id=conversation_id,
        )
        for user_id in participants:
            await self.notifier.publish(conversation_topic(user_id), event)


def get_messaging_service() -> MessagingService:
    """Return a messaging service bound to the process notifier."""
    return MessagingService()
