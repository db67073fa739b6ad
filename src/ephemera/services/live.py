"""Views that stay current by re-fetching whenever a change event arrives."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any, Generic, TypeVar

from ephemera.schemas.events import ChangeEvent
from ephemera.services.notifier import (
    ChangeNotifier,
    Subscription,
    conversation_topic,
    message_topic,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RefreshingView(Generic[T]):
    """Keeps a consumer in sync with the store for one topic.

    Every event triggers a full ``fetch`` whose result is handed to
    ``deliver``. Event payloads are never applied directly, so duplicated or
    out-of-order events cannot corrupt what the consumer holds.
    """

    def __init__(
        self,
        notifier: ChangeNotifier,
        topic: str,
        fetch: Callable[[], Awaitable[T]],
        deliver: Callable[[T], Awaitable[None]],
    ) -> None:
        self.topic = topic
        self._notifier = notifier
        self._fetch = fetch
        self._deliver = deliver
        self._subscription: Subscription | None = None
        self._refreshing = False
        self._pending = False

    @property
    def is_open(self) -> bool:
        return self._subscription is not None and not self._subscription.closed

    async def open(self) -> RefreshingView[T]:
        """Subscribe, then deliver an initial snapshot."""
        # Subscribing first means no change can slip between snapshot and subscription.
        self._subscription = await self._notifier.subscribe(self.topic, self._on_event)
        await self.refresh()
        return self

    async def refresh(self) -> None:
        """Fetch current state and hand it to the consumer.

        Events arriving while a refresh runs (including ones caused by the
        fetch itself) collapse into one more pass instead of waiting.
        """
        self._pending = True
        if self._refreshing:
            return
        self._refreshing = True
        try:
            while self._pending:
                self._pending = False
                result = await self._fetch()
                await self._deliver(result)
        finally:
            self._refreshing = False

    async def close(self) -> None:
        """Release the subscription."""
        if self._subscription is not None:
            await self._subscription.close()
            self._subscription = None

    async def _on_event(self, event: ChangeEvent) -> None:
        logger.debug("Refreshing %s after %s %s", self.topic, event.table, event.kind)
        await self.refresh()

    async def __aenter__(self) -> RefreshingView[T]:
        return await self.open()

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()


class LiveSession:
    """Live state of one connected viewer.

    Holds the viewer's conversation list view for the whole session and at
    most one message view for the conversation currently open.
    """

    def __init__(
        self,
        notifier: ChangeNotifier,
        user_id: str,
        fetch_conversations: Callable[[], Awaitable[Any]],
        fetch_messages: Callable[[int], Awaitable[Any]],
        send: Callable[[dict[str, Any]], Awaitable[None]],
    ) -> None:
        self.user_id = user_id
        self._notifier = notifier
        self._fetch_conversations = fetch_conversations
        self._fetch_messages = fetch_messages
        self._send = send
        self._conversations: RefreshingView[Any] | None = None
        self._messages: RefreshingView[Any] | None = None
        self.open_conversation_id: int | None = None

    async def start(self) -> None:
        async def deliver(items: Any) -> None:
            await self._send({"type": "conversations", "items": items})

        self._conversations = RefreshingView(
            self._notifier,
            conversation_topic(self.user_id),
            self._fetch_conversations,
            deliver,
        )
        await self._conversations.open()

    async def open_conversation(self, conversation_id: int) -> None:
        """Switch the message view to ``conversation_id``."""
        await self.close_conversation()

        async def fetch() -> Any:
            return await self._fetch_messages(conversation_id)

        async def deliver(items: Any) -> None:
            await self._send(
                {"type": "messages", "conversation_id": conversation_id, "items": items}
            )

        view: RefreshingView[Any] = RefreshingView(
            self._notifier, message_topic(conversation_id), fetch, deliver
        )
        try:
            await view.open()
        except BaseException:
            await view.close()
            raise
        self._messages = view
        self.open_conversation_id = conversation_id

    async def close_conversation(self) -> None:
        if self._messages is not None:
            await self._messages.close()
            self._messages = None
        self.open_conversation_id = None

    async def close(self) -> None:
        """Release every subscription held by this session."""
        await self.close_conversation()
        if self._conversations is not None:
            await self._conversations.close()
            self._conversations = None

    async def __aenter__(self) -> LiveSession:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()
