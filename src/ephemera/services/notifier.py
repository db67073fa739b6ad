"""Publish/subscribe fan-out of conversation and message changes.

Two topic families exist: ``conversations:{user_id}`` carries changes to any
conversation of that user, ``messages:{conversation_id}`` carries message
changes of one conversation. Delivery is live only; nothing is replayed to a
subscriber that was not listening.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable
from functools import lru_cache
from typing import Any

import redis.asyncio as redis
from pydantic import ValidationError
from redis.exceptions import RedisError

from ephemera.core.settings import settings
from ephemera.schemas.events import ChangeEvent

logger = logging.getLogger(__name__)

EventCallback = Callable[[ChangeEvent], Awaitable[None]]


def conversation_topic(user_id: str) -> str:
    """Topic carrying conversation changes for one user."""
    return f"conversations:{user_id}"


def message_topic(conversation_id: int) -> str:
    """Topic carrying message changes for one conversation."""
    return f"messages:{conversation_id}"


async def _deliver(topic: str, callback: EventCallback, event: ChangeEvent) -> None:
    try:
        await callback(event)
    except Exception:
        # One broken viewer must not block the publisher or other viewers.
        logger.exception("Subscriber of %s failed to handle %s event", topic, event.kind)


class Subscription:
    """Handle for one live subscription; release it with ``close``."""

    def __init__(
        self,
        topic: str,
        callback: EventCallback,
        release: Callable[[Subscription], Awaitable[None]],
    ) -> None:
        self.topic = topic
        self.callback = callback
        self._release = release
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def close(self) -> None:
        """Stop receiving events. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        await self._release(self)

    async def __aenter__(self) -> Subscription:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()


class InMemoryChangeNotifier:
    """Single-process notifier delivering events cooperatively in order."""

    enabled = True

    def __init__(self) -> None:
        self._subscribers: dict[str, list[Subscription]] = defaultdict(list)

    async def publish(self, topic: str, event: ChangeEvent) -> None:
        for subscription in list(self._subscribers.get(topic, ())):
            if not subscription.closed:
                await _deliver(topic, subscription.callback, event)

    async def subscribe(self, topic: str, callback: EventCallback) -> Subscription:
        subscription = Subscription(topic, callback, self._release)
        self._subscribers[topic].append(subscription)
        return subscription

    def subscriber_count(self, topic: str) -> int:
        """Return how many live subscriptions a topic has."""
        return len(self._subscribers.get(topic, ()))

    async def _release(self, subscription: Subscription) -> None:
        subscribers = self._subscribers.get(subscription.topic)
        if not subscribers:
            return
        with contextlib.suppress(ValueError):
            subscribers.remove(subscription)
        if not subscribers:
            del self._subscribers[subscription.topic]

    async def close(self) -> None:
        self._subscribers.clear()


class RedisChangeNotifier:
    """Cross-process notifier built on Redis pub/sub."""

    enabled = True

    def __init__(self, url: str, client: Any | None = None) -> None:
        self._redis = client if client is not None else redis.from_url(url)
        self._tasks: dict[Subscription, tuple[asyncio.Task[None], Any]] = {}

    async def publish(self, topic: str, event: ChangeEvent) -> None:
        try:
            await self._redis.publish(topic, event.model_dump_json())
        except RedisError as exc:
            # Live delivery is best effort; viewers catch up on their next fetch.
            logger.warning("Could not publish %s event to %s: %s", event.kind, topic, exc)

    async def subscribe(self, topic: str, callback: EventCallback) -> Subscription:
        pubsub = self._redis.pubsub()
        await pubsub.subscribe(topic)
        subscription = Subscription(topic, callback, self._release)
        task = asyncio.create_task(self._listen(subscription, pubsub))
        self._tasks[subscription] = (task, pubsub)
        return subscription

    async def _listen(self, subscription: Subscription, pubsub: Any) -> None:
        while not subscription.closed:
            try:
                message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
            except RedisError as exc:
                logger.warning("Lost Redis subscription to %s: %s", subscription.topic, exc)
                await asyncio.sleep(0.5)
                continue
            if not message or message.get("type") != "message":
                continue
            data = message.get("data")
            if isinstance(data, bytes):
                data = data.decode("utf-8")
            try:
                event = ChangeEvent.model_validate_json(data)
            except ValidationError:
                logger.warning("Dropping malformed event on %s", subscription.topic)
                continue
            await _deliver(subscription.topic, subscription.callback, event)

    async def _release(self, subscription: Subscription) -> None:
        entry = self._tasks.pop(subscription, None)
        if entry is None:
            return
        task, pubsub = entry
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        try:
            await pubsub.unsubscribe(subscription.topic)
            await pubsub.aclose()
        except RedisError as exc:
            logger.warning("Could not cleanly unsubscribe from %s: %s", subscription.topic, exc)

    async def close(self) -> None:
        for subscription in list(self._tasks):
            await subscription.close()
        await self._redis.aclose()


ChangeNotifier = InMemoryChangeNotifier | RedisChangeNotifier


@lru_cache(maxsize=1)
def get_notifier() -> ChangeNotifier:
    """Return the process-wide notifier selected by ``REALTIME_BACKEND``."""
    if settings.realtime_backend == "redis":
        logger.info("Using Redis change notifier at %s", settings.redis_url)
        return RedisChangeNotifier(settings.redis_url)
    return InMemoryChangeNotifier()
