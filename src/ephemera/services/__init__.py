"""Business logic services for the Ephemera messaging core."""

from .cipher import MessageCipher
from .conversations import ConversationDirectory
from .live import LiveSession, RefreshingView
from .messages import MessageStore
from .messaging import MessagingService
from .notifier import InMemoryChangeNotifier, RedisChangeNotifier
from .read_state import ReadStateTracker
from .retention import RetentionSweeper, SweepResult

__all__ = [
    "ConversationDirectory",
    "InMemoryChangeNotifier",
    "LiveSession",
    "MessageCipher",
    "MessageStore",
    "MessagingService",
    "ReadStateTracker",
    "RedisChangeNotifier",
    "RefreshingView",
    "RetentionSweeper",
    "SweepResult",
]
