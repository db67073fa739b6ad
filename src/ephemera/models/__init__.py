"""SQLAlchemy models for the Ephemera messaging service."""

from .conversation import Conversation
from .message import Message

__all__ = [
    "Conversation",
    "Message",
]
