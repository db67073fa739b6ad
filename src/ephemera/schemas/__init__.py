"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .conversation import ConversationCreate, ConversationCreated, ConversationSummary
from .events import ChangeEvent
from .message import MarkReadResponse, MessageCreate, MessageRead
from .system import SweepResponse

__all__ = [
    "ChangeEvent",
    "ConversationCreate", "ConversationCreated", "ConversationSummary",
    "MarkReadResponse", "MessageCreate", "MessageRead",
    "SweepResponse",
]
