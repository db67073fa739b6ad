# src/ephemera/api/v1/endpoints/__init__.py
"""API v1 endpoints."""

from .conversations import router as conversations_router
from .live import router as live_router
from .messages import router as messages_router
from .system import router as system_router

__all__ = [
    "conversations_router",
    "live_router",
    "messages_router",
    "system_router",
]
