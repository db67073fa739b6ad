"""Typed failures raised by the messaging services.

Every expected failure carries a machine-readable ``kind`` and a human-readable
``detail`` so the API layer can translate it without inspecting messages.
"""

from __future__ import annotations


class MessagingError(Exception):
    """Base class for expected messaging failures."""

    kind: str = "messaging_error"

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail

    def as_dict(self) -> dict[str, str]:
        """Return the failure as a serializable payload."""
        return {"kind": self.kind, "detail": self.detail}


class InvalidContent(MessagingError):
    """Message body is empty or whitespace only."""

    kind = "invalid_content"


class InvalidParticipants(MessagingError):
    """The user ids do not form a valid pair for the conversation."""

    kind = "invalid_participants"


class NotFound(MessagingError):
    """A conversation or message does not exist (or is not visible)."""

    kind = "not_found"


class ConflictRetry(MessagingError):
    """Transient uniqueness collision while creating a conversation.

    Always absorbed by the conversation directory; never reaches callers.
    """

    kind = "conflict_retry"


class StoreUnavailable(MessagingError):
    """The backing store rejected or failed the operation."""

    kind = "store_unavailable"
