"""Change notification payloads."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from ephemera.db.time import utcnow


class ChangeEvent(BaseModel):
    """A row-level change pushed to live subscribers.

    Events only identify what changed; subscribers re-fetch current state.
    """

    table: Literal["conversation", "message"]
    kind: Literal["insert", "update", "delete"]
    row_id: int | None = None
    conversation_id: int
    occurred_at: datetime = Field(default_factory=utcnow)
