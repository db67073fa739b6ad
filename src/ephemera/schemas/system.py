"""Schemas for operational endpoints."""

from pydantic import BaseModel


class SweepResponse(BaseModel):
    """Summary of one retention sweep."""

    deleted_messages: int
    pruned_conversations: int
