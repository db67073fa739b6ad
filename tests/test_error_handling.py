# tests/test_error_handling.py
"""Tests for translating messaging failures into HTTP responses."""

from fastapi import status

from ephemera.core.errors import (
    ConflictRetry,
    InvalidContent,
    InvalidParticipants,
    NotFound,
    StoreUnavailable,
)
from ephemera.main import ERROR_STATUS
from ephemera.services.conversations import ConversationDirectory


def test_every_surfaced_failure_has_a_status() -> None:
    assert ERROR_STATUS == {
        InvalidContent.kind: status.HTTP_400_BAD_REQUEST,
        InvalidParticipants.kind: status.HTTP_400_BAD_REQUEST,
        NotFound.kind: status.HTTP_404_NOT_FOUND,
        StoreUnavailable.kind: status.HTTP_503_SERVICE_UNAVAILABLE,
    }


def test_creation_conflicts_are_not_mapped() -> None:
    """The directory absorbs creation conflicts, so they never reach a response."""
    assert ConflictRetry.kind not in ERROR_STATUS


def test_store_failure_maps_to_service_unavailable(client, alice_headers, mocker) -> None:
    mocker.patch.object(
        ConversationDirectory, "list_for_user", side_effect=StoreUnavailable("database offline")
    )

    response = client.get("/api/v1/conversations", headers=alice_headers)

    assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
    assert response.json() == {"kind": "store_unavailable", "detail": "database offline"}
