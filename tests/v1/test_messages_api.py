# tests/v1/test_messages_api.py
"""Tests for message-related endpoints."""

from fastapi import status


def test_send_message(client, alice_headers) -> None:
    """Sending opens the conversation and returns the stored message."""
    response = client.post(
        "/api/v1/messages/",
        json={"receiver_id": "user-bob", "content": "hello bob"},
        headers=alice_headers,
    )

    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["content"] == "hello bob"
    assert data["sender_id"] == "user-alice"
    assert data["receiver_id"] == "user-bob"
    assert data["is_read"] is False
    assert isinstance(data["conversation_id"], int)


def test_send_blank_message(client, alice_headers) -> None:
    response = client.post(
        "/api/v1/messages/",
        json={"receiver_id": "user-bob", "content": "   "},
        headers=alice_headers,
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["kind"] == "invalid_content"


def test_send_message_to_self(client, alice_headers) -> None:
    response = client.post(
        "/api/v1/messages/",
        json={"receiver_id": "user-alice", "content": "memo"},
        headers=alice_headers,
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["kind"] == "invalid_participants"


def test_send_message_requires_receiver(client, alice_headers) -> None:
    response = client.post(
        "/api/v1/messages/",
        json={"content": "to nobody"},
        headers=alice_headers,
    )

    assert response.status_code == 422


def test_send_message_requires_authentication(client) -> None:
    response = client.post(
        "/api/v1/messages/",
        json={"receiver_id": "user-bob", "content": "anonymous"},
    )

    assert response.status_code in (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN)


def test_send_message_with_invalid_token(client) -> None:
    response = client.post(
        "/api/v1/messages/",
        json={"receiver_id": "user-bob", "content": "forged"},
        headers={"Authorization": "Bearer not-a-jwt"},
    )

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
