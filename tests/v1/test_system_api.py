# tests/v1/test_system_api.py
"""Tests for operational endpoints."""

from datetime import timedelta

import pytest
from fastapi import status

from ephemera.core.settings import settings
from ephemera.db.time import utcnow
from ephemera.models import Message


@pytest.fixture()
def sweeper_token(monkeypatch) -> str:
    monkeypatch.setattr(settings, "sweeper_token", "sweep-secret")
    return "sweep-secret"


def test_sweep_disabled_without_token_setting(client, monkeypatch) -> None:
    monkeypatch.setattr(settings, "sweeper_token", None)

    response = client.post("/api/v1/system/retention/sweep", headers={"X-Sweeper-Token": "x"})

    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_sweep_rejects_bad_token(client, sweeper_token) -> None:
    response = client.post("/api/v1/system/retention/sweep", headers={"X-Sweeper-Token": "wrong"})

    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_sweep_rejects_non_ascii_token(client, sweeper_token) -> None:
    response = client.post(
        "/api/v1/system/retention/sweep",
        headers={"X-Sweeper-Token": "sw\xe9ep-secret".encode("latin-1")},
    )

    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_sweep_accepts_non_ascii_configured_token(client, monkeypatch) -> None:
    monkeypatch.setattr(settings, "sweeper_token", "sw\xe9ep-secret")

    response = client.post(
        "/api/v1/system/retention/sweep",
        headers={"X-Sweeper-Token": "sw\xe9ep-secret".encode("latin-1")},
    )

    assert response.status_code == status.HTTP_200_OK


def test_sweep_deletes_expired_messages(client, db_session, sweeper_token, alice_headers, bob_headers) -> None:
    sent = client.post(
        "/api/v1/messages/",
        json={"receiver_id": "user-bob", "content": "ancient"},
        headers=alice_headers,
    ).json()
    message = db_session.get(Message, sent["id"])
    message.created_at = utcnow() - timedelta(days=3)
    db_session.commit()

    response = client.post(
        "/api/v1/system/retention/sweep", headers={"X-Sweeper-Token": sweeper_token}
    )

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"deleted_messages": 1, "pruned_conversations": 1}
    assert client.get("/api/v1/conversations", headers=bob_headers).json() == []


def test_health(client) -> None:
    response = client.get("/health")

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"status": "ok"}
