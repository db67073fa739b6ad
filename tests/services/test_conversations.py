"""Tests for the conversation directory."""

import threading

import pytest
from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import sessionmaker

from ephemera.core.errors import InvalidParticipants, NotFound
from ephemera.db.session import Base
from ephemera.models import Conversation
from ephemera.services.conversations import (
    ConversationDirectory,
    canonical_pair,
    other_participant,
    require_participant,
    unread_count_for,
)


def test_canonical_pair_orders_ids() -> None:
    assert canonical_pair("b", "a") == ("a", "b")
    assert canonical_pair("a", "b") == ("a", "b")


@pytest.mark.parametrize(("user_a", "user_b"), [("a", "a"), ("", "b"), ("a", "   ")])
def test_canonical_pair_rejects_invalid_pairs(user_a, user_b) -> None:
    with pytest.raises(InvalidParticipants):
        canonical_pair(user_a, user_b)


def test_resolve_or_create_is_symmetric(db_session, directory) -> None:
    first = directory.resolve_or_create(db_session, "user-alice", "user-bob")
    second = directory.resolve_or_create(db_session, "user-bob", "user-alice")

    assert first == second
    assert db_session.scalar(select(func.count()).select_from(Conversation)) == 1


def test_resolve_reports_creation_once(db_session, directory) -> None:
    conversation_id, created = directory.resolve(db_session, "user-alice", "user-bob")
    again, created_again = directory.resolve(db_session, "user-bob", "user-alice")

    assert created is True
    assert created_again is False
    assert again == conversation_id


def test_new_conversation_starts_empty(db_session, directory) -> None:
    conversation = directory.get(
        db_session, directory.resolve_or_create(db_session, "user-bob", "user-alice")
    )

    assert conversation.participants == ("user-alice", "user-bob")
    assert conversation.unread_count_lo == 0
    assert conversation.unread_count_hi == 0
    assert conversation.last_message_preview is None
    assert conversation.last_message_at is None


def test_self_conversation_rejected(db_session, directory) -> None:
    with pytest.raises(InvalidParticipants):
        directory.resolve_or_create(db_session, "user-alice", "user-alice")


def test_lost_creation_race_returns_winner(db_session, directory, mocker) -> None:
    """A concurrent insert of the same pair converges on the existing row."""
    winner_id = directory.resolve_or_create(db_session, "user-alice", "user-bob")
    real_lookup = ConversationDirectory._lookup
    calls = {"count": 0}

    def stale_then_real(self, session, lo, hi):
        calls["count"] += 1
        if calls["count"] == 1:
            return None
        return real_lookup(self, session, lo, hi)

    mocker.patch.object(ConversationDirectory, "_lookup", stale_then_real)

    conversation_id, created = directory.resolve(db_session, "user-bob", "user-alice")

    assert conversation_id == winner_id
    assert created is False
    assert db_session.scalar(select(func.count()).select_from(Conversation)) == 1


def test_get_missing_conversation(db_session, directory) -> None:
    with pytest.raises(NotFound):
        directory.get(db_session, 9999)


def test_find_returns_none_before_creation(db_session, directory) -> None:
    assert directory.find(db_session, "user-alice", "user-bob") is None

    conversation_id = directory.resolve_or_create(db_session, "user-alice", "user-bob")

    assert directory.find(db_session, "user-bob", "user-alice").id == conversation_id


def test_participant_helpers(db_session, directory) -> None:
    conversation = directory.get(
        db_session, directory.resolve_or_create(db_session, "user-alice", "user-bob")
    )

    assert other_participant(conversation, "user-alice") == "user-bob"
    assert other_participant(conversation, "user-bob") == "user-alice"
    assert unread_count_for(conversation, "user-alice") == 0
    assert require_participant(conversation, "user-bob") is conversation
    with pytest.raises(NotFound):
        require_participant(conversation, "user-carol")
    with pytest.raises(NotFound):
        other_participant(conversation, "user-carol")


def test_list_for_user_only_returns_own_conversations(db_session, directory) -> None:
    directory.resolve_or_create(db_session, "user-alice", "user-bob")
    directory.resolve_or_create(db_session, "user-alice", "user-carol")
    directory.resolve_or_create(db_session, "user-bob", "user-carol")

    alice = directory.list_for_user(db_session, "user-alice")

    assert len(alice) == 2
    assert all(conversation.has_participant("user-alice") for conversation in alice)
    assert directory.list_for_user(db_session, "user-dave") == []


def test_list_for_user_orders_by_latest_message(db_session, directory, store) -> None:
    older = directory.resolve_or_create(db_session, "user-alice", "user-bob")
    newer = directory.resolve_or_create(db_session, "user-alice", "user-carol")
    empty = directory.resolve_or_create(db_session, "user-alice", "user-dave")

    store.append(db_session, older, "user-bob", "user-alice", "first")
    store.append(db_session, newer, "user-carol", "user-alice", "second")

    ordered = [conversation.id for conversation in directory.list_for_user(db_session, "user-alice")]

    assert ordered == [newer, older, empty]


def test_concurrent_first_calls_create_one_row(tmp_path) -> None:
    """Callers racing on a new pair all end up with the same conversation."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'contention.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    directory = ConversationDirectory()
    workers = 8
    barrier = threading.Barrier(workers)
    ids: list[int] = []
    errors: list[Exception] = []
    lock = threading.Lock()

    def worker(index: int) -> None:
        pair = ("user-alice", "user-bob") if index % 2 else ("user-bob", "user-alice")
        with factory() as session:
            barrier.wait()
            try:
                conversation_id = directory.resolve_or_create(session, *pair)
            except Exception as exc:  # pragma: no cover - failure path
                with lock:
                    errors.append(exc)
                return
            with lock:
                ids.append(conversation_id)

    threads = [threading.Thread(target=worker, args=(index,)) for index in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)

    try:
        assert errors == []
        assert len(ids) == workers
        assert len(set(ids)) == 1
        with factory() as session:
            assert session.scalar(select(func.count()).select_from(Conversation)) == 1
    finally:
        engine.dispose()


def test_mixed_case_pair_uses_code_point_order(db_session, directory) -> None:
    assert canonical_pair("a", "B") == ("B", "a")

    conversation_id = directory.resolve_or_create(db_session, "a", "B")

    assert directory.resolve_or_create(db_session, "B", "a") == conversation_id
    assert directory.get(db_session, conversation_id).participants == ("B", "a")


def test_pair_order_is_not_a_database_constraint() -> None:
    """Collation-dependent ordering must not reject pairs canonicalized in Python."""
    names = {constraint.name for constraint in Conversation.__table__.constraints}

    assert "uq_conversation_pair" in names
    assert "ck_conversation_pair_order" not in names
