# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Generator, Iterator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("PYTEST_RUNNING", "true")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-ephemera")
os.environ.setdefault("MESSAGE_ENCRYPTION_KEY", "test-message-encryption-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from ephemera.api.v1.dependencies import get_notifier_dep  # noqa: E402
from ephemera.core.security import create_access_token  # noqa: E402
from ephemera.db.session import Base, get_session_factory  # noqa: E402
from ephemera.db.session import get_db as app_get_session  # noqa: E402
from ephemera.main import app as fastapi_app  # noqa: E402
from ephemera.services.cipher import MessageCipher  # noqa: E402
from ephemera.services.conversations import ConversationDirectory  # noqa: E402
from ephemera.services.messages import MessageStore  # noqa: E402
from ephemera.services.messaging import MessagingService  # noqa: E402
from ephemera.services.notifier import InMemoryChangeNotifier  # noqa: E402
from ephemera.services.read_state import ReadStateTracker  # noqa: E402

TEST_DB_URL = "sqlite://"

USER_A = "user-alice"
USER_B = "user-bob"
USER_C = "user-carol"


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture()
def db_session(engine: Engine, session_factory: sessionmaker[Session]) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()

        # Services commit, so every table is emptied between tests.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture()
def notifier() -> InMemoryChangeNotifier:
    return InMemoryChangeNotifier()


@pytest.fixture(autouse=True)
def override_dependencies(
    app: FastAPI,
    db_session: Session,
    session_factory: sessionmaker[Session],
    notifier: InMemoryChangeNotifier,
) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_notifier_dep] = lambda: notifier
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)
        app.dependency_overrides.pop(get_session_factory, None)
        app.dependency_overrides.pop(get_notifier_dep, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def cipher() -> MessageCipher:
    return MessageCipher("unit-test-key")


@pytest.fixture()
def directory() -> ConversationDirectory:
    return ConversationDirectory()


@pytest.fixture()
def store(cipher: MessageCipher, directory: ConversationDirectory) -> MessageStore:
    return MessageStore(cipher=cipher, directory=directory)


@pytest.fixture()
def tracker(directory: ConversationDirectory) -> ReadStateTracker:
    return ReadStateTracker(directory=directory)


@pytest.fixture()
def messaging(
    notifier: InMemoryChangeNotifier,
    directory: ConversationDirectory,
    store: MessageStore,
    tracker: ReadStateTracker,
) -> MessagingService:
    return MessagingService(notifier=notifier, directory=directory, store=store, tracker=tracker)


def auth_headers(user_id: str) -> dict[str, str]:
    """Return authorization headers for ``user_id``."""
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


@pytest.fixture()
def alice_headers() -> dict[str, str]:
    return auth_headers(USER_A)


@pytest.fixture()
def bob_headers() -> dict[str, str]:
    return auth_headers(USER_B)


@pytest.fixture()
def carol_headers() -> dict[str, str]:
    return auth_headers(USER_C)
