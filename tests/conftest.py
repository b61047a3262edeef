"""Shared pytest configuration for the expense tracker test-suite."""

from __future__ import annotations

import os
import sys
from collections.abc import Callable, Iterable, Iterator
from pathlib import Path

import pytest


def _insert_repo_root() -> None:
    """Make sure the repository root is importable without installation."""

    repo_root = Path(__file__).resolve().parents[1]
    if str(repo_root) not in sys.path:
        sys.path.insert(0, str(repo_root))


_insert_repo_root()
# The application engine is created at import time; keep it in memory.
os.environ.setdefault("EXPENSE_TRACKER_DATABASE_URL", "sqlite://")

from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import expense_tracker.models  # noqa: E402,F401  # Ensure models are registered with metadata
from expense_tracker import database, models  # noqa: E402
from expense_tracker.database import Base  # noqa: E402
from expense_tracker.server import app, get_token_issuer  # noqa: E402
from expense_tracker.tokens import TokenIssuer  # noqa: E402

TEST_SECRET = "test-signing-secret-for-the-expense-tracker-suite"
DEFAULT_PASSWORD = "secret123"


def pytest_report_header(config: pytest.Config) -> Iterable[str]:  # pragma: no cover - pytest hook
    log_level = os.environ.get("EXPENSE_TRACKER_LOG_LEVEL", "INFO")
    return [f"expense-tracker repo: {Path.cwd()}", f"EXPENSE_TRACKER_LOG_LEVEL={log_level}"]


@pytest.fixture(autouse=True)
def _set_log_level(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXPENSE_TRACKER_LOG_LEVEL", "INFO")


@pytest.fixture(scope="session")
def engine():
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture()
def db_session(engine):
    connection = engine.connect()
    transaction = connection.begin()
    TestingSessionLocal = sessionmaker(bind=connection, autoflush=False, autocommit=False, future=True)
    session: Session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        transaction.rollback()
        connection.close()


@pytest.fixture()
def issuer() -> TokenIssuer:
    return TokenIssuer(TEST_SECRET)


@pytest.fixture()
def client(db_session, issuer) -> Iterator[TestClient]:
    def override_get_db():
        yield db_session

    app.dependency_overrides[database.get_db] = override_get_db
    app.dependency_overrides[get_token_issuer] = lambda: issuer
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def signup(client) -> Callable[..., tuple[dict, dict[str, str]]]:
    """Register a user through the API and return ``(user, auth_headers)``."""

    def _signup(
        email: str = "alice@mailbox.org",
        name: str = "Alice",
        password: str = DEFAULT_PASSWORD,
    ) -> tuple[dict, dict[str, str]]:
        response = client.post(
            "/auth/register",
            json={"name": name, "email": email, "password": password},
        )
        assert response.status_code == 201, response.text
        body = response.json()
        return body["user"], {"Authorization": f"Bearer {body['token']}"}

    return _signup


@pytest.fixture()
def owners(db_session) -> tuple[models.User, models.User]:
    """Two persisted users to own expenses in service-level tests."""

    first = models.User(name="Owner One", email="one@mailbox.org", password_hash="x")
    second = models.User(name="Owner Two", email="two@mailbox.org", password_hash="x")
    db_session.add_all([first, second])
    db_session.flush()
    return first, second
