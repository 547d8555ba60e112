# backend/tests/conftest.py
"""
Pytest configuration.

Tests run against an in-memory SQLite database shared by every session (the
engine uses a StaticPool for sqlite URLs), so the app, the chat command
processor's worker threads and the fixtures all see the same rows.

Everything a fixture creates is committed: a session handing the shared
connection back to the pool rolls back whatever is uncommitted on it.
"""

import os

# CRITICAL: Set testing mode BEFORE any zlecenia imports!
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["IS_TESTING"] = "true"
os.environ["ENVIRONMENT"] = "test"
os.environ["CHAT_NOTIFICATIONS_ENABLED"] = "false"
os.environ["ALLOWED_EMAIL_DOMAIN"] = "technischools.com"

from itertools import count
from typing import Callable, Dict, Iterator, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from zlecenia import models  # noqa: F401  (registers every table on Base.metadata)
from zlecenia.auth import create_access_token, get_password_hash
from zlecenia.core.config import settings
from zlecenia.database import Base, SessionLocal, engine
from zlecenia.main import app
from zlecenia.models.post import Post
from zlecenia.models.user import User
from zlecenia.services.messaging.connection_registry import connection_registry

settings.is_testing = True
settings.chat_notifications_enabled = False

TEST_PASSWORD = "TestPassword123!"
TEST_EMAIL_DOMAIN = "technischools.com"

_sequence = count(1)


@pytest.fixture(scope="session", autouse=True)
def _schema() -> Iterator[None]:
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="session")
def password_hash() -> str:
    """Hashing is deliberately slow; one hash serves every test user."""
    return get_password_hash(TEST_PASSWORD)


@pytest.fixture(scope="function")
def db() -> Iterator[Session]:
    """
    Create a new database session for each test.

    All rows are removed afterwards, children first.
    """
    session = SessionLocal()

    yield session

    session.rollback()
    session.close()

    cleanup_db = SessionLocal()
    try:
        for table in reversed(Base.metadata.sorted_tables):
            cleanup_db.execute(table.delete())
        cleanup_db.commit()
    finally:
        cleanup_db.close()


@pytest.fixture(autouse=True)
def _reset_registry() -> Iterator[None]:
    yield
    connection_registry.clear()


@pytest.fixture
def client(db: Session) -> Iterator[TestClient]:
    """Create a test client; the context manager runs the app lifespan."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_user(db: Session, password_hash: str) -> Callable[..., User]:
    def _make(username: Optional[str] = None, email: Optional[str] = None) -> User:
        n = next(_sequence)
        username = username or f"user{n}"
        user = User(
            username=username,
            email=email or f"{username}@{TEST_EMAIL_DOMAIN}",
            password_hash=password_hash,
        )
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture
def make_post(db: Session) -> Callable[..., Post]:
    def _make(owner: User, title: str = "Algebra tutoring", description: str = "Twice a week") -> Post:
        post = Post(title=title, description=description, owner_id=owner.id)
        db.add(post)
        db.commit()
        return post

    return _make


@pytest.fixture
def alice(make_user: Callable[..., User]) -> User:
    return make_user("alice")


@pytest.fixture
def bob(make_user: Callable[..., User]) -> User:
    return make_user("bob")


@pytest.fixture
def carol(make_user: Callable[..., User]) -> User:
    return make_user("carol")


@pytest.fixture
def bob_post(make_post: Callable[..., Post], bob: User) -> Post:
    return make_post(bob, title="Physics help wanted")


def _access_token_for(user: User) -> str:
    return create_access_token(user.id).encoded


def _auth_headers_for(user: User) -> Dict[str, str]:
    return {"Authorization": f"Bearer {_access_token_for(user)}"}


@pytest.fixture
def token_for() -> Callable[[User], str]:
    return _access_token_for


@pytest.fixture
def auth_headers_alice(alice: User) -> Dict[str, str]:
    return _auth_headers_for(alice)


@pytest.fixture
def auth_headers_bob(bob: User) -> Dict[str, str]:
    return _auth_headers_for(bob)


@pytest.fixture
def auth_headers_carol(carol: User) -> Dict[str, str]:
    return _auth_headers_for(carol)
