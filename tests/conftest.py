"""Pytest configuration and shared fixtures.

This module provides fixtures for testing bookcircle: an in-memory
database, seeded members, a recording mailer and the domain managers
wired to a synchronous notification dispatcher.
"""

import tempfile
from pathlib import Path
from typing import Generator

import pytest

from bookcircle.catalog import CatalogManager
from bookcircle.db.models import User
from bookcircle.db.schemas import BookCreate, UserRole, UserStatus
from bookcircle.db.sqlite import Database
from bookcircle.lending import LendingManager
from bookcircle.notifications import NotificationDispatcher, NotificationManager, OutboundEmail


class RecordingMailer:
    """Mailer that keeps sent emails in memory."""

    def __init__(self, fail: bool = False):
        self.sent: list[OutboundEmail] = []
        self.fail = fail

    def send(self, email: OutboundEmail) -> None:
        if self.fail:
            raise ConnectionError("SMTP relay unavailable")
        self.sent.append(email)


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
def db() -> Generator[Database, None, None]:
    """Create an in-memory database for testing."""
    database = Database(":memory:")
    database.create_tables()
    yield database
    database.dispose()


@pytest.fixture
def temp_db_path() -> Generator[Path, None, None]:
    """Create a temporary database file path."""
    with tempfile.TemporaryDirectory() as tmp:
        yield Path(tmp) / "bookcircle.db"


def add_user(
    db: Database,
    user_id: str,
    name: str,
    email: str = "",
    status: UserStatus = UserStatus.ACTIVE,
    role: UserRole = UserRole.USER,
) -> str:
    """Insert a member directly and return its ID."""
    with db.get_session() as session:
        session.add(
            User(
                id=user_id,
                name=name,
                email=email,
                status=status.value,
                role=role.value,
            )
        )
    return user_id


@pytest.fixture
def make_user(db: Database):
    """Factory inserting members into the test database."""

    def _make(user_id: str, name: str = "", email: str = "", **kwargs) -> str:
        return add_user(db, user_id, name or user_id, email, **kwargs)

    return _make


@pytest.fixture
def owner(db: Database) -> str:
    return add_user(db, "user-owner", "Olivia Owner", "olivia@example.com")


@pytest.fixture
def borrower(db: Database) -> str:
    return add_user(db, "user-borrower", "Bruno Borrower", "bruno@example.com")


@pytest.fixture
def other(db: Database) -> str:
    return add_user(db, "user-other", "Oscar Other", "oscar@example.com")


# ============================================================================
# Service Fixtures
# ============================================================================


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
def dispatcher(db: Database, mailer: RecordingMailer) -> NotificationDispatcher:
    """Dispatcher that delivers inline so tests can assert on side effects."""
    return NotificationDispatcher(db, mailer=mailer, synchronous=True)


@pytest.fixture
def catalog(db: Database, dispatcher: NotificationDispatcher) -> CatalogManager:
    return CatalogManager(db, dispatcher)


@pytest.fixture
def lending(db: Database, dispatcher: NotificationDispatcher) -> LendingManager:
    return LendingManager(db, dispatcher, app_url="https://circle.example.com")


@pytest.fixture
def notifications(db: Database) -> NotificationManager:
    return NotificationManager(db)


@pytest.fixture
def book(catalog: CatalogManager, owner: str) -> str:
    """A book owned (and held) by ``owner``."""
    created = catalog.create_book(
        BookCreate(title="Dune", author="Frank Herbert", isbn="9780441013593"),
        owner,
    )
    return created.id
