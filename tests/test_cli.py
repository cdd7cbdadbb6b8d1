"""Tests for the CLI interface."""

import pytest
from typer.testing import CliRunner

from bookcircle.catalog import CatalogManager
from bookcircle.cli import app
from bookcircle.db.models import User
from bookcircle.db.schemas import BookCreate
from bookcircle.db.sqlite import Database
from bookcircle.lending import LendingManager


@pytest.fixture(autouse=True)
def setup_test_db(monkeypatch, temp_db_path):
    """Point the CLI at a temporary database for each test."""
    monkeypatch.setenv("BOOKCIRCLE_DB_PATH", str(temp_db_path))
    monkeypatch.delenv("SMTP_HOST", raising=False)
    monkeypatch.setenv("BOOKCIRCLE_LOG_LEVEL", "WARNING")


@pytest.fixture
def runner():
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def seeded(temp_db_path):
    """A database with two members, one book and one request."""
    db = Database(temp_db_path)
    db.create_tables()
    with db.get_session() as session:
        session.add(User(id="owner", name="Olivia", email="olivia@example.com", status="ACTIVE"))
        session.add(User(id="newbie", name="Nina", email="nina@example.com"))
    book = CatalogManager(db).create_book(BookCreate(title="Dune", author="Frank Herbert"), "owner")
    LendingManager(db).create_request(book.id, "newbie")
    db.dispose()
    return temp_db_path


class TestBasicCommands:
    """Tests for basic commands."""

    def test_version(self, runner):
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert "bookcircle version" in result.stdout

    def test_help(self, runner):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "init-db" in result.stdout

    def test_init_db(self, runner, temp_db_path):
        result = runner.invoke(app, ["init-db"])
        assert result.exit_code == 0
        assert "Database ready" in result.stdout
        assert temp_db_path.exists()


class TestListCommands:
    """Tests for the table commands."""

    def test_books_empty(self, runner):
        result = runner.invoke(app, ["books"])
        assert result.exit_code == 0
        assert "No books" in result.stdout

    def test_books(self, runner, seeded):
        result = runner.invoke(app, ["books"])
        assert result.exit_code == 0
        assert "Dune" in result.stdout
        assert "Olivia" in result.stdout

    def test_requests_mine(self, runner, seeded):
        result = runner.invoke(app, ["requests", "--user", "newbie"])
        assert result.exit_code == 0
        assert "Dune" in result.stdout
        assert "PENDING" in result.stdout

    def test_requests_for_owner(self, runner, seeded):
        result = runner.invoke(app, ["requests", "--user", "owner", "--owner"])
        assert result.exit_code == 0
        assert "Nina" in result.stdout

    def test_requests_none(self, runner, seeded):
        result = runner.invoke(app, ["requests", "--user", "owner"])
        assert "No requests" in result.stdout

    def test_users(self, runner, seeded):
        result = runner.invoke(app, ["users"])
        assert result.exit_code == 0
        assert "olivia@example.com" in result.stdout
        assert "nina@example.com" in result.stdout


class TestActivate:
    """Tests for admitting members."""

    def test_activate(self, runner, seeded):
        result = runner.invoke(app, ["activate", "newbie", "--admin"])

        assert result.exit_code == 0
        assert "ACTIVE" in result.stdout
        assert "ADMIN" in result.stdout

        db = Database(seeded)
        with db.get_session() as session:
            user = session.get(User, "newbie")
            assert (user.status, user.role) == ("ACTIVE", "ADMIN")
        db.dispose()

    def test_activate_unknown(self, runner):
        result = runner.invoke(app, ["activate", "ghost"])
        assert result.exit_code == 1
        assert "User not found" in result.stdout
