"""SQLite database connection and session management."""

import logging
import threading
from contextlib import contextmanager, nullcontext
from pathlib import Path
from typing import Generator, Union

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .models import Base

logger = logging.getLogger(__name__)


class Database:
    """Database connection and session manager.

    Every transaction is opened with ``BEGIN IMMEDIATE`` so that the
    check-then-write sequences of the lending workflow run serialised
    against concurrent writers, and foreign keys are enforced so that
    deleting a book cascades to its requests.

    An in-memory database lives on a single shared connection, so its
    sessions are serialised behind a re-entrant lock for their whole
    lifetime.
    """

    def __init__(self, db_path: Union[str, Path]):
        """Initialize database connection.

        Args:
            db_path: Path to SQLite database file, or ":memory:"
        """
        self.db_path = Path(db_path)
        self._is_memory = str(db_path) == ":memory:"
        self._lock = threading.RLock() if self._is_memory else nullcontext()

        if not self._is_memory:
            self._ensure_directory()

        # For in-memory databases, use StaticPool to reuse the same connection
        # so that all sessions share the same in-memory database
        if self._is_memory:
            self.engine = create_engine(
                "sqlite:///:memory:",
                echo=False,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            self.engine = create_engine(
                f"sqlite:///{self.db_path}",
                echo=False,
                connect_args={"check_same_thread": False, "timeout": 15},
            )
        self._install_sqlite_hooks()
        self.SessionLocal = sessionmaker(
            bind=self.engine, autocommit=False, autoflush=False, expire_on_commit=False
        )

    def _ensure_directory(self) -> None:
        """Ensure the database directory exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def _install_sqlite_hooks(self) -> None:
        """Take over transaction control from pysqlite."""

        @event.listens_for(self.engine, "connect")
        def _on_connect(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(self.engine, "begin")
        def _on_begin(conn):
            conn.exec_driver_sql("BEGIN IMMEDIATE")

    def create_tables(self) -> None:
        """Create all database tables."""
        with self._lock:
            Base.metadata.create_all(self.engine)
        logger.debug("Database tables ready at %s", self.db_path)

    def drop_tables(self) -> None:
        """Drop all database tables. Use with caution!"""
        with self._lock:
            Base.metadata.drop_all(self.engine)

    def dispose(self) -> None:
        """Close all pooled connections."""
        self.engine.dispose()

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """Get a database session context manager.

        The session commits when the block exits normally and rolls back
        when it raises, so each block is one atomic unit.
        """
        with self._lock:
            session = self.SessionLocal()
            try:
                yield session
                session.commit()
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()
