"""Database engine configuration for benchmark reports."""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from .migrations import migrate
from .schema import Base

logger = logging.getLogger(__name__)


def _enable_wal(dbapi_connection, connection_record) -> None:
    # WAL lets page renders read while a submission is being written
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()


def create_db_engine(database_url: str) -> Engine:
    """Create a SQLite engine, making the database directory if needed."""
    url = make_url(database_url)
    if url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)

    engine = create_engine(
        url,
        connect_args={"check_same_thread": False},
        echo=False,
        pool_pre_ping=True,
    )
    event.listen(engine, "connect", _enable_wal)
    return engine


class BenchmarkStore:
    """
    Handle on the benchmark database.

    Built once at startup and passed to whatever needs it; `dispose` closes
    the pooled connections at shutdown.
    """

    def __init__(self, database_url: str):
        self.database_url = database_url
        self.engine = create_db_engine(database_url)
        self._sessions = sessionmaker(autoflush=False, bind=self.engine)

    def init_models(self) -> None:
        """Create the table if missing and add any columns it lacks."""
        Base.metadata.create_all(bind=self.engine)
        migrate(self.engine)
        logger.info("Database initialized at %s", self.engine.url.database)

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """Session for reads; callers commit explicitly if they write."""
        session = self._sessions()
        try:
            yield session
        finally:
            session.close()

    @contextmanager
    def transaction(self) -> Generator[Session, None, None]:
        """Session that commits on exit and rolls back on any exception."""
        with self._sessions.begin() as session:
            yield session

    def dispose(self) -> None:
        self.engine.dispose()


def open_store(database_url: str) -> BenchmarkStore:
    store = BenchmarkStore(database_url)
    store.init_models()
    return store
