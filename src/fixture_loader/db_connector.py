from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import MetaData, create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .models import DatabaseConfig

LOGGER = logging.getLogger("fixtures.db")


def _enable_sqlite_savepoints(engine: Engine) -> None:
    # pysqlite emits its own BEGIN lazily, which breaks SAVEPOINT handling.
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn) -> None:
        conn.exec_driver_sql("BEGIN")


def build_engine(url: str) -> Engine:
    if url in ("sqlite://", "sqlite:///:memory:"):
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_engine(url)
    if engine.dialect.name == "sqlite":
        _enable_sqlite_savepoints(engine)
    return engine


class DatabaseSession:
    """Manage the SQLAlchemy engine and hand out transactional sessions."""

    def __init__(self, config: DatabaseConfig) -> None:
        self._config = config
        self._engine: Optional[Engine] = None
        self._sessions: Optional[sessionmaker] = None

    def open(self) -> Engine:
        if self._engine is not None:
            return self._engine

        deadline = time.time() + self._config.connect_timeout
        attempts = 0
        while True:
            attempts += 1
            try:
                LOGGER.info("Creating SQLAlchemy engine (attempt %s)", attempts)
                engine = build_engine(self._config.url)
                with engine.connect() as connection:
                    connection.execute(text("SELECT 1"))
                self._engine = engine
                LOGGER.info("Connected to database")
                break
            except OperationalError as exc:
                if time.time() >= deadline:
                    raise RuntimeError("Database connection timed out") from exc
                LOGGER.warning("Database not ready yet (%s), retrying...", exc)
                time.sleep(min(2 * attempts, 10))

        self._sessions = sessionmaker(bind=self._engine, expire_on_commit=False)
        return self._engine

    def ensure_schema(self, metadata: MetaData) -> None:
        metadata.create_all(self.engine)

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError("Engine not initialised; call open()")
        return self._engine

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Yield a session whose transaction commits on success and rolls back on error."""
        if self._sessions is None:
            raise RuntimeError("Engine not initialised; call open() first")
        with self._sessions() as session:
            with session.begin():
                yield session

    def dispose(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
        self._engine = None
        self._sessions = None
