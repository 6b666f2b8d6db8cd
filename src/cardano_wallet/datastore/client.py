"""Local ledger store: async SQLAlchemy engine, schema and sessions.

Wallets, transactions, UTXOs and sync checkpoints live behind one engine.
SQLite (``aiosqlite``) is the default backend; PostgreSQL works through an
``asyncpg`` DSN.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from sqlalchemy import event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from cardano_wallet.engine.models import Base

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from cardano_wallet.config.settings import DatabaseConfig

logger = logging.getLogger(__name__)

SQLITE_BUSY_TIMEOUT_MS = 5000


def is_sqlite(dsn: str) -> bool:
    return dsn.startswith("sqlite")


def is_memory_db(dsn: str) -> bool:
    """Whether *dsn* points at a private in-memory SQLite database."""
    return is_sqlite(dsn) and (":memory:" in dsn or dsn.rstrip("/").endswith(":"))


def _set_sqlite_pragmas(dbapi_connection: Any, _record: Any) -> None:
    # WAL lets the API read while a sync commits.
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute(f"PRAGMA busy_timeout={SQLITE_BUSY_TIMEOUT_MS}")
    cursor.close()


def create_engine(config: DatabaseConfig) -> AsyncEngine:
    """Create an async SQLAlchemy engine for the ledger store.

    File-backed SQLite databases run in WAL mode with a busy timeout;
    server databases get a bounded, pre-pinged connection pool.
    """
    kwargs: dict[str, Any] = {"echo": config.debug_sql}
    if not is_sqlite(config.dsn):
        kwargs["pool_size"] = config.max_idle_connections
        kwargs["max_overflow"] = max(config.max_open_connections - config.max_idle_connections, 0)
        kwargs["pool_pre_ping"] = True

    engine = create_async_engine(config.dsn, **kwargs)
    if is_sqlite(config.dsn) and not is_memory_db(config.dsn):
        event.listen(engine.sync_engine, "connect", _set_sqlite_pragmas)
    return engine


class Datastore:
    """The ledger store used by every engine service.

    Usage::

        ds = Datastore(db_config)
        await ds.open()
        async with ds.transaction() as session:
            session.add(...)
        await ds.close()

    ``session()`` hands out a plain session the caller commits;
    ``transaction()`` commits on success and rolls back on any exception,
    which is how a sync writes its transactions, UTXOs and checkpoint
    together.
    """

    def __init__(self, config: DatabaseConfig) -> None:
        self._config = config
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def engine(self) -> AsyncEngine:
        """Return the underlying async engine.

        Raises:
            RuntimeError: If the datastore is not open.
        """
        if self._engine is None:
            msg = "Datastore is not open. Call open() first."
            raise RuntimeError(msg)
        return self._engine

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    async def open(self, *, create_schema: bool = True) -> None:
        """Create the engine and session factory, then the ledger tables."""
        self._engine = create_engine(self._config)
        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        if create_schema:
            await self.create_schema()
        logger.debug("Ledger store open (%s)", self._config.engine)

    async def close(self) -> None:
        """Dispose the engine and release all connections."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None

    async def create_schema(self) -> None:
        """Create any missing ledger tables. Existing tables are left alone."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_schema(self) -> None:
        """Drop every ledger table (tests and local resets only)."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    def session(self) -> AsyncSession:
        """Create a new async session. Use as an async context manager.

        Raises:
            RuntimeError: If the datastore is not open.
        """
        if self._session_factory is None:
            msg = "Datastore is not open. Call open() first."
            raise RuntimeError(msg)
        return self._session_factory()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """Yield a session inside one database transaction."""
        async with self.session() as session, session.begin():
            yield session

    async def ping(self) -> bool:
        """Round-trip a trivial query; ``False`` when the store is closed or failing."""
        if self._engine is None:
            return False
        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError):
            logger.warning("Ledger store ping failed", exc_info=True)
            return False
        return True
