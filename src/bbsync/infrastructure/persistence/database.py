"""Engine setup and the transaction boundary used by every write."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from bbsync.config import DatabaseSettings, Settings

logger = logging.getLogger(__name__)


def _engine_kwargs(db: DatabaseSettings) -> dict[str, Any]:
    kwargs: dict[str, Any] = {"echo": db.echo, "pool_pre_ping": db.pool_pre_ping}
    if db.is_sqlite:
        # Concurrent syncs of different resources queue on SQLite's single write lock
        kwargs["connect_args"] = {
            "check_same_thread": False,
            "timeout": db.sqlite_busy_timeout,
        }
    else:
        kwargs["pool_size"] = db.pool_size
        kwargs["max_overflow"] = db.max_overflow
        kwargs["pool_timeout"] = db.pool_timeout
        kwargs["pool_recycle"] = db.pool_recycle
    return kwargs


class Database:
    """Owns the async engine and hands out transactional sessions.

    session_scope() is THE transaction boundary of the app: everything done through
    the yielded session commits together, or rolls back together if anything raises
    inside the block. A sync opens exactly one scope for all of its writes.
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        db = settings.database
        self._engine = create_async_engine(db.url, **_engine_kwargs(db))
        if db.is_sqlite:
            event.listen(self._engine.sync_engine, "connect", _on_sqlite_connect)
        self._session_factory = async_sessionmaker(
            self._engine, class_=AsyncSession, expire_on_commit=False
        )

    @asynccontextmanager
    async def session_scope(self) -> AsyncGenerator[AsyncSession, None]:
        """Yield a session that commits on exit and rolls back on any exception."""
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def create_tables(self) -> None:
        """Create missing tables. Existing tables are left alone."""
        from bbsync.infrastructure.persistence.models import Base

        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.debug(f"Schema ensured on {self.settings.database.url}")

    async def close(self) -> None:
        """Dispose the engine and its pooled connections."""
        await self._engine.dispose()


def _on_sqlite_connect(dbapi_conn: Any, _connection_record: Any) -> None:
    # ON DELETE CASCADE / SET NULL are no-ops unless foreign keys are switched on
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
