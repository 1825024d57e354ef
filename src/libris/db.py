import asyncio
import logging
from contextlib import asynccontextmanager, nullcontext
from pathlib import Path
from typing import AsyncIterator

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession, AsyncEngine
from sqlalchemy.orm import DeclarativeBase

logger = logging.getLogger(__name__)

class Base(DeclarativeBase):
    pass

def _configure_sqlite(engine: AsyncEngine) -> None:
    # pysqlite/aiosqlite defer BEGIN until the first write, so two readers can
    # deadlock when both upgrade to writers. Take the write lock up front.
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


class Database:
    """Owned handle on the relational store.

    Open it once at process start and close it on shutdown. Every unit of
    work goes through ``transaction()``.
    """

    def __init__(self, url: str, *, echo: bool = False):
        self.url = make_url(url)
        self.engine: AsyncEngine = create_async_engine(url, echo=echo, pool_pre_ping=True)
        if self.is_sqlite:
            _configure_sqlite(self.engine)
        self.sessionmaker = async_sessionmaker(self.engine, expire_on_commit=False, class_=AsyncSession)
        # An in-memory SQLite database lives on one shared connection, so
        # transactions must take turns in-process.
        self._lock = asyncio.Lock() if self.is_memory else None

    @property
    def is_sqlite(self) -> bool:
        return self.url.get_backend_name() == "sqlite"

    @property
    def is_memory(self) -> bool:
        return self.is_sqlite and self.url.database in (None, "", ":memory:")

    async def open(self) -> "Database":
        from libris import models  # noqa: F401  registers tables on Base.metadata
        if self.is_sqlite and not self.is_memory:
            Path(self.url.database).parent.mkdir(parents=True, exist_ok=True)
        async with self.engine.begin() as conn:
            # create_all skips tables that already exist
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database ready at %s", self.url.render_as_string(hide_password=True))
        return self

    async def close(self) -> None:
        await self.engine.dispose()
        logger.info("Database connection closed")

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """Yield a session inside one transaction.

        Commits when the block exits normally, rolls back on any exception.
        """
        async with self._lock or nullcontext():
            async with self.sessionmaker() as session:
                async with session.begin():
                    yield session
