"""
TradeSim - Database Connection

The store handle is constructed explicitly and passed to every service.
Lifecycle: ``open()`` on process start, ``close()`` on shutdown.
"""
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy import event
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool
from loguru import logger

# Base class for models
Base = declarative_base()


def _sqlite_on_connect(dbapi_connection, connection_record) -> None:
    # WAL lets readers run alongside the single writer
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()


class Database:
    """
    Async SQLAlchemy engine and session factory.

    Usage:
        db = Database("sqlite+aiosqlite:///./tradesim.db")
        await db.open()
        await db.create_all()

        async with db.session() as session, session.begin():
            ...

        await db.close()
    """

    def __init__(
        self,
        url: str,
        echo: bool = False,
        pool_size: int = 10,
        max_overflow: int = 20,
    ):
        self.url = url
        self.echo = echo
        self.pool_size = pool_size
        self.max_overflow = max_overflow
        self._engine: Optional[AsyncEngine] = None
        self._session_maker: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Database is not open")
        return self._engine

    async def open(self) -> None:
        """Create the engine and session factory."""
        if self._engine is not None:
            return

        if self.url.startswith("sqlite"):
            engine_kwargs = {"connect_args": {"check_same_thread": False}}
            if ":memory:" in self.url:
                # One shared connection, otherwise every checkout sees an empty database
                engine_kwargs["poolclass"] = StaticPool
        else:
            engine_kwargs = {
                "pool_pre_ping": True,
                "pool_size": self.pool_size,
                "max_overflow": self.max_overflow,
            }

        self._engine = create_async_engine(self.url, echo=self.echo, **engine_kwargs)
        if self.url.startswith("sqlite"):
            event.listen(self._engine.sync_engine, "connect", _sqlite_on_connect)

        self._session_maker = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        logger.info(f"Database engine opened ({self._engine.url.get_backend_name()})")

    async def close(self) -> None:
        """Dispose the engine and its pooled connections."""
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._session_maker = None
        logger.info("Database engine closed")

    async def create_all(self) -> None:
        """Create tables for every registered model."""
        # Import all models here to ensure they're registered
        from tradesim.db import models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created/verified")

    def session(self) -> AsyncSession:
        """Return a new session; use as ``async with db.session() as s``."""
        if self._session_maker is None:
            raise RuntimeError("Database is not open")
        return self._session_maker()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """Session wrapped in a transaction: commit on success, rollback on error."""
        async with self.session() as session:
            async with session.begin():
                yield session
