"""
SQLAlchemy async engine and session management

This module provides:
1. AsyncEngineManager: Owns one engine per event loop for a database URL
2. Base: Declarative base shared by every ORM model
3. UTCDateTime / JsonType: Column types portable between PostgreSQL and SQLite
4. Database: Session provider injected through the DI container

Locking:
- PostgreSQL: row locks via SELECT ... FOR UPDATE [SKIP LOCKED]
- SQLite (local/test): FOR UPDATE is not rendered, so every transaction is
  opened with BEGIN IMMEDIATE, which takes the single write lock up front
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncGenerator, Optional

from sqlalchemy import JSON, DateTime, event
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.engine import Dialect
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.types import TypeDecorator

from settlement_engine.platform.config.core_setting import settings
from settlement_engine.platform.logging.loguru_io import Logger


# =============================================================================
# Portable column types
# =============================================================================


class UTCDateTime(TypeDecorator[datetime]):
    """Timezone-aware datetime that always round-trips as UTC."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect: Dialect) -> Optional[datetime]:
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        value = value.astimezone(timezone.utc)
        # SQLite compares datetimes as text, so store them naive and uniform
        return value.replace(tzinfo=None) if dialect.name == 'sqlite' else value

    def process_result_value(
        self, value: Optional[datetime], dialect: Dialect
    ) -> Optional[datetime]:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


JsonType = JSON().with_variant(JSONB(), 'postgresql')


# =============================================================================
# Event-loop-aware Engine Manager
# =============================================================================


def _install_sqlite_locking(engine: AsyncEngine) -> None:
    # https://docs.sqlalchemy.org/en/20/dialects/sqlite.html#serializable-isolation-savepoints-transactional-ddl
    @event.listens_for(engine.sync_engine, 'connect')
    def _on_connect(dbapi_connection: Any, connection_record: Any) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute('PRAGMA foreign_keys=ON')
        cursor.close()

    @event.listens_for(engine.sync_engine, 'begin')
    def _on_begin(conn: Any) -> None:
        conn.exec_driver_sql('BEGIN IMMEDIATE')


class AsyncEngineManager:
    """
    Manages a SQLAlchemy async engine with event loop awareness.

    Ensures the engine is always bound to the current event loop to prevent
    "Task got Future attached to a different loop" errors when tests or
    background portals run their own loops.
    """

    def __init__(self, *, url: str) -> None:
        self.url = url
        self._engine: Optional[AsyncEngine] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._session_maker: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith('sqlite')

    def get_engine(self) -> AsyncEngine:
        try:
            current_loop = asyncio.get_running_loop()
        except RuntimeError:
            if self._engine is None:
                self._engine = self._create_engine()
            return self._engine

        if self._loop is not current_loop:
            if self._engine is not None:
                Logger.base.warning('🔄 [DB] Event loop changed, dropping old engine...')
                self._session_maker = None
            Logger.base.info(f'🔗 [DB] Creating engine for event loop {id(current_loop)}')
            self._engine = self._create_engine()
            self._loop = current_loop

        return self._engine  # type: ignore[return-value]

    def get_session_maker(self) -> async_sessionmaker[AsyncSession]:
        engine = self.get_engine()
        if self._session_maker is None:
            self._session_maker = async_sessionmaker(
                engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )
        return self._session_maker

    async def dispose(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
        self._engine = None
        self._session_maker = None
        self._loop = None

    def _create_engine(self) -> AsyncEngine:
        if self.is_sqlite:
            engine = create_async_engine(
                self.url,
                echo=False,
                connect_args={'timeout': 30},
            )
            _install_sqlite_locking(engine)
            return engine

        return create_async_engine(
            self.url,
            echo=False,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_POOL_MAX_OVERFLOW,
            pool_timeout=settings.DB_POOL_TIMEOUT,
            pool_recycle=settings.DB_POOL_RECYCLE,
            pool_pre_ping=settings.DB_POOL_PRE_PING,
        )


# =============================================================================
# Base Model
# =============================================================================


class Base(DeclarativeBase):
    pass


# =============================================================================
# Database Class (for DI)
# =============================================================================


class Database:
    """
    Session provider for the DI container.

    Each logical operation opens its own session through ``session()``;
    the Unit of Work owns the transaction on top of it.
    """

    def __init__(self, *, url: str | None = None) -> None:
        self._engine_manager = AsyncEngineManager(url=url or settings.DATABASE_URL_ASYNC)

    @property
    def engine(self) -> AsyncEngine:
        return self._engine_manager.get_engine()

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Context manager for database sessions

        Note: Automatically handles rollback on exception
        """
        session_maker = self._engine_manager.get_session_maker()
        async with session_maker() as session:
            yield session

    async def create_tables(self) -> None:
        """Create tables if they don't exist (local runs and tests; production uses Alembic)"""
        # Importing the models registers them on Base.metadata
        import settlement_engine.service.reconciliation.driven_adapter.model  # noqa: F401
        import settlement_engine.service.reservation.driven_adapter.model  # noqa: F401
        import settlement_engine.service.settlement.driven_adapter.model  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all, checkfirst=True)

    async def dispose(self) -> None:
        await self._engine_manager.dispose()
