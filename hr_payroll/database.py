"""Async SQLAlchemy engine and session management.

The engine is owned by a ``Database`` handle with an explicit lifecycle
(``connect`` / ``close``) that the FastAPI lifespan creates and stores on
``app.state.database``. Tests build their own handle against SQLite.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Optional

import sqlalchemy as sa
from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = sa.JSON().with_variant(JSONB(), "postgresql")


# ── Capabilities ────────────────────────────────────────────────────

OVERTIME_TABLE = "monthly_overtime"
REGULARIZATION_TABLE = "attendance_regularizations"
HOLD_TABLE = "salary_holds"


@dataclass(frozen=True)
class Capabilities:
    """Optional tables detected once at startup."""

    overtime_tracking: bool = True
    regularizations: bool = True
    salary_holds: bool = True

    @classmethod
    def from_table_names(cls, names: set[str]) -> "Capabilities":
        return cls(
            overtime_tracking=OVERTIME_TABLE in names,
            regularizations=REGULARIZATION_TABLE in names,
            salary_holds=HOLD_TABLE in names,
        )


class Database:
    """Lifecycle-managed engine + session factory."""

    def __init__(self, url: str, **engine_kwargs: Any) -> None:
        self.url = url
        self._engine_kwargs = engine_kwargs
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None
        self.capabilities = Capabilities()

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Database is not connected; call connect() first.")
        return self._engine

    @property
    def is_connected(self) -> bool:
        return self._engine is not None

    async def connect(self, *, detect_capabilities: bool = True) -> None:
        if self._engine is not None:
            return
        self._engine = create_async_engine(self.url, **self._engine_kwargs)
        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        if detect_capabilities:
            await self.refresh_capabilities()

    async def refresh_capabilities(self) -> Capabilities:
        """Inspect the schema and record which optional tables exist."""
        async with self.engine.connect() as conn:
            names = await conn.run_sync(
                lambda sync_conn: set(sa.inspect(sync_conn).get_table_names())
            )
        self.capabilities = Capabilities.from_table_names(names)
        if not self.capabilities.overtime_tracking:
            logger.warning(
                "Table %s not found — overtime is disabled for all employees",
                OVERTIME_TABLE,
            )
        return self.capabilities

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
        self._engine = None
        self._session_factory = None

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Yield a session that commits on success and rolls back on error."""
        if self._session_factory is None:
            raise RuntimeError("Database is not connected; call connect() first.")
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise


def create_database(url: str, *, environment: str = "development") -> Database:
    """Production handle with the asyncpg pool settings."""
    from hr_payroll.config import settings

    return Database(
        url,
        echo=environment == "development" and settings.LOG_LEVEL == "debug",
        pool_size=settings.DATABASE_POOL_SIZE,
        max_overflow=settings.DATABASE_MAX_OVERFLOW,
        pool_pre_ping=True,
    )


# ── FastAPI dependencies ────────────────────────────────────────────

def get_database(request: Request) -> Database:
    return request.app.state.database


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """FastAPI dependency: yield an async database session."""
    async with get_database(request).session() as session:
        yield session


def get_capabilities(request: Request) -> Capabilities:
    return get_database(request).capabilities
