# Copyright (c) Recon.
# SPDX-License-Identifier: MIT
"""Async SQLAlchemy engine/session factory.

This module owns the application-global async SQLAlchemy engine and
`async_sessionmaker` used by the SQL cache store.

Lifecycle:
    * Call `init_engine_and_sessionmaker(settings)` at startup.
    * `create_schema()` creates the cache tables for tests and local SQLite;
      Alembic owns the schema elsewhere.
    * Use `get_sessionmaker()` to open sessions.
    * Call `dispose_engine()` during shutdown.

Notes:
    * No business logic here; repositories consume the session.
    * `pool_pre_ping=True` helps surface dead connections before use.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from recon_api.config.settings import Settings
from recon_api.infrastructure.database.models.base import Base

_engine: AsyncEngine | None = None
_sessionmaker: async_sessionmaker[AsyncSession] | None = None


def init_engine_and_sessionmaker(settings: Settings) -> None:
    """Initialize the global async engine and sessionmaker.

    Args:
        settings: Application settings providing `database_url`.

    Raises:
        ValueError: If `database_url` is empty.
    """
    global _engine, _sessionmaker

    if not settings.database_url:
        raise ValueError("database_url must be configured")
    if _engine is not None:
        return

    _engine = create_async_engine(
        url=settings.database_url,
        future=True,
        pool_pre_ping=True,
        echo=False,
    )
    _sessionmaker = async_sessionmaker(bind=_engine, expire_on_commit=False, class_=AsyncSession)


async def create_schema(engine: AsyncEngine | None = None) -> None:
    """Create all cache tables that do not exist yet.

    Args:
        engine: Engine to use; defaults to the global engine.

    Raises:
        RuntimeError: If no engine is given and none is initialized.
    """
    target = engine or _engine
    if target is None:
        raise RuntimeError("DB engine not initialized (call init_engine_and_sessionmaker)")
    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    """Dispose the global engine at shutdown."""
    global _engine, _sessionmaker
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _sessionmaker = None


def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    """Return the initialized async sessionmaker.

    Raises:
        RuntimeError: If the sessionmaker is not yet initialized.
    """
    if _sessionmaker is None:
        raise RuntimeError("DB sessionmaker not initialized (call init_engine_and_sessionmaker)")
    return _sessionmaker

