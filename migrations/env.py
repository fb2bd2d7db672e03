# migrations/env.py
# Copyright (c) Recon.
# SPDX-License-Identifier: MIT
"""Alembic Environment (migrations/env.py)

Purpose:
    Configure Alembic for the Recon cache tables with deterministic behavior
    across offline and online (async) migration runs.

Design:
    - Loads the database URL from environment variables or alembic.ini.
    - Refuses to run if ENVIRONMENT is missing (prevents "wrong DB" footguns).
    - Uses the project Declarative Base for autogenerate (`target_metadata`).
    - Supports async engines for "online" migrations while keeping "offline"
      output stable.
    - Emits masked connection information to the log (no credentials).

Environment variables:
    ENVIRONMENT                 Required. One of the ``Environment`` values.
    DATABASE_URL                Primary database URL (preferred).
    SQLALCHEMY_DATABASE_URI     Fallback database URL.
    ECHO_SQL                    If "1", enable SQL echo in online runs.
    ALEMBIC_SHOW_URL            If "1", log masked URL during runs.

Usage:
    # Offline (SQL script):
    ENVIRONMENT=development alembic -x show_url=1 upgrade head --sql

    # Online (apply to DB):
    ENVIRONMENT=development alembic upgrade head
"""

from __future__ import annotations

import asyncio
import logging
import logging.config
import os
from collections.abc import Mapping
from typing import Any
from urllib.parse import urlparse, urlunparse

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from recon_api.config.settings import Environment
from recon_api.infrastructure.database.models import provider_cache as _cache_models  # noqa: F401
from recon_api.infrastructure.database.models.base import metadata as BaseMetadata

config = context.config

if config.config_file_name is not None:
    logging.config.fileConfig(config.config_file_name)

logger = logging.getLogger("alembic.env")

_VERSION_TABLE = "alembic_version"


def _xargs() -> Mapping[str, str]:
    """Return Alembic -x key=value arguments as a mapping."""
    return dict(getattr(config, "x", {}) or {})


def _mask_url(url: str) -> str:
    """Return a masked representation of a database URL for safe logging."""
    parts = urlparse(url)
    user = parts.username or ""
    host = parts.hostname or ""
    port = f":{parts.port}" if parts.port else ""
    auth = f"{user}:****@" if user else ""
    return urlunparse((parts.scheme, f"{auth}{host}{port}", parts.path or "", "", "", ""))


def _get_db_url() -> str:
    """Resolve the database URL from environment or alembic.ini.

    Resolution order:
        1) `DATABASE_URL`
        2) `SQLALCHEMY_DATABASE_URI`
        3) alembic.ini -> sqlalchemy.url

    Raises:
        RuntimeError: If no database URL can be resolved.
    """
    env_url = os.getenv("DATABASE_URL") or os.getenv("SQLALCHEMY_DATABASE_URI")
    if env_url:
        return env_url

    ini_url = config.get_main_option("sqlalchemy.url")
    if ini_url:
        return ini_url

    raise RuntimeError(
        "Database URL not configured (DATABASE_URL/SQLALCHEMY_DATABASE_URI/sqlalchemy.url)."
    )


def _require_environment() -> str:
    """Require a known ENVIRONMENT to prevent accidental migrations."""
    env = (os.getenv("ENVIRONMENT") or "").strip().lower()
    if not env:
        raise RuntimeError(
            "ENVIRONMENT is required for migrations (e.g., ENVIRONMENT=development). "
            "Refusing to run without an explicit environment."
        )
    known = {e.value for e in Environment}
    if env not in known:
        raise RuntimeError(f"Unsupported ENVIRONMENT={env!r}. Supported: {sorted(known)}")
    return env


def _maybe_log_url(url: str) -> None:
    if _xargs().get("show_url") == "1" or os.getenv("ALEMBIC_SHOW_URL") == "1":
        logger.info("Using DATABASE_URL (masked): %s", _mask_url(url))


target_metadata = BaseMetadata


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode (SQL script output)."""
    _require_environment()
    url = _get_db_url()
    _maybe_log_url(url)

    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        include_schemas=True,
        version_table=_VERSION_TABLE,
    )

    with context.begin_transaction():
        context.run_migrations()


def _online_engine_kwargs() -> dict[str, Any]:
    """Return keyword arguments for creating an async engine."""
    echo_sql = (os.getenv("ECHO_SQL") == "1") or (
        (config.get_main_option("echo_sql") or "").strip().lower() == "true"
    )
    return {"echo": echo_sql, "poolclass": pool.NullPool}


def _configure_and_run(connection: Connection) -> None:
    """Configure Alembic context with a live connection and run migrations."""
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        compare_type=True,
        include_schemas=True,
        version_table=_VERSION_TABLE,
    )

    with context.begin_transaction():
        context.run_migrations()


async def _run_migrations_async() -> None:
    """Run migrations in 'online' mode using an async engine."""
    _require_environment()
    url = _get_db_url()
    _maybe_log_url(url)

    connectable: AsyncEngine = create_async_engine(url, **_online_engine_kwargs())

    async with connectable.connect() as connection:
        await connection.run_sync(_configure_and_run)

    await connectable.dispose()


def run_migrations_online() -> None:
    """Entry point used by Alembic for online migrations (async safe)."""
    asyncio.run(_run_migrations_async())


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
