# src/recon_api/adapters/repositories/base_repository.py
# Copyright (c) Recon.
# SPDX-License-Identifier: MIT
"""
BaseRepository: shared repository foundation for Recon.

Purpose:
    Shared mechanics for SQL repositories:
      * Optional-row fetch helper.
      * Dialect name lookup for dialect-specific statements (upserts).
      * Re-attaching UTC to naive timestamps returned by drivers without
        timezone support (SQLite).

Layer: adapters / repositories

Notes:
    * No business logic, no domain decisions.
    * Repositories never commit; the caller owns the transaction.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Generic, TypeVar

from sqlalchemy import Select
from sqlalchemy.ext.asyncio import AsyncSession

TModel = TypeVar("TModel")


class BaseRepository(Generic[TModel]):  # noqa: UP046
    """Abstract base class for all repositories."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            session: Async SQLAlchemy session bound to the target database.
        """
        self._session: AsyncSession = session

    # ------------------------------------------------------------------
    # Timestamp utilities
    # ------------------------------------------------------------------

    @staticmethod
    def as_utc(value: datetime) -> datetime:
        """Return ``value`` as an aware UTC datetime (naive values are UTC)."""
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    # ------------------------------------------------------------------
    # Dialect
    # ------------------------------------------------------------------

    @property
    def dialect_name(self) -> str:
        """Name of the bound dialect (``postgresql``, ``sqlite``, ...)."""
        return self._session.get_bind().dialect.name

    # ------------------------------------------------------------------
    # Fetch helper
    # ------------------------------------------------------------------

    async def fetch_optional(self, stmt: Select[Any]) -> TModel | None:
        """Execute a statement and return zero or one row."""
        res = await self._session.execute(stmt)
        return res.scalars().first()
