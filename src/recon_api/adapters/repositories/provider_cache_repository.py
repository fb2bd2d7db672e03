# src/recon_api/adapters/repositories/provider_cache_repository.py
# Copyright (c) Recon.
# SPDX-License-Identifier: MIT
"""
Provider Cache Repository (SQLAlchemy).

Purpose:
    Persist cache-aside entries in the ``provider_cache`` table and expose
    them through the :class:`CacheStore` protocol.

Layer:
    adapters

Notes:
    * ``ProviderCacheRepository`` works on one session and never commits.
    * ``SqlCacheStore`` owns short-lived sessions: one per read, one
      transaction per write.
    * Writes are single-statement upserts (``INSERT .. ON CONFLICT DO
      UPDATE``) on PostgreSQL and SQLite, so concurrent refreshes of the same
      key never produce two rows.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from recon_api.adapters.repositories.base_repository import BaseRepository
from recon_api.application.interfaces.cache_store import CacheKey, CacheRecord
from recon_api.infrastructure.database.models.provider_cache import ProviderCacheEntry

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class ProviderCacheRepository(BaseRepository[ProviderCacheEntry]):
    """SQLAlchemy repository for ``provider_cache`` rows."""

    async def get(self, key: CacheKey) -> CacheRecord | None:
        """Return the row for ``key`` as a :class:`CacheRecord`, or ``None``."""
        stmt = select(ProviderCacheEntry).where(
            ProviderCacheEntry.ticker == key.ticker,
            ProviderCacheEntry.data_type == key.data_type,
            ProviderCacheEntry.period_type == key.period_type,
        )
        row = await self.fetch_optional(stmt)
        if row is None:
            return None
        return CacheRecord(
            payload=row.payload,
            fetched_at=self.as_utc(row.fetched_at),
            ttl_seconds=row.ttl_seconds,
            provider=row.provider,
        )

    async def upsert(
        self,
        key: CacheKey,
        payload: Any,
        *,
        fetched_at: datetime,
        ttl_seconds: int,
        provider: str | None,
    ) -> None:
        """Insert or replace the row for ``key`` in one statement.

        Raises:
            NotImplementedError: If the bound dialect has no upsert support here.
        """
        insert = _UPSERT_DIALECTS.get(self.dialect_name)
        if insert is None:
            raise NotImplementedError(f"upsert not supported for dialect {self.dialect_name!r}")

        values = {
            "ticker": key.ticker,
            "data_type": key.data_type,
            "period_type": key.period_type,
            "payload": payload,
            "fetched_at": self.as_utc(fetched_at),
            "ttl_seconds": ttl_seconds,
            "provider": provider,
        }
        stmt = insert(ProviderCacheEntry).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["ticker", "data_type", "period_type"],
            set_={
                "payload": stmt.excluded.payload,
                "fetched_at": stmt.excluded.fetched_at,
                "ttl_seconds": stmt.excluded.ttl_seconds,
                "provider": stmt.excluded.provider,
            },
        )
        await self._session.execute(stmt)


class SqlCacheStore:
    """:class:`CacheStore` backed by the ``provider_cache`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get(self, key: CacheKey) -> CacheRecord | None:
        async with self._session_factory() as session:
            return await ProviderCacheRepository(session).get(key)

    async def put(
        self,
        key: CacheKey,
        payload: Mapping[str, Any] | list[Any],
        *,
        fetched_at: datetime,
        ttl_seconds: int,
        provider: str | None = None,
    ) -> None:
        async with self._session_factory() as session, session.begin():
            await ProviderCacheRepository(session).upsert(
                key,
                payload,
                fetched_at=fetched_at,
                ttl_seconds=ttl_seconds,
                provider=provider,
            )


__all__ = ["ProviderCacheRepository", "SqlCacheStore"]
