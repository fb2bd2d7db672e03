# src/recon_api/application/interfaces/cache_store.py
# Copyright (c) Recon.
# SPDX-License-Identifier: MIT
"""Application Interface: Cache Store.

Synopsis:
    Persistent key/value store behind the cache-aside repository. Entries
    are never evicted on expiry: staleness is decided by the repository from
    ``fetched_at`` and ``ttl_seconds`` so an expired entry can still be
    served when the provider fails.

Layer:
    application/interfaces
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Protocol


@dataclass(frozen=True, slots=True)
class CacheKey:
    """Identity of one cached datum.

    Attributes:
        ticker: Upper-case ticker symbol.
        data_type: Kind of datum (``statements``, ``quote``, ...).
        period_type: ``annual``, ``quarterly``, ``ttm`` or ``none``.
    """

    ticker: str
    data_type: str
    period_type: str = "none"

    def as_string(self) -> str:
        """Return a flat ``ticker:data_type:period_type`` key."""
        return f"{self.ticker}:{self.data_type}:{self.period_type}"


@dataclass(frozen=True, slots=True)
class CacheRecord:
    """A stored payload with its freshness metadata."""

    payload: Any
    fetched_at: datetime
    ttl_seconds: int
    provider: str | None = None

    def is_fresh(self, now: datetime) -> bool:
        """Whether the entry is within its TTL at ``now`` (boundary inclusive)."""
        return now - self.fetched_at <= timedelta(seconds=self.ttl_seconds)


class CacheStore(Protocol):
    """Protocol for cache-aside backing stores.

    Implementations must keep at most one entry per :class:`CacheKey`; a put
    replaces the previous entry as a single write.
    """

    async def get(self, key: CacheKey) -> CacheRecord | None:
        """Return the entry for ``key`` regardless of age, or ``None``."""

    async def put(
        self,
        key: CacheKey,
        payload: Mapping[str, Any] | list[Any],
        *,
        fetched_at: datetime,
        ttl_seconds: int,
        provider: str | None = None,
    ) -> None:
        """Insert or replace the entry for ``key``."""
