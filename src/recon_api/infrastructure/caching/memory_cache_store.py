# src/recon_api/infrastructure/caching/memory_cache_store.py
# Copyright (c) Recon.
# SPDX-License-Identifier: MIT
"""Process-local :class:`CacheStore` for tests and keyless local runs."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from recon_api.application.interfaces.cache_store import CacheKey, CacheRecord


class InMemoryCacheStore:
    """Dictionary-backed cache store. Entries live for the process lifetime."""

    def __init__(self) -> None:
        self._entries: dict[CacheKey, CacheRecord] = {}

    def __len__(self) -> int:
        return len(self._entries)

    async def get(self, key: CacheKey) -> CacheRecord | None:
        return self._entries.get(key)

    async def put(
        self,
        key: CacheKey,
        payload: Mapping[str, Any] | list[Any],
        *,
        fetched_at: datetime,
        ttl_seconds: int,
        provider: str | None = None,
    ) -> None:
        self._entries[key] = CacheRecord(
            payload=payload,
            fetched_at=fetched_at,
            ttl_seconds=ttl_seconds,
            provider=provider,
        )


__all__ = ["InMemoryCacheStore"]
