# src/recon_api/infrastructure/caching/redis_cache_store.py
# Copyright (c) Recon.
# SPDX-License-Identifier: MIT
"""Redis Cache Store.

Synopsis:
    :class:`CacheStore` implementation on top of the shared Redis client.
    Each entry is a JSON envelope holding the payload and its freshness
    metadata.

Design:
    * Pure JSON (utf-8) serialization; no pickle.
    * Keys: ``{namespace}:{ticker}:{data_type}:{period_type}``.
    * No Redis expiry is set. Staleness is decided by the repository from
      ``fetchedAt``/``ttlSeconds`` so an expired entry can still be served
      when the provider fails.

Layer:
    infrastructure/caching
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from recon_api.application.interfaces.cache_store import CacheKey, CacheRecord
from recon_api.infrastructure.caching.redis_client import RedisClient, get_redis_client

__all__ = ["RedisCacheStore"]

DEFAULT_NAMESPACE = "recon:fundamentals:v1"


class RedisCacheStore:
    """Redis-backed implementation of the CacheStore Protocol."""

    def __init__(
        self, client: RedisClient | None = None, *, namespace: str = DEFAULT_NAMESPACE
    ) -> None:
        """Initialize the store.

        Args:
            client: Redis client; defaults to the shared client at call time.
            namespace: Prefix applied to all keys to avoid collisions.
        """
        self._client = client
        self._ns = namespace

    def _k(self, key: CacheKey) -> str:
        return f"{self._ns}:{key.as_string()}"

    def _redis(self) -> RedisClient:
        return self._client if self._client is not None else get_redis_client()

    async def get(self, key: CacheKey) -> CacheRecord | None:
        """Return the entry for ``key`` regardless of age.

        Raises:
            ValueError: If the stored envelope is not valid JSON or lacks fields.
        """
        raw = await self._redis().get(self._k(key))
        if raw is None:
            return None
        envelope = json.loads(raw)
        try:
            return CacheRecord(
                payload=envelope["payload"],
                fetched_at=datetime.fromisoformat(envelope["fetchedAt"]),
                ttl_seconds=int(envelope["ttlSeconds"]),
                provider=envelope.get("provider"),
            )
        except (KeyError, TypeError) as exc:
            raise ValueError(f"malformed cache envelope for {self._k(key)}") from exc

    async def put(
        self,
        key: CacheKey,
        payload: Mapping[str, Any] | list[Any],
        *,
        fetched_at: datetime,
        ttl_seconds: int,
        provider: str | None = None,
    ) -> None:
        envelope = {
            "payload": payload,
            "fetchedAt": fetched_at.isoformat(),
            "ttlSeconds": ttl_seconds,
            "provider": provider,
        }
        await self._redis().set(self._k(key), json.dumps(envelope, separators=(",", ":")))
