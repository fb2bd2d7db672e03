# Copyright (c) Recon.
# SPDX-License-Identifier: MIT
"""Minimal async circuit breaker (in-memory).

State machine:
    - CLOSED -> count failures; when threshold reached, go OPEN.
    - OPEN   -> fail-fast until recovery timeout expires; then HALF-OPEN.
    - HALF-OPEN -> allow limited calls; on success -> CLOSED; on failure -> OPEN.

Exceptions listed in ``excluded`` (e.g. "ticker not found") pass through
without counting as failures: they say nothing about provider health.

This is process-local. For distributed breakers, use a shared store.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field


class CircuitOpenError(RuntimeError):
    """Raised when the breaker rejects a call without attempting it."""

    def __init__(self, key: str, state: str) -> None:
        super().__init__(f"circuit_open:{key}")
        self.key = key
        self.state = state


@dataclass
class CircuitBreaker:
    """Simple circuit breaker suitable for HTTP client protection."""

    failure_threshold: int
    recovery_timeout_s: float
    half_open_max_calls: int = 1
    excluded: tuple[type[BaseException], ...] = ()

    _state: str = "CLOSED"  # CLOSED|OPEN|HALF_OPEN
    _failures: int = 0
    _opened_at: float = 0.0
    _half_open_calls: int = 0
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    @property
    def state(self) -> str:
        return self._state

    @asynccontextmanager
    async def guard(self, key: str) -> AsyncIterator[None]:
        """Guard an async call with the breaker.

        Raises:
            CircuitOpenError: If the circuit is open or the half-open trial
                budget is used up.
        """
        async with self._lock:
            now = time.monotonic()
            if self._state == "OPEN":
                if now - self._opened_at >= self.recovery_timeout_s:
                    self._state = "HALF_OPEN"
                    self._half_open_calls = 0
                else:
                    raise CircuitOpenError(key, self._state)
            if self._state == "HALF_OPEN":
                if self._half_open_calls >= self.half_open_max_calls:
                    raise CircuitOpenError(key, self._state)
                self._half_open_calls += 1

        try:
            yield
        except self.excluded:
            await self._record_success()
            raise
        except Exception:
            async with self._lock:
                if self._state == "HALF_OPEN":
                    self._state = "OPEN"
                    self._opened_at = time.monotonic()
                else:
                    self._failures += 1
                    if self._failures >= self.failure_threshold:
                        self._state = "OPEN"
                        self._opened_at = time.monotonic()
            raise
        else:
            await self._record_success()

    async def _record_success(self) -> None:
        async with self._lock:
            if self._state == "HALF_OPEN":
                self._state = "CLOSED"
                self._failures = 0
            elif self._state == "CLOSED":
                self._failures = 0
