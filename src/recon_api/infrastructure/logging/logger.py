# src/recon_api/infrastructure/logging/logger.py
# Copyright (c) Recon.
# SPDX-License-Identifier: MIT
"""Structured JSON logging utilities.

This module exposes an idempotent root configurator that makes every
standard-library logger emit one JSON object per log line.

Features:
    * Stable keys: ``ts``, ``level``, ``logger``, ``message``.
    * Correlation via ``request_id`` and ``trace_id`` held in contextvars,
      so concurrent lookups for different tickers never share identifiers.
    * Structured fields passed as ``extra={"extra": {...}}`` are merged into
      the top-level payload.

Typical usage:
    configure_root_logging()
    log = logging.getLogger(__name__)
    with request_context(request_id="abc"):
        log.info("scored", extra={"extra": {"ticker": "AAPL"}})
"""

from __future__ import annotations

import json
import logging
import os
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

__all__ = [
    "configure_root_logging",
    "set_request_context",
    "request_context",
    "get_request_id",
    "get_trace_id",
]

_REQUEST_ID_ENV_KEY = "REQUEST_ID"

# Task-local correlation context.
_REQUEST_ID_CTX: ContextVar[str | None] = ContextVar("recon_request_id", default=None)
_TRACE_ID_CTX: ContextVar[str | None] = ContextVar("recon_trace_id", default=None)


def set_request_context(*, request_id: str | None = None, trace_id: str | None = None) -> None:
    """Set correlation identifiers on the current context.

    Passing only one argument updates that value and leaves the other as is.

    Args:
        request_id: Caller-supplied correlation identifier, if any.
        trace_id: Distributed tracing identifier (hex string), if any.
    """
    if request_id is not None:
        _REQUEST_ID_CTX.set(request_id)
    if trace_id is not None:
        _TRACE_ID_CTX.set(trace_id)


@contextmanager
def request_context(
    *, request_id: str | None = None, trace_id: str | None = None
) -> Iterator[str]:
    """Bind correlation identifiers for the duration of a block.

    A random request id is generated when none is given. Previous values are
    restored on exit.

    Yields:
        The request id in effect inside the block.
    """
    rid = request_id or uuid.uuid4().hex
    rid_token = _REQUEST_ID_CTX.set(rid)
    tid_token = _TRACE_ID_CTX.set(trace_id) if trace_id is not None else None
    try:
        yield rid
    finally:
        _REQUEST_ID_CTX.reset(rid_token)
        if tid_token is not None:
            _TRACE_ID_CTX.reset(tid_token)


def get_request_id() -> str | None:
    """Return the current request id from contextvars, if any."""
    return _REQUEST_ID_CTX.get(None)


def get_trace_id() -> str | None:
    """Return the current trace id from contextvars, if any."""
    return _TRACE_ID_CTX.get(None)


class _JsonFormatter(logging.Formatter):
    """JSON log formatter emitting stable keys and optional extras."""

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as a JSON object.

        Args:
            record: Logging record.

        Returns:
            JSON-encoded log line.
        """
        payload: dict[str, Any] = {
            "ts": datetime.now(tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        rid: str | None = (
            getattr(record, "request_id", None)
            or _REQUEST_ID_CTX.get(None)
            or os.getenv(_REQUEST_ID_ENV_KEY)
        )
        if rid:
            payload["request_id"] = rid

        tid: str | None = getattr(record, "trace_id", None) or _TRACE_ID_CTX.get(None)
        if tid:
            payload["trace_id"] = tid

        if record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            if exc_type is not None:
                payload["exc_type"] = exc_type.__name__
            if exc_value is not None:
                payload["exc_message"] = str(exc_value)

        extra = getattr(record, "extra", None)
        if isinstance(extra, dict):
            payload.update(extra)

        return json.dumps(payload, separators=(",", ":"), ensure_ascii=False, default=str)


def configure_root_logging(level: str | int | None = None) -> None:
    """Initialize the root logger with a JSON stream handler (idempotent).

    Args:
        level: Logging level or level name. If ``None``, use env ``LOG_LEVEL`` or ``INFO``.
    """
    root = logging.getLogger()

    env_level = os.getenv("LOG_LEVEL")
    resolved: int | str = (
        level if level is not None else (env_level.upper() if env_level else "INFO")
    )
    root.setLevel(resolved)

    if any(isinstance(h.formatter, _JsonFormatter) for h in root.handlers):
        return

    handler = logging.StreamHandler()
    handler.setFormatter(_JsonFormatter())
    root.addHandler(handler)
