# src/recon_api/infrastructure/observability/metrics.py
# Copyright (c) Recon.
# SPDX-License-Identifier: MIT
"""Fundamentals observability helpers and Prometheus metrics.

Exports
-------
Collectors (names are stable):

* ``recon_provider_latency_seconds`` (Histogram)
* ``recon_provider_errors_total`` (Counter)
* ``recon_provider_retries_total`` (Counter)
* ``recon_provider_breaker_events_total`` (Counter)
* ``recon_cache_lookups_total`` (Counter)
* ``recon_cache_stale_served_total`` (Counter)
* ``recon_cache_store_errors_total`` (Counter)

Helpers:

* :func:`observe_provider_call` - context manager for one provider call.
* :func:`record_cache_lookup`, :func:`record_stale_served`,
  :func:`record_cache_store_error`.

Design
------
Collectors are created against the *current* default registry
(:data:`prometheus_client.REGISTRY`). If a collector with the same name is
already registered (module re-import, registry swapped by a test), the
existing instance is reused instead of registering a duplicate.
"""

from __future__ import annotations

from collections.abc import Generator, Sequence
from contextlib import contextmanager, suppress
from dataclasses import dataclass, field
from time import perf_counter

import prometheus_client as prom
from prometheus_client import Counter, Histogram
from prometheus_client.registry import CollectorRegistry


def _get_or_create_histogram(
    name: str,
    doc: str,
    labelnames: Sequence[str] | None = None,
) -> Histogram:
    """Return a histogram bound to the current default registry.

    Args:
        name: Metric name.
        doc: Human-readable metric description.
        labelnames: Optional iterable of label names.

    Returns:
        A :class:`Histogram` bound to the current :data:`prom.REGISTRY`.
    """
    registry: CollectorRegistry = prom.REGISTRY
    mapping = getattr(registry, "_names_to_collectors", {})
    existing = mapping.get(name)
    if isinstance(existing, Histogram):
        return existing

    labels = tuple(labelnames) if labelnames is not None else ()
    try:
        return Histogram(name, doc, labels, registry=registry)
    except ValueError as exc:
        if "Duplicated timeseries" in str(exc):
            again = getattr(registry, "_names_to_collectors", {}).get(name)
            if isinstance(again, Histogram):
                return again
        raise


def _get_or_create_counter(
    name: str,
    doc: str,
    labelnames: Sequence[str] | None = None,
) -> Counter:
    """Return a counter bound to the current default registry.

    Mirrors :func:`_get_or_create_histogram` for :class:`Counter` collectors.
    """
    registry: CollectorRegistry = prom.REGISTRY
    mapping = getattr(registry, "_names_to_collectors", {})
    existing = mapping.get(name)
    if isinstance(existing, Counter):
        return existing

    labels = tuple(labelnames) if labelnames is not None else ()
    try:
        return Counter(name, doc, labels, registry=registry)
    except ValueError as exc:
        if "Duplicated timeseries" in str(exc):
            again = getattr(registry, "_names_to_collectors", {}).get(name)
            if isinstance(again, Counter):
                return again
        raise


# ---------------------------------------------------------------------------
# Provider metrics
# ---------------------------------------------------------------------------

provider_latency_seconds: Histogram = _get_or_create_histogram(
    "recon_provider_latency_seconds",
    "Latency of fundamentals provider calls (seconds).",
    labelnames=("provider", "operation", "outcome"),
)

provider_errors_total: Counter = _get_or_create_counter(
    "recon_provider_errors_total",
    "Errors returned by fundamentals providers.",
    labelnames=("provider", "operation", "reason"),
)

provider_retries_total: Counter = _get_or_create_counter(
    "recon_provider_retries_total",
    "Retries attempted for fundamentals provider requests.",
    labelnames=("provider", "operation", "reason"),
)

provider_breaker_events_total: Counter = _get_or_create_counter(
    "recon_provider_breaker_events_total",
    "Circuit-breaker events for fundamentals providers.",
    labelnames=("provider", "state"),
)

# ---------------------------------------------------------------------------
# Cache metrics
# ---------------------------------------------------------------------------

cache_lookups_total: Counter = _get_or_create_counter(
    "recon_cache_lookups_total",
    "Cache-aside lookups by data type and outcome (fresh, stale, miss).",
    labelnames=("data_type", "outcome"),
)

cache_stale_served_total: Counter = _get_or_create_counter(
    "recon_cache_stale_served_total",
    "Stale cache entries served because the provider failed.",
    labelnames=("data_type", "reason"),
)

cache_store_errors_total: Counter = _get_or_create_counter(
    "recon_cache_store_errors_total",
    "Cache store read/write failures (request continued without cache).",
    labelnames=("operation",),
)


@dataclass
class ProviderObservation:
    """State captured while observing a provider call.

    Attributes:
        provider: Provider identifier (for labelling).
        operation: Logical operation (e.g. ``"statements"``).
        start: Monotonic start time in seconds.
        outcome: ``"success"`` or ``"error"``.
        error_reason: Short, machine-readable error reason if any.
    """

    provider: str
    operation: str
    start: float = field(default_factory=perf_counter)
    outcome: str = "success"
    error_reason: str | None = None

    def mark_error(self, reason: str) -> None:
        """Mark the call as failed with a given reason."""
        self.outcome = "error"
        self.error_reason = reason


@contextmanager
def observe_provider_call(
    *, provider: str, operation: str
) -> Generator[ProviderObservation, None, None]:
    """Observe one provider call.

    Records a latency sample and, when the block raises or
    :meth:`ProviderObservation.mark_error` is called, an error increment.

    Args:
        provider: Provider identifier (e.g. ``"fmp"``).
        operation: Logical operation name.

    Yields:
        A mutable :class:`ProviderObservation`.
    """
    obs = ProviderObservation(provider=provider, operation=operation)
    try:
        yield obs
    except Exception as exc:
        if obs.error_reason is None:
            obs.mark_error(getattr(exc, "code", type(exc).__name__).lower())
        raise
    finally:
        elapsed = perf_counter() - obs.start
        # Metrics must never fail the call being observed.
        with suppress(Exception):
            provider_latency_seconds.labels(
                provider=obs.provider, operation=obs.operation, outcome=obs.outcome
            ).observe(elapsed)
            if obs.error_reason is not None:
                provider_errors_total.labels(
                    provider=obs.provider, operation=obs.operation, reason=obs.error_reason
                ).inc()


def record_cache_lookup(data_type: str, outcome: str) -> None:
    """Count one cache lookup (``fresh``, ``stale`` or ``miss``)."""
    cache_lookups_total.labels(data_type=data_type, outcome=outcome).inc()


def record_stale_served(data_type: str, reason: str) -> None:
    """Count one stale entry served in place of a failed provider call."""
    cache_stale_served_total.labels(data_type=data_type, reason=reason).inc()


def record_cache_store_error(operation: str) -> None:
    """Count one cache store failure (``read`` or ``write``)."""
    cache_store_errors_total.labels(operation=operation).inc()


__all__ = [
    "ProviderObservation",
    "cache_lookups_total",
    "cache_stale_served_total",
    "cache_store_errors_total",
    "observe_provider_call",
    "provider_breaker_events_total",
    "provider_errors_total",
    "provider_latency_seconds",
    "provider_retries_total",
    "record_cache_lookup",
    "record_cache_store_error",
    "record_stale_served",
]
