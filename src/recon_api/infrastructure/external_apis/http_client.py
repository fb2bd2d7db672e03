# src/recon_api/infrastructure/external_apis/http_client.py
# Copyright (c) Recon.
# SPDX-License-Identifier: MIT
"""Provider HTTP Transport - resilient, instrumented, async.

This transport is framework-agnostic and provides:

* Async HTTP (httpx) with per-request timeout.
* Jittered exponential retries (bounded); honors ``Retry-After`` seconds.
* Circuit breaker (CLOSED / OPEN / HALF-OPEN).
* Deterministic mapping to domain errors:
  404 -> TickerNotFound, 429 -> ProviderRateLimited,
  401/403 -> ProviderAuthError, 5xx/transport -> ProviderUnavailable,
  non-JSON -> ProviderValidationError.
* Prometheus metrics.

It is shared by the FMP and EODHD clients; each owns one instance so that
the breaker state is per provider.
"""

from __future__ import annotations

from collections.abc import Mapping
from contextlib import suppress
from typing import Any, Final

import httpx

from recon_api.domain.exceptions.fundamentals import (
    ProviderAuthError,
    ProviderFailure,
    ProviderRateLimited,
    ProviderUnavailable,
    ProviderValidationError,
    TickerNotFound,
)
from recon_api.infrastructure.logging.logger import get_request_id, get_trace_id
from recon_api.infrastructure.observability.metrics import (
    observe_provider_call,
    provider_breaker_events_total,
    provider_retries_total,
)
from recon_api.infrastructure.resilience.circuit_breaker import CircuitBreaker, CircuitOpenError
from recon_api.infrastructure.resilience.retry import RetryPolicy, retry_async

# --------------------------------------------------------------------------- #
# Defaults and headers
# --------------------------------------------------------------------------- #

DEFAULT_TIMEOUT_S: Final[float] = 8.0
DEFAULT_TOTAL_RETRIES: Final[int] = 2
DEFAULT_BASE_BACKOFF_S: Final[float] = 0.25
DEFAULT_MAX_BACKOFF_S: Final[float] = 2.5

_DEFAULT_HEADERS: Final[dict[str, str]] = {
    "Accept": "application/json",
    "User-Agent": "recon-fundamentals-client/1.0",
}


def _parse_retry_after(val: str | None) -> float | None:
    """Parse the HTTP ``Retry-After`` header (seconds form only).

    Args:
        val: Header value as a string, or ``None``.

    Returns:
        The seconds to wait as a float if parseable, otherwise ``None``.
    """
    if not val:
        return None
    try:
        return max(0.0, float(val))
    except ValueError:
        return None


def _retry_after_hint(exc: Exception) -> float | None:
    if isinstance(exc, ProviderFailure):
        hint = exc.details.get("retry_after_s")
        return float(hint) if hint is not None else None
    return None


def _is_retryable(exc: Exception) -> bool:
    return isinstance(exc, (ProviderRateLimited, ProviderUnavailable)) and not isinstance(
        exc.__cause__, CircuitOpenError
    )


class ProviderHttpClient:
    """Resilient JSON GET transport for one fundamentals provider."""

    def __init__(
        self,
        provider: str,
        base_url: str,
        *,
        http: httpx.AsyncClient | None = None,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        retry_policy: RetryPolicy | None = None,
        breaker: CircuitBreaker | None = None,
    ) -> None:
        """Initialize the transport client.

        Args:
            provider: Provider identifier for metrics and breaker keys.
            base_url: Provider base URL (trailing slash ignored).
            http: Optional shared ``httpx.AsyncClient``. If omitted, a client
                is created and owned by this instance.
            timeout_s: Per-request timeout in seconds.
            retry_policy: Retry configuration for retryable failures.
            breaker: Circuit breaker instance to use; created if omitted.
        """
        self._provider = provider
        self._base_url = base_url.rstrip("/")
        self._timeout = float(timeout_s)
        self._owns_client = http is None
        self._client = http or httpx.AsyncClient(
            timeout=self._timeout,
            headers=_DEFAULT_HEADERS.copy(),
        )
        if http is not None:
            for key, value in _DEFAULT_HEADERS.items():
                self._client.headers.setdefault(key, value)

        self._retry = retry_policy or RetryPolicy(
            total=DEFAULT_TOTAL_RETRIES,
            base=DEFAULT_BASE_BACKOFF_S,
            cap=DEFAULT_MAX_BACKOFF_S,
            jitter=True,
        )
        self._breaker = breaker or CircuitBreaker(
            failure_threshold=5,
            recovery_timeout_s=30.0,
            half_open_max_calls=1,
            excluded=(TickerNotFound, ProviderValidationError),
        )

    @property
    def provider(self) -> str:
        return self._provider

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance owns it."""
        if self._owns_client and not self._client.is_closed:
            await self._client.aclose()

    async def get_json(
        self,
        path: str,
        *,
        op: str,
        ticker: str,
        params: Mapping[str, Any] | None = None,
    ) -> Any:
        """GET ``path`` and return the parsed JSON body.

        Args:
            path: Path relative to the base URL (leading slash optional).
            op: Logical operation name for metrics.
            ticker: Ticker being looked up (error details only).
            params: Query parameters, credentials included.

        Returns:
            The decoded JSON value.

        Raises:
            ProviderFailure: A subclass describing the failure.
        """
        url = f"{self._base_url}/{path.lstrip('/')}"
        headers: dict[str, str] = {}
        request_id = get_request_id()
        trace_id = get_trace_id()
        if request_id:
            headers["X-Request-ID"] = request_id
        if trace_id:
            headers["x-trace-id"] = trace_id

        async def _call() -> Any:
            try:
                async with self._breaker.guard(self._provider):
                    response = await self._client.get(
                        url, params=dict(params or {}), headers=headers, timeout=self._timeout
                    )
                    self._raise_for_status(response, op=op, ticker=ticker)
            except CircuitOpenError as exc:
                with suppress(Exception):
                    provider_breaker_events_total.labels(
                        provider=self._provider, state=exc.state.lower()
                    ).inc()
                raise ProviderUnavailable(
                    f"{self._provider} circuit is open",
                    details={"provider": self._provider, "op": op},
                ) from exc
            except httpx.RequestError as exc:
                raise ProviderUnavailable(
                    f"{self._provider} transport error: {type(exc).__name__}",
                    details={"provider": self._provider, "op": op},
                ) from exc

            try:
                return response.json()
            except ValueError as exc:
                raise ProviderValidationError(
                    f"{self._provider} returned a non-JSON body",
                    details={"provider": self._provider, "op": op, "error": str(exc)},
                ) from exc

        def _on_retry(_attempt: int, exc: Exception) -> None:
            with suppress(Exception):
                provider_retries_total.labels(
                    provider=self._provider, operation=op, reason=type(exc).__name__
                ).inc()

        with observe_provider_call(provider=self._provider, operation=op):
            return await retry_async(
                _call,
                policy=self._retry,
                retry_on=_is_retryable,
                delay_hint=_retry_after_hint,
                on_retry=_on_retry,
            )

    def _raise_for_status(self, response: httpx.Response, *, op: str, ticker: str) -> None:
        """Map a non-2xx response to a domain error."""
        status = response.status_code
        if status < 400:
            return
        details: dict[str, Any] = {"provider": self._provider, "op": op, "status": status}
        if status == 404:
            raise TickerNotFound(
                f"{self._provider} has no data for {ticker}", details={**details, "ticker": ticker}
            )
        if status == 429:
            retry_after = _parse_retry_after(response.headers.get("Retry-After"))
            if retry_after is not None:
                details["retry_after_s"] = retry_after
            raise ProviderRateLimited(f"{self._provider} rate limit exceeded", details=details)
        if status in (401, 403):
            raise ProviderAuthError(f"{self._provider} rejected the credentials", details=details)
        if status >= 500:
            retry_after = _parse_retry_after(response.headers.get("Retry-After"))
            if retry_after is not None:
                details["retry_after_s"] = retry_after
            raise ProviderUnavailable(f"{self._provider} returned {status}", details=details)
        raise ProviderValidationError(
            f"{self._provider} rejected the request ({status})", details=details
        )


__all__ = ["ProviderHttpClient"]
