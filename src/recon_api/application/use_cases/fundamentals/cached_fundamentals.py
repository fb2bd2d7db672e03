# src/recon_api/application/use_cases/fundamentals/cached_fundamentals.py
# Copyright (c) Recon.
# SPDX-License-Identifier: MIT
"""
Use Case Service: Cache-Aside Fundamentals Repository

Purpose:
    Decide, per datum, whether to serve the cached copy or refetch it from
    the fundamentals provider, and degrade to a stale copy when the
    provider fails.

Layer: application/use_cases

Behavior:
    * Fresh entry (``now - fetched_at <= ttl``): served from the store; the
      provider is not called.
    * Stale or missing entry: the provider is called under a timeout. On
      success the result replaces the entry in a single write.
    * Provider failure with a stale entry: the stale payload is served and a
      WARNING is logged. Without an entry the failure propagates, with an
      unknown ticker surfaced as :class:`DataMissing`.
    * ``None`` from the provider means "not offered" and is returned
      without being cached.
    * Store read/write failures never fail the lookup; they are logged and
      treated as a miss or a skipped write.
    * Statements remember how many periods were requested. A fresh entry
      fetched for fewer periods than a later call asks for is refreshed.
    * Concurrent misses for one key share a single provider call.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Hashable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from enum import Enum
from typing import Any, Generic, TypeVar

from recon_api.application.interfaces.cache_store import CacheKey, CacheRecord, CacheStore
from recon_api.application.interfaces.fundamentals_provider import FundamentalsProvider
from recon_api.domain.entities.financial_period import FinancialPeriod, sort_periods_desc
from recon_api.domain.entities.market import CompanyProfile, Quote, ValuationRatios
from recon_api.domain.exceptions.fundamentals import (
    DataMissing,
    ProviderFailure,
    ProviderTimeout,
    TickerNotFound,
)
from recon_api.infrastructure.observability.metrics import (
    record_cache_lookup,
    record_cache_store_error,
    record_stale_served,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_PROVIDER_TIMEOUT_S = 10.0
TTL_FUNDAMENTALS_S = 24 * 60 * 60
TTL_STATEMENTS_S = 7 * 24 * 60 * 60


class CacheDataType(str, Enum):
    """Kinds of cached data, each with its own TTL and period type."""

    STATEMENTS = "statements"
    QUOTE = "quote"
    COMPANY = "company"
    RATIOS = "ratios"
    DCF = "dcf"

    @property
    def period_type(self) -> str:
        return _PERIOD_TYPES[self]


_PERIOD_TYPES: dict[CacheDataType, str] = {
    CacheDataType.STATEMENTS: "annual",
    CacheDataType.QUOTE: "none",
    CacheDataType.COMPANY: "none",
    CacheDataType.RATIOS: "ttm",
    CacheDataType.DCF: "none",
}


@dataclass(frozen=True, slots=True)
class CacheTtlPolicy:
    """TTL per data type: statements change yearly, market data daily."""

    statements_s: int = TTL_STATEMENTS_S
    fundamentals_s: int = TTL_FUNDAMENTALS_S

    def ttl_for(self, data_type: CacheDataType) -> int:
        if data_type is CacheDataType.STATEMENTS:
            return self.statements_s
        return self.fundamentals_s


def cache_key(ticker: str, data_type: CacheDataType) -> CacheKey:
    """Build the cache key for ``ticker`` and ``data_type``."""
    return CacheKey(
        ticker=ticker.upper(), data_type=data_type.value, period_type=data_type.period_type
    )


# ---------------------------------------------------------------------------
# Payload codecs (camelCase JSON)
# ---------------------------------------------------------------------------

_PERIOD_FIELDS: tuple[tuple[str, str], ...] = (
    ("revenue", "revenue"),
    ("gross_profit", "grossProfit"),
    ("operating_income", "operatingIncome"),
    ("net_income", "netIncome"),
    ("ebit", "ebit"),
    ("ebitda", "ebitda"),
    ("interest_expense", "interestExpense"),
    ("eps_diluted", "epsDiluted"),
    ("depreciation_amortization", "depreciationAmortization"),
    ("total_assets", "totalAssets"),
    ("total_liabilities", "totalLiabilities"),
    ("current_assets", "currentAssets"),
    ("current_liabilities", "currentLiabilities"),
    ("long_term_debt", "longTermDebt"),
    ("total_debt", "totalDebt"),
    ("shareholders_equity", "shareholdersEquity"),
    ("retained_earnings", "retainedEarnings"),
    ("operating_cash_flow", "operatingCashFlow"),
    ("free_cash_flow", "freeCashFlow"),
    ("capital_expenditure", "capitalExpenditure"),
    ("common_stock_repurchased", "commonStockRepurchased"),
)

_OPTIONAL_PERIOD_FIELDS: tuple[tuple[str, str], ...] = (
    ("shares_outstanding", "sharesOutstanding"),
    ("market_cap", "marketCap"),
    ("price", "price"),
)


def _opt_float(value: Any) -> float | None:
    return None if value is None else float(value)


def period_to_payload(period: FinancialPeriod) -> dict[str, Any]:
    """Serialize a :class:`FinancialPeriod` into a cache-friendly mapping."""
    payload: dict[str, Any] = {
        "ticker": period.ticker,
        "fiscalYear": period.fiscal_year,
        "fiscalQuarter": period.fiscal_quarter,
        "periodEnd": period.period_end.isoformat() if period.period_end else None,
    }
    for attr, key in _PERIOD_FIELDS + _OPTIONAL_PERIOD_FIELDS:
        payload[key] = getattr(period, attr)
    return payload


def payload_to_period(payload: Mapping[str, Any]) -> FinancialPeriod:
    """Reconstitute a :class:`FinancialPeriod` from a cached payload."""
    period_end = payload.get("periodEnd")
    quarter = payload.get("fiscalQuarter")
    kwargs: dict[str, Any] = {
        attr: float(payload.get(key) or 0.0) for attr, key in _PERIOD_FIELDS
    }
    kwargs.update({attr: _opt_float(payload.get(key)) for attr, key in _OPTIONAL_PERIOD_FIELDS})
    return FinancialPeriod(
        ticker=str(payload["ticker"]),
        fiscal_year=int(payload["fiscalYear"]),
        fiscal_quarter=int(quarter) if quarter is not None else None,
        period_end=date.fromisoformat(period_end) if period_end else None,
        **kwargs,
    )


@dataclass(frozen=True, slots=True)
class _StatementSet:
    """Cached statements plus the period count they were fetched for."""

    periods: list[FinancialPeriod]
    requested: int

    def covers(self, wanted: int) -> bool:
        """Whether this entry can answer a request for ``wanted`` periods."""
        return self.requested >= wanted or len(self.periods) >= wanted


def _statements_to_payload(value: _StatementSet) -> dict[str, Any]:
    return {
        "requested": value.requested,
        "periods": [period_to_payload(p) for p in value.periods],
    }


def _payload_to_statements(payload: Mapping[str, Any]) -> _StatementSet:
    items = payload["periods"]
    if not isinstance(items, list):
        raise TypeError("statements payload must hold a list of periods")
    return _StatementSet(
        periods=sort_periods_desc(payload_to_period(item) for item in items),
        requested=int(payload["requested"]),
    )


def _quote_to_payload(q: Quote) -> dict[str, Any]:
    return {
        "ticker": q.ticker,
        "price": q.price,
        "marketCap": q.market_cap,
        "asOf": q.as_of.isoformat() if q.as_of is not None else None,
    }


def _payload_to_quote(payload: Mapping[str, Any]) -> Quote:
    as_of_raw = payload.get("asOf")
    return Quote(
        ticker=str(payload["ticker"]),
        price=float(payload["price"]),
        market_cap=_opt_float(payload.get("marketCap")),
        as_of=datetime.fromisoformat(as_of_raw) if as_of_raw else None,
    )


def _company_to_payload(c: CompanyProfile) -> dict[str, Any]:
    return {
        "ticker": c.ticker,
        "name": c.name,
        "sector": c.sector,
        "industry": c.industry,
        "exchange": c.exchange,
    }


def _payload_to_company(payload: Mapping[str, Any]) -> CompanyProfile:
    return CompanyProfile(
        ticker=str(payload["ticker"]),
        name=str(payload["name"]),
        sector=payload.get("sector"),
        industry=payload.get("industry"),
        exchange=payload.get("exchange"),
    )


def _ratios_to_payload(r: ValuationRatios) -> dict[str, Any]:
    return {
        "ticker": r.ticker,
        "pe": r.pe,
        "peg": r.peg,
        "evToEbitda": r.ev_to_ebitda,
        "priceToFcf": r.price_to_fcf,
        "priceToBook": r.price_to_book,
    }


def _payload_to_ratios(payload: Mapping[str, Any]) -> ValuationRatios:
    return ValuationRatios(
        ticker=str(payload["ticker"]),
        pe=_opt_float(payload.get("pe")),
        peg=_opt_float(payload.get("peg")),
        ev_to_ebitda=_opt_float(payload.get("evToEbitda")),
        price_to_fcf=_opt_float(payload.get("priceToFcf")),
        price_to_book=_opt_float(payload.get("priceToBook")),
    )


def _dcf_to_payload(value: float) -> dict[str, Any]:
    return {"intrinsicValue": value}


def _payload_to_dcf(payload: Mapping[str, Any]) -> float:
    return float(payload["intrinsicValue"])


@dataclass(frozen=True, slots=True)
class _Codec(Generic[T]):
    encode: Callable[[T], Any]
    decode: Callable[[Any], T]


_STATEMENTS_CODEC: _Codec[_StatementSet] = _Codec(
    _statements_to_payload, _payload_to_statements
)
_QUOTE_CODEC: _Codec[Quote] = _Codec(_quote_to_payload, _payload_to_quote)
_COMPANY_CODEC: _Codec[CompanyProfile] = _Codec(_company_to_payload, _payload_to_company)
_RATIOS_CODEC: _Codec[ValuationRatios] = _Codec(_ratios_to_payload, _payload_to_ratios)
_DCF_CODEC: _Codec[float] = _Codec(_dcf_to_payload, _payload_to_dcf)


@dataclass
class _Flight:
    """One shared in-flight provider call and the number of callers awaiting it."""

    task: asyncio.Future[Any]
    waiters: int = field(default=0)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class CachedFundamentalsRepository:
    """Cache-aside access to provider fundamentals.

    Args:
        provider: Fundamentals provider selected at startup.
        store: Persistent cache store.
        ttl_policy: TTL per data type.
        timeout_s: Upper bound on one provider lookup, retries included.
        single_flight: Share one provider call between concurrent misses.
        clock: Returns the current UTC time; injectable for tests.
    """

    def __init__(
        self,
        provider: FundamentalsProvider,
        store: CacheStore,
        *,
        ttl_policy: CacheTtlPolicy | None = None,
        timeout_s: float = DEFAULT_PROVIDER_TIMEOUT_S,
        single_flight: bool = True,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._provider = provider
        self._store = store
        self._ttl = ttl_policy or CacheTtlPolicy()
        self._timeout_s = timeout_s
        self._single_flight = single_flight
        self._clock = clock or _utcnow
        self._inflight: dict[Hashable, _Flight] = {}

    @property
    def provider_name(self) -> str:
        return self._provider.name

    # ------------------------------------------------------------------ #
    # Public lookups
    # ------------------------------------------------------------------ #

    async def get_statements(self, ticker: str, periods: int = 2) -> list[FinancialPeriod]:
        """Return up to ``periods`` annual periods, most recent first.

        Raises:
            DataMissing: If nothing is cached and the provider has no data.
            ProviderFailure: If the provider fails and nothing is cached.
        """

        async def fetch() -> _StatementSet:
            fetched = sort_periods_desc(await self._provider.fetch_statements(ticker, periods))
            if not fetched:
                raise DataMissing(
                    f"No financial statements available for {ticker}",
                    details={"ticker": ticker},
                )
            return _StatementSet(periods=fetched, requested=periods)

        key = cache_key(ticker, CacheDataType.STATEMENTS)
        result = await self._lookup(
            key,
            CacheDataType.STATEMENTS,
            fetch,
            _STATEMENTS_CODEC,
            accept=lambda cached: cached.covers(periods),
            flight_key=(key, periods),
        )
        if result is None:
            raise DataMissing(
                f"No financial statements available for {ticker}", details={"ticker": ticker}
            )
        return result.periods[:periods]

    async def get_quote(self, ticker: str) -> Quote | None:
        """Return the latest quote, or ``None`` if the provider offers none."""
        return await self._lookup(
            cache_key(ticker, CacheDataType.QUOTE),
            CacheDataType.QUOTE,
            lambda: self._provider.fetch_quote(ticker),
            _QUOTE_CODEC,
        )

    async def get_company(self, ticker: str) -> CompanyProfile | None:
        """Return the company profile, or ``None`` if the provider offers none."""
        return await self._lookup(
            cache_key(ticker, CacheDataType.COMPANY),
            CacheDataType.COMPANY,
            lambda: self._provider.fetch_company(ticker),
            _COMPANY_CODEC,
        )

    async def get_valuation_ratios(self, ticker: str) -> ValuationRatios | None:
        """Return TTM valuation multiples, or ``None`` if unavailable."""
        return await self._lookup(
            cache_key(ticker, CacheDataType.RATIOS),
            CacheDataType.RATIOS,
            lambda: self._provider.fetch_valuation_ratios(ticker),
            _RATIOS_CODEC,
        )

    async def get_intrinsic_value(self, ticker: str) -> float | None:
        """Return the provider's DCF intrinsic value, or ``None`` if unavailable."""
        return await self._lookup(
            cache_key(ticker, CacheDataType.DCF),
            CacheDataType.DCF,
            lambda: self._provider.fetch_intrinsic_value(ticker),
            _DCF_CODEC,
        )

    # ------------------------------------------------------------------ #
    # Cache-aside core
    # ------------------------------------------------------------------ #

    async def _lookup(
        self,
        key: CacheKey,
        data_type: CacheDataType,
        fetch: Callable[[], Awaitable[T | None]],
        codec: _Codec[T],
        *,
        accept: Callable[[T], bool] | None = None,
        flight_key: Hashable | None = None,
    ) -> T | None:
        """Serve ``key`` from the store or refresh it through ``fetch``.

        A fresh entry rejected by ``accept`` is refreshed like a stale one
        and still serves as the fallback if the provider fails.
        """
        record = await self._read(key)
        cached: T | None = None
        if record is not None:
            try:
                cached = codec.decode(record.payload)
            except (KeyError, TypeError, ValueError):
                logger.warning(
                    "fundamentals.cache.corrupt_entry",
                    extra={"extra": {"key": key.as_string()}},
                    exc_info=True,
                )
                record = None

        if record is not None and record.is_fresh(self._clock()):
            if accept is None or cached is None or accept(cached):
                record_cache_lookup(data_type.value, "fresh")
                return cached

        record_cache_lookup(data_type.value, "stale" if record is not None else "miss")

        try:
            return await self._shared(
                flight_key if flight_key is not None else key,
                lambda: self._refresh(key, data_type, fetch, codec),
            )
        except (ProviderFailure, DataMissing) as exc:
            if record is not None:
                age_s = (self._clock() - record.fetched_at).total_seconds()
                logger.warning(
                    "fundamentals.cache.stale_served",
                    extra={
                        "extra": {
                            "key": key.as_string(),
                            "provider": self._provider.name,
                            "error_code": exc.code,
                            "error": exc.message,
                            "age_s": round(age_s, 3),
                        }
                    },
                )
                record_stale_served(data_type.value, exc.code.lower())
                return cached
            if isinstance(exc, TickerNotFound):
                raise DataMissing(
                    exc.message or f"No data available for {key.ticker}",
                    details={"ticker": key.ticker, **exc.details},
                ) from exc
            raise

    async def _refresh(
        self,
        key: CacheKey,
        data_type: CacheDataType,
        fetch: Callable[[], Awaitable[T | None]],
        codec: _Codec[T],
    ) -> T | None:
        try:
            value = await asyncio.wait_for(fetch(), timeout=self._timeout_s)
        except TimeoutError as exc:
            raise ProviderTimeout(
                f"Provider {self._provider.name} timed out after {self._timeout_s}s",
                details={"ticker": key.ticker, "data_type": data_type.value},
            ) from exc

        if value is None:
            return None

        # A cancelled caller must not interrupt the write half-way.
        await asyncio.shield(
            self._write(key, codec.encode(value), self._ttl.ttl_for(data_type))
        )
        return value

    async def _shared(self, key: Hashable, factory: Callable[[], Awaitable[T]]) -> T:
        """Run ``factory`` once per key among concurrent callers.

        Cancelling one caller leaves the shared call running for the others;
        the call is cancelled only when its last caller goes away.
        """
        if not self._single_flight:
            return await factory()

        flight = self._inflight.get(key)
        if flight is None:
            flight = _Flight(task=asyncio.ensure_future(factory()))
            self._inflight[key] = flight
            flight.task.add_done_callback(lambda _t, k=key, f=flight: self._forget(k, f))

        flight.waiters += 1
        try:
            return await asyncio.shield(flight.task)
        except asyncio.CancelledError:
            if flight.waiters == 1 and not flight.task.done():
                flight.task.cancel()
            raise
        finally:
            flight.waiters -= 1

    def _forget(self, key: Hashable, flight: _Flight) -> None:
        if self._inflight.get(key) is flight:
            del self._inflight[key]

    async def _read(self, key: CacheKey) -> CacheRecord | None:
        try:
            return await self._store.get(key)
        except Exception:
            logger.warning(
                "fundamentals.cache.read_failed",
                extra={"extra": {"key": key.as_string()}},
                exc_info=True,
            )
            record_cache_store_error("read")
            return None

    async def _write(self, key: CacheKey, payload: Any, ttl_seconds: int) -> None:
        try:
            await self._store.put(
                key,
                payload,
                fetched_at=self._clock(),
                ttl_seconds=ttl_seconds,
                provider=self._provider.name,
            )
        except Exception:
            logger.warning(
                "fundamentals.cache.write_failed",
                extra={"extra": {"key": key.as_string()}},
                exc_info=True,
            )
            record_cache_store_error("write")


__all__ = [
    "CacheDataType",
    "CacheTtlPolicy",
    "CachedFundamentalsRepository",
    "cache_key",
    "payload_to_period",
    "period_to_payload",
]
