# tests/unit/application/use_cases/test_cached_fundamentals.py
from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from recon_api.application.interfaces.cache_store import CacheKey, CacheRecord
from recon_api.application.use_cases.fundamentals.cached_fundamentals import (
    CachedFundamentalsRepository,
    CacheDataType,
    CacheTtlPolicy,
    cache_key,
    payload_to_period,
    period_to_payload,
)
from recon_api.domain.entities.financial_period import FinancialPeriod
from recon_api.domain.entities.market import CompanyProfile, Quote, ValuationRatios
from recon_api.domain.exceptions.fundamentals import (
    DataMissing,
    ProviderTimeout,
    ProviderUnavailable,
    TickerNotFound,
)
from recon_api.infrastructure.caching.memory_cache_store import InMemoryCacheStore

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=UTC)
TTL = CacheTtlPolicy(statements_s=3600, fundamentals_s=600)


class _Clock:
    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class _FakeProvider:
    """Counts calls; behaviour is scripted per test."""

    def __init__(self, periods: Sequence[FinancialPeriod] = ()) -> None:
        self.periods = list(periods)
        self.calls: dict[str, int] = {}
        self.error: Exception | None = None
        self.delay_s = 0.0
        self.gate: asyncio.Event | None = None
        self.quote: Quote | None = Quote(ticker="ACME", price=10.0, market_cap=1000.0)

    @property
    def name(self) -> str:
        return "fake"

    async def _enter(self, op: str) -> None:
        self.calls[op] = self.calls.get(op, 0) + 1
        if self.gate is not None:
            await self.gate.wait()
        if self.delay_s:
            await asyncio.sleep(self.delay_s)
        if self.error is not None:
            raise self.error

    async def fetch_statements(self, ticker: str, periods: int) -> Sequence[FinancialPeriod]:
        await self._enter("statements")
        return self.periods

    async def fetch_quote(self, ticker: str) -> Quote | None:
        await self._enter("quote")
        return self.quote

    async def fetch_company(self, ticker: str) -> CompanyProfile | None:
        await self._enter("company")
        return CompanyProfile(ticker=ticker, name="Acme Corp", sector="Industrials")

    async def fetch_valuation_ratios(self, ticker: str) -> ValuationRatios | None:
        await self._enter("ratios")
        return ValuationRatios(ticker=ticker, pe=15.0, peg=None)

    async def fetch_intrinsic_value(self, ticker: str) -> float | None:
        await self._enter("dcf")
        return None


class _BrokenStore:
    async def get(self, key: CacheKey) -> CacheRecord | None:
        raise ConnectionError("store down")

    async def put(self, key: CacheKey, payload: Any, **_: Any) -> None:
        raise ConnectionError("store down")


@pytest.fixture
def periods(make_period) -> list[FinancialPeriod]:
    return [
        make_period(fiscal_year=2023, revenue=900.0),
        make_period(fiscal_year=2024, revenue=1000.0, market_cap=5000.0),
    ]


def _repo(provider, store, clock=None, **kwargs) -> CachedFundamentalsRepository:
    return CachedFundamentalsRepository(
        provider, store, ttl_policy=TTL, clock=clock or _Clock(), **kwargs
    )


# ---------------------------------------------------------------------------
# Freshness
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_second_read_within_ttl_is_served_from_cache(periods) -> None:
    provider = _FakeProvider(periods)
    store = InMemoryCacheStore()
    repo = _repo(provider, store)

    first = await repo.get_statements("ACME")
    second = await repo.get_statements("ACME")

    assert provider.calls == {"statements": 1}
    assert first == second
    assert [p.fiscal_year for p in second] == [2024, 2023]
    record = await store.get(cache_key("ACME", CacheDataType.STATEMENTS))
    assert record is not None
    assert record.ttl_seconds == 3600
    assert record.provider == "fake"


@pytest.mark.asyncio
async def test_entry_at_exact_ttl_is_still_fresh(periods) -> None:
    provider = _FakeProvider(periods)
    clock = _Clock()
    repo = _repo(provider, InMemoryCacheStore(), clock)

    await repo.get_statements("ACME")
    clock.now = NOW + timedelta(seconds=3600)
    await repo.get_statements("ACME")
    assert provider.calls["statements"] == 1

    clock.now = NOW + timedelta(seconds=3601)
    await repo.get_statements("ACME")
    assert provider.calls["statements"] == 2


@pytest.mark.asyncio
async def test_market_data_uses_shorter_ttl(periods) -> None:
    provider = _FakeProvider(periods)
    clock = _Clock()
    repo = _repo(provider, InMemoryCacheStore(), clock)

    await repo.get_statements("ACME")
    await repo.get_quote("ACME")
    clock.now = NOW + timedelta(seconds=601)
    await repo.get_statements("ACME")
    await repo.get_quote("ACME")

    assert provider.calls == {"statements": 1, "quote": 2}


@pytest.mark.asyncio
async def test_statements_are_truncated_to_requested_periods(periods) -> None:
    repo = _repo(_FakeProvider(periods), InMemoryCacheStore())
    result = await repo.get_statements("ACME", periods=1)
    assert [p.fiscal_year for p in result] == [2024]


@pytest.mark.asyncio
async def test_asking_for_more_periods_than_cached_refetches(make_period, periods) -> None:
    provider = _FakeProvider(periods)
    repo = _repo(provider, InMemoryCacheStore())
    await repo.get_statements("ACME", periods=2)

    provider.periods = [make_period(fiscal_year=year) for year in range(2020, 2025)]
    wider = await repo.get_statements("ACME", periods=5)
    narrower = await repo.get_statements("ACME", periods=3)

    assert [p.fiscal_year for p in wider] == [2024, 2023, 2022, 2021, 2020]
    assert [p.fiscal_year for p in narrower] == [2024, 2023, 2022]
    assert provider.calls == {"statements": 2}


@pytest.mark.asyncio
async def test_short_history_is_not_refetched(make_period) -> None:
    provider = _FakeProvider([make_period(fiscal_year=2024)])
    repo = _repo(provider, InMemoryCacheStore())

    first = await repo.get_statements("ACME", periods=5)
    second = await repo.get_statements("ACME", periods=5)

    assert len(first) == len(second) == 1
    assert provider.calls == {"statements": 1}


@pytest.mark.asyncio
async def test_shorter_fresh_entry_is_fallback_when_refetch_fails(periods) -> None:
    provider = _FakeProvider(periods)
    repo = _repo(provider, InMemoryCacheStore())
    await repo.get_statements("ACME", periods=2)

    provider.error = ProviderUnavailable("upstream 500")
    result = await repo.get_statements("ACME", periods=5)

    assert [p.fiscal_year for p in result] == [2024, 2023]
    assert provider.calls == {"statements": 2}


# ---------------------------------------------------------------------------
# Degradation
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_stale_entry_served_when_provider_fails(periods, caplog) -> None:
    provider = _FakeProvider(periods)
    clock = _Clock()
    repo = _repo(provider, InMemoryCacheStore(), clock)
    await repo.get_statements("ACME")

    clock.now = NOW + timedelta(days=30)
    provider.error = ProviderUnavailable("upstream 500")
    with caplog.at_level(logging.WARNING):
        result = await repo.get_statements("ACME")

    assert [p.fiscal_year for p in result] == [2024, 2023]
    assert provider.calls["statements"] == 2
    assert any(r.getMessage() == "fundamentals.cache.stale_served" for r in caplog.records)


@pytest.mark.asyncio
async def test_provider_failure_without_cache_propagates() -> None:
    provider = _FakeProvider()
    provider.error = ProviderUnavailable("upstream 500")

    with pytest.raises(ProviderUnavailable):
        await _repo(provider, InMemoryCacheStore()).get_statements("ACME")


@pytest.mark.asyncio
async def test_unknown_ticker_surfaces_as_data_missing() -> None:
    provider = _FakeProvider()
    provider.error = TickerNotFound("no such symbol")

    with pytest.raises(DataMissing):
        await _repo(provider, InMemoryCacheStore()).get_statements("NOPE")


@pytest.mark.asyncio
async def test_empty_statements_raise_data_missing_and_are_not_cached() -> None:
    store = InMemoryCacheStore()

    with pytest.raises(DataMissing):
        await _repo(_FakeProvider([]), store).get_statements("ACME")
    assert len(store) == 0


@pytest.mark.asyncio
async def test_slow_provider_times_out() -> None:
    provider = _FakeProvider()
    provider.delay_s = 1.0

    with pytest.raises(ProviderTimeout):
        await _repo(provider, InMemoryCacheStore(), timeout_s=0.01).get_statements("ACME")


@pytest.mark.asyncio
async def test_none_result_is_returned_and_not_cached(periods) -> None:
    provider = _FakeProvider(periods)
    provider.quote = None
    store = InMemoryCacheStore()
    repo = _repo(provider, store)

    assert await repo.get_quote("ACME") is None
    assert await repo.get_intrinsic_value("ACME") is None
    assert len(store) == 0


@pytest.mark.asyncio
async def test_store_failures_do_not_fail_lookup(periods) -> None:
    provider = _FakeProvider(periods)
    repo = _repo(provider, _BrokenStore())

    result = await repo.get_statements("ACME")

    assert len(result) == 2
    assert provider.calls["statements"] == 1


@pytest.mark.asyncio
async def test_corrupt_entry_is_treated_as_miss(periods) -> None:
    provider = _FakeProvider(periods)
    store = InMemoryCacheStore()
    key = cache_key("ACME", CacheDataType.STATEMENTS)
    await store.put(key, {"not": "a list"}, fetched_at=NOW, ttl_seconds=3600)

    result = await _repo(provider, store).get_statements("ACME")

    assert len(result) == 2
    assert provider.calls["statements"] == 1


# ---------------------------------------------------------------------------
# Concurrency
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_concurrent_misses_share_one_provider_call(periods) -> None:
    provider = _FakeProvider(periods)
    provider.gate = asyncio.Event()
    repo = _repo(provider, InMemoryCacheStore())

    tasks = [asyncio.create_task(repo.get_statements("ACME")) for _ in range(5)]
    await asyncio.sleep(0)
    provider.gate.set()
    results = await asyncio.gather(*tasks)

    assert provider.calls == {"statements": 1}
    assert all(r == results[0] for r in results)


@pytest.mark.asyncio
async def test_cancelling_one_waiter_keeps_shared_call_alive(periods) -> None:
    provider = _FakeProvider(periods)
    provider.gate = asyncio.Event()
    repo = _repo(provider, InMemoryCacheStore())

    first = asyncio.create_task(repo.get_statements("ACME"))
    second = asyncio.create_task(repo.get_statements("ACME"))
    await asyncio.sleep(0)
    first.cancel()
    provider.gate.set()

    with pytest.raises(asyncio.CancelledError):
        await first
    assert len(await second) == 2
    assert provider.calls == {"statements": 1}


# ---------------------------------------------------------------------------
# Payload codec
# ---------------------------------------------------------------------------


def test_period_payload_is_camel_case_and_reversible(make_period) -> None:
    period = make_period(revenue=10.0, eps_diluted=1.5, market_cap=None, price=12.0)

    payload = period_to_payload(period)

    assert payload["epsDiluted"] == 1.5
    assert payload["periodEnd"] == "2024-12-31"
    assert payload["marketCap"] is None
    assert payload_to_period(payload) == period


def test_cache_key_upper_cases_ticker() -> None:
    key = cache_key("acme", CacheDataType.RATIOS)
    assert key.ticker == "ACME"
    assert key.period_type == "ttm"
