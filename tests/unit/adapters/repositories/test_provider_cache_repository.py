# tests/unit/adapters/repositories/test_provider_cache_repository.py
from __future__ import annotations

from collections.abc import AsyncIterator
from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from recon_api.adapters.repositories.provider_cache_repository import (
    ProviderCacheRepository,
    SqlCacheStore,
)
from recon_api.application.interfaces.cache_store import CacheKey
from recon_api.infrastructure.database.session import create_schema

KEY = CacheKey(ticker="ACME", data_type="statements", period_type="annual")
FETCHED = datetime(2025, 6, 1, 12, 0, tzinfo=UTC)


@pytest_asyncio.fixture
async def session_factory(tmp_path) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'cache.db'}")
    await create_schema(engine)
    yield async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)
    await engine.dispose()


@pytest.mark.asyncio
async def test_missing_key_returns_none(session_factory) -> None:
    assert await SqlCacheStore(session_factory).get(KEY) is None


@pytest.mark.asyncio
async def test_put_then_get_round_trips_json_and_timezone(session_factory) -> None:
    store = SqlCacheStore(session_factory)
    payload = [{"ticker": "ACME", "fiscalYear": 2024, "revenue": 1000.0}]

    await store.put(KEY, payload, fetched_at=FETCHED, ttl_seconds=3600, provider="fmp")
    record = await store.get(KEY)

    assert record is not None
    assert record.payload == payload
    assert record.fetched_at == FETCHED
    assert record.fetched_at.tzinfo is not None
    assert record.ttl_seconds == 3600
    assert record.provider == "fmp"
    assert record.is_fresh(FETCHED + timedelta(seconds=3600))
    assert not record.is_fresh(FETCHED + timedelta(seconds=3601))


@pytest.mark.asyncio
async def test_put_replaces_existing_row(session_factory) -> None:
    store = SqlCacheStore(session_factory)
    later = FETCHED + timedelta(days=8)

    await store.put(KEY, [{"v": 1}], fetched_at=FETCHED, ttl_seconds=60, provider="fmp")
    await store.put(KEY, [{"v": 2}], fetched_at=later, ttl_seconds=120, provider="eodhd")
    record = await store.get(KEY)

    assert record is not None
    assert record.payload == [{"v": 2}]
    assert record.fetched_at == later
    assert record.ttl_seconds == 120
    assert record.provider == "eodhd"


@pytest.mark.asyncio
async def test_keys_are_distinct_per_data_type(session_factory) -> None:
    store = SqlCacheStore(session_factory)
    quote_key = CacheKey(ticker="ACME", data_type="quote", period_type="none")

    await store.put(KEY, [{"v": 1}], fetched_at=FETCHED, ttl_seconds=60)
    await store.put(quote_key, {"price": 10.0}, fetched_at=FETCHED, ttl_seconds=60)

    statements = await store.get(KEY)
    quote = await store.get(quote_key)
    assert statements is not None and statements.payload == [{"v": 1}]
    assert quote is not None and quote.payload == {"price": 10.0}


@pytest.mark.asyncio
async def test_repository_normalizes_naive_timestamps(session_factory) -> None:
    naive = FETCHED.replace(tzinfo=None)

    async with session_factory() as session, session.begin():
        await ProviderCacheRepository(session).upsert(
            KEY, {"x": 1}, fetched_at=naive, ttl_seconds=10, provider=None
        )
    async with session_factory() as session:
        record = await ProviderCacheRepository(session).get(KEY)

    assert record is not None
    assert record.fetched_at == FETCHED
