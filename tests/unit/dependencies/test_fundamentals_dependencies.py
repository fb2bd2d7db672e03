# tests/unit/dependencies/test_fundamentals_dependencies.py
from __future__ import annotations

import fakeredis.aioredis
import pytest

from recon_api.adapters.gateways.deterministic_provider import DeterministicFundamentalsProvider
from recon_api.adapters.gateways.eodhd_provider import EodhdFundamentalsProvider
from recon_api.adapters.gateways.fmp_provider import FmpFundamentalsProvider
from recon_api.adapters.repositories.provider_cache_repository import SqlCacheStore
from recon_api.application.use_cases.fundamentals.cached_fundamentals import (
    CacheDataType,
    cache_key,
)
from recon_api.application.use_cases.scores.get_scored_stock import GetScoredStock
from recon_api.config.settings import Environment, ProviderName, Settings
from recon_api.dependencies import fundamentals as deps
from recon_api.domain.exceptions.base import ConfigurationError
from recon_api.infrastructure.caching import redis_client as redis_client_module
from recon_api.infrastructure.caching.memory_cache_store import InMemoryCacheStore
from recon_api.infrastructure.caching.redis_cache_store import RedisCacheStore
from recon_api.infrastructure.database import session as session_module


@pytest.fixture(autouse=True)
def _fresh_provider_registry(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(deps, "_open_providers", [])


def _settings(monkeypatch: pytest.MonkeyPatch, **env: str) -> Settings:
    for name, value in env.items():
        monkeypatch.setenv(name, value)
    return Settings()


def test_test_environment_without_key_uses_deterministic(monkeypatch) -> None:
    provider = deps.build_fundamentals_provider(_settings(monkeypatch))
    assert isinstance(provider, DeterministicFundamentalsProvider)


def test_explicit_deterministic_choice(monkeypatch) -> None:
    settings = _settings(
        monkeypatch, ENVIRONMENT="production", FUNDAMENTALS_PROVIDER="deterministic"
    )
    assert deps.build_fundamentals_provider(settings).name == "deterministic"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "provider, key_var, expected",
    [
        ("fmp", "FMP_API_KEY", FmpFundamentalsProvider),
        ("eodhd", "EODHD_API_KEY", EodhdFundamentalsProvider),
    ],
)
async def test_real_providers_selected_with_key(monkeypatch, provider, key_var, expected) -> None:
    settings = _settings(monkeypatch, FUNDAMENTALS_PROVIDER=provider, **{key_var: "k"})

    built = deps.build_fundamentals_provider(settings)

    assert isinstance(built, expected)
    assert built.name == provider
    await built.aclose()


def test_real_provider_without_key_is_configuration_error() -> None:
    # Bypass validation to reach the wiring guard directly.
    settings = Settings.model_construct(
        environment=Environment.PRODUCTION,
        fundamentals_provider=ProviderName.FMP,
        fmp_api_key=None,
    )
    with pytest.raises(ConfigurationError):
        deps.build_fundamentals_provider(settings)


def test_memory_cache_backend(monkeypatch) -> None:
    store = deps.build_cache_store(_settings(monkeypatch, CACHE_BACKEND="memory"))
    assert isinstance(store, InMemoryCacheStore)


def test_redis_cache_backend(monkeypatch) -> None:
    monkeypatch.setattr(
        redis_client_module, "_client", fakeredis.aioredis.FakeRedis(decode_responses=True)
    )
    settings = _settings(monkeypatch, CACHE_BACKEND="redis", REDIS_URL="redis://localhost:6379/0")

    assert isinstance(deps.build_cache_store(settings), RedisCacheStore)


@pytest.mark.asyncio
async def test_sql_cache_backend_startup_creates_table(monkeypatch, tmp_path) -> None:
    monkeypatch.setattr(session_module, "_engine", None)
    monkeypatch.setattr(session_module, "_sessionmaker", None)
    settings = _settings(
        monkeypatch,
        CACHE_BACKEND="sql",
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'recon.db'}",
    )

    store = deps.build_cache_store(settings)
    try:
        await deps.startup(settings)
        assert isinstance(store, SqlCacheStore)
        assert await store.get(cache_key("ACME", CacheDataType.QUOTE)) is None
    finally:
        await deps.shutdown()


@pytest.mark.asyncio
async def test_build_get_scored_stock_end_to_end(monkeypatch) -> None:
    settings = _settings(monkeypatch, CACHE_BACKEND="memory")

    use_case = deps.build_get_scored_stock(settings)
    dto = await use_case.execute("AAPL")

    assert isinstance(use_case, GetScoredStock)
    assert dto.provider == "deterministic"
    assert dto.ticker == "AAPL"


class _RecordingProvider(DeterministicFundamentalsProvider):
    closed: list[str] = []

    async def aclose(self) -> None:
        self.closed.append(self.name)


class _BrokenCloseProvider(DeterministicFundamentalsProvider):
    async def aclose(self) -> None:
        raise RuntimeError("transport already gone")


@pytest.mark.asyncio
async def test_shutdown_closes_every_built_provider(monkeypatch, caplog) -> None:
    _RecordingProvider.closed = []
    settings = _settings(monkeypatch, CACHE_BACKEND="memory")

    monkeypatch.setattr(deps, "DeterministicFundamentalsProvider", _BrokenCloseProvider)
    deps.build_fundamentals_provider(settings)
    monkeypatch.setattr(deps, "DeterministicFundamentalsProvider", _RecordingProvider)
    deps.build_fundamentals_provider(settings)
    deps.build_get_scored_stock(settings)

    await deps.shutdown()

    assert _RecordingProvider.closed == ["deterministic", "deterministic"]
    assert any(
        r.getMessage() == "dependencies.fundamentals.provider_close_failed" for r in caplog.records
    )

    await deps.shutdown()
    assert len(_RecordingProvider.closed) == 2


@pytest.mark.asyncio
async def test_shutdown_closes_real_provider_http_client(monkeypatch) -> None:
    settings = _settings(monkeypatch, FUNDAMENTALS_PROVIDER="fmp", FMP_API_KEY="k")
    closed: list[bool] = []

    provider = deps.build_fundamentals_provider(settings)

    async def fake_aclose() -> None:
        closed.append(True)

    monkeypatch.setattr(provider, "aclose", fake_aclose)
    await deps.shutdown()

    assert closed == [True]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "environment, url, creates",
    [
        ("production", "postgresql+asyncpg://recon@db/recon", False),
        ("staging", "postgresql+asyncpg://recon@db/recon", False),
        ("production", "sqlite+aiosqlite:///./recon.db", True),
        ("test", "postgresql+asyncpg://recon@db/recon_test", True),
    ],
)
async def test_startup_creates_schema_only_when_it_owns_it(
    monkeypatch, environment, url, creates
) -> None:
    calls: list[str] = []

    async def fake_create_schema() -> None:
        calls.append("create")

    monkeypatch.setattr(deps, "init_engine_and_sessionmaker", lambda _settings: None)
    monkeypatch.setattr(deps, "create_schema", fake_create_schema)
    settings = _settings(
        monkeypatch,
        ENVIRONMENT=environment,
        FUNDAMENTALS_PROVIDER="deterministic",
        CACHE_BACKEND="sql",
        DATABASE_URL=url,
    )

    await deps.startup(settings)

    assert calls == (["create"] if creates else [])
