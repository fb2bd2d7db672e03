# src/recon_api/dependencies/fundamentals.py
# Copyright (c) Recon.
# SPDX-License-Identifier: MIT
"""Dependency wiring for the scoring core (providers, cache store, use case).

Overview:
    Builds the :class:`GetScoredStock` use case from :class:`Settings`. This
    is the only place that turns configuration into concrete adapters.

Layer:
    dependencies

Design:
    * Select the provider implementation once, at startup:
        - FMP or EODHD gateway over the resilient HTTP transport.
        - Deterministic in-memory provider when configured, or in the test
          environment when no key is set.
    * Select the cache store by ``CACHE_BACKEND``:
        - ``sql``: ``provider_cache`` table via the async SQLAlchemy engine.
        - ``redis``: JSON envelopes on the shared Redis client.
        - ``memory``: process-local dictionary.
    * Sector reference tables are injected into the percentile engine here.
    * Providers built here are tracked and closed by :func:`shutdown`.
    * :func:`startup` creates the cache table only for SQLite or the test
      environment. Deployed databases are migrated with Alembic.
"""

from __future__ import annotations

import logging

from recon_api.adapters.gateways.deterministic_provider import DeterministicFundamentalsProvider
from recon_api.adapters.gateways.eodhd_provider import EodhdFundamentalsProvider
from recon_api.adapters.gateways.fmp_provider import FmpFundamentalsProvider
from recon_api.adapters.repositories.provider_cache_repository import SqlCacheStore
from recon_api.application.interfaces.cache_store import CacheStore
from recon_api.application.interfaces.fundamentals_provider import FundamentalsProvider
from recon_api.application.use_cases.fundamentals.cached_fundamentals import (
    CachedFundamentalsRepository,
    CacheTtlPolicy,
)
from recon_api.application.use_cases.scores.get_scored_stock import GetScoredStock
from recon_api.config.settings import (
    CacheBackend,
    Environment,
    ProviderName,
    Settings,
)
from recon_api.domain.entities.sector_reference import SectorReferenceTables
from recon_api.domain.exceptions.base import ConfigurationError
from recon_api.domain.exceptions.fundamentals import ProviderValidationError, TickerNotFound
from recon_api.domain.services.sector_data import DEFAULT_SECTOR_TABLES
from recon_api.domain.services.sector_percentile_engine import SectorPercentileEngine
from recon_api.infrastructure.caching.memory_cache_store import InMemoryCacheStore
from recon_api.infrastructure.caching.redis_cache_store import RedisCacheStore
from recon_api.infrastructure.caching.redis_client import close_redis, init_redis
from recon_api.infrastructure.database.session import (
    create_schema,
    dispose_engine,
    get_sessionmaker,
    init_engine_and_sessionmaker,
)
from recon_api.infrastructure.external_apis.eodhd.client import EodhdClient
from recon_api.infrastructure.external_apis.fmp.client import FmpClient
from recon_api.infrastructure.external_apis.http_client import ProviderHttpClient
from recon_api.infrastructure.resilience.circuit_breaker import CircuitBreaker
from recon_api.infrastructure.resilience.retry import RetryPolicy

logger = logging.getLogger(__name__)

RETRY_BASE_BACKOFF_S = 0.25
RETRY_MAX_BACKOFF_S = 2.0

_open_providers: list[FundamentalsProvider] = []


def _track(provider: FundamentalsProvider) -> FundamentalsProvider:
    _open_providers.append(provider)
    return provider


def _http_client(settings: Settings, provider: str, base_url: str) -> ProviderHttpClient:
    return ProviderHttpClient(
        provider,
        base_url,
        timeout_s=settings.provider_http_timeout_s,
        retry_policy=RetryPolicy(
            total=settings.provider_max_retries,
            base=RETRY_BASE_BACKOFF_S,
            cap=RETRY_MAX_BACKOFF_S,
            jitter=True,
        ),
        breaker=CircuitBreaker(
            failure_threshold=settings.provider_breaker_failures,
            recovery_timeout_s=settings.provider_breaker_recovery_s,
            half_open_max_calls=1,
            excluded=(TickerNotFound, ProviderValidationError),
        ),
    )


def build_fundamentals_provider(settings: Settings) -> FundamentalsProvider:
    """Return the provider selected by ``FUNDAMENTALS_PROVIDER``.

    Args:
        settings: Application settings.

    Returns:
        FundamentalsProvider: The configured provider variant.

    Raises:
        ConfigurationError: If the provider is unknown, or a real provider has
            no API key outside the test environment.
    """
    choice = settings.fundamentals_provider
    key = settings.provider_api_key()
    configured = getattr(choice, "value", choice)

    if choice is ProviderName.DETERMINISTIC or (
        not key and settings.environment is Environment.TEST
    ):
        logger.info(
            "dependencies.fundamentals.provider_selected",
            extra={"extra": {"provider": "deterministic", "configured": configured}},
        )
        return _track(DeterministicFundamentalsProvider())

    if choice is ProviderName.FMP or choice is ProviderName.EODHD:
        if not key:
            raise ConfigurationError(
                f"API key missing for provider {choice.value!r}",
                details={"provider": choice.value},
            )
    else:
        raise ConfigurationError(
            f"Unknown fundamentals provider: {choice!r}", details={"provider": str(choice)}
        )

    logger.info(
        "dependencies.fundamentals.provider_selected",
        extra={"extra": {"provider": choice.value, "configured": choice.value}},
    )
    if choice is ProviderName.FMP:
        http = _http_client(settings, "fmp", settings.fmp_base_url)
        return _track(FmpFundamentalsProvider(FmpClient(http, key)))
    http = _http_client(settings, "eodhd", settings.eodhd_base_url)
    return _track(EodhdFundamentalsProvider(EodhdClient(http, key)))


def build_cache_store(settings: Settings) -> CacheStore:
    """Return the cache store selected by ``CACHE_BACKEND``.

    Raises:
        ConfigurationError: If the backend is unknown.
    """
    backend = settings.cache_backend
    if backend is CacheBackend.MEMORY:
        return InMemoryCacheStore()
    if backend is CacheBackend.REDIS:
        init_redis(settings)
        return RedisCacheStore()
    if backend is CacheBackend.SQL:
        init_engine_and_sessionmaker(settings)
        return SqlCacheStore(get_sessionmaker())
    raise ConfigurationError(f"Unknown cache backend: {backend!r}", details={"backend": backend})


def build_get_scored_stock(
    settings: Settings,
    *,
    provider: FundamentalsProvider | None = None,
    store: CacheStore | None = None,
    tables: SectorReferenceTables = DEFAULT_SECTOR_TABLES,
) -> GetScoredStock:
    """Wire the scored-stock use case.

    Args:
        settings: Application settings.
        provider: Override the configured provider (tests).
        store: Override the configured cache store (tests).
        tables: Sector reference tables for percentile ranking.

    Returns:
        GetScoredStock: Ready-to-use use case.
    """
    repository = CachedFundamentalsRepository(
        provider or build_fundamentals_provider(settings),
        store or build_cache_store(settings),
        ttl_policy=CacheTtlPolicy(
            statements_s=settings.cache_ttl_statements_s,
            fundamentals_s=settings.cache_ttl_fundamentals_s,
        ),
        timeout_s=settings.provider_timeout_s,
    )
    return GetScoredStock(
        repository,
        SectorPercentileEngine(tables),
        periods=settings.statement_periods,
    )


def _owns_schema(settings: Settings) -> bool:
    return settings.environment is Environment.TEST or settings.database_url.startswith("sqlite")


async def startup(settings: Settings) -> None:
    """Prepare backing infrastructure.

    For the ``sql`` backend the engine is initialized. The cache table is
    created only for SQLite URLs or the test environment; other databases
    are expected to be at Alembic head.
    """
    if settings.cache_backend is not CacheBackend.SQL:
        return
    init_engine_and_sessionmaker(settings)
    if _owns_schema(settings):
        await create_schema()
    else:
        logger.info(
            "dependencies.fundamentals.schema_managed_externally",
            extra={"extra": {"environment": settings.environment.value}},
        )


async def shutdown() -> None:
    """Close tracked providers, then release the engine and Redis client."""
    while _open_providers:
        provider = _open_providers.pop()
        try:
            await provider.aclose()
        except Exception:
            logger.exception(
                "dependencies.fundamentals.provider_close_failed",
                extra={"extra": {"provider": provider.name}},
            )
    await dispose_engine()
    await close_redis()


__all__ = [
    "build_cache_store",
    "build_fundamentals_provider",
    "build_get_scored_stock",
    "shutdown",
    "startup",
]
