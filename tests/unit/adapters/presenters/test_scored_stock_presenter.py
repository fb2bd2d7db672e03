# tests/unit/adapters/presenters/test_scored_stock_presenter.py
from __future__ import annotations

from datetime import UTC, datetime

import pytest

from recon_api.adapters.gateways.deterministic_provider import DeterministicFundamentalsProvider
from recon_api.adapters.presenters.errors import http_status_for, present_error
from recon_api.adapters.presenters.scored_stock_presenter import ScoredStockPresenter
from recon_api.application.schemas.dto.scored_stock import ScoredStockDTO
from recon_api.application.use_cases.fundamentals.cached_fundamentals import (
    CachedFundamentalsRepository,
)
from recon_api.application.use_cases.scores.get_scored_stock import GetScoredStock
from recon_api.domain.exceptions.base import ConfigurationError
from recon_api.domain.exceptions.fundamentals import (
    DataMissing,
    InvalidTicker,
    ProviderAuthError,
    ProviderRateLimited,
    ProviderTimeout,
    ProviderUnavailable,
    TickerNotFound,
)
from recon_api.domain.services.sector_data import DEFAULT_SECTOR_TABLES
from recon_api.domain.services.sector_percentile_engine import SectorPercentileEngine
from recon_api.infrastructure.caching.memory_cache_store import InMemoryCacheStore
from recon_api.infrastructure.logging.logger import request_context


async def _scored(ticker: str, as_of: datetime) -> ScoredStockDTO:
    repo = CachedFundamentalsRepository(DeterministicFundamentalsProvider(), InMemoryCacheStore())
    use_case = GetScoredStock(
        repo, SectorPercentileEngine(DEFAULT_SECTOR_TABLES), clock=lambda: as_of
    )
    return await use_case.execute(ticker)


@pytest.mark.asyncio
async def test_etag_ignores_assembly_time() -> None:
    presenter = ScoredStockPresenter()
    morning = await _scored("AAPL", datetime(2025, 1, 2, 9, 0, tzinfo=UTC))
    evening = await _scored("AAPL", datetime(2025, 1, 2, 21, 0, tzinfo=UTC))

    first = presenter.present(morning)
    second = presenter.present(evening)

    assert first.status_code == 200
    assert first.headers["ETag"] == second.headers["ETag"]
    assert first.headers["ETag"].startswith('"')
    assert first.body is not None
    assert first.body["asOf"] == "2025-01-02T09:00:00Z"
    assert first.body["ticker"] == "AAPL"


@pytest.mark.asyncio
async def test_etag_changes_with_content() -> None:
    presenter = ScoredStockPresenter()
    as_of = datetime(2025, 1, 2, tzinfo=UTC)

    aapl = presenter.present(await _scored("AAPL", as_of))
    msft = presenter.present(await _scored("MSFT", as_of))

    assert aapl.headers["ETag"] != msft.headers["ETag"]


@pytest.mark.asyncio
async def test_matching_if_none_match_returns_304() -> None:
    presenter = ScoredStockPresenter()
    dto = await _scored("AAPL", datetime(2025, 1, 2, tzinfo=UTC))
    etag = presenter.present(dto).headers["ETag"]

    result = presenter.present(dto, if_none_match=etag)

    assert result.status_code == 304
    assert result.body is None
    assert result.headers["ETag"] == etag
    assert presenter.present(dto, if_none_match='"stale"').status_code == 200


@pytest.mark.parametrize(
    "exc, status",
    [
        (DataMissing("none"), 404),
        (InvalidTicker("bad"), 404),
        (ProviderRateLimited("slow"), 503),
        (ProviderTimeout("late"), 503),
        (ProviderUnavailable("down"), 502),
        (ProviderAuthError("denied"), 502),
        (TickerNotFound("gone"), 502),
        (ConfigurationError("misconfigured"), 400),
        (RuntimeError("boom"), 500),
    ],
)
def test_http_status_for(exc, status) -> None:
    assert http_status_for(exc) == status


def test_present_error_envelope_for_domain_error() -> None:
    with request_context(request_id="req-42"):
        result = present_error(DataMissing("No data for ZZZQ", details={"ticker": "ZZZQ"}))

    assert result.status_code == 404
    assert result.headers["X-Request-ID"] == "req-42"
    error = result.body["error"]
    assert error["code"] == DataMissing.code
    assert error["http_status"] == 404
    assert error["message"] == "No data for ZZZQ"
    assert error["details"] == {"ticker": "ZZZQ"}
    assert error["trace_id"] == "req-42"


def test_present_error_hides_unexpected_exception_text() -> None:
    result = present_error(RuntimeError("database password is hunter2"))

    assert result.status_code == 500
    error = result.body["error"]
    assert error["code"] == "INTERNAL_ERROR"
    assert "hunter2" not in error["message"]
    assert error["details"] == {}
