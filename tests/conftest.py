# tests/conftest.py
from __future__ import annotations

from collections.abc import Callable, Generator
from datetime import UTC, date, datetime
from typing import Any

import pytest

from recon_api.config.settings import get_settings
from recon_api.domain.entities.financial_period import FinancialPeriod


@pytest.fixture
def anyio_backend() -> str:
    """Run anyio-marked tests on asyncio only."""
    return "asyncio"


@pytest.fixture(autouse=True)
def _test_environment(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Hermetic settings: test environment, no provider keys, fresh singleton."""
    monkeypatch.setenv("ENVIRONMENT", "test")
    for name in ("FMP_API_KEY", "EODHD_API_KEY", "FUNDAMENTALS_PROVIDER", "CACHE_BACKEND"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def _period(ticker: str = "ACME", fiscal_year: int = 2024, **fields: Any) -> FinancialPeriod:
    fields.setdefault("period_end", date(fiscal_year, 12, 31))
    return FinancialPeriod(ticker=ticker, fiscal_year=fiscal_year, **fields)


@pytest.fixture
def make_period() -> Callable[..., FinancialPeriod]:
    """Factory for FinancialPeriod with zero defaults."""
    return _period


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2025, 6, 1, 12, 0, tzinfo=UTC)
