# src/recon_api/application/use_cases/scores/get_scored_stock.py
# Copyright (c) Recon.
# SPDX-License-Identifier: MIT
"""
Use Case: Get Scored Stock

Purpose:
    Load a ticker's fundamentals through the cache-aside repository, run the
    scoring and sector-percentile engines and return a DTO for presentation.

Layer: application/use_cases

Notes:
    * Statements are mandatory: without them the use case raises
      :class:`DataMissing` (or the provider failure when nothing is cached).
    * Quote, company profile, DCF value and valuation ratios are optional.
      A failure on any of them is logged and the report is built without it.
    * Signals are derived from the scores of the most recent period.
    * An unknown sector is ranked against the default row. The fallback is
      logged once per sector name for the lifetime of the use case.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import TypeVar

from pydantic.alias_generators import to_camel

from recon_api.application.schemas.dto.scored_stock import (
    DCFDTO,
    AltmanZDTO,
    OwnerEarningsDTO,
    PiotroskiDTO,
    RuleOf40DTO,
    ScoredStockDTO,
    SectorMetricDTO,
    SignalDTO,
    ValuationMetricDTO,
)
from recon_api.application.use_cases.fundamentals.cached_fundamentals import (
    CachedFundamentalsRepository,
)
from recon_api.domain.entities.base import normalize_ticker
from recon_api.domain.entities.market import CompanyProfile, Quote
from recon_api.domain.entities.scores import (
    ScoreResult,
    SectorMetricsBundle,
    ValuationMetric,
)
from recon_api.domain.entities.signal import Signal
from recon_api.domain.enums.sector_metric import ValuationMultiple
from recon_api.domain.exceptions.fundamentals import DataMissing, InvalidTicker, ProviderFailure
from recon_api.domain.services.scoring_engine import ScoringEngine
from recon_api.domain.services.sector_percentile_engine import SectorPercentileEngine
from recon_api.domain.services.signal_generator import SignalGenerator

logger = logging.getLogger(__name__)

T = TypeVar("T")

TICKER_PATTERN = re.compile(r"^[A-Z0-9.\-]{1,10}$")
DEFAULT_STATEMENT_PERIODS = 2


def validate_ticker(raw: str) -> str:
    """Normalize and validate a ticker symbol.

    Raises:
        InvalidTicker: If the symbol is empty or malformed.
    """
    ticker = normalize_ticker(raw or "")
    if not TICKER_PATTERN.fullmatch(ticker):
        raise InvalidTicker(f"Invalid ticker symbol: {raw!r}", details={"ticker": raw})
    return ticker


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class GetScoredStock:
    """Use case to build the scored view of one stock.

    Args:
        repository: Cache-aside fundamentals repository.
        percentiles: Sector-percentile engine bound to the sector tables.
        scoring: Scoring engine (stateless).
        signals: Signal generator over the scores.
        periods: Number of annual periods to load; two allow year-over-year tests.
        clock: Returns the current UTC time; injectable for tests.
    """

    def __init__(
        self,
        repository: CachedFundamentalsRepository,
        percentiles: SectorPercentileEngine,
        *,
        scoring: ScoringEngine | None = None,
        signals: SignalGenerator | None = None,
        periods: int = DEFAULT_STATEMENT_PERIODS,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._repo = repository
        self._percentiles = percentiles
        self._scoring = scoring or ScoringEngine()
        self._signals = signals or SignalGenerator()
        self._periods = periods
        self._clock = clock or _utcnow
        self._warned_sectors: set[str] = set()

    async def execute(self, ticker: str) -> ScoredStockDTO:
        """Score one ticker.

        Args:
            ticker: Ticker symbol (case-insensitive).

        Returns:
            ScoredStockDTO: Scores, sector metrics and valuation context.

        Raises:
            InvalidTicker: If the symbol is malformed.
            DataMissing: If no statements are available.
            ProviderFailure: If the provider fails and nothing is cached.
        """
        symbol = validate_ticker(ticker)
        periods = await self._repo.get_statements(symbol, self._periods)

        quote, company, intrinsic_value, ratios = await asyncio.gather(
            self._optional(symbol, "quote", lambda: self._repo.get_quote(symbol)),
            self._optional(symbol, "company", lambda: self._repo.get_company(symbol)),
            self._optional(symbol, "dcf", lambda: self._repo.get_intrinsic_value(symbol)),
            self._optional(symbol, "ratios", lambda: self._repo.get_valuation_ratios(symbol)),
        )

        current = periods[0]
        prior = periods[1] if len(periods) > 1 else None
        market_cap = _market_cap(current.market_cap, quote)
        price = quote.price if quote is not None else current.price

        scores = self._scoring.score(periods, quote=quote, intrinsic_value=intrinsic_value)
        signals = self._signals.generate_for(scores, current, prior)
        sector = company.sector if company is not None else None
        bundle = self._percentiles.compute(current, prior, sector, market_cap=market_cap)
        valuation = self._percentiles.valuation(ratios, bundle.sector)
        if bundle.fell_back:
            self._warn_sector_fallback(symbol, bundle)

        logger.info(
            "scores.get_scored_stock.success",
            extra={
                "extra": {
                    "ticker": symbol,
                    "provider": self._repo.provider_name,
                    "fiscal_year": current.fiscal_year,
                    "piotroski": scores.piotroski.score,
                    "sector": bundle.sector,
                }
            },
        )

        return _to_dto(
            ticker=symbol,
            company=company,
            provider=self._repo.provider_name,
            fiscal_year=current.fiscal_year,
            price=price,
            market_cap=market_cap,
            scores=scores,
            bundle=bundle,
            valuation=valuation,
            signals=signals,
            as_of=self._clock(),
        )

    async def _optional(
        self, ticker: str, what: str, load: Callable[[], Awaitable[T | None]]
    ) -> T | None:
        try:
            return await load()
        except (ProviderFailure, DataMissing) as exc:
            logger.warning(
                "scores.get_scored_stock.optional_unavailable",
                extra={
                    "extra": {
                        "ticker": ticker,
                        "data": what,
                        "error_code": exc.code,
                        "error": exc.message,
                    }
                },
            )
            return None

    def _warn_sector_fallback(self, ticker: str, bundle: SectorMetricsBundle) -> None:
        requested = bundle.requested_sector or ""
        if requested in self._warned_sectors:
            return
        self._warned_sectors.add(requested)
        logger.warning(
            "scores.get_scored_stock.sector_fallback",
            extra={
                "extra": {
                    "ticker": ticker,
                    "requested_sector": bundle.requested_sector,
                    "sector_used": bundle.sector,
                }
            },
        )


def _market_cap(period_market_cap: float | None, quote: Quote | None) -> float | None:
    if quote is not None and quote.market_cap is not None:
        return quote.market_cap
    return period_market_cap


def _to_dto(
    *,
    ticker: str,
    company: CompanyProfile | None,
    provider: str,
    fiscal_year: int,
    price: float | None,
    market_cap: float | None,
    scores: ScoreResult,
    bundle: SectorMetricsBundle,
    valuation: dict[ValuationMultiple, ValuationMetric],
    signals: list[Signal],
    as_of: datetime,
) -> ScoredStockDTO:
    """Map engine outputs to the scored-stock DTO."""
    piotroski = scores.piotroski
    altman = scores.altman_z
    r40 = scores.rule_of_40

    sector_metrics: dict[str, dict[str, SectorMetricDTO]] = {}
    for name, metric in bundle.metrics.items():
        sector_metrics.setdefault(name.category.value, {})[name.value] = SectorMetricDTO(
            value=metric.value,
            sector_min=metric.sector_min,
            sector_median=metric.sector_median,
            sector_max=metric.sector_max,
            percentile=metric.percentile,
        )

    dcf = None
    if scores.dcf is not None:
        dcf = DCFDTO(
            intrinsic_value=scores.dcf.intrinsic_value,
            current_price=scores.dcf.current_price,
            difference_percent=scores.dcf.difference_percent,
            assessment=scores.dcf.assessment.value,
        )

    owner = None
    if scores.owner_earnings is not None:
        owner = OwnerEarningsDTO(
            owner_earnings=scores.owner_earnings.owner_earnings,
            maintenance_capex=scores.owner_earnings.maintenance_capex,
            yield_percent=scores.owner_earnings.yield_percent,
        )

    return ScoredStockDTO(
        ticker=ticker,
        name=company.name if company is not None else ticker,
        sector=bundle.sector,
        requested_sector=bundle.requested_sector,
        sector_fell_back=bundle.fell_back,
        provider=provider,
        fiscal_year=fiscal_year,
        price=price,
        market_cap=market_cap,
        piotroski=PiotroskiDTO(
            score=piotroski.score,
            breakdown={to_camel(k): v for k, v in piotroski.breakdown.as_dict().items()},
        ),
        altman_z=AltmanZDTO(
            score=altman.score,
            zone=altman.zone.value,
            components={
                "workingCapitalToAssets": altman.components.working_capital_to_assets,
                "retainedEarningsToAssets": altman.components.retained_earnings_to_assets,
                "ebitToAssets": altman.components.ebit_to_assets,
                "marketCapToLiabilities": altman.components.market_cap_to_liabilities,
                "salesToAssets": altman.components.sales_to_assets,
            },
        ),
        rule_of_40=RuleOf40DTO(
            score=r40.score,
            revenue_growth=r40.revenue_growth_percent,
            profit_margin=r40.profit_margin_percent,
            margin_source=r40.margin_source,
            passed=r40.passed,
        ),
        dcf=dcf,
        owner_earnings=owner,
        sector_metrics=sector_metrics,
        valuation={
            multiple.value: ValuationMetricDTO(value=m.value, sector_median=m.sector_median)
            for multiple, m in valuation.items()
        },
        signals=[
            SignalDTO(
                type=s.type.value,
                category=s.category.value,
                message=s.message,
                priority=s.priority,
                data=dict(s.data),
            )
            for s in signals
        ],
        as_of=as_of,
    )


__all__ = ["GetScoredStock", "TICKER_PATTERN", "validate_ticker"]
