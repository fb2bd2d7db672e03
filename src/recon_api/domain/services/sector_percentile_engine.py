# src/recon_api/domain/services/sector_percentile_engine.py
# Copyright (c) Recon.
# SPDX-License-Identifier: MIT
"""Sector-relative percentile ranking.

Purpose:
    Place a stock's fundamental ratios within the (min, max) reference range
    of its sector and pair its valuation multiples with sector medians.

Layer:
    domain

Notes:
    - Pure domain logic with no logging and no I/O. The sector tables are
      injected at construction time.
    - Percentiles are integers in ``[0, 100]``, truncated toward zero.
    - A degenerate range (``max <= min``) ranks every value at 50, and so
      does a NaN value or bound. Non-finite metric values are not ranked.
    - An unknown sector ranks exactly like the default ("Technology") row.
      The fallback is reported on the returned bundle so the caller can log it.
"""

from __future__ import annotations

import math

from recon_api.domain.entities.financial_period import FinancialPeriod
from recon_api.domain.entities.market import ValuationRatios
from recon_api.domain.entities.scores import SectorMetric, SectorMetricsBundle, ValuationMetric
from recon_api.domain.entities.sector_reference import SectorReferenceTables
from recon_api.domain.enums.sector_metric import (
    MetricDirection,
    SectorMetricName,
    ValuationMultiple,
)
from recon_api.domain.services import scoring_engine as se

NEUTRAL_PERCENTILE = 50
MIN_PERCENTILE = 0
MAX_PERCENTILE = 100


def _indeterminate(value: float, lo: float, hi: float) -> bool:
    return math.isnan(value) or not (math.isfinite(lo) and math.isfinite(hi)) or hi <= lo


def percentile(value: float, lo: float, hi: float) -> int:
    """Rank ``value`` in ``[lo, hi]`` where higher is better.

    Args:
        value: Raw metric value.
        lo: Sector minimum.
        hi: Sector maximum.

    Returns:
        int: 0 at or below ``lo``, 100 at or above ``hi``, linear between.
    """
    if _indeterminate(value, lo, hi):
        return NEUTRAL_PERCENTILE
    if value <= lo:
        return MIN_PERCENTILE
    if value >= hi:
        return MAX_PERCENTILE
    return int((value - lo) / (hi - lo) * 100)


def percentile_inverted(value: float, lo: float, hi: float) -> int:
    """Rank ``value`` in ``[lo, hi]`` where lower is better."""
    if _indeterminate(value, lo, hi):
        return NEUTRAL_PERCENTILE
    if value <= lo:
        return MAX_PERCENTILE
    if value >= hi:
        return MIN_PERCENTILE
    return int((hi - value) / (hi - lo) * 100)


class SectorPercentileEngine:
    """Rank fundamentals against injected sector reference tables."""

    def __init__(self, tables: SectorReferenceTables) -> None:
        self._tables = tables

    @property
    def tables(self) -> SectorReferenceTables:
        return self._tables

    def sector_metric(
        self, metric: SectorMetricName, value: float | None, sector: str | None
    ) -> SectorMetric | None:
        """Build one :class:`SectorMetric`, or ``None`` when ``value`` is unknown or non-finite."""
        if value is None or not math.isfinite(value):
            return None
        rng = self._tables.range_for(sector, metric)
        inverted = metric.direction is MetricDirection.LOWER_IS_BETTER
        rank = percentile_inverted if inverted else percentile
        return SectorMetric(
            value=value,
            sector_min=rng.min,
            sector_median=rng.median,
            sector_max=rng.max,
            percentile=rank(value, rng.min, rng.max),
        )

    def compute(
        self,
        current: FinancialPeriod,
        prior: FinancialPeriod | None,
        sector: str | None,
        *,
        market_cap: float | None = None,
    ) -> SectorMetricsBundle:
        """Compute every sector metric for the most recent period.

        Args:
            current: Most recent period.
            prior: Prior-year period, if available (growth, accrual ratio).
            sector: Company sector; unknown or ``None`` uses the default row.
            market_cap: Overrides ``current.market_cap`` for buyback yield.

        Returns:
            SectorMetricsBundle: Metrics whose raw value could be computed.
        """
        resolution = self._tables.resolve(sector)
        name = resolution.profile.name

        raw: dict[SectorMetricName, float | None] = {
            SectorMetricName.ROIC: se.roic(current),
            SectorMetricName.ROE: se.roe(current),
            SectorMetricName.OPERATING_MARGIN: se.operating_margin(current),
            SectorMetricName.DEBT_TO_EQUITY: se.debt_to_equity(current),
            SectorMetricName.CURRENT_RATIO: se.current_ratio(current),
            SectorMetricName.ASSET_TURNOVER: se.asset_turnover(current),
            SectorMetricName.REVENUE_GROWTH: se.revenue_growth(current, prior),
            SectorMetricName.EPS_GROWTH: se.eps_growth(current, prior),
            SectorMetricName.ACCRUAL_RATIO: se.accrual_ratio(current, prior),
            SectorMetricName.BUYBACK_YIELD: se.buyback_yield(current, market_cap),
        }

        metrics: dict[SectorMetricName, SectorMetric] = {}
        for metric, value in raw.items():
            built = self.sector_metric(metric, value, name)
            if built is not None:
                metrics[metric] = built

        return SectorMetricsBundle(
            sector=name,
            requested_sector=resolution.requested,
            fell_back=resolution.fell_back,
            metrics=metrics,
        )

    def valuation(
        self, ratios: ValuationRatios | None, sector: str | None
    ) -> dict[ValuationMultiple, ValuationMetric]:
        """Pair positive valuation multiples with their sector medians.

        Non-positive or missing multiples (e.g. P/E of a loss-making company)
        are omitted.
        """
        if ratios is None:
            return {}
        values: dict[ValuationMultiple, float | None] = {
            ValuationMultiple.PE: ratios.pe,
            ValuationMultiple.PEG: ratios.peg,
            ValuationMultiple.EV_TO_EBITDA: ratios.ev_to_ebitda,
            ValuationMultiple.PRICE_TO_FCF: ratios.price_to_fcf,
            ValuationMultiple.PRICE_TO_BOOK: ratios.price_to_book,
        }
        return {
            multiple: ValuationMetric(
                value=value, sector_median=self._tables.median_for(sector, multiple)
            )
            for multiple, value in values.items()
            if value is not None and math.isfinite(value) and value > 0
        }


__all__ = ["SectorPercentileEngine", "percentile", "percentile_inverted"]
