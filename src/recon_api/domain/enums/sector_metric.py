# src/recon_api/domain/enums/sector_metric.py
# Copyright (c) Recon.
# SPDX-License-Identifier: MIT
"""Sector-relative metric enumerations.

Purpose:
    Name the fundamental ratios ranked against sector reference ranges, the
    direction in which each one improves, the category it is reported under,
    and the valuation multiples compared against sector medians.

Layer:
    domain

Notes:
    - Values are string identifiers suitable for JSON and cache payloads.
"""

from __future__ import annotations

from enum import Enum


class MetricDirection(str, Enum):
    """Whether a larger value ranks higher or lower within the sector."""

    HIGHER_IS_BETTER = "HIGHER_IS_BETTER"
    LOWER_IS_BETTER = "LOWER_IS_BETTER"


class SectorMetricCategory(str, Enum):
    """Report section a sector metric belongs to."""

    PROFITABILITY = "profitability"
    FINANCIAL_HEALTH = "financialHealth"
    GROWTH = "growth"
    EARNINGS_QUALITY = "earningsQuality"


class SectorMetricName(str, Enum):
    """Fundamental ratios that carry sector context."""

    ROIC = "roic"
    ROE = "roe"
    OPERATING_MARGIN = "operatingMargin"
    DEBT_TO_EQUITY = "debtToEquity"
    CURRENT_RATIO = "currentRatio"
    ASSET_TURNOVER = "assetTurnover"
    REVENUE_GROWTH = "revenueGrowthYoY"
    EPS_GROWTH = "epsGrowthYoY"
    ACCRUAL_RATIO = "accrualRatio"
    BUYBACK_YIELD = "buybackYield"

    @property
    def direction(self) -> MetricDirection:
        """Ranking direction for this metric."""
        if self in _INVERTED:
            return MetricDirection.LOWER_IS_BETTER
        return MetricDirection.HIGHER_IS_BETTER

    @property
    def category(self) -> SectorMetricCategory:
        """Report section for this metric."""
        return _CATEGORIES[self]


class ValuationMultiple(str, Enum):
    """Valuation multiples compared against sector medians."""

    PE = "pe"
    PEG = "peg"
    EV_TO_EBITDA = "evToEbitda"
    PRICE_TO_FCF = "priceToFcf"
    PRICE_TO_BOOK = "priceToBook"


_INVERTED: frozenset[SectorMetricName] = frozenset(
    {SectorMetricName.DEBT_TO_EQUITY, SectorMetricName.ACCRUAL_RATIO}
)

_CATEGORIES: dict[SectorMetricName, SectorMetricCategory] = {
    SectorMetricName.ROIC: SectorMetricCategory.PROFITABILITY,
    SectorMetricName.ROE: SectorMetricCategory.PROFITABILITY,
    SectorMetricName.OPERATING_MARGIN: SectorMetricCategory.PROFITABILITY,
    SectorMetricName.DEBT_TO_EQUITY: SectorMetricCategory.FINANCIAL_HEALTH,
    SectorMetricName.CURRENT_RATIO: SectorMetricCategory.FINANCIAL_HEALTH,
    SectorMetricName.ASSET_TURNOVER: SectorMetricCategory.FINANCIAL_HEALTH,
    SectorMetricName.REVENUE_GROWTH: SectorMetricCategory.GROWTH,
    SectorMetricName.EPS_GROWTH: SectorMetricCategory.GROWTH,
    SectorMetricName.ACCRUAL_RATIO: SectorMetricCategory.EARNINGS_QUALITY,
    SectorMetricName.BUYBACK_YIELD: SectorMetricCategory.EARNINGS_QUALITY,
}


__all__ = [
    "MetricDirection",
    "SectorMetricCategory",
    "SectorMetricName",
    "ValuationMultiple",
]
