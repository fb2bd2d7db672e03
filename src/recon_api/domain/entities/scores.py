# Copyright (c) Recon.
# SPDX-License-Identifier: MIT
"""
Score Result Entities

Purpose:
    Output value objects of the scoring and sector-percentile engines. They
    are recomputed on every scoring call and never persisted as
    authoritative data.

Layer: domain/entities
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum

from recon_api.domain.enums.sector_metric import SectorMetricName

PIOTROSKI_TESTS: tuple[str, ...] = (
    "positive_net_income",
    "positive_roa",
    "positive_operating_cash_flow",
    "cash_flow_greater_than_net_income",
    "lower_long_term_debt",
    "higher_current_ratio",
    "no_new_shares",
    "higher_gross_margin",
    "higher_asset_turnover",
)


class AltmanZone(str, Enum):
    """Altman Z-Score bankruptcy-risk zone."""

    SAFE = "safe"
    GRAY = "gray"
    DISTRESS = "distress"


class DCFAssessment(str, Enum):
    """Threshold classification of intrinsic value versus price."""

    UNDERVALUED = "Undervalued"
    FAIRLY_VALUED = "Fairly Valued"
    OVERVALUED = "Overvalued"
    NOT_AVAILABLE = "N/A"


@dataclass(frozen=True, slots=True)
class PiotroskiBreakdown:
    """The nine Piotroski tests, each pass/fail."""

    positive_net_income: bool = False
    positive_roa: bool = False
    positive_operating_cash_flow: bool = False
    cash_flow_greater_than_net_income: bool = False
    lower_long_term_debt: bool = False
    higher_current_ratio: bool = False
    no_new_shares: bool = False
    higher_gross_margin: bool = False
    higher_asset_turnover: bool = False

    def as_dict(self) -> dict[str, bool]:
        """Return the tests in canonical order."""
        return {name: getattr(self, name) for name in PIOTROSKI_TESTS}


@dataclass(frozen=True, slots=True)
class PiotroskiScore:
    """Piotroski F-Score: count of passed tests (0..9) plus the breakdown."""

    score: int
    breakdown: PiotroskiBreakdown

    def __post_init__(self) -> None:
        if not 0 <= self.score <= len(PIOTROSKI_TESTS):
            raise ValueError("piotroski score must be within 0..9")


@dataclass(frozen=True, slots=True)
class AltmanComponents:
    """The five Altman ratios (A..E); a zero-denominator ratio is 0."""

    working_capital_to_assets: float = 0.0
    retained_earnings_to_assets: float = 0.0
    ebit_to_assets: float = 0.0
    market_cap_to_liabilities: float = 0.0
    sales_to_assets: float = 0.0


@dataclass(frozen=True, slots=True)
class AltmanZScore:
    """Altman Z-Score with its zone and components."""

    score: float
    zone: AltmanZone
    components: AltmanComponents


@dataclass(frozen=True, slots=True)
class RuleOf40:
    """Revenue growth plus profit margin, passed when the sum is >= 40.

    Attributes:
        margin_source: ``"fcf"``, ``"ebitda"`` or ``"none"``.
    """

    score: float
    revenue_growth_percent: float
    profit_margin_percent: float
    passed: bool
    margin_source: str = "fcf"


@dataclass(frozen=True, slots=True)
class DCFValuation:
    """Intrinsic value versus current price.

    ``difference_percent`` is ``None`` when the price is zero.
    """

    intrinsic_value: float
    current_price: float
    difference_percent: float | None
    assessment: DCFAssessment


@dataclass(frozen=True, slots=True)
class OwnerEarnings:
    """Buffett-style owner earnings and yield on market cap."""

    owner_earnings: float
    maintenance_capex: float
    yield_percent: float | None


@dataclass(frozen=True, slots=True)
class SectorMetric:
    """A fundamental ratio placed within its sector reference range."""

    value: float
    sector_min: float
    sector_median: float
    sector_max: float
    percentile: int

    def __post_init__(self) -> None:
        if not 0 <= self.percentile <= 100:
            raise ValueError("percentile must be within 0..100")


@dataclass(frozen=True, slots=True)
class ValuationMetric:
    """A valuation multiple next to its sector median."""

    value: float
    sector_median: float | None


@dataclass(frozen=True, slots=True)
class SectorMetricsBundle:
    """All sector-relative metrics for one stock.

    A metric whose raw value could not be computed is absent from
    ``metrics`` rather than reported with a fabricated percentile.
    """

    sector: str
    requested_sector: str | None
    fell_back: bool
    metrics: Mapping[SectorMetricName, SectorMetric] = field(default_factory=dict)

    def get(self, name: SectorMetricName) -> SectorMetric | None:
        """Return a metric by name, if computed."""
        return self.metrics.get(name)


@dataclass(frozen=True, slots=True)
class ScoreResult:
    """Output bundle of the scoring engine for one stock."""

    piotroski: PiotroskiScore
    altman_z: AltmanZScore
    rule_of_40: RuleOf40
    dcf: DCFValuation | None = None
    owner_earnings: OwnerEarnings | None = None
    accrual_ratio: float | None = None
    buyback_yield: float | None = None


__all__ = [
    "PIOTROSKI_TESTS",
    "AltmanComponents",
    "AltmanZScore",
    "AltmanZone",
    "DCFAssessment",
    "DCFValuation",
    "OwnerEarnings",
    "PiotroskiBreakdown",
    "PiotroskiScore",
    "RuleOf40",
    "ScoreResult",
    "SectorMetric",
    "SectorMetricsBundle",
    "ValuationMetric",
]
