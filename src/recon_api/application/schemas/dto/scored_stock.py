# src/recon_api/application/schemas/dto/scored_stock.py
# Copyright (c) Recon.
# SPDX-License-Identifier: MIT
"""Application DTOs for a scored stock.

Synopsis:
    Strict (Pydantic v2) DTOs produced by
    :class:`~recon_api.application.use_cases.scores.get_scored_stock.GetScoredStock`
    and rendered by the scored-stock presenter. Field names are snake_case;
    JSON output uses the camelCase aliases.

Layer:
    application/schemas/dto
"""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from recon_api.application.schemas.dto.base import BaseDTO


class PiotroskiDTO(BaseDTO):
    """Piotroski F-Score with per-test breakdown (test name -> passed)."""

    score: int
    breakdown: dict[str, bool]


class AltmanZDTO(BaseDTO):
    """Altman Z-Score, zone (``safe``/``gray``/``distress``) and components."""

    score: float
    zone: str
    components: dict[str, float]


class RuleOf40DTO(BaseDTO):
    score: float
    revenue_growth: float
    profit_margin: float
    margin_source: str
    passed: bool


class DCFDTO(BaseDTO):
    """DCF intrinsic value compared with price.

    Attributes:
        difference_percent: ``None`` when the price is zero.
        assessment: Undervalued, Fairly Valued, Overvalued or N/A.
    """

    intrinsic_value: float
    current_price: float
    difference_percent: float | None
    assessment: str


class OwnerEarningsDTO(BaseDTO):
    owner_earnings: float
    maintenance_capex: float
    yield_percent: float | None


class SectorMetricDTO(BaseDTO):
    value: float
    sector_min: float
    sector_median: float
    sector_max: float
    percentile: int


class ValuationMetricDTO(BaseDTO):
    value: float
    sector_median: float | None


class SignalDTO(BaseDTO):
    """Score-derived signal (``bullish``/``bearish``/``warning``), priority 1..5."""

    type: str
    category: str
    message: str
    priority: int
    data: dict[str, float | int | str]


class ScoredStockDTO(BaseDTO):
    """Complete scored view of one stock.

    Attributes:
        ticker: Upper-case ticker symbol.
        name: Company name (ticker when the profile is unavailable).
        sector: Sector whose reference ranges were used.
        requested_sector: Sector reported by the provider, if any.
        sector_fell_back: Whether ``sector`` is the default row.
        provider: Provider that supplied the data.
        fiscal_year: Fiscal year of the most recent period.
        price: Current price, if known.
        market_cap: Market capitalization, if known.
        piotroski: Piotroski F-Score.
        altman_z: Altman Z-Score.
        rule_of_40: Rule of 40.
        dcf: DCF assessment, when an intrinsic value and price are known.
        owner_earnings: Owner earnings and yield.
        sector_metrics: Category -> metric name -> sector metric.
        valuation: Valuation multiple -> value and sector median.
        signals: Score-derived signals, highest priority first.
        as_of: Assembly timestamp (UTC).
    """

    ticker: str
    name: str
    sector: str
    requested_sector: str | None = None
    sector_fell_back: bool = False
    provider: str
    fiscal_year: int
    price: float | None = None
    market_cap: float | None = None
    piotroski: PiotroskiDTO
    altman_z: AltmanZDTO
    rule_of_40: RuleOf40DTO
    dcf: DCFDTO | None = None
    owner_earnings: OwnerEarningsDTO | None = None
    sector_metrics: dict[str, dict[str, SectorMetricDTO]]
    valuation: dict[str, ValuationMetricDTO]
    signals: list[SignalDTO] = Field(default_factory=list)
    as_of: datetime
