# src/recon_api/domain/services/scoring_engine.py
# Copyright (c) Recon.
# SPDX-License-Identifier: MIT
"""Fundamental scoring engine.

Purpose:
    Compute the quality and valuation scores shown on a stock report from
    one or two :class:`FinancialPeriod` records: Piotroski F-Score, Altman
    Z-Score, Rule of 40, DCF assessment, owner earnings, accrual ratio and
    buyback yield, plus the supporting ratios ranked by the sector
    percentile engine.

Layer:
    domain

Notes:
    - This module is pure domain logic:
        * No logging.
        * No HTTP concerns.
        * No persistence or gateways.
    - Every division goes through :func:`_safe_div`. A zero denominator
      yields ``None``, which each formula then turns into its documented
      default (``False`` for a Piotroski test, ``0`` for an Altman
      component, ``None`` for an optional ratio).
    - Percent-denominated outputs are expressed in percent (``12.5`` means
      12.5%).
"""

from __future__ import annotations

from collections.abc import Sequence

from recon_api.domain.entities.financial_period import FinancialPeriod, sort_periods_desc
from recon_api.domain.entities.market import Quote
from recon_api.domain.entities.scores import (
    AltmanComponents,
    AltmanZone,
    AltmanZScore,
    DCFAssessment,
    DCFValuation,
    OwnerEarnings,
    PiotroskiBreakdown,
    PiotroskiScore,
    RuleOf40,
    ScoreResult,
)

# Named numeric constants (no magic numbers).
PERCENT = 100.0
ALTMAN_SAFE_ABOVE = 2.99
ALTMAN_DISTRESS_BELOW = 1.81
ALTMAN_WEIGHTS = (1.2, 1.4, 3.3, 0.6, 1.0)
RULE_OF_40_THRESHOLD = 40.0
DCF_THRESHOLD_PERCENT = 15.0
ROIC_TAX_RATE = 0.25
EPS_TURNAROUND_GROWTH = 100.0


def _safe_div(numerator: float, denominator: float | None) -> float | None:
    """Divide, returning ``None`` for a zero or missing denominator."""
    if denominator is None or denominator == 0:
        return None
    return numerator / denominator


def _improved(current: float | None, prior: float | None, *, lower_is_better: bool = False) -> bool:
    if current is None or prior is None:
        return False
    return current < prior if lower_is_better else current > prior


def _resolve_market_cap(period: FinancialPeriod, market_cap: float | None) -> float | None:
    return market_cap if market_cap is not None else period.market_cap


# ---------------------------------------------------------------------------
# Piotroski F-Score
# ---------------------------------------------------------------------------


def piotroski_f_score(current: FinancialPeriod, prior: FinancialPeriod | None) -> PiotroskiScore:
    """Compute the nine-test Piotroski F-Score.

    Tests that compare against the prior year fail when ``prior`` is
    ``None`` or when either period has a zero denominator. The share-count
    test fails closed when either share count is missing or non-positive.

    Args:
        current: Most recent period.
        prior: Period one year earlier, if available.

    Returns:
        PiotroskiScore: Score 0..9 with the per-test breakdown.
    """
    roa = _safe_div(current.operating_cash_flow, current.total_assets)
    tests: dict[str, bool] = {
        "positive_net_income": current.net_income > 0,
        "positive_roa": roa is not None and roa > 0,
        "positive_operating_cash_flow": current.operating_cash_flow > 0,
        "cash_flow_greater_than_net_income": current.operating_cash_flow > current.net_income,
    }

    if prior is not None:
        tests.update(
            lower_long_term_debt=_improved(
                _safe_div(current.long_term_debt, current.total_assets),
                _safe_div(prior.long_term_debt, prior.total_assets),
                lower_is_better=True,
            ),
            higher_current_ratio=_improved(
                _safe_div(current.current_assets, current.current_liabilities),
                _safe_div(prior.current_assets, prior.current_liabilities),
            ),
            no_new_shares=_no_new_shares(current, prior),
            higher_gross_margin=_improved(
                _safe_div(current.gross_profit, current.revenue),
                _safe_div(prior.gross_profit, prior.revenue),
            ),
            higher_asset_turnover=_improved(
                _safe_div(current.revenue, current.total_assets),
                _safe_div(prior.revenue, prior.total_assets),
            ),
        )

    breakdown = PiotroskiBreakdown(**tests)
    return PiotroskiScore(score=sum(tests.values()), breakdown=breakdown)


def _no_new_shares(current: FinancialPeriod, prior: FinancialPeriod) -> bool:
    cur, pri = current.shares_outstanding, prior.shares_outstanding
    if cur is None or pri is None or cur <= 0 or pri <= 0:
        return False
    return cur <= pri


# ---------------------------------------------------------------------------
# Altman Z-Score
# ---------------------------------------------------------------------------


def altman_zone(score: float) -> AltmanZone:
    """Classify a Z-Score; both gray-zone bounds are inclusive."""
    if score > ALTMAN_SAFE_ABOVE:
        return AltmanZone.SAFE
    if score >= ALTMAN_DISTRESS_BELOW:
        return AltmanZone.GRAY
    return AltmanZone.DISTRESS


def altman_z_score(period: FinancialPeriod, market_cap: float | None = None) -> AltmanZScore:
    """Compute the Altman Z-Score for a public manufacturing-style company.

    ``Z = 1.2A + 1.4B + 3.3C + 0.6D + 1.0E`` where a component with a zero
    denominator contributes 0.

    Args:
        period: Period to score.
        market_cap: Market capitalization; defaults to ``period.market_cap``.

    Returns:
        AltmanZScore: Score, zone and the five components.
    """
    assets = period.total_assets
    mcap = _resolve_market_cap(period, market_cap) or 0.0

    components = AltmanComponents(
        working_capital_to_assets=_safe_div(
            period.current_assets - period.current_liabilities, assets
        )
        or 0.0,
        retained_earnings_to_assets=_safe_div(period.retained_earnings, assets) or 0.0,
        ebit_to_assets=_safe_div(period.ebit, assets) or 0.0,
        market_cap_to_liabilities=_safe_div(mcap, period.total_liabilities) or 0.0,
        sales_to_assets=_safe_div(period.revenue, assets) or 0.0,
    )
    values = (
        components.working_capital_to_assets,
        components.retained_earnings_to_assets,
        components.ebit_to_assets,
        components.market_cap_to_liabilities,
        components.sales_to_assets,
    )
    score = sum(w * v for w, v in zip(ALTMAN_WEIGHTS, values, strict=True))
    return AltmanZScore(score=score, zone=altman_zone(score), components=components)


# ---------------------------------------------------------------------------
# Rule of 40
# ---------------------------------------------------------------------------


def rule_of_40_from_components(
    revenue_growth_percent: float, profit_margin_percent: float, *, margin_source: str = "fcf"
) -> RuleOf40:
    """Build a Rule of 40 result from pre-computed growth and margin."""
    score = revenue_growth_percent + profit_margin_percent
    return RuleOf40(
        score=score,
        revenue_growth_percent=revenue_growth_percent,
        profit_margin_percent=profit_margin_percent,
        passed=score >= RULE_OF_40_THRESHOLD,
        margin_source=margin_source,
    )


def rule_of_40(current: FinancialPeriod, prior: FinancialPeriod | None) -> RuleOf40:
    """Compute Rule of 40 as revenue growth plus profit margin.

    The margin is the free-cash-flow margin when free cash flow is reported
    (non-zero), otherwise the EBITDA margin. Growth is 0 without a prior
    period with positive revenue.
    """
    growth = revenue_growth(current, prior) or 0.0

    if current.revenue == 0:
        margin, source = 0.0, "none"
    elif current.free_cash_flow != 0:
        margin, source = current.free_cash_flow / current.revenue * PERCENT, "fcf"
    elif current.ebitda != 0:
        margin, source = current.ebitda / current.revenue * PERCENT, "ebitda"
    else:
        margin, source = 0.0, "none"

    return rule_of_40_from_components(growth, margin, margin_source=source)


# ---------------------------------------------------------------------------
# Valuation and earnings quality
# ---------------------------------------------------------------------------


def dcf_assessment(intrinsic_value: float, current_price: float) -> DCFValuation:
    """Compare a DCF intrinsic value with the market price.

    Above +15% is Undervalued, below -15% is Overvalued, otherwise Fairly
    Valued. A zero price cannot be compared and yields ``N/A``.
    """
    diff = _safe_div(intrinsic_value - current_price, current_price)
    if diff is None:
        return DCFValuation(
            intrinsic_value=intrinsic_value,
            current_price=current_price,
            difference_percent=None,
            assessment=DCFAssessment.NOT_AVAILABLE,
        )

    difference_percent = diff * PERCENT
    if difference_percent > DCF_THRESHOLD_PERCENT:
        assessment = DCFAssessment.UNDERVALUED
    elif difference_percent < -DCF_THRESHOLD_PERCENT:
        assessment = DCFAssessment.OVERVALUED
    else:
        assessment = DCFAssessment.FAIRLY_VALUED

    return DCFValuation(
        intrinsic_value=intrinsic_value,
        current_price=current_price,
        difference_percent=difference_percent,
        assessment=assessment,
    )


def owner_earnings(period: FinancialPeriod, market_cap: float | None = None) -> OwnerEarnings:
    """Compute owner earnings as ``NI + D&A - maintenance capex``.

    All capital expenditure is treated as maintenance capex. The yield is
    ``None`` when no positive market cap is known.
    """
    maintenance = abs(period.capital_expenditure)
    earnings = period.net_income + period.depreciation_amortization - maintenance
    ratio = _safe_div(earnings, _resolve_market_cap(period, market_cap))
    return OwnerEarnings(
        owner_earnings=earnings,
        maintenance_capex=maintenance,
        yield_percent=ratio * PERCENT if ratio is not None else None,
    )


def accrual_ratio(current: FinancialPeriod, prior: FinancialPeriod | None = None) -> float | None:
    """Return ``(NI - OCF) / average total assets`` in percent; lower is better."""
    if prior is not None and prior.total_assets > 0:
        avg_assets = (current.total_assets + prior.total_assets) / 2
    else:
        avg_assets = current.total_assets
    ratio = _safe_div(current.net_income - current.operating_cash_flow, avg_assets)
    return ratio * PERCENT if ratio is not None else None


def buyback_yield(period: FinancialPeriod, market_cap: float | None = None) -> float | None:
    """Return net buybacks as a percent of market cap, floored at 0.

    ``common_stock_repurchased`` is negative for cash spent on buybacks, so
    net issuance (a positive value) produces 0 rather than a negative yield.
    """
    ratio = _safe_div(-period.common_stock_repurchased, _resolve_market_cap(period, market_cap))
    if ratio is None:
        return None
    return max(0.0, ratio * PERCENT)


# ---------------------------------------------------------------------------
# Supporting ratios
# ---------------------------------------------------------------------------


def roic(period: FinancialPeriod) -> float | None:
    """Return operating income after a flat 25% tax over equity plus debt, in percent."""
    nopat = period.operating_income * (1 - ROIC_TAX_RATE)
    ratio = _safe_div(nopat, period.shareholders_equity + period.total_debt)
    return ratio * PERCENT if ratio is not None else None


def roe(period: FinancialPeriod) -> float | None:
    """Return net income over positive equity, in percent."""
    if period.shareholders_equity <= 0:
        return None
    return period.net_income / period.shareholders_equity * PERCENT


def operating_margin(period: FinancialPeriod) -> float | None:
    ratio = _safe_div(period.operating_income, period.revenue)
    return ratio * PERCENT if ratio is not None else None


def debt_to_equity(period: FinancialPeriod) -> float | None:
    if period.shareholders_equity <= 0:
        return None
    return period.total_debt / period.shareholders_equity


def current_ratio(period: FinancialPeriod) -> float | None:
    return _safe_div(period.current_assets, period.current_liabilities)


def asset_turnover(period: FinancialPeriod) -> float | None:
    return _safe_div(period.revenue, period.total_assets)


def revenue_growth(current: FinancialPeriod, prior: FinancialPeriod | None) -> float | None:
    """Return year-over-year revenue growth in percent, if prior revenue is positive."""
    if prior is None or prior.revenue <= 0:
        return None
    return (current.revenue - prior.revenue) / prior.revenue * PERCENT


def eps_growth(current: FinancialPeriod, prior: FinancialPeriod | None) -> float | None:
    """Return year-over-year diluted EPS growth in percent.

    Sign handling:
        * prior > 0: ordinary percent change.
        * prior < 0 and current > 0: a turnaround, reported as 100.
        * both negative: narrowing losses are positive growth.
        * anything else (e.g. prior == 0): 0.
    """
    if prior is None:
        return None
    cur, pri = current.eps_diluted, prior.eps_diluted
    if pri > 0:
        return (cur - pri) / pri * PERCENT
    if pri < 0 and cur > 0:
        return EPS_TURNAROUND_GROWTH
    if pri < 0 and cur < 0:
        return (cur - pri) / -pri * PERCENT
    return 0.0


# ---------------------------------------------------------------------------
# Facade
# ---------------------------------------------------------------------------


class ScoringEngine:
    """Stateless facade that scores a ticker's recent periods."""

    def score(
        self,
        periods: Sequence[FinancialPeriod],
        *,
        quote: Quote | None = None,
        intrinsic_value: float | None = None,
    ) -> ScoreResult:
        """Score the most recent period against the one before it.

        Args:
            periods: Periods for one ticker in any order; at least one.
            quote: Latest quote; its price and market cap take precedence
                over the market context on the most recent period.
            intrinsic_value: DCF intrinsic value per share, if available.

        Returns:
            ScoreResult: All scores for the most recent period.

        Raises:
            ValueError: If ``periods`` is empty.
        """
        if not periods:
            raise ValueError("at least one financial period is required")

        ordered = sort_periods_desc(periods)
        current = ordered[0]
        prior = ordered[1] if len(ordered) > 1 else None

        market_cap = current.market_cap
        price = current.price
        if quote is not None:
            price = quote.price
            if quote.market_cap is not None:
                market_cap = quote.market_cap

        dcf = None
        if intrinsic_value is not None and price is not None:
            dcf = dcf_assessment(intrinsic_value, price)

        return ScoreResult(
            piotroski=piotroski_f_score(current, prior),
            altman_z=altman_z_score(current, market_cap),
            rule_of_40=rule_of_40(current, prior),
            dcf=dcf,
            owner_earnings=owner_earnings(current, market_cap),
            accrual_ratio=accrual_ratio(current, prior),
            buyback_yield=buyback_yield(current, market_cap),
        )


__all__ = [
    "ScoringEngine",
    "accrual_ratio",
    "altman_z_score",
    "altman_zone",
    "asset_turnover",
    "buyback_yield",
    "current_ratio",
    "dcf_assessment",
    "debt_to_equity",
    "eps_growth",
    "operating_margin",
    "owner_earnings",
    "piotroski_f_score",
    "revenue_growth",
    "roe",
    "roic",
    "rule_of_40",
    "rule_of_40_from_components",
]
