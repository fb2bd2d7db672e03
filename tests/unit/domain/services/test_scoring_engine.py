# tests/unit/domain/services/test_scoring_engine.py
from __future__ import annotations

import math

import pytest

from recon_api.domain.entities.market import Quote
from recon_api.domain.entities.scores import AltmanZone, DCFAssessment
from recon_api.domain.services import scoring_engine as se
from recon_api.domain.services.scoring_engine import ScoringEngine


def _scenario_a(make_period):
    current = make_period(
        fiscal_year=2024,
        net_income=100,
        operating_cash_flow=150,
        total_assets=1000,
        long_term_debt=200,
        current_assets=500,
        current_liabilities=250,
        gross_profit=400,
        revenue=1000,
    )
    prior = make_period(
        fiscal_year=2023,
        net_income=80,
        operating_cash_flow=120,
        total_assets=900,
        long_term_debt=250,
        current_assets=400,
        current_liabilities=250,
        gross_profit=300,
        revenue=900,
    )
    return current, prior


# ---------------------------------------------------------------------------
# Piotroski
# ---------------------------------------------------------------------------


def test_piotroski_known_fixture_breakdown(make_period) -> None:
    current, prior = _scenario_a(make_period)

    result = se.piotroski_f_score(current, prior)
    b = result.breakdown

    assert b.positive_net_income
    assert b.positive_roa
    assert b.positive_operating_cash_flow
    assert b.cash_flow_greater_than_net_income
    assert b.lower_long_term_debt
    assert b.higher_current_ratio
    assert not b.no_new_shares  # share counts unknown
    assert b.higher_gross_margin
    assert not b.higher_asset_turnover  # 1.0 vs 1.0 is not an improvement
    assert result.score == 7
    assert result.score == sum(b.as_dict().values())


def test_piotroski_without_prior_only_runs_current_tests(make_period) -> None:
    current, _ = _scenario_a(make_period)

    result = se.piotroski_f_score(current, None)

    assert result.score == 4
    assert not result.breakdown.lower_long_term_debt
    assert not result.breakdown.higher_asset_turnover


def test_piotroski_share_test_uses_share_counts(make_period) -> None:
    cur = make_period(shares_outstanding=100.0)
    pri = make_period(fiscal_year=2023, shares_outstanding=100.0)
    assert se.piotroski_f_score(cur, pri).breakdown.no_new_shares

    diluted = make_period(shares_outstanding=110.0)
    assert not se.piotroski_f_score(diluted, pri).breakdown.no_new_shares


def test_piotroski_all_zero_inputs_do_not_raise(make_period) -> None:
    result = se.piotroski_f_score(make_period(), make_period(fiscal_year=2023))
    assert result.score == 0


@pytest.mark.parametrize(
    "net_income, ocf, assets",
    [(-5.0, -3.0, 0.0), (10.0, 20.0, 0.0), (1e9, 2e9, 1e10), (-1e6, 5e6, 3e6)],
)
def test_piotroski_score_bounded(make_period, net_income, ocf, assets) -> None:
    cur = make_period(net_income=net_income, operating_cash_flow=ocf, total_assets=assets)
    pri = make_period(fiscal_year=2023, total_assets=assets)
    assert 0 <= se.piotroski_f_score(cur, pri).score <= 9


# ---------------------------------------------------------------------------
# Altman
# ---------------------------------------------------------------------------


def test_altman_known_fixture_is_safe(make_period) -> None:
    period = make_period(
        current_assets=500,
        current_liabilities=250,
        total_assets=1000,
        retained_earnings=300,
        ebit=150,
        total_liabilities=400,
        revenue=1000,
    )

    result = se.altman_z_score(period, market_cap=2000)

    c = result.components
    assert c.working_capital_to_assets == pytest.approx(0.25)
    assert c.retained_earnings_to_assets == pytest.approx(0.30)
    assert c.ebit_to_assets == pytest.approx(0.15)
    assert c.market_cap_to_liabilities == pytest.approx(5.0)
    assert c.sales_to_assets == pytest.approx(1.0)
    assert result.score == pytest.approx(5.215)
    assert result.zone is AltmanZone.SAFE


@pytest.mark.parametrize(
    "score, zone",
    [
        (3.0, AltmanZone.SAFE),
        (2.99, AltmanZone.GRAY),
        (2.0, AltmanZone.GRAY),
        (1.81, AltmanZone.GRAY),
        (1.80, AltmanZone.DISTRESS),
        (-4.0, AltmanZone.DISTRESS),
    ],
)
def test_altman_zone_thresholds(score, zone) -> None:
    assert se.altman_zone(score) is zone


def test_altman_zero_denominators_give_zero_components(make_period) -> None:
    result = se.altman_z_score(make_period(revenue=100, ebit=10), market_cap=None)

    assert result.score == 0.0
    assert result.zone is AltmanZone.DISTRESS
    assert result.components.sales_to_assets == 0.0


def test_altman_uses_period_market_cap_by_default(make_period) -> None:
    period = make_period(total_liabilities=100, market_cap=300.0)
    assert se.altman_z_score(period).components.market_cap_to_liabilities == pytest.approx(3.0)


# ---------------------------------------------------------------------------
# Rule of 40
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "growth, margin, score, passed",
    [(25.0, 20.0, 45.0, True), (10.0, 15.0, 25.0, False), (20.0, 20.0, 40.0, True)],
)
def test_rule_of_40_from_components(growth, margin, score, passed) -> None:
    result = se.rule_of_40_from_components(growth, margin)
    assert result.score == pytest.approx(score)
    assert result.passed is passed


def test_rule_of_40_prefers_fcf_margin(make_period) -> None:
    cur = make_period(revenue=125, free_cash_flow=25, ebitda=50)
    pri = make_period(fiscal_year=2023, revenue=100)

    result = se.rule_of_40(cur, pri)

    assert result.revenue_growth_percent == pytest.approx(25.0)
    assert result.profit_margin_percent == pytest.approx(20.0)
    assert result.margin_source == "fcf"
    assert result.passed


def test_rule_of_40_falls_back_to_ebitda_margin(make_period) -> None:
    cur = make_period(revenue=100, free_cash_flow=0, ebitda=30)

    result = se.rule_of_40(cur, None)

    assert result.revenue_growth_percent == 0.0
    assert result.profit_margin_percent == pytest.approx(30.0)
    assert result.margin_source == "ebitda"
    assert not result.passed


def test_rule_of_40_zero_revenue(make_period) -> None:
    result = se.rule_of_40(make_period(), make_period(fiscal_year=2023))
    assert result.score == 0.0
    assert result.margin_source == "none"


# ---------------------------------------------------------------------------
# DCF, owner earnings, accruals, buybacks
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "iv, price, assessment",
    [
        (120.0, 100.0, DCFAssessment.UNDERVALUED),
        (115.0, 100.0, DCFAssessment.FAIRLY_VALUED),
        (85.0, 100.0, DCFAssessment.FAIRLY_VALUED),
        (80.0, 100.0, DCFAssessment.OVERVALUED),
    ],
)
def test_dcf_assessment_thresholds(iv, price, assessment) -> None:
    assert se.dcf_assessment(iv, price).assessment is assessment


def test_dcf_zero_price_is_not_available() -> None:
    result = se.dcf_assessment(50.0, 0.0)
    assert result.assessment is DCFAssessment.NOT_AVAILABLE
    assert result.difference_percent is None


def test_owner_earnings_treats_capex_as_maintenance(make_period) -> None:
    period = make_period(net_income=100, depreciation_amortization=30, capital_expenditure=-50)

    result = se.owner_earnings(period, market_cap=1600)

    assert result.owner_earnings == pytest.approx(80.0)
    assert result.maintenance_capex == pytest.approx(50.0)
    assert result.yield_percent == pytest.approx(5.0)


def test_owner_earnings_yield_none_without_market_cap(make_period) -> None:
    assert se.owner_earnings(make_period(net_income=10)).yield_percent is None


def test_accrual_ratio_uses_average_assets(make_period) -> None:
    cur = make_period(net_income=100, operating_cash_flow=60, total_assets=1100)
    pri = make_period(fiscal_year=2023, total_assets=900)

    assert se.accrual_ratio(cur, pri) == pytest.approx(4.0)
    assert se.accrual_ratio(cur) == pytest.approx(40 / 1100 * 100)
    assert se.accrual_ratio(make_period()) is None


def test_buyback_yield_issuance_is_clamped_to_zero(make_period) -> None:
    period = make_period(common_stock_repurchased=500_000)
    assert se.buyback_yield(period, market_cap=10_000_000) == 0.0


def test_buyback_yield_positive_for_repurchases(make_period) -> None:
    period = make_period(common_stock_repurchased=-500_000)
    assert se.buyback_yield(period, market_cap=10_000_000) == pytest.approx(5.0)
    assert se.buyback_yield(period) is None


# ---------------------------------------------------------------------------
# Supporting ratios
# ---------------------------------------------------------------------------


def test_ratios_handle_zero_denominators(make_period) -> None:
    empty = make_period()
    assert se.roic(empty) is None
    assert se.roe(empty) is None
    assert se.operating_margin(empty) is None
    assert se.debt_to_equity(empty) is None
    assert se.current_ratio(empty) is None
    assert se.asset_turnover(empty) is None
    assert se.revenue_growth(empty, make_period(fiscal_year=2023)) is None


def test_roic_applies_flat_tax(make_period) -> None:
    period = make_period(operating_income=200, shareholders_equity=600, total_debt=400)
    assert se.roic(period) == pytest.approx(15.0)


@pytest.mark.parametrize(
    "prior_eps, current_eps, expected",
    [
        (2.0, 3.0, 50.0),
        (-1.0, 0.5, 100.0),
        (-2.0, -1.0, 50.0),
        (-1.0, -2.0, -100.0),
        (0.0, 1.0, 0.0),
    ],
)
def test_eps_growth_sign_handling(make_period, prior_eps, current_eps, expected) -> None:
    cur = make_period(eps_diluted=current_eps)
    pri = make_period(fiscal_year=2023, eps_diluted=prior_eps)
    assert se.eps_growth(cur, pri) == pytest.approx(expected)


def test_eps_growth_without_prior_is_none(make_period) -> None:
    assert se.eps_growth(make_period(eps_diluted=1.0), None) is None


# ---------------------------------------------------------------------------
# Facade
# ---------------------------------------------------------------------------


def test_engine_orders_periods_and_uses_quote(make_period) -> None:
    current, prior = _scenario_a(make_period)
    quote = Quote(ticker="ACME", price=10.0, market_cap=2000.0)

    result = ScoringEngine().score([prior, current], quote=quote, intrinsic_value=13.0)

    assert result.piotroski.score == 7
    assert result.dcf is not None
    assert result.dcf.assessment is DCFAssessment.UNDERVALUED
    assert result.altman_z.components.market_cap_to_liabilities == 0.0  # no liabilities
    assert not math.isnan(result.altman_z.score)


def test_engine_skips_dcf_without_price(make_period) -> None:
    result = ScoringEngine().score([make_period(revenue=10)], intrinsic_value=5.0)
    assert result.dcf is None


def test_engine_requires_periods() -> None:
    with pytest.raises(ValueError):
        ScoringEngine().score([])
