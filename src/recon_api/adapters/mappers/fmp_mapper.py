# src/recon_api/adapters/mappers/fmp_mapper.py
# Copyright (c) Recon.
# SPDX-License-Identifier: MIT
"""FMP payload mapper.

Purpose:
    Convert Financial Modeling Prep (stable API) JSON rows into domain
    entities.

Layer:
    adapters/mappers

Notes:
    - Income, balance-sheet and cash-flow rows are joined on their ``date``;
      the income statement drives which periods exist.
    - Market cap and price are attached to the most recent period only.
    - EBIT falls back to operating income when FMP omits it.
    - Free cash flow falls back to ``OCF - |capex|`` when absent.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import replace
from typing import Any

from recon_api.adapters.mappers.coercion import (
    from_unix,
    parse_date,
    to_amount,
    to_float,
    to_positive,
    to_text,
)
from recon_api.domain.entities.financial_period import FinancialPeriod, sort_periods_desc
from recon_api.domain.entities.market import CompanyProfile, Quote, ValuationRatios
from recon_api.domain.exceptions.fundamentals import ProviderValidationError

PROVIDER = "fmp"

Row = Mapping[str, Any]


def _fiscal_year(row: Row) -> int:
    year = to_float(row.get("fiscalYear") or row.get("calendarYear"))
    if year is not None:
        return int(year)
    period_end = parse_date(row.get("date"))
    if period_end is None:
        raise ProviderValidationError(
            "missing_fiscal_year", details={"provider": PROVIDER, "date": row.get("date")}
        )
    return period_end.year


def _by_date(rows: Sequence[Row]) -> dict[str, Row]:
    return {str(r.get("date")): r for r in rows if r.get("date") is not None}


def map_statements(
    ticker: str,
    income: Sequence[Row],
    balance: Sequence[Row],
    cash_flow: Sequence[Row],
    *,
    quote: Row | None = None,
    periods: int = 2,
) -> list[FinancialPeriod]:
    """Join the three statements into :class:`FinancialPeriod` records.

    Args:
        ticker: Upper-case ticker symbol.
        income: ``income-statement`` rows.
        balance: ``balance-sheet-statement`` rows.
        cash_flow: ``cash-flow-statement`` rows.
        quote: First ``quote`` row, for market cap and price.
        periods: Maximum number of periods to return.

    Returns:
        list[FinancialPeriod]: Most recent first; empty if FMP has no income rows.
    """
    balance_by_date = _by_date(balance)
    cash_by_date = _by_date(cash_flow)

    records: list[FinancialPeriod] = []
    for inc in income:
        key = str(inc.get("date"))
        bal = balance_by_date.get(key, {})
        cf = cash_by_date.get(key, {})

        operating_income = to_amount(inc.get("operatingIncome"))
        ebit = to_float(inc.get("ebit"))
        ocf = to_amount(cf.get("operatingCashFlow"))
        capex = to_amount(cf.get("capitalExpenditure"))
        fcf = to_float(cf.get("freeCashFlow"))
        long_term_debt = to_amount(bal.get("longTermDebt"))
        total_debt = to_float(bal.get("totalDebt"))
        if total_debt is None:
            total_debt = long_term_debt + to_amount(bal.get("shortTermDebt"))

        records.append(
            FinancialPeriod(
                ticker=ticker,
                fiscal_year=_fiscal_year(inc),
                period_end=parse_date(inc.get("date")),
                revenue=to_amount(inc.get("revenue")),
                gross_profit=to_amount(inc.get("grossProfit")),
                operating_income=operating_income,
                net_income=to_amount(inc.get("netIncome")),
                ebit=ebit if ebit is not None else operating_income,
                ebitda=to_amount(inc.get("ebitda")),
                interest_expense=to_amount(inc.get("interestExpense")),
                eps_diluted=to_amount(inc.get("epsDiluted", inc.get("epsdiluted"))),
                depreciation_amortization=to_amount(
                    cf.get("depreciationAndAmortization", inc.get("depreciationAndAmortization"))
                ),
                total_assets=to_amount(bal.get("totalAssets")),
                total_liabilities=to_amount(bal.get("totalLiabilities")),
                current_assets=to_amount(bal.get("totalCurrentAssets")),
                current_liabilities=to_amount(bal.get("totalCurrentLiabilities")),
                long_term_debt=long_term_debt,
                total_debt=total_debt,
                shareholders_equity=to_amount(bal.get("totalStockholdersEquity")),
                retained_earnings=to_amount(bal.get("retainedEarnings")),
                operating_cash_flow=ocf,
                free_cash_flow=fcf if fcf is not None else ocf - abs(capex),
                capital_expenditure=capex,
                common_stock_repurchased=to_amount(cf.get("commonStockRepurchased")),
                shares_outstanding=to_positive(inc.get("weightedAverageShsOutDil")),
            )
        )

    ordered = sort_periods_desc(records)[:periods]
    if ordered and quote is not None:
        ordered[0] = _with_market_context(ordered[0], quote)
    return ordered


def _with_market_context(period: FinancialPeriod, quote: Row) -> FinancialPeriod:
    return replace(
        period,
        market_cap=to_positive(quote.get("marketCap")),
        price=to_positive(quote.get("price")),
    )


def map_quote(ticker: str, rows: Sequence[Row]) -> Quote | None:
    """Map the first ``quote`` row, or ``None`` when FMP returns no price."""
    if not rows:
        return None
    row = rows[0]
    price = to_float(row.get("price"))
    if price is None or price < 0:
        return None
    return Quote(
        ticker=ticker,
        price=price,
        market_cap=to_positive(row.get("marketCap")),
        as_of=from_unix(row.get("timestamp")),
    )


def map_profile(ticker: str, rows: Sequence[Row]) -> CompanyProfile | None:
    """Map the first ``profile`` row."""
    if not rows:
        return None
    row = rows[0]
    return CompanyProfile(
        ticker=ticker,
        name=to_text(row.get("companyName")) or ticker,
        sector=to_text(row.get("sector")),
        industry=to_text(row.get("industry")),
        exchange=to_text(row.get("exchange") or row.get("exchangeShortName")),
    )


def map_valuation_ratios(
    ticker: str, ratios: Sequence[Row], key_metrics: Sequence[Row]
) -> ValuationRatios | None:
    """Combine ``ratios-ttm`` and ``key-metrics-ttm`` into TTM multiples."""
    if not ratios and not key_metrics:
        return None
    r = ratios[0] if ratios else {}
    km = key_metrics[0] if key_metrics else {}
    return ValuationRatios(
        ticker=ticker,
        pe=to_float(r.get("priceToEarningsRatioTTM")),
        peg=to_float(r.get("priceToEarningsGrowthRatioTTM")),
        ev_to_ebitda=to_float(km.get("evToEBITDATTM")),
        price_to_fcf=to_float(r.get("priceToFreeCashFlowRatioTTM")),
        price_to_book=to_float(r.get("priceToBookRatioTTM")),
    )


def map_intrinsic_value(rows: Sequence[Row]) -> float | None:
    """Return the ``dcf`` value of the first ``discounted-cash-flow`` row."""
    if not rows:
        return None
    return to_float(rows[0].get("dcf"))


__all__ = [
    "map_intrinsic_value",
    "map_profile",
    "map_quote",
    "map_statements",
    "map_valuation_ratios",
]
