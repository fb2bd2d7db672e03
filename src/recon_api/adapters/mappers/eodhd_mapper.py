# src/recon_api/adapters/mappers/eodhd_mapper.py
# Copyright (c) Recon.
# SPDX-License-Identifier: MIT
"""EODHD payload mapper.

Purpose:
    Convert the EODHD ``fundamentals`` document and ``real-time`` quote into
    domain entities.

Layer:
    adapters/mappers

Notes:
    - Yearly statements live under ``Financials.<Statement>.yearly`` keyed by
      period-end date. The income statement drives which periods exist.
    - EODHD does not report diluted EPS per period; it is left at ``0.0``.
    - Share count and market cap are only known for "now", so they are
      attached to the most recent period.
    - Numbers frequently arrive as strings, and ``"NA"`` marks a missing value.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from typing import Any

from recon_api.adapters.mappers.coercion import (
    from_unix,
    optional_mapping,
    parse_date,
    require_mapping,
    to_amount,
    to_float,
    to_positive,
    to_text,
)
from recon_api.domain.entities.financial_period import FinancialPeriod, sort_periods_desc
from recon_api.domain.entities.market import CompanyProfile, Quote, ValuationRatios

PROVIDER = "eodhd"

Doc = Mapping[str, Any]


def _section(doc: Doc, *path: str) -> Doc:
    node: Doc = doc
    for part in path:
        node = optional_mapping(node.get(part), provider=PROVIDER, what=".".join(path))
    return node


def _yearly(doc: Doc, statement: str) -> Doc:
    return _section(doc, "Financials", statement, "yearly")


def map_company(ticker: str, doc: Doc) -> CompanyProfile | None:
    """Map the ``General`` block; ``None`` when the document has none."""
    general = _section(require_mapping(doc, provider=PROVIDER, what="fundamentals"), "General")
    if not general:
        return None
    return CompanyProfile(
        ticker=ticker,
        name=to_text(general.get("Name")) or ticker,
        sector=to_text(general.get("Sector")) or to_text(general.get("GicSector")),
        industry=to_text(general.get("Industry")),
        exchange=to_text(general.get("Exchange")),
    )


def map_statements(ticker: str, doc: Doc, periods: int = 2) -> list[FinancialPeriod]:
    """Join the yearly statements of a fundamentals document.

    Args:
        ticker: Upper-case ticker symbol.
        doc: ``fundamentals`` document.
        periods: Maximum number of periods to return.

    Returns:
        list[FinancialPeriod]: Most recent first; empty when no income rows exist.

    Raises:
        ProviderValidationError: If a statement section is not an object.
    """
    doc = require_mapping(doc, provider=PROVIDER, what="fundamentals")
    income = _yearly(doc, "Income_Statement")
    balance = _yearly(doc, "Balance_Sheet")
    cash = _yearly(doc, "Cash_Flow")

    records: list[FinancialPeriod] = []
    for key, raw in income.items():
        period_end = parse_date(key) or parse_date(
            raw.get("date") if isinstance(raw, Mapping) else None
        )
        if period_end is None:
            continue
        inc = require_mapping(raw, provider=PROVIDER, what=f"Income_Statement.{key}")
        bal = optional_mapping(balance.get(key), provider=PROVIDER, what=f"Balance_Sheet.{key}")
        cf = optional_mapping(cash.get(key), provider=PROVIDER, what=f"Cash_Flow.{key}")

        operating_income = to_amount(inc.get("operatingIncome"))
        ebit = to_float(inc.get("ebit"))
        ocf = to_amount(cf.get("totalCashFromOperatingActivities"))
        capex = to_amount(cf.get("capitalExpenditures"))
        fcf = to_float(cf.get("freeCashFlow"))
        long_term_debt = to_amount(bal.get("longTermDebt"))
        total_debt = to_float(bal.get("shortLongTermDebtTotal"))
        if total_debt is None:
            total_debt = long_term_debt + to_amount(bal.get("shortTermDebt"))

        records.append(
            FinancialPeriod(
                ticker=ticker,
                fiscal_year=period_end.year,
                period_end=period_end,
                revenue=to_amount(inc.get("totalRevenue")),
                gross_profit=to_amount(inc.get("grossProfit")),
                operating_income=operating_income,
                net_income=to_amount(inc.get("netIncome")),
                ebit=ebit if ebit is not None else operating_income,
                ebitda=to_amount(inc.get("ebitda")),
                interest_expense=to_amount(inc.get("interestExpense")),
                depreciation_amortization=to_amount(cf.get("depreciation")),
                total_assets=to_amount(bal.get("totalAssets")),
                total_liabilities=to_amount(bal.get("totalLiab")),
                current_assets=to_amount(bal.get("totalCurrentAssets")),
                current_liabilities=to_amount(bal.get("totalCurrentLiabilities")),
                long_term_debt=long_term_debt,
                total_debt=total_debt,
                shareholders_equity=to_amount(bal.get("totalStockholderEquity")),
                retained_earnings=to_amount(bal.get("retainedEarnings")),
                operating_cash_flow=ocf,
                free_cash_flow=fcf if fcf is not None else ocf - abs(capex),
                capital_expenditure=capex,
                common_stock_repurchased=to_amount(cf.get("salePurchaseOfStock")),
            )
        )

    ordered = sort_periods_desc(records)[:periods]
    if ordered:
        ordered[0] = _with_market_context(ordered[0], doc)
    return ordered


def _with_market_context(period: FinancialPeriod, doc: Doc) -> FinancialPeriod:
    shares = to_positive(_section(doc, "SharesStats").get("SharesOutstanding"))
    return replace(period, shares_outstanding=shares, market_cap=market_cap(doc))


def market_cap(doc: Doc) -> float | None:
    """Return ``Highlights.MarketCapitalization`` when positive."""
    return to_positive(_section(doc, "Highlights").get("MarketCapitalization"))


def map_quote(ticker: str, real_time: Doc, market_cap_value: float | None = None) -> Quote | None:
    """Map a ``real-time`` document; ``None`` when EODHD reports no close."""
    real_time = require_mapping(real_time, provider=PROVIDER, what="real-time")
    price = to_float(real_time.get("close"))
    if price is None or price < 0:
        return None
    return Quote(
        ticker=ticker,
        price=price,
        market_cap=market_cap_value,
        as_of=from_unix(real_time.get("timestamp")),
    )


def map_valuation_ratios(ticker: str, doc: Doc) -> ValuationRatios | None:
    """Map ``Valuation`` and ``Highlights`` into TTM multiples.

    EODHD has no price-to-FCF field; it is derived from market cap and the
    most recent yearly free cash flow when both are positive.
    """
    doc = require_mapping(doc, provider=PROVIDER, what="fundamentals")
    valuation = _section(doc, "Valuation")
    highlights = _section(doc, "Highlights")
    if not valuation and not highlights:
        return None

    pe = to_float(valuation.get("TrailingPE"))
    if pe is None:
        pe = to_float(highlights.get("PERatio"))

    return ValuationRatios(
        ticker=ticker,
        pe=pe,
        peg=to_float(highlights.get("PEGRatio")),
        ev_to_ebitda=to_float(valuation.get("EnterpriseValueEbitda")),
        price_to_fcf=_price_to_fcf(doc),
        price_to_book=to_float(valuation.get("PriceBookMRQ")),
    )


def _price_to_fcf(doc: Doc) -> float | None:
    cap = market_cap(doc)
    if cap is None:
        return None
    cash = _yearly(doc, "Cash_Flow")
    if not cash:
        return None
    latest_key = max(cash.keys())
    latest = optional_mapping(cash[latest_key], provider=PROVIDER, what=f"Cash_Flow.{latest_key}")
    fcf = to_float(latest.get("freeCashFlow"))
    if fcf is None:
        fcf = to_amount(latest.get("totalCashFromOperatingActivities")) - abs(
            to_amount(latest.get("capitalExpenditures"))
        )
    return cap / fcf if fcf > 0 else None


__all__ = [
    "map_company",
    "map_quote",
    "map_statements",
    "map_valuation_ratios",
    "market_cap",
]
