# Copyright (c) Recon.
# SPDX-License-Identifier: MIT
"""
Financial Period Entity

Purpose:
    Immutable representation of one fiscal period's income statement,
    balance sheet and cash-flow statement for a single ticker, plus the
    market context attached to the most recent period.

Layer: domain/entities

Notes:
    * Monetary values are floats in the provider's native currency and
      absolute units (never millions).
    * A missing numeric line item is ``0.0``. ``None`` is reserved for fields
      where absence carries meaning: share count and market context.
    * Instances are never patched; a refetch produces a new record.
"""
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date

from .base import BaseEntity


@dataclass(frozen=True, slots=True)
class FinancialPeriod(BaseEntity):
    """One fiscal period of fundamentals.

    Args:
        ticker: Canonical, upper-case ticker symbol.
        fiscal_year: Fiscal year the period belongs to.
        fiscal_quarter: ``None`` for annual periods, otherwise 1..4.
        period_end: Period end date when known.
        revenue: Total revenue.
        gross_profit: Revenue less cost of revenue.
        operating_income: Operating income.
        net_income: Net income.
        ebit: Earnings before interest and taxes.
        ebitda: Earnings before interest, taxes, depreciation and amortization.
        interest_expense: Interest expense.
        eps_diluted: Diluted earnings per share.
        depreciation_amortization: Depreciation and amortization.
        total_assets: Total assets.
        total_liabilities: Total liabilities.
        current_assets: Total current assets.
        current_liabilities: Total current liabilities.
        long_term_debt: Long-term debt.
        total_debt: Short plus long-term debt.
        shareholders_equity: Total stockholders' equity.
        retained_earnings: Retained earnings.
        operating_cash_flow: Cash from operating activities.
        free_cash_flow: Operating cash flow less capital expenditure.
        capital_expenditure: Signed capex (negative = outflow).
        common_stock_repurchased: Signed buybacks (negative = outflow).
        shares_outstanding: Diluted share count, ``None`` when not provided.
        market_cap: Market capitalization, most recent period only.
        price: Stock price, most recent period only.

    Raises:
        ValueError: If identity invariants are violated.
    """

    ticker: str
    fiscal_year: int
    fiscal_quarter: int | None = None
    period_end: date | None = None

    revenue: float = 0.0
    gross_profit: float = 0.0
    operating_income: float = 0.0
    net_income: float = 0.0
    ebit: float = 0.0
    ebitda: float = 0.0
    interest_expense: float = 0.0
    eps_diluted: float = 0.0
    depreciation_amortization: float = 0.0

    total_assets: float = 0.0
    total_liabilities: float = 0.0
    current_assets: float = 0.0
    current_liabilities: float = 0.0
    long_term_debt: float = 0.0
    total_debt: float = 0.0
    shareholders_equity: float = 0.0
    retained_earnings: float = 0.0

    operating_cash_flow: float = 0.0
    free_cash_flow: float = 0.0
    capital_expenditure: float = 0.0
    common_stock_repurchased: float = 0.0

    shares_outstanding: float | None = None
    market_cap: float | None = None
    price: float | None = None

    def __post_init__(self) -> None:
        if not self.ticker or self.ticker != self.ticker.upper():
            raise ValueError("ticker must be upper-case non-empty")
        if self.fiscal_quarter is not None and not 1 <= self.fiscal_quarter <= 4:
            raise ValueError("fiscal_quarter must be within 1..4 when provided")
        if self.market_cap is not None and self.market_cap < 0:
            raise ValueError("market_cap must be >= 0 when provided")
        if self.price is not None and self.price < 0:
            raise ValueError("price must be >= 0 when provided")

    @property
    def is_annual(self) -> bool:
        """Whether this is a full fiscal-year period."""
        return self.fiscal_quarter is None

    @property
    def sort_key(self) -> tuple[int, int]:
        """Chronological key; annual periods sort after Q4 of the same year."""
        return (self.fiscal_year, self.fiscal_quarter if self.fiscal_quarter is not None else 5)


def sort_periods_desc(periods: Iterable[FinancialPeriod]) -> list[FinancialPeriod]:
    """Return periods ordered most recent first."""
    return sorted(periods, key=lambda p: p.sort_key, reverse=True)
