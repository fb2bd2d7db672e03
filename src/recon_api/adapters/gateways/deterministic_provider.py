# src/recon_api/adapters/gateways/deterministic_provider.py
# Copyright (c) Recon.
# SPDX-License-Identifier: MIT
"""Adapter Gateway: deterministic, network-free fundamentals.

Used in tests and for local runs without a provider key. Every ticker maps
to a stable, plausible set of statements derived from a SHA-256 of the
symbol, so repeated calls (and repeated processes) return identical data.

Tickers starting with ``ZZZ`` raise :class:`TickerNotFound` to exercise the
not-found path end to end.
"""

from __future__ import annotations

import hashlib
import random
from collections.abc import Sequence
from datetime import UTC, date, datetime

from recon_api.domain.entities.financial_period import FinancialPeriod
from recon_api.domain.entities.market import CompanyProfile, Quote, ValuationRatios
from recon_api.domain.exceptions.fundamentals import TickerNotFound
from recon_api.domain.services.sector_data import GICS_SECTORS

PROVIDER = "deterministic"
NOT_FOUND_PREFIX = "ZZZ"
LATEST_FISCAL_YEAR = 2024
AS_OF = datetime(2025, 1, 2, 21, 0, tzinfo=UTC)


def _rng(ticker: str, salt: str = "") -> random.Random:
    digest = hashlib.sha256(f"{ticker}:{salt}".encode()).digest()
    return random.Random(int.from_bytes(digest[:8], "big"))


class DeterministicFundamentalsProvider:
    """Synthetic provider returning reproducible fundamentals per ticker."""

    def __init__(self, *, latest_fiscal_year: int = LATEST_FISCAL_YEAR) -> None:
        self._latest_year = latest_fiscal_year

    @property
    def name(self) -> str:
        return PROVIDER

    async def aclose(self) -> None:
        return None

    async def fetch_statements(self, ticker: str, periods: int) -> Sequence[FinancialPeriod]:
        self._check(ticker)
        rng = _rng(ticker, "statements")
        revenue = rng.uniform(5e8, 5e10)
        growth = rng.uniform(-0.05, 0.30)
        margin = rng.uniform(0.02, 0.30)
        shares = self._shares(ticker)

        records: list[FinancialPeriod] = []
        for offset in range(periods):
            year = self._latest_year - offset
            rev = revenue / ((1 + growth) ** offset)
            net = rev * margin * (1 - 0.02 * offset)
            assets = rev * 1.4
            liabilities = assets * 0.55
            capex = -rev * 0.05
            ocf = net * 1.25
            records.append(
                FinancialPeriod(
                    ticker=ticker,
                    fiscal_year=year,
                    period_end=date(year, 12, 31),
                    revenue=rev,
                    gross_profit=rev * (0.35 + margin),
                    operating_income=rev * (margin + 0.05),
                    net_income=net,
                    ebit=rev * (margin + 0.06),
                    ebitda=rev * (margin + 0.10),
                    interest_expense=rev * 0.01,
                    eps_diluted=net / shares,
                    depreciation_amortization=rev * 0.04,
                    total_assets=assets,
                    total_liabilities=liabilities,
                    current_assets=assets * 0.35,
                    current_liabilities=assets * 0.22,
                    long_term_debt=liabilities * 0.45,
                    total_debt=liabilities * 0.55,
                    shareholders_equity=assets - liabilities,
                    retained_earnings=(assets - liabilities) * 0.6,
                    operating_cash_flow=ocf,
                    free_cash_flow=ocf + capex,
                    capital_expenditure=capex,
                    common_stock_repurchased=-net * 0.2,
                    shares_outstanding=float(shares) * (1 + 0.01 * offset),
                    market_cap=self._market_cap(ticker) if offset == 0 else None,
                    price=self._price(ticker) if offset == 0 else None,
                )
            )
        return records

    async def fetch_quote(self, ticker: str) -> Quote | None:
        self._check(ticker)
        return Quote(
            ticker=ticker,
            price=self._price(ticker),
            market_cap=self._market_cap(ticker),
            as_of=AS_OF,
        )

    async def fetch_company(self, ticker: str) -> CompanyProfile | None:
        self._check(ticker)
        sector = GICS_SECTORS[_rng(ticker, "sector").randrange(len(GICS_SECTORS))]
        return CompanyProfile(
            ticker=ticker,
            name=f"{ticker} Holdings",
            sector=sector,
            industry=None,
            exchange="NASDAQ",
        )

    async def fetch_valuation_ratios(self, ticker: str) -> ValuationRatios | None:
        self._check(ticker)
        rng = _rng(ticker, "ratios")
        return ValuationRatios(
            ticker=ticker,
            pe=round(rng.uniform(8, 45), 2),
            peg=round(rng.uniform(0.5, 3.5), 2),
            ev_to_ebitda=round(rng.uniform(5, 30), 2),
            price_to_fcf=round(rng.uniform(8, 50), 2),
            price_to_book=round(rng.uniform(0.8, 12), 2),
        )

    async def fetch_intrinsic_value(self, ticker: str) -> float | None:
        self._check(ticker)
        return round(self._price(ticker) * _rng(ticker, "dcf").uniform(0.7, 1.4), 2)

    @staticmethod
    def _check(ticker: str) -> None:
        if ticker.startswith(NOT_FOUND_PREFIX):
            raise TickerNotFound(
                f"Unknown ticker: {ticker}", details={"provider": PROVIDER, "ticker": ticker}
            )

    @staticmethod
    def _shares(ticker: str) -> int:
        return round(_rng(ticker, "shares").uniform(5e7, 2e9))

    @staticmethod
    def _price(ticker: str) -> float:
        return round(_rng(ticker, "price").uniform(10, 500), 2)

    def _market_cap(self, ticker: str) -> float:
        return self._price(ticker) * self._shares(ticker)


__all__ = ["DeterministicFundamentalsProvider"]
