# src/recon_api/application/interfaces/fundamentals_provider.py
# Copyright (c) Recon.
# SPDX-License-Identifier: MIT
"""Application Interface: Fundamentals Provider.

Synopsis:
    Provider-agnostic capabilities used by the cache-aside repository to
    fetch statements and market context. Concrete variants (FMP, EODHD,
    deterministic) live in ``recon_api.adapters.gateways`` and are selected
    once at startup.

Layer:
    application/interfaces

Notes:
    - ``None`` means "this provider does not offer the datum" and is not an
      error. Transport and data failures raise
      :class:`~recon_api.domain.exceptions.fundamentals.ProviderFailure`
      subclasses; an unknown ticker raises ``TickerNotFound``.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from recon_api.domain.entities.financial_period import FinancialPeriod
from recon_api.domain.entities.market import CompanyProfile, Quote, ValuationRatios


class FundamentalsProvider(Protocol):
    """Protocol for fundamentals data providers."""

    @property
    def name(self) -> str:
        """Stable provider identifier used in logs, metrics and cache rows."""

    async def fetch_statements(self, ticker: str, periods: int) -> Sequence[FinancialPeriod]:
        """Fetch the most recent annual periods, most recent first.

        Args:
            ticker: Upper-case ticker symbol.
            periods: Number of annual periods requested.

        Returns:
            Sequence[FinancialPeriod]: Up to ``periods`` records; market cap
            and price are set on the most recent one only.
        """

    async def fetch_quote(self, ticker: str) -> Quote | None:
        """Fetch the latest quote, or ``None`` if the provider has none."""

    async def fetch_company(self, ticker: str) -> CompanyProfile | None:
        """Fetch the company profile (name and sector)."""

    async def fetch_valuation_ratios(self, ticker: str) -> ValuationRatios | None:
        """Fetch trailing-twelve-month valuation multiples."""

    async def fetch_intrinsic_value(self, ticker: str) -> float | None:
        """Fetch a DCF intrinsic value per share."""

    async def aclose(self) -> None:
        """Release transport resources held by the provider."""
