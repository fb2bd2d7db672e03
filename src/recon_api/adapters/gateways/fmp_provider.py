# src/recon_api/adapters/gateways/fmp_provider.py
# Copyright (c) Recon.
# SPDX-License-Identifier: MIT
"""Adapter Gateway: Financial Modeling Prep → FundamentalsProvider.

Fetches FMP stable-API endpoints through :class:`FmpClient` and maps them to
domain entities with :mod:`recon_api.adapters.mappers.fmp_mapper`.

Design principles:
    * Statement endpoints are fetched concurrently.
    * The quote is only context for the statements (market cap on the most
      recent period). A quote failure there is logged and the statements are
      returned without market context.
    * An unknown ticker yields empty lists from FMP; statements then come back
      empty and the repository reports ``DataMissing``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence
from typing import Any

from recon_api.adapters.mappers import fmp_mapper
from recon_api.domain.entities.financial_period import FinancialPeriod
from recon_api.domain.entities.market import CompanyProfile, Quote, ValuationRatios
from recon_api.domain.exceptions.fundamentals import ProviderFailure
from recon_api.infrastructure.external_apis.fmp.client import PROVIDER, FmpClient

logger = logging.getLogger(__name__)


class FmpFundamentalsProvider:
    """FMP implementation of the fundamentals provider port."""

    def __init__(self, client: FmpClient) -> None:
        self._client = client

    @property
    def name(self) -> str:
        return PROVIDER

    async def aclose(self) -> None:
        await self._client.aclose()

    async def fetch_statements(self, ticker: str, periods: int) -> Sequence[FinancialPeriod]:
        income, balance, cash_flow = await asyncio.gather(
            self._client.income_statements(ticker, periods),
            self._client.balance_sheets(ticker, periods),
            self._client.cash_flow_statements(ticker, periods),
        )
        quote_rows = await self._quote_context(ticker) if income else []
        return fmp_mapper.map_statements(
            ticker,
            income,
            balance,
            cash_flow,
            quote=quote_rows[0] if quote_rows else None,
            periods=periods,
        )

    async def fetch_quote(self, ticker: str) -> Quote | None:
        return fmp_mapper.map_quote(ticker, await self._client.quote(ticker))

    async def fetch_company(self, ticker: str) -> CompanyProfile | None:
        return fmp_mapper.map_profile(ticker, await self._client.profile(ticker))

    async def fetch_valuation_ratios(self, ticker: str) -> ValuationRatios | None:
        ratios, key_metrics = await asyncio.gather(
            self._client.ratios_ttm(ticker),
            self._client.key_metrics_ttm(ticker),
        )
        return fmp_mapper.map_valuation_ratios(ticker, ratios, key_metrics)

    async def fetch_intrinsic_value(self, ticker: str) -> float | None:
        return fmp_mapper.map_intrinsic_value(await self._client.discounted_cash_flow(ticker))

    async def _quote_context(self, ticker: str) -> list[Mapping[str, Any]]:
        try:
            return await self._client.quote(ticker)
        except ProviderFailure as exc:
            logger.warning(
                "fmp.statements.quote_context_unavailable",
                extra={"extra": {"ticker": ticker, "error_code": exc.code}},
            )
            return []


__all__ = ["FmpFundamentalsProvider"]
