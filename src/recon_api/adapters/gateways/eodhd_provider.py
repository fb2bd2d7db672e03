# src/recon_api/adapters/gateways/eodhd_provider.py
# Copyright (c) Recon.
# SPDX-License-Identifier: MIT
"""Adapter Gateway: EODHD → FundamentalsProvider.

EODHD serves company, highlights, valuation and yearly statements in a
single ``fundamentals`` document, so statements, company profile and
valuation ratios are all mapped from the same endpoint. Each lookup fetches
the document again; the cache-aside repository in front of this gateway
keeps that to one request per data type per TTL.

EODHD has no DCF endpoint: :meth:`fetch_intrinsic_value` returns ``None``.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

from recon_api.adapters.mappers import eodhd_mapper
from recon_api.domain.entities.financial_period import FinancialPeriod
from recon_api.domain.entities.market import CompanyProfile, Quote, ValuationRatios
from recon_api.infrastructure.external_apis.eodhd.client import PROVIDER, EodhdClient


class EodhdFundamentalsProvider:
    """EODHD implementation of the fundamentals provider port."""

    def __init__(self, client: EodhdClient) -> None:
        self._client = client

    @property
    def name(self) -> str:
        return PROVIDER

    async def aclose(self) -> None:
        await self._client.aclose()

    async def fetch_statements(self, ticker: str, periods: int) -> Sequence[FinancialPeriod]:
        doc = await self._client.fundamentals(ticker)
        return eodhd_mapper.map_statements(ticker, doc, periods)

    async def fetch_quote(self, ticker: str) -> Quote | None:
        real_time, doc = await asyncio.gather(
            self._client.real_time(ticker),
            self._client.fundamentals(ticker),
        )
        return eodhd_mapper.map_quote(ticker, real_time, eodhd_mapper.market_cap(doc))

    async def fetch_company(self, ticker: str) -> CompanyProfile | None:
        return eodhd_mapper.map_company(ticker, await self._client.fundamentals(ticker))

    async def fetch_valuation_ratios(self, ticker: str) -> ValuationRatios | None:
        return eodhd_mapper.map_valuation_ratios(ticker, await self._client.fundamentals(ticker))

    async def fetch_intrinsic_value(self, ticker: str) -> float | None:
        return None


__all__ = ["EodhdFundamentalsProvider"]
