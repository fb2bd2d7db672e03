# src/recon_api/infrastructure/external_apis/fmp/client.py
# Copyright (c) Recon.
# SPDX-License-Identifier: MIT
"""Financial Modeling Prep (stable API) transport client.

Thin endpoint layer over :class:`ProviderHttpClient`: builds paths and query
parameters and checks the top-level JSON shape. Mapping to domain entities
happens in ``recon_api.adapters.mappers.fmp_mapper``.

All endpoints used here return a JSON list; an unknown ticker yields an
empty list rather than a 404.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Final

from recon_api.domain.exceptions.fundamentals import ProviderValidationError
from recon_api.infrastructure.external_apis.http_client import ProviderHttpClient

PROVIDER: Final[str] = "fmp"
DEFAULT_BASE_URL: Final[str] = "https://financialmodelingprep.com/stable"


class FmpClient:
    """Endpoint client for the FMP stable API."""

    def __init__(self, http: ProviderHttpClient, api_key: str) -> None:
        self._http = http
        self._api_key = api_key

    async def aclose(self) -> None:
        await self._http.aclose()

    async def income_statements(self, ticker: str, limit: int) -> list[Mapping[str, Any]]:
        return await self._list("income-statement", ticker, period="annual", limit=limit)

    async def balance_sheets(self, ticker: str, limit: int) -> list[Mapping[str, Any]]:
        return await self._list("balance-sheet-statement", ticker, period="annual", limit=limit)

    async def cash_flow_statements(self, ticker: str, limit: int) -> list[Mapping[str, Any]]:
        return await self._list("cash-flow-statement", ticker, period="annual", limit=limit)

    async def quote(self, ticker: str) -> list[Mapping[str, Any]]:
        return await self._list("quote", ticker)

    async def profile(self, ticker: str) -> list[Mapping[str, Any]]:
        return await self._list("profile", ticker)

    async def ratios_ttm(self, ticker: str) -> list[Mapping[str, Any]]:
        return await self._list("ratios-ttm", ticker)

    async def key_metrics_ttm(self, ticker: str) -> list[Mapping[str, Any]]:
        return await self._list("key-metrics-ttm", ticker)

    async def discounted_cash_flow(self, ticker: str) -> list[Mapping[str, Any]]:
        return await self._list("discounted-cash-flow", ticker)

    async def _list(self, path: str, ticker: str, **params: Any) -> list[Mapping[str, Any]]:
        query: dict[str, Any] = {"symbol": ticker, **params, "apikey": self._api_key}
        payload = await self._http.get_json(path, op=path, ticker=ticker, params=query)
        if isinstance(payload, Mapping) and "Error Message" in payload:
            raise ProviderValidationError(
                str(payload["Error Message"]), details={"provider": PROVIDER, "op": path}
            )
        if not isinstance(payload, list) or not all(isinstance(r, Mapping) for r in payload):
            raise ProviderValidationError(
                "bad_shape", details={"provider": PROVIDER, "op": path, "expected": "list"}
            )
        return payload
