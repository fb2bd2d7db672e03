# src/recon_api/infrastructure/external_apis/eodhd/client.py
# Copyright (c) Recon.
# SPDX-License-Identifier: MIT
"""EODHD transport client.

Two endpoints are used: ``fundamentals/{TICKER}.US`` (company, highlights,
valuation and yearly statements in one document) and
``real-time/{TICKER}.US`` (latest price). Mapping to domain entities
happens in ``recon_api.adapters.mappers.eodhd_mapper``.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Final

from recon_api.domain.exceptions.fundamentals import ProviderValidationError
from recon_api.infrastructure.external_apis.http_client import ProviderHttpClient

PROVIDER: Final[str] = "eodhd"
DEFAULT_BASE_URL: Final[str] = "https://eodhd.com/api"
US_EXCHANGE_SUFFIX: Final[str] = ".US"


class EodhdClient:
    """Endpoint client for the EODHD API."""

    def __init__(self, http: ProviderHttpClient, api_token: str) -> None:
        self._http = http
        self._api_token = api_token

    async def aclose(self) -> None:
        await self._http.aclose()

    async def fundamentals(self, ticker: str) -> Mapping[str, Any]:
        """Return the full fundamentals document for a US ticker."""
        return await self._document("fundamentals", ticker)

    async def real_time(self, ticker: str) -> Mapping[str, Any]:
        """Return the real-time (delayed) quote document for a US ticker."""
        return await self._document("real-time", ticker)

    async def _document(self, endpoint: str, ticker: str) -> Mapping[str, Any]:
        path = f"{endpoint}/{ticker}{US_EXCHANGE_SUFFIX}"
        params = {"api_token": self._api_token, "fmt": "json"}
        payload = await self._http.get_json(path, op=endpoint, ticker=ticker, params=params)
        if not isinstance(payload, Mapping):
            raise ProviderValidationError(
                "bad_shape", details={"provider": PROVIDER, "op": endpoint, "expected": "object"}
            )
        return payload
