# Copyright (c) Recon.
# SPDX-License-Identifier: MIT
"""
Market Context Entities

Purpose:
    Quote, company profile and valuation multiples returned by a
    fundamentals provider alongside the statement periods.

Layer: domain/entities
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime

from .base import BaseEntity


@dataclass(frozen=True, slots=True)
class Quote(BaseEntity):
    """Latest market quote.

    Args:
        ticker: Canonical, upper-case ticker symbol.
        price: Last traded price (non-negative).
        market_cap: Market capitalization, ``None`` when not reported.
        as_of: Observation timestamp (timezone-aware), if known.

    Raises:
        ValueError: If invariants are violated (e.g., negative price).
    """

    ticker: str
    price: float
    market_cap: float | None = None
    as_of: datetime | None = None

    def __post_init__(self) -> None:
        if not self.ticker or self.ticker != self.ticker.upper():
            raise ValueError("ticker must be upper-case non-empty")
        if self.price < 0:
            raise ValueError("price must be >= 0")
        if self.market_cap is not None and self.market_cap < 0:
            raise ValueError("market_cap must be >= 0 when provided")
        if self.as_of is not None and self.as_of.tzinfo is None:
            object.__setattr__(self, "as_of", self.as_of.replace(tzinfo=UTC))


@dataclass(frozen=True, slots=True)
class CompanyProfile(BaseEntity):
    """Company classification used to pick sector reference ranges."""

    ticker: str
    name: str
    sector: str | None = None
    industry: str | None = None
    exchange: str | None = None

    def __post_init__(self) -> None:
        if not self.ticker or self.ticker != self.ticker.upper():
            raise ValueError("ticker must be upper-case non-empty")


@dataclass(frozen=True, slots=True)
class ValuationRatios(BaseEntity):
    """Trailing-twelve-month valuation multiples.

    Each multiple is ``None`` when the provider does not report it.
    """

    ticker: str
    pe: float | None = None
    peg: float | None = None
    ev_to_ebitda: float | None = None
    price_to_fcf: float | None = None
    price_to_book: float | None = None
