# src/recon_api/infrastructure/database/models/provider_cache.py
# Copyright (c) Recon.
# SPDX-License-Identifier: MIT
"""Provider Cache Model.

Purpose:
    Persist provider responses for the cache-aside fundamentals repository.

Layer:
    infrastructure

Notes:
    Exactly one row exists per ``(ticker, data_type, period_type)``. Rows are
    replaced on refresh and never deleted on expiry, so an expired row can
    still be served when the provider is down.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from recon_api.infrastructure.database.models.base import Base, JSONType, now_utc


class ProviderCacheEntry(Base):
    """One cached provider payload.

    Attributes:
        ticker: Upper-case ticker symbol.
        data_type: Kind of datum (``statements``, ``quote``, ...).
        period_type: ``annual``, ``quarterly``, ``ttm`` or ``none``.
        payload: JSON payload as produced by the repository codecs.
        fetched_at: UTC timestamp of the provider fetch.
        ttl_seconds: Freshness window in seconds.
        provider: Provider that produced the payload.
    """

    __tablename__ = "provider_cache"

    ticker: Mapped[str] = mapped_column(String(length=16), primary_key=True)
    data_type: Mapped[str] = mapped_column(String(length=32), primary_key=True)
    period_type: Mapped[str] = mapped_column(String(length=16), primary_key=True)
    payload: Mapped[Any] = mapped_column(JSONType, nullable=False)
    fetched_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now_utc
    )
    ttl_seconds: Mapped[int] = mapped_column(Integer, nullable=False)
    provider: Mapped[str | None] = mapped_column(String(length=32), nullable=True)
