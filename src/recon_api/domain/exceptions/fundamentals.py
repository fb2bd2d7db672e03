# Copyright (c) Recon.
# SPDX-License-Identifier: MIT
"""
Fundamentals Domain Exceptions

Purpose:
    Error conditions that can cross the scoring core boundary. Only two kinds
    reach callers: DataMissing (nothing cached, nothing fetchable) and an
    unmasked ProviderFailure. Formula-level degradation is never raised.

Layer: domain/exceptions
"""
from __future__ import annotations

from .base import DomainError


class DataMissing(DomainError):
    """No financial data is available for the ticker, cached or fetched."""

    code = "DATA_MISSING"


class InvalidTicker(DataMissing):
    """Ticker symbol is malformed and cannot be looked up."""

    code = "INVALID_TICKER"


class ProviderFailure(DomainError):
    """A call to the external fundamentals provider failed.

    Attributes:
        transient: Whether a later retry could plausibly succeed.
    """

    code = "PROVIDER_FAILURE"
    transient: bool = True


class ProviderUnavailable(ProviderFailure):
    """Provider returned 5xx, a transport error, or the circuit is open."""

    code = "PROVIDER_UNAVAILABLE"


class ProviderTimeout(ProviderFailure):
    """Provider did not answer within the lookup timeout."""

    code = "PROVIDER_TIMEOUT"


class ProviderRateLimited(ProviderFailure):
    """Provider rejected the call due to rate limiting or quota."""

    code = "PROVIDER_RATE_LIMITED"


class ProviderAuthError(ProviderFailure):
    """Provider rejected the configured credentials."""

    code = "PROVIDER_AUTH_ERROR"
    transient = False


class ProviderValidationError(ProviderFailure):
    """Provider returned a payload with an unexpected shape."""

    code = "PROVIDER_SCHEMA_ERROR"
    transient = False


class TickerNotFound(ProviderFailure):
    """Provider reports that it has no data for the ticker."""

    code = "TICKER_NOT_FOUND"
    transient = False
