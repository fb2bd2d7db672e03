# src/recon_api/adapters/mappers/coercion.py
# Copyright (c) Recon.
# SPDX-License-Identifier: MIT
"""Lenient value coercion for provider JSON.

Providers mix numbers, numeric strings, ``null`` and sentinels such as
``"NA"`` or ``""`` for the same field. Values are coerced here; structural
problems (a list where an object is expected) are raised by the mappers.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from datetime import UTC, date, datetime
from typing import Any

from recon_api.domain.exceptions.fundamentals import ProviderValidationError

_MISSING_SENTINELS = frozenset({"", "na", "n/a", "none", "null", "-"})


def to_float(value: Any) -> float | None:
    """Return ``value`` as a finite float, or ``None`` when absent or unparseable.

    ``NaN`` and infinities (as numbers or as strings such as ``"NaN"``) count
    as absent.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float):
        number = value
    elif isinstance(value, int):
        try:
            number = float(value)
        except OverflowError:
            return None
    elif isinstance(value, str):
        text = value.strip()
        if text.lower() in _MISSING_SENTINELS:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def to_amount(value: Any) -> float:
    """Return a monetary line item, ``0.0`` when absent."""
    number = to_float(value)
    return number if number is not None else 0.0


def to_positive(value: Any) -> float | None:
    """Return ``value`` as a float when strictly positive, else ``None``."""
    number = to_float(value)
    return number if number is not None and number > 0 else None


def to_text(value: Any) -> str | None:
    """Return a stripped non-empty string, or ``None``."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_date(value: Any) -> date | None:
    """Parse an ISO ``YYYY-MM-DD`` prefix, or return ``None``."""
    text = to_text(value)
    if text is None:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def from_unix(value: Any) -> datetime | None:
    """Convert a unix timestamp in seconds to an aware UTC datetime."""
    seconds = to_float(value)
    if seconds is None or seconds <= 0:
        return None
    return datetime.fromtimestamp(seconds, tz=UTC)


def require_mapping(value: Any, *, provider: str, what: str) -> Mapping[str, Any]:
    """Return ``value`` if it is a JSON object.

    Raises:
        ProviderValidationError: If ``value`` is not a mapping.
    """
    if not isinstance(value, Mapping):
        raise ProviderValidationError(
            "bad_shape", details={"provider": provider, "field": what, "expected": "object"}
        )
    return value


def optional_mapping(value: Any, *, provider: str, what: str) -> Mapping[str, Any]:
    """Like :func:`require_mapping` but treats ``None`` as an empty object."""
    if value is None:
        return {}
    return require_mapping(value, provider=provider, what=what)
