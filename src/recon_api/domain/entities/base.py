# Copyright (c) Recon.
# SPDX-License-Identifier: MIT
"""Base Entity (Domain Layer).

Purpose:
    Mixin for immutable domain entities. Provides frozen dataclass semantics
    and a shared invariant hook.

Layer:
    domain/entities
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class BaseEntity:
    """Base mixin for immutable domain entities.

    Concrete entities declare their own fields and override
    :meth:`__post_init__` to enforce invariants.
    """

    def __post_init__(self) -> None:  # noqa: D401
        """Hook for subclasses; the base enforces nothing."""
        return


def normalize_ticker(raw: str) -> str:
    """Return the canonical upper-case form of a ticker symbol."""
    return raw.strip().upper()
