# src/recon_api/domain/entities/signal.py
# Copyright (c) Recon.
# SPDX-License-Identifier: MIT
"""
Signal Entities

Purpose:
    Short, prioritised observations derived from a stock's scores (for
    example "weak Piotroski F-Score"). Signals are recomputed on every
    scoring call.

Layer: domain/entities
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum


class SignalType(str, Enum):
    """Direction of a signal."""

    BULLISH = "bullish"
    BEARISH = "bearish"
    WARNING = "warning"


class SignalCategory(str, Enum):
    """Data family a signal was derived from."""

    FUNDAMENTAL = "fundamental"


@dataclass(frozen=True, slots=True)
class Signal:
    """One generated signal.

    Attributes:
        type: Bullish, bearish or warning.
        category: Data family the rule reads.
        message: Human-readable sentence.
        priority: 1 (lowest) to 5 (highest).
        data: The values that triggered the rule, keyed in camelCase.
    """

    type: SignalType
    category: SignalCategory
    message: str
    priority: int
    data: Mapping[str, float | int | str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not 1 <= self.priority <= 5:
            raise ValueError("priority must be within 1..5")


__all__ = ["Signal", "SignalCategory", "SignalType"]
