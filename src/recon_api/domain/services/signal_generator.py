# src/recon_api/domain/services/signal_generator.py
# Copyright (c) Recon.
# SPDX-License-Identifier: MIT
"""Score-driven signal generation.

Purpose:
    Turn the scoring outputs for one stock into a short list of bullish,
    bearish and warning signals, highest priority first.

Layer:
    domain

Notes:
    - Pure domain logic with no logging and no I/O.
    - Each rule is a plain function returning a :class:`Signal` or ``None``.
      A rule whose input ratio is unknown (``None``) stays silent.
    - Ordering is by priority, descending. Rules of equal priority keep
      their declaration order.
    - Percent inputs are in percent (``25.0`` means 25%); debt/equity is a
      plain ratio.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass

from recon_api.domain.entities.financial_period import FinancialPeriod
from recon_api.domain.entities.scores import AltmanZone, ScoreResult
from recon_api.domain.entities.signal import Signal, SignalCategory, SignalType
from recon_api.domain.services import scoring_engine as se

HIGH_PIOTROSKI_MIN = 7
LOW_PIOTROSKI_MAX = 3
ALTMAN_STRONG_ABOVE = 4.0
HIGH_GROWTH_ABOVE = 20.0
HIGH_DEBT_TO_EQUITY_ABOVE = 2.0
STRONG_ROIC_ABOVE = 20.0


@dataclass(frozen=True, slots=True)
class SignalInputs:
    """Values the signal rules read.

    Attributes:
        piotroski_score: Piotroski F-Score (0..9).
        altman_score: Altman Z-Score.
        altman_zone: Altman zone.
        revenue_growth: Year-over-year revenue growth in percent.
        operating_margin: Operating margin in percent.
        debt_to_equity: Total debt over equity.
        roic: Return on invested capital in percent.
    """

    piotroski_score: int
    altman_score: float
    altman_zone: AltmanZone
    revenue_growth: float | None = None
    operating_margin: float | None = None
    debt_to_equity: float | None = None
    roic: float | None = None

    @classmethod
    def from_scores(
        cls, scores: ScoreResult, current: FinancialPeriod, prior: FinancialPeriod | None
    ) -> SignalInputs:
        """Collect rule inputs from a score result and the periods it was built from."""
        return cls(
            piotroski_score=scores.piotroski.score,
            altman_score=scores.altman_z.score,
            altman_zone=scores.altman_z.zone,
            revenue_growth=se.revenue_growth(current, prior),
            operating_margin=se.operating_margin(current),
            debt_to_equity=se.debt_to_equity(current),
            roic=se.roic(current),
        )


Rule = Callable[[SignalInputs], Signal | None]


def _fundamental(
    kind: SignalType, message: str, priority: int, **data: float | int | str
) -> Signal:
    return Signal(
        type=kind,
        category=SignalCategory.FUNDAMENTAL,
        message=message,
        priority=priority,
        data=data,
    )


def high_piotroski(inputs: SignalInputs) -> Signal | None:
    score = inputs.piotroski_score
    if score < HIGH_PIOTROSKI_MIN:
        return None
    return _fundamental(
        SignalType.BULLISH,
        f"Strong Piotroski F-Score of {score} indicates solid fundamentals",
        4,
        score=score,
    )


def low_piotroski(inputs: SignalInputs) -> Signal | None:
    score = inputs.piotroski_score
    if score > LOW_PIOTROSKI_MAX:
        return None
    return _fundamental(
        SignalType.BEARISH,
        f"Weak Piotroski F-Score of {score} suggests fundamental concerns",
        4,
        score=score,
    )


def altman_distress(inputs: SignalInputs) -> Signal | None:
    if inputs.altman_zone is not AltmanZone.DISTRESS:
        return None
    return _fundamental(
        SignalType.WARNING,
        f"Altman Z-Score of {inputs.altman_score:.2f} indicates elevated bankruptcy risk",
        5,
        score=inputs.altman_score,
        zone=inputs.altman_zone.value,
    )


def altman_safe(inputs: SignalInputs) -> Signal | None:
    if inputs.altman_zone is not AltmanZone.SAFE or inputs.altman_score <= ALTMAN_STRONG_ABOVE:
        return None
    return _fundamental(
        SignalType.BULLISH,
        f"Strong Altman Z-Score of {inputs.altman_score:.2f} indicates excellent financial health",
        3,
        score=inputs.altman_score,
    )


def high_growth(inputs: SignalInputs) -> Signal | None:
    growth = inputs.revenue_growth
    if growth is None or growth <= HIGH_GROWTH_ABOVE:
        return None
    return _fundamental(
        SignalType.BULLISH, f"Strong revenue growth of {growth:.1f}% YoY", 3, growth=growth
    )


def negative_margins(inputs: SignalInputs) -> Signal | None:
    margin = inputs.operating_margin
    if margin is None or margin >= 0:
        return None
    return _fundamental(
        SignalType.WARNING,
        f"Negative operating margin of {margin:.1f}% indicates unprofitable operations",
        4,
        margin=margin,
    )


def high_debt(inputs: SignalInputs) -> Signal | None:
    ratio = inputs.debt_to_equity
    if ratio is None or ratio <= HIGH_DEBT_TO_EQUITY_ABOVE:
        return None
    return _fundamental(
        SignalType.WARNING,
        f"High debt-to-equity ratio of {ratio:.2f} indicates elevated leverage",
        3,
        debtToEquity=ratio,
    )


def strong_roic(inputs: SignalInputs) -> Signal | None:
    value = inputs.roic
    if value is None or value <= STRONG_ROIC_ABOVE:
        return None
    return _fundamental(
        SignalType.BULLISH,
        f"Excellent ROIC of {value:.1f}% shows strong capital efficiency",
        3,
        roic=value,
    )


DEFAULT_RULES: tuple[Rule, ...] = (
    high_piotroski,
    low_piotroski,
    altman_distress,
    altman_safe,
    high_growth,
    negative_margins,
    high_debt,
    strong_roic,
)


class SignalGenerator:
    """Evaluate signal rules and order the results by priority."""

    def __init__(self, rules: Sequence[Rule] = DEFAULT_RULES) -> None:
        self._rules = tuple(rules)

    def generate(self, inputs: SignalInputs) -> list[Signal]:
        """Return every triggered signal, highest priority first."""
        signals = [signal for rule in self._rules if (signal := rule(inputs)) is not None]
        return sorted(signals, key=lambda s: s.priority, reverse=True)

    def generate_for(
        self, scores: ScoreResult, current: FinancialPeriod, prior: FinancialPeriod | None
    ) -> list[Signal]:
        """Shorthand for :meth:`generate` over :meth:`SignalInputs.from_scores`."""
        return self.generate(SignalInputs.from_scores(scores, current, prior))


__all__ = ["DEFAULT_RULES", "Rule", "SignalGenerator", "SignalInputs"]
