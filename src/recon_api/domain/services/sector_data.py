# Copyright (c) Recon.
# SPDX-License-Identifier: MIT
"""Built-in sector reference data.

Typical (min, median, max) ranges for ten fundamental ratios and medians for
five valuation multiples across the 11 GICS sectors. Percent-denominated
metrics (ROIC, ROE, margins, growth, accrual ratio, buyback yield) are in
percent; debt/equity, current ratio and asset turnover are plain ratios.

The data is exposed as :data:`DEFAULT_SECTOR_TABLES`, an immutable
:class:`SectorReferenceTables` instance meant to be passed to engines at
construction time.
"""

from __future__ import annotations

from typing import Final

from recon_api.domain.entities.sector_reference import (
    DEFAULT_SECTOR,
    SectorProfile,
    SectorRange,
    SectorReferenceTables,
)
from recon_api.domain.enums.sector_metric import SectorMetricName as M
from recon_api.domain.enums.sector_metric import ValuationMultiple as V

GICS_SECTORS: Final[tuple[str, ...]] = (
    "Technology",
    "Healthcare",
    "Financial Services",
    "Consumer Cyclical",
    "Consumer Defensive",
    "Industrials",
    "Energy",
    "Basic Materials",
    "Utilities",
    "Real Estate",
    "Communication Services",
)

# Column order for _RANGES rows.
_RANGE_COLUMNS: Final[tuple[M, ...]] = (
    M.ROIC,
    M.ROE,
    M.OPERATING_MARGIN,
    M.DEBT_TO_EQUITY,
    M.CURRENT_RATIO,
    M.ASSET_TURNOVER,
    M.REVENUE_GROWTH,
    M.EPS_GROWTH,
    M.ACCRUAL_RATIO,
    M.BUYBACK_YIELD,
)

_RANGES: Final[dict[str, tuple[tuple[float, float, float], ...]]] = {
    "Technology": (
        (5, 15, 40), (10, 25, 50), (10, 20, 40), (0, 0.4, 1.5), (1, 2, 4),
        (0.3, 0.6, 1.2), (-5, 10, 40), (-10, 15, 50), (-15, -5, 5), (0, 1.5, 5),
    ),
    "Healthcare": (
        (3, 12, 30), (8, 18, 40), (5, 15, 30), (0, 0.5, 1.8), (1, 1.8, 3.5),
        (0.3, 0.5, 1.0), (-3, 8, 30), (-10, 12, 40), (-12, -4, 6), (0, 1, 4),
    ),
    "Financial Services": (
        (2, 8, 18), (8, 12, 20), (15, 30, 50), (0.5, 2, 8), (0.8, 1.2, 2),
        (0.02, 0.05, 0.1), (-5, 5, 20), (-15, 8, 25), (-10, -2, 8), (0, 2, 6),
    ),
    "Consumer Cyclical": (
        (4, 12, 28), (10, 20, 40), (5, 12, 25), (0.2, 0.8, 2), (1, 1.5, 3),
        (0.8, 1.5, 2.5), (-8, 7, 25), (-15, 10, 35), (-10, -3, 5), (0, 1.5, 5),
    ),
    "Consumer Defensive": (
        (5, 14, 30), (12, 22, 45), (8, 15, 28), (0.2, 0.6, 1.5), (0.8, 1.2, 2),
        (0.8, 1.2, 2.0), (-2, 4, 15), (-5, 6, 20), (-8, -2, 4), (0, 2, 5),
    ),
    "Industrials": (
        (4, 11, 25), (10, 18, 35), (6, 12, 22), (0.3, 0.8, 2), (1, 1.5, 2.5),
        (0.5, 0.9, 1.5), (-5, 6, 20), (-10, 8, 25), (-10, -3, 5), (0, 1.5, 4),
    ),
    "Energy": (
        (2, 8, 20), (5, 15, 30), (5, 15, 35), (0.2, 0.5, 1.5), (0.8, 1.2, 2),
        (0.3, 0.6, 1.0), (-20, 5, 40), (-30, 10, 60), (-15, -5, 10), (0, 2, 6),
    ),
    "Basic Materials": (
        (3, 9, 20), (8, 15, 28), (8, 15, 28), (0.2, 0.5, 1.5), (1, 1.8, 3),
        (0.4, 0.7, 1.2), (-10, 5, 25), (-20, 8, 40), (-12, -4, 6), (0, 1.5, 5),
    ),
    "Utilities": (
        (2, 5, 10), (6, 10, 15), (15, 25, 40), (0.8, 1.2, 2.5), (0.6, 0.9, 1.5),
        (0.2, 0.3, 0.5), (-2, 3, 10), (-5, 4, 12), (-8, -2, 5), (0, 0.5, 2),
    ),
    "Real Estate": (
        (2, 5, 12), (4, 8, 15), (20, 35, 55), (0.5, 1, 2.5), (0.5, 1, 2),
        (0.05, 0.1, 0.2), (-5, 5, 20), (-10, 5, 20), (-10, -3, 8), (0, 0.5, 2),
    ),
    "Communication Services": (
        (4, 10, 22), (8, 16, 32), (10, 20, 35), (0.3, 0.8, 2), (0.8, 1.3, 2.5),
        (0.3, 0.5, 0.9), (-5, 8, 30), (-10, 12, 40), (-10, -3, 5), (0, 1.5, 5),
    ),
}  # fmt: skip

# P/E, PEG, EV/EBITDA, P/FCF, P/B
_MEDIANS: Final[dict[str, tuple[float, float, float, float, float]]] = {
    "Technology": (28, 1.8, 18, 25, 6),
    "Healthcare": (22, 1.6, 14, 20, 4),
    "Financial Services": (14, 1.2, 10, 12, 1.5),
    "Consumer Cyclical": (18, 1.4, 12, 18, 4),
    "Consumer Defensive": (20, 2.2, 14, 22, 5),
    "Industrials": (20, 1.5, 12, 18, 3.5),
    "Energy": (12, 1.0, 6, 10, 1.8),
    "Basic Materials": (14, 1.2, 8, 12, 2),
    "Utilities": (18, 2.5, 12, 15, 2),
    "Real Estate": (35, 2.0, 18, 25, 2.5),
    "Communication Services": (18, 1.3, 10, 15, 3),
}

_MEDIAN_COLUMNS: Final[tuple[V, ...]] = (
    V.PE,
    V.PEG,
    V.EV_TO_EBITDA,
    V.PRICE_TO_FCF,
    V.PRICE_TO_BOOK,
)


def _build_profile(name: str) -> SectorProfile:
    ranges = {
        metric: SectorRange(min=float(lo), median=float(mid), max=float(hi))
        for metric, (lo, mid, hi) in zip(_RANGE_COLUMNS, _RANGES[name], strict=True)
    }
    medians = {
        multiple: float(value)
        for multiple, value in zip(_MEDIAN_COLUMNS, _MEDIANS[name], strict=True)
    }
    return SectorProfile(name=name, ranges=ranges, valuation_medians=medians)


def build_default_sector_tables() -> SectorReferenceTables:
    """Build the built-in GICS sector tables with Technology as the fallback."""
    return SectorReferenceTables(
        [_build_profile(name) for name in GICS_SECTORS],
        default_sector=DEFAULT_SECTOR,
    )


DEFAULT_SECTOR_TABLES: Final[SectorReferenceTables] = build_default_sector_tables()

__all__ = ["DEFAULT_SECTOR_TABLES", "GICS_SECTORS", "build_default_sector_tables"]
