# Copyright (c) Recon.
# SPDX-License-Identifier: MIT
"""
Sector Reference Entities

Purpose:
    Immutable per-sector reference data: a (min, median, max) range for each
    fundamental ratio and a median for each valuation multiple. The tables
    object is constructed explicitly and injected into the percentile engine,
    so callers can substitute synthetic tables without touching module state.

Layer: domain/entities

Notes:
    * An unknown or missing sector resolves to the default row ("Technology")
      instead of raising. Callers can see that a fallback happened through
      :attr:`SectorResolution.fell_back`.
    * ``min <= median <= max`` is not enforced; degenerate ranges are
      representable and handled by the percentile functions.
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from recon_api.domain.enums.sector_metric import SectorMetricName, ValuationMultiple

DEFAULT_SECTOR = "Technology"


@dataclass(frozen=True, slots=True)
class SectorRange:
    """Typical spread of one metric within one sector."""

    min: float
    median: float
    max: float


@dataclass(frozen=True, slots=True)
class SectorProfile:
    """Reference ranges and valuation medians for one sector.

    Args:
        name: Sector name as used by the company-classification field.
        ranges: Range per fundamental ratio.
        valuation_medians: Median per valuation multiple.
    """

    name: str
    ranges: Mapping[SectorMetricName, SectorRange]
    valuation_medians: Mapping[ValuationMultiple, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        missing = set(SectorMetricName) - set(self.ranges)
        if missing:
            names = ", ".join(sorted(m.value for m in missing))
            raise ValueError(f"sector {self.name!r} is missing ranges for: {names}")
        object.__setattr__(self, "ranges", MappingProxyType(dict(self.ranges)))
        object.__setattr__(
            self, "valuation_medians", MappingProxyType(dict(self.valuation_medians))
        )


@dataclass(frozen=True, slots=True)
class SectorResolution:
    """Outcome of a sector lookup.

    Attributes:
        requested: Sector name the caller asked for (may be ``None``).
        profile: Profile actually used.
        fell_back: ``True`` when ``requested`` was unknown and the default row
            was substituted.
    """

    requested: str | None
    profile: SectorProfile
    fell_back: bool


class SectorReferenceTables:
    """Immutable lookup of sector profiles with a default-row fallback."""

    __slots__ = ("_default", "_profiles")

    def __init__(
        self,
        profiles: Mapping[str, SectorProfile] | list[SectorProfile] | tuple[SectorProfile, ...],
        *,
        default_sector: str = DEFAULT_SECTOR,
    ) -> None:
        """Build the tables.

        Args:
            profiles: Profiles keyed by sector name, or a sequence of profiles.
            default_sector: Sector used for unknown names.

        Raises:
            ValueError: If ``default_sector`` has no profile.
        """
        if isinstance(profiles, Mapping):
            by_name = dict(profiles)
        else:
            by_name = {p.name: p for p in profiles}
        if default_sector not in by_name:
            raise ValueError(f"default sector {default_sector!r} has no profile")
        self._profiles: Mapping[str, SectorProfile] = MappingProxyType(by_name)
        self._default = default_sector

    @property
    def sectors(self) -> tuple[str, ...]:
        """Known sector names."""
        return tuple(self._profiles)

    @property
    def default_sector(self) -> str:
        """Sector used when a lookup misses."""
        return self._default

    def __contains__(self, sector: object) -> bool:
        return isinstance(sector, str) and sector in self._profiles

    def resolve(self, sector: str | None) -> SectorResolution:
        """Resolve a sector name to a profile, falling back to the default row."""
        if sector is not None and sector in self._profiles:
            return SectorResolution(
                requested=sector, profile=self._profiles[sector], fell_back=False
            )
        return SectorResolution(
            requested=sector, profile=self._profiles[self._default], fell_back=True
        )

    def range_for(self, sector: str | None, metric: SectorMetricName) -> SectorRange:
        """Return the reference range of ``metric`` for ``sector``."""
        return self.resolve(sector).profile.ranges[metric]

    def median_for(self, sector: str | None, multiple: ValuationMultiple) -> float | None:
        """Return the sector median of a valuation multiple, if tabulated."""
        return self.resolve(sector).profile.valuation_medians.get(multiple)
