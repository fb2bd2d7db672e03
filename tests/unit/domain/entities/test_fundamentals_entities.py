# tests/unit/domain/entities/test_fundamentals_entities.py
from __future__ import annotations

from datetime import datetime

import pytest

from recon_api.domain.entities.financial_period import FinancialPeriod, sort_periods_desc
from recon_api.domain.entities.market import CompanyProfile, Quote
from recon_api.domain.entities.sector_reference import (
    SectorProfile,
    SectorRange,
    SectorReferenceTables,
)
from recon_api.domain.enums.sector_metric import SectorMetricName, ValuationMultiple
from recon_api.domain.services.sector_data import DEFAULT_SECTOR_TABLES


def _ranges(lo: float = 0.0, hi: float = 10.0) -> dict[SectorMetricName, SectorRange]:
    return {m: SectorRange(min=lo, median=(lo + hi) / 2, max=hi) for m in SectorMetricName}


def test_financial_period_defaults_and_validation() -> None:
    period = FinancialPeriod(ticker="ACME", fiscal_year=2024)

    assert period.revenue == 0.0
    assert period.market_cap is None
    assert period.is_annual

    with pytest.raises(ValueError):
        FinancialPeriod(ticker="acme", fiscal_year=2024)
    with pytest.raises(ValueError):
        FinancialPeriod(ticker="ACME", fiscal_year=2024, fiscal_quarter=5)
    with pytest.raises(ValueError):
        FinancialPeriod(ticker="ACME", fiscal_year=2024, market_cap=-1.0)


def test_sort_periods_desc_puts_annual_after_q4(make_period) -> None:
    q4 = make_period(fiscal_year=2024, fiscal_quarter=4)
    annual = make_period(fiscal_year=2024)
    older = make_period(fiscal_year=2023)

    assert sort_periods_desc([older, q4, annual]) == [annual, q4, older]


def test_quote_normalizes_naive_timestamp() -> None:
    quote = Quote(ticker="ACME", price=10.0, as_of=datetime(2025, 1, 2, 21, 0))

    assert quote.as_of is not None
    assert quote.as_of.tzinfo is not None
    with pytest.raises(ValueError):
        Quote(ticker="ACME", price=-1.0)


def test_company_profile_requires_upper_case_ticker() -> None:
    with pytest.raises(ValueError):
        CompanyProfile(ticker="acme", name="Acme")


def test_sector_profile_requires_every_metric() -> None:
    partial = dict(_ranges())
    partial.pop(SectorMetricName.ROIC)

    with pytest.raises(ValueError, match="roic"):
        SectorProfile(name="Utilities", ranges=partial)


def test_tables_resolve_with_fallback() -> None:
    tables = SectorReferenceTables(
        [
            SectorProfile(name="Technology", ranges=_ranges(0, 10)),
            SectorProfile(
                name="Energy",
                ranges=_ranges(5, 15),
                valuation_medians={ValuationMultiple.PE: 12.0},
            ),
        ]
    )

    assert "Energy" in tables
    assert "Mining" not in tables
    assert not tables.resolve("Energy").fell_back
    assert tables.resolve("Mining").fell_back
    assert tables.resolve(None).profile.name == "Technology"
    assert tables.range_for("Energy", SectorMetricName.ROE).min == 5
    assert tables.median_for("Energy", ValuationMultiple.PE) == 12.0
    assert tables.median_for("Energy", ValuationMultiple.PEG) is None


def test_tables_require_default_profile() -> None:
    with pytest.raises(ValueError):
        SectorReferenceTables([SectorProfile(name="Energy", ranges=_ranges())])


def test_profiles_are_read_only() -> None:
    profile = DEFAULT_SECTOR_TABLES.resolve("Energy").profile
    with pytest.raises(TypeError):
        profile.ranges[SectorMetricName.ROE] = SectorRange(0, 0, 0)  # type: ignore[index]
