# tests/unit/infrastructure/resilience/test_circuit_breaker.py
from __future__ import annotations

import asyncio

import pytest

from recon_api.domain.exceptions.fundamentals import TickerNotFound
from recon_api.infrastructure.resilience.circuit_breaker import CircuitBreaker, CircuitOpenError


async def _boom() -> None:
    raise RuntimeError("boom")


@pytest.mark.anyio
async def test_circuit_breaker_allows_success_in_closed_state() -> None:
    breaker = CircuitBreaker(failure_threshold=2, recovery_timeout_s=1.0)

    async with breaker.guard("fmp"):
        pass

    assert breaker.state == "CLOSED"
    assert breaker._failures == 0


@pytest.mark.anyio
async def test_circuit_breaker_trips_open_after_failures() -> None:
    breaker = CircuitBreaker(failure_threshold=2, recovery_timeout_s=60.0)

    with pytest.raises(RuntimeError, match="boom"):
        async with breaker.guard("fmp"):
            await _boom()
    assert breaker.state == "CLOSED"
    assert breaker._failures == 1

    with pytest.raises(RuntimeError, match="boom"):
        async with breaker.guard("fmp"):
            await _boom()
    assert breaker.state == "OPEN"

    called = False
    with pytest.raises(CircuitOpenError) as exc_info:
        async with breaker.guard("fmp"):
            called = True

    assert not called
    assert exc_info.value.key == "fmp"
    assert exc_info.value.state == "OPEN"


@pytest.mark.anyio
async def test_excluded_errors_do_not_count() -> None:
    breaker = CircuitBreaker(
        failure_threshold=1, recovery_timeout_s=60.0, excluded=(TickerNotFound,)
    )

    for _ in range(3):
        with pytest.raises(TickerNotFound):
            async with breaker.guard("eodhd"):
                raise TickerNotFound("no such ticker")

    assert breaker.state == "CLOSED"


@pytest.mark.anyio
async def test_success_resets_failure_count() -> None:
    breaker = CircuitBreaker(failure_threshold=2, recovery_timeout_s=60.0)

    with pytest.raises(RuntimeError):
        async with breaker.guard("fmp"):
            await _boom()
    async with breaker.guard("fmp"):
        pass
    with pytest.raises(RuntimeError):
        async with breaker.guard("fmp"):
            await _boom()

    assert breaker.state == "CLOSED"


@pytest.mark.anyio
async def test_half_open_success_closes_and_failure_reopens() -> None:
    breaker = CircuitBreaker(failure_threshold=1, recovery_timeout_s=0.05)

    with pytest.raises(RuntimeError):
        async with breaker.guard("fmp"):
            await _boom()
    await asyncio.sleep(0.06)

    with pytest.raises(RuntimeError):
        async with breaker.guard("fmp"):
            await _boom()
    assert breaker.state == "OPEN"

    await asyncio.sleep(0.06)
    async with breaker.guard("fmp"):
        pass
    assert breaker.state == "CLOSED"


@pytest.mark.anyio
async def test_half_open_call_limit() -> None:
    breaker = CircuitBreaker(failure_threshold=1, recovery_timeout_s=0.05, half_open_max_calls=1)

    with pytest.raises(RuntimeError):
        async with breaker.guard("fmp"):
            await _boom()
    await asyncio.sleep(0.06)

    async def trial() -> None:
        async with breaker.guard("fmp"):
            await asyncio.sleep(0.05)

    results = await asyncio.gather(trial(), trial(), return_exceptions=True)

    assert sum(isinstance(r, CircuitOpenError) for r in results) == 1
    assert breaker.state == "CLOSED"
