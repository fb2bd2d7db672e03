# tests/unit/infrastructure/resilience/test_retry.py
from __future__ import annotations

import pytest

from recon_api.infrastructure.resilience import retry as retry_module
from recon_api.infrastructure.resilience.retry import RetryPolicy, retry_async


class _Transient(Exception):
    pass


def _flaky(failures: int):
    calls = {"n": 0}

    async def fn() -> str:
        calls["n"] += 1
        if calls["n"] <= failures:
            raise _Transient(f"attempt {calls['n']}")
        return "ok"

    return fn, calls


@pytest.fixture
def sleeps(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    recorded: list[float] = []

    async def fake_sleep(delay: float) -> None:
        recorded.append(delay)

    monkeypatch.setattr(retry_module.asyncio, "sleep", fake_sleep)
    return recorded


def test_backoff_is_exponential_and_capped() -> None:
    policy = RetryPolicy(total=5, base=0.25, cap=1.0, jitter=False)
    assert [policy.backoff(i) for i in range(4)] == [0.25, 0.5, 1.0, 1.0]


def test_jittered_backoff_stays_within_bounds() -> None:
    policy = RetryPolicy(total=5, base=0.25, cap=1.0, jitter=True)
    assert all(0.0 <= policy.backoff(i) <= min(1.0, 0.25 * 2**i) for i in range(6))


@pytest.mark.anyio
async def test_retries_until_success(sleeps) -> None:
    fn, calls = _flaky(2)
    attempts: list[int] = []

    result = await retry_async(
        fn,
        policy=RetryPolicy(total=3, base=0.1, cap=1.0, jitter=False),
        retry_on=lambda exc: isinstance(exc, _Transient),
        on_retry=lambda attempt, _exc: attempts.append(attempt),
    )

    assert result == "ok"
    assert calls["n"] == 3
    assert attempts == [0, 1]
    assert sleeps == [0.1, 0.2]


@pytest.mark.anyio
async def test_gives_up_after_budget(sleeps) -> None:
    fn, calls = _flaky(10)

    with pytest.raises(_Transient, match="attempt 3"):
        await retry_async(
            fn,
            policy=RetryPolicy(total=2, base=0.0, cap=0.0, jitter=False),
            retry_on=lambda exc: True,
        )

    assert calls["n"] == 3


@pytest.mark.anyio
async def test_non_retryable_raises_immediately(sleeps) -> None:
    fn, calls = _flaky(1)

    with pytest.raises(_Transient):
        await retry_async(
            fn,
            policy=RetryPolicy(total=5, base=0.1, cap=1.0, jitter=False),
            retry_on=lambda exc: False,
        )

    assert calls["n"] == 1
    assert sleeps == []


@pytest.mark.anyio
async def test_delay_hint_overrides_backoff_and_is_capped(sleeps) -> None:
    fn, _ = _flaky(2)
    hints = iter([0.5, 30.0])

    await retry_async(
        fn,
        policy=RetryPolicy(total=3, base=0.1, cap=2.0, jitter=False),
        retry_on=lambda exc: True,
        delay_hint=lambda exc: next(hints),
    )

    assert sleeps == [0.5, 2.0]
