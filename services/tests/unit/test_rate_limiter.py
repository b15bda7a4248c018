from __future__ import annotations

import asyncio

import pytest

from inkwell.services.errors import InvalidArgumentError, RateLimitTimeoutError
from inkwell.services.rate_limiter import RateLimiterRegistry, TokenBucket


class _FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _bucket(max_tokens: float, refill_rate: float) -> tuple[TokenBucket, _FakeClock, list[float]]:
    clock = _FakeClock()
    sleeps: list[float] = []

    async def fake_sleep(seconds: float) -> None:
        sleeps.append(seconds)
        clock.advance(seconds)

    return TokenBucket(max_tokens, refill_rate, clock=clock, sleep=fake_sleep), clock, sleeps


def test_bucket_starts_full_and_refills_over_time() -> None:
    bucket, clock, _ = _bucket(2, 1)

    assert bucket.try_consume() is True
    assert bucket.try_consume() is True
    assert bucket.try_consume() is False

    clock.advance(1.0)
    assert bucket.try_consume() is True
    assert bucket.try_consume() is False


def test_refill_never_exceeds_capacity() -> None:
    bucket, clock, _ = _bucket(3, 2)

    bucket.try_consume(3)
    clock.advance(100.0)

    assert bucket.available_tokens() == 3


def test_available_tokens_reports_whole_tokens() -> None:
    bucket, clock, _ = _bucket(5, 1)

    bucket.try_consume(5)
    clock.advance(1.5)

    assert bucket.available_tokens() == 1


def test_time_until_next_token() -> None:
    bucket, clock, _ = _bucket(1, 2)

    assert bucket.time_until_next_token() == 0.0
    bucket.try_consume()
    assert bucket.time_until_next_token() == pytest.approx(500.0)
    clock.advance(0.25)
    assert bucket.time_until_next_token() == pytest.approx(250.0)


def test_consume_waits_for_refill() -> None:
    bucket, _, sleeps = _bucket(1, 10)
    bucket.try_consume()

    asyncio.run(bucket.consume(max_wait_ms=1_000))

    assert sleeps, "consume should have polled at least once"
    assert all(delay == pytest.approx(0.1) for delay in sleeps)


def test_consume_times_out_when_wait_budget_is_exhausted() -> None:
    bucket, _, sleeps = _bucket(1, 0.1)
    bucket.try_consume()

    with pytest.raises(RateLimitTimeoutError):
        asyncio.run(bucket.consume(max_wait_ms=250))

    assert len(sleeps) == 3


def test_reset_refills_the_bucket() -> None:
    bucket, _, _ = _bucket(4, 1)
    bucket.try_consume(4)

    bucket.reset()

    assert bucket.available_tokens() == 4


@pytest.mark.parametrize(("max_tokens", "refill_rate"), [(0, 1), (-1, 1), (1, 0), (1, -0.5)])
def test_invalid_bucket_configuration(max_tokens: float, refill_rate: float) -> None:
    with pytest.raises(InvalidArgumentError):
        TokenBucket(max_tokens, refill_rate)


def test_registry_reuses_buckets_per_provider() -> None:
    registry = RateLimiterRegistry(default_max_tokens=2, default_refill_rate=1)

    first = registry.get_or_create("openai")
    again = registry.get_or_create("openai", max_tokens=50)
    other = registry.get_or_create("anthropic", max_tokens=5, refill_rate=0.5)

    assert first is again
    assert first.max_tokens == 2
    assert other.max_tokens == 5
    assert other.refill_rate == 0.5
    assert "openai" in registry
    assert len(registry) == 2


def test_registry_reset_and_clear() -> None:
    clock = _FakeClock()
    registry = RateLimiterRegistry(default_max_tokens=1, clock=clock)
    bucket = registry.get_or_create("openai")
    bucket.try_consume()

    registry.reset_all()
    assert bucket.try_consume() is True

    registry.clear_all()
    assert len(registry) == 0
    assert registry.get_or_create("openai") is not bucket
