"""Token-bucket admission control for outbound backend calls."""

from __future__ import annotations

import asyncio
import logging
import math
import time
from typing import Awaitable, Callable

from .errors import InvalidArgumentError, RateLimitTimeoutError

LOGGER = logging.getLogger("inkwell.services.rate_limiter")

POLL_INTERVAL_MS = 100.0
DEFAULT_MAX_WAIT_MS = 30_000.0

__all__ = [
    "POLL_INTERVAL_MS",
    "DEFAULT_MAX_WAIT_MS",
    "TokenBucket",
    "RateLimiterRegistry",
]


class TokenBucket:
    """Continuously refilling token bucket.

    Tokens are refilled lazily from the elapsed clock time whenever the bucket
    is inspected; there is no background timer.
    """

    def __init__(
        self,
        max_tokens: float,
        refill_rate: float,
        *,
        clock: Callable[[], float] | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        if max_tokens <= 0:
            raise InvalidArgumentError("max_tokens must be greater than zero.")
        if refill_rate <= 0:
            raise InvalidArgumentError("refill_rate must be greater than zero.")
        self._max_tokens = float(max_tokens)
        self._refill_rate = float(refill_rate)
        self._clock = clock or time.monotonic
        self._sleep = sleep or asyncio.sleep
        self._tokens = self._max_tokens
        self._last_refill = self._clock()

    @property
    def max_tokens(self) -> float:
        return self._max_tokens

    @property
    def refill_rate(self) -> float:
        return self._refill_rate

    def _refill(self) -> None:
        now = self._clock()
        elapsed = max(0.0, now - self._last_refill)
        self._tokens = min(self._max_tokens, self._tokens + elapsed * self._refill_rate)
        self._last_refill = now

    def try_consume(self, tokens: float = 1) -> bool:
        """Consume ``tokens`` if available and report whether it happened."""

        self._refill()
        if self._tokens >= tokens:
            self._tokens -= tokens
            return True
        return False

    async def consume(self, tokens: float = 1, max_wait_ms: float = DEFAULT_MAX_WAIT_MS) -> None:
        """Wait until ``tokens`` can be consumed or ``max_wait_ms`` elapses."""

        started = self._clock()
        while not self.try_consume(tokens):
            waited_ms = (self._clock() - started) * 1000.0
            if waited_ms > max_wait_ms:
                LOGGER.warning(
                    "rate_limit.timeout",
                    extra={
                        "extra_payload": {
                            "tokens": tokens,
                            "max_wait_ms": max_wait_ms,
                            "waited_ms": round(waited_ms, 1),
                        }
                    },
                )
                raise RateLimitTimeoutError(
                    "Rate limit: maximum wait time exceeded.",
                    details={"max_wait_ms": max_wait_ms},
                )
            await self._sleep(POLL_INTERVAL_MS / 1000.0)

    def available_tokens(self) -> int:
        self._refill()
        return math.floor(self._tokens)

    def time_until_next_token(self) -> float:
        """Return milliseconds until at least one whole token is available."""

        self._refill()
        if self._tokens >= 1:
            return 0.0
        return (1 - self._tokens) / self._refill_rate * 1000.0

    def reset(self) -> None:
        self._tokens = self._max_tokens
        self._last_refill = self._clock()


class RateLimiterRegistry:
    """Buckets keyed by provider identity, created lazily and reused."""

    def __init__(
        self,
        *,
        default_max_tokens: float = 10,
        default_refill_rate: float = 1.0,
        clock: Callable[[], float] | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        self._default_max_tokens = default_max_tokens
        self._default_refill_rate = default_refill_rate
        self._clock = clock
        self._sleep = sleep
        self._limiters: dict[str, TokenBucket] = {}

    def get_or_create(
        self,
        provider: str,
        *,
        max_tokens: float | None = None,
        refill_rate: float | None = None,
    ) -> TokenBucket:
        limiter = self._limiters.get(provider)
        if limiter is None:
            limiter = TokenBucket(
                max_tokens if max_tokens is not None else self._default_max_tokens,
                refill_rate if refill_rate is not None else self._default_refill_rate,
                clock=self._clock,
                sleep=self._sleep,
            )
            self._limiters[provider] = limiter
            LOGGER.debug(
                "rate_limit.created",
                extra={
                    "extra_payload": {
                        "provider": provider,
                        "max_tokens": limiter.max_tokens,
                        "refill_rate": limiter.refill_rate,
                    }
                },
            )
        return limiter

    def reset_all(self) -> None:
        for limiter in self._limiters.values():
            limiter.reset()

    def clear_all(self) -> None:
        self._limiters.clear()

    def __contains__(self, provider: object) -> bool:
        return provider in self._limiters

    def __len__(self) -> int:
        return len(self._limiters)
