"""Backend adapter base class with retry, admission control, and caching."""

from __future__ import annotations

import abc
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, ClassVar, Mapping, TypeVar

import httpx

from ..cache import ResponseCache, make_cache_key
from ..errors import (
    BackendError,
    BackendParseError,
    BackendRequestError,
    BackendUnavailableError,
    InvalidCredentialError,
    MaxRetriesExceededError,
    ProviderConfigurationError,
    RateLimitedError,
)
from ..models.analysis import DiffAnalysis
from ..models.backend import BackendResult, RawCritique, ReviewContext, TokenUsage
from ..rate_limiter import DEFAULT_MAX_WAIT_MS, TokenBucket
from .parsing import parse_diff_analysis, parse_text_review
from .prompts import build_diff_prompt, build_review_prompt

LOGGER = logging.getLogger("inkwell.services.backends")

LOCAL_HOSTS = frozenset({"localhost", "127.0.0.1", "::1"})
DEFAULT_TIMEOUT_SECONDS = 60.0

T = TypeVar("T")


@dataclass(frozen=True)
class ExponentialBackoff:
    """Configuration for exponential backoff timing."""

    multiplier: float = 1.0
    min_interval: float = 1.0
    max_interval: float = 8.0

    def compute(self, attempt: int) -> float:
        """Return the delay before the next attempt."""

        delay = self.multiplier * (2 ** (attempt - 1))
        bounded = max(self.min_interval, delay)
        return min(self.max_interval, bounded)


@dataclass(frozen=True)
class Completion:
    content: str
    usage: TokenUsage


def validate_base_url(base_url: str) -> str:
    """Return ``base_url`` without a trailing slash, rejecting insecure hosts.

    Plain HTTP is only accepted for loopback hosts.
    """

    candidate = base_url.strip().rstrip("/")
    try:
        url = httpx.URL(candidate)
    except httpx.InvalidURL as exc:
        raise ProviderConfigurationError(
            f"Invalid backend base URL: {base_url!r}.", details={"base_url": base_url}
        ) from exc
    if url.scheme not in {"http", "https"} or not url.host:
        raise ProviderConfigurationError(
            "Backend base URL must be an absolute http(s) URL.",
            details={"base_url": base_url},
        )
    if url.scheme != "https" and url.host not in LOCAL_HOSTS:
        raise ProviderConfigurationError(
            "Backend base URL must use HTTPS unless it targets localhost.",
            details={"base_url": base_url},
        )
    return candidate


def raise_for_status(response: httpx.Response) -> None:
    """Map an HTTP error response onto the backend error taxonomy."""

    status = response.status_code
    if status < 400:
        return
    details = {"status_code": status, "body": response.text[:500]}
    if status in (401, 403):
        raise InvalidCredentialError("Invalid API key.", status_code=status, details=details)
    if status == 429:
        raise RateLimitedError("Backend rate limit exceeded.", status_code=status, details=details)
    if status >= 500:
        raise BackendUnavailableError(
            f"Backend returned HTTP {status}.", status_code=status, details=details
        )
    raise BackendRequestError(
        f"Backend rejected the request with HTTP {status}.", status_code=status, details=details
    )


class BackendAdapter(abc.ABC):
    """Abstract reasoning backend speaking JSON over HTTP."""

    provider: ClassVar[str]
    default_base_url: ClassVar[str]
    default_model: ClassVar[str]
    pricing: ClassVar[Mapping[str, tuple[float, float]]] = {}

    def __init__(
        self,
        *,
        api_key: str,
        model: str | None = None,
        base_url: str | None = None,
        limiter: TokenBucket | None = None,
        cache: ResponseCache | None = None,
        max_attempts: int = 3,
        backoff: ExponentialBackoff | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        rate_limit_max_wait_ms: float = DEFAULT_MAX_WAIT_MS,
        sleep: Callable[[float], Awaitable[None]] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not api_key or not api_key.strip():
            raise ProviderConfigurationError(f"{self.provider} API key is required.")
        if max_attempts <= 0:
            raise ProviderConfigurationError("max_attempts must be greater than zero.")
        self._api_key = api_key.strip()
        self._model = self._resolve_model(model)
        self._base_url = (
            self._normalize_base_url(validate_base_url(base_url))
            if base_url
            else self.default_base_url
        )
        self._limiter = limiter
        self._cache = cache
        self._max_attempts = max_attempts
        self._backoff = backoff or ExponentialBackoff()
        self._rate_limit_max_wait_ms = rate_limit_max_wait_ms
        self._sleep = sleep or asyncio.sleep
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=timeout_seconds,
            transport=transport,
        )

    @property
    def model(self) -> str:
        return self._model

    @property
    def base_url(self) -> str:
        return self._base_url

    # Public operations -------------------------------------------------

    async def review_text(
        self, text: str, context: ReviewContext | None = None
    ) -> BackendResult[RawCritique]:
        """Ask the backend to critique ``text``."""

        key = make_cache_key(
            operation="text-review",
            content=text,
            params=self._cache_params(context),
        )
        cached = self._cache_lookup(key, RawCritique)
        if cached is not None:
            return cached

        prompt = build_review_prompt(text, context)
        completion = await self._call_with_retries(
            lambda: self._complete_once(prompt), label="text-review"
        )
        critique = parse_text_review(completion.content)
        self._cache_store(key, critique)
        return BackendResult(data=critique, model=self._model, token_usage=completion.usage)

    async def analyze_diff(
        self, diff_text: str, context: ReviewContext | None = None
    ) -> BackendResult[DiffAnalysis]:
        """Ask the backend for a semantic analysis of a unified diff."""

        key = make_cache_key(
            operation="diff-analysis",
            content=diff_text,
            params=self._cache_params(context),
        )
        cached = self._cache_lookup(key, DiffAnalysis)
        if cached is not None:
            return cached

        prompt = build_diff_prompt(diff_text, context)
        completion = await self._call_with_retries(
            lambda: self._complete_once(prompt), label="diff-analysis"
        )
        analysis = parse_diff_analysis(completion.content, diff_text)
        self._cache_store(key, analysis)
        return BackendResult(data=analysis, model=self._model, token_usage=completion.usage)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "BackendAdapter":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    def estimate_cost(self, prompt_tokens: int, completion_tokens: int) -> float:
        prices = self.pricing.get(self._model) or self.pricing.get(self.default_model)
        if prices is None:
            return 0.0
        input_price, output_price = prices
        return prompt_tokens * input_price + completion_tokens * output_price

    # Provider hooks ----------------------------------------------------

    @abc.abstractmethod
    def _build_request(self, prompt: str) -> tuple[str, dict[str, str], dict[str, Any]]:
        """Return the request path, headers, and JSON body for ``prompt``."""

    @abc.abstractmethod
    def _extract_completion(self, payload: dict[str, Any]) -> Completion:
        """Pull the generated text and token usage out of a response body."""

    def _resolve_model(self, model: str | None) -> str:
        return model or self.default_model

    def _normalize_base_url(self, base_url: str) -> str:
        return base_url

    # Internal helpers --------------------------------------------------

    async def _complete_once(self, prompt: str) -> Completion:
        path, headers, body = self._build_request(prompt)
        try:
            response = await self._client.post(path, headers=headers, json=body)
        except httpx.TimeoutException as exc:
            raise BackendUnavailableError("Backend request timed out.", cause=exc) from exc
        except httpx.TransportError as exc:
            raise BackendUnavailableError(
                f"Backend request failed: {exc.__class__.__name__}.", cause=exc
            ) from exc
        raise_for_status(response)
        try:
            payload = response.json()
        except ValueError as exc:
            raise BackendParseError("Backend response body is not JSON.", cause=exc) from exc
        if not isinstance(payload, dict):
            raise BackendParseError("Backend response body must be a JSON object.")
        return self._extract_completion(payload)

    async def _call_with_retries(
        self, operation: Callable[[], Awaitable[T]], *, label: str
    ) -> T:
        last_error: BackendError | None = None
        for attempt in range(1, self._max_attempts + 1):
            if self._limiter is not None:
                await self._limiter.consume(max_wait_ms=self._rate_limit_max_wait_ms)
            try:
                return await operation()
            except BackendError as exc:
                if not exc.retryable:
                    raise
                last_error = exc
                self._log_retry(label, attempt, exc)
                if attempt >= self._max_attempts:
                    break
                await self._sleep(max(0.0, self._backoff.compute(attempt)))

        LOGGER.error(
            "backend.failure",
            extra={
                "extra_payload": {
                    "provider": self.provider,
                    "operation": label,
                    "attempts": self._max_attempts,
                    "error": str(last_error),
                }
            },
        )
        raise MaxRetriesExceededError(
            f"Failed after {self._max_attempts} attempts.",
            cause=last_error,
            details={"operation": label, "attempts": self._max_attempts},
        ) from last_error

    def _log_retry(self, label: str, attempt: int, error: BackendError) -> None:
        LOGGER.warning(
            "backend.retry",
            extra={
                "extra_payload": {
                    "provider": self.provider,
                    "operation": label,
                    "attempt": attempt,
                    "max_attempts": self._max_attempts,
                    "code": error.code,
                    "status_code": error.status_code,
                }
            },
        )

    def _usage(self, prompt_tokens: int, completion_tokens: int, total_tokens: int | None) -> TokenUsage:
        return TokenUsage(
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=total_tokens if total_tokens is not None else prompt_tokens + completion_tokens,
            estimated_cost_usd=self.estimate_cost(prompt_tokens, completion_tokens),
        )

    def _cache_params(self, context: ReviewContext | None) -> dict[str, Any]:
        return {
            "provider": self.provider,
            "model": self._model,
            "context": context.model_dump() if context is not None else None,
        }

    def _cache_lookup(self, key: str, expected: type[T]) -> BackendResult[T] | None:
        if self._cache is None:
            return None
        hit = self._cache.get(key)
        if not isinstance(hit, expected):
            return None
        LOGGER.debug(
            "backend.cache_hit",
            extra={"extra_payload": {"provider": self.provider, "key": key[:16]}},
        )
        return BackendResult(data=hit, model=self._model, token_usage=TokenUsage(), cached=True)

    def _cache_store(self, key: str, value: Any) -> None:
        if self._cache is not None:
            self._cache.set(key, value)


__all__ = [
    "BackendAdapter",
    "Completion",
    "ExponentialBackoff",
    "LOCAL_HOSTS",
    "raise_for_status",
    "validate_base_url",
]
