from __future__ import annotations

import asyncio
import json
from typing import Any, Callable

import httpx
import pytest

from inkwell.services.backends import AnthropicAdapter, ExponentialBackoff, OpenAIAdapter, validate_base_url
from inkwell.services.backends.parsing import parse_diff_analysis, strip_code_fences
from inkwell.services.cache import ResponseCache
from inkwell.services.errors import (
    BackendParseError,
    BackendRequestError,
    BackendUnavailableError,
    InvalidCredentialError,
    MaxRetriesExceededError,
    ProviderConfigurationError,
    RateLimitTimeoutError,
)
from inkwell.services.models.backend import ReviewContext
from inkwell.services.rate_limiter import TokenBucket

REVIEW_PAYLOAD: dict[str, Any] = {
    "overall": "Solid draft.",
    "strengths": ["Vivid imagery"],
    "improvements": ["Trim adverbs"],
    "suggestions": [
        {
            "type": "style",
            "startLine": 0,
            "startColumn": 7,
            "endLine": 0,
            "endColumn": 16,
            "original": "very very",
            "suggested": "truly",
            "reason": "Repetition.",
        }
    ],
    "rating": 7.6,
}


def _openai_body(content: str) -> dict[str, Any]:
    return {
        "choices": [{"message": {"role": "assistant", "content": content}}],
        "usage": {"prompt_tokens": 100, "completion_tokens": 50, "total_tokens": 150},
    }


class _Recorder:
    """Mock transport handler replaying queued responses."""

    def __init__(self, *responses: httpx.Response) -> None:
        self._responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._responses.pop(0)


def _openai(
    handler: Callable[[httpx.Request], httpx.Response],
    sleeps: list[float],
    **kwargs: Any,
) -> OpenAIAdapter:
    async def fake_sleep(seconds: float) -> None:
        sleeps.append(seconds)

    return OpenAIAdapter(
        api_key="sk-test",
        transport=httpx.MockTransport(handler),
        sleep=fake_sleep,
        **kwargs,
    )


def _run_review(adapter: OpenAIAdapter | AnthropicAdapter, text: str = "It was very very good.") -> Any:
    async def scenario() -> Any:
        async with adapter:
            return await adapter.review_text(text, ReviewContext(file_path="notes.md"))

    return asyncio.run(scenario())


def test_exponential_backoff_bounds() -> None:
    backoff = ExponentialBackoff(multiplier=0.5, min_interval=0.5, max_interval=4.0)
    assert backoff.compute(1) == pytest.approx(0.5)
    assert backoff.compute(3) == pytest.approx(2.0)
    assert backoff.compute(6) == pytest.approx(4.0)


def test_review_text_strips_code_fences_and_reports_usage() -> None:
    fenced = "```json\n" + json.dumps(REVIEW_PAYLOAD) + "\n```"
    recorder = _Recorder(httpx.Response(200, json=_openai_body(fenced)))
    sleeps: list[float] = []

    result = _run_review(_openai(recorder, sleeps))

    assert result.data.overall == "Solid draft."
    assert result.data.suggestions[0].start_column == 7
    assert result.model == "gpt-4"
    assert result.token_usage.total_tokens == 150
    assert result.token_usage.estimated_cost_usd == pytest.approx(0.006)
    assert result.cached is False
    request = recorder.requests[0]
    assert str(request.url) == "https://api.openai.com/v1/chat/completions"
    assert request.headers["Authorization"] == "Bearer sk-test"
    body = json.loads(request.content)
    assert body["response_format"] == {"type": "json_object"}
    assert body["messages"][0]["role"] == "system"


def test_invalid_credential_is_not_retried() -> None:
    recorder = _Recorder(httpx.Response(401, json={"error": "bad key"}))
    sleeps: list[float] = []

    with pytest.raises(InvalidCredentialError):
        _run_review(_openai(recorder, sleeps))

    assert len(recorder.requests) == 1
    assert sleeps == []


def test_client_error_is_not_retried() -> None:
    recorder = _Recorder(httpx.Response(400, json={"error": "bad request"}))

    with pytest.raises(BackendRequestError):
        _run_review(_openai(recorder, []))

    assert len(recorder.requests) == 1


def test_rate_limited_request_is_retried_with_backoff() -> None:
    recorder = _Recorder(
        httpx.Response(429, json={"error": "slow down"}),
        httpx.Response(200, json=_openai_body(json.dumps(REVIEW_PAYLOAD))),
    )
    sleeps: list[float] = []

    result = _run_review(_openai(recorder, sleeps))

    assert result.data.rating == pytest.approx(7.6)
    assert len(recorder.requests) == 2
    assert sleeps == [1.0]


def test_server_errors_exhaust_attempts() -> None:
    recorder = _Recorder(*(httpx.Response(503, text="unavailable") for _ in range(3)))
    sleeps: list[float] = []

    with pytest.raises(MaxRetriesExceededError) as excinfo:
        _run_review(_openai(recorder, sleeps))

    assert len(recorder.requests) == 3
    assert sleeps == [1.0, 2.0]
    assert isinstance(excinfo.value.__cause__, BackendUnavailableError)


def test_network_failure_is_retryable() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if len(calls) == 1:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, json=_openai_body(json.dumps(REVIEW_PAYLOAD)))

    result = _run_review(_openai(handler, []))

    assert result.data.overall == "Solid draft."
    assert len(calls) == 2


def test_malformed_payload_is_a_parse_error_without_retry() -> None:
    recorder = _Recorder(httpx.Response(200, json=_openai_body("definitely not json")))

    with pytest.raises(BackendParseError):
        _run_review(_openai(recorder, []))

    assert len(recorder.requests) == 1


def test_cached_review_skips_the_network() -> None:
    recorder = _Recorder(httpx.Response(200, json=_openai_body(json.dumps(REVIEW_PAYLOAD))))
    cache = ResponseCache()
    adapter = _openai(recorder, [], cache=cache)

    async def scenario() -> tuple[Any, Any]:
        async with adapter:
            first = await adapter.review_text("same text")
            second = await adapter.review_text("same text")
            return first, second

    first, second = asyncio.run(scenario())

    assert first.cached is False
    assert second.cached is True
    assert second.data == first.data
    assert second.token_usage.total_tokens == 0
    assert len(recorder.requests) == 1
    assert cache.stats().hits == 1


def test_limiter_timeout_propagates_before_any_request() -> None:
    now = [0.0]

    async def advance(seconds: float) -> None:
        now[0] += seconds

    limiter = TokenBucket(1, 0.001, clock=lambda: now[0], sleep=advance)
    limiter.try_consume()
    recorder = _Recorder()
    adapter = _openai(recorder, [], limiter=limiter, rate_limit_max_wait_ms=200)

    with pytest.raises(RateLimitTimeoutError):
        _run_review(adapter)

    assert recorder.requests == []


def test_analyze_diff_recomputes_line_counts() -> None:
    diff_text = "--- a/notes.md\n+++ b/notes.md\n@@ -1 +1,2 @@\n-old\n+new\n+more\n"
    payload = {
        "summary": "Reworded the opening.",
        "additions": 40,
        "semanticChanges": [{"type": "modification", "description": "new", "lineNumber": 0}],
        "consistencyReport": {"score": 92, "issues": [], "suggestions": []},
    }
    recorder = _Recorder(httpx.Response(200, json=_openai_body(json.dumps(payload))))
    adapter = _openai(recorder, [])

    async def scenario() -> Any:
        async with adapter:
            return await adapter.analyze_diff(diff_text)

    result = asyncio.run(scenario())

    assert result.data.summary == "Reworded the opening."
    assert (result.data.additions, result.data.deletions, result.data.modifications) == (2, 1, 1)
    assert result.data.semantic_changes[0].type == "modification"
    assert result.data.consistency_report.score == 92


def test_anthropic_adapter_resolves_aliases_and_headers() -> None:
    content = {"content": [{"type": "text", "text": json.dumps(REVIEW_PAYLOAD)}], "usage": {"input_tokens": 10, "output_tokens": 5}}
    recorder = _Recorder(httpx.Response(200, json=content))
    adapter = AnthropicAdapter(
        api_key="sk-ant-test",
        model="claude-3-opus",
        base_url="https://proxy.example.com/v1/",
        transport=httpx.MockTransport(recorder),
    )

    result = _run_review(adapter)

    assert adapter.model == "claude-3-opus-20240229"
    assert result.model == "claude-3-opus-20240229"
    assert result.token_usage.total_tokens == 15
    request = recorder.requests[0]
    assert str(request.url) == "https://proxy.example.com/v1/messages"
    assert request.headers["x-api-key"] == "sk-ant-test"
    assert request.headers["anthropic-version"] == "2023-06-01"
    assert json.loads(request.content)["max_tokens"] == 4096


def test_openai_base_url_gains_version_suffix() -> None:
    adapter = OpenAIAdapter(api_key="sk-test", base_url="http://localhost:8080/")

    assert adapter.base_url == "http://localhost:8080/v1"
    asyncio.run(adapter.aclose())


@pytest.mark.parametrize("url", ["http://api.example.com", "ftp://example.com", "not a url"])
def test_validate_base_url_rejects_insecure_or_invalid(url: str) -> None:
    with pytest.raises(ProviderConfigurationError):
        validate_base_url(url)


def test_validate_base_url_accepts_loopback_http() -> None:
    assert validate_base_url("http://127.0.0.1:11434/") == "http://127.0.0.1:11434"


def test_blank_api_key_is_a_configuration_error() -> None:
    with pytest.raises(ProviderConfigurationError):
        OpenAIAdapter(api_key="  ")


def test_strip_code_fences_variants() -> None:
    assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fences('```\n{"a": 1}```') == '{"a": 1}'
    assert strip_code_fences('  {"a": 1}  ') == '{"a": 1}'


def test_parse_diff_analysis_defaults_missing_fields() -> None:
    analysis = parse_diff_analysis("{}", "+added\n")

    assert analysis.summary == "No significant changes."
    assert analysis.additions == 1
    assert analysis.consistency_report.score == 80.0
