"""Anthropic Messages API adapter."""

from __future__ import annotations

from typing import Any, ClassVar, Final, Mapping

from ..errors import BackendParseError
from .base import BackendAdapter, Completion
from .prompts import SYSTEM_PROMPT

ANTHROPIC_API_VERSION: Final[str] = "2023-06-01"
MAX_OUTPUT_TOKENS: Final[int] = 4096

MODEL_ALIASES: Mapping[str, str] = {
    "claude-3-opus": "claude-3-opus-20240229",
    "claude-3-sonnet": "claude-3-sonnet-20240229",
    "claude-3-haiku": "claude-3-haiku-20240307",
}

# USD per token (input, output).
ANTHROPIC_PRICING: Mapping[str, tuple[float, float]] = {
    "claude-3-opus-20240229": (0.000015, 0.000075),
    "claude-3-sonnet-20240229": (0.000003, 0.000015),
    "claude-3-haiku-20240307": (0.00000025, 0.00000125),
}


class AnthropicAdapter(BackendAdapter):
    provider: ClassVar[str] = "anthropic"
    default_base_url: ClassVar[str] = "https://api.anthropic.com"
    default_model: ClassVar[str] = "claude-3-sonnet-20240229"
    pricing: ClassVar[Mapping[str, tuple[float, float]]] = ANTHROPIC_PRICING

    def _resolve_model(self, model: str | None) -> str:
        if not model:
            return self.default_model
        return MODEL_ALIASES.get(model, model)

    def _normalize_base_url(self, base_url: str) -> str:
        # Requests always target "/v1/messages"; drop a duplicated version suffix.
        return base_url[: -len("/v1")] if base_url.endswith("/v1") else base_url

    def _build_request(self, prompt: str) -> tuple[str, dict[str, str], dict[str, Any]]:
        headers = {
            "x-api-key": self._api_key,
            "anthropic-version": ANTHROPIC_API_VERSION,
        }
        body = {
            "model": self._model,
            "max_tokens": MAX_OUTPUT_TOKENS,
            "temperature": 0.3,
            "system": SYSTEM_PROMPT,
            "messages": [{"role": "user", "content": prompt}],
        }
        return "/v1/messages", headers, body

    def _extract_completion(self, payload: dict[str, Any]) -> Completion:
        blocks = payload.get("content")
        if not isinstance(blocks, list):
            raise BackendParseError("Messages response has no content blocks.")
        text = "".join(
            block.get("text", "")
            for block in blocks
            if isinstance(block, dict) and block.get("type") == "text"
        )
        if not text.strip():
            raise BackendParseError("Messages response contains no text content.")

        usage = payload.get("usage") or {}
        input_tokens = int(usage.get("input_tokens") or 0)
        output_tokens = int(usage.get("output_tokens") or 0)
        return Completion(content=text, usage=self._usage(input_tokens, output_tokens, None))


__all__ = ["ANTHROPIC_PRICING", "AnthropicAdapter", "MODEL_ALIASES"]
