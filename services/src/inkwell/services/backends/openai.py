"""OpenAI-compatible chat completions adapter."""

from __future__ import annotations

from typing import Any, ClassVar, Mapping

from ..errors import BackendParseError
from .base import BackendAdapter, Completion
from .prompts import SYSTEM_PROMPT

# USD per token (input, output).
OPENAI_PRICING: Mapping[str, tuple[float, float]] = {
    "gpt-4": (0.00003, 0.00006),
    "gpt-4-turbo": (0.00001, 0.00003),
    "gpt-3.5-turbo": (0.0000015, 0.000002),
}


class OpenAIAdapter(BackendAdapter):
    """Adapter for OpenAI and OpenAI-compatible hosts (DeepSeek, local gateways)."""

    provider: ClassVar[str] = "openai"
    default_base_url: ClassVar[str] = "https://api.openai.com/v1"
    default_model: ClassVar[str] = "gpt-4"
    pricing: ClassVar[Mapping[str, tuple[float, float]]] = OPENAI_PRICING

    temperature: ClassVar[float] = 0.3

    def _normalize_base_url(self, base_url: str) -> str:
        return base_url if base_url.endswith("/v1") else f"{base_url}/v1"

    def _build_request(self, prompt: str) -> tuple[str, dict[str, str], dict[str, Any]]:
        headers = {"Authorization": f"Bearer {self._api_key}"}
        body = {
            "model": self._model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "temperature": self.temperature,
            "response_format": {"type": "json_object"},
        }
        return "chat/completions", headers, body

    def _extract_completion(self, payload: dict[str, Any]) -> Completion:
        try:
            content = payload["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise BackendParseError("Chat completion response has no message content.", cause=exc) from exc
        if not isinstance(content, str) or not content.strip():
            raise BackendParseError("Chat completion response content is empty.")

        usage = payload.get("usage") or {}
        prompt_tokens = int(usage.get("prompt_tokens") or 0)
        completion_tokens = int(usage.get("completion_tokens") or 0)
        total = usage.get("total_tokens")
        return Completion(
            content=content,
            usage=self._usage(prompt_tokens, completion_tokens, int(total) if total is not None else None),
        )


__all__ = ["OPENAI_PRICING", "OpenAIAdapter"]
