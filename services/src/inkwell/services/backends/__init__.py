"""Reasoning backend adapters."""

from .anthropic import AnthropicAdapter
from .base import BackendAdapter, ExponentialBackoff, validate_base_url
from .openai import OpenAIAdapter

__all__ = [
    "AnthropicAdapter",
    "BackendAdapter",
    "ExponentialBackoff",
    "OpenAIAdapter",
    "validate_base_url",
]
