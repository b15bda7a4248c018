"""Review synthesis, suggestion application, and backend request shaping."""

from __future__ import annotations

from .applicator import SuggestionApplicator
from .documents import FileDocument, InMemoryDocument, TextDocument, TextRange
from .providers import (
    AnthropicProviderConfig,
    InMemoryCredentialStore,
    OfflineProviderConfig,
    OpenAIProviderConfig,
    initialize_backend,
    resolve_backend,
)
from .rate_limiter import RateLimiterRegistry, TokenBucket
from .review_store import ReviewLedger
from .synthesizer import ReviewSynthesizer

__all__ = [
    "AnthropicProviderConfig",
    "FileDocument",
    "InMemoryCredentialStore",
    "InMemoryDocument",
    "OfflineProviderConfig",
    "OpenAIProviderConfig",
    "RateLimiterRegistry",
    "ReviewLedger",
    "ReviewSynthesizer",
    "SuggestionApplicator",
    "TextDocument",
    "TextRange",
    "TokenBucket",
    "initialize_backend",
    "resolve_backend",
]
