"""Pydantic settings for backend selection, credentials, and request shaping."""

from __future__ import annotations

from functools import lru_cache
from typing import ClassVar, Literal, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .backends import ExponentialBackoff
from .cache import DEFAULT_MAX_BYTES, DEFAULT_TTL_SECONDS, ResponseCache
from .models.backend import WritingStyle
from .providers import (
    AnthropicProviderConfig,
    BackendTuning,
    OfflineProviderConfig,
    OpenAIProviderConfig,
    ProviderConfig,
)

ProviderKind = Literal["openai", "anthropic", "offline"]
VALID_PROVIDERS: tuple[ProviderKind, ...] = ("openai", "anthropic", "offline")
_PROVIDER_SYNONYMS = {"claude": "anthropic", "deepseek": "openai", "none": "offline"}


class Settings(BaseSettings):
    """Backend configuration read from the environment or a ``.env`` file."""

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    provider: ProviderKind = Field(
        default="offline",
        validation_alias=AliasChoices("INKWELL_PROVIDER", "AI_PROVIDER"),
    )
    openai_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("INKWELL_OPENAI_API_KEY", "OPENAI_API_KEY"),
    )
    anthropic_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("INKWELL_ANTHROPIC_API_KEY", "ANTHROPIC_API_KEY"),
    )
    openai_model: str = Field(
        default="gpt-4",
        validation_alias=AliasChoices("INKWELL_OPENAI_MODEL", "OPENAI_MODEL"),
    )
    anthropic_model: str = Field(
        default="claude-3-sonnet",
        validation_alias=AliasChoices("INKWELL_ANTHROPIC_MODEL", "ANTHROPIC_MODEL"),
    )
    base_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("INKWELL_BASE_URL", "OPENAI_BASE_URL"),
    )
    request_timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        validation_alias=AliasChoices("INKWELL_REQUEST_TIMEOUT_SECONDS", "REQUEST_TIMEOUT_SECONDS"),
    )
    max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        validation_alias=AliasChoices("INKWELL_MAX_ATTEMPTS"),
    )
    cache_enabled: bool = Field(
        default=True,
        validation_alias=AliasChoices("INKWELL_CACHE_ENABLED"),
    )
    cache_ttl_seconds: float = Field(
        default=DEFAULT_TTL_SECONDS,
        gt=0,
        validation_alias=AliasChoices("INKWELL_CACHE_TTL_SECONDS"),
    )
    cache_max_bytes: int = Field(
        default=DEFAULT_MAX_BYTES,
        gt=0,
        validation_alias=AliasChoices("INKWELL_CACHE_MAX_BYTES"),
    )
    rate_limit_max_tokens: float = Field(
        default=10,
        gt=0,
        validation_alias=AliasChoices("INKWELL_RATE_LIMIT_MAX_TOKENS"),
    )
    rate_limit_refill_per_second: float = Field(
        default=1.0,
        gt=0,
        validation_alias=AliasChoices("INKWELL_RATE_LIMIT_REFILL_PER_SECOND"),
    )
    rate_limit_max_wait_ms: float = Field(
        default=30_000,
        ge=0,
        validation_alias=AliasChoices("INKWELL_RATE_LIMIT_MAX_WAIT_MS"),
    )
    writing_style: WritingStyle = Field(
        default="formal",
        validation_alias=AliasChoices("INKWELL_WRITING_STYLE"),
    )

    @field_validator("provider", mode="before")
    @classmethod
    def _normalise_provider(cls, value: object) -> ProviderKind | object:
        """Normalise provider strings and common vendor synonyms."""

        if isinstance(value, str):
            candidate = value.strip().lower()
            candidate = _PROVIDER_SYNONYMS.get(candidate, candidate)
            if candidate in VALID_PROVIDERS:
                return candidate
        return value

    @field_validator("base_url", "openai_api_key", "anthropic_api_key", mode="before")
    @classmethod
    def _blank_to_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    def provider_config(self) -> ProviderConfig:
        if self.provider == "openai":
            return OpenAIProviderConfig(model=self.openai_model, base_url=self.base_url)
        if self.provider == "anthropic":
            return AnthropicProviderConfig(model=self.anthropic_model, base_url=self.base_url)
        return OfflineProviderConfig()

    def backend_tuning(self, **overrides: object) -> BackendTuning:
        """Build adapter tuning; keyword overrides replace individual fields."""

        values: dict[str, object] = {
            "timeout_seconds": self.request_timeout_seconds,
            "max_attempts": self.max_attempts,
            "backoff": ExponentialBackoff(),
            "rate_limit_max_tokens": self.rate_limit_max_tokens,
            "rate_limit_refill_per_second": self.rate_limit_refill_per_second,
            "rate_limit_max_wait_ms": self.rate_limit_max_wait_ms,
            "cache": ResponseCache(
                enabled=self.cache_enabled,
                ttl_seconds=self.cache_ttl_seconds,
                max_bytes=self.cache_max_bytes,
            ),
        }
        values.update(overrides)
        return BackendTuning(**values)  # type: ignore[arg-type]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()


__all__ = ["ProviderKind", "Settings", "get_settings"]
