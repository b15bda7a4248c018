from __future__ import annotations

import pytest

from inkwell.services.cache import ResponseCache
from inkwell.services.providers import AnthropicProviderConfig, OfflineProviderConfig, OpenAIProviderConfig
from inkwell.services.settings import Settings


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "INKWELL_PROVIDER",
        "AI_PROVIDER",
        "INKWELL_OPENAI_API_KEY",
        "OPENAI_API_KEY",
        "INKWELL_BASE_URL",
        "OPENAI_BASE_URL",
        "INKWELL_MAX_ATTEMPTS",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults_are_offline() -> None:
    settings = Settings(_env_file=None)

    assert settings.provider == "offline"
    assert isinstance(settings.provider_config(), OfflineProviderConfig)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("Claude", "anthropic"), ("deepseek", "openai"), (" OPENAI ", "openai"), ("none", "offline")],
)
def test_provider_synonyms(monkeypatch: pytest.MonkeyPatch, raw: str, expected: str) -> None:
    monkeypatch.setenv("AI_PROVIDER", raw)

    assert Settings(_env_file=None).provider == expected


def test_environment_drives_provider_config(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("INKWELL_PROVIDER", "openai")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
    monkeypatch.setenv("OPENAI_BASE_URL", "https://gateway.example.com")

    settings = Settings(_env_file=None)
    config = settings.provider_config()

    assert isinstance(config, OpenAIProviderConfig)
    assert config.base_url == "https://gateway.example.com"
    assert settings.openai_api_key == "sk-env"


def test_blank_values_become_none() -> None:
    settings = Settings(_env_file=None, provider="anthropic", anthropic_api_key="   ", base_url="")

    assert settings.anthropic_api_key is None
    config = settings.provider_config()
    assert isinstance(config, AnthropicProviderConfig)
    assert config.base_url is None


def test_backend_tuning_builds_cache_and_accepts_overrides() -> None:
    settings = Settings(_env_file=None, cache_enabled=False, max_attempts=5)

    tuning = settings.backend_tuning(timeout_seconds=5.0)

    assert tuning.max_attempts == 5
    assert tuning.timeout_seconds == 5.0
    assert isinstance(tuning.cache, ResponseCache)
    assert tuning.cache.enabled is False


def test_invalid_attempts_are_rejected() -> None:
    with pytest.raises(ValueError):
        Settings(_env_file=None, max_attempts=0)
