"""Provider selection, credential lookup, and backend adapter construction."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Annotated, Any, Awaitable, Callable, ClassVar, Literal, Mapping, Protocol, Union

import httpx
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from .backends import AnthropicAdapter, BackendAdapter, ExponentialBackoff, OpenAIAdapter
from .cache import ResponseCache
from .errors import CredentialMissingError, InkwellError, ProviderConfigurationError
from .rate_limiter import DEFAULT_MAX_WAIT_MS, RateLimiterRegistry

if TYPE_CHECKING:
    from .settings import Settings

LOGGER = logging.getLogger("inkwell.services.providers")


class OpenAIProviderConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    credential_key: ClassVar[str] = "openai_api_key"

    kind: Literal["openai"] = "openai"
    model: str = OpenAIAdapter.default_model
    base_url: str | None = None


class AnthropicProviderConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    credential_key: ClassVar[str] = "anthropic_api_key"

    kind: Literal["anthropic"] = "anthropic"
    model: str = "claude-3-sonnet"
    base_url: str | None = None


class OfflineProviderConfig(BaseModel):
    """No backend; every review uses the rule-based critique."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    credential_key: ClassVar[str | None] = None

    kind: Literal["offline"] = "offline"


ProviderConfig = Annotated[
    Union[OpenAIProviderConfig, AnthropicProviderConfig, OfflineProviderConfig],
    Field(discriminator="kind"),
]
_PROVIDER_CONFIG_ADAPTER: TypeAdapter[Any] = TypeAdapter(ProviderConfig)

_ADAPTER_TYPES: dict[str, type[BackendAdapter]] = {
    "openai": OpenAIAdapter,
    "anthropic": AnthropicAdapter,
}


def parse_provider_config(data: Mapping[str, Any]) -> ProviderConfig:
    """Validate a mapping such as ``{"kind": "openai", "model": "gpt-4"}``."""

    return _PROVIDER_CONFIG_ADAPTER.validate_python(dict(data))


class CredentialStore(Protocol):
    async def get(self, key: str) -> str | None: ...


class InMemoryCredentialStore:
    """Dictionary-backed credential store."""

    def __init__(self, values: Mapping[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(values or {})

    async def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def delete(self, key: str) -> None:
        self._values.pop(key, None)


class SettingsCredentialStore:
    """Expose API keys loaded by :class:`Settings` (environment or ``.env``)."""

    _KEYS: ClassVar[frozenset[str]] = frozenset({"openai_api_key", "anthropic_api_key"})

    def __init__(self, settings: "Settings") -> None:
        self._settings = settings

    async def get(self, key: str) -> str | None:
        if key not in self._KEYS:
            return None
        value = getattr(self._settings, key, None)
        return value if isinstance(value, str) else None


@dataclass(frozen=True)
class BackendTuning:
    """Retry, timeout, cache, and admission settings handed to adapters."""

    timeout_seconds: float = 60.0
    max_attempts: int = 3
    backoff: ExponentialBackoff = field(default_factory=ExponentialBackoff)
    rate_limit_max_tokens: float = 10
    rate_limit_refill_per_second: float = 1.0
    rate_limit_max_wait_ms: float = DEFAULT_MAX_WAIT_MS
    cache: ResponseCache | None = None
    sleep: Callable[[float], Awaitable[None]] | None = None
    transport: httpx.AsyncBaseTransport | None = None


@dataclass(frozen=True)
class ProviderInit:
    """Outcome of backend initialization; ``adapter`` is ``None`` when offline."""

    adapter: BackendAdapter | None = None
    error: InkwellError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def _fetch_secret(config: ProviderConfig, credentials: CredentialStore) -> str | None:
    key = config.credential_key
    if key is None:
        return None
    secret = await credentials.get(key)
    if secret is None or not secret.strip():
        return None
    return secret.strip()


def _build_adapter(
    config: OpenAIProviderConfig | AnthropicProviderConfig,
    secret: str,
    *,
    limiters: RateLimiterRegistry,
    tuning: BackendTuning,
) -> BackendAdapter:
    adapter_type = _ADAPTER_TYPES[config.kind]
    limiter = limiters.get_or_create(
        config.kind,
        max_tokens=tuning.rate_limit_max_tokens,
        refill_rate=tuning.rate_limit_refill_per_second,
    )
    return adapter_type(
        api_key=secret,
        model=config.model,
        base_url=config.base_url,
        limiter=limiter,
        cache=tuning.cache,
        max_attempts=tuning.max_attempts,
        backoff=tuning.backoff,
        timeout_seconds=tuning.timeout_seconds,
        rate_limit_max_wait_ms=tuning.rate_limit_max_wait_ms,
        sleep=tuning.sleep,
        transport=tuning.transport,
    )


async def resolve_backend(
    config: ProviderConfig,
    credentials: CredentialStore,
    *,
    limiters: RateLimiterRegistry,
    tuning: BackendTuning | None = None,
) -> BackendAdapter | None:
    """Return a ready adapter, or ``None`` when running without a backend.

    Configuration errors raised by the adapter (for example an insecure base
    URL) propagate to the caller.
    """

    if isinstance(config, OfflineProviderConfig):
        return None
    secret = await _fetch_secret(config, credentials)
    if secret is None:
        LOGGER.info(
            "provider.credential_missing",
            extra={"extra_payload": {"provider": config.kind, "key": config.credential_key}},
        )
        return None
    return _build_adapter(config, secret, limiters=limiters, tuning=tuning or BackendTuning())


async def initialize_backend(
    config: ProviderConfig,
    credentials: CredentialStore,
    *,
    limiters: RateLimiterRegistry,
    tuning: BackendTuning | None = None,
) -> ProviderInit:
    """Like :func:`resolve_backend` but reports failures in the result."""

    if isinstance(config, OfflineProviderConfig):
        return ProviderInit()
    secret = await _fetch_secret(config, credentials)
    if secret is None:
        return ProviderInit(
            error=CredentialMissingError(
                f"No credential stored for provider '{config.kind}'.",
                details={"provider": config.kind, "key": config.credential_key},
            )
        )
    try:
        adapter = _build_adapter(config, secret, limiters=limiters, tuning=tuning or BackendTuning())
    except ProviderConfigurationError as exc:
        return ProviderInit(error=exc)
    return ProviderInit(adapter=adapter)


__all__ = [
    "AnthropicProviderConfig",
    "BackendTuning",
    "CredentialStore",
    "InMemoryCredentialStore",
    "OfflineProviderConfig",
    "OpenAIProviderConfig",
    "ProviderConfig",
    "ProviderInit",
    "SettingsCredentialStore",
    "initialize_backend",
    "parse_provider_config",
    "resolve_backend",
]
