"""Content-addressed in-memory cache for backend responses."""

from __future__ import annotations

import hashlib
import json
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

DEFAULT_TTL_SECONDS = 60 * 60
DEFAULT_MAX_BYTES = 100 * 1024 * 1024


def make_cache_key(*, operation: str, content: str, params: Dict[str, Any]) -> str:
    """Return a deterministic SHA-256 key for the operation/content/params combo."""

    payload = {"operation": operation, "content": content, "params": params}
    serialized = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(serialized.encode("utf-8")).hexdigest()


@dataclass
class _Entry:
    data: Any
    stored_at: float
    size: int


@dataclass(frozen=True)
class CacheStats:
    hits: int
    misses: int
    entries: int
    size_bytes: int

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0


class ResponseCache:
    """LRU cache bounded by serialized size with per-entry TTL."""

    def __init__(
        self,
        *,
        enabled: bool = True,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        max_bytes: int = DEFAULT_MAX_BYTES,
        clock: Callable[[], float] | None = None,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be greater than zero.")
        if max_bytes <= 0:
            raise ValueError("max_bytes must be greater than zero.")
        self._enabled = enabled
        self._ttl = ttl_seconds
        self._max_bytes = max_bytes
        self._clock = clock or time.monotonic
        self._entries: "OrderedDict[str, _Entry]" = OrderedDict()
        self._size = 0
        self._hits = 0
        self._misses = 0

    @property
    def enabled(self) -> bool:
        return self._enabled

    def get(self, key: str) -> Optional[Any]:
        if not self._enabled:
            return None
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            return None
        if self._expired(entry):
            self._drop(key)
            self._misses += 1
            return None
        self._entries.move_to_end(key)
        self._hits += 1
        return entry.data

    def set(self, key: str, data: Any) -> None:
        if not self._enabled:
            return
        size = _estimate_size(data)
        if size > self._max_bytes:
            return
        if key in self._entries:
            self._drop(key)
        self._entries[key] = _Entry(data=data, stored_at=self._clock(), size=size)
        self._size += size
        while self._size > self._max_bytes and self._entries:
            oldest = next(iter(self._entries))
            self._drop(oldest)

    def clean_expired(self) -> int:
        expired = [key for key, entry in self._entries.items() if self._expired(entry)]
        for key in expired:
            self._drop(key)
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()
        self._size = 0
        self._hits = 0
        self._misses = 0

    def stats(self) -> CacheStats:
        return CacheStats(
            hits=self._hits,
            misses=self._misses,
            entries=len(self._entries),
            size_bytes=self._size,
        )

    def _expired(self, entry: _Entry) -> bool:
        return self._clock() - entry.stored_at > self._ttl

    def _drop(self, key: str) -> None:
        entry = self._entries.pop(key, None)
        if entry is not None:
            self._size -= entry.size


def _estimate_size(data: Any) -> int:
    if hasattr(data, "model_dump_json"):
        return len(data.model_dump_json().encode("utf-8"))
    try:
        return len(json.dumps(data, default=str).encode("utf-8"))
    except (TypeError, ValueError):
        return 1024


__all__ = ["CacheStats", "ResponseCache", "make_cache_key"]
