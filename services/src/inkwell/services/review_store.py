"""In-process ledger of recent critiques and the suggestions applied from them."""

from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from dataclasses import dataclass, field

from .errors import InvalidArgumentError, ReviewNotFoundError, SuggestionNotFoundError
from .models.critique import Critique, Suggestion

LOGGER = logging.getLogger("inkwell.services.review_store")


@dataclass
class _LedgerEntry:
    critique: Critique
    applied: set[str] = field(default_factory=set)


class ReviewLedger:
    """Bounded LRU map of ``review_id`` to critique plus applied suggestion ids."""

    def __init__(self, capacity: int = 128) -> None:
        if capacity <= 0:
            raise InvalidArgumentError("capacity must be greater than zero.")
        self._capacity = capacity
        self._entries: "OrderedDict[str, _LedgerEntry]" = OrderedDict()
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    async def register(self, critique: Critique) -> None:
        async with self._lock:
            self._entries[critique.review_id] = _LedgerEntry(critique=critique)
            self._entries.move_to_end(critique.review_id)
            while len(self._entries) > self._capacity:
                evicted, _ = self._entries.popitem(last=False)
                LOGGER.debug("review.evicted", extra={"extra_payload": {"review_id": evicted}})

    async def get(self, review_id: str) -> Critique:
        async with self._lock:
            return self._entry(review_id).critique

    async def select(self, review_id: str, suggestion_ids: list[str]) -> list[Suggestion]:
        """Return suggestions in request order; unknown ids are an error."""

        async with self._lock:
            lookup = self._entry(review_id).critique.suggestion_map()
            missing = [suggestion_id for suggestion_id in suggestion_ids if suggestion_id not in lookup]
            if missing:
                raise SuggestionNotFoundError(review_id, missing)
            return [lookup[suggestion_id] for suggestion_id in suggestion_ids]

    async def remaining(self, review_id: str) -> list[Suggestion]:
        async with self._lock:
            entry = self._entry(review_id)
            return [
                suggestion
                for suggestion in entry.critique.appliable_suggestions()
                if suggestion.id not in entry.applied
            ]

    async def applied_ids(self, review_id: str) -> set[str]:
        async with self._lock:
            return set(self._entry(review_id).applied)

    async def mark_applied(self, review_id: str, suggestion_ids: list[str]) -> None:
        async with self._lock:
            entry = self._entry(review_id)
            entry.applied.update(suggestion_ids)

    def _entry(self, review_id: str) -> _LedgerEntry:
        entry = self._entries.get(review_id)
        if entry is None:
            raise ReviewNotFoundError(review_id)
        self._entries.move_to_end(review_id)
        return entry


__all__ = ["ReviewLedger"]
