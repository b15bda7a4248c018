"""Conflict-checked application of review suggestions to a live document."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Iterable

from .documents import TextDocument, TextRange, normalize_path
from .errors import DocumentChangedError, UnreadableDocumentError
from .models.apply import ApplyAllResult, ApplyResult, ApplyStatus
from .models.critique import Anchor, Suggestion, SuggestionKind

LOGGER = logging.getLogger("inkwell.services.applicator")

DEFAULT_SETTLE_DELAY = 0.05

ProgressCallback = Callable[[int, int, Suggestion], None]


def paths_match(document_path: str, suggestion_path: str) -> bool:
    """Exact match, or ``suggestion_path`` is a trailing path of ``document_path``."""

    doc = normalize_path(document_path)
    target = normalize_path(suggestion_path)
    while target.startswith("./"):
        target = target[2:]
    if not target:
        return False
    return doc == target or doc.endswith("/" + target.lstrip("/"))


def order_for_application(suggestions: Iterable[Suggestion]) -> list[Suggestion]:
    """Sort bottom-to-top, then right-to-left, so earlier anchors never shift."""

    return sorted(
        suggestions,
        key=lambda suggestion: (suggestion.anchor.start_line, suggestion.anchor.start_column),
        reverse=True,
    )


class SuggestionApplicator:
    """Apply suggestions one at a time; every outcome is a structured result."""

    def __init__(
        self,
        *,
        settle_delay: float = DEFAULT_SETTLE_DELAY,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        if settle_delay < 0:
            raise ValueError("settle_delay may not be negative.")
        self._settle_delay = settle_delay
        self._sleep = sleep or asyncio.sleep

    async def apply_one(
        self, suggestion: Suggestion, document: TextDocument | None
    ) -> ApplyResult:
        if document is None:
            return self._failure(
                suggestion,
                ApplyStatus.NO_ACTIVE_DOCUMENT,
                "No active document",
                "Open the file the suggestion was made for.",
            )

        if suggestion.file_path and not paths_match(document.path, suggestion.file_path):
            return self._failure(
                suggestion,
                ApplyStatus.WRONG_FILE,
                "Wrong file",
                f"This suggestion is for {suggestion.file_path}, but {document.path} is open.",
            )

        try:
            accessible = document.exists(document.path)
        except OSError as exc:
            accessible = False
            LOGGER.debug("apply.access_check_failed", extra={"extra_payload": {"error": str(exc)}})
        if not accessible:
            return self._failure(
                suggestion,
                ApplyStatus.ACCESS_ERROR,
                "File access error",
                "Cannot access the file or it is not writable.",
            )

        text_range = TextRange.from_anchor(suggestion.anchor)
        try:
            conflict = self._check_conflict(suggestion, document, text_range)
        except (OSError, UnreadableDocumentError) as exc:
            return self._failure(
                suggestion, ApplyStatus.ACCESS_ERROR, "File access error", str(exc)
            )
        if conflict is not None:
            return conflict

        try:
            applied = await document.replace(
                text_range, suggestion.replacement_text, expected=suggestion.original_text
            )
        except DocumentChangedError:
            return self._stale(suggestion)
        except Exception as exc:  # noqa: BLE001 - reported as a per-suggestion failure
            LOGGER.warning(
                "apply.edit_failed",
                extra={"extra_payload": {"suggestion_id": suggestion.id, "error": str(exc)}},
            )
            return self._failure(
                suggestion, ApplyStatus.EDIT_FAILED, "Error applying suggestion", str(exc)
            )
        if not applied:
            return self._failure(
                suggestion,
                ApplyStatus.EDIT_REJECTED,
                "Failed to apply suggestion",
                "Edit operation was rejected.",
            )

        LOGGER.info(
            "apply.applied",
            extra={"extra_payload": {"suggestion_id": suggestion.id, "path": document.path}},
        )
        return ApplyResult(
            success=True,
            suggestion_id=suggestion.id,
            status=ApplyStatus.APPLIED,
            message="Suggestion applied successfully",
        )

    async def apply_all(
        self,
        suggestions: Iterable[Suggestion],
        document: TextDocument | None,
        on_progress: ProgressCallback | None = None,
    ) -> ApplyAllResult:
        """Apply appliable suggestions in document-safe order, stopping at the first failure."""

        ordered = order_for_application(s for s in suggestions if s.is_appliable)
        total = len(ordered)
        results: list[ApplyResult] = []
        success_count = 0
        failure_count = 0

        for index, suggestion in enumerate(ordered, start=1):
            if on_progress is not None:
                on_progress(index, total, suggestion)
            result = await self.apply_one(suggestion, document)
            results.append(result)
            if not result.success:
                failure_count += 1
                LOGGER.info(
                    "apply.batch_stopped",
                    extra={
                        "extra_payload": {
                            "suggestion_id": suggestion.id,
                            "status": result.status.value,
                            "remaining": total - index,
                        }
                    },
                )
                break
            success_count += 1
            if index < total and self._settle_delay > 0:
                await self._sleep(self._settle_delay)

        return ApplyAllResult(
            results=results,
            success_count=success_count,
            failure_count=failure_count,
        )

    @staticmethod
    def create_suggestion(
        *,
        anchor: Anchor,
        original_text: str,
        replacement_text: str,
        rationale: str,
        kind: SuggestionKind = "style",
        file_path: str | None = None,
        document_version: int | None = None,
    ) -> Suggestion:
        """Build a new suggestion with a freshly generated id."""

        return Suggestion(
            kind=kind,
            anchor=anchor,
            line=anchor.start_line + 1,
            original_text=original_text,
            replacement_text=replacement_text,
            rationale=rationale,
            file_path=file_path,
            document_version_at_proposal=document_version,
        )

    # Internal helpers --------------------------------------------------

    def _check_conflict(
        self, suggestion: Suggestion, document: TextDocument, text_range: TextRange
    ) -> ApplyResult | None:
        line_count = document.line_count
        if text_range.start_line >= line_count or text_range.end_line >= line_count:
            return self._failure(
                suggestion,
                ApplyStatus.OUT_OF_BOUNDS,
                "Suggestion no longer applicable",
                "Line numbers are out of document bounds. The document may have been modified.",
            )
        try:
            current = document.get_text(text_range)
        except UnreadableDocumentError:
            raise
        except ValueError:
            return self._failure(
                suggestion,
                ApplyStatus.OUT_OF_BOUNDS,
                "Suggestion no longer applicable",
                "Invalid range or position in document.",
            )
        if current != suggestion.original_text:
            return self._stale(suggestion)
        proposed = suggestion.document_version_at_proposal
        if proposed is not None and proposed != document.version:
            LOGGER.debug(
                "apply.version_drift",
                extra={
                    "extra_payload": {
                        "suggestion_id": suggestion.id,
                        "proposed": proposed,
                        "current": document.version,
                    }
                },
            )
        return None

    @classmethod
    def _stale(cls, suggestion: Suggestion) -> ApplyResult:
        return cls._failure(
            suggestion,
            ApplyStatus.STALE,
            "Suggestion no longer applicable",
            "The text at this location has changed since the review was generated.",
        )

    @staticmethod
    def _failure(
        suggestion: Suggestion, status: ApplyStatus, message: str, error: str
    ) -> ApplyResult:
        level = logging.INFO if status is ApplyStatus.STALE else logging.DEBUG
        LOGGER.log(
            level,
            "apply.failed",
            extra={
                "extra_payload": {
                    "suggestion_id": suggestion.id,
                    "status": status.value,
                    "error": error,
                }
            },
        )
        return ApplyResult(
            success=False,
            suggestion_id=suggestion.id,
            status=status,
            message=message,
            error=error,
        )


__all__ = [
    "DEFAULT_SETTLE_DELAY",
    "ProgressCallback",
    "SuggestionApplicator",
    "order_for_application",
    "paths_match",
]
