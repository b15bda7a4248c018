"""Review synthesis with a reasoning backend and a rule-based fallback."""

from __future__ import annotations

import logging
import math
from pathlib import PurePath
from typing import Final

from pydantic import ValidationError

from .backends.base import BackendAdapter
from .critique import (
    IMPROVEMENT_PLACEHOLDER,
    OVERALL_PLACEHOLDER,
    RATIONALE_PLACEHOLDER,
    STRENGTH_PLACEHOLDER,
    rule_based_critique,
)
from .diff_engine import analyze_diff
from .models.analysis import DiffAnalysis
from .models.backend import BackendResult, DocumentType, RawCritique, RawSuggestion, ReviewContext, WritingStyle
from .models.critique import SUGGESTION_KINDS, Anchor, Critique, Suggestion, SuggestionKind

LOGGER = logging.getLogger("inkwell.services.synthesizer")

DEFAULT_BACKEND_RATING: Final[int] = 7


def document_type_for(file_path: str | None) -> DocumentType:
    if file_path and PurePath(file_path.replace("\\", "/")).suffix.lower() == ".tex":
        return "latex"
    return "markdown"


def normalize_kind(kind: str | None) -> SuggestionKind:
    """Map a backend suggestion kind into the closed enum; ``clarity`` and unknowns become ``style``."""

    candidate = (kind or "").strip().lower()
    for known in SUGGESTION_KINDS:
        if candidate == known:
            return known
    return "style"


def normalize_rating(rating: float | None) -> int:
    if rating is None or math.isnan(rating):
        return DEFAULT_BACKEND_RATING
    return max(0, min(10, math.floor(rating + 0.5)))


def _non_blank(values: list[str] | None) -> list[str]:
    return [value for value in (values or []) if isinstance(value, str) and value.strip()]


class ReviewSynthesizer:
    """Produce a canonical :class:`Critique` for a revision; never raises."""

    def __init__(
        self,
        backend: BackendAdapter | None = None,
        *,
        writing_style: WritingStyle = "formal",
    ) -> None:
        self._backend = backend
        self._writing_style = writing_style

    @property
    def backend(self) -> BackendAdapter | None:
        return self._backend

    @property
    def mode(self) -> str:
        return self._backend.provider if self._backend is not None else "offline"

    async def generate_review(
        self,
        analysis: DiffAnalysis,
        file_path: str | None = None,
        full_text: str | None = None,
    ) -> Critique:
        if self._backend is not None and full_text:
            context = ReviewContext(
                file_path=file_path,
                document_type=document_type_for(file_path),
                writing_style=self._writing_style,
            )
            try:
                result = await self._backend.review_text(full_text, context)
                critique = self._normalize(result, file_path)
            except Exception as exc:  # noqa: BLE001 - every backend failure degrades to rules
                LOGGER.warning(
                    "review.fallback",
                    extra={
                        "extra_payload": {
                            "provider": self._backend.provider,
                            "code": getattr(exc, "code", type(exc).__name__),
                            "error": str(exc),
                            "file_path": file_path,
                        }
                    },
                )
            else:
                LOGGER.info(
                    "review.backend",
                    extra={
                        "extra_payload": {
                            "provider": self._backend.provider,
                            "model": result.model,
                            "cached": result.cached,
                            "suggestions": len(critique.suggestions),
                        }
                    },
                )
                return critique
        else:
            LOGGER.info(
                "review.rule_based",
                extra={
                    "extra_payload": {
                        "reason": "no_backend" if self._backend is None else "no_content",
                        "file_path": file_path,
                    }
                },
            )

        return rule_based_critique(analysis, file_path=file_path, full_text=full_text)

    async def analyze_changes(
        self,
        diff_text: str,
        full_text: str,
        file_path: str | None = None,
    ) -> DiffAnalysis:
        """Analyze a unified diff with the backend, or locally when it is unavailable."""

        if self._backend is not None and diff_text.strip():
            context = ReviewContext(
                file_path=file_path,
                document_type=document_type_for(file_path),
                writing_style=self._writing_style,
            )
            try:
                result = await self._backend.analyze_diff(diff_text, context)
                return result.data
            except Exception as exc:  # noqa: BLE001 - local analysis is always available
                LOGGER.warning(
                    "analysis.fallback",
                    extra={
                        "extra_payload": {
                            "provider": self._backend.provider,
                            "code": getattr(exc, "code", type(exc).__name__),
                            "error": str(exc),
                        }
                    },
                )
        return analyze_diff(diff_text, full_text)

    async def aclose(self) -> None:
        if self._backend is not None:
            await self._backend.aclose()

    # Internal helpers --------------------------------------------------

    def _normalize(self, result: BackendResult[RawCritique], file_path: str | None) -> Critique:
        raw = result.data
        suggestions: list[Suggestion] = []
        for index, entry in enumerate(raw.suggestions or []):
            suggestion = self._normalize_suggestion(entry, file_path)
            if suggestion is None:
                LOGGER.warning(
                    "review.suggestion_dropped",
                    extra={"extra_payload": {"index": index, "file_path": file_path}},
                )
                continue
            suggestions.append(suggestion)

        overall = (raw.overall or "").strip()
        return Critique(
            overall=overall or OVERALL_PLACEHOLDER,
            strengths=_non_blank(raw.strengths) or [STRENGTH_PLACEHOLDER],
            improvements=_non_blank(raw.improvements) or [IMPROVEMENT_PLACEHOLDER],
            suggestions=suggestions,
            rating=normalize_rating(raw.rating),
            source="backend",
            model=result.model,
            source_path=file_path,
        )

    @staticmethod
    def _normalize_suggestion(entry: RawSuggestion, file_path: str | None) -> Suggestion | None:
        try:
            anchor = Anchor(
                start_line=entry.start_line or 0,
                start_column=entry.start_column or 0,
                end_line=entry.end_line or 0,
                end_column=entry.end_column or 0,
            )
        except ValidationError:
            return None
        rationale = (entry.reason or "").strip() or RATIONALE_PLACEHOLDER
        line = entry.line if entry.line is not None and entry.line >= 0 else anchor.start_line + 1
        return Suggestion(
            kind=normalize_kind(entry.type),
            anchor=anchor,
            line=line,
            original_text=entry.original or "",
            replacement_text=entry.suggested or "",
            rationale=rationale,
            file_path=file_path,
        )


__all__ = [
    "DEFAULT_BACKEND_RATING",
    "ReviewSynthesizer",
    "document_type_for",
    "normalize_kind",
    "normalize_rating",
]
