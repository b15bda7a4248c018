"""Parse JSON payloads returned by reasoning backends."""

from __future__ import annotations

import json
import re
from typing import Any

from pydantic import ValidationError

from ..diff_engine import count_diff_lines
from ..errors import BackendParseError
from ..models.analysis import ConsistencyReport, DiffAnalysis
from ..models.backend import RawCritique

_FENCE_OPEN = re.compile(r"^```(?:json)?\s*\n?", re.IGNORECASE)
_FENCE_CLOSE = re.compile(r"\n?```\s*$")


def strip_code_fences(content: str) -> str:
    """Remove a surrounding Markdown code fence, if present."""

    cleaned = content.strip()
    cleaned = _FENCE_OPEN.sub("", cleaned)
    cleaned = _FENCE_CLOSE.sub("", cleaned)
    return cleaned.strip()


def load_json_object(content: str) -> dict[str, Any]:
    try:
        payload = json.loads(strip_code_fences(content))
    except json.JSONDecodeError as exc:
        raise BackendParseError("Backend response is not valid JSON.", cause=exc) from exc
    if not isinstance(payload, dict):
        raise BackendParseError(
            "Backend response must be a JSON object.",
            details={"type": type(payload).__name__},
        )
    return payload


def parse_text_review(content: str) -> RawCritique:
    payload = load_json_object(content)
    try:
        return RawCritique.model_validate(payload)
    except ValidationError as exc:
        raise BackendParseError(
            "Backend review payload has an unexpected shape.",
            cause=exc,
            details={"errors": exc.errors(include_url=False, include_context=False)},
        ) from exc


def parse_diff_analysis(content: str, diff_text: str) -> DiffAnalysis:
    """Parse a diff analysis, recomputing line counts from the diff itself."""

    payload = load_json_object(content)
    counts = count_diff_lines(diff_text)
    try:
        analysis = DiffAnalysis.model_validate(
            {
                "summary": payload.get("summary") or "No significant changes.",
                "semanticChanges": payload.get("semanticChanges")
                or payload.get("semantic_changes")
                or [],
                "consistencyReport": payload.get("consistencyReport")
                or payload.get("consistency_report")
                or ConsistencyReport().model_dump(),
            }
        )
    except ValidationError as exc:
        raise BackendParseError(
            "Backend diff analysis payload has an unexpected shape.",
            cause=exc,
            details={"errors": exc.errors(include_url=False, include_context=False)},
        ) from exc
    return analysis.model_copy(
        update={
            "additions": counts.additions,
            "deletions": counts.deletions,
            "modifications": counts.modifications,
        }
    )


__all__ = [
    "load_json_object",
    "parse_diff_analysis",
    "parse_text_review",
    "strip_code_fences",
]
