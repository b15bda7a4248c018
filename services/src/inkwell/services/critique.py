"""Rule-based critique derived from a diff analysis."""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from typing import Final, Iterable

from .models.analysis import DiffAnalysis
from .models.critique import Anchor, Critique, Suggestion

LOGGER = logging.getLogger(__name__)

INTENSIFIERS: Final[tuple[str, ...]] = ("很", "非常")
MAX_INSPECTED_CHANGES: Final[int] = 5
LOCATOR_LINES_BEFORE: Final[int] = 2
LOCATOR_LINES_AFTER: Final[int] = 3

STRENGTH_PLACEHOLDER: Final[str] = "Keep up the careful, attentive writing."
IMPROVEMENT_PLACEHOLDER: Final[str] = "No significant issues found."
OVERALL_PLACEHOLDER: Final[str] = "Overall quality is good."
RATIONALE_PLACEHOLDER: Final[str] = "Suggested revision."

STRENGTH_CLEAR_STRUCTURE: Final[str] = "Clear structure with coherent logic."
STRENGTH_RICH_CONTENT: Final[str] = "Substantial, information-rich additions."
STRENGTH_ATTENTIVE: Final[str] = "Detailed revisions show attention to polish."

OVERALL_EXCELLENT: Final[str] = (
    "This revision is excellent overall: the logic is clear and the prose flows well."
)
OVERALL_GOOD: Final[str] = "This revision is good overall, with a few minor issues to watch."
OVERALL_NEEDS_WORK: Final[str] = (
    "This revision has several areas that need improvement; review it carefully."
)
CLAUSE_PURE_ADDITION: Final[str] = (
    " It mainly expands the content; keep it consistent with the existing text."
)
CLAUSE_DELETION_DOMINANT: Final[str] = (
    " It trims the content; make sure no key information was removed."
)

# A lexicon word stands alone when it does not continue a Latin-script word or
# number and is followed by more text.
_INTENSIFIER_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"(?<![A-Za-z0-9])(?:" + "|".join(map(re.escape, INTENSIFIERS)) + r")(?=\S)"
)
_WHITESPACE: Final[re.Pattern[str]] = re.compile(r"\s+")
_LINE_BREAK: Final[re.Pattern[str]] = re.compile(r"\r\n|\r|\n")


@dataclass(frozen=True)
class TextLocation:
    start_line: int
    start_column: int
    end_line: int
    end_column: int

    def to_anchor(self) -> Anchor:
        return Anchor(
            start_line=self.start_line,
            start_column=self.start_column,
            end_line=self.end_line,
            end_column=self.end_column,
        )


def contains_intensifier(text: str) -> bool:
    return any(word in text for word in INTENSIFIERS)


def strip_intensifiers(text: str) -> str:
    """Remove standalone intensifiers, then collapse whitespace and trim."""

    stripped = _INTENSIFIER_PATTERN.sub("", text)
    return _WHITESPACE.sub(" ", stripped).strip()


def locate_text(content: str, search_text: str, approximate_line: int) -> TextLocation:
    """Find ``search_text`` near ``approximate_line``.

    Only lines ``[approximate_line - 2, approximate_line + 3)`` are scanned. When
    the text is not found there the location spans the whole approximate line,
    clamped to the document.
    """

    lines = _LINE_BREAK.split(content)
    needle = search_text.strip()
    leading = len(search_text) - len(search_text.lstrip())

    start = max(0, approximate_line - LOCATOR_LINES_BEFORE)
    stop = min(len(lines), approximate_line + LOCATOR_LINES_AFTER)
    for index in range(start, stop):
        column = lines[index].find(needle)
        if column != -1:
            start_column = max(0, column - leading)
            return TextLocation(
                start_line=index,
                start_column=start_column,
                end_line=index,
                end_column=start_column + len(search_text),
            )

    clamped = min(max(0, approximate_line), len(lines) - 1)
    return TextLocation(
        start_line=clamped,
        start_column=0,
        end_line=clamped,
        end_column=len(lines[clamped]),
    )


def _intensifier_rationale(text: str) -> str:
    found = [word for word in INTENSIFIERS if word in text]
    quoted = ", ".join(f'"{word}"' for word in found)
    return (
        f"Cutting degree adverbs such as {quoted} makes the prose tighter "
        f"(every standalone {quoted} in this line will be removed)."
    )


def compute_rating(score: float, strengths: int, improvements: int) -> int:
    """Combine the consistency score with strength/improvement counts, clamped to 0..10."""

    raw = score / 10 + 0.5 * strengths - 0.3 * improvements
    return max(0, min(10, math.floor(raw + 0.5)))


def overall_assessment(score: float, additions: int, deletions: int) -> str:
    if score >= 85:
        overall = OVERALL_EXCELLENT
    elif score >= 70:
        overall = OVERALL_GOOD
    else:
        overall = OVERALL_NEEDS_WORK

    if additions > 0 and deletions == 0:
        overall += CLAUSE_PURE_ADDITION
    elif deletions > additions:
        overall += CLAUSE_DELETION_DOMINANT
    return overall


def _rationale_only(messages: Iterable[str]) -> list[Suggestion]:
    return [
        Suggestion(kind="style", anchor=Anchor.empty(), rationale=message)
        for message in messages
        if message.strip()
    ]


def rule_based_critique(
    analysis: DiffAnalysis,
    *,
    file_path: str | None = None,
    full_text: str | None = None,
) -> Critique:
    """Derive a critique deterministically from ``analysis``."""

    report = analysis.consistency_report

    strengths: list[str] = []
    if report.score >= 80:
        strengths.append(STRENGTH_CLEAR_STRUCTURE)
    if analysis.additions > analysis.deletions * 2:
        strengths.append(STRENGTH_RICH_CONTENT)
    if len(analysis.semantic_changes) > 5:
        strengths.append(STRENGTH_ATTENTIVE)

    improvements = list(report.issues)
    suggestions = _rationale_only(report.suggestions)

    content = full_text or ""
    for change in analysis.semantic_changes[:MAX_INSPECTED_CHANGES]:
        if change.type != "addition" or not contains_intensifier(change.description):
            continue
        location = locate_text(content, change.description, change.line_number)
        suggestions.append(
            Suggestion(
                kind="style",
                anchor=location.to_anchor(),
                line=change.line_number + 1,
                original_text=change.description,
                replacement_text=strip_intensifiers(change.description),
                rationale=_intensifier_rationale(change.description),
                file_path=file_path,
            )
        )

    rating = compute_rating(report.score, len(strengths), len(improvements))
    LOGGER.debug(
        "review.rule_based",
        extra={
            "extra_payload": {
                "file_path": file_path,
                "score": report.score,
                "strengths": len(strengths),
                "improvements": len(improvements),
                "suggestions": len(suggestions),
                "rating": rating,
            }
        },
    )

    return Critique(
        overall=overall_assessment(report.score, analysis.additions, analysis.deletions),
        strengths=strengths or [STRENGTH_PLACEHOLDER],
        improvements=improvements or [IMPROVEMENT_PLACEHOLDER],
        suggestions=suggestions,
        rating=rating,
        source="rule-based",
        source_path=file_path,
    )


__all__ = [
    "INTENSIFIERS",
    "TextLocation",
    "compute_rating",
    "contains_intensifier",
    "locate_text",
    "overall_assessment",
    "rule_based_critique",
    "strip_intensifiers",
]
