"""Unified-diff parsing and consistency heuristics for revision reviews."""

from __future__ import annotations

import difflib
import re
from collections import Counter
from dataclasses import dataclass

from .models.analysis import ConsistencyReport, DiffAnalysis, SemanticChange

_HUNK_HEADER = re.compile(r"^@@ -\d+(?:,\d+)? \+(\d+)(?:,\d+)? @@")
_METADATA_PREFIXES = ("+++", "---", "@@", "diff ", "index ")
_SENTENCE_SPLIT = re.compile(r"[.!?。！？]+")
_PARAGRAPH_SPLIT = re.compile(r"\n\s*\n+")

LONG_SENTENCE_WORDS = 30
SHORT_PARAGRAPH_WORDS = 20
REPEATED_WORD_MIN_LENGTH = 5
REPEATED_WORD_LIMIT = 3
DEFAULT_CONFIDENCE = 0.85


@dataclass(frozen=True)
class DiffLineCounts:
    additions: int
    deletions: int

    @property
    def modifications(self) -> int:
        return min(self.additions, self.deletions)


def count_diff_lines(diff_text: str) -> DiffLineCounts:
    """Count added and removed lines in a unified diff, skipping headers."""

    additions = 0
    deletions = 0
    for line in diff_text.splitlines():
        if line.startswith(_METADATA_PREFIXES):
            continue
        if line.startswith("+"):
            additions += 1
        elif line.startswith("-"):
            deletions += 1
    return DiffLineCounts(additions=additions, deletions=deletions)


def _semantic_changes(diff_text: str) -> list[SemanticChange]:
    changes: list[SemanticChange] = []
    current = 0
    for line in diff_text.splitlines():
        match = _HUNK_HEADER.match(line)
        if match:
            current = max(0, int(match.group(1)) - 1)
            continue
        if line.startswith(_METADATA_PREFIXES):
            continue
        if line.startswith("+"):
            changes.append(
                SemanticChange(
                    type="addition",
                    description=line[1:],
                    line_number=current,
                    confidence=DEFAULT_CONFIDENCE,
                )
            )
            current += 1
        elif line.startswith("-"):
            changes.append(
                SemanticChange(
                    type="deletion",
                    description=line[1:],
                    line_number=current,
                    confidence=DEFAULT_CONFIDENCE,
                )
            )
        elif line.startswith("\\"):
            # "\ No newline at end of file"
            continue
        else:
            current += 1
    return changes


def _word_count(segment: str) -> int:
    return len(segment.split())


def build_consistency_report(full_text: str, changes: list[SemanticChange]) -> ConsistencyReport:
    """Score readability of ``full_text`` and flag repetition in added lines."""

    issues: list[str] = []
    suggestions: list[str] = []
    score = 100.0

    sentences = _SENTENCE_SPLIT.split(full_text)
    long_sentences = [s for s in sentences if _word_count(s) > LONG_SENTENCE_WORDS]
    if sentences and len(long_sentences) > len(sentences) * 0.2:
        issues.append("Several sentences are very long and may hurt readability.")
        suggestions.append("Consider splitting long sentences into shorter ones.")
        score -= 10

    paragraphs = _PARAGRAPH_SPLIT.split(full_text)
    short_paragraphs = [p for p in paragraphs if _word_count(p) < SHORT_PARAGRAPH_WORDS]
    if paragraphs and len(short_paragraphs) > len(paragraphs) * 0.3:
        suggestions.append("Some paragraphs are short; expand them or merge related ones.")
        score -= 5

    added_words = " ".join(
        change.description for change in changes if change.type == "addition"
    ).lower().split()
    frequency = Counter(word for word in added_words if len(word) >= REPEATED_WORD_MIN_LENGTH)
    repeated = [word for word, count in frequency.items() if count > REPEATED_WORD_LIMIT]
    if repeated:
        issues.append(f"Repeated words detected: {', '.join(repeated)}")
        suggestions.append("Avoid overusing the same words; try synonyms.")
        score -= 10

    return ConsistencyReport(score=max(0.0, score), issues=issues, suggestions=suggestions)


def _summary(counts: DiffLineCounts) -> str:
    parts: list[str] = []
    if counts.additions:
        parts.append(f"added {counts.additions} line(s)")
    if counts.deletions:
        parts.append(f"removed {counts.deletions} line(s)")
    if counts.modifications:
        parts.append(f"modified {counts.modifications} place(s)")
    if not parts:
        return "No significant changes."
    text = ", ".join(parts)
    return text[0].upper() + text[1:] + "."


def analyze_diff(diff_text: str, full_text: str) -> DiffAnalysis:
    """Build a :class:`DiffAnalysis` from a unified diff and the revised text."""

    counts = count_diff_lines(diff_text)
    changes = _semantic_changes(diff_text)
    return DiffAnalysis(
        summary=_summary(counts),
        additions=counts.additions,
        deletions=counts.deletions,
        modifications=counts.modifications,
        semantic_changes=changes,
        consistency_report=build_consistency_report(full_text, changes),
    )


def compute_unified_diff(previous: str, current: str, *, file_path: str | None = None) -> str:
    label = file_path or "document"
    lines = difflib.unified_diff(
        (previous or "").splitlines(),
        (current or "").splitlines(),
        fromfile=f"a/{label}",
        tofile=f"b/{label}",
        lineterm="",
    )
    return "\n".join(lines)


def analyze_revision(previous: str, current: str, file_path: str | None = None) -> DiffAnalysis:
    """Diff two revisions of a document and analyze the result."""

    return analyze_diff(compute_unified_diff(previous, current, file_path=file_path), current or "")


__all__ = [
    "DiffLineCounts",
    "analyze_diff",
    "analyze_revision",
    "build_consistency_report",
    "compute_unified_diff",
    "count_diff_lines",
]
