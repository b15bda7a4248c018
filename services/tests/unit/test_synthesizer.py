from __future__ import annotations

import asyncio
from typing import Any

import pytest

from inkwell.services.critique import IMPROVEMENT_PLACEHOLDER, OVERALL_PLACEHOLDER, STRENGTH_PLACEHOLDER
from inkwell.services.errors import BackendParseError, MaxRetriesExceededError
from inkwell.services.models.analysis import ConsistencyReport, DiffAnalysis, SemanticChange
from inkwell.services.models.backend import BackendResult, RawCritique, RawSuggestion, TokenUsage
from inkwell.services.synthesizer import (
    ReviewSynthesizer,
    document_type_for,
    normalize_kind,
    normalize_rating,
)


class _FakeBackend:
    provider = "openai"

    def __init__(self, critique: RawCritique | None = None, error: Exception | None = None) -> None:
        self._critique = critique
        self._error = error
        self.contexts: list[Any] = []
        self.closed = False

    async def review_text(self, text: str, context: Any = None) -> BackendResult[RawCritique]:
        self.contexts.append(context)
        if self._error is not None:
            raise self._error
        assert self._critique is not None
        return BackendResult(data=self._critique, model="gpt-4", token_usage=TokenUsage())

    async def analyze_diff(self, diff_text: str, context: Any = None) -> BackendResult[DiffAnalysis]:
        if self._error is not None:
            raise self._error
        return BackendResult(
            data=DiffAnalysis(summary="From backend."),
            model="gpt-4",
            token_usage=TokenUsage(),
        )

    async def aclose(self) -> None:
        self.closed = True


ANALYSIS = DiffAnalysis(
    summary="Added 1 line(s).",
    additions=1,
    semantic_changes=[SemanticChange(type="addition", description="非常好", line_number=0)],
    consistency_report=ConsistencyReport(score=90),
)


def _synthesizer(backend: _FakeBackend | None) -> ReviewSynthesizer:
    return ReviewSynthesizer(backend, writing_style="academic")  # type: ignore[arg-type]


def test_backend_critique_is_normalized() -> None:
    raw = RawCritique(
        overall="  ",
        strengths=["Good pacing", ""],
        improvements=[],
        suggestions=[
            RawSuggestion(
                id="backend-id",
                type="clarity",
                start_line=0,
                start_column=0,
                end_line=0,
                end_column=3,
                original="非常好",
                suggested="好",
                reason="",
            ),
            RawSuggestion(type="grammar", start_line=3, start_column=0, end_line=1, end_column=0),
        ],
        rating=None,
    )
    backend = _FakeBackend(raw)

    critique = asyncio.run(_synthesizer(backend).generate_review(ANALYSIS, "paper.tex", "非常好"))

    assert critique.source == "backend"
    assert critique.model == "gpt-4"
    assert critique.overall == OVERALL_PLACEHOLDER
    assert critique.strengths == ["Good pacing"]
    assert critique.improvements == [IMPROVEMENT_PLACEHOLDER]
    assert critique.rating == 7
    [suggestion] = critique.suggestions
    assert suggestion.kind == "style"
    assert suggestion.id != "backend-id"
    assert suggestion.line == 1
    assert suggestion.file_path == "paper.tex"
    assert suggestion.rationale
    context = backend.contexts[0]
    assert context.document_type == "latex"
    assert context.writing_style == "academic"


@pytest.mark.parametrize(
    "error",
    [BackendParseError("bad json"), MaxRetriesExceededError("gave up"), RuntimeError("boom")],
)
def test_backend_failure_falls_back_to_rules(error: Exception) -> None:
    backend = _FakeBackend(error=error)

    critique = asyncio.run(_synthesizer(backend).generate_review(ANALYSIS, "notes.md", "非常好"))

    assert critique.source == "rule-based"
    assert critique.appliable_suggestions()[0].replacement_text == "好"


def test_without_text_the_backend_is_not_consulted() -> None:
    backend = _FakeBackend(RawCritique(overall="unused"))

    critique = asyncio.run(_synthesizer(backend).generate_review(ANALYSIS, "notes.md", None))

    assert critique.source == "rule-based"
    assert backend.contexts == []


def test_offline_synthesizer_uses_rules() -> None:
    synthesizer = _synthesizer(None)

    critique = asyncio.run(synthesizer.generate_review(ANALYSIS))

    assert synthesizer.mode == "offline"
    assert critique.source == "rule-based"
    assert critique.strengths != [STRENGTH_PLACEHOLDER]


def test_analyze_changes_prefers_backend_and_falls_back_locally() -> None:
    diff_text = "@@ -0,0 +1 @@\n+hello\n"

    remote = asyncio.run(_synthesizer(_FakeBackend(RawCritique())).analyze_changes(diff_text, "hello"))
    local = asyncio.run(
        _synthesizer(_FakeBackend(error=RuntimeError("down"))).analyze_changes(diff_text, "hello")
    )

    assert remote.summary == "From backend."
    assert local.additions == 1
    assert local.semantic_changes[0].description == "hello"


def test_aclose_closes_backend() -> None:
    backend = _FakeBackend(RawCritique())

    asyncio.run(_synthesizer(backend).aclose())

    assert backend.closed is True


@pytest.mark.parametrize(
    ("value", "expected"),
    [(None, 7), (float("nan"), 7), (7.5, 8), (8.4, 8), (-3, 0), (14, 10)],
)
def test_normalize_rating(value: float | None, expected: int) -> None:
    assert normalize_rating(value) == expected


def test_normalize_kind_and_document_type() -> None:
    assert normalize_kind("Grammar") == "grammar"
    assert normalize_kind("clarity") == "style"
    assert normalize_kind(None) == "style"
    assert document_type_for("paper.TEX") == "latex"
    assert document_type_for("notes.md") == "markdown"
    assert document_type_for(None) == "markdown"
