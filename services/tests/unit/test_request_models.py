from __future__ import annotations

import pytest
from pydantic import ValidationError

from inkwell.services.models.critique import Anchor, Critique, Suggestion
from inkwell.services.models.requests import ApplyRequest, ReviewRequest


def test_review_request_rejects_extra_fields() -> None:
    with pytest.raises(ValidationError):
        ReviewRequest.model_validate({"text": "hello", "unexpected": True})


def test_review_request_requires_some_input() -> None:
    with pytest.raises(ValidationError):
        ReviewRequest(file_path="   ")


def test_review_request_accepts_camel_case_analysis() -> None:
    request = ReviewRequest.model_validate(
        {
            "analysis": {
                "summary": "Added 1 line(s).",
                "additions": 1,
                "semanticChanges": [{"type": "addition", "description": "x", "lineNumber": 2}],
                "consistencyReport": {"score": 70},
            }
        }
    )

    assert request.analysis is not None
    assert request.analysis.semantic_changes[0].line_number == 2
    assert request.analysis.consistency_report.score == 70


def test_review_request_rejects_null_bytes() -> None:
    with pytest.raises(ValidationError):
        ReviewRequest(file_path="bad\0path.md")


def test_apply_request_dedupes_and_strips() -> None:
    request = ApplyRequest(suggestion_ids=[" a ", "b", "a"])

    assert request.suggestion_ids == ["a", "b"]


@pytest.mark.parametrize("ids", [[], ["  "]])
def test_apply_request_rejects_empty_ids(ids: list[str]) -> None:
    with pytest.raises(ValidationError):
        ApplyRequest(suggestion_ids=ids)


def test_anchor_rejects_reversed_ranges() -> None:
    with pytest.raises(ValidationError):
        Anchor(start_line=2, start_column=0, end_line=1, end_column=0)
    with pytest.raises(ValidationError):
        Anchor(start_line=1, start_column=5, end_line=1, end_column=2)


def test_suggestion_requires_rationale_and_is_frozen() -> None:
    with pytest.raises(ValidationError):
        Suggestion(anchor=Anchor.empty(), rationale="   ")

    suggestion = Suggestion(anchor=Anchor.empty(), rationale="Why.", replacement_text="x")
    with pytest.raises(ValidationError):
        suggestion.replacement_text = "y"  # type: ignore[misc]


def test_critique_requires_strengths_and_bounded_rating() -> None:
    with pytest.raises(ValidationError):
        Critique(overall="ok", strengths=[], improvements=["x"], rating=5)
    with pytest.raises(ValidationError):
        Critique(overall="ok", strengths=["x"], improvements=["x"], rating=11)


def test_critique_round_trips_through_json() -> None:
    critique = Critique(
        overall="ok",
        strengths=["s"],
        improvements=["i"],
        rating=6,
        suggestions=[Suggestion(anchor=Anchor.empty(), rationale="r", replacement_text="new")],
    )

    restored = Critique.model_validate_json(critique.model_dump_json())

    assert restored == critique
    assert restored.appliable_suggestions()[0].id == critique.suggestions[0].id
