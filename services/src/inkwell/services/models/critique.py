"""Canonical critique and suggestion models."""

from __future__ import annotations

from typing import Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

SuggestionKind = Literal["grammar", "style", "structure", "content"]
CritiqueSource = Literal["backend", "rule-based"]

SUGGESTION_KINDS: tuple[SuggestionKind, ...] = ("grammar", "style", "structure", "content")


def new_suggestion_id() -> str:
    """Return a fresh globally unique suggestion identifier."""

    return str(uuid4())


def new_review_id() -> str:
    return uuid4().hex


class Anchor(BaseModel):
    """Zero-based line/column range, half-open on the end."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    start_line: int = Field(ge=0)
    start_column: int = Field(ge=0)
    end_line: int = Field(ge=0)
    end_column: int = Field(ge=0)

    @model_validator(mode="after")
    def _check_order(self) -> "Anchor":
        if self.start_line > self.end_line:
            raise ValueError("anchor start_line must not exceed end_line.")
        if self.start_line == self.end_line and self.start_column > self.end_column:
            raise ValueError("anchor start_column must not exceed end_column on a single line.")
        return self

    @classmethod
    def empty(cls) -> "Anchor":
        return cls(start_line=0, start_column=0, end_line=0, end_column=0)


class Suggestion(BaseModel):
    """A single positioned edit proposal. Immutable once created."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str = Field(default_factory=new_suggestion_id, min_length=1)
    kind: SuggestionKind = "style"
    anchor: Anchor
    original_text: str = ""
    replacement_text: str = ""
    rationale: str = Field(min_length=1)
    line: int = Field(default=0, ge=0)
    file_path: str | None = None
    document_version_at_proposal: int | None = None

    @field_validator("rationale")
    @classmethod
    def _require_rationale(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("rationale must be non-empty.")
        return value

    @property
    def is_appliable(self) -> bool:
        """Whether the suggestion proposes concrete replacement text."""

        return bool(self.replacement_text.strip())


class Critique(BaseModel):
    """Normalized review result produced per review invocation."""

    model_config = ConfigDict(extra="forbid")

    review_id: str = Field(default_factory=new_review_id)
    overall: str = Field(min_length=1)
    strengths: list[str] = Field(min_length=1)
    improvements: list[str] = Field(min_length=1)
    suggestions: list[Suggestion] = Field(default_factory=list)
    rating: int = Field(ge=0, le=10)
    source: CritiqueSource = "rule-based"
    model: str | None = None
    source_path: str | None = None
    document_version: int | None = None

    def suggestion_map(self) -> dict[str, Suggestion]:
        return {suggestion.id: suggestion for suggestion in self.suggestions}

    def appliable_suggestions(self) -> list[Suggestion]:
        return [suggestion for suggestion in self.suggestions if suggestion.is_appliable]


__all__ = [
    "Anchor",
    "Critique",
    "CritiqueSource",
    "SUGGESTION_KINDS",
    "Suggestion",
    "SuggestionKind",
    "new_review_id",
    "new_suggestion_id",
]
