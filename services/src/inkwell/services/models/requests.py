"""Pydantic models for review and apply HTTP requests."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .analysis import DiffAnalysis


class ReviewRequest(BaseModel):
    """Request payload submitted to the review endpoint."""

    model_config = ConfigDict(extra="forbid")

    file_path: str | None = None
    text: str | None = None
    previous_text: str | None = None
    diff: str | None = None
    analysis: DiffAnalysis | None = None

    @field_validator("file_path")
    @classmethod
    def _validate_file_path(cls, value: str | None) -> str | None:
        if value is None:
            return None
        candidate = value.strip()
        if not candidate:
            return None
        if "\0" in candidate:
            raise ValueError("file_path must not contain null bytes.")
        return candidate

    @model_validator(mode="after")
    def _require_review_input(self) -> "ReviewRequest":
        if (
            self.analysis is None
            and self.diff is None
            and self.text is None
            and self.file_path is None
        ):
            raise ValueError("Provide analysis, diff, text, or file_path to review.")
        return self


class ApplyRequest(BaseModel):
    """Suggestions selected from a review for application."""

    model_config = ConfigDict(extra="forbid")

    suggestion_ids: list[str] = Field(min_length=1)

    @field_validator("suggestion_ids")
    @classmethod
    def _dedupe(cls, value: list[str]) -> list[str]:
        cleaned: list[str] = []
        seen: set[str] = set()
        for entry in value:
            candidate = entry.strip()
            if not candidate:
                raise ValueError("suggestion_ids entries must be non-empty strings.")
            if candidate in seen:
                continue
            cleaned.append(candidate)
            seen.add(candidate)
        return cleaned


__all__ = ["ApplyRequest", "ReviewRequest"]
