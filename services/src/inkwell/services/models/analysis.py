"""Diff and consistency analysis consumed by the review synthesizer."""

from __future__ import annotations

from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

ChangeType = Literal["addition", "deletion", "modification"]


class SemanticChange(BaseModel):
    """A single line-level change reported by the diff analysis."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    type: ChangeType
    description: str = ""
    line_number: int = Field(
        default=0,
        validation_alias=AliasChoices("line_number", "lineNumber"),
    )
    confidence: float = Field(default=0.85, ge=0.0, le=1.0)

    @field_validator("line_number")
    @classmethod
    def _clamp_line(cls, value: int) -> int:
        return max(0, value)


class ConsistencyReport(BaseModel):
    model_config = ConfigDict(extra="ignore")

    score: float = Field(default=80.0, ge=0.0, le=100.0)
    issues: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)


class DiffAnalysis(BaseModel):
    """Pre-computed revision statistics and consistency findings."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    summary: str = ""
    additions: int = Field(default=0, ge=0)
    deletions: int = Field(default=0, ge=0)
    modifications: int = Field(default=0, ge=0)
    semantic_changes: list[SemanticChange] = Field(
        default_factory=list,
        validation_alias=AliasChoices("semantic_changes", "semanticChanges"),
    )
    consistency_report: ConsistencyReport = Field(
        default_factory=ConsistencyReport,
        validation_alias=AliasChoices("consistency_report", "consistencyReport"),
    )


__all__ = ["ChangeType", "ConsistencyReport", "DiffAnalysis", "SemanticChange"]
