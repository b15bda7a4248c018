"""Payload models exchanged with reasoning backends."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, Literal, TypeVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

DocumentType = Literal["markdown", "latex"]
WritingStyle = Literal["formal", "casual", "academic", "technical"]

T = TypeVar("T")


class ReviewContext(BaseModel):
    """Context forwarded to the backend alongside the text under review."""

    model_config = ConfigDict(extra="forbid")

    file_path: str | None = None
    document_type: DocumentType = "markdown"
    writing_style: WritingStyle = "formal"
    target_audience: str | None = None


def _alias(*names: str) -> AliasChoices:
    return AliasChoices(*names)


class RawSuggestion(BaseModel):
    """Suggestion exactly as a backend reports it, before normalization."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str | None = None
    type: str | None = None
    line: int | None = None
    start_line: int | None = Field(default=None, validation_alias=_alias("start_line", "startLine"))
    start_column: int | None = Field(
        default=None, validation_alias=_alias("start_column", "startColumn")
    )
    end_line: int | None = Field(default=None, validation_alias=_alias("end_line", "endLine"))
    end_column: int | None = Field(default=None, validation_alias=_alias("end_column", "endColumn"))
    original: str | None = None
    suggested: str | None = None
    reason: str | None = None
    confidence: float | None = None


class RawCritique(BaseModel):
    """Text review as returned by a backend; every field may be missing."""

    model_config = ConfigDict(extra="ignore")

    overall: str | None = None
    strengths: list[str] | None = None
    improvements: list[str] | None = None
    suggestions: list[RawSuggestion] | None = None
    rating: float | None = None
    issues: list[dict[str, Any]] | None = None


class TokenUsage(BaseModel):
    model_config = ConfigDict(extra="forbid")

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    estimated_cost_usd: float = 0.0


@dataclass(frozen=True)
class BackendResult(Generic[T]):
    """Backend response envelope carrying usage and model provenance."""

    data: T
    model: str
    token_usage: TokenUsage
    cached: bool = False


__all__ = [
    "BackendResult",
    "DocumentType",
    "RawCritique",
    "RawSuggestion",
    "ReviewContext",
    "TokenUsage",
    "WritingStyle",
]
