"""Outcome models for suggestion application."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ApplyStatus(str, Enum):
    """Terminal state reached by a single suggestion application attempt."""

    APPLIED = "applied"
    STALE = "stale"
    OUT_OF_BOUNDS = "out_of_bounds"
    EDIT_REJECTED = "edit_rejected"
    EDIT_FAILED = "edit_failed"
    WRONG_FILE = "wrong_file"
    ACCESS_ERROR = "access_error"
    NO_ACTIVE_DOCUMENT = "no_active_document"


class ApplyResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    success: bool
    suggestion_id: str
    status: ApplyStatus
    message: str
    error: str | None = None


class ApplyAllResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    results: list[ApplyResult] = Field(default_factory=list)
    success_count: int = 0
    failure_count: int = 0


__all__ = ["ApplyAllResult", "ApplyResult", "ApplyStatus"]
