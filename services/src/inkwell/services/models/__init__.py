"""Pydantic models and dataclasses for service IO."""

from .analysis import ConsistencyReport, DiffAnalysis, SemanticChange
from .apply import ApplyAllResult, ApplyResult, ApplyStatus
from .backend import BackendResult, RawCritique, RawSuggestion, ReviewContext, TokenUsage
from .critique import Anchor, Critique, Suggestion, SuggestionKind
from .errors import ErrorResponse
from .requests import ApplyRequest, ReviewRequest

__all__ = [
    "Anchor",
    "ApplyAllResult",
    "ApplyRequest",
    "ApplyResult",
    "ApplyStatus",
    "BackendResult",
    "ConsistencyReport",
    "Critique",
    "DiffAnalysis",
    "ErrorResponse",
    "RawCritique",
    "RawSuggestion",
    "ReviewContext",
    "ReviewRequest",
    "SemanticChange",
    "Suggestion",
    "SuggestionKind",
    "TokenUsage",
]
