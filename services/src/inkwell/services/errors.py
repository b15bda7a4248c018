"""Exception taxonomy for review synthesis, backends, and suggestion lookup."""

from __future__ import annotations

from typing import Any

__all__ = [
    "InkwellError",
    "InvalidArgumentError",
    "ProviderConfigurationError",
    "CredentialMissingError",
    "BackendError",
    "InvalidCredentialError",
    "RateLimitedError",
    "BackendUnavailableError",
    "BackendRequestError",
    "MaxRetriesExceededError",
    "BackendParseError",
    "RateLimitTimeoutError",
    "UnreadableDocumentError",
    "DocumentChangedError",
    "ReviewNotFoundError",
    "SuggestionNotFoundError",
]


class InkwellError(Exception):
    """Base class for errors raised by the review services."""

    code: str = "INTERNAL"

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details: dict[str, Any] = dict(details or {})


class InvalidArgumentError(InkwellError, ValueError):
    """Raised when a component is constructed or called with invalid input."""

    code = "INVALID_ARGUMENT"


class ProviderConfigurationError(InvalidArgumentError):
    """Raised when a selected backend adapter rejects its configuration."""

    code = "INVALID_PROVIDER_CONFIG"


class CredentialMissingError(InkwellError):
    """No credential is stored for the configured provider.

    This is an expected outcome; it is reported through ``ProviderInit`` and
    never raised out of the resolver.
    """

    code = "CREDENTIAL_MISSING"


class BackendError(InkwellError):
    """Base error for failures talking to a reasoning backend."""

    code = "BACKEND_ERROR"
    retryable = False

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        cause: BaseException | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details=details)
        self.status_code = status_code
        self.cause = cause


class InvalidCredentialError(BackendError):
    """The backend rejected the credential; never retried."""

    code = "INVALID_CREDENTIAL"


class RateLimitedError(BackendError):
    """The backend signalled a rate limit (HTTP 429)."""

    code = "RATE_LIMIT"
    retryable = True


class BackendUnavailableError(BackendError):
    """Network failure, timeout, or 5xx response from the backend."""

    code = "SERVICE_UNAVAILABLE"
    retryable = True


class BackendRequestError(BackendError):
    """The backend rejected the request with a non-retryable client error."""

    code = "REQUEST_REJECTED"


class MaxRetriesExceededError(BackendError):
    """Transient failures persisted through every permitted attempt."""

    code = "MAX_RETRIES_EXCEEDED"


class BackendParseError(BackendError):
    """The backend answered with a payload that cannot be normalized."""

    code = "PARSE_ERROR"


class RateLimitTimeoutError(InkwellError):
    """The admission controller could not grant tokens within the wait budget."""

    code = "RATE_LIMIT_TIMEOUT"


class UnreadableDocumentError(InvalidArgumentError):
    """The document on disk is not valid UTF-8 text."""

    code = "UNREADABLE_DOCUMENT"


class DocumentChangedError(InkwellError):
    """The target range no longer holds the expected text at write time."""

    code = "DOCUMENT_CHANGED"


class ReviewNotFoundError(InkwellError, LookupError):
    """Raised when a review identifier is unknown to the ledger."""

    code = "NOT_FOUND"

    def __init__(self, review_id: str) -> None:
        super().__init__(
            f"Review '{review_id}' was not found.",
            details={"review_id": review_id},
        )
        self.review_id = review_id


class SuggestionNotFoundError(InkwellError, LookupError):
    """Raised when an apply request references unknown suggestion ids."""

    code = "NOT_FOUND"

    def __init__(self, review_id: str, missing: list[str]) -> None:
        super().__init__(
            f"Review '{review_id}' has no suggestion(s): {', '.join(missing)}.",
            details={"review_id": review_id, "missing": list(missing)},
        )
        self.review_id = review_id
        self.missing = list(missing)
