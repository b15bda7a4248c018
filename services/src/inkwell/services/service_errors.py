"""Central service error definitions and helper exception types."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

from fastapi import status

from .errors import InkwellError, InvalidArgumentError, ReviewNotFoundError, SuggestionNotFoundError


@dataclass(frozen=True)
class ErrorDefinition:
    code: str
    message: str
    status_code: int


ERROR_DEFINITIONS: Dict[str, ErrorDefinition] = {
    "INTERNAL": ErrorDefinition("INTERNAL", "Internal server error.", status.HTTP_500_INTERNAL_SERVER_ERROR),
    "VALIDATION": ErrorDefinition("VALIDATION", "Validation failed.", status.HTTP_400_BAD_REQUEST),
    "NOT_FOUND": ErrorDefinition("NOT_FOUND", "Resource not found.", status.HTTP_404_NOT_FOUND),
    "PAYLOAD_TOO_LARGE": ErrorDefinition("PAYLOAD_TOO_LARGE", "Request body too large.", 413),
    "FILESYSTEM_DENIED": ErrorDefinition("FILESYSTEM_DENIED", "Filesystem permission denied.", status.HTTP_403_FORBIDDEN),
    "FILESYSTEM_NOT_FOUND": ErrorDefinition("FILESYSTEM_NOT_FOUND", "Filesystem resource not found.", status.HTTP_404_NOT_FOUND),
    "FILESYSTEM_ERROR": ErrorDefinition("FILESYSTEM_ERROR", "Filesystem operation failed.", status.HTTP_500_INTERNAL_SERVER_ERROR),
}

DEFAULT_ERROR_DEFINITION = ErrorDefinition(
    "UNEXPECTED_ERROR",
    "Unexpected error occurred.",
    status.HTTP_500_INTERNAL_SERVER_ERROR,
)


class ServiceError(Exception):
    """Structured error for router responses."""

    def __init__(
        self,
        *,
        code: str,
        status_code: int,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}
        self.status_code = status_code


def service_error_for(exc: InkwellError) -> ServiceError:
    """Translate a domain error into the HTTP error contract."""

    if isinstance(exc, (ReviewNotFoundError, SuggestionNotFoundError)):
        definition = ERROR_DEFINITIONS["NOT_FOUND"]
    elif isinstance(exc, InvalidArgumentError):
        definition = ERROR_DEFINITIONS["VALIDATION"]
    else:
        definition = ERROR_DEFINITIONS["INTERNAL"]
    return ServiceError(
        code=definition.code,
        status_code=definition.status_code,
        message=exc.message,
        details={"reason": exc.code, **exc.details},
    )


__all__ = [
    "DEFAULT_ERROR_DEFINITION",
    "ERROR_DEFINITIONS",
    "ErrorDefinition",
    "ServiceError",
    "service_error_for",
]
