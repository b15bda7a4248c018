"""HTTP utilities shared across the review service routers."""

from __future__ import annotations

import errno
import logging
from contextvars import ContextVar
from typing import Any, Final, NoReturn
from uuid import UUID, uuid4

from fastapi import HTTPException, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .models.errors import ErrorResponse
from .service_errors import DEFAULT_ERROR_DEFINITION, ERROR_DEFINITIONS, ServiceError

LOGGER = logging.getLogger(__name__)

TRACE_ID_HEADER: Final[str] = "x-trace-id"
_TRACE_ID_CONTEXT: ContextVar[str] = ContextVar("inkwell_trace_id", default="")

DEFAULT_ERROR_RESPONSES: Final[dict[int | str, dict[str, Any]]] = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
    status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
}


def default_error_responses() -> dict[int | str, dict[str, Any]]:
    """Return a copy of the default error response mapping for routers."""

    return {status_code: dict(schema) for status_code, schema in DEFAULT_ERROR_RESPONSES.items()}


def resolve_trace_id(candidate: str | None) -> str:
    """Return a valid UUID string, preferring the provided candidate."""

    if candidate:
        try:
            UUID(candidate)
            return candidate
        except ValueError:
            LOGGER.debug("Ignoring invalid trace identifier: %s", candidate)
    return str(uuid4())


def ensure_trace_id() -> str:
    """Return the active trace identifier, creating one if absent."""

    trace_id = _TRACE_ID_CONTEXT.get()
    if not trace_id:
        trace_id = str(uuid4())
        _TRACE_ID_CONTEXT.set(trace_id)
    return trace_id


def get_trace_context() -> ContextVar[str]:
    return _TRACE_ID_CONTEXT


def build_error_payload(
    *, code: str, message: str, details: dict[str, Any], trace_id: str
) -> ErrorResponse:
    return ErrorResponse(code=code, message=message, details=details, trace_id=trace_id)


def _json_error(status_code: int, payload: ErrorResponse, headers: dict[str, str] | None = None) -> JSONResponse:
    merged = dict(headers or {})
    merged.setdefault(TRACE_ID_HEADER, payload.trace_id)
    return JSONResponse(status_code=status_code, content=payload.model_dump(), headers=merged)


def http_exception_to_response(exc: HTTPException, trace_id: str) -> JSONResponse:
    """Translate an ``HTTPException`` into a JSON response with trace headers."""

    detail = exc.detail
    if isinstance(detail, dict):
        payload_data = dict(detail)
        payload_data.setdefault("code", "INTERNAL")
        payload_data.setdefault("message", "Internal server error.")
        payload_data.setdefault("details", {})
        payload_data["trace_id"] = trace_id
        payload = ErrorResponse.model_validate(payload_data)
    else:
        code = "NOT_FOUND" if exc.status_code == status.HTTP_404_NOT_FOUND else "INTERNAL"
        payload = build_error_payload(code=code, message=str(detail), details={}, trace_id=trace_id)
    return _json_error(exc.status_code, payload, dict(exc.headers or {}))


def request_validation_response(exc: RequestValidationError, trace_id: str) -> JSONResponse:
    """Render request validation failures using the shared error model."""

    payload = build_error_payload(
        code="VALIDATION",
        message="Request validation failed.",
        details={"errors": _sanitize_details(list(exc.errors()))},
        trace_id=trace_id,
    )
    return _json_error(status.HTTP_400_BAD_REQUEST, payload)


def service_error_response(exc: ServiceError, trace_id: str) -> JSONResponse:
    payload = build_error_payload(
        code=exc.code,
        message=exc.message,
        details=exc.details,
        trace_id=trace_id,
    )
    return _json_error(exc.status_code, payload)


def internal_error_response(trace_id: str) -> JSONResponse:
    payload = build_error_payload(
        code="INTERNAL",
        message="Internal server error.",
        details={},
        trace_id=trace_id,
    )
    return _json_error(status.HTTP_500_INTERNAL_SERVER_ERROR, payload)


def _sanitize_details(details: Any) -> Any:
    """Convert exception instances inside details into serialisable values."""

    if isinstance(details, Exception):
        return str(details)
    if isinstance(details, dict):
        return {key: _sanitize_details(value) for key, value in details.items()}
    if isinstance(details, (list, tuple)):
        return [_sanitize_details(item) for item in details]
    return details


def raise_service_error(
    *,
    code: str,
    message: str | None,
    details: dict[str, Any],
    status_code: int | None = None,
) -> NoReturn:
    """Raise a structured ``ServiceError`` with a known definition."""

    definition = ERROR_DEFINITIONS.get(code, DEFAULT_ERROR_DEFINITION)
    LOGGER.warning(
        "service.error",
        extra={"extra_payload": {"code": code, "message": message or definition.message}},
    )
    raise ServiceError(
        code=code,
        status_code=status_code or definition.status_code,
        message=message or definition.message,
        details=_sanitize_details(details),
    )


def raise_validation_error(*, message: str, details: dict[str, Any]) -> NoReturn:
    raise_service_error(code="VALIDATION", message=message, details=details)


_FILESYSTEM_ERROR_MAP: dict[int, str] = {
    errno.EACCES: "FILESYSTEM_DENIED",
    errno.EPERM: "FILESYSTEM_DENIED",
    errno.ENOENT: "FILESYSTEM_NOT_FOUND",
}


def raise_filesystem_error(exc: OSError, *, message: str, details: dict[str, Any]) -> NoReturn:
    """Raise an HTTP error that reflects the filesystem failure."""

    if isinstance(exc, FileNotFoundError):
        code = "FILESYSTEM_NOT_FOUND"
    elif isinstance(exc, PermissionError):
        code = "FILESYSTEM_DENIED"
    else:
        code = _FILESYSTEM_ERROR_MAP.get(getattr(exc, "errno", None) or -1, "FILESYSTEM_ERROR")
    fs_details = dict(details)
    fs_details.setdefault("errno", getattr(exc, "errno", None))
    fs_details.setdefault("error", str(exc))
    raise_service_error(code=code, message=message, details=fs_details)


__all__: list[str] = [
    "DEFAULT_ERROR_RESPONSES",
    "TRACE_ID_HEADER",
    "build_error_payload",
    "default_error_responses",
    "ensure_trace_id",
    "get_trace_context",
    "http_exception_to_response",
    "internal_error_response",
    "raise_filesystem_error",
    "raise_service_error",
    "raise_validation_error",
    "request_validation_response",
    "resolve_trace_id",
    "service_error_response",
]
