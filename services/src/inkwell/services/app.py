"""FastAPI application factory for the review service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import Any, AsyncIterator, Final

from fastapi import FastAPI, HTTPException, Request, Response, status
from fastapi.exceptions import RequestValidationError
from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from .config import ServiceSettings
from .http import (
    TRACE_ID_HEADER,
    default_error_responses,
    ensure_trace_id,
    get_trace_context,
    http_exception_to_response,
    internal_error_response,
    request_validation_response,
    resolve_trace_id,
    service_error_response,
)
from .middleware import BodySizeLimitMiddleware
from .providers import CredentialStore
from .review_service import ReviewService
from .routers import api_router, health_router
from .service_errors import ServiceError
from .settings import Settings, get_settings
from .synthesizer import ReviewSynthesizer

LOGGER = logging.getLogger(__name__)

SERVICE_VERSION: Final[str] = "0.1.0"


class TraceMiddleware:
    """ASGI middleware that applies trace IDs and unified error handling."""

    def __init__(self, app: ASGIApp, *, trace_context: ContextVar[str]) -> None:
        self.app = app
        self._trace_context = trace_context

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive)
        trace_id = resolve_trace_id(request.headers.get(TRACE_ID_HEADER))
        token = self._trace_context.set(trace_id)
        scope.setdefault("state", {})
        scope["state"]["trace_id"] = trace_id  # type: ignore[index]

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                headers.setdefault(TRACE_ID_HEADER, trace_id)
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except HTTPException as exc:
            await http_exception_to_response(exc, trace_id)(scope, receive, send)
        except RequestValidationError as exc:
            await request_validation_response(exc, trace_id)(scope, receive, send)
        except ServiceError as exc:
            await service_error_response(exc, trace_id)(scope, receive, send)
        except Exception as exc:  # pragma: no cover - defensive guard
            LOGGER.exception(
                "Unhandled error processing %s %s",
                request.method,
                request.url.path,
                exc_info=exc,
            )
            await internal_error_response(trace_id)(scope, receive, send)
        finally:
            self._trace_context.reset(token)


def create_app(
    settings: ServiceSettings | None = None,
    *,
    backend_settings: Settings | None = None,
    credentials: CredentialStore | None = None,
    synthesizer: ReviewSynthesizer | None = None,
    tuning_overrides: dict[str, Any] | None = None,
) -> FastAPI:
    """Construct the FastAPI application."""

    service_settings = settings or ServiceSettings.from_environment()
    review_service = ReviewService(
        settings=service_settings,
        backend_settings=backend_settings or get_settings(),
        credentials=credentials,
        synthesizer=synthesizer,
        tuning_overrides=tuning_overrides,
    )

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        await review_service.aclose()

    application = FastAPI(
        title="Inkwell Review Service",
        version=SERVICE_VERSION,
        responses=default_error_responses(),
        lifespan=lifespan,
    )
    application.state.settings = service_settings
    application.state.review_service = review_service
    application.state.service_version = SERVICE_VERSION

    async def http_exception_handler(_: Request, exc: Exception) -> Response:
        trace_id = ensure_trace_id()
        if isinstance(exc, HTTPException):
            return http_exception_to_response(exc, trace_id)
        return internal_error_response(trace_id)

    async def validation_exception_handler(_: Request, exc: Exception) -> Response:
        trace_id = ensure_trace_id()
        if isinstance(exc, RequestValidationError):
            return request_validation_response(exc, trace_id)
        return internal_error_response(trace_id)

    async def service_exception_handler(_: Request, exc: Exception) -> Response:
        trace_id = ensure_trace_id()
        if isinstance(exc, ServiceError):
            return service_error_response(exc, trace_id)
        return internal_error_response(trace_id)

    application.add_exception_handler(HTTPException, http_exception_handler)
    application.add_exception_handler(RequestValidationError, validation_exception_handler)
    application.add_exception_handler(ServiceError, service_exception_handler)

    application.add_middleware(
        BodySizeLimitMiddleware,
        limit=service_settings.max_request_body_bytes,
    )
    application.add_middleware(
        TraceMiddleware,
        trace_context=get_trace_context(),
    )

    application.include_router(health_router)
    application.include_router(api_router)

    @application.get("/", include_in_schema=False)
    async def service_index(request: Request) -> dict[str, str]:
        """Return a lightweight service manifest for manual probes."""

        version = getattr(request.app.state, "service_version", SERVICE_VERSION)
        return {"service": "inkwell-review", "version": version, "api_base": "/api/v1"}

    @application.get("/favicon.ico", include_in_schema=False)
    async def favicon_placeholder() -> Response:
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return application


__all__ = ["SERVICE_VERSION", "TraceMiddleware", "create_app"]
