"""Dependency injection helpers for FastAPI routers."""

from __future__ import annotations

from typing import cast

from fastapi import Request

from ..config import ServiceSettings
from ..review_service import ReviewService

__all__ = ["get_review_service", "get_service_version", "get_settings"]


def get_settings(request: Request) -> ServiceSettings:
    """Return the service settings configured for the application."""

    return cast(ServiceSettings, request.app.state.settings)


def get_review_service(request: Request) -> ReviewService:
    return cast(ReviewService, request.app.state.review_service)


def get_service_version(request: Request) -> str:
    """Return the service version attached to the application state."""

    return getattr(request.app.state, "service_version", "unknown")
