"""Health endpoint."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from ..review_service import ReviewService
from .dependencies import get_review_service, get_service_version

__all__ = ["router", "health"]


router = APIRouter(prefix="/api/v1", tags=["health"])


@router.get("/healthz")
async def health(
    version: str = Depends(get_service_version),
    service: ReviewService = Depends(get_review_service),
) -> dict[str, Any]:
    return {
        "status": "ok",
        "version": version,
        "backend": service.backend_mode,
        "reviews_cached": len(service.ledger),
    }
