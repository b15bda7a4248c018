"""API v1 aggregate router."""

from __future__ import annotations

from fastapi import APIRouter

from .reviews import router as reviews_router

router = APIRouter(prefix="/api/v1")
router.include_router(reviews_router)

__all__ = ["router"]
