"""Review creation, lookup, and suggestion application routes."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from ..http import default_error_responses
from ..models.apply import ApplyAllResult
from ..models.critique import Critique
from ..models.requests import ApplyRequest, ReviewRequest
from ..review_service import ReviewService
from .dependencies import get_review_service
from .shared import translate_errors

LOGGER = logging.getLogger(__name__)

__all__ = ["router"]

router = APIRouter(prefix="/reviews", tags=["reviews"], responses=default_error_responses())


@router.post("", response_model=Critique)
async def create_review(
    payload: ReviewRequest,
    service: ReviewService = Depends(get_review_service),
) -> Critique:
    """Generate and register a critique for the submitted revision."""

    with translate_errors(file_path=payload.file_path):
        return await service.review(payload)


@router.get("/{review_id}", response_model=Critique)
async def get_review(
    review_id: str,
    service: ReviewService = Depends(get_review_service),
) -> Critique:
    with translate_errors(review_id=review_id):
        return await service.get_review(review_id)


@router.post("/{review_id}/apply", response_model=ApplyAllResult)
async def apply_suggestions(
    review_id: str,
    payload: ApplyRequest,
    service: ReviewService = Depends(get_review_service),
) -> ApplyAllResult:
    """Apply the selected suggestions; per-suggestion failures are reported in the body."""

    with translate_errors(review_id=review_id):
        return await service.apply(review_id, payload.suggestion_ids)


@router.post("/{review_id}/apply-remaining", response_model=ApplyAllResult)
async def apply_remaining(
    review_id: str,
    service: ReviewService = Depends(get_review_service),
) -> ApplyAllResult:
    with translate_errors(review_id=review_id):
        return await service.apply_remaining(review_id)
