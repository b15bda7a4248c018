"""Coordinates analysis, synthesis, the review ledger, and suggestion application."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any

from .applicator import SuggestionApplicator
from .config import ServiceSettings
from .diff_engine import compute_unified_diff
from .documents import FileDocument, open_project_document
from .errors import InvalidArgumentError
from .models.analysis import DiffAnalysis
from .models.apply import ApplyAllResult
from .models.critique import Critique, Suggestion
from .models.requests import ReviewRequest
from .providers import CredentialStore, SettingsCredentialStore, initialize_backend
from .rate_limiter import RateLimiterRegistry
from .review_store import ReviewLedger
from .settings import Settings
from .synthesizer import ReviewSynthesizer

LOGGER = logging.getLogger("inkwell.services.review_service")


class ReviewService:
    """Application-level facade used by the HTTP routers."""

    def __init__(
        self,
        *,
        settings: ServiceSettings,
        backend_settings: Settings,
        credentials: CredentialStore | None = None,
        limiters: RateLimiterRegistry | None = None,
        ledger: ReviewLedger | None = None,
        applicator: SuggestionApplicator | None = None,
        synthesizer: ReviewSynthesizer | None = None,
        tuning_overrides: dict[str, Any] | None = None,
    ) -> None:
        self._settings = settings
        self._backend_settings = backend_settings
        self._credentials = credentials or SettingsCredentialStore(backend_settings)
        self._limiters = limiters or RateLimiterRegistry(
            default_max_tokens=backend_settings.rate_limit_max_tokens,
            default_refill_rate=backend_settings.rate_limit_refill_per_second,
        )
        self.ledger = ledger or ReviewLedger(settings.review_ledger_capacity)
        self.applicator = applicator or SuggestionApplicator(settle_delay=settings.apply_settle_delay)
        self._synthesizer = synthesizer
        self._tuning_overrides = dict(tuning_overrides or {})
        self._init_lock = asyncio.Lock()

    @property
    def limiters(self) -> RateLimiterRegistry:
        return self._limiters

    @property
    def backend_mode(self) -> str:
        if self._synthesizer is not None:
            return self._synthesizer.mode
        return self._backend_settings.provider

    @property
    def project_base_dir(self) -> Path:
        return self._settings.project_base_dir

    async def synthesizer(self) -> ReviewSynthesizer:
        """Return the synthesizer, resolving the configured backend on first use."""

        if self._synthesizer is not None:
            return self._synthesizer
        async with self._init_lock:
            if self._synthesizer is None:
                result = await initialize_backend(
                    self._backend_settings.provider_config(),
                    self._credentials,
                    limiters=self._limiters,
                    tuning=self._backend_settings.backend_tuning(**self._tuning_overrides),
                )
                if not result.ok and result.error is not None:
                    LOGGER.warning(
                        "provider.unavailable",
                        extra={
                            "extra_payload": {
                                "provider": self._backend_settings.provider,
                                "code": result.error.code,
                                "error": result.error.message,
                            }
                        },
                    )
                self._synthesizer = ReviewSynthesizer(
                    result.adapter,
                    writing_style=self._backend_settings.writing_style,
                )
        return self._synthesizer

    async def review(self, request: ReviewRequest) -> Critique:
        document = self._document(request.file_path)
        text = request.text
        if text is None and document is not None:
            text = await asyncio.to_thread(document.read_text)

        synthesizer = await self.synthesizer()
        analysis = await self._analysis(request, text or "", synthesizer)
        critique = await synthesizer.generate_review(analysis, request.file_path, text)

        version = await asyncio.to_thread(_document_version, document)
        if version is not None:
            critique = critique.model_copy(
                update={
                    "document_version": version,
                    "suggestions": [
                        suggestion.model_copy(update={"document_version_at_proposal": version})
                        for suggestion in critique.suggestions
                    ],
                }
            )
        await self.ledger.register(critique)
        LOGGER.info(
            "review.created",
            extra={
                "extra_payload": {
                    "review_id": critique.review_id,
                    "source": critique.source,
                    "file_path": request.file_path,
                    "suggestions": len(critique.suggestions),
                    "rating": critique.rating,
                }
            },
        )
        return critique

    async def get_review(self, review_id: str) -> Critique:
        return await self.ledger.get(review_id)

    async def apply(self, review_id: str, suggestion_ids: list[str]) -> ApplyAllResult:
        critique = await self.ledger.get(review_id)
        selected = await self.ledger.select(review_id, suggestion_ids)
        not_appliable = [suggestion.id for suggestion in selected if not suggestion.is_appliable]
        if not_appliable:
            raise InvalidArgumentError(
                "Suggestions without replacement text cannot be applied.",
                details={"suggestion_ids": not_appliable},
            )

        document = self._document(critique.source_path)
        if len(selected) == 1:
            result = await self.applicator.apply_one(selected[0], document)
            outcome = ApplyAllResult(
                results=[result],
                success_count=1 if result.success else 0,
                failure_count=0 if result.success else 1,
            )
        else:
            outcome = await self.applicator.apply_all(selected, document)
        await self._record(review_id, outcome)
        return outcome

    async def apply_remaining(self, review_id: str) -> ApplyAllResult:
        critique = await self.ledger.get(review_id)
        pending: list[Suggestion] = await self.ledger.remaining(review_id)
        outcome = await self.applicator.apply_all(pending, self._document(critique.source_path))
        await self._record(review_id, outcome)
        return outcome

    async def aclose(self) -> None:
        if self._synthesizer is not None:
            await self._synthesizer.aclose()

    # Internal helpers --------------------------------------------------

    def _document(self, file_path: str | None) -> FileDocument | None:
        if not file_path:
            return None
        return open_project_document(self._settings.project_base_dir, file_path)

    async def _analysis(
        self, request: ReviewRequest, text: str, synthesizer: ReviewSynthesizer
    ) -> DiffAnalysis:
        if request.analysis is not None:
            return request.analysis
        diff_text = request.diff
        if diff_text is None:
            diff_text = compute_unified_diff(
                request.previous_text or "", text, file_path=request.file_path
            )
        return await synthesizer.analyze_changes(diff_text, text, request.file_path)

    async def _record(self, review_id: str, outcome: ApplyAllResult) -> None:
        applied = [result.suggestion_id for result in outcome.results if result.success]
        if applied:
            await self.ledger.mark_applied(review_id, applied)


def _document_version(document: FileDocument | None) -> int | None:
    if document is None:
        return None
    try:
        return document.version
    except OSError:
        return None


__all__ = ["ReviewService"]
