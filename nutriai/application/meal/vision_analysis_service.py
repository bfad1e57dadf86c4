"""
Vision analysis orchestration service.

Runs one meal photo analysis: validates the request, normalizes the
image, invokes the primary provider and, when the primary fails with a
recoverable classified error, transparently degrades to the fallback
estimator. Every outcome is returned as an EnvelopeResponse.

Flow:
    Idle -> Invoking(primary) -> Succeeded
                              -> Failed(classified) -> Invoking(fallback) -> Succeeded(fallback)
                                                                          -> FailedFatal
                                                    -> FailedFatal

Design Pattern: Service Layer + Dependency Injection
"""

from __future__ import annotations

from typing import Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field

from nutriai.application.meal import envelope
from nutriai.application.meal.envelope import EnvelopeResponse
from nutriai.application.meal.error_classifier import classify
from nutriai.config import Settings
from nutriai.domain.meal.recognition.classification import ClassifiedError
from nutriai.domain.meal.recognition.models import AnalysisResult, ProcessedImage
from nutriai.domain.meal.recognition.ports import IImageProcessor, IVisionProvider
from nutriai.domain.shared.errors import ValidationError
from nutriai.metrics.vision_analysis import record_error, record_fallback, time_analysis

logger = structlog.get_logger(__name__)

IMAGE_REQUIRED = "Image file is required"
USER_AND_MEAL_REQUIRED = "User ID and meal type are required"


class VisionAnalysisRequest(BaseModel):
    """
    Caller input for one analysis.

    Fields are optional at the type level: missing values are rejected by
    the orchestrator with a ValidationError envelope, not by pydantic.
    """

    model_config = ConfigDict(frozen=True)

    image: Optional[bytes] = Field(None, description="Raw uploaded bytes")
    content_type: Optional[str] = Field(None, description="Declared MIME type")
    description: Optional[str] = Field(None, description="Free-text hint")
    user_id: Optional[str] = Field(None, description="Caller user id")
    meal_type: Optional[str] = Field(None, description="breakfast | lunch | dinner | snack")


class VisionAnalysisOrchestrator:
    """
    Fallback orchestrator for meal photo analysis.

    Dependencies (injected, never mutated):
    - primary: IVisionProvider - Provider tried first
    - fallback: IVisionProvider - Estimator used on recoverable failures
    - image_processor: IImageProcessor - Upload normalization
    - settings: Settings - Fallback policy and environment

    Guarantees:
    - Invalid input never reaches a provider
    - The fallback provider is invoked at most once per request
    - When both providers fail, the primary's classification is returned

    Example:
        >>> orchestrator = VisionAnalysisOrchestrator(
        ...     primary=openai_provider,
        ...     fallback=MockVisionProvider(latency_ms=0),
        ...     image_processor=ImageProcessor(),
        ...     settings=Settings(),
        ... )
        >>> response = await orchestrator.analyze(request)
        >>> response.status_code
        200
    """

    def __init__(
        self,
        primary: IVisionProvider,
        fallback: IVisionProvider,
        image_processor: IImageProcessor,
        settings: Settings,
    ):
        self.primary = primary
        self.fallback = fallback
        self.image_processor = image_processor
        self.settings = settings

    async def analyze(self, request: VisionAnalysisRequest) -> EnvelopeResponse:
        """
        Analyze a meal photo.

        Workflow:
        1. Validate inputs (no provider invoked on failure)
        2. Normalize the image (failure never falls back)
        3. Invoke the primary provider once
        4. On failure: classify, then invoke the fallback once if eligible
        5. Surface the primary's classification if nothing succeeded

        Args:
            request: Caller input

        Returns:
            EnvelopeResponse with HTTP status 200, 400 or the classified status
        """
        log = logger.bind(user_id=request.user_id, meal_type=request.meal_type)
        log.info(
            "vision_analysis_requested",
            image_bytes=len(request.image) if request.image else 0,
            has_description=bool(request.description),
            provider=self.primary.name,
        )

        try:
            image = self._prepare(request)
        except Exception as e:
            return self._failure(classify(e), log)

        try:
            result = await self._invoke(self.primary, image, request.description)
        except Exception as e:
            classified = classify(e)
            log.warning(
                "vision_provider_failed",
                provider=self.primary.name,
                kind=classified.kind,
                code=classified.code,
                status=classified.status_code,
                cause=classified.cause,
            )
            fallback_result = await self._try_fallback(classified, image, request.description, log)
            if fallback_result is None:
                return self._failure(classified, log)
            return envelope.success(fallback_result, original_status=classified.status_code)

        log.info(
            "vision_analysis_completed",
            provider=result.provider,
            fallback=False,
            items=len(result.items),
        )
        return envelope.success(result)

    def is_fallback_eligible(
        self, classified: ClassifiedError, image: Optional[ProcessedImage]
    ) -> bool:
        """Eligible statuses, provider-side kind, an image in flight, fallback enabled."""
        return (
            self.settings.enable_fallback
            and image is not None
            and classified.is_provider_failure
            and classified.status_code in self.settings.fallback_statuses
        )

    def _prepare(self, request: VisionAnalysisRequest) -> ProcessedImage:
        if not request.image:
            raise ValidationError(IMAGE_REQUIRED)
        if not (request.user_id and request.user_id.strip()) or not (
            request.meal_type and request.meal_type.strip()
        ):
            raise ValidationError(USER_AND_MEAL_REQUIRED)
        return self.image_processor.process(request.image, request.content_type)

    async def _invoke(
        self, provider: IVisionProvider, image: ProcessedImage, description: Optional[str]
    ) -> AnalysisResult:
        with time_analysis(provider.name):
            return await provider.analyze_food(image, description)

    async def _try_fallback(
        self,
        classified: ClassifiedError,
        image: ProcessedImage,
        description: Optional[str],
        log: structlog.stdlib.BoundLogger,
    ) -> Optional[AnalysisResult]:
        if not self.is_fallback_eligible(classified, image):
            return None

        try:
            result = await self._invoke(self.fallback, image, description)
        except Exception as e:
            fallback_failure = classify(e)
            log.error(
                "vision_fallback_failed",
                provider=self.fallback.name,
                code=fallback_failure.code,
                cause=fallback_failure.cause,
                original_status=classified.status_code,
            )
            return None

        record_fallback(envelope.FALLBACK_REASON, classified.status_code)
        log.info(
            "vision_fallback_used",
            provider=result.provider,
            reason=envelope.FALLBACK_REASON,
            original_status=classified.status_code,
            items=len(result.items),
        )
        return result.as_fallback()

    def _failure(
        self, classified: ClassifiedError, log: structlog.stdlib.BoundLogger
    ) -> EnvelopeResponse:
        record_error(classified.code)
        log.warning(
            "vision_analysis_failed",
            kind=classified.kind,
            code=classified.code,
            status=classified.status_code,
            retryable=classified.retryable,
        )
        return envelope.failure(classified, include_debug=not self.settings.is_production)
