"""
Result envelope.

Uniform success / failure shapes returned across the HTTP boundary.
All JSON renderings use camelCase keys and omit null fields.

Success:
    {"success": true, "data": {...}, "meta": {"provider": "mock", "fallback": true,
     "reason": "primary_provider_error", "originalStatus": 429}}

Failure:
    {"success": false, "error": "...", "code": "RATE_LIMITED", "retryable": true,
     "details": "...", "debug": {...}}
"""

from __future__ import annotations

from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from nutriai.domain.meal.recognition.classification import ClassifiedError
from nutriai.domain.meal.recognition.models import AnalysisResult

FALLBACK_REASON = "primary_provider_error"

GENERIC_MESSAGE = "Failed to analyze image. Please try again later."

_MESSAGES_BY_STATUS = {
    400: "The analysis service could not read this photo. Please try a different photo.",
    401: "The analysis service credentials are invalid. Please contact the administrator.",
    404: "The analysis model is currently unavailable. Please contact the administrator.",
    429: "Too many requests. Please try again later or enter the meal manually.",
    503: "The analysis service is busy. Please try again shortly.",
    504: "The analysis service is busy. Please try again shortly.",
}

_IMAGE_MESSAGE = "Could not process the image. Please try a different photo."


class _EnvelopeModel(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class AnalysisMeta(_EnvelopeModel):
    """Provenance metadata attached to every success."""

    provider: str = Field(..., description="Provider that produced the data")
    fallback: bool = Field(False, description="Data comes from the fallback estimator")
    reason: Optional[str] = Field(None, description="Why fallback was used")
    original_status: Optional[int] = Field(None, description="Primary classified status")


class DebugInfo(_EnvelopeModel):
    """Raw failure details, only rendered outside production."""

    name: str
    message: str
    status: int
    stack: Optional[str] = None


class SuccessEnvelope(_EnvelopeModel):
    success: Literal[True] = True
    data: AnalysisResult
    meta: AnalysisMeta


class ErrorEnvelope(_EnvelopeModel):
    success: Literal[False] = False
    error: str = Field(..., description="User-facing message")
    code: str = Field(..., description="Machine readable code")
    retryable: bool = False
    details: Optional[str] = Field(None, description="Technical message")
    debug: Optional[DebugInfo] = None


class EnvelopeResponse(BaseModel):
    """Envelope paired with the HTTP status it must be sent with."""

    model_config = ConfigDict(frozen=True)

    status_code: int
    body: Union[SuccessEnvelope, ErrorEnvelope]

    @property
    def success(self) -> bool:
        return self.body.success

    def content(self) -> Dict[str, Any]:
        """JSON-ready body: camelCase keys, null fields omitted."""
        return self.body.model_dump(mode="json", by_alias=True, exclude_none=True)


def user_message(classified: ClassifiedError) -> str:
    """
    Non-technical message for a classified failure.

    Only input validation failures echo their own text (raised locally and
    written for the caller). Provider text never reaches ``error``.
    """
    if classified.kind == "ValidationError":
        if classified.code == "VALIDATION_ERROR":
            return classified.message
        if classified.code == "IMAGE_PROCESSING_ERROR":
            return _IMAGE_MESSAGE
        return GENERIC_MESSAGE
    return _MESSAGES_BY_STATUS.get(classified.status_code, GENERIC_MESSAGE)


def success(result: AnalysisResult, *, original_status: Optional[int] = None) -> EnvelopeResponse:
    """
    Wrap a provider result.

    Args:
        result: Provider output (fallback flag decides the meta reason)
        original_status: Primary classified status when ``result`` is a fallback
    """
    meta = AnalysisMeta(
        provider=result.provider,
        fallback=result.fallback,
        reason=FALLBACK_REASON if result.fallback else None,
        original_status=original_status if result.fallback else None,
    )
    return EnvelopeResponse(status_code=200, body=SuccessEnvelope(data=result, meta=meta))


def failure(classified: ClassifiedError, *, include_debug: bool) -> EnvelopeResponse:
    """
    Wrap a classified failure; HTTP status is the classified status.

    Args:
        classified: Failure to surface
        include_debug: Attach the raw details (never in production)
    """
    debug = None
    if include_debug:
        debug = DebugInfo(
            name=classified.cause,
            message=classified.message,
            status=classified.status_code,
            stack=classified.stack,
        )
    body = ErrorEnvelope(
        error=user_message(classified),
        code=classified.code,
        retryable=classified.retryable,
        details=classified.message,
        debug=debug,
    )
    return EnvelopeResponse(status_code=classified.status_code, body=body)
