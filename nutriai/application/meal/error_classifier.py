"""
Error classifier.

Maps any raw failure (provider exception, domain error, arbitrary object)
to exactly one ClassifiedError variant. ``classify`` never raises.

Status discovery order:
1. Already classified failures are returned unchanged
2. Domain validation errors (input, image processing)
3. OpenAI SDK errors (timeout, connection, HTTP status)
4. Transport and builtin timeouts
5. ``status_code`` / ``status`` / ``statusCode`` / ``response.status_code``
6. "timeout" in the message
"""

from __future__ import annotations

import asyncio
import builtins
import traceback
from collections.abc import Mapping
from typing import Any, Optional

import httpx
import openai

from nutriai.domain.meal.recognition.classification import (
    ApiFailure,
    ClassifiedError,
    TimeoutFailure,
    UnknownFailure,
    ValidationFailure,
)
from nutriai.domain.shared.errors import ImageProcessingError, ValidationError

_CLASSIFIED_TYPES = (ValidationFailure, ApiFailure, TimeoutFailure, UnknownFailure)

_TIMEOUT_TYPES = (httpx.TimeoutException, builtins.TimeoutError, asyncio.TimeoutError)

_STATUS_ATTRIBUTES = ("status_code", "status", "statusCode")

# status -> (code, retryable) for ApiError statuses with a dedicated mapping
_API_CODES = {
    400: ("PROVIDER_BAD_REQUEST", False),
    401: ("PROVIDER_AUTH_ERROR", False),
    404: ("PROVIDER_NOT_FOUND", False),
    429: ("RATE_LIMITED", True),
    503: ("SERVICE_UNAVAILABLE", True),
}


def classify(raw: Any) -> ClassifiedError:
    """
    Normalize a raw failure.

    Args:
        raw: Exception or any other value reported as a failure

    Returns:
        ClassifiedError variant (never raises)

    Example:
        >>> classify(RateLimitError("slow down")).code
        'RATE_LIMITED'
        >>> classify(None).status_code
        500
    """
    if isinstance(raw, _CLASSIFIED_TYPES):
        return raw

    message = _message_of(raw)
    cause = type(raw).__name__ if raw is not None else "None"
    stack = _stack_of(raw)

    if isinstance(raw, ImageProcessingError):
        return ValidationFailure(
            message=message, code="IMAGE_PROCESSING_ERROR", cause=cause, stack=stack
        )
    if isinstance(raw, ValidationError):
        return ValidationFailure(
            message=message, code="VALIDATION_ERROR", cause=cause, stack=stack
        )

    status = _discover_status(raw, message)
    if status is None:
        return UnknownFailure(message=message, code="UNKNOWN_ERROR", cause=cause, stack=stack)
    return from_status(status, message=message, cause=cause, stack=stack)


def from_status(
    status: int,
    *,
    message: str,
    cause: str = "Error",
    stack: Optional[str] = None,
) -> ClassifiedError:
    """
    Build the variant mapped to an upstream HTTP-style status (400..599).

    A 400 here is the provider rejecting our request, not caller input:
    caller input problems are raised as domain ValidationError and never
    reach this table. Statuses without a dedicated mapping keep their
    value as a generic ApiError, retryable for 5xx.
    """
    if status == 504:
        return TimeoutFailure(
            message=message, code="UPSTREAM_TIMEOUT", status_code=504, cause=cause, stack=stack
        )
    code, retryable = _API_CODES.get(status, ("API_ERROR", status >= 500))
    return ApiFailure(
        message=message,
        code=code,
        status_code=status,
        retryable=retryable,
        cause=cause,
        stack=stack,
    )


# ═══════════════════════════════════════════════════════════
# STATUS DISCOVERY
# ═══════════════════════════════════════════════════════════


def _discover_status(raw: Any, message: str) -> Optional[int]:
    # APITimeoutError subclasses APIConnectionError: check it first
    if isinstance(raw, openai.APITimeoutError):
        return 504
    if isinstance(raw, openai.APIConnectionError):
        return 503
    if isinstance(raw, openai.APIStatusError):
        return _as_status(raw.status_code)
    if isinstance(raw, _TIMEOUT_TYPES):
        return 504

    for attr in _STATUS_ATTRIBUTES:
        status = _as_status(_lookup(raw, attr))
        if status is not None:
            return status

    response = _lookup(raw, "response")
    if response is not None:
        status = _as_status(_lookup(response, "status_code"))
        if status is not None:
            return status

    if "timeout" in message.lower():
        return 504
    return None


def _lookup(obj: Any, name: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, Mapping):
        return obj.get(name)
    try:
        return getattr(obj, name, None)
    except Exception:  # properties may raise on half-built SDK objects
        return None


def _as_status(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        status = int(value)
    except (TypeError, ValueError):
        return None
    if 400 <= status <= 599:
        return status
    return None


def _message_of(raw: Any) -> str:
    if raw is None:
        return "An unknown error occurred"
    if isinstance(raw, str):
        return raw or "An unknown error occurred"
    if isinstance(raw, BaseException):
        return str(raw) or type(raw).__name__
    if isinstance(raw, Mapping) and raw.get("message"):
        return str(raw["message"])
    return repr(raw)


def _stack_of(raw: Any) -> Optional[str]:
    if isinstance(raw, BaseException) and raw.__traceback__ is not None:
        return "".join(traceback.format_exception(type(raw), raw, raw.__traceback__))
    return None
