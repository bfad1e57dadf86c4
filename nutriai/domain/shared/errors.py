"""
Domain exceptions.

Typed exceptions raised by the vision pipeline and its collaborators.
Every failure that crosses the orchestrator is turned into a
ClassifiedError (see domain.meal.recognition.classification); these
types only give the classifier a reliable status signal.

The ExternalServiceError subclasses (AuthenticationError, ModelNotFoundError,
RateLimitError, ServiceUnavailableError, TimeoutError) are the public
contract for providers that do not speak an SDK the classifier already
recognizes: raise the one matching the upstream condition and the
orchestrator maps its status and decides on fallback.
"""

from __future__ import annotations

from typing import Optional


# ═══════════════════════════════════════════════════════════
# BASE EXCEPTION
# ═══════════════════════════════════════════════════════════


class DomainError(Exception):
    """
    Base exception for all domain errors.

    Allows catching all domain errors with single except clause.
    """

    pass


# ═══════════════════════════════════════════════════════════
# VALIDATION EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class ValidationError(DomainError):
    """
    Caller input validation failed.

    Raised when:
    - Image upload missing
    - User ID or meal type missing

    Example:
        >>> raise ValidationError("Image file is required")
    """

    status_code = 400


class ImageProcessingError(ValidationError):
    """
    Uploaded image could not be turned into a ProcessedImage.

    Raised when:
    - Unsupported content type
    - File larger than the configured limit
    - Corrupted or undecodable image data

    Example:
        >>> raise ImageProcessingError("Invalid image format or corrupted file")
    """

    pass


# ═══════════════════════════════════════════════════════════
# EXTERNAL SERVICE EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class ExternalServiceError(DomainError):
    """
    External vision provider call failed.

    Base class for all provider-side errors. Carries the upstream HTTP
    status when the provider reported one.

    Example:
        >>> raise ExternalServiceError("Upstream rejected request", status_code=403)
    """

    status_code: Optional[int] = None

    def __init__(self, message: str = "", status_code: Optional[int] = None) -> None:
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


class AuthenticationError(ExternalServiceError):
    """
    Provider rejected the configured credentials.

    Example:
        >>> raise AuthenticationError("Invalid API key")
    """

    status_code = 401


class ModelNotFoundError(ExternalServiceError):
    """
    Provider model or resource does not exist (misconfiguration).

    Example:
        >>> raise ModelNotFoundError("Model gpt-x not found")
    """

    status_code = 404


class RateLimitError(ExternalServiceError):
    """
    API rate limit exceeded.

    Example:
        >>> raise RateLimitError("Vision rate limit: 100 requests/hour")
    """

    status_code = 429


class ServiceUnavailableError(ExternalServiceError):
    """
    External service unavailable.

    Example:
        >>> raise ServiceUnavailableError("Vision provider unavailable")
    """

    status_code = 503


class TimeoutError(ExternalServiceError):  # noqa: A001
    """
    Provider did not answer in time.

    Example:
        >>> raise TimeoutError("Vision API timeout after 20s")
    """

    status_code = 504


class ProviderResponseError(ExternalServiceError):
    """
    Provider answered but the payload could not be parsed.

    Carries no status: the classifier treats it as an unknown failure.

    Example:
        >>> raise ProviderResponseError("Invalid JSON response")
    """

    pass
