"""
Port (interface) for vision analysis providers.

This port defines the contract that vision providers (the deterministic
mock estimator, the OpenAI adapter, future providers) implement to be
used by the fallback orchestrator.

Design Pattern: Ports & Adapters (Hexagonal Architecture)
"""

from typing import Optional, Protocol, runtime_checkable

from nutriai.domain.meal.recognition.models import AnalysisResult, ProcessedImage


@runtime_checkable
class IVisionProvider(Protocol):
    """
    Interface for vision analysis providers.

    Implementations can be:
    - MockVisionProvider (deterministic estimator, also the fallback target)
    - OpenAIVisionProvider (real upstream inference)

    Implementations must let upstream failures propagate: the orchestrator
    classifies them and decides whether to fall back.
    """

    name: str

    async def analyze_food(
        self, image: ProcessedImage, description: Optional[str] = None
    ) -> AnalysisResult:
        """
        Estimate the foods and nutrition in a meal photo.

        Args:
            image: Normalized image payload
            description: Optional free-text hint from the user

        Returns:
            AnalysisResult produced by this provider

        Raises:
            ExternalServiceError: Upstream failure with a status. Providers
                without an SDK the classifier recognizes raise the matching
                subclass (AuthenticationError, ModelNotFoundError,
                RateLimitError, ServiceUnavailableError, TimeoutError) or
                pass ``status_code`` explicitly
            ProviderResponseError: Upstream answered with unusable output
        """
        ...


@runtime_checkable
class IImageProcessor(Protocol):
    """Turns a raw upload into a ProcessedImage."""

    def process(self, content: bytes, content_type: Optional[str]) -> ProcessedImage:
        """
        Raises:
            ImageProcessingError: If the upload is not a usable image
        """
        ...
