"""Provider factory for vision analysis.

Provider selection happens once, at composition time, from Settings:
- VISION_PROVIDER=openai: OpenAI vision (requires OPENAI_API_KEY)
- VISION_PROVIDER=mock: mock estimator (default)

The fallback provider is always the mock estimator.

Usage:
    from nutriai.infrastructure.ai.factory import (
        create_vision_provider,
        create_fallback_provider,
    )

    primary = create_vision_provider(settings)
    fallback = create_fallback_provider(settings)
"""

from nutriai.config import Settings
from nutriai.domain.meal.recognition.ports import IVisionProvider
from nutriai.infrastructure.ai.mock_vision_provider import MockVisionProvider
from nutriai.infrastructure.ai.openai_vision_provider import OpenAIVisionProvider


def create_vision_provider(settings: Settings) -> IVisionProvider:
    """Create the primary vision provider.

    Args:
        settings: Application settings

    Returns:
        IVisionProvider: OpenAI or mock provider

    Raises:
        ValueError: If VISION_PROVIDER=openai and OPENAI_API_KEY is missing

    Example:
        # In .env (production):
        VISION_PROVIDER=openai
        OPENAI_API_KEY=sk-...

        # In tests:
        VISION_PROVIDER=mock
    """
    mode = settings.vision_provider.lower()

    if mode == "openai":
        if not settings.openai_api_key:
            raise ValueError(
                "VISION_PROVIDER=openai but OPENAI_API_KEY not set. "
                "Set OPENAI_API_KEY in .env or use VISION_PROVIDER=mock"
            )
        return OpenAIVisionProvider(
            api_key=settings.openai_api_key,
            model=settings.openai_vision_model,
            timeout_s=settings.openai_timeout_s,
            max_attempts=settings.vision_max_attempts,
            backoff_s=settings.vision_retry_backoff_s,
        )

    # Default: mock (safe fallback)
    return MockVisionProvider(latency_ms=settings.mock_latency_ms)


def create_fallback_provider(settings: Settings) -> IVisionProvider:
    """Create the provider used when the primary fails recoverably."""
    return MockVisionProvider(latency_ms=settings.mock_latency_ms)
