"""
Shared fixtures for NutriAI tests.
"""

import io
import random
from datetime import datetime, timezone
from typing import List
from unittest.mock import AsyncMock

import pytest
from PIL import Image

from nutriai.config import Settings
from nutriai.domain.meal.recognition.models import AnalysisResult, FoodItem, ProcessedImage
from nutriai.domain.meal.recognition.ports import IVisionProvider
from nutriai.infrastructure.ai.mock_vision_provider import MockVisionProvider
from nutriai.infrastructure.image.processor import ImageProcessor
from nutriai.metrics.vision_analysis import reset_all


# ═══════════════════════════════════════════════════════════
# ISOLATION
# ═══════════════════════════════════════════════════════════


@pytest.fixture(autouse=True)
def _reset_metrics():
    """Metrics registry is process-global: start every test from zero."""
    reset_all()
    yield
    reset_all()


# ═══════════════════════════════════════════════════════════
# CONFIGURATION FIXTURES
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def settings() -> Settings:
    """Development settings with instant mock provider."""
    return Settings(app_env="test", mock_latency_ms=0)


@pytest.fixture
def production_settings() -> Settings:
    return Settings(app_env="production", mock_latency_ms=0)


# ═══════════════════════════════════════════════════════════
# IMAGE FIXTURES
# ═══════════════════════════════════════════════════════════


def _encode_image(
    size=(64, 48), mode: str = "RGB", fmt: str = "JPEG", color=(200, 120, 40)
) -> bytes:
    """Encode a solid-color image with Pillow."""
    img = Image.new(mode, size, color)
    buffer = io.BytesIO()
    img.save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def make_image_bytes():
    """Factory fixture: ``make_image_bytes(size=..., mode=..., fmt=..., color=...)``."""
    return _encode_image


@pytest.fixture
def jpeg_bytes() -> bytes:
    return _encode_image()


@pytest.fixture
def png_rgba_bytes() -> bytes:
    return _encode_image(size=(40, 40), mode="RGBA", fmt="PNG", color=(0, 0, 0, 0))


@pytest.fixture
def processed_image(jpeg_bytes: bytes) -> ProcessedImage:
    return ProcessedImage(
        content=jpeg_bytes,
        content_type="image/jpeg",
        width=64,
        height=48,
        size_bytes=len(jpeg_bytes),
    )


@pytest.fixture
def image_processor() -> ImageProcessor:
    return ImageProcessor()


# ═══════════════════════════════════════════════════════════
# DOMAIN MODEL FIXTURES
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def sample_items() -> List[FoodItem]:
    """Rice + chicken, as the mock estimator would produce them."""
    return [
        FoodItem(
            name="Steamed rice",
            quantity=150,
            unit="g",
            calories=252,
            protein=9.5,
            fat=7.0,
            carbs=37.8,
            confidence=0.8,
        ),
        FoodItem(
            name="Chicken breast",
            quantity=100,
            unit="g",
            calories=165,
            protein=6.2,
            fat=4.6,
            carbs=24.8,
            confidence=0.9,
        ),
    ]


@pytest.fixture
def sample_result(sample_items: List[FoodItem]) -> AnalysisResult:
    return AnalysisResult.from_items(
        sample_items,
        provider="openai",
        analysis_id="openai-test",
        processed_at=datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc),
        raw_response='{"secret": "raw model output"}',
    )


# ═══════════════════════════════════════════════════════════
# PROVIDER FIXTURES
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def mock_provider() -> MockVisionProvider:
    """Seeded, zero-latency mock estimator."""
    return MockVisionProvider(latency_ms=0, rng=random.Random(42))


@pytest.fixture
def primary_provider(sample_result: AnalysisResult) -> AsyncMock:
    """Primary provider double that succeeds with ``sample_result``."""
    provider = AsyncMock(spec=IVisionProvider)
    provider.name = "openai"
    provider.analyze_food.return_value = sample_result
    return provider


@pytest.fixture
def fallback_provider(mock_provider: MockVisionProvider) -> AsyncMock:
    """Fallback double delegating to the real mock estimator (call-countable)."""
    provider = AsyncMock(spec=IVisionProvider)
    provider.name = "mock"
    provider.analyze_food.side_effect = mock_provider.analyze_food
    return provider
