"""Tests for the /api/vision/analyze endpoint (FastAPI TestClient)."""

import random
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from nutriai.app import create_app
from nutriai.config import Settings
from nutriai.domain.meal.recognition.ports import IVisionProvider
from nutriai.domain.shared.errors import ExternalServiceError, RateLimitError
from nutriai.infrastructure.ai.mock_vision_provider import MockVisionProvider

ENDPOINT = "/api/vision/analyze"


@pytest.fixture
def app(settings, primary_provider):
    return create_app(
        settings=settings,
        primary_provider=primary_provider,
        fallback_provider=MockVisionProvider(latency_ms=0, rng=random.Random(3)),
    )


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def form():
    return {"userId": "user123", "mealType": "lunch", "description": "rice"}


def _files(content: bytes, content_type: str = "image/jpeg"):
    return {"image": ("lunch.jpg", content, content_type)}


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_version(client):
    assert "version" in client.get("/version").json()


def test_analyze_success(client, form, jpeg_bytes, primary_provider):
    response = client.post(ENDPOINT, data=form, files=_files(jpeg_bytes))

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["meta"] == {"provider": "openai", "fallback": False}
    assert body["data"]["totalCalories"] == 417
    assert "rawResponse" not in body["data"]

    image, description = primary_provider.analyze_food.await_args.args
    assert image.content_type == "image/jpeg"
    assert description == "rice"


def test_analyze_fallback_on_rate_limit(client, form, jpeg_bytes, primary_provider):
    primary_provider.analyze_food.side_effect = RateLimitError("Rate limit exceeded")

    response = client.post(ENDPOINT, data=form, files=_files(jpeg_bytes))

    assert response.status_code == 200
    body = response.json()
    assert body["meta"]["provider"] == "mock"
    assert body["meta"]["fallback"] is True
    assert body["meta"]["reason"] == "primary_provider_error"
    assert body["meta"]["originalStatus"] == 429


def test_analyze_forbidden_surfaces_status(client, form, jpeg_bytes, primary_provider):
    primary_provider.analyze_food.side_effect = ExternalServiceError("Forbidden", status_code=403)

    response = client.post(ENDPOINT, data=form, files=_files(jpeg_bytes))

    assert response.status_code == 403
    body = response.json()
    assert body["success"] is False
    assert body["code"] == "API_ERROR"
    assert body["retryable"] is False


def test_missing_image(client, form, primary_provider):
    response = client.post(ENDPOINT, data=form)

    assert response.status_code == 400
    assert response.json()["error"] == "Image file is required"
    primary_provider.analyze_food.assert_not_awaited()


def test_missing_meal_type(client, jpeg_bytes, primary_provider):
    response = client.post(ENDPOINT, data={"userId": "user123"}, files=_files(jpeg_bytes))

    assert response.status_code == 400
    assert response.json()["error"] == "User ID and meal type are required"
    primary_provider.analyze_food.assert_not_awaited()


def test_unsupported_file_type(client, form, primary_provider):
    response = client.post(ENDPOINT, data=form, files=_files(b"%PDF-1.4", "application/pdf"))

    assert response.status_code == 400
    assert response.json()["code"] == "IMAGE_PROCESSING_ERROR"
    primary_provider.analyze_food.assert_not_awaited()


def test_null_fields_omitted(client, form, jpeg_bytes):
    body = client.post(ENDPOINT, data=form, files=_files(jpeg_bytes)).json()

    assert None not in body["meta"].values()
    assert "reason" not in body["meta"]


def test_production_hides_debug(production_settings, form, jpeg_bytes):
    primary = AsyncMock(spec=IVisionProvider)
    primary.name = "openai"
    primary.analyze_food.side_effect = ExternalServiceError("Forbidden", status_code=403)
    app = create_app(settings=production_settings, primary_provider=primary)

    with TestClient(app) as client:
        body = client.post(ENDPOINT, data=form, files=_files(jpeg_bytes)).json()

    assert "debug" not in body


def test_create_app_rejects_openai_without_key():
    with pytest.raises(ValueError, match="OPENAI_API_KEY"):
        create_app(settings=Settings(vision_provider="openai"))
