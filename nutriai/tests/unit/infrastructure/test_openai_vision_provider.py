"""Unit tests for OpenAIVisionProvider.

The AsyncOpenAI client is injected as a MagicMock; no network access.
"""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import openai
import pytest

from nutriai.domain.meal.recognition.ports import IVisionProvider
from nutriai.domain.shared.errors import ProviderResponseError
from nutriai.infrastructure.ai.openai_vision_provider import OpenAIVisionProvider

REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")

VALID_PAYLOAD = {
    "items": [
        {
            "name": "grilled salmon",
            "quantity": 120,
            "unit": "g",
            "calories": 250,
            "protein": 25.0,
            "fat": 15.0,
            "carbs": 0.0,
            "confidence": 0.9,
        },
        {
            "name": "steamed rice",
            "quantity": 150,
            "unit": "g",
            "calories": 195,
            "protein": 4.0,
            "fat": 0.4,
            "carbs": 42.0,
            "confidence": 0.8,
        },
    ],
    "overall_confidence": 0.88,
}


def _completion(content: str) -> MagicMock:
    completion = MagicMock()
    completion.choices = [MagicMock()]
    completion.choices[0].message.content = content
    return completion


def _status_error(cls, status: int):
    return cls("upstream", response=httpx.Response(status, request=REQUEST), body=None)


@pytest.fixture
def mock_client() -> MagicMock:
    client = MagicMock()
    client.chat.completions.create = AsyncMock(
        return_value=_completion(json.dumps(VALID_PAYLOAD))
    )
    client.close = AsyncMock()
    return client


@pytest.fixture
def provider(mock_client) -> OpenAIVisionProvider:
    return OpenAIVisionProvider(client=mock_client, max_attempts=2, backoff_s=0)


class TestInit:
    def test_requires_api_key_without_client(self):
        with pytest.raises(ValueError, match="OPENAI_API_KEY"):
            OpenAIVisionProvider(api_key=None)

    def test_builds_client_without_sdk_retries(self):
        with patch("nutriai.infrastructure.ai.openai_vision_provider.AsyncOpenAI") as cls:
            OpenAIVisionProvider(api_key="sk-test", timeout_s=12)

        cls.assert_called_once_with(api_key="sk-test", timeout=12, max_retries=0)

    def test_implements_port(self, provider):
        assert isinstance(provider, IVisionProvider)
        assert provider.name == "openai"


class TestAnalyzeFood:
    @pytest.mark.asyncio
    async def test_parses_items_and_totals(self, provider, processed_image):
        result = await provider.analyze_food(processed_image)

        assert result.provider == "openai"
        assert [i.name for i in result.items] == ["grilled salmon", "steamed rice"]
        assert result.total_calories == 445
        assert result.total_protein == 29.0
        assert result.overall_confidence == 0.88
        assert result.raw_response == json.dumps(VALID_PAYLOAD)

    @pytest.mark.asyncio
    async def test_sends_image_as_data_url_with_hint(
        self, provider, mock_client, processed_image
    ):
        await provider.analyze_food(processed_image, description="salmon bowl")

        kwargs = mock_client.chat.completions.create.await_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["response_format"] == {"type": "json_object"}
        system, user = kwargs["messages"]
        assert system["role"] == "system"
        image_part, text_part = user["content"]
        assert image_part["image_url"]["url"] == processed_image.data_url
        assert "salmon bowl" in text_part["text"]

    @pytest.mark.asyncio
    async def test_no_hint_part_without_description(
        self, provider, mock_client, processed_image
    ):
        await provider.analyze_food(processed_image, description="   ")

        user = mock_client.chat.completions.create.await_args.kwargs["messages"][1]
        assert len(user["content"]) == 1

    @pytest.mark.asyncio
    async def test_empty_items_give_empty_result(self, provider, mock_client, processed_image):
        mock_client.chat.completions.create.return_value = _completion('{"items": []}')

        result = await provider.analyze_food(processed_image)

        assert result.items == []
        assert result.overall_confidence == 0.0

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "content",
        ["", "not json", '{"items": [{"name": "x"}]}', '{"items": [{"name": "  ", '
         '"quantity": 1, "calories": 1}]}', "[1, 2]"],
    )
    async def test_malformed_output_raises_provider_response_error(
        self, provider, mock_client, processed_image, content
    ):
        mock_client.chat.completions.create.return_value = _completion(content)

        with pytest.raises(ProviderResponseError):
            await provider.analyze_food(processed_image)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "content",
        [
            '{"items": [{"name": "rice", "quantity": 100, "calories": 1e400}]}',
            '{"items": [{"name": "rice", "quantity": 100, "calories": NaN}]}',
            '{"items": [{"name": "rice", "quantity": 100, "calories": 1e308}, '
            '{"name": "pasta", "quantity": 100, "calories": 1e308}]}',
        ],
    )
    async def test_non_finite_numbers_raise_provider_response_error(
        self, provider, mock_client, processed_image, content
    ):
        mock_client.chat.completions.create.return_value = _completion(content)

        with pytest.raises(ProviderResponseError):
            await provider.analyze_food(processed_image)

    @pytest.mark.asyncio
    async def test_no_choices_raises_provider_response_error(
        self, provider, mock_client, processed_image
    ):
        completion = MagicMock()
        completion.choices = []
        mock_client.chat.completions.create.return_value = completion

        with pytest.raises(ProviderResponseError):
            await provider.analyze_food(processed_image)


class TestRetryPolicy:
    @pytest.mark.asyncio
    async def test_transient_error_is_retried(self, provider, mock_client, processed_image):
        mock_client.chat.completions.create.side_effect = [
            openai.APIConnectionError(request=REQUEST),
            _completion(json.dumps(VALID_PAYLOAD)),
        ]

        result = await provider.analyze_food(processed_image)

        assert len(result.items) == 2
        assert mock_client.chat.completions.create.await_count == 2

    @pytest.mark.asyncio
    async def test_server_error_reraised_after_max_attempts(
        self, provider, mock_client, processed_image
    ):
        mock_client.chat.completions.create.side_effect = _status_error(
            openai.InternalServerError, 503
        )

        with pytest.raises(openai.InternalServerError):
            await provider.analyze_food(processed_image)

        assert mock_client.chat.completions.create.await_count == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "cls,status",
        [
            (openai.RateLimitError, 429),
            (openai.AuthenticationError, 401),
            (openai.NotFoundError, 404),
        ],
    )
    async def test_client_errors_not_retried(
        self, provider, mock_client, processed_image, cls, status
    ):
        mock_client.chat.completions.create.side_effect = _status_error(cls, status)

        with pytest.raises(cls):
            await provider.analyze_food(processed_image)

        assert mock_client.chat.completions.create.await_count == 1

    @pytest.mark.asyncio
    async def test_single_attempt_configuration(self, mock_client, processed_image):
        provider = OpenAIVisionProvider(client=mock_client, max_attempts=1, backoff_s=0)
        mock_client.chat.completions.create.side_effect = openai.APITimeoutError(request=REQUEST)

        with pytest.raises(openai.APITimeoutError):
            await provider.analyze_food(processed_image)

        assert mock_client.chat.completions.create.await_count == 1


@pytest.mark.asyncio
async def test_aclose_closes_client(provider, mock_client):
    await provider.aclose()
    mock_client.close.assert_awaited_once()
