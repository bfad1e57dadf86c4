"""
OpenAI vision provider.

Adapter implementing IVisionProvider on top of the OpenAI chat completions
API (image sent inline as a ``data:`` URL, JSON object response).

Retry policy:
- Transport failures (connection, timeout) and 5xx responses are retried
  with exponential backoff, up to ``max_attempts`` attempts in total
- Every other failure (401, 404, 429, malformed output) propagates
  immediately; the orchestrator decides whether to fall back
"""

from __future__ import annotations

import json
import time
from typing import Any, Dict, List, Optional

import structlog
from openai import APIConnectionError, AsyncOpenAI, InternalServerError
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from nutriai.domain.meal.recognition.models import AnalysisResult, FoodItem, ProcessedImage
from nutriai.domain.shared.errors import ProviderResponseError
from nutriai.infrastructure.ai.prompts import (
    FOOD_ANALYSIS_SYSTEM_PROMPT,
    PROMPT_VERSION,
    build_user_hint,
)

logger = structlog.get_logger(__name__)

TRANSIENT_ERRORS = (APIConnectionError, InternalServerError)


# ═══════════════════════════════════════════════════════════
# RESPONSE SCHEMA
# ═══════════════════════════════════════════════════════════


class VisionResponseItem(BaseModel):
    """Single food as returned by the model."""

    model_config = ConfigDict(allow_inf_nan=False)

    name: str = Field(..., min_length=1)
    quantity: float = Field(..., gt=0)
    unit: str = Field("g", min_length=1)
    calories: float = Field(..., ge=0)
    protein: float = Field(0.0, ge=0)
    fat: float = Field(0.0, ge=0)
    carbs: float = Field(0.0, ge=0)
    confidence: float = Field(0.5, ge=0.0, le=1.0)


class VisionResponse(BaseModel):
    """Root object of the model output."""

    model_config = ConfigDict(allow_inf_nan=False)

    items: List[VisionResponseItem] = Field(default_factory=list, max_length=20)
    overall_confidence: Optional[float] = Field(None, ge=0.0, le=1.0)


# ═══════════════════════════════════════════════════════════
# PROVIDER
# ═══════════════════════════════════════════════════════════


class OpenAIVisionProvider:
    """
    OpenAI implementation of IVisionProvider.

    Example:
        >>> provider = OpenAIVisionProvider(api_key="sk-...")
        >>> result = await provider.analyze_food(image, description="ramen")
        >>> result.provider
        'openai'
    """

    name = "openai"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-4o-mini",
        timeout_s: float = 20.0,
        max_attempts: int = 2,
        backoff_s: float = 3.0,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        """
        Initialize the provider.

        Args:
            api_key: OpenAI API key (required unless ``client`` is given)
            model: Vision-capable chat model
            timeout_s: Per-request timeout in seconds
            max_attempts: Total attempts for transient failures
            backoff_s: Exponential backoff multiplier in seconds
            client: Pre-configured AsyncOpenAI client (for testing)

        Raises:
            ValueError: If neither api_key nor client is provided
        """
        if client is None:
            if not api_key:
                raise ValueError("OPENAI_API_KEY is required for the OpenAI vision provider")
            # SDK retries disabled: tenacity in _complete owns the retry policy
            client = AsyncOpenAI(api_key=api_key, timeout=timeout_s, max_retries=0)

        self._client = client
        self._model = model
        self._max_attempts = max(1, max_attempts)
        self._backoff_s = backoff_s

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.close()

    async def analyze_food(
        self, image: ProcessedImage, description: Optional[str] = None
    ) -> AnalysisResult:
        """
        Analyze a meal photo.

        Args:
            image: Normalized image (sent inline)
            description: Optional user hint

        Returns:
            AnalysisResult with provider "openai" and the raw model output
            kept in ``raw_response``

        Raises:
            openai.APIStatusError: Upstream rejected the request (after
                retries for 5xx)
            openai.APIConnectionError: Transport failure after retries
            ProviderResponseError: Model output is not valid analysis JSON
        """
        start = time.perf_counter()
        logger.info(
            "openai_vision_request",
            model=self._model,
            image_bytes=image.size_bytes,
            has_description=bool(description),
            prompt_version=PROMPT_VERSION,
        )

        content = await self._complete(self._build_messages(image, description))
        result = self._parse(content)

        logger.info(
            "openai_vision_complete",
            items=len(result.items),
            confidence=result.overall_confidence,
            elapsed_ms=int((time.perf_counter() - start) * 1000),
        )
        return result

    async def _complete(self, messages: List[Dict[str, Any]]) -> str:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential(multiplier=self._backoff_s),
            retry=retry_if_exception_type(TRANSIENT_ERRORS),
            before_sleep=self._log_retry,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                completion = await self._client.chat.completions.create(
                    model=self._model,
                    messages=messages,
                    response_format={"type": "json_object"},
                    temperature=0.2,
                    max_tokens=1500,
                )
        if not completion.choices:
            raise ProviderResponseError("Empty completion from vision model")
        return completion.choices[0].message.content or ""

    @staticmethod
    def _log_retry(retry_state: Any) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "openai_vision_retry",
            attempt=retry_state.attempt_number,
            error_type=type(exc).__name__ if exc else None,
        )

    def _build_messages(
        self, image: ProcessedImage, description: Optional[str]
    ) -> List[Dict[str, Any]]:
        user_content: List[Dict[str, Any]] = [
            {"type": "image_url", "image_url": {"url": image.data_url}},
        ]
        if description and description.strip():
            user_content.append({"type": "text", "text": build_user_hint(description)})
        return [
            {"role": "system", "content": FOOD_ANALYSIS_SYSTEM_PROMPT},
            {"role": "user", "content": user_content},
        ]

    def _parse(self, content: str) -> AnalysisResult:
        if not content.strip():
            raise ProviderResponseError("Empty response from vision model")
        try:
            payload = VisionResponse.model_validate(json.loads(content))
            items = [FoodItem(**item.model_dump()) for item in payload.items]
            return AnalysisResult.from_items(
                items,
                provider=self.name,
                overall_confidence=payload.overall_confidence,
                raw_response=content,
            )
        except json.JSONDecodeError as e:
            raise ProviderResponseError(f"Invalid JSON response: {e.msg}") from e
        except PydanticValidationError as e:
            raise ProviderResponseError(
                f"Response does not match schema ({e.error_count()} errors)"
            ) from e
        except OverflowError as e:
            raise ProviderResponseError("Response contains out-of-range numbers") from e
