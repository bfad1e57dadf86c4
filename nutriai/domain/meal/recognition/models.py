"""
Domain models for meal photo analysis.

Value types exchanged between the orchestrator and vision providers.
"""

from __future__ import annotations

import base64
import math
from datetime import datetime, timezone
from typing import List, Optional, Sequence
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


def round_calories(value: float) -> int:
    """Calories are reported as whole kcal."""
    return int(round(value))


def round_grams(value: float) -> float:
    """Macro grams are reported with one decimal."""
    return round(value, 1)


class ProcessedImage(BaseModel):
    """
    Normalized image payload ready for analysis.

    Produced by the image processor from an upload, consumed once by the
    orchestrator and discarded afterwards.

    Attributes:
        content: Encoded image bytes
        content_type: MIME type of ``content``
        width: Width in pixels
        height: Height in pixels
        size_bytes: Size of ``content``

    Example:
        >>> image = ProcessedImage(
        ...     content=b"...",
        ...     content_type="image/jpeg",
        ...     width=1200,
        ...     height=900,
        ...     size_bytes=3,
        ... )
        >>> image.data_url.startswith("data:image/jpeg;base64,")
        True
    """

    model_config = ConfigDict(frozen=True)

    content: bytes = Field(..., min_length=1, description="Encoded image bytes")
    content_type: str = Field("image/jpeg", description="MIME type")
    width: int = Field(..., gt=0, description="Width in pixels")
    height: int = Field(..., gt=0, description="Height in pixels")
    size_bytes: int = Field(..., gt=0, description="Byte size of content")

    @property
    def data_url(self) -> str:
        """Inline ``data:`` URL rendering of the image."""
        encoded = base64.b64encode(self.content).decode("ascii")
        return f"data:{self.content_type};base64,{encoded}"


class FoodItem(BaseModel):
    """
    Single food component detected in a photo.

    Example:
        >>> item = FoodItem(
        ...     name="Steamed rice",
        ...     quantity=150,
        ...     unit="g",
        ...     calories=252,
        ...     protein=9.5,
        ...     fat=7.0,
        ...     carbs=37.8,
        ...     confidence=0.84,
        ... )
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    name: str = Field(..., min_length=1, max_length=200, description="Food name")
    quantity: float = Field(..., gt=0, description="Estimated portion")
    unit: str = Field("g", min_length=1, max_length=20, description="Portion unit")
    calories: float = Field(..., ge=0, description="Energy (kcal)")
    protein: float = Field(..., ge=0, description="Protein (g)")
    fat: float = Field(..., ge=0, description="Fat (g)")
    carbs: float = Field(..., ge=0, description="Carbohydrates (g)")
    confidence: float = Field(..., ge=0.0, le=1.0, description="Detection confidence")

    @field_validator("name", "unit")
    @classmethod
    def not_blank(cls, v: str) -> str:
        """Ensure not just whitespace."""
        if not v.strip():
            raise ValueError("Field cannot be empty or whitespace")
        return v.strip()


class AnalysisResult(BaseModel):
    """
    Aggregate output of a vision provider.

    Invariants:
    - total_calories == round(sum of item calories)
    - total_protein / total_fat / total_carbs == sums rounded to 1 decimal
    - overall_confidence in [0, 1]; 0 with all totals 0 when there are no items

    ``raw_response`` keeps unparsed provider output for logging only and is
    excluded from every serialization.

    Use ``AnalysisResult.from_items`` rather than the constructor so totals
    are computed consistently.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    items: List[FoodItem] = Field(default_factory=list, description="Detected foods")
    total_calories: int = Field(0, ge=0, description="Rounded kcal sum")
    total_protein: float = Field(0.0, ge=0, description="Protein sum (g)")
    total_fat: float = Field(0.0, ge=0, description="Fat sum (g)")
    total_carbs: float = Field(0.0, ge=0, description="Carbohydrate sum (g)")
    overall_confidence: float = Field(0.0, ge=0.0, le=1.0, description="Overall confidence")
    analysis_id: str = Field(..., min_length=1, description="Opaque analysis identifier")
    processed_at: datetime = Field(..., description="Processing timestamp (UTC)")
    provider: str = Field(..., min_length=1, description="Provider that produced the result")
    fallback: bool = Field(False, description="Degraded result from the fallback estimator")
    raw_response: Optional[str] = Field(None, exclude=True, description="Unparsed provider output")

    @model_validator(mode="after")
    def totals_match_items(self) -> "AnalysisResult":
        """Reject results whose totals disagree with their items."""
        expected = _totals(self.items)
        actual = (self.total_calories, self.total_protein, self.total_fat, self.total_carbs)
        for exp, got in zip(expected, actual):
            if not math.isclose(exp, got, abs_tol=1e-6):
                raise ValueError(f"Totals {actual} do not match item sums {expected}")
        if not self.items and self.overall_confidence != 0.0:
            raise ValueError("Empty result must have zero confidence")
        return self

    @classmethod
    def from_items(
        cls,
        items: Sequence[FoodItem],
        *,
        provider: str,
        analysis_id: Optional[str] = None,
        overall_confidence: Optional[float] = None,
        processed_at: Optional[datetime] = None,
        fallback: bool = False,
        raw_response: Optional[str] = None,
    ) -> "AnalysisResult":
        """
        Build a result computing totals and confidence from ``items``.

        Args:
            items: Detected foods, order preserved
            provider: Identifying provider name
            analysis_id: Identifier (generated as ``<provider>-<hex>`` if None)
            overall_confidence: Provider-defined confidence (mean of items if None)
            processed_at: Timestamp (now, UTC, if None)
            fallback: Marks degraded results
            raw_response: Unparsed provider payload (never serialized)
        """
        items = list(items)
        calories, protein, fat, carbs = _totals(items)

        if not items:
            confidence = 0.0
        elif overall_confidence is None:
            confidence = round(sum(i.confidence for i in items) / len(items), 2)
        else:
            confidence = round(min(1.0, max(0.0, overall_confidence)), 2)

        return cls(
            items=items,
            total_calories=calories,
            total_protein=protein,
            total_fat=fat,
            total_carbs=carbs,
            overall_confidence=confidence,
            analysis_id=analysis_id or f"{provider}-{uuid4().hex}",
            processed_at=processed_at or datetime.now(timezone.utc),
            provider=provider,
            fallback=fallback,
            raw_response=raw_response,
        )

    def as_fallback(self) -> "AnalysisResult":
        """Copy of this result tagged as a degraded fallback result."""
        return self.model_copy(update={"fallback": True})


def _totals(items: Sequence[FoodItem]) -> tuple[int, float, float, float]:
    return (
        round_calories(sum(i.calories for i in items)),
        round_grams(sum(i.protein for i in items)),
        round_grams(sum(i.fat for i in items)),
        round_grams(sum(i.carbs for i in items)),
    )
