"""Mock vision provider.

Deterministic-shape estimator that never calls an external API. Used as
the default provider when no real provider is configured and as the
automatic fallback target when the real provider fails recoverably.
"""

from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import structlog

from nutriai.domain.meal.recognition.models import (
    AnalysisResult,
    FoodItem,
    ProcessedImage,
    round_calories,
    round_grams,
)

logger = structlog.get_logger(__name__)

# Share of energy per macro and kcal per gram
PROTEIN_RATIO, PROTEIN_KCAL_PER_G = 0.15, 4
FAT_RATIO, FAT_KCAL_PER_G = 0.25, 9
CARBS_RATIO, CARBS_KCAL_PER_G = 0.60, 4

MIN_CONFIDENCE = 0.70
MAX_CONFIDENCE = 0.95
MAX_ITEMS = 3


@dataclass(frozen=True)
class CatalogFood:
    """Catalog entry: portion plus kcal per unit of portion."""

    name: str
    quantity: float
    unit: str
    kcal_per_unit: float
    keywords: Tuple[str, ...] = ()

    def matches(self, description: str) -> bool:
        text = description.lower()
        return self.name.lower() in text or any(k in text for k in self.keywords)


CATALOG: Tuple[CatalogFood, ...] = (
    CatalogFood("Steamed rice", 150, "g", 1.68, ("rice", "ご飯", "gohan")),
    CatalogFood("Chicken breast", 100, "g", 1.65, ("chicken", "鶏", "pollo")),
    CatalogFood("Salad", 80, "g", 0.2, ("salad", "サラダ", "insalata", "lettuce")),
    CatalogFood("Miso soup", 200, "ml", 0.3, ("miso", "soup", "味噌汁")),
    CatalogFood("Rolled omelette", 60, "g", 1.5, ("omelette", "卵焼き", "tamagoyaki")),
)


class MockVisionProvider:
    """
    Mock implementation of IVisionProvider.

    Picks 1-3 distinct catalog foods at random. Foods named in the
    description are picked first. Nutrition is derived from the portion
    with fixed macro ratios; confidence is uniform in [0.70, 0.95].

    Args:
        latency_ms: Simulated processing time (0 disables the sleep)
        rng: Random source (inject a seeded one for deterministic tests)
        catalog: Foods to pick from
    """

    name = "mock"

    def __init__(
        self,
        latency_ms: int = 1500,
        rng: Optional[random.Random] = None,
        catalog: Sequence[CatalogFood] = CATALOG,
    ) -> None:
        if not catalog:
            raise ValueError("catalog cannot be empty")
        self._latency_s = max(0, latency_ms) / 1000.0
        self._rng = rng or random.Random()
        self._catalog = tuple(catalog)

    async def analyze_food(
        self, image: ProcessedImage, description: Optional[str] = None
    ) -> AnalysisResult:
        """
        Produce a plausible estimate for ``image``.

        The image content is not inspected.

        Returns:
            AnalysisResult with provider "mock"
        """
        if self._latency_s:
            await asyncio.sleep(self._latency_s)

        foods = self._select(description)
        items = [self._to_item(food) for food in foods]

        logger.debug(
            "mock_analysis_generated",
            items=[i.name for i in items],
            description_hint=bool(description),
        )
        return AnalysisResult.from_items(items, provider=self.name)

    def _select(self, description: Optional[str]) -> List[CatalogFood]:
        count = self._rng.randint(1, min(MAX_ITEMS, len(self._catalog)))

        preferred: List[CatalogFood] = []
        if description and description.strip():
            preferred = [f for f in self._catalog if f.matches(description)][:MAX_ITEMS]
        count = max(count, len(preferred))

        rest = [f for f in self._catalog if f not in preferred]
        self._rng.shuffle(rest)
        return preferred + rest[: count - len(preferred)]

    def _to_item(self, food: CatalogFood) -> FoodItem:
        kcal = food.quantity * food.kcal_per_unit
        confidence = round(self._rng.uniform(MIN_CONFIDENCE, MAX_CONFIDENCE), 2)
        return FoodItem(
            name=food.name,
            quantity=food.quantity,
            unit=food.unit,
            calories=round_calories(kcal),
            protein=round_grams(kcal * PROTEIN_RATIO / PROTEIN_KCAL_PER_G),
            fat=round_grams(kcal * FAT_RATIO / FAT_KCAL_PER_G),
            carbs=round_grams(kcal * CARBS_RATIO / CARBS_KCAL_PER_G),
            confidence=confidence,
        )
