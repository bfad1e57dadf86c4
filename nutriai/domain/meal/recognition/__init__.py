"""Meal photo recognition: models, provider port and failure taxonomy."""

from nutriai.domain.meal.recognition.classification import (
    ApiFailure,
    ClassifiedError,
    TimeoutFailure,
    UnknownFailure,
    ValidationFailure,
)
from nutriai.domain.meal.recognition.models import (
    AnalysisResult,
    FoodItem,
    ProcessedImage,
)
from nutriai.domain.meal.recognition.ports import IImageProcessor, IVisionProvider

__all__ = [
    "AnalysisResult",
    "ApiFailure",
    "ClassifiedError",
    "FoodItem",
    "IImageProcessor",
    "IVisionProvider",
    "ProcessedImage",
    "TimeoutFailure",
    "UnknownFailure",
    "ValidationFailure",
]
