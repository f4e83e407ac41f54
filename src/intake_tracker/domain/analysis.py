"""Models for AI food analysis results."""

import math
import re
from dataclasses import dataclass

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from intake_tracker.domain.intake import MAX_HEALTH_SCORE

_NUMBER = re.compile(r"-?\d+(?:\.\d+)?")


def _to_amount(value: object, default: float | None = 0.0) -> object:
    """Turn values like "12g" or "Unable to analyze" into floats.

    Text without a number, and amounts too large to be finite, become
    ``default``.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, str):
        match = _NUMBER.search(value.replace(",", ""))
        if not match:
            return default
        value = match.group()
    elif not isinstance(value, int | float):
        return value
    try:
        amount = float(value)
    except OverflowError:
        return default
    return amount if math.isfinite(amount) else default


class NutritionFacts(BaseModel):
    """Macro and micro amounts reported by the model."""

    model_config = ConfigDict(extra="ignore")

    protein: float = 0.0
    carbs: float = 0.0
    fat: float = 0.0
    fiber: float = 0.0
    sugar: float = 0.0
    sodium: float = 0.0

    @field_validator("*", mode="before")
    @classmethod
    def coerce_amounts(cls, value: object) -> object:
        return _to_amount(value)


class FoodAnalysis(BaseModel):
    """Normalized analysis of a single food."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    food_name: str = Field(
        default="Food Item",
        validation_alias=AliasChoices("foodName", "food_name", "name"),
    )
    calories: float = 0.0
    nutrition_facts: NutritionFacts = Field(
        default_factory=NutritionFacts,
        validation_alias=AliasChoices("nutritionFacts", "nutrition_facts"),
    )
    serving_size: str = Field(
        default="1 serving",
        validation_alias=AliasChoices("servingSize", "serving_size"),
    )
    health_score: int | None = Field(
        default=None, validation_alias=AliasChoices("healthScore", "health_score")
    )
    is_healthy: bool | None = Field(
        default=None, validation_alias=AliasChoices("isHealthy", "is_healthy")
    )
    recommendation: str = ""
    health_warnings: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("healthWarnings", "health_warnings"),
    )
    health_benefits: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("healthBenefits", "health_benefits"),
    )

    @field_validator("calories", mode="before")
    @classmethod
    def coerce_calories(cls, value: object) -> object:
        return _to_amount(value)

    @field_validator("health_warnings", "health_benefits", mode="before")
    @classmethod
    def default_lists(cls, value: object) -> object:
        return [] if value is None else value

    @field_validator("recommendation", mode="before")
    @classmethod
    def default_recommendation(cls, value: object) -> object:
        return "" if value is None else value

    @field_validator("health_score", mode="before")
    @classmethod
    def clamp_health_score(cls, value: object) -> object:
        if value is None or value == "":
            return None
        amount = _to_amount(value, default=None)
        if not isinstance(amount, float):
            return amount
        return max(0, min(MAX_HEALTH_SCORE, round(amount)))


@dataclass(frozen=True)
class Parsed:
    """The provider returned a usable analysis."""

    analysis: FoodAnalysis


@dataclass(frozen=True)
class Malformed:
    """The provider answered but no analysis could be extracted."""

    raw_text: str


@dataclass(frozen=True)
class ProviderError:
    """The provider call itself failed."""

    reason: str


AnalysisResult = Parsed | Malformed | ProviderError
