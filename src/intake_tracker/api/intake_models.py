"""Request models for the temp-intake API."""

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from intake_tracker.domain.analysis import FoodAnalysis


class FoodEntryPayload(BaseModel):
    """Food entry fields.

    Macros and the health score are left untyped here. The intake service
    validates them, so any malformed value is reported as a 400.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str | None = None
    calories: Any = None
    protein_g: Any = Field(
        default=None,
        validation_alias=AliasChoices("protein_g", "proteinGrams", "protein"),
    )
    carbs_g: Any = Field(
        default=None,
        validation_alias=AliasChoices("carbs_g", "carbsGrams", "carbs"),
    )
    fat_g: Any = Field(
        default=None,
        validation_alias=AliasChoices("fat_g", "fatGrams", "fat"),
    )
    serving_size: str | None = Field(
        default=None, validation_alias=AliasChoices("serving_size", "servingSize")
    )
    health_score: Any = Field(
        default=None, validation_alias=AliasChoices("health_score", "healthScore")
    )
    analysis_type: str | None = None
    recommendations: str | None = None
    image: str | None = None
    metadata: dict[str, object] | None = None


class AnalyzeFoodPayload(BaseModel):
    """Request to analyze a food by name."""

    model_config = ConfigDict(populate_by_name=True)

    food_name: str = Field(
        min_length=1, validation_alias=AliasChoices("food_name", "foodName")
    )
    health_conditions: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("health_conditions", "healthConditions"),
    )


class AddAnalysisPayload(BaseModel):
    """An analysis result to store as an intake entry."""

    analysis: FoodAnalysis
    image: str | None = None
