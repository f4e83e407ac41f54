"""Food analysis via a generative model, with tolerant response parsing."""

import json
import logging
import re
from dataclasses import dataclass
from typing import Protocol

from pydantic import ValidationError as PydanticValidationError

from intake_tracker.domain.analysis import (
    AnalysisResult,
    FoodAnalysis,
    Malformed,
    Parsed,
    ProviderError,
)

_logger = logging.getLogger(__name__)

_FENCED = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)
_OBJECT = re.compile(r"\{[\s\S]*\}")

ANALYSIS_PROMPT = (
    "Analyze the food named {food_name!r} for a diet tracking app.{conditions} "
    "Respond with a single JSON object with keys: foodName, calories, "
    "nutritionFacts (protein, carbs, fat, fiber, sugar, sodium), servingSize, "
    "healthScore (0-10), isHealthy, recommendation, healthWarnings, "
    "healthBenefits."
)


class AnalysisClient(Protocol):
    """Interface for text generation used by food analysis."""

    async def generate(self, *, model: str, prompt: str) -> str:
        """Return the raw model output for a prompt."""


@dataclass
class FoodAnalysisService:
    """Service that asks the model about a food and normalizes the answer."""

    client: AnalysisClient
    model: str

    async def analyze_by_name(
        self, food_name: str, health_conditions: list[str] | None = None
    ) -> AnalysisResult:
        """Analyze a food by name; provider failures are returned, not raised."""
        conditions = ""
        if health_conditions:
            conditions = (
                " Consider these health conditions: "
                f"{', '.join(health_conditions)}."
            )
        prompt = ANALYSIS_PROMPT.format(food_name=food_name, conditions=conditions)
        try:
            text = await self.client.generate(model=self.model, prompt=prompt)
        except Exception as exc:
            _logger.exception("Food analysis request failed")
            return ProviderError(reason=f"{type(exc).__name__}: {exc}")

        result = parse_analysis_text(text)
        if isinstance(result, Malformed):
            _logger.warning("Food analysis response had no usable JSON")
        return result


def parse_analysis_text(text: str) -> Parsed | Malformed:
    """Extract a FoodAnalysis from model output.

    Tries the full text, then a fenced code block, then the outermost
    ``{...}`` span.
    """
    for candidate in _json_candidates(text):
        try:
            payload = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if not isinstance(payload, dict):
            continue
        try:
            return Parsed(analysis=FoodAnalysis.model_validate(payload))
        except PydanticValidationError:
            continue
    return Malformed(raw_text=text)


def food_data_from_analysis(
    analysis: FoodAnalysis, image: str | None = None
) -> dict[str, object]:
    """Build intake entry data from an analysis result."""
    return {
        "name": analysis.food_name,
        "calories": analysis.calories,
        "protein_g": analysis.nutrition_facts.protein,
        "carbs_g": analysis.nutrition_facts.carbs,
        "fat_g": analysis.nutrition_facts.fat,
        "serving_size": analysis.serving_size,
        "health_score": analysis.health_score,
        "analysis_type": "ai_powered",
        "recommendations": analysis.recommendation,
        "image": image,
        "metadata": {
            "isHealthy": analysis.is_healthy,
            "healthWarnings": analysis.health_warnings,
            "healthBenefits": analysis.health_benefits,
        },
    }


def _json_candidates(text: str) -> list[str]:
    stripped = text.strip()
    candidates = [stripped]
    fenced = _FENCED.search(stripped)
    if fenced:
        candidates.append(fenced.group(1).strip())
    braces = _OBJECT.search(stripped)
    if braces:
        candidates.append(braces.group())
    return candidates
