"""Tests for food analysis parsing and the analysis client."""

import asyncio
from dataclasses import dataclass, field
from types import SimpleNamespace

import pytest

from intake_tracker.adapters.openai_analysis_client import OpenAIAnalysisClient
from intake_tracker.domain.analysis import (
    FoodAnalysis,
    Malformed,
    Parsed,
    ProviderError,
)
from intake_tracker.services.analysis import (
    FoodAnalysisService,
    food_data_from_analysis,
    parse_analysis_text,
)
from tests.conftest import FakeAnalysisClient

PLAIN = '{"foodName": "Rice", "calories": 200, "nutritionFacts": {"carbs": 45}}'


def test_parse_plain_json() -> None:
    result = parse_analysis_text(PLAIN)

    assert isinstance(result, Parsed)
    assert result.analysis.food_name == "Rice"
    assert result.analysis.calories == 200
    assert result.analysis.nutrition_facts.carbs == 45
    assert result.analysis.serving_size == "1 serving"


def test_parse_fenced_json() -> None:
    text = f"Here is the analysis:\n```json\n{PLAIN}\n```\nEnjoy!"

    result = parse_analysis_text(text)

    assert isinstance(result, Parsed)
    assert result.analysis.food_name == "Rice"


def test_parse_json_embedded_in_prose() -> None:
    text = f"Sure. {PLAIN} Let me know if you need more."

    result = parse_analysis_text(text)

    assert isinstance(result, Parsed)
    assert result.analysis.calories == 200


@pytest.mark.parametrize("text", ["I cannot analyze that.", "[1, 2, 3]", ""])
def test_parse_without_object_is_malformed(text: str) -> None:
    result = parse_analysis_text(text)

    assert result == Malformed(raw_text=text)


def test_analysis_normalizes_loose_values() -> None:
    analysis = FoodAnalysis.model_validate(
        {
            "name": "Soup",
            "calories": "1,250 kcal",
            "nutritionFacts": {"protein": "12g", "fat": None, "sodium": "n/a"},
            "healthScore": "14",
            "healthWarnings": None,
            "recommendation": None,
        }
    )

    assert analysis.food_name == "Soup"
    assert analysis.calories == 1250
    assert analysis.nutrition_facts.protein == 12
    assert analysis.nutrition_facts.fat == 0
    assert analysis.nutrition_facts.sodium == 0
    assert analysis.health_score == 10
    assert analysis.health_warnings == []
    assert analysis.recommendation == ""


def test_health_score_is_clamped_at_zero() -> None:
    analysis = FoodAnalysis.model_validate({"healthScore": -3})

    assert analysis.health_score == 0


def test_food_data_from_analysis() -> None:
    result = parse_analysis_text(FakeAnalysisClient().text)
    assert isinstance(result, Parsed)

    data = food_data_from_analysis(result.analysis, image="photo.jpg")

    assert data["name"] == "Apple"
    assert data["calories"] == 95
    assert data["protein_g"] == 0.5
    assert data["carbs_g"] == 25
    assert data["analysis_type"] == "ai_powered"
    assert data["image"] == "photo.jpg"
    assert data["metadata"] == {
        "isHealthy": True,
        "healthWarnings": [],
        "healthBenefits": ["fiber"],
    }


def test_service_returns_parsed_result(analysis_client: FakeAnalysisClient) -> None:
    service = FoodAnalysisService(client=analysis_client, model="test-model")

    result = asyncio.run(service.analyze_by_name("apple", ["diabetes"]))

    assert isinstance(result, Parsed)
    assert result.analysis.health_score == 9
    assert "'apple'" in analysis_client.prompts[0]
    assert "diabetes" in analysis_client.prompts[0]


def test_service_returns_malformed_result() -> None:
    client = FakeAnalysisClient(text="no idea")
    service = FoodAnalysisService(client=client, model="test-model")

    result = asyncio.run(service.analyze_by_name("mystery"))

    assert result == Malformed(raw_text="no idea")


def test_service_returns_provider_error() -> None:
    client = FakeAnalysisClient(error=TimeoutError("timed out"))
    service = FoodAnalysisService(client=client, model="test-model")

    result = asyncio.run(service.analyze_by_name("apple"))

    assert isinstance(result, ProviderError)
    assert "timed out" in result.reason


@dataclass
class FakeResponses:
    output_text: str
    calls: list[dict[str, object]] = field(default_factory=list)

    async def create(self, **kwargs: object) -> SimpleNamespace:
        self.calls.append(kwargs)
        return SimpleNamespace(output_text=self.output_text)


def test_openai_client_requests_json_output() -> None:
    responses = FakeResponses(output_text=PLAIN)
    client = OpenAIAnalysisClient(
        client=SimpleNamespace(responses=responses)  # type: ignore[arg-type]
    )

    text = asyncio.run(client.generate(model="gpt-test", prompt="rice"))

    assert text == PLAIN
    call = responses.calls[0]
    assert call["model"] == "gpt-test"
    assert call["input"] == "rice"
    assert call["text"] == {"format": {"type": "json_object"}}
    assert call["store"] is False


def test_openai_client_rejects_empty_output() -> None:
    client = OpenAIAnalysisClient(
        client=SimpleNamespace(  # type: ignore[arg-type]
            responses=FakeResponses(output_text="")
        )
    )

    with pytest.raises(RuntimeError):
        asyncio.run(client.generate(model="gpt-test", prompt="rice"))


@pytest.mark.parametrize(
    "text",
    [
        '{"foodName": "x", "healthScore": Infinity}',
        '{"foodName": "x", "healthScore": 1e400}',
        '{"foodName": "x", "healthScore": -Infinity}',
        '{"foodName": "x", "healthScore": NaN}',
        '{"foodName": "x", "healthScore": 1' + "0" * 400 + "}",
    ],
)
def test_non_finite_health_score_is_dropped(text: str) -> None:
    result = parse_analysis_text(text)

    assert isinstance(result, Parsed)
    assert result.analysis.health_score is None


def test_non_finite_amounts_become_zero() -> None:
    huge = "9" * 401
    result = parse_analysis_text(
        '{"foodName": "x", "calories": Infinity, '
        f'"nutritionFacts": {{"protein": 1e400, "fat": NaN, "carbs": "{huge}"}}}}'
    )

    assert isinstance(result, Parsed)
    assert result.analysis.calories == 0
    assert result.analysis.nutrition_facts.protein == 0
    assert result.analysis.nutrition_facts.fat == 0
    assert result.analysis.nutrition_facts.carbs == 0


def test_service_survives_infinite_health_score() -> None:
    client = FakeAnalysisClient(text='{"foodName": "x", "healthScore": 1e400}')
    service = FoodAnalysisService(client=client, model="test-model")

    result = asyncio.run(service.analyze_by_name("x"))

    assert isinstance(result, Parsed)
    assert result.analysis.health_score is None
