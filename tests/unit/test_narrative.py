"""
Unit Tests for Narrative Generation

Tests for prompt building, deterministic templates and fallback behavior of
the narrative adapter.
"""
import asyncio
import pytest
from typing import Optional

from healthrisk.core.features import PopulationMeans, CARDIOVASCULAR_MODEL
from healthrisk.core.inference import (
    feature_importance, counterfactuals, assess_cardiovascular, assess_diabetes, general_health_score,
)
from healthrisk.core.llm import (
    GeminiClient, GeminiConfig, GeminiResponse, NarrativeAdapter, NarrativeUnavailableError,
    build_xai_prompt, build_digital_twin_prompt, xai_template, digital_twin_template, predictions_template,
)
from healthrisk.core.simulation import CurrentRisks, TemporalSignal, rank_interventions


class FakeClient:
    """Stand-in text generator."""

    def __init__(self, text: str = "Generated narrative.", error: Optional[Exception] = None, delay: float = 0.0):
        self.text = text
        self.error = error
        self.delay = delay
        self.prompts = []

    @property
    def is_available(self) -> bool:
        return True

    async def generate_async(self, prompt: str, system_instruction: Optional[str] = None) -> GeminiResponse:
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return GeminiResponse(text=self.text, model="fake")


# Fixtures
@pytest.fixture
def features():
    return PopulationMeans().as_features().with_overrides({
        "age": 70, "bmi": 32.9, "systolic_bp": 165, "diastolic_bp": 95, "heart_rate": 88, "blood_glucose": 110,
    })


@pytest.fixture
def attribution(features):
    return (
        feature_importance(features, CARDIOVASCULAR_MODEL),
        counterfactuals(features, CARDIOVASCULAR_MODEL),
    )


@pytest.fixture
def risks():
    return CurrentRisks(cardiovascular=28.7, diabetes=12.0, general=70)


class TestPrompts:
    """Tests for prompt construction."""

    def test_xai_prompt(self, features, attribution):
        importances, scenarios = attribution
        prompt = build_xai_prompt(features, 28.7, 12.0, importances, scenarios)

        assert "Cardiovascular Risk: 28.7%" in prompt
        assert "Blood Pressure: 165/95 mmHg" in prompt
        assert prompt.count("risk by") == 3 + min(len(scenarios), 2)
        assert "Could reduce risk" in prompt

    def test_digital_twin_prompt(self, risks):
        signals = {"systolic": TemporalSignal(trend=0.05, volatility=0.02, seasonality=0.4, samples=10)}
        prompt = build_digital_twin_prompt(signals, risks, rank_interventions(risks))

        assert "Blood Pressure Trend: 5.0% change" in prompt
        assert "General Health Score: 70.0/100" in prompt
        assert prompt.count("Expected Risk Reduction") == 3


class TestTemplates:
    """Tests for the deterministic fallback text."""

    def test_xai_template(self, attribution):
        importances, scenarios = attribution
        text = xai_template(28.7, 8.0, importances, scenarios)

        assert text.startswith(
            "Based on your health data, your cardiovascular risk is currently elevated at 28.7%, "
            "and your diabetes risk is low at 8.0%."
        )
        assert "The factors contributing most to your risk include age and systolic blood pressure." in text
        assert f"improving your {scenarios[0].scenario.lower()}" in text
        assert text.rstrip().endswith("before making any changes to your health routine.")

    def test_xai_template_without_attributions(self):
        text = xai_template(15.0, 15.0, [], [])
        assert "moderate at 15.0%" in text
        assert "Good news" not in text

    def test_digital_twin_template(self, risks):
        text = digital_twin_template({}, risks, rank_interventions(risks))
        assert "not yet enough blood pressure history" in text
        assert "Continuous Glucose Monitoring" in text

    def test_predictions_template(self, features):
        text = predictions_template(
            assess_cardiovascular(features), assess_diabetes(features), general_health_score(features)
        )
        assert "Priority actions:" in text
        assert "3. " in text


class TestNarrativeAdapter:
    """Tests for generation and fallback."""

    @pytest.mark.asyncio
    async def test_uses_generated_text(self, features, attribution):
        client = FakeClient(text="A friendly explanation.")
        adapter = NarrativeAdapter(client=client, timeout_seconds=1.0, enabled=True)

        result = await adapter.explain_risks(features, 28.7, 12.0, *attribution)

        assert result.text == "A friendly explanation."
        assert result.is_fallback is False
        assert result.source == "llm"
        assert len(client.prompts) == 1

    @pytest.mark.asyncio
    async def test_fallback_on_error(self, features, attribution):
        adapter = NarrativeAdapter(
            client=FakeClient(error=NarrativeUnavailableError("quota exceeded")), timeout_seconds=1.0, enabled=True
        )
        result = await adapter.explain_risks(features, 28.7, 12.0, *attribution)

        assert result.is_fallback is True
        assert result.text == xai_template(28.7, 12.0, *attribution)

    @pytest.mark.asyncio
    async def test_fallback_on_unexpected_error(self, risks):
        adapter = NarrativeAdapter(client=FakeClient(error=RuntimeError("boom")), timeout_seconds=1.0, enabled=True)
        result = await adapter.interpret_simulation({}, risks, rank_interventions(risks))
        assert result.is_fallback is True

    @pytest.mark.asyncio
    async def test_fallback_on_timeout(self, risks):
        adapter = NarrativeAdapter(client=FakeClient(delay=1.0), timeout_seconds=0.05, enabled=True)
        result = await adapter.interpret_simulation({}, risks, rank_interventions(risks))

        assert result.is_fallback is True
        assert result.source == "template"

    @pytest.mark.asyncio
    async def test_disabled(self, features):
        client = FakeClient()
        adapter = NarrativeAdapter(client=client, enabled=False)
        result = await adapter.summarize_predictions(
            assess_cardiovascular(features), assess_diabetes(features), general_health_score(features)
        )

        assert result.is_fallback is True
        assert client.prompts == []

    @pytest.mark.asyncio
    async def test_unconfigured_client(self, features, attribution):
        client = GeminiClient(GeminiConfig(api_key=None))
        assert client.is_available is False

        with pytest.raises(NarrativeUnavailableError):
            await client.generate_async("prompt")

        adapter = NarrativeAdapter(client=client, enabled=True)
        result = await adapter.explain_risks(features, 28.7, 12.0, *attribution)
        assert result.is_fallback is True
