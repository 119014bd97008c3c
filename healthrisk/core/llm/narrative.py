"""
Narrative Adapter

Builds prompts for the three explanation surfaces (explainability view,
digital twin, risk predictions), asks the text generator for a
plain-language narrative under a bounded timeout, and falls back to a
deterministic template when generation is unavailable.
"""
from dataclasses import dataclass
from typing import Dict, Any, List, Mapping, Optional, Sequence
import asyncio

from healthrisk.config import settings
from healthrisk.core.features import PatientFeatures
from healthrisk.core.inference import Counterfactual, FeatureImportance, RiskFactor, RiskResult, FactorImpact
from healthrisk.core.simulation import CurrentRisks, TemporalSignal, TreatmentOption
from healthrisk.core.llm.gemini_client import GeminiClient, NarrativeUnavailableError
from healthrisk.utils import get_logger

logger = get_logger(__name__)

SOURCE_LLM = "llm"
SOURCE_TEMPLATE = "template"

DISCLAIMER = (
    "Remember, this analysis is for educational purposes only. Please consult with your "
    "healthcare provider for personalized medical advice and before making any changes "
    "to your health routine."
)


@dataclass
class NarrativeResult:
    """Generated or templated narrative text."""
    text: str
    is_fallback: bool
    source: str = SOURCE_TEMPLATE

    def to_dict(self) -> Dict[str, Any]:
        return {"text": self.text, "is_fallback": self.is_fallback, "source": self.source}


def _describe_level(risk: float) -> str:
    if risk < 10:
        return "low"
    elif risk < 20:
        return "moderate"
    return "elevated"


def _known(value: Optional[float], fmt: str = "{:.0f}") -> str:
    return fmt.format(value) if value else "Unknown"


# ---------------------------------------------------------------------------
# Explainability
# ---------------------------------------------------------------------------

XAI_SYSTEM_INSTRUCTION = (
    "You are a compassionate healthcare AI that explains medical risks clearly and supportively."
)


def build_xai_prompt(
    features: PatientFeatures,
    cardiovascular_risk: float,
    diabetes_risk: float,
    top_factors: Sequence[FeatureImportance],
    counterfactuals: Sequence[Counterfactual],
) -> str:
    factor_lines = "\n".join(
        f"- {f.name}: {'increases' if f.direction == 'increases_risk' else 'decreases'} "
        f"risk by {abs(f.importance):.1f}%"
        for f in top_factors[:3]
    )
    improvement_lines = "\n".join(
        f"- {c.scenario}: Could reduce risk by {c.risk_reduction:.1f}%"
        for c in counterfactuals[:2]
    )

    return f"""Generate a clear, empathetic explanation of a patient's health risks.

Patient Data:
- Cardiovascular Risk: {cardiovascular_risk:.1f}%
- Diabetes Risk: {diabetes_risk:.1f}%
- Age: {_known(features.age)}
- BMI: {_known(features.bmi, "{:.1f}")}
- Blood Pressure: {_known(features.systolic_bp)}/{_known(features.diastolic_bp)} mmHg
- Blood Glucose: {_known(features.blood_glucose)} mg/dL
- Heart Rate: {_known(features.heart_rate)} bpm

Top Contributing Factors:
{factor_lines or "- None identified"}

Potential Improvements:
{improvement_lines or "- None identified"}

Write a 2-3 paragraph personalized explanation that:
1. Summarizes the overall risk level in accessible language
2. Explains the top contributing factors without being alarming
3. Provides actionable, encouraging suggestions for improvement
4. Ends with a reminder to consult healthcare professionals

Keep the tone supportive and empowering, not scary."""


def xai_template(
    cardiovascular_risk: float,
    diabetes_risk: float,
    top_factors: Sequence[FeatureImportance],
    counterfactuals: Sequence[Counterfactual],
) -> str:
    text = (
        f"Based on your health data, your cardiovascular risk is currently "
        f"{_describe_level(cardiovascular_risk)} at {cardiovascular_risk:.1f}%, and your diabetes "
        f"risk is {_describe_level(diabetes_risk)} at {diabetes_risk:.1f}%. "
    )

    increasing = [f for f in top_factors if f.direction == "increases_risk"]
    decreasing = [f for f in top_factors if f.direction == "decreases_risk"]
    if increasing:
        names = " and ".join(f.name.lower() for f in increasing[:2])
        text += f"The factors contributing most to your risk include {names}. "
    if decreasing:
        text += f"Positively, your {decreasing[0].name.lower()} is helping reduce your overall risk. "

    if counterfactuals:
        top = counterfactuals[0]
        text += (
            f"\n\nGood news: our analysis suggests that improving your {top.scenario.lower()} "
            f"could reduce your risk by approximately {top.risk_reduction:.1f}%. "
            "Small, consistent changes can make a meaningful difference over time."
        )

    return text.rstrip() + f"\n\n{DISCLAIMER}"


# ---------------------------------------------------------------------------
# Digital twin
# ---------------------------------------------------------------------------

TWIN_SYSTEM_INSTRUCTION = (
    "You are a medical AI research assistant providing scientifically rigorous analysis "
    "of digital twin simulations for healthcare decision support."
)


def build_digital_twin_prompt(
    signals: Mapping[str, TemporalSignal],
    risks: CurrentRisks,
    treatments: Sequence[TreatmentOption],
) -> str:
    systolic = signals.get("systolic", TemporalSignal())
    heart_rate = signals.get("heart_rate", TemporalSignal())
    glucose = signals.get("blood_glucose", TemporalSignal())
    treatment_lines = "\n".join(
        f"- {t.name}: score={t.q_value:.2f}, Expected Risk Reduction: {t.risk_reduction:.1f}%"
        for t in treatments if t.recommended
    )

    return f"""Analyze a patient's digital twin simulation results and provide an interpretation.

Temporal Analysis:
- Blood Pressure Trend: {systolic.trend * 100:.1f}% change
- Heart Rate Volatility: {heart_rate.volatility * 100:.1f}%
- Glucose Pattern Seasonality: {glucose.seasonality * 100:.1f}%

Current Risk Assessment:
- Cardiovascular Risk: {risks.cardiovascular:.1f}%
- Diabetes Risk: {risks.diabetes:.1f}%
- General Health Score: {risks.general:.1f}/100

Top Recommended Interventions:
{treatment_lines or "- None"}

Provide:
1. Interpretation of temporal patterns (2-3 sentences)
2. Disease progression outlook with uncertainty considerations
3. Rationale for the intervention ranking
4. Key monitoring priorities

Be scientifically rigorous but accessible."""


def digital_twin_template(
    signals: Mapping[str, TemporalSignal],
    risks: CurrentRisks,
    treatments: Sequence[TreatmentOption],
) -> str:
    systolic = signals.get("systolic", TemporalSignal())
    if systolic.samples == 0:
        pattern = "There is not yet enough blood pressure history to describe a trend."
    elif abs(systolic.trend) < 0.02:
        pattern = "Your recent blood pressure readings are stable relative to your history."
    elif systolic.trend > 0:
        pattern = f"Your recent blood pressure readings are {systolic.trend * 100:.1f}% above your longer-term average."
    else:
        pattern = f"Your recent blood pressure readings are {abs(systolic.trend) * 100:.1f}% below your longer-term average."

    text = (
        f"{pattern} Your current cardiovascular risk is {risks.cardiovascular:.1f}%, your diabetes "
        f"risk is {risks.diabetes:.1f}% and your general health score is {risks.general:.0f}/100. "
        "Projections further into the future carry wider uncertainty."
    )

    recommended = [t.name for t in treatments if t.recommended]
    if len(recommended) == 1:
        text += f"\n\nThe highest-ranked intervention for you is {recommended[0]}."
    elif recommended:
        names = ", ".join(recommended[:-1]) + f" and {recommended[-1]}"
        text += f"\n\nThe highest-ranked interventions for you are {names}."

    return text + f"\n\n{DISCLAIMER}"


# ---------------------------------------------------------------------------
# Predictions
# ---------------------------------------------------------------------------

PREDICTIONS_SYSTEM_INSTRUCTION = "You are a compassionate medical AI assistant. Be concise and actionable."


def _negative_factors(result: RiskResult, limit: int = 3) -> List[RiskFactor]:
    return [f for f in result.factors if f.impact == FactorImpact.NEGATIVE][:limit]


def build_predictions_prompt(
    cardiovascular: RiskResult,
    diabetes: RiskResult,
    general: RiskResult,
    cycle: Optional[RiskResult] = None,
) -> str:
    cycle_line = f"\n- Cycle Health: {cycle.risk_level.value}" if cycle else ""
    factor_lines = "\n".join(f"- {f.name}: {f.description}" for f in _negative_factors(cardiovascular))

    return f"""Based on these health risk assessments, create a concise, empathetic health report:

Risk Summary:
- Cardiovascular Risk: {cardiovascular.risk_level.value} ({cardiovascular.risk_percentage}%)
- Diabetes Risk: {diabetes.risk_level.value} ({diabetes.risk_percentage}%)
- General Health Score: {general.risk_score}/100{cycle_line}

Top Risk Factors:
{factor_lines or "- None identified"}

Generate a brief report (under 300 words) with:
1. Overall health summary (2 sentences)
2. Top 3 priority actions
3. Brief reminder to consult healthcare professionals

Be compassionate and actionable."""


def predictions_template(
    cardiovascular: RiskResult,
    diabetes: RiskResult,
    general: RiskResult,
    cycle: Optional[RiskResult] = None,
) -> str:
    text = (
        f"Your cardiovascular risk is {cardiovascular.risk_level.value} ({cardiovascular.risk_percentage}%) "
        f"and your diabetes risk is {diabetes.risk_level.value} ({diabetes.risk_percentage}%). "
        f"Your general health score is {general.risk_score}/100."
    )
    if cycle:
        text += f" Your cycle health assessment is {cycle.risk_level.value}."

    actions: List[str] = []
    for result in (cardiovascular, diabetes, general):
        for recommendation in result.recommendations:
            if recommendation not in actions:
                actions.append(recommendation)
    if actions:
        text += "\n\nPriority actions:\n" + "\n".join(f"{i}. {a}" for i, a in enumerate(actions[:3], 1))

    return text + f"\n\n{DISCLAIMER}"


class NarrativeAdapter:
    """
    Plain-language narratives with a guaranteed deterministic fallback.

    Never raises for collaborator failures: an unconfigured client, a
    timeout or a generation error yields the template with
    ``is_fallback=True``.
    """

    def __init__(
        self,
        client: Optional[GeminiClient] = None,
        timeout_seconds: Optional[float] = None,
        enabled: Optional[bool] = None,
    ):
        self.enabled = settings.enable_narrative_llm if enabled is None else enabled
        self.timeout_seconds = timeout_seconds or settings.narrative_timeout_seconds
        self.client = client if client is not None else (GeminiClient() if self.enabled else None)

    @property
    def is_available(self) -> bool:
        return self.enabled and self.client is not None and self.client.is_available

    async def _generate(self, prompt: str, system_instruction: str, fallback: str) -> NarrativeResult:
        if not self.is_available:
            return NarrativeResult(text=fallback, is_fallback=True)

        try:
            response = await asyncio.wait_for(
                self.client.generate_async(prompt, system_instruction=system_instruction),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Narrative generation timed out after {self.timeout_seconds}s - using template")
            return NarrativeResult(text=fallback, is_fallback=True)
        except NarrativeUnavailableError as e:
            logger.warning(f"Narrative generation unavailable: {e} - using template")
            return NarrativeResult(text=fallback, is_fallback=True)
        except Exception as e:
            logger.warning(f"Narrative generation failed: {e} - using template")
            return NarrativeResult(text=fallback, is_fallback=True)

        return NarrativeResult(text=response.text, is_fallback=False, source=SOURCE_LLM)

    async def explain_risks(
        self,
        features: PatientFeatures,
        cardiovascular_risk: float,
        diabetes_risk: float,
        top_factors: Sequence[FeatureImportance],
        counterfactuals: Sequence[Counterfactual],
    ) -> NarrativeResult:
        """Narrative for the explainability view."""
        return await self._generate(
            build_xai_prompt(features, cardiovascular_risk, diabetes_risk, top_factors, counterfactuals),
            XAI_SYSTEM_INSTRUCTION,
            xai_template(cardiovascular_risk, diabetes_risk, top_factors, counterfactuals),
        )

    async def interpret_simulation(
        self,
        signals: Mapping[str, TemporalSignal],
        risks: CurrentRisks,
        treatments: Sequence[TreatmentOption],
    ) -> NarrativeResult:
        """Narrative for a digital twin simulation."""
        return await self._generate(
            build_digital_twin_prompt(signals, risks, treatments),
            TWIN_SYSTEM_INSTRUCTION,
            digital_twin_template(signals, risks, treatments),
        )

    async def summarize_predictions(
        self,
        cardiovascular: RiskResult,
        diabetes: RiskResult,
        general: RiskResult,
        cycle: Optional[RiskResult] = None,
    ) -> NarrativeResult:
        """Narrative health report for the predictions view."""
        return await self._generate(
            build_predictions_prompt(cardiovascular, diabetes, general, cycle),
            PREDICTIONS_SYSTEM_INSTRUCTION,
            predictions_template(cardiovascular, diabetes, general, cycle),
        )
