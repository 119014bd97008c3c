"""
Attribution Module

Explains a condition risk score by repeatedly calling the risk scorer:
permutation feature importance, sensitivity sweeps, single-feature
counterfactuals and a waterfall decomposition.
"""
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional, Tuple

import numpy as np

from healthrisk.core.features import (
    PatientFeatures, Condition, ConditionModel, ReferenceData, DEFAULT_REFERENCE, display_name,
)
from healthrisk.core.inference.risk_engine import RiskLevel, score_condition, baseline_risk
from healthrisk.utils import get_logger

logger = get_logger(__name__)

# Counterfactuals with a smaller absolute effect are not reported
MIN_COUNTERFACTUAL_DELTA = 0.5
WATERFALL_TOP_N = 6
# Residual below which a reconciled waterfall gets no closing step
WATERFALL_RESIDUAL_TOLERANCE = 0.05
OPTIMAL_VALUE_RATIO = 0.1


@dataclass(frozen=True)
class SweepRange:
    """Clinically bounded sweep for a modifiable feature."""
    minimum: float
    maximum: float
    step: float

    def values(self) -> List[float]:
        count = int(round((self.maximum - self.minimum) / self.step)) + 1
        return [self.minimum + i * self.step for i in range(count)]


SENSITIVITY_RANGES: Dict[str, SweepRange] = {
    "bmi": SweepRange(18, 40, 1),
    "systolic_bp": SweepRange(90, 180, 5),
    "blood_glucose": SweepRange(70, 200, 10),
    "heart_rate": SweepRange(50, 120, 5),
    "weight": SweepRange(40, 120, 5),
}


@dataclass(frozen=True)
class CounterfactualScenario:
    """A single feature driven to a literal target."""
    feature: str
    target: float
    unit: str
    name: str


COUNTERFACTUAL_SCENARIOS: Tuple[CounterfactualScenario, ...] = (
    CounterfactualScenario("systolic_bp", 120, "mmHg", "Blood Pressure"),
    CounterfactualScenario("bmi", 24, "", "BMI"),
    CounterfactualScenario("blood_glucose", 95, "mg/dL", "Blood Glucose"),
    CounterfactualScenario("heart_rate", 70, "bpm", "Heart Rate"),
    CounterfactualScenario("smoking", 0, "", "Smoking Status"),
)

GLOBAL_IMPORTANCE: Tuple[Dict[str, Any], ...] = (
    {"feature": "BMI", "weight": 0.24, "category": "Lifestyle"},
    {"feature": "Blood Glucose", "weight": 0.20, "category": "Metabolic"},
    {"feature": "Blood Pressure", "weight": 0.18, "category": "Cardiovascular"},
    {"feature": "Age", "weight": 0.15, "category": "Demographic"},
    {"feature": "Smoking", "weight": 0.12, "category": "Lifestyle"},
    {"feature": "Heart Rate", "weight": 0.06, "category": "Cardiovascular"},
    {"feature": "Oxygen Saturation", "weight": 0.05, "category": "Respiratory"},
)


@dataclass
class FeatureImportance:
    """Permutation importance of one feature."""
    feature: str
    importance: float
    current_value: float
    optimal_value: float

    @property
    def direction(self) -> str:
        return "increases_risk" if self.importance > 0 else "decreases_risk"

    @property
    def name(self) -> str:
        return display_name(self.feature)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "feature": self.name,
            "key": self.feature,
            "importance": round(self.importance, 2),
            "direction": self.direction,
            "current_value": round(self.current_value, 1),
            "optimal_value": round(self.optimal_value, 1),
        }


@dataclass
class SensitivityPoint:
    value: float
    risk: float

    def to_dict(self) -> Dict[str, Any]:
        return {"value": self.value, "risk": round(self.risk, 1)}


@dataclass
class Counterfactual:
    """Outcome of driving one feature to its target value."""
    scenario: str
    feature: str
    current_value: str
    target_value: str
    current_risk: float
    new_risk: float

    @property
    def risk_reduction(self) -> float:
        return self.current_risk - self.new_risk

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scenario": self.scenario,
            "feature": self.feature,
            "current_value": self.current_value,
            "target_value": self.target_value,
            "current_risk": round(self.current_risk, 1),
            "new_risk": round(self.new_risk, 1),
            "risk_reduction": round(self.risk_reduction, 2),
        }


@dataclass
class WaterfallPoint:
    name: str
    contribution: float
    cumulative: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "contribution": round(self.contribution, 2),
            "cumulative": round(self.cumulative, 1),
        }


@dataclass
class ConditionExplanation:
    """Everything the explainability view needs for one condition."""
    condition: Condition
    risk_percentage: float
    feature_importance: List[FeatureImportance] = field(default_factory=list)
    sensitivity_curves: Dict[str, List[SensitivityPoint]] = field(default_factory=dict)
    counterfactuals: List[Counterfactual] = field(default_factory=list)
    waterfall: List[WaterfallPoint] = field(default_factory=list)

    @property
    def risk_level(self) -> RiskLevel:
        return RiskLevel.from_percentage(self.risk_percentage)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "condition": self.condition.value,
            "risk_percentage": round(self.risk_percentage, 1),
            "risk_level": self.risk_level.value,
            "feature_importance": [f.to_dict() for f in self.feature_importance],
            "sensitivity_curves": {
                name: [p.to_dict() for p in points]
                for name, points in self.sensitivity_curves.items()
            },
            "counterfactuals": [c.to_dict() for c in self.counterfactuals],
            "waterfall": [w.to_dict() for w in self.waterfall],
        }


def _optimal_value(current: float, mean: float, weight: float) -> float:
    """Nudge toward the side of the population mean that lowers risk."""
    if weight > 0:
        return min(current, mean * (1 - OPTIMAL_VALUE_RATIO))
    return max(current, mean * (1 + OPTIMAL_VALUE_RATIO))


def feature_importance(
    features: PatientFeatures,
    model: ConditionModel,
    reference: ReferenceData = DEFAULT_REFERENCE,
) -> List[FeatureImportance]:
    """
    Permutation importance for every feature in the model's weight vector.

    Each feature is masked to its population mean with all others held;
    importance is the resulting drop in risk. Sorted by absolute importance.
    """
    base = score_condition(features, model, reference)
    importances: List[FeatureImportance] = []

    for feature, weight in model.weights.items():
        current = features.get(feature)
        mean = reference.means.get(feature)
        masked = score_condition(features.with_value(feature, mean), model, reference)
        importances.append(FeatureImportance(
            feature=feature,
            importance=base - masked,
            current_value=current,
            optimal_value=_optimal_value(current, mean, weight),
        ))

    importances.sort(key=lambda item: abs(item.importance), reverse=True)
    return importances


def sensitivity_curves(
    features: PatientFeatures,
    model: ConditionModel,
    reference: ReferenceData = DEFAULT_REFERENCE,
) -> Dict[str, List[SensitivityPoint]]:
    """Sweep each modifiable weighted feature across its clinical range."""
    curves: Dict[str, List[SensitivityPoint]] = {}
    for feature, sweep in SENSITIVITY_RANGES.items():
        if feature not in model.weights:
            continue
        curves[feature] = [
            SensitivityPoint(value=value, risk=score_condition(features.with_value(feature, value), model, reference))
            for value in sweep.values()
        ]
    return curves


def _display(scenario: CounterfactualScenario, value: float) -> str:
    if scenario.feature == "smoking":
        return "Yes" if value else "No"
    text = f"{value:.0f}"
    return f"{text} {scenario.unit}" if scenario.unit else text


def counterfactuals(
    features: PatientFeatures,
    model: ConditionModel,
    reference: ReferenceData = DEFAULT_REFERENCE,
    current_risk: Optional[float] = None,
) -> List[Counterfactual]:
    """
    Single-feature what-if scenarios.

    Scenarios already at target, or whose absolute effect does not exceed
    ``MIN_COUNTERFACTUAL_DELTA`` points, are dropped. Sorted by risk reduction.
    """
    if current_risk is None:
        current_risk = score_condition(features, model, reference)

    results: List[Counterfactual] = []
    for scenario in COUNTERFACTUAL_SCENARIOS:
        current = features.get(scenario.feature)
        if current == scenario.target:
            continue

        new_risk = score_condition(features.with_value(scenario.feature, scenario.target), model, reference)
        if abs(current_risk - new_risk) <= MIN_COUNTERFACTUAL_DELTA:
            continue

        results.append(Counterfactual(
            scenario=scenario.name,
            feature=scenario.feature,
            current_value=_display(scenario, current),
            target_value=_display(scenario, scenario.target),
            current_risk=current_risk,
            new_risk=new_risk,
        ))

    results.sort(key=lambda c: c.risk_reduction, reverse=True)
    return results


def waterfall(
    features: PatientFeatures,
    model: ConditionModel,
    reference: ReferenceData = DEFAULT_REFERENCE,
    reconcile: bool = True,
    importances: Optional[List[FeatureImportance]] = None,
) -> List[WaterfallPoint]:
    """
    Cumulative decomposition: baseline followed by the top feature importances.

    With ``reconcile`` the baseline is the model's own calibrated baseline and
    an "Other Factors" step closes the series on the scored risk. Without it
    the baseline is the model's literal display constant and the final
    cumulative value is only an approximation of the risk.
    """
    if importances is None:
        importances = feature_importance(features, model, reference)

    base = baseline_risk(model, reference) if reconcile else model.display_baseline
    cumulative = base
    points = [WaterfallPoint("Baseline Risk", base, base)]

    for item in importances[:WATERFALL_TOP_N]:
        cumulative += item.importance
        points.append(WaterfallPoint(item.name, item.importance, cumulative))

    if reconcile:
        residual = score_condition(features, model, reference) - cumulative
        if abs(residual) > WATERFALL_RESIDUAL_TOLERANCE:
            cumulative += residual
            points.append(WaterfallPoint("Other Factors", residual, cumulative))

    return points


def global_importance() -> List[Dict[str, Any]]:
    """Static population-level importance table."""
    return [dict(row) for row in GLOBAL_IMPORTANCE]


class AttributionEngine:
    """Explainability over a fixed set of reference tables."""

    def __init__(self, reference: ReferenceData = DEFAULT_REFERENCE, reconcile_waterfall: bool = True):
        self.reference = reference
        self.reconcile_waterfall = reconcile_waterfall
        logger.info(f"AttributionEngine initialized (reconciled waterfall: {reconcile_waterfall})")

    def explain(self, condition: Condition, features: PatientFeatures) -> ConditionExplanation:
        """
        Explain one condition for one feature vector.

        Args:
            condition: Condition to explain
            features: Features after any what-if overrides

        Returns:
            ConditionExplanation
        """
        model = self.reference.model(condition)
        risk = score_condition(features, model, self.reference)
        importances = feature_importance(features, model, self.reference)

        explanation = ConditionExplanation(
            condition=model.condition,
            risk_percentage=risk,
            feature_importance=importances,
            sensitivity_curves=sensitivity_curves(features, model, self.reference),
            counterfactuals=counterfactuals(features, model, self.reference, current_risk=risk),
            waterfall=waterfall(
                features, model, self.reference,
                reconcile=self.reconcile_waterfall, importances=importances,
            ),
        )
        logger.debug(
            f"Explained {model.condition.value}: risk={risk:.1f}, "
            f"{len(explanation.counterfactuals)} counterfactuals"
        )
        return explanation

    def explain_all(self, features: PatientFeatures) -> Dict[Condition, ConditionExplanation]:
        return {condition: self.explain(condition, features) for condition in self.reference.models}

    @staticmethod
    def mean_risk(explanations: Dict[Condition, ConditionExplanation]) -> float:
        """Unweighted mean risk across explained conditions."""
        if not explanations:
            return 0.0
        return float(np.mean([e.risk_percentage for e in explanations.values()]))
