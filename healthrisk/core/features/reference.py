"""
Reference Tables

Process-wide, immutable reference data: population means, medical thresholds
and the per-condition risk model definitions. Built once at import time and
passed explicitly to the scoring functions.
"""
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Tuple

from .base import PopulationMeans


class Condition(str, Enum):
    """Conditions with a calibrated risk model."""
    CARDIOVASCULAR = "cardiovascular"
    DIABETES = "diabetes"


@dataclass(frozen=True)
class MedicalThresholds:
    """Clinical cut points used for the qualitative factor narrative."""
    bp_normal: float = 120
    bp_elevated: float = 130
    bp_hypertension_1: float = 140
    bp_hypertension_2: float = 160
    glucose_normal: float = 100
    glucose_prediabetes: float = 126
    glucose_diabetes: float = 200
    bmi_underweight: float = 18.5
    bmi_normal: float = 24.9
    bmi_overweight: float = 29.9
    bmi_obese: float = 35
    hr_low: float = 60
    hr_high: float = 100
    spo2_low: float = 95


@dataclass(frozen=True)
class ConditionModel:
    """
    Weighted log-odds model for one condition.

    The keys of ``weights`` are exactly the features that are scored,
    perturbed and explained for this condition.
    """
    condition: Condition
    weights: Mapping[str, float]
    base_log_odds: float
    confidence: float
    recommendations: Tuple[str, ...] = ()
    # Literal baseline used by waterfalls when reconciliation is disabled
    display_baseline: float = 7.5


def _frozen(weights: dict) -> Mapping[str, float]:
    return MappingProxyType(dict(weights))


CARDIOVASCULAR_MODEL = ConditionModel(
    condition=Condition.CARDIOVASCULAR,
    weights=_frozen({
        "age": 0.022,
        "bmi": 0.016,
        "systolic_bp": 0.011,
        "diastolic_bp": 0.007,
        "heart_rate": 0.004,
        "blood_glucose": 0.006,
        "smoking": 0.14,
        "oxygen_saturation": -0.018,
    }),
    base_log_odds=-2.3,
    confidence=0.85,
    recommendations=(
        "Monitor blood pressure regularly at home",
        "Adopt a heart-healthy Mediterranean diet",
        "Engage in 150 minutes of moderate aerobic exercise weekly",
        "Schedule annual cardiovascular screening",
        "Manage stress through meditation or yoga",
    ),
    display_baseline=7.5,
)

DIABETES_MODEL = ConditionModel(
    condition=Condition.DIABETES,
    weights=_frozen({
        "age": 0.014,
        "bmi": 0.022,
        "blood_glucose": 0.018,
        "systolic_bp": 0.004,
        "weight": 0.007,
        "smoking": 0.07,
    }),
    base_log_odds=-2.6,
    confidence=0.82,
    recommendations=(
        "Get HbA1c test to assess long-term glucose control",
        "Follow low glycemic index diet",
        "Weight loss of 5-10% significantly reduces risk",
        "Exercise 30 minutes daily to improve insulin sensitivity",
        "Limit processed foods and sugary beverages",
    ),
    display_baseline=8.0,
)


@dataclass(frozen=True)
class ReferenceData:
    """Bundle of all immutable reference tables."""
    means: PopulationMeans = field(default_factory=PopulationMeans)
    thresholds: MedicalThresholds = field(default_factory=MedicalThresholds)
    models: Mapping[Condition, ConditionModel] = field(
        default_factory=lambda: MappingProxyType({
            Condition.CARDIOVASCULAR: CARDIOVASCULAR_MODEL,
            Condition.DIABETES: DIABETES_MODEL,
        })
    )

    def model(self, condition: Condition) -> ConditionModel:
        """Model definition for a condition."""
        return self.models[Condition(condition)]


DEFAULT_REFERENCE = ReferenceData()
