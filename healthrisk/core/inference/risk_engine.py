"""
Risk Engine Module

Weighted log-odds risk model: every weighted feature contributes
``weight * (value - population_mean)`` to a per-condition base log-odds, the
sum is squashed through the logistic function and reported as a percentage
clamped to [1, 95].
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Any, List, Mapping, Optional, Sequence
from enum import Enum
import math
import numpy as np

from healthrisk.core.features import (
    PatientFeatures, Condition, ConditionModel, ReferenceData, DEFAULT_REFERENCE,
)
from healthrisk.utils import get_logger

logger = get_logger(__name__)

MIN_RISK_PERCENTAGE = 1.0
MAX_RISK_PERCENTAGE = 95.0


class RiskLevel(str, Enum):
    """Risk tiers, ordered low < moderate < high < very-high."""
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    VERY_HIGH = "very-high"

    @classmethod
    def from_percentage(cls, percentage: float) -> "RiskLevel":
        """Convert a risk percentage to its tier."""
        if percentage >= 30:
            return cls.VERY_HIGH
        elif percentage >= 20:
            return cls.HIGH
        elif percentage >= 10:
            return cls.MODERATE
        return cls.LOW

    @property
    def rank(self) -> int:
        return list(RiskLevel).index(self)


class FactorImpact(str, Enum):
    """Qualitative direction of a risk factor."""
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


@dataclass
class RiskFactor:
    """Qualitative, threshold-based risk factor."""
    name: str
    impact: FactorImpact
    description: str
    value: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "name": self.name,
            "impact": self.impact.value,
            "description": self.description,
        }
        if self.value is not None:
            result["value"] = round(float(self.value), 1)
        return result


@dataclass
class RiskResult:
    """Risk assessment for one condition."""
    condition: str
    risk_level: RiskLevel
    risk_score: int
    risk_percentage: float
    confidence: float
    factors: List[RiskFactor] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "condition": self.condition,
            "risk_level": self.risk_level.value,
            "risk_score": self.risk_score,
            "risk_percentage": self.risk_percentage,
            "confidence": self.confidence,
            "factors": [f.to_dict() for f in self.factors],
            "recommendations": list(self.recommendations),
        }


def sigmoid(x: float) -> float:
    """Numerically stable logistic function."""
    if x >= 0:
        return 1.0 / (1.0 + math.exp(-x))
    z = math.exp(x)
    return z / (1.0 + z)


def log_odds(
    features: PatientFeatures,
    weights: Mapping[str, float],
    base_log_odds: float,
    reference: ReferenceData = DEFAULT_REFERENCE,
) -> float:
    """Base log-odds plus the weighted deviation of each feature from its mean."""
    total = base_log_odds
    for feature, weight in weights.items():
        total += weight * (features.get(feature) - reference.means.get(feature))
    return total


def score(
    features: PatientFeatures,
    weights: Mapping[str, float],
    base_log_odds: float,
    reference: ReferenceData = DEFAULT_REFERENCE,
) -> float:
    """
    Risk percentage in [1, 95].

    Total for any finite input: the logistic output is bounded and the
    clamp removes degenerate 0%/100% values.
    """
    probability = sigmoid(log_odds(features, weights, base_log_odds, reference))
    return float(np.clip(probability * 100.0, MIN_RISK_PERCENTAGE, MAX_RISK_PERCENTAGE))


def score_condition(
    features: PatientFeatures,
    model: ConditionModel,
    reference: ReferenceData = DEFAULT_REFERENCE,
) -> float:
    """Unrounded risk percentage for a condition model."""
    return score(features, model.weights, model.base_log_odds, reference)


def baseline_risk(model: ConditionModel, reference: ReferenceData = DEFAULT_REFERENCE) -> float:
    """Risk of the population-mean patient; depends only on the base log-odds."""
    return score_condition(reference.means.as_features(), model, reference)


def _bmi_class(bmi: float, reference: ReferenceData) -> str:
    t = reference.thresholds
    if bmi >= t.bmi_obese:
        return "obese_2"
    elif bmi >= t.bmi_overweight + 0.1:
        return "obese_1"
    elif bmi >= t.bmi_normal + 0.1:
        return "overweight"
    elif bmi >= t.bmi_underweight:
        return "healthy"
    return "underweight"


def _fmt(value: float) -> str:
    """Format a measurement without a trailing .0 for whole numbers."""
    return f"{value:.0f}" if float(value).is_integer() else f"{value:.1f}"


def cardiovascular_factors(
    features: PatientFeatures,
    reference: ReferenceData = DEFAULT_REFERENCE,
) -> List[RiskFactor]:
    """Qualitative cardiovascular factors from named medical thresholds."""
    t = reference.thresholds
    factors: List[RiskFactor] = []
    age = features.age
    systolic = features.systolic_bp
    diastolic = features.diastolic_bp
    bp = f"{_fmt(systolic)}/{_fmt(diastolic)} mmHg"

    if age > 60:
        factors.append(RiskFactor("Age", FactorImpact.NEGATIVE, f"{_fmt(age)} years - higher risk group", age))
    elif age > 50:
        factors.append(RiskFactor("Age", FactorImpact.NEGATIVE, f"{_fmt(age)} years - moderate risk increase", age))
    else:
        factors.append(RiskFactor("Age", FactorImpact.NEUTRAL, f"{_fmt(age)} years", age))

    if systolic >= t.bp_hypertension_2:
        factors.append(RiskFactor("Blood Pressure", FactorImpact.NEGATIVE, f"{bp} - Stage 2 Hypertension", systolic))
    elif systolic >= t.bp_hypertension_1:
        factors.append(RiskFactor("Blood Pressure", FactorImpact.NEGATIVE, f"{bp} - Stage 1 Hypertension", systolic))
    elif systolic >= t.bp_elevated:
        factors.append(RiskFactor("Blood Pressure", FactorImpact.NEGATIVE, f"{bp} - Elevated", systolic))
    elif systolic > t.bp_normal:
        factors.append(RiskFactor("Blood Pressure", FactorImpact.NEUTRAL, f"{bp} - High-normal", systolic))
    else:
        factors.append(RiskFactor("Blood Pressure", FactorImpact.POSITIVE, f"{bp} - Normal", systolic))

    bmi = features.bmi
    bmi_labels = {
        "obese_2": (FactorImpact.NEGATIVE, "Obesity Class II+"),
        "obese_1": (FactorImpact.NEGATIVE, "Obesity Class I"),
        "overweight": (FactorImpact.NEGATIVE, "Overweight"),
        "healthy": (FactorImpact.POSITIVE, "Healthy weight"),
    }
    bmi_class = _bmi_class(bmi, reference)
    if bmi_class in bmi_labels:
        impact, label = bmi_labels[bmi_class]
        factors.append(RiskFactor("BMI", impact, f"{bmi:.1f} - {label}", bmi))

    hr = features.heart_rate
    if hr > t.hr_high or hr < t.hr_low:
        factors.append(RiskFactor("Heart Rate", FactorImpact.NEGATIVE, f"{_fmt(hr)} bpm - Outside normal range", hr))
    else:
        factors.append(RiskFactor("Heart Rate", FactorImpact.POSITIVE, f"{_fmt(hr)} bpm - Normal", hr))

    if features.smoking > 0:
        factors.append(RiskFactor("Smoking", FactorImpact.NEGATIVE, "Current smoker - major cardiovascular risk factor"))

    o2 = features.oxygen_saturation
    if o2 < t.spo2_low:
        factors.append(RiskFactor("Oxygen Saturation", FactorImpact.NEGATIVE, f"{_fmt(o2)}% - Below optimal", o2))
    else:
        factors.append(RiskFactor("Oxygen Saturation", FactorImpact.POSITIVE, f"{_fmt(o2)}% - Normal", o2))

    return factors


def diabetes_factors(
    features: PatientFeatures,
    reference: ReferenceData = DEFAULT_REFERENCE,
) -> List[RiskFactor]:
    """Qualitative diabetes factors from named medical thresholds."""
    t = reference.thresholds
    factors: List[RiskFactor] = []
    age = features.age

    if age >= 64:
        factors.append(RiskFactor("Age", FactorImpact.NEGATIVE, f"{_fmt(age)} years - highest risk group", age))
    elif age >= 55:
        factors.append(RiskFactor("Age", FactorImpact.NEGATIVE, f"{_fmt(age)} years - elevated risk", age))
    elif age >= 45:
        factors.append(RiskFactor("Age", FactorImpact.NEUTRAL, f"{_fmt(age)} years", age))
    else:
        factors.append(RiskFactor("Age", FactorImpact.POSITIVE, f"{_fmt(age)} years - lower risk group", age))

    bmi = features.bmi
    bmi_class = _bmi_class(bmi, reference)
    if bmi_class == "obese_2":
        factors.append(RiskFactor("BMI", FactorImpact.NEGATIVE, f"{bmi:.1f} - Significant diabetes risk", bmi))
    elif bmi_class == "obese_1":
        factors.append(RiskFactor("BMI", FactorImpact.NEGATIVE, f"{bmi:.1f} - Obesity increases diabetes risk", bmi))
    elif bmi_class == "overweight":
        factors.append(RiskFactor("BMI", FactorImpact.NEGATIVE, f"{bmi:.1f} - Overweight", bmi))
    else:
        factors.append(RiskFactor("BMI", FactorImpact.POSITIVE, f"{bmi:.1f} - Healthy weight", bmi))

    glucose = features.blood_glucose
    if glucose >= t.glucose_diabetes:
        factors.append(RiskFactor("Blood Glucose", FactorImpact.NEGATIVE, f"{_fmt(glucose)} mg/dL - Diabetic range", glucose))
    elif glucose >= t.glucose_prediabetes:
        factors.append(RiskFactor("Blood Glucose", FactorImpact.NEGATIVE, f"{_fmt(glucose)} mg/dL - Prediabetic range", glucose))
    elif glucose >= t.glucose_normal:
        factors.append(RiskFactor("Blood Glucose", FactorImpact.NEGATIVE, f"{_fmt(glucose)} mg/dL - Impaired fasting glucose", glucose))
    else:
        factors.append(RiskFactor("Blood Glucose", FactorImpact.POSITIVE, f"{_fmt(glucose)} mg/dL - Normal", glucose))

    if features.systolic_bp >= t.bp_hypertension_1:
        factors.append(RiskFactor("Blood Pressure", FactorImpact.NEGATIVE, "Hypertension increases diabetes complications risk"))

    if features.smoking > 0:
        factors.append(RiskFactor("Smoking", FactorImpact.NEGATIVE, "Smoking increases insulin resistance"))

    return factors


_FACTOR_BUILDERS = {
    Condition.CARDIOVASCULAR: cardiovascular_factors,
    Condition.DIABETES: diabetes_factors,
}


def assess(
    condition: Condition,
    features: PatientFeatures,
    reference: ReferenceData = DEFAULT_REFERENCE,
) -> RiskResult:
    """
    Full risk assessment for a condition.

    Args:
        condition: Condition to score
        features: Complete patient features
        reference: Reference tables

    Returns:
        Fresh RiskResult with numeric risk, tier, factors and recommendations
    """
    condition = Condition(condition)
    model = reference.model(condition)
    percentage = score_condition(features, model, reference)

    return RiskResult(
        condition=condition.value,
        risk_level=RiskLevel.from_percentage(percentage),
        risk_score=int(round(percentage)),
        risk_percentage=round(percentage, 1),
        confidence=model.confidence,
        factors=_FACTOR_BUILDERS[condition](features, reference),
        recommendations=list(model.recommendations),
    )


def assess_cardiovascular(features: PatientFeatures, reference: ReferenceData = DEFAULT_REFERENCE) -> RiskResult:
    """Framingham-style cardiovascular risk."""
    return assess(Condition.CARDIOVASCULAR, features, reference)


def assess_diabetes(features: PatientFeatures, reference: ReferenceData = DEFAULT_REFERENCE) -> RiskResult:
    """FINDRISC-style diabetes risk."""
    return assess(Condition.DIABETES, features, reference)


def general_health_score(
    features: PatientFeatures,
    reference: ReferenceData = DEFAULT_REFERENCE,
) -> RiskResult:
    """
    Additive 100-point wellness score.

    ``risk_score`` holds the health score (higher is better) and
    ``risk_percentage`` its complement.
    """
    t = reference.thresholds
    factors: List[RiskFactor] = []
    health = 100

    systolic = features.systolic_bp
    if systolic >= t.bp_hypertension_1:
        health -= 15
        factors.append(RiskFactor("Blood Pressure", FactorImpact.NEGATIVE, "Elevated blood pressure"))
    elif systolic < t.bp_normal:
        factors.append(RiskFactor("Blood Pressure", FactorImpact.POSITIVE, "Optimal blood pressure"))
    else:
        health -= 5
        factors.append(RiskFactor("Blood Pressure", FactorImpact.NEUTRAL, "Slightly elevated blood pressure"))

    hr = features.heart_rate
    if hr > t.hr_high or hr < t.hr_low:
        health -= 10
        factors.append(RiskFactor("Heart Rate", FactorImpact.NEGATIVE, f"{_fmt(hr)} bpm - Outside normal range"))
    else:
        factors.append(RiskFactor("Heart Rate", FactorImpact.POSITIVE, f"{_fmt(hr)} bpm - Normal"))

    bmi = features.bmi
    if bmi >= t.bmi_overweight + 0.1 or bmi < t.bmi_underweight:
        health -= 15
        factors.append(RiskFactor("Weight Status", FactorImpact.NEGATIVE, f"BMI {bmi:.1f} - outside healthy range"))
    elif bmi >= t.bmi_normal + 0.1:
        health -= 5
        factors.append(RiskFactor("Weight Status", FactorImpact.NEUTRAL, f"BMI {bmi:.1f} - slightly overweight"))
    else:
        factors.append(RiskFactor("Weight Status", FactorImpact.POSITIVE, f"BMI {bmi:.1f} - healthy range"))

    if features.oxygen_saturation < t.spo2_low:
        health -= 10
        factors.append(RiskFactor(
            "Oxygen Saturation", FactorImpact.NEGATIVE,
            f"{_fmt(features.oxygen_saturation)}% - Below optimal"
        ))

    if features.smoking > 0:
        health -= 20
        factors.append(RiskFactor("Smoking", FactorImpact.NEGATIVE, "Smoking significantly impacts overall health"))

    final_score = max(health, 0)
    if final_score < 40:
        level = RiskLevel.VERY_HIGH
    elif final_score < 60:
        level = RiskLevel.HIGH
    elif final_score < 80:
        level = RiskLevel.MODERATE
    else:
        level = RiskLevel.LOW

    return RiskResult(
        condition="general_health",
        risk_level=level,
        risk_score=final_score,
        risk_percentage=float(100 - final_score),
        confidence=0.88,
        factors=factors,
        recommendations=[
            "Schedule comprehensive health checkup",
            "Aim for 7-9 hours of quality sleep",
            "Stay hydrated with 8 glasses of water daily",
            "Practice stress management techniques",
            "Maintain social connections",
        ],
    )


def analyze_cycle_health(cycles: Optional[Sequence[Mapping[str, Any]]]) -> Optional[RiskResult]:
    """
    Menstrual cycle regularity assessment.

    Returns None when no cycles are recorded.
    """
    if not cycles:
        return None

    factors: List[RiskFactor] = []
    points = 0

    lengths = [float(c.get("cycle_length")) for c in cycles if c.get("cycle_length")]
    if lengths:
        avg_cycle = float(np.mean(lengths))
        variance = float(np.var(lengths))

        if avg_cycle > 35 or avg_cycle < 21:
            points += 3
            factors.append(RiskFactor(
                "Cycle Length", FactorImpact.NEGATIVE, f"Irregular cycles (avg {avg_cycle:.0f} days)"
            ))
        else:
            factors.append(RiskFactor(
                "Cycle Length", FactorImpact.POSITIVE, f"Regular cycles (avg {avg_cycle:.0f} days)"
            ))

        if variance > 49:
            points += 2
            factors.append(RiskFactor("Cycle Consistency", FactorImpact.NEGATIVE, "High cycle variability detected"))

    percentage = min(points / 12 * 100, 90)
    if points >= 9:
        level = RiskLevel.VERY_HIGH
    elif points >= 6:
        level = RiskLevel.HIGH
    elif points >= 3:
        level = RiskLevel.MODERATE
    else:
        level = RiskLevel.LOW

    return RiskResult(
        condition="cycle_health",
        risk_level=level,
        risk_score=points,
        risk_percentage=round(percentage, 1),
        confidence=0.78,
        factors=factors,
        recommendations=[
            "Track menstrual cycles consistently",
            "Consult gynecologist if irregularities persist",
            "Maintain healthy lifestyle for hormonal balance",
            "Consider hormone panel testing if symptoms worsen",
        ],
    )


class RiskEngine:
    """
    Condition risk scoring over a fixed set of reference tables.

    Stateless apart from the immutable reference data it is built with.
    """

    def __init__(self, reference: ReferenceData = DEFAULT_REFERENCE):
        self.reference = reference
        logger.info(f"RiskEngine initialized for {[c.value for c in reference.models]}")

    def assess(self, condition: Condition, features: PatientFeatures) -> RiskResult:
        return assess(condition, features, self.reference)

    def assess_all(self, features: PatientFeatures) -> Dict[Condition, RiskResult]:
        """Assess every condition with a model."""
        return {condition: self.assess(condition, features) for condition in self.reference.models}

    def general_health(self, features: PatientFeatures) -> RiskResult:
        return general_health_score(features, self.reference)
