"""
Inference Module

Condition risk scoring and score attribution.
"""
from .risk_engine import (
    RiskEngine,
    RiskLevel,
    RiskResult,
    RiskFactor,
    FactorImpact,
    score,
    score_condition,
    baseline_risk,
    assess,
    assess_cardiovascular,
    assess_diabetes,
    general_health_score,
    analyze_cycle_health,
)
from .attribution import (
    AttributionEngine,
    ConditionExplanation,
    FeatureImportance,
    Counterfactual,
    WaterfallPoint,
    SensitivityPoint,
    feature_importance,
    sensitivity_curves,
    counterfactuals,
    waterfall,
    global_importance,
)

__all__ = [
    "RiskEngine",
    "RiskLevel",
    "RiskResult",
    "RiskFactor",
    "FactorImpact",
    "score",
    "score_condition",
    "baseline_risk",
    "assess",
    "assess_cardiovascular",
    "assess_diabetes",
    "general_health_score",
    "analyze_cycle_health",
    "AttributionEngine",
    "ConditionExplanation",
    "FeatureImportance",
    "Counterfactual",
    "WaterfallPoint",
    "SensitivityPoint",
    "feature_importance",
    "sensitivity_curves",
    "counterfactuals",
    "waterfall",
    "global_importance",
]
