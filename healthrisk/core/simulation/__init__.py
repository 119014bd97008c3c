"""
Simulation Module

Temporal signals, trajectory projection and intervention ranking.
"""
from .temporal import (
    TemporalSignal,
    VitalTrend,
    analyze_series,
    analyze_metric,
    compute_vital_trends,
)
from .trajectory import (
    TrajectoryPoint,
    simulate_trajectory,
    project_disease_progression,
    step_confidence,
    add_months,
)
from .interventions import (
    InterventionDefinition,
    INTERVENTION_CATALOG,
    CurrentRisks,
    TreatmentOption,
    score_intervention,
    rank_interventions,
    recommended_treatment_effect,
)

__all__ = [
    "TemporalSignal",
    "VitalTrend",
    "analyze_series",
    "analyze_metric",
    "compute_vital_trends",
    "TrajectoryPoint",
    "simulate_trajectory",
    "project_disease_progression",
    "step_confidence",
    "add_months",
    "InterventionDefinition",
    "INTERVENTION_CATALOG",
    "CurrentRisks",
    "TreatmentOption",
    "score_intervention",
    "rank_interventions",
    "recommended_treatment_effect",
]
