"""
Digital Twin Service - temporal analysis, trajectory projection and intervention ranking
"""
from datetime import date, datetime
from typing import Dict, Any, List, Optional

import numpy as np

from healthrisk.core.features import Condition, build_patient_features
from healthrisk.core.inference import RiskEngine
from healthrisk.core.llm import NarrativeAdapter
from healthrisk.core.records import PatientRecordStore
from healthrisk.core.simulation import (
    CurrentRisks,
    TemporalSignal,
    analyze_metric,
    simulate_trajectory,
    project_disease_progression,
    rank_interventions,
    recommended_treatment_effect,
)
from healthrisk.config import settings
from healthrisk.utils import get_logger

logger = get_logger(__name__)

# (signal name, vital-sign column)
TEMPORAL_METRICS = (
    ("systolic", "blood_pressure_systolic"),
    ("heart_rate", "heart_rate"),
    ("blood_glucose", "blood_glucose"),
    ("weight", "weight"),
)

# (trajectory name, signal name, default value, default volatility)
TRAJECTORY_METRICS = (
    ("blood_pressure", "systolic", 120.0, 0.05),
    ("heart_rate", "heart_rate", 72.0, 0.03),
    ("blood_glucose", "blood_glucose", 95.0, 0.08),
)

CONFIDENCE_LEVEL = 0.9
POLICY_EXPLANATION = (
    "Interventions ranked by expected benefit: immediate reward plus adherence-weighted "
    "discounted future reward, minus a side-effect penalty"
)


class DigitalTwinService:
    """Runs the digital twin simulation for a patient."""

    def __init__(
        self,
        store: PatientRecordStore,
        narrative: NarrativeAdapter,
        risk_engine: Optional[RiskEngine] = None,
        seed: Optional[int] = None,
        paths: Optional[int] = None,
    ):
        self.store = store
        self.narrative = narrative
        self.risk_engine = risk_engine or RiskEngine()
        self.seed = seed if seed is not None else settings.simulation_seed
        self.paths = paths or settings.simulation_paths

    async def simulate(self, patient_id: str, today: Optional[date] = None) -> Dict[str, Any]:
        today = today or date.today()
        records = await self.store.fetch(patient_id, vitals_limit=settings.vitals_history_limit)
        latest = records.latest_vitals or {}

        signals: Dict[str, TemporalSignal] = {
            name: analyze_metric(records.vitals, column) for name, column in TEMPORAL_METRICS
        }

        # One generator per request: reproducible for a configured seed
        rng = np.random.default_rng(self.seed)
        columns = dict(TEMPORAL_METRICS)
        trajectories: Dict[str, List[Dict[str, Any]]] = {}
        for name, signal_name, default_value, default_volatility in TRAJECTORY_METRICS:
            signal = signals[signal_name]
            points = simulate_trajectory(
                latest.get(columns[signal_name]) or default_value,
                signal.trend,
                signal.volatility or default_volatility,
                settings.trajectory_steps,
                paths=self.paths,
                rng=rng,
                start=today,
            )
            trajectories[name] = [p.to_dict() for p in points]

        features = build_patient_features(records.profile, records.latest_vitals, today=today)
        assessments = self.risk_engine.assess_all(features)
        general = self.risk_engine.general_health(features)
        risks = CurrentRisks(
            cardiovascular=assessments[Condition.CARDIOVASCULAR].risk_percentage,
            diabetes=assessments[Condition.DIABETES].risk_percentage,
            general=float(general.risk_score),
        )

        treatments = rank_interventions(risks)
        effect = recommended_treatment_effect(treatments)
        horizon = settings.progression_horizon_months
        disease_trajectories = {
            "cardiovascular": [
                p.to_dict() for p in project_disease_progression(risks.cardiovascular, horizon, effect, start=today)
            ],
            "diabetes": [
                p.to_dict() for p in project_disease_progression(risks.diabetes, horizon, effect, start=today)
            ],
        }

        narrative = await self.narrative.interpret_simulation(signals, risks, treatments)

        logger.info(
            f"Digital twin simulation completed for {patient_id}: {len(records.vitals)} vitals, "
            f"treatment effect {effect:.1f}%"
        )

        return {
            "temporal_analysis": {name: signal.to_dict() for name, signal in signals.items()},
            "vital_trajectories": trajectories,
            "current_risks": risks.to_dict(),
            "treatment_optimization": {
                "treatments": [t.to_dict() for t in treatments],
                "policy_explanation": POLICY_EXPLANATION,
            },
            "disease_trajectories": disease_trajectories,
            "uncertainty_metrics": {
                "epistemic": "Model uncertainty increases with prediction horizon",
                "aleatoric": "Patient variability captured through Monte Carlo simulation",
                "confidence_level": CONFIDENCE_LEVEL,
                "simulation_runs": self.paths,
            },
            "interpretation": narrative.text,
            "interpretation_source": narrative.source,
            "generated_at": datetime.now().isoformat(),
        }
