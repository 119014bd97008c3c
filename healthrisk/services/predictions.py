"""
Predictions Service - condition risks, wellness, cycle health and vital trends
"""
from datetime import date, datetime
from typing import Dict, Any, Optional

from healthrisk.core.features import Condition, build_patient_features
from healthrisk.core.inference import RiskEngine, analyze_cycle_health
from healthrisk.core.llm import NarrativeAdapter
from healthrisk.core.records import PatientRecordStore
from healthrisk.core.simulation import compute_vital_trends
from healthrisk.utils import get_logger

logger = get_logger(__name__)

TREND_HISTORY_LIMIT = 30


class PredictionService:
    """Risk predictions for the patient dashboard."""

    def __init__(
        self,
        store: PatientRecordStore,
        narrative: NarrativeAdapter,
        risk_engine: Optional[RiskEngine] = None,
    ):
        self.store = store
        self.narrative = narrative
        self.risk_engine = risk_engine or RiskEngine()

    async def predict(self, patient_id: str, today: Optional[date] = None) -> Dict[str, Any]:
        records = await self.store.fetch(patient_id, vitals_limit=TREND_HISTORY_LIMIT, include_cycles=True)
        features = build_patient_features(records.profile, records.latest_vitals, today=today)

        assessments = self.risk_engine.assess_all(features)
        cardiovascular = assessments[Condition.CARDIOVASCULAR]
        diabetes = assessments[Condition.DIABETES]
        general = self.risk_engine.general_health(features)
        cycle = analyze_cycle_health(records.cycles)
        trends = compute_vital_trends(records.vitals)

        narrative = await self.narrative.summarize_predictions(cardiovascular, diabetes, general, cycle)

        logger.info(
            f"Predictions completed for {patient_id}: cv={cardiovascular.risk_level.value}, "
            f"diabetes={diabetes.risk_level.value}, health score={general.risk_score}"
        )

        return {
            "predictions": {
                "cardiovascular": cardiovascular.to_dict(),
                "diabetes": diabetes.to_dict(),
                "general_health": general.to_dict(),
                "cycle_health": cycle.to_dict() if cycle else None,
                "vital_trends": {k: v.to_dict() for k, v in trends.items()} if trends else None,
            },
            "recommendations": narrative.text,
            "recommendations_source": narrative.source,
            "generated_at": datetime.now().isoformat(),
        }
