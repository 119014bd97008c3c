"""
Explainability Service - risk attribution with what-if analysis
"""
from datetime import date, datetime
from typing import Dict, Any, Mapping, Optional

from healthrisk.core.features import Condition, build_patient_features
from healthrisk.core.inference import AttributionEngine, global_importance
from healthrisk.core.llm import NarrativeAdapter
from healthrisk.core.records import PatientRecordStore
from healthrisk.config import settings
from healthrisk.utils import get_logger

logger = get_logger(__name__)


class ExplainabilityService:
    """
    Builds the explainability view for a patient.

    Current features come from the stored records; analysis features are the
    current features with any what-if overrides applied. Every number in the
    view is computed from the analysis features.
    """

    def __init__(
        self,
        store: PatientRecordStore,
        narrative: NarrativeAdapter,
        attribution: Optional[AttributionEngine] = None,
    ):
        self.store = store
        self.narrative = narrative
        self.attribution = attribution or AttributionEngine(reconcile_waterfall=settings.waterfall_reconcile)

    async def analyze(
        self,
        patient_id: str,
        what_if: Optional[Mapping[str, float]] = None,
        today: Optional[date] = None,
    ) -> Dict[str, Any]:
        records = await self.store.fetch(patient_id, vitals_limit=1)
        current = build_patient_features(records.profile, records.latest_vitals, today=today)
        analysis = current.with_overrides(what_if)

        explanations = self.attribution.explain_all(analysis)
        cardiovascular = explanations[Condition.CARDIOVASCULAR]
        diabetes = explanations[Condition.DIABETES]
        overall = self.attribution.mean_risk(explanations)

        narrative = await self.narrative.explain_risks(
            analysis,
            cardiovascular.risk_percentage,
            diabetes.risk_percentage,
            cardiovascular.feature_importance,
            cardiovascular.counterfactuals,
        )

        logger.info(
            f"XAI analysis completed for {patient_id}: cv={cardiovascular.risk_percentage:.1f}%, "
            f"diabetes={diabetes.risk_percentage:.1f}%, what-if={'yes' if what_if else 'no'}"
        )

        by_condition = {c.value: e.to_dict() for c, e in explanations.items()}
        return {
            "current_features": current.to_dict(),
            "analysis_features": analysis.to_dict(),
            "risks": {
                **{name: view["risk_percentage"] for name, view in by_condition.items()},
                "overall": round(overall, 1),
            },
            "risk_levels": {name: view["risk_level"] for name, view in by_condition.items()},
            "feature_importance": {name: view["feature_importance"] for name, view in by_condition.items()},
            "sensitivity_curves": {name: view["sensitivity_curves"] for name, view in by_condition.items()},
            "counterfactuals": {name: view["counterfactuals"] for name, view in by_condition.items()},
            "waterfall": {name: view["waterfall"] for name, view in by_condition.items()},
            "global_importance": global_importance(),
            "explanation": narrative.text,
            "explanation_source": narrative.source,
            "timestamp": datetime.now().isoformat(),
        }
