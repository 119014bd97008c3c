"""
Intervention Ranking Module

Scores a fixed catalog of lifestyle and monitoring interventions with a
one-step reward heuristic: immediate reward scaled by the patient's average
risk, plus an adherence-weighted discounted future reward, minus a
side-effect penalty.
"""
from dataclasses import dataclass
from typing import Dict, Any, List, Sequence, Tuple

from healthrisk.utils import get_logger

logger = get_logger(__name__)

DISCOUNT_FACTOR = 0.9
SIDE_EFFECT_PENALTY = 20
MAX_RISK_REDUCTION = 35.0
RECOMMENDED_COUNT = 3


@dataclass(frozen=True)
class InterventionDefinition:
    """Catalog entry. Difficulty and side effects are fractions in [0, 1]."""
    id: str
    name: str
    description: str
    base_reward: float
    conditions: Tuple[str, ...]
    adherence_difficulty: float
    side_effects: float


INTERVENTION_CATALOG: Tuple[InterventionDefinition, ...] = (
    InterventionDefinition(
        "lifestyle_diet", "Mediterranean Diet Intervention",
        "Plant-based diet with healthy fats, reducing processed foods and red meat",
        15, ("cardiovascular", "diabetes", "general"), 0.6, 0.05,
    ),
    InterventionDefinition(
        "exercise_cardio", "Structured Aerobic Exercise",
        "150 minutes/week moderate-intensity aerobic activity with heart rate monitoring",
        20, ("cardiovascular", "general"), 0.5, 0.08,
    ),
    InterventionDefinition(
        "exercise_resistance", "Resistance Training Program",
        "2-3 sessions/week of progressive resistance training for metabolic health",
        12, ("diabetes", "general"), 0.55, 0.1,
    ),
    InterventionDefinition(
        "stress_management", "Mindfulness-Based Stress Reduction",
        "8-week MBSR program with daily meditation and stress monitoring",
        10, ("cardiovascular", "general"), 0.4, 0.02,
    ),
    InterventionDefinition(
        "sleep_optimization", "Sleep Hygiene Protocol",
        "Structured sleep schedule, environment optimization, and circadian rhythm alignment",
        12, ("cardiovascular", "diabetes", "general"), 0.45, 0.03,
    ),
    InterventionDefinition(
        "glycemic_control", "Continuous Glucose Monitoring",
        "Real-time glucose tracking with meal and activity recommendations",
        25, ("diabetes",), 0.35, 0.05,
    ),
    InterventionDefinition(
        "bp_management", "Blood Pressure Monitoring Protocol",
        "Home BP monitoring with lifestyle triggers identification and response protocol",
        18, ("cardiovascular",), 0.3, 0.02,
    ),
    InterventionDefinition(
        "weight_management", "Behavioral Weight Management",
        "Cognitive behavioral therapy combined with caloric tracking and activity goals",
        22, ("cardiovascular", "diabetes", "general"), 0.65, 0.04,
    ),
)


@dataclass(frozen=True)
class CurrentRisks:
    """
    Inputs to the ranker.

    ``general`` is the general health score (higher is healthier), so it is
    inverted before averaging with the two condition risks.
    """
    cardiovascular: float
    diabetes: float
    general: float

    @property
    def average(self) -> float:
        return (self.cardiovascular + self.diabetes + (100 - self.general)) / 3

    def to_dict(self) -> Dict[str, float]:
        return {
            "cardiovascular": self.cardiovascular,
            "diabetes": self.diabetes,
            "general": self.general,
        }


@dataclass
class TreatmentOption:
    """A scored intervention."""
    id: str
    name: str
    description: str
    expected_outcome: int
    risk_reduction: float
    adherence_required: int
    side_effect_risk: int
    q_value: float
    recommended: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "expected_outcome": self.expected_outcome,
            "risk_reduction": round(self.risk_reduction, 1),
            "adherence_required": self.adherence_required,
            "side_effect_risk": self.side_effect_risk,
            "q_value": round(self.q_value, 2),
            "recommended": self.recommended,
        }


def score_intervention(action: InterventionDefinition, avg_risk: float) -> TreatmentOption:
    """Score one intervention against the patient's average risk."""
    adherence_prob = 1 - action.adherence_difficulty
    immediate = action.base_reward * (avg_risk / 50)
    future = immediate * DISCOUNT_FACTOR * adherence_prob
    q_value = immediate + future - action.side_effects * SIDE_EFFECT_PENALTY
    reduction = min(MAX_RISK_REDUCTION, action.base_reward * adherence_prob * (avg_risk / 30))

    return TreatmentOption(
        id=action.id,
        name=action.name,
        description=action.description,
        expected_outcome=int(round(max(0.0, avg_risk - reduction))),
        risk_reduction=reduction,
        adherence_required=int(round(action.adherence_difficulty * 100)),
        side_effect_risk=int(round(action.side_effects * 100)),
        q_value=q_value,
    )


def rank_interventions(
    risks: CurrentRisks,
    catalog: Sequence[InterventionDefinition] = INTERVENTION_CATALOG,
) -> List[TreatmentOption]:
    """
    Rank the catalog by q-value, highest first.

    Exactly the top three (or all, for a smaller catalog) are marked
    recommended. Ties keep catalog order.
    """
    avg_risk = risks.average
    options = [score_intervention(action, avg_risk) for action in catalog]
    options.sort(key=lambda option: option.q_value, reverse=True)

    for option in options[:RECOMMENDED_COUNT]:
        option.recommended = True

    logger.debug(f"Ranked {len(options)} interventions at average risk {avg_risk:.1f}")
    return options


def recommended_treatment_effect(options: Sequence[TreatmentOption]) -> float:
    """Summed risk reduction of the recommended interventions."""
    return sum(option.risk_reduction for option in options if option.recommended)
