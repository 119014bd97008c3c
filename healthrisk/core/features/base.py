"""
Patient Feature Vector

Fixed-shape feature record consumed by every scoring and attribution function.
"""
from dataclasses import dataclass, fields, replace
from typing import Dict, Any, Mapping, Optional, Tuple

from healthrisk.utils import get_logger

logger = get_logger(__name__)


# Numeric features, in display order
NUMERIC_FEATURES: Tuple[str, ...] = (
    "age",
    "bmi",
    "systolic_bp",
    "diastolic_bp",
    "heart_rate",
    "blood_glucose",
    "weight",
    "height",
    "smoking",
    "oxygen_saturation",
)

FEATURE_DISPLAY_NAMES: Dict[str, str] = {
    "age": "Age",
    "bmi": "BMI",
    "systolic_bp": "Systolic Blood Pressure",
    "diastolic_bp": "Diastolic Blood Pressure",
    "heart_rate": "Heart Rate",
    "blood_glucose": "Blood Glucose",
    "weight": "Weight",
    "height": "Height",
    "smoking": "Smoking Status",
    "oxygen_saturation": "Oxygen Saturation",
}


def display_name(feature: str) -> str:
    """Human-readable name for a feature key."""
    return FEATURE_DISPLAY_NAMES.get(feature, feature)


@dataclass(frozen=True)
class PatientFeatures:
    """Complete, gap-filled feature vector for one patient."""
    age: float
    bmi: float
    systolic_bp: float
    diastolic_bp: float
    heart_rate: float
    blood_glucose: float
    weight: float
    height: float
    smoking: float
    oxygen_saturation: float
    gender: Optional[str] = None

    def get(self, feature: str) -> float:
        """Numeric value of a feature by key."""
        if feature not in NUMERIC_FEATURES:
            raise KeyError(f"Unknown feature: {feature}")
        return float(getattr(self, feature))

    def with_value(self, feature: str, value: float) -> "PatientFeatures":
        """Copy with a single feature replaced."""
        return self.with_overrides({feature: value})

    def with_overrides(self, overrides: Optional[Mapping[str, Any]]) -> "PatientFeatures":
        """
        Merge what-if overrides field by field.

        Only known numeric features are applied; ``None`` values and unknown
        keys are skipped. BMI is not recomputed from overridden weight/height.
        """
        if not overrides:
            return self

        changes: Dict[str, float] = {}
        for name, value in overrides.items():
            if name not in NUMERIC_FEATURES:
                logger.debug(f"Ignoring unknown what-if feature: {name}")
                continue
            if value is None:
                continue
            changes[name] = float(value)

        return replace(self, **changes) if changes else self

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary."""
        result: Dict[str, Any] = {name: float(getattr(self, name)) for name in NUMERIC_FEATURES}
        if self.gender is not None:
            result["gender"] = self.gender
        return result


@dataclass(frozen=True)
class PopulationMeans:
    """Reference value per feature: substitution default and permutation pivot."""
    age: float = 45.0
    bmi: float = 25.5
    systolic_bp: float = 120.0
    diastolic_bp: float = 80.0
    heart_rate: float = 72.0
    blood_glucose: float = 100.0
    weight: float = 70.0
    height: float = 170.0
    smoking: float = 0.0
    oxygen_saturation: float = 98.0

    def get(self, feature: str) -> float:
        """Population mean for a feature; 0.0 for features without one."""
        return float(getattr(self, feature, 0.0))

    def as_features(self) -> PatientFeatures:
        """The population-mean patient."""
        return PatientFeatures(**{f.name: getattr(self, f.name) for f in fields(self)})
