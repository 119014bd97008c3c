"""
Feature Builder

Converts raw patient records (profile + latest vital signs) into a complete
PatientFeatures vector. Any measurement without a source value takes the
population mean, so this never fails.
"""
from datetime import date, datetime
from typing import Any, Optional

from .base import PatientFeatures
from .reference import ReferenceData, DEFAULT_REFERENCE
from healthrisk.utils import get_logger

logger = get_logger(__name__)


def _field(record: Any, name: str) -> Any:
    """Read a field from a mapping or an attribute-style record."""
    if record is None:
        return None
    if isinstance(record, dict):
        return record.get(name)
    getter = getattr(record, "get", None)
    if callable(getter):
        return getter(name)
    return getattr(record, name, None)


def _first_present(*values: Any) -> Optional[float]:
    """First value that is a usable (non-empty, non-zero) number."""
    for value in values:
        if value:
            try:
                return float(value)
            except (TypeError, ValueError):
                continue
    return None


def _parse_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.fromisoformat(str(value)[:10]).date()
    except ValueError:
        logger.debug(f"Unparseable date of birth: {value!r}")
        return None


def calculate_age(date_of_birth: Any, today: Optional[date] = None) -> Optional[int]:
    """
    Age in whole years as a plain year difference.

    Month and day are not considered, so a patient whose
    birthday has not yet come this year is counted one year older.
    """
    dob = _parse_date(date_of_birth)
    if dob is None:
        return None
    today = today or date.today()
    return today.year - dob.year


def calculate_bmi(weight: Optional[float], height: Optional[float], default: float) -> float:
    """BMI from kg and cm, rounded to one decimal; ``default`` if either is missing."""
    if not weight or not height:
        return default
    height_m = height / 100.0
    return round(weight / (height_m * height_m), 1)


def build_patient_features(
    profile: Any = None,
    latest_vitals: Any = None,
    today: Optional[date] = None,
    reference: ReferenceData = DEFAULT_REFERENCE,
) -> PatientFeatures:
    """
    Build a gap-filled feature vector.

    Args:
        profile: Health profile (date_of_birth, height, weight, gender, smoking)
        latest_vitals: Most recent vital-sign record
        today: Reference date for age, defaults to the current date
        reference: Reference tables providing population means

    Returns:
        PatientFeatures with every numeric field populated
    """
    means = reference.means

    age = calculate_age(_field(profile, "date_of_birth"), today)

    source_weight = _first_present(_field(profile, "weight"), _field(latest_vitals, "weight"))
    source_height = _first_present(_field(profile, "height"))

    smoking = _field(profile, "smoking")
    if smoking is None:
        smoking = means.smoking

    features = PatientFeatures(
        age=float(age) if age is not None else means.age,
        bmi=calculate_bmi(source_weight, source_height, default=means.bmi),
        systolic_bp=_first_present(_field(latest_vitals, "blood_pressure_systolic")) or means.systolic_bp,
        diastolic_bp=_first_present(_field(latest_vitals, "blood_pressure_diastolic")) or means.diastolic_bp,
        heart_rate=_first_present(_field(latest_vitals, "heart_rate")) or means.heart_rate,
        blood_glucose=_first_present(_field(latest_vitals, "blood_glucose")) or means.blood_glucose,
        weight=source_weight or means.weight,
        height=source_height or means.height,
        smoking=1.0 if smoking else 0.0,
        oxygen_saturation=_first_present(_field(latest_vitals, "oxygen_saturation")) or means.oxygen_saturation,
        gender=_field(profile, "gender") or None,
    )

    logger.debug(
        f"Built features: age={features.age:.0f}, bmi={features.bmi:.1f}, "
        f"bp={features.systolic_bp:.0f}/{features.diastolic_bp:.0f}"
    )
    return features
