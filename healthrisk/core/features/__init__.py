"""
Feature Module

Patient feature vector, immutable reference tables and the feature builder.
"""
from .base import PatientFeatures, PopulationMeans, NUMERIC_FEATURES, display_name
from .reference import (
    Condition,
    ConditionModel,
    MedicalThresholds,
    ReferenceData,
    DEFAULT_REFERENCE,
    CARDIOVASCULAR_MODEL,
    DIABETES_MODEL,
)
from .builder import build_patient_features, calculate_age, calculate_bmi

__all__ = [
    "PatientFeatures",
    "PopulationMeans",
    "NUMERIC_FEATURES",
    "display_name",
    "Condition",
    "ConditionModel",
    "MedicalThresholds",
    "ReferenceData",
    "DEFAULT_REFERENCE",
    "CARDIOVASCULAR_MODEL",
    "DIABETES_MODEL",
    "build_patient_features",
    "calculate_age",
    "calculate_bmi",
]
