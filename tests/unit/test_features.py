"""
Unit Tests for Feature Module

Tests for the feature vector, reference tables and feature builder.
"""
import pytest
from datetime import date

from healthrisk.core.features import (
    PatientFeatures, PopulationMeans, NUMERIC_FEATURES, Condition, DEFAULT_REFERENCE,
    build_patient_features, calculate_age, calculate_bmi,
)


TODAY = date(2025, 6, 1)


@pytest.fixture
def elderly_profile():
    return {"date_of_birth": "1955-03-15", "height": 170, "weight": 95}


@pytest.fixture
def hypertensive_vitals():
    return {
        "blood_pressure_systolic": 165,
        "blood_pressure_diastolic": 95,
        "heart_rate": 88,
        "blood_glucose": 110,
    }


class TestCalculateAge:
    """Tests for year-difference age."""

    def test_year_difference(self):
        assert calculate_age("1955-03-15", TODAY) == 70

    def test_ignores_month_and_day(self):
        """Birthday later in the year still counts the full year difference."""
        assert calculate_age(date(1955, 12, 31), TODAY) == 70

    def test_missing_or_invalid(self):
        assert calculate_age(None, TODAY) is None
        assert calculate_age("not a date", TODAY) is None


class TestCalculateBMI:
    """Tests for BMI computation."""

    def test_rounded_to_one_decimal(self):
        assert calculate_bmi(95, 170, default=25.5) == 32.9

    def test_missing_input_uses_default(self):
        assert calculate_bmi(None, 170, default=25.5) == 25.5
        assert calculate_bmi(95, None, default=25.5) == 25.5
        assert calculate_bmi(0, 170, default=25.5) == 25.5


class TestBuildPatientFeatures:
    """Tests for the gap-filling feature builder."""

    def test_all_missing_is_population_means(self):
        """No records at all yields exactly the population-mean vector."""
        features = build_patient_features(None, None, today=TODAY)
        assert features == PopulationMeans().as_features()

    def test_full_records(self, elderly_profile, hypertensive_vitals):
        features = build_patient_features(elderly_profile, hypertensive_vitals, today=TODAY)

        assert features.age == 70
        assert features.bmi == 32.9
        assert features.systolic_bp == 165
        assert features.diastolic_bp == 95
        assert features.heart_rate == 88
        assert features.blood_glucose == 110
        assert features.weight == 95
        assert features.height == 170
        assert features.smoking == 0
        assert features.oxygen_saturation == 98

    def test_zero_values_take_mean(self):
        features = build_patient_features(None, {"heart_rate": 0, "blood_glucose": ""}, today=TODAY)
        assert features.heart_rate == 72
        assert features.blood_glucose == 100

    def test_weight_falls_back_to_vitals(self):
        features = build_patient_features({"height": 180}, {"weight": 81}, today=TODAY)
        assert features.weight == 81
        assert features.bmi == 25.0

    def test_missing_height_keeps_mean_bmi(self):
        features = build_patient_features({"weight": 120}, None, today=TODAY)
        assert features.weight == 120
        assert features.bmi == 25.5

    def test_smoking_from_profile(self):
        assert build_patient_features({"smoking": True}, None, today=TODAY).smoking == 1.0
        assert build_patient_features({"smoking": False}, None, today=TODAY).smoking == 0.0

    def test_attribute_records(self):
        """Attribute-style records are read like mappings."""
        class Vitals:
            blood_pressure_systolic = 150
            heart_rate = None

        features = build_patient_features(None, Vitals(), today=TODAY)
        assert features.systolic_bp == 150
        assert features.heart_rate == 72


class TestPatientFeatures:
    """Tests for the immutable feature vector."""

    @pytest.fixture
    def features(self) -> PatientFeatures:
        return PopulationMeans().as_features()

    def test_overrides_merge_field_by_field(self, features):
        updated = features.with_overrides({"systolic_bp": 140, "smoking": 1})
        assert updated.systolic_bp == 140
        assert updated.smoking == 1
        assert updated.bmi == features.bmi
        assert features.systolic_bp == 120

    def test_overrides_ignore_unknown_and_none(self, features):
        updated = features.with_overrides({"cholesterol": 240, "heart_rate": None})
        assert updated == features

    def test_weight_override_does_not_recompute_bmi(self, features):
        updated = features.with_overrides({"weight": 120})
        assert updated.weight == 120
        assert updated.bmi == features.bmi

    def test_get_unknown_feature(self, features):
        with pytest.raises(KeyError):
            features.get("gender")

    def test_to_dict_has_all_numeric_features(self, features):
        assert set(features.to_dict()) == set(NUMERIC_FEATURES)


class TestReferenceData:
    """Tests for the reference tables."""

    def test_weights_are_read_only(self):
        model = DEFAULT_REFERENCE.model(Condition.CARDIOVASCULAR)
        with pytest.raises(TypeError):
            model.weights["age"] = 1.0

    def test_weight_vectors(self):
        cv = DEFAULT_REFERENCE.model(Condition.CARDIOVASCULAR)
        dm = DEFAULT_REFERENCE.model(Condition.DIABETES)
        assert "oxygen_saturation" in cv.weights and cv.weights["oxygen_saturation"] < 0
        assert "heart_rate" not in dm.weights
        assert cv.base_log_odds == -2.3
        assert dm.base_log_odds == -2.6
