"""
Shared fixtures: a file-backed SQLite record store seeded with two patients.
"""
from datetime import date, datetime

import pytest

from healthrisk.core.records import (
    PatientRecordStore, make_engine, metadata, health_profiles, vital_signs, menstrual_cycles,
)

# Oldest first; the last row is the latest reading
SYSTOLIC_HISTORY = [150, 152, 155, 158, 160, 165]


def _seed(engine):
    metadata.create_all(engine)
    with engine.begin() as conn:
        conn.execute(health_profiles.insert(), [
            {
                "user_id": "patient-1",
                "date_of_birth": date(1955, 12, 31),
                "gender": "male",
                "height": 170.0,
                "weight": 95.0,
                "smoking": False,
            },
            {
                "user_id": "patient-2",
                "date_of_birth": date(1990, 4, 2),
                "gender": "female",
                "height": 165.0,
                "weight": 60.0,
                "smoking": None,
            },
        ])
        conn.execute(vital_signs.insert(), [
            {
                "user_id": "patient-1",
                "recorded_at": datetime(2025, 1, day + 1, 8, 0),
                "blood_pressure_systolic": systolic,
                "blood_pressure_diastolic": 95.0,
                "heart_rate": 88.0,
                "blood_glucose": 110.0,
                "weight": 95.0,
                "oxygen_saturation": None,
            }
            for day, systolic in enumerate(SYSTOLIC_HISTORY)
        ])
        conn.execute(menstrual_cycles.insert(), [
            {"user_id": "patient-2", "cycle_start_date": date(2025, 3, 1), "cycle_length": 28, "period_length": 5},
            {"user_id": "patient-2", "cycle_start_date": date(2025, 2, 1), "cycle_length": 29, "period_length": 5},
            {"user_id": "patient-2", "cycle_start_date": date(2025, 1, 3), "cycle_length": 27, "period_length": 4},
        ])


@pytest.fixture
def record_engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'records.db'}")
    _seed(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def record_store(record_engine) -> PatientRecordStore:
    return PatientRecordStore(record_engine)
