"""
Patient Record Store

Read-only access to the health profile, vital-sign history and menstrual
cycle history of a patient. Rows come back as plain dicts so the scoring
layer never sees ORM objects.
"""
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional
import asyncio

from sqlalchemy import (
    Column, Date, DateTime, Float, Integer, MetaData, String, Boolean, Table,
    create_engine, select,
)
from sqlalchemy.engine import Engine

from healthrisk.config import settings
from healthrisk.utils import get_logger

logger = get_logger(__name__)

metadata = MetaData()

health_profiles = Table(
    "health_profiles",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("user_id", String, nullable=False, index=True, unique=True),
    Column("date_of_birth", Date),
    Column("gender", String),
    Column("height", Float),
    Column("weight", Float),
    Column("smoking", Boolean),
)

vital_signs = Table(
    "vital_signs",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("user_id", String, nullable=False, index=True),
    Column("recorded_at", DateTime, nullable=False),
    Column("blood_pressure_systolic", Float),
    Column("blood_pressure_diastolic", Float),
    Column("heart_rate", Float),
    Column("blood_glucose", Float),
    Column("weight", Float),
    Column("oxygen_saturation", Float),
)

menstrual_cycles = Table(
    "menstrual_cycles",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("user_id", String, nullable=False, index=True),
    Column("cycle_start_date", Date, nullable=False),
    Column("cycle_length", Integer),
    Column("period_length", Integer),
)


def make_engine(database_url: Optional[str] = None) -> Engine:
    """Create an engine; SQLite needs cross-thread access for worker-thread reads."""
    url = database_url or settings.database_url
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(url, pool_pre_ping=True)


@dataclass
class PatientRecords:
    """Everything the engines read for one patient."""
    profile: Optional[Dict[str, Any]] = None
    vitals: List[Dict[str, Any]] = field(default_factory=list)
    cycles: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def latest_vitals(self) -> Optional[Dict[str, Any]]:
        return self.vitals[0] if self.vitals else None


class PatientRecordStore:
    """
    Read-only repository over the patient tables.

    Histories are returned newest first. Missing rows are never an error.
    """

    def __init__(self, engine: Optional[Engine] = None):
        self.engine = engine or make_engine()

    def get_profile(self, patient_id: str) -> Optional[Dict[str, Any]]:
        query = select(health_profiles).where(health_profiles.c.user_id == patient_id)
        with self.engine.connect() as conn:
            row = conn.execute(query).mappings().first()
        return dict(row) if row else None

    def get_recent_vitals(self, patient_id: str, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        query = (
            select(vital_signs)
            .where(vital_signs.c.user_id == patient_id)
            .order_by(vital_signs.c.recorded_at.desc())
            .limit(limit or settings.vitals_history_limit)
        )
        with self.engine.connect() as conn:
            return [dict(row) for row in conn.execute(query).mappings()]

    def get_recent_cycles(self, patient_id: str, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        query = (
            select(menstrual_cycles)
            .where(menstrual_cycles.c.user_id == patient_id)
            .order_by(menstrual_cycles.c.cycle_start_date.desc())
            .limit(limit or settings.cycles_history_limit)
        )
        with self.engine.connect() as conn:
            return [dict(row) for row in conn.execute(query).mappings()]

    async def fetch(
        self,
        patient_id: str,
        vitals_limit: Optional[int] = None,
        include_cycles: bool = False,
    ) -> PatientRecords:
        """
        Fetch profile, vitals and optionally cycles concurrently.

        Each query runs in a worker thread so the event loop stays free.
        """
        tasks = [
            asyncio.to_thread(self.get_profile, patient_id),
            asyncio.to_thread(self.get_recent_vitals, patient_id, vitals_limit),
        ]
        if include_cycles:
            tasks.append(asyncio.to_thread(self.get_recent_cycles, patient_id))

        results = await asyncio.gather(*tasks)
        records = PatientRecords(
            profile=results[0],
            vitals=results[1],
            cycles=results[2] if include_cycles else [],
        )
        logger.debug(
            f"Fetched records for {patient_id}: profile={'yes' if records.profile else 'no'}, "
            f"{len(records.vitals)} vitals, {len(records.cycles)} cycles"
        )
        return records
