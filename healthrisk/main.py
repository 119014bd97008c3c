"""
Health Risk Explainability & Simulation Engine - FastAPI Application

Main application entry point with API endpoints for:
- Explainable risk predictions with what-if analysis
- Digital twin simulation
- Dashboard risk predictions
"""
from fastapi import FastAPI, HTTPException, Depends
from fastapi.middleware.cors import CORSMiddleware
from typing import Dict, Any, Optional
from functools import lru_cache
from datetime import datetime
import time
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from healthrisk.config import settings
from healthrisk.core.auth import get_current_patient_id
from healthrisk.core.inference import AttributionEngine, RiskEngine
from healthrisk.core.llm import NarrativeAdapter
from healthrisk.core.records import PatientRecordStore
from healthrisk.models import XAIRequest, HealthResponse
from healthrisk.services import ExplainabilityService, DigitalTwinService, PredictionService
from healthrisk.utils import get_logger

logger = get_logger(__name__)

_started_at = time.time()


# ---- FastAPI Application ----

app = FastAPI(
    title=settings.app_name,
    description="Explainable health risk scoring, what-if analysis and trajectory simulation",
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---- Dependencies ----

@lru_cache()
def get_record_store() -> PatientRecordStore:
    return PatientRecordStore()


@lru_cache()
def get_narrative_adapter() -> NarrativeAdapter:
    return NarrativeAdapter()


@lru_cache()
def get_risk_engine() -> RiskEngine:
    return RiskEngine()


@lru_cache()
def get_attribution_engine() -> AttributionEngine:
    return AttributionEngine(reconcile_waterfall=settings.waterfall_reconcile)


# ---- API Endpoints ----

@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(narrative: NarrativeAdapter = Depends(get_narrative_adapter)):
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        uptime_seconds=round(time.time() - _started_at, 2),
        timestamp=datetime.now().isoformat(),
        components={
            "risk_engine": "ready",
            "simulation": "ready",
            "narrative_llm": "ready" if narrative.is_available else "template",
        }
    )


@app.post(f"{settings.api_prefix}/xai/predictions", tags=["Explainability"])
async def xai_predictions(
    request: Optional[XAIRequest] = None,
    patient_id: str = Depends(get_current_patient_id),
    store: PatientRecordStore = Depends(get_record_store),
    narrative: NarrativeAdapter = Depends(get_narrative_adapter),
    attribution: AttributionEngine = Depends(get_attribution_engine),
) -> Dict[str, Any]:
    """
    Explain the patient's cardiovascular and diabetes risk.

    Optional what-if values replace individual features before analysis.
    """
    what_if = request.what_if_values.overrides() if request and request.what_if_values else None
    try:
        return await ExplainabilityService(store, narrative, attribution=attribution).analyze(patient_id, what_if)
    except Exception as e:
        logger.error(f"XAI analysis failed: {e}")
        raise HTTPException(status_code=500, detail=f"XAI analysis failed: {str(e)}")


@app.post(f"{settings.api_prefix}/digital-twin/simulation", tags=["Simulation"])
async def digital_twin_simulation(
    patient_id: str = Depends(get_current_patient_id),
    store: PatientRecordStore = Depends(get_record_store),
    narrative: NarrativeAdapter = Depends(get_narrative_adapter),
    risk_engine: RiskEngine = Depends(get_risk_engine),
) -> Dict[str, Any]:
    """Project vital-sign and disease trajectories and rank interventions."""
    try:
        return await DigitalTwinService(store, narrative, risk_engine=risk_engine).simulate(patient_id)
    except Exception as e:
        logger.error(f"Digital twin simulation failed: {e}")
        raise HTTPException(status_code=500, detail=f"Simulation failed: {str(e)}")


@app.post(f"{settings.api_prefix}/predictions", tags=["Predictions"])
async def health_predictions(
    patient_id: str = Depends(get_current_patient_id),
    store: PatientRecordStore = Depends(get_record_store),
    narrative: NarrativeAdapter = Depends(get_narrative_adapter),
    risk_engine: RiskEngine = Depends(get_risk_engine),
) -> Dict[str, Any]:
    """Condition risks, general health, cycle health and vital trends."""
    try:
        return await PredictionService(store, narrative, risk_engine=risk_engine).predict(patient_id)
    except Exception as e:
        logger.error(f"Predictions failed: {e}")
        raise HTTPException(status_code=500, detail=f"Predictions failed: {str(e)}")


# ---- Application Lifecycle ----

@app.on_event("startup")
async def startup_event():
    """Initialize on startup."""
    logger.info(f"{settings.app_name} v{settings.app_version} starting up...")
    logger.info("API ready to accept requests")


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on shutdown."""
    logger.info(f"{settings.app_name} shutting down...")


# ---- Run with uvicorn ----
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
