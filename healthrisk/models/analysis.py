"""
Analysis API Models
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, Any, Optional


class WhatIfValues(BaseModel):
    """
    Feature overrides for a what-if analysis.

    Unknown features and non-finite numbers are rejected. Out-of-range values
    are accepted; scoring clamps the resulting risk.
    """
    model_config = ConfigDict(extra="forbid", allow_inf_nan=False)

    age: Optional[float] = None
    bmi: Optional[float] = None
    systolic_bp: Optional[float] = None
    diastolic_bp: Optional[float] = None
    heart_rate: Optional[float] = None
    blood_glucose: Optional[float] = None
    weight: Optional[float] = None
    height: Optional[float] = None
    smoking: Optional[float] = None
    oxygen_saturation: Optional[float] = None

    def overrides(self) -> Dict[str, float]:
        """Only the features that were actually set."""
        return self.model_dump(exclude_none=True)


class XAIRequest(BaseModel):
    """Request for an explainability analysis."""
    what_if_values: Optional[WhatIfValues] = Field(
        default=None, description="Optional feature overrides applied before analysis"
    )


class HealthResponse(BaseModel):
    """Health status response."""
    status: str
    version: str
    uptime_seconds: float
    components: Dict[str, Any]
    timestamp: str
