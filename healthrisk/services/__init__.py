from .xai import ExplainabilityService
from .digital_twin import DigitalTwinService
from .predictions import PredictionService

__all__ = ["ExplainabilityService", "DigitalTwinService", "PredictionService"]
