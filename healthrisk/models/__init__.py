from .analysis import WhatIfValues, XAIRequest, HealthResponse

__all__ = ["WhatIfValues", "XAIRequest", "HealthResponse"]
