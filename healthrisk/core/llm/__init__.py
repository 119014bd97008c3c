"""
LLM Module

Gemini client and plain-language narrative generation.
"""
from .gemini_client import GeminiClient, GeminiConfig, GeminiResponse, NarrativeUnavailableError
from .narrative import (
    NarrativeAdapter,
    NarrativeResult,
    build_xai_prompt,
    build_digital_twin_prompt,
    build_predictions_prompt,
    xai_template,
    digital_twin_template,
    predictions_template,
)

__all__ = [
    "GeminiClient",
    "GeminiConfig",
    "GeminiResponse",
    "NarrativeUnavailableError",
    "NarrativeAdapter",
    "NarrativeResult",
    "build_xai_prompt",
    "build_digital_twin_prompt",
    "build_predictions_prompt",
    "xai_template",
    "digital_twin_template",
    "predictions_template",
]
