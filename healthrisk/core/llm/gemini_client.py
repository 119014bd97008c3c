"""
Gemini API Client

Wrapper for Google Gemini through LangChain, used to phrase risk results in
plain language. Interpretation only, never decisional.
"""
from dataclasses import dataclass
from typing import Optional
from datetime import datetime

from langchain_google_genai import ChatGoogleGenerativeAI

from healthrisk.config import settings
from healthrisk.utils import get_logger

logger = get_logger(__name__)


class NarrativeUnavailableError(Exception):
    """The text generation service is unconfigured or failed."""


@dataclass
class GeminiConfig:
    """Configuration for Gemini client."""
    api_key: Optional[str] = None
    model: str = "gemini-2.5-flash"
    temperature: float = 0.7
    max_output_tokens: int = 500
    request_timeout_seconds: float = 30.0
    max_retries: int = 1

    @classmethod
    def from_settings(cls) -> "GeminiConfig":
        return cls(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            max_output_tokens=settings.narrative_max_tokens,
            request_timeout_seconds=settings.narrative_timeout_seconds,
        )


@dataclass
class GeminiResponse:
    """Structured response from Gemini."""
    text: str
    model: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    latency_ms: float = 0.0


class GeminiClient:
    """
    Async client for Google Gemini.

    Raises NarrativeUnavailableError whenever no text can be produced; the
    caller decides how to degrade.
    """

    def __init__(self, config: Optional[GeminiConfig] = None):
        self.config = config or GeminiConfig.from_settings()
        self._llm = None

        self._initialize()

    def _initialize(self):
        """Build the LangChain chat model if an API key is configured."""
        if not self.config.api_key:
            logger.warning("No Gemini API key provided - narratives will use templates")
            return

        self._llm = ChatGoogleGenerativeAI(
            model=self.config.model,
            temperature=self.config.temperature,
            max_tokens=self.config.max_output_tokens,
            timeout=self.config.request_timeout_seconds,
            max_retries=self.config.max_retries,
            google_api_key=self.config.api_key,
        )
        logger.info(f"LangChain Gemini client initialized with model: {self.config.model}")

    @property
    def is_available(self) -> bool:
        """Check if Gemini is configured for use."""
        return self._llm is not None

    async def generate_async(
        self,
        prompt: str,
        system_instruction: Optional[str] = None
    ) -> GeminiResponse:
        """
        Generate a response from Gemini.

        Args:
            prompt: The user prompt
            system_instruction: Optional system instruction

        Returns:
            GeminiResponse with generated text

        Raises:
            NarrativeUnavailableError: if unconfigured, failing or empty
        """
        if not self.is_available:
            raise NarrativeUnavailableError("Gemini client is not configured")

        full_prompt = f"{system_instruction}\n\n{prompt}" if system_instruction else prompt
        start_time = datetime.now()

        try:
            response = await self._llm.ainvoke(full_prompt)
        except Exception as e:
            raise NarrativeUnavailableError(f"Gemini generation failed: {e}") from e

        latency = (datetime.now() - start_time).total_seconds() * 1000
        text = response.content if hasattr(response, "content") else str(response)
        if not isinstance(text, str) or not text.strip():
            raise NarrativeUnavailableError("Gemini returned an empty response")

        prompt_tokens = 0
        completion_tokens = 0
        usage = getattr(response, "usage_metadata", None)
        if usage:
            prompt_tokens = usage.get("input_tokens", 0)
            completion_tokens = usage.get("output_tokens", 0)

        logger.debug(f"Gemini response in {latency:.0f}ms ({prompt_tokens} prompt, {completion_tokens} completion tokens)")

        return GeminiResponse(
            text=text.strip(),
            model=self.config.model,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            latency_ms=latency,
        )
