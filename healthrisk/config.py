"""
Configuration Management for the Health Risk Engine

Environment-based configuration using Pydantic Settings.
"""
from typing import Optional, List
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"  # Ignore extra fields from .env file
    )

    # Application
    app_name: str = "Health Risk Explainability & Simulation Engine"
    app_version: str = "0.1.0"
    debug: bool = Field(default=False, description="Enable debug mode")

    # API Configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_prefix: str = "/api/v1"
    cors_origins: List[str] = ["*"]

    # Authentication (bearer tokens issued by the identity provider)
    secret_key: str = Field(default="dev-secret-key-change-in-production", description="JWT secret key")
    algorithm: str = "HS256"
    jwt_audience: Optional[str] = Field(default=None, description="Expected 'aud' claim, if any")

    # Narrative generation
    gemini_api_key: Optional[str] = Field(default=None, description="Google Gemini API key")
    gemini_model: str = "gemini-2.5-flash"
    enable_narrative_llm: bool = Field(default=True, description="Call the external text generator")
    narrative_timeout_seconds: float = Field(default=8.0, description="Upper bound on narrative generation")
    narrative_max_tokens: int = 500

    # Database (read-only patient records)
    database_url: str = "sqlite:///./health_records.db"
    vitals_history_limit: int = 60
    cycles_history_limit: int = 12

    # Simulation
    simulation_paths: int = Field(default=1000, description="Monte Carlo paths per trajectory")
    simulation_seed: Optional[int] = Field(default=None, description="Seed for reproducible trajectories")
    trajectory_steps: int = 12
    progression_horizon_months: int = 24

    # Explainability
    waterfall_reconcile: bool = Field(
        default=True,
        description="Start waterfalls at the model baseline and close them on the scored risk"
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
