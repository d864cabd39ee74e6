"""Generation pipeline configuration with validation."""

import os
from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from typing import List


# Candidate models tried by the fallback orchestrator, strongest first.
DEFAULT_FALLBACK_MODELS = (
    "openai/gpt-4o,"
    "openai/gpt-4-turbo,"
    "anthropic/claude-3-5-sonnet-20241022,"
    "openai/gpt-3.5-turbo"
)

# Environment variables consulted, in order, when no api_key is configured.
CREDENTIAL_ENV_VARS = ("BYTEZ_API_KEY", "OPENAI_API_KEY")


class ConfigurationError(Exception):
    """Raised when pipeline configuration is invalid."""
    pass


class Settings(BaseSettings):
    """
    Pipeline settings with validation.

    Values come from environment variables (or a ``.env`` file) using the
    field name, e.g. ``DEFAULT_MODEL`` or ``FALLBACK_MODELS``.
    """

    # Provider credentials
    # README_API_KEY wins; otherwise BYTEZ_API_KEY then OPENAI_API_KEY are read.
    api_key: str = Field(
        default="",
        validation_alias="README_API_KEY",
        description="API key for the generation provider"
    )
    api_base: str = Field(
        default="",
        description="Base URL for the generation provider (optional, for custom endpoints)"
    )

    # Model selection
    # LiteLLM model string used when the request config names no model.
    default_model: str = Field(
        default="openai/gpt-4o",
        description="Model used when the request does not name one"
    )
    default_temperature: float = Field(
        default=0.7,
        description="Sampling temperature used when the request does not set one"
    )
    fallback_models: str = Field(
        default=DEFAULT_FALLBACK_MODELS,
        description="Fallback candidate models, strongest first (comma-separated)"
    )

    # Retry policy for the non-streaming path
    max_retries: int = Field(
        default=3,
        description="Retries per model after the initial attempt"
    )
    base_delay_ms: int = Field(
        default=1000,
        description="Base backoff delay in milliseconds (doubles per attempt)"
    )
    request_timeout: int = Field(
        default=120,
        description="Seconds to wait for a single provider call"
    )

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    log_format: str = Field(
        default="json",
        description="Log output format: 'json' for structured, 'text' for human-readable"
    )

    def get_fallback_models(self) -> List[str]:
        """
        Get fallback candidates as a list.

        Parses the comma-separated string, dropping blank entries.
        """
        return [model.strip() for model in self.fallback_models.split(',') if model.strip()]

    def resolve_api_key(self) -> str:
        """Return the provider credential, or an empty string when none is set."""
        if self.api_key.strip():
            return self.api_key.strip()
        for var in CREDENTIAL_ENV_VARS:
            value = os.getenv(var, "").strip()
            if value:
                return value
        return ""

    @field_validator('default_temperature')
    @classmethod
    def validate_temperature(cls, v: float) -> float:
        """Temperature must lie in the range providers accept."""
        if not 0.0 <= v <= 2.0:
            raise ValueError("default_temperature must be between 0 and 2")
        return v

    @field_validator('max_retries', 'base_delay_ms')
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("retry settings must not be negative")
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the standard Python logging levels."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level. Must be one of: {valid_levels}")
        return v_upper

    def validate_fallback_config(self) -> None:
        """Fail fast when the fallback chain cannot run.

        Raises:
            ConfigurationError: If no fallback model is configured.
        """
        if not self.get_fallback_models():
            raise ConfigurationError(
                "FALLBACK_MODELS is empty. "
                "Configure at least one model, e.g. FALLBACK_MODELS=openai/gpt-4o"
            )

    class Config:
        """Pydantic configuration."""
        env_file = ".env"
        env_file_encoding = "utf-8"
        # Allow reading from environment variables with different case
        case_sensitive = False
        populate_by_name = True
        extra = "ignore"


# Global settings instance
settings = Settings()
