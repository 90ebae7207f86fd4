"""Application configuration."""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Allow extra env vars without error
    )

    # Feedback text generation (OpenAI Responses API)
    openai_api_key: str | None = Field(
        default=None,
        description="OpenAI API key used by the feedback text generator",
    )
    openai_base_url: str = Field(
        default="https://api.openai.com/v1",
        description="Base URL of the OpenAI API",
    )
    openai_model: str = Field(default="gpt-4o", description="Model used for feedback text")
    openai_max_output_tokens: int = Field(
        default=100,
        description="Upper bound on generated tokens (short spoken feedback)",
    )
    openai_timeout_seconds: float = Field(
        default=15.0,
        description="HTTP timeout for a single generation request",
    )

    # Feedback polling and rule thresholds
    feedback_poll_interval_seconds: float = Field(
        default=5.0,
        description="How often the session driver evaluates the rule chain",
    )
    feedback_min_interval_seconds: float = Field(
        default=30.0,
        description="Minimum spacing between two feedbacks (0 disables the gate)",
    )
    initial_feedback_delay_seconds: float = Field(
        default=30.0,
        description="Session duration required before the first feedback",
    )
    kilometer_trigger_window_meters: float = Field(
        default=50.0,
        description="Distance past each kilometer boundary that triggers a split feedback",
    )
    pace_change_threshold: float = Field(
        default=0.5,
        description="60s pace rate of change (min/km) that triggers feedback",
    )
    heart_rate_change_threshold: float = Field(
        default=5.0,
        description="60s heart rate rate of change (BPM) that triggers feedback",
    )
    grade_threshold: float = Field(
        default=5.0,
        description="Absolute 10s grade percentage that triggers feedback",
    )
    max_feedback_interval_seconds: float = Field(
        default=300.0,
        description="Longest silence before feedback is forced",
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Log level",
    )
    log_format: Literal["json", "console"] = Field(
        default="json",
        description="Log renderer: json for production, console for development",
    )

    def has_openai_credentials(self) -> bool:
        """Check if an OpenAI API key is configured."""
        return bool(self.openai_api_key)


# Global settings instance
settings = Settings()
