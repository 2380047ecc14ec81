"""Configuration management for the exam generation core."""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application Settings
    env: str = "development"
    log_level: str = "INFO"
    log_file: Optional[str] = None

    # Default credential for the generative endpoint. Absence is only an
    # error when a request is made.
    api_key: Optional[str] = None

    # Model Settings
    gemini_model: str = "gemini-3-pro-preview"
    thinking_budget: int = 10000  # 0 disables the thinking config

    # Retry Settings
    max_retries: int = 3
    retry_base_delay: float = 2.0
    retry_exponential_base: float = 2.0
    retry_max_delay: float = 60.0


# Global settings instance
settings = Settings()
