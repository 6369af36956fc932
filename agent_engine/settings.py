"""Process-wide configuration for agent-engine."""

import logging
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineSettings(BaseSettings):
    """Settings read from environment variables (and an optional .env file)."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Providers
    openai_api_key: Optional[str] = None
    openai_base_url: str = "https://api.openai.com/v1"
    anthropic_api_key: Optional[str] = None

    # Tool back-ends
    perplexity_api_key: Optional[str] = None
    slack_webhook_url: Optional[str] = None

    # Execution defaults
    default_model: str = "gpt-4-turbo-preview"
    default_max_iterations: int = Field(default=10, ge=1)
    default_timeout_seconds: int = Field(default=300, ge=0)
    default_temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    default_max_tokens: int = Field(default=4096, ge=1)
    request_timeout_seconds: float = Field(default=60.0, gt=0)

    database_path: str = "agent_engine.db"
    log_level: str = "INFO"


@lru_cache
def get_settings() -> EngineSettings:
    return EngineSettings()


def configure_logging(level: Optional[str] = None) -> None:
    """Apply a basic logging setup for scripts and examples."""
    logging.basicConfig(
        level=(level or get_settings().log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
