"""Application configuration.

Configuration is loaded from environment variables. For local development, you can provide a
`.env` file and set `TWEETSEARCH_ENV_FILE` to point to it.
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """TweetSearch settings.

    All fields are environment-configurable. Prefix is `TWEETSEARCH_`.
    Leaving `api_key` unset switches the service to mock data.
    """

    model_config = SettingsConfigDict(
        env_prefix="TWEETSEARCH_",
        env_file=None,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Core
    log_level: str = Field(default="INFO")
    debug: bool = Field(default=False)

    # Upstream job API
    api_key: str | None = Field(default=None)
    api_base_url: str = Field(default="https://data.dev.masalabs.ai/api")
    http_timeout_s: float = Field(default=30.0, ge=1.0, le=300.0)

    # Polling
    poll_interval_ms: int = Field(default=2000, ge=1)
    poll_max_interval_ms: int = Field(default=10000, ge=1)
    poll_timeout_ms: int = Field(default=120000, ge=1)
    poll_max_attempts: int | None = Field(default=None, ge=1)

    # Enhancement
    enhancement_enabled: bool = Field(default=True)
    enhance_top_k: int = Field(default=3, ge=0, le=100)
    enhance_max_concurrency: int = Field(default=1, ge=1, le=16)

    # LLM used for search term extraction
    openai_api_key: str | None = Field(default=None)
    openai_base_url: str | None = Field(default=None)
    openai_model: str = Field(default="gpt-4o-mini")
    openai_timeout_s: float = Field(default=30.0)

    # Mock data
    mock_seed: int | None = Field(default=None)

    @property
    def mock_mode(self) -> bool:
        """Whether the upstream API is replaced by generated data."""

        return not self.api_key

    @property
    def effective_log_level(self) -> str:
        return "DEBUG" if self.debug else self.log_level


def load_settings() -> Settings:
    """Load settings from env.

    Returns:
        Settings: Parsed settings.
    """

    env_file_override = os.getenv("TWEETSEARCH_ENV_FILE")
    if env_file_override:
        env_path = Path(env_file_override)
        return Settings(_env_file=env_path)

    default_env = Path.cwd() / ".env"
    if default_env.exists():
        return Settings(_env_file=default_env)

    return Settings()
