# config.py
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Enrichment provider
    enrichment_webhook_url: Optional[str] = None
    enrichment_api_key: Optional[str] = None
    enrichment_timeout_seconds: Optional[float] = None

    # Callback
    callback_base_url: str = "http://localhost:8000"
    callback_secret: Optional[str] = None
    callback_history_size: int = 20

    # LLM
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"

    # Correlation store
    job_retention_minutes: int = 30

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @property
    def callback_url(self) -> str:
        return f"{self.callback_base_url.rstrip('/')}/callback"


@lru_cache
def get_settings() -> Settings:
    return Settings()
