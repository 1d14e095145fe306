"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    supabase_meals_table: str = "meals"
    admin_token: str
    openai_api_key: str
    openai_model: str = "gpt-5.2"
    openai_store: bool = False
    cache_ttl_seconds: int = 300
    analysis_timeout_seconds: float = 60.0
    image_download_timeout_seconds: float = 20.0
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
