"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")

STORE_BACKENDS = {"memory", "supabase"}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    store_backend: str = "memory"
    supabase_url: str | None = None
    supabase_service_key: str | None = None
    ingredients_table: str = "ingredients"
    near_expiry_threshold_days: int = 3
    timezone: str = "UTC"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_store_backend(raw: str | None) -> str:
    """Normalize the configured store backend name."""
    cleaned = (raw or "").strip().lower()
    if not cleaned:
        return "memory"
    if cleaned not in STORE_BACKENDS:
        raise ValueError(f"Unknown store backend: {raw}")
    return cleaned
