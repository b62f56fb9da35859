"""Application configuration managed via environment variables."""
from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Push Relay Backend"
    debug: bool = False
    log_level: str = "INFO"
    database_url: str = "postgresql+psycopg2://postgres@localhost:5432/pushrelay"
    admin_api_key: str | None = None
    cors_origins: List[str] = ["*"]
    opik_enabled: bool = False
    opik_api_key: str | None = None
    opik_project: str = "pushrelay"
    expo_push_url: str = "https://exp.host/--/api/v2/push/send"
    expo_receipts_url: str = "https://exp.host/--/api/v2/push/getReceipts"
    expo_access_token: str | None = None
    gateway_timeout_seconds: float = 10.0
    push_chunk_size: int = 100
    receipt_chunk_size: int = 100
    receipt_min_age_minutes: int = 15
    receipt_lookback_days: int = 7
    register_rate_limit_per_hour: int = 100
    scheduler_enabled: bool = True
    scheduler_timezone: str = "UTC"
    reconcile_interval_minutes: int = 30
    jobs_run_on_startup: bool = True


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()


settings = get_settings()
