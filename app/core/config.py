from datetime import date
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="allow",
    )

    PORT: int = 8000
    APP_NAME: str = "Family Reco"
    APP_ENV: Literal["development", "production", "test"] = "production"

    # Where session telemetry lives: "memory" keeps everything in-process,
    # "redis" stores one sorted set per session.
    TELEMETRY_STORE_BACKEND: Literal["memory", "redis"] = "memory"
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_MAX_CONNECTIONS: int = 20
    REDIS_TELEMETRY_KEY: str = "familyreco:telemetry:"

    TELEMETRY_SESSION_TIMEOUT_SECONDS: int = 1800  # 30 minutes
    TELEMETRY_MAX_RECORDS_PER_SESSION: int = 1000
    # Extra dates treated as holidays on top of weekends
    TELEMETRY_HOLIDAYS: list[date] = []

    # Outer timeout for HTTP requests; the core itself never times out
    REQUEST_TIMEOUT_SECONDS: float = 5.0
    # Fixed seed for exploration/novelty draws. None = fresh entropy per process.
    RANKING_SEED: int | None = None


settings = Settings()
