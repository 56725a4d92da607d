"""Application configuration using Pydantic settings."""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Live simulation
    live_simulation: bool = True
    seed_demo_data: bool = True
    engagement_interval_seconds: float = 1.5
    engagement_probability: float = 0.4
    incident_interval_seconds: float = 2.0
    incident_probability: float = 0.15
    stats_interval_seconds: float = 2.0
    social_interval_seconds: float = 2.0
    social_probability: float = 0.4

    # Classification
    classifier_backend: Literal["keyword", "http"] = "keyword"
    classifier_url: str | None = None
    classification_timeout_seconds: float = 5.0
    classification_min_latency_seconds: float = 0.8
    classification_max_latency_seconds: float = 2.5
    action_plan_latency_seconds: float = 2.0

    # Duplicate detection
    duplicate_policy: Literal["substring", "geo"] = "substring"
    duplicate_radius_km: float = 0.5
    duplicate_min_similarity: float = 0.5

    # Broadcast
    subscriber_queue_size: int = 256
    activity_log_size: int = 50
    social_feed_size: int = 20

    # API settings
    api_v1_prefix: str = "/api/v1"
    cors_origins: list[str] = ["*"]  # Restrict in production
    rate_limit_per_minute: int = 60

    # Environment
    debug: bool = False
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
