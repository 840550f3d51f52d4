"""
Dishfinder Configuration
========================

Centralized application settings.
"""

from functools import lru_cache
from typing import Literal, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # App info
    app_name: str = "Dishfinder"
    app_version: str = "1.0.0"
    debug: bool = False

    # API settings
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_prefix: str = "/api"

    # CORS
    cors_origins: list = ["*"]
    cors_allow_credentials: bool = False  # Must be False with wildcard origins
    cors_allow_methods: list = ["*"]
    cors_allow_headers: list = ["*"]

    # Recipe store
    recipe_store_backend: Literal["sqlite", "memory"] = "sqlite"
    recipe_db_path: str = "data/recipes.db"
    seed_recipes_path: Optional[str] = None
    store_timeout_seconds: float = 3.0
    tier_fetch_batch_size: int = 500

    # Pagination
    default_page_size: int = 20
    max_page_size: int = 100

    # Autocomplete
    suggest_default_limit: int = 8
    suggest_max_limit: int = 20
    suggest_min_chars: int = 2

    # Result cache TTLs (seconds)
    cache_ttl_exact: int = 300
    cache_ttl_ranked: int = 600
    cache_ttl_empty: int = 60

    # Auto-find quota
    autofind_quota_anonymous: int = 5
    autofind_quota_authenticated: int = 50
    autofind_window_seconds: int = 86400
    # Only behind a proxy that overwrites X-Forwarded-For (e.g. Vercel)
    trust_forwarded_for: bool = False

    # Auto-find jobs
    autofind_max_attempts: int = 3
    autofind_backoff_base_seconds: float = 2.0
    job_log_path: str = "logs/autofind_jobs.jsonl"
    huey_backend: Literal["sqlite", "memory"] = "sqlite"
    huey_db_path: str = "data/huey.db"
    huey_immediate: bool = False

    # Shared counter store (Upstash Redis REST)
    upstash_redis_rest_url: str = ""
    upstash_redis_rest_token: str = ""

    # Recipe synthesis
    synthesis_provider: Literal["openai", "mock"] = "openai"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    synthesis_max_drafts: int = 3
    synthesis_timeout_seconds: float = 60.0

    # Analytics
    analytics_backend: Literal["sqlite", "memory"] = "sqlite"
    analytics_db_path: str = "data/analytics.db"
    analytics_queue_size: int = 1000

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
