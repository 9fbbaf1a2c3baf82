"""
portfolio_runtime.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for every layer of the runtime.
- Offer a cached settings instance for the API composition root.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    - Env-driven configuration (prefix `PORTFOLIO_`)
    - Defaults safe for local dev and tests
    - One settings object handed to the orchestrator and its modules
    """

    model_config = SettingsConfigDict(env_prefix="PORTFOLIO_", case_sensitive=False)

    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "portfolio-runtime"
    version: str = "0.1.0"
    log_level: str = "INFO"
    log_json: bool = True

    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # Lifecycle
    module_timeout_seconds: float = Field(default=10.0, gt=0)
    initial_path: str = "/"

    # View layer
    enable_view_cache: bool = True
    view_cache_size: int = Field(default=20, ge=0)
    view_cache_ttl_seconds: float | None = None
    view_transition_seconds: float = Field(default=0.3, ge=0)

    # Preferences (None keeps preferences in memory only)
    preferences_path: str | None = None
    system_theme: Literal["light", "dark"] = "light"

    # Error reporting
    error_queue_size: int = Field(default=10, ge=1)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars for each request dependency.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# Tests construct `Settings(...)` directly instead of going through the cache so
# each orchestrator instance stays isolated.
