"""Centralized configuration using Pydantic Settings.

This module provides a single source of truth for all configuration:
backend location, cache freshness windows, persisted storage keys and
logging.

Configuration can be overridden via environment variables:
- ROAM_API_BASE_URL=https://api.example.com/api/v1
- ROAM_CACHE_LOCATION_TTL_SECONDS=60
- ROAM_STORAGE_BACKEND=file
- ROAM_PROFILE_LOCAL_FALLBACK=true
- etc.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ApiConfig(BaseSettings):
    """Backend API configuration.

    Environment variables prefixed with ROAM_API_.
    """

    model_config = SettingsConfigDict(env_prefix="ROAM_API_")

    base_url: str = "http://localhost:3000/api/v1"
    timeout_seconds: float = 10.0
    user_agent: str = "roamsync-client"


class CacheConfig(BaseSettings):
    """Response cache configuration.

    Location-sensitive reads (queries carrying coordinates) get a short
    freshness window; catalog-style reads a longer one.

    Environment variables prefixed with ROAM_CACHE_.
    """

    model_config = SettingsConfigDict(env_prefix="ROAM_CACHE_")

    enabled: bool = True
    default_ttl_seconds: float = 300.0
    location_ttl_seconds: float = 120.0
    catalog_ttl_seconds: float = 300.0
    max_entries: Optional[int] = Field(default=500, ge=1)


class StorageConfig(BaseSettings):
    """Persisted device storage configuration.

    Environment variables prefixed with ROAM_STORAGE_.
    """

    model_config = SettingsConfigDict(env_prefix="ROAM_STORAGE_")

    backend: Literal["memory", "file"] = "file"
    path: Path = Field(
        default_factory=lambda: Path.home() / ".roamsync" / "storage.json"
    )
    token_key: str = "auth_token"
    identity_key: str = "auth_identity"
    profile_key: str = "travel_profile"


class ProfileConfig(BaseSettings):
    """Travel profile configuration.

    Environment variables prefixed with ROAM_PROFILE_.
    """

    model_config = SettingsConfigDict(env_prefix="ROAM_PROFILE_")

    # Development only: keep a device copy of the profile when the
    # backend has none.
    local_fallback: bool = False


class ObservabilityConfig(BaseSettings):
    """Logging and observability configuration.

    Environment variables prefixed with ROAM_LOG_.
    """

    model_config = SettingsConfigDict(env_prefix="ROAM_LOG_")

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    structured: bool = False  # Set True for JSON logging


class AppConfig(BaseSettings):
    """Main application configuration aggregating all sub-configs.

    Sub-configurations can be accessed via attributes:

        config = get_config()
        print(config.api.base_url)
        print(config.cache.location_ttl_seconds)

    Environment variables prefixed with ROAM_.
    """

    model_config = SettingsConfigDict(env_prefix="ROAM_")

    api: ApiConfig = Field(default_factory=ApiConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    profile: ProfileConfig = Field(default_factory=ProfileConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """Get the application configuration.

    Configuration is loaded once and cached. To reload configuration
    (e.g., in tests), use reset_config() first.

    Returns:
        The application configuration instance.
    """
    return AppConfig()


def reset_config() -> None:
    """Reset the configuration cache.

    Call this in tests to ensure a fresh configuration is loaded.
    """
    get_config.cache_clear()
