"""
Configuration settings for the movie ratings quality gate.

Uses Pydantic Settings to load environment variables for database connections,
logging, validation bounds, and the load/refresh policies.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Database
    db_host: str = Field("localhost", alias="DB_HOST")
    db_port: int = Field(5432, alias="DB_PORT")
    db_user: str = Field("postgres", alias="DB_USER")
    db_password: str = Field("postgres", alias="DB_PASSWORD")
    db_name: str = Field("movie_ratings", alias="DB_NAME")
    db_statement_timeout_ms: int = Field(30_000, ge=0, alias="DB_STATEMENT_TIMEOUT_MS")
    db_pool_min_size: int = Field(1, ge=1, alias="DB_POOL_MIN_SIZE")
    db_pool_max_size: int = Field(10, ge=1, alias="DB_POOL_MAX_SIZE")

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")
    storage_backend: Literal["postgres", "memory"] = Field("postgres", alias="STORAGE_BACKEND")

    # Validation rules
    min_release_year: int = Field(1870, alias="MIN_RELEASE_YEAR")
    release_year_leeway: int = Field(1, ge=0, alias="RELEASE_YEAR_LEEWAY")
    min_rating: float = Field(0.0, alias="MIN_RATING")
    max_rating: float = Field(10.0, alias="MAX_RATING")
    validation_workers: int = Field(1, ge=1, alias="VALIDATION_WORKERS")

    # Load and aggregate refresh
    load_timeout_ms: int = Field(60_000, ge=0, alias="LOAD_TIMEOUT_MS")
    refresh_policy: Literal["after_load", "manual"] = Field("after_load", alias="REFRESH_POLICY")
    refresh_timeout_seconds: float = Field(30.0, gt=0, alias="REFRESH_TIMEOUT_SECONDS")
    refresh_retry_attempts: int = Field(3, ge=1, alias="REFRESH_RETRY_ATTEMPTS")

    # Output locations
    quarantine_dir: str = Field("quarantine", alias="QUARANTINE_DIR")
    outcomes_dir: str = Field("results", alias="OUTCOMES_DIR")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["Settings", "get_settings"]
