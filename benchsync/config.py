"""
Configuration settings for benchsync.

Uses Pydantic Settings to load environment variables for the relational
(PostgreSQL) and document (MongoDB) store connections, logging, and
reconciliation defaults.
"""
from __future__ import annotations

from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Relational store
    db_host: str = Field("localhost", alias="DB_HOST")
    db_port: int = Field(5432, alias="DB_PORT")
    db_user: str = Field("postgres", alias="DB_USER")
    db_password: str = Field("postgres", alias="DB_PASSWORD")
    db_name: str = Field("benchmarks", alias="DB_NAME")
    db_pool_min_size: int = Field(1, alias="DB_POOL_MIN_SIZE")
    db_pool_max_size: int = Field(8, alias="DB_POOL_MAX_SIZE")

    # Document store
    mongo_uri: str = Field("mongodb://localhost:27017", alias="MONGO_URI")
    mongo_db: str = Field("benchmarks", alias="MONGO_DB")

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    json_logs: bool = Field(False, alias="JSON_LOGS")

    # Reconciliation
    sync_kinds: str = Field("all", alias="SYNC_KINDS")
    sync_workers: int = Field(4, alias="SYNC_WORKERS")
    sync_interval_seconds: float = Field(300.0, alias="SYNC_INTERVAL_SECONDS")
    store_timeout_seconds: float = Field(5.0, alias="STORE_TIMEOUT_SECONDS")
    probe_timeout_seconds: float = Field(2.0, alias="PROBE_TIMEOUT_SECONDS")
    store_retry_attempts: int = Field(3, alias="STORE_RETRY_ATTEMPTS")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def dsn(self) -> str:
        return (
            f"postgresql://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )

    def kind_names(self) -> List[str]:
        """
        Parse SYNC_KINDS into a list of kind names.

        ``"all"`` (or an empty value) is returned as ``["all"]`` and expanded by
        the caller against the kind registry.
        """
        names = [part.strip() for part in self.sync_kinds.split(",") if part.strip()]
        return names or ["all"]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["Settings", "get_settings"]
