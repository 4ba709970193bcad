"""
Configuration settings for the range reader service.

Uses Pydantic Settings to load environment variables for the primary database
binding, the partitioned fetch, the optional secondary source, logging and the
HTTP server.
"""
from __future__ import annotations

import re
from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$")

FetchMode = Literal["sequential", "concurrent"]


class Settings(BaseSettings):
    # Database
    db_host: str = Field("localhost", alias="DB_HOST")
    db_port: int = Field(5432, alias="DB_PORT")
    db_user: str = Field("postgres", alias="DB_USER")
    db_password: str = Field("postgres", alias="DB_PASSWORD")
    db_name: str = Field("range_reader", alias="DB_NAME")
    db_enabled: bool = Field(True, alias="DB_ENABLED")
    db_statement_timeout_ms: int = Field(0, ge=0, alias="DB_STATEMENT_TIMEOUT_MS")
    db_pool_min_size: int = Field(1, ge=0, alias="DB_POOL_MIN_SIZE")
    db_pool_max_size: int = Field(10, ge=1, alias="DB_POOL_MAX_SIZE")

    # Partitioned fetch
    users_table: str = Field("users", alias="USERS_TABLE")
    partition_count: int = Field(3, ge=1, alias="PARTITION_COUNT")
    partition_row_cap: bool = Field(True, alias="PARTITION_ROW_CAP")
    fetch_mode: FetchMode = Field("sequential", alias="FETCH_MODE")
    snapshot_reads: bool = Field(True, alias="SNAPSHOT_READS")

    # Secondary source (disabled unless a URL is given)
    secondary_db_url: Optional[str] = Field(None, alias="SECONDARY_DB_URL")
    secondary_preview_limit: int = Field(5, ge=1, alias="SECONDARY_PREVIEW_LIMIT")
    secondary_connect_timeout_s: int = Field(5, ge=1, alias="SECONDARY_CONNECT_TIMEOUT_S")

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")
    server_host: str = Field("127.0.0.1", alias="SERVER_HOST")
    server_port: int = Field(8000, alias="SERVER_PORT")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("users_table")
    @classmethod
    def _validate_table(cls, value: str) -> str:
        if not _IDENTIFIER_RE.match(value):
            raise ValueError(f"Invalid table identifier: {value!r}")
        return value

    @property
    def secondary_enabled(self) -> bool:
        return bool(self.secondary_db_url)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["FetchMode", "Settings", "get_settings"]
