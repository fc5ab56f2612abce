"""
Configuration settings for pgdocs.

Uses Pydantic Settings to load environment variables for the database
connection, the default table, pool sizing, and logging. `StoreOptions`
(see `pgdocs.domain.models`) can be built from these values or passed
explicitly by the caller.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Optional, Union

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Database
    database_url: Optional[str] = Field(None, alias="DATABASE_URL")
    db_host: Optional[str] = Field(None, alias="DB_HOST")
    db_port: Optional[int] = Field(None, alias="DB_PORT")
    db_user: Optional[str] = Field(None, alias="DB_USER")
    db_password: Optional[str] = Field(None, alias="DB_PASSWORD")
    db_name: Optional[str] = Field(None, alias="DB_NAME")
    db_ssl: Optional[Union[bool, str]] = Field(None, alias="DB_SSL")

    # Pool
    db_pool_size: int = Field(10, alias="DB_POOL_SIZE")
    db_pool_min_size: int = Field(1, alias="DB_POOL_MIN_SIZE")
    db_connect_timeout: float = Field(30.0, alias="DB_CONNECT_TIMEOUT")
    db_connect_attempts: int = Field(3, alias="DB_CONNECT_ATTEMPTS")

    # Store
    docstore_table: Optional[str] = Field(None, alias="DOCSTORE_TABLE")

    # Application
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

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
