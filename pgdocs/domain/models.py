"""
Domain models for pgdocs.

`StoreOptions` is the construction-time configuration of a record store. It is
frozen: a store never changes its connection target, table or pool sizing
after it has been built.
"""
from __future__ import annotations

import enum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, Field, field_validator

from pgdocs.config import Settings
from pgdocs.infrastructure.identifiers import split_table_name


class ConnectionState(str, enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"


class StoreOptions(BaseModel):
    """
    Connection and table configuration for a record store.
    """

    connection_string: Optional[str] = Field(
        None, description="libpq connection string or postgresql:// URL."
    )
    host: Optional[str] = Field(None, description="Database host.")
    port: Optional[int] = Field(None, description="Database port.")
    user: Optional[str] = Field(None, description="Database user.")
    password: Optional[str] = Field(None, description="Database password.")
    database: Optional[str] = Field(None, description="Database name.")
    table_name: str = Field(..., description="Backing table, optionally schema-qualified.")
    ssl: Optional[Union[bool, str]] = Field(
        None, description="Secure transport flag or explicit sslmode; inferred when None."
    )
    pool_size: int = Field(10, ge=1, description="Maximum connections in the pool.")
    pool_min_size: int = Field(1, ge=0, description="Idle connections kept open.")
    connect_timeout: float = Field(30.0, gt=0, description="Seconds to wait for the pool.")
    connect_attempts: int = Field(3, ge=1, description="Pool open attempts at connect time.")
    pool_options: Dict[str, Any] = Field(
        default_factory=dict, description="Extra pool arguments, merged last."
    )

    model_config = {
        "frozen": True,
        "populate_by_name": True,
    }

    @field_validator("table_name")
    @classmethod
    def _check_table_name(cls, value: str) -> str:
        split_table_name(value)
        return value

    @classmethod
    def from_settings(cls, settings: Settings, **overrides: Any) -> "StoreOptions":
        """
        Build options from environment settings; keyword overrides win.
        """
        values: Dict[str, Any] = {
            "connection_string": settings.database_url,
            "host": settings.db_host,
            "port": settings.db_port,
            "user": settings.db_user,
            "password": settings.db_password,
            "database": settings.db_name,
            "table_name": settings.docstore_table,
            "ssl": settings.db_ssl,
            "pool_size": settings.db_pool_size,
            "pool_min_size": settings.db_pool_min_size,
            "connect_timeout": settings.db_connect_timeout,
            "connect_attempts": settings.db_connect_attempts,
        }
        values.update(overrides)
        return cls(**values)


__all__ = ["ConnectionState", "StoreOptions"]
