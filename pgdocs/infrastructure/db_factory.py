"""
Database connection factory utilities for pgdocs.

Builds the libpq conninfo and the psycopg_pool `AsyncConnectionPool` a record
store runs on. Opening the pool is retried with tenacity for transient
connection failures; that is the only place pgdocs retries anything.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

import psycopg
from psycopg.conninfo import conninfo_to_dict, make_conninfo
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool, PoolTimeout
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from pgdocs.utils.logging import get_logger

if TYPE_CHECKING:
    from pgdocs.domain.models import StoreOptions

log = get_logger(__name__)

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


def build_conninfo(options: "StoreOptions") -> str:
    """
    Compose the conninfo string for `options`.

    A connection string wins outright; otherwise the discrete host, port, user,
    password and database fields are combined, skipping unset ones so libpq
    environment defaults still apply.
    """
    if options.connection_string:
        return options.connection_string
    params = {
        "host": options.host,
        "port": options.port,
        "user": options.user,
        "password": options.password,
        "dbname": options.database,
    }
    return make_conninfo(**{key: value for key, value in params.items() if value is not None})


def resolve_sslmode(options: "StoreOptions") -> Optional[str]:
    """
    Resolve the secure-transport setting into a libpq sslmode.

    Returns None when nothing was requested, leaving the sslmode of the
    connection string (or libpq's default) in effect.
    """
    ssl = options.ssl
    if isinstance(ssl, str):
        lowered = ssl.strip().lower()
        if lowered in _TRUTHY:
            return "require"
        if lowered in _FALSY:
            return "disable"
        return lowered
    if ssl is True:
        return "require"
    if ssl is False:
        return "disable"
    if options.connection_string and _requests_ssl(options.connection_string):
        return "require"
    return None


def _requests_ssl(connection_string: str) -> bool:
    if "sslmode=require" in connection_string:
        return True
    try:
        return conninfo_to_dict(connection_string).get("sslmode") == "require"
    except psycopg.ProgrammingError:
        return False


def pool_kwargs(options: "StoreOptions") -> Dict[str, Any]:
    """
    Constructor arguments for `AsyncConnectionPool`.

    `options.pool_options` is merged last and may override anything; a nested
    ``kwargs`` entry is merged into the per-connection arguments.
    """
    connection_kwargs: Dict[str, Any] = {"row_factory": dict_row, "autocommit": True}
    sslmode = resolve_sslmode(options)
    if sslmode is not None:
        connection_kwargs["sslmode"] = sslmode

    extra = dict(options.pool_options)
    connection_kwargs.update(extra.pop("kwargs", None) or {})

    kwargs: Dict[str, Any] = {
        "conninfo": build_conninfo(options),
        "min_size": min(options.pool_min_size, options.pool_size),
        "max_size": options.pool_size,
        "kwargs": connection_kwargs,
        "name": f"pgdocs-{options.table_name}",
        "open": False,
    }
    kwargs.update(extra)
    return kwargs


async def open_pool(options: "StoreOptions") -> AsyncConnectionPool:
    """
    Create and open an async pool, waiting until it can hand out connections.

    Retries up to `options.connect_attempts` times with exponential backoff on
    connection failures and pool timeouts; the pool is closed between
    attempts.

    Raises
    ------
    psycopg.OperationalError, psycopg_pool.PoolTimeout
        If the pool cannot be opened after all attempts.
    """
    kwargs = pool_kwargs(options)
    async for attempt in AsyncRetrying(
        stop=stop_after_attempt(options.connect_attempts),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type((psycopg.OperationalError, PoolTimeout)),
        reraise=True,
    ):
        with attempt:
            pool = AsyncConnectionPool(**kwargs)
            try:
                await pool.open(wait=True, timeout=options.connect_timeout)
            except BaseException:
                await pool.close()
                log.warning(
                    f"[POOL] open attempt {attempt.retry_state.attempt_number} failed",
                    extra={"table": options.table_name},
                )
                raise
    log.debug(
        "Pool opened",
        extra={"table": options.table_name, "max_size": kwargs.get("max_size")},
    )
    return pool


__all__ = [
    "build_conninfo",
    "resolve_sslmode",
    "pool_kwargs",
    "open_pool",
]
