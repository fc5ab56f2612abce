"""
Infrastructure package for pgdocs.

Centralizes database connectivity concerns (conninfo, async pooling) and safe
identifier handling. Statement shapes live in
`pgdocs.infrastructure.statements`, which depends on the schema mapper and is
imported from there directly.
"""

from pgdocs.infrastructure.identifiers import (
    index_identifier,
    split_table_name,
    table_identifier,
    validate_identifier,
)
from pgdocs.infrastructure.db_factory import (
    build_conninfo,
    open_pool,
    pool_kwargs,
    resolve_sslmode,
)

__all__ = [
    "validate_identifier",
    "split_table_name",
    "table_identifier",
    "index_identifier",
    "build_conninfo",
    "open_pool",
    "pool_kwargs",
    "resolve_sslmode",
]
