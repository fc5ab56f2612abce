"""
pgdocs - JSON document storage on PostgreSQL.

Stores arbitrary JSON-shaped records in a PostgreSQL table, either as one
JSONB document per row or, when a schema is declared, with the schema's fields
projected into real typed columns and everything else kept in a catch-all
JSONB column:

- Document layout (no schema)
- Hybrid layout (typed columns + extras blob)
- Equality-criteria find/update/remove/count/exists
- Maintenance, transactions and raw SQL passthroughs

All I/O is asynchronous and runs on a psycopg_pool AsyncConnectionPool.
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from pgdocs.config import Settings, get_settings
from pgdocs.domain.models import ConnectionState, StoreOptions
from pgdocs.driver import available_modes, create_store, open_store
from pgdocs.errors import (
    DocStoreError,
    InvalidIdentifierError,
    NotConnectedError,
    SchemaError,
    TransactionError,
)
from pgdocs.schema.mapper import ColumnType, SchemaMapper, map_type_to_column
from pgdocs.stores import (
    AbstractRecordStore,
    DocumentStore,
    HybridStore,
    RecordStore,
    Transaction,
)
from pgdocs.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    "StoreOptions",
    "ConnectionState",
    # Entry points
    "available_modes",
    "create_store",
    "open_store",
    # Stores
    "RecordStore",
    "AbstractRecordStore",
    "DocumentStore",
    "HybridStore",
    "Transaction",
    # Schema mapping
    "ColumnType",
    "SchemaMapper",
    "map_type_to_column",
    # Errors
    "DocStoreError",
    "InvalidIdentifierError",
    "NotConnectedError",
    "SchemaError",
    "TransactionError",
    # Logging
    "configure_logging",
    "get_logger",
]
