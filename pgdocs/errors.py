"""
Errors raised locally by pgdocs.

Failures coming from psycopg or psycopg_pool are never wrapped; they reach the
caller exactly as the driver raised them.
"""

from __future__ import annotations


class DocStoreError(Exception):
    """Base class for errors raised by pgdocs itself."""


class NotConnectedError(DocStoreError, RuntimeError):
    """An operation was attempted while the store is disconnected."""

    def __init__(self, table_name: str | None = None) -> None:
        target = f" for table '{table_name}'" if table_name else ""
        super().__init__(f"Database not connected{target}. Call connect() first.")
        self.table_name = table_name


class InvalidIdentifierError(DocStoreError, ValueError):
    """A table or column name is not a safe SQL identifier."""


class SchemaError(DocStoreError, ValueError):
    """The declared schema cannot be mapped onto a table."""


class TransactionError(DocStoreError):
    """A transaction handle was used after commit or rollback."""


__all__ = [
    "DocStoreError",
    "NotConnectedError",
    "InvalidIdentifierError",
    "SchemaError",
    "TransactionError",
]
