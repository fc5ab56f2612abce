"""
Identifier validation for table and column names.

Every name that ends up inside SQL text (table names, schema field names, index
names) is validated here first and then quoted with `psycopg.sql.Identifier`.
Values always travel as bound parameters.
"""

from __future__ import annotations

import hashlib
import re
from typing import Tuple

from psycopg import sql

from pgdocs.errors import InvalidIdentifierError

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# PostgreSQL truncates identifiers longer than NAMEDATALEN - 1 bytes.
MAX_IDENTIFIER_LENGTH = 63
_INDEX_HASH_LENGTH = 8


def validate_identifier(name: str, kind: str = "identifier") -> str:
    """
    Return `name` unchanged if it is a safe SQL identifier, else raise.

    Raises
    ------
    InvalidIdentifierError
        If `name` is not a string, is empty, too long, or contains characters
        outside ``[A-Za-z0-9_]`` (or starts with a digit).
    """
    if not isinstance(name, str) or not _IDENTIFIER_RE.match(name):
        raise InvalidIdentifierError(f"Invalid {kind} name: {name!r}")
    if len(name) > MAX_IDENTIFIER_LENGTH:
        raise InvalidIdentifierError(
            f"Invalid {kind} name: {name!r} exceeds {MAX_IDENTIFIER_LENGTH} characters"
        )
    return name


def split_table_name(table_name: str) -> Tuple[str, ...]:
    """Split an optionally schema-qualified table name and validate each part."""
    if not isinstance(table_name, str):
        raise InvalidIdentifierError(f"Invalid table name: {table_name!r}")
    parts = tuple(table_name.split("."))
    if len(parts) > 2:
        raise InvalidIdentifierError(f"Invalid table name: {table_name!r}")
    return tuple(validate_identifier(part, "table") for part in parts)


def table_identifier(table_name: str) -> sql.Identifier:
    return sql.Identifier(*split_table_name(table_name))


def index_name(table_name: str, column: str) -> str:
    """
    Deterministic index name for `column` on `table_name`.

    Names over the identifier limit keep a readable prefix and end in a short
    hash of the full name, so distinct columns never truncate to one name.
    """
    flat = "_".join(split_table_name(table_name))
    name = f"idx_{flat}_{column}"
    if len(name) <= MAX_IDENTIFIER_LENGTH:
        return name
    digest = hashlib.sha1(name.encode("utf-8")).hexdigest()[:_INDEX_HASH_LENGTH]
    return f"{name[: MAX_IDENTIFIER_LENGTH - _INDEX_HASH_LENGTH - 1]}_{digest}"


def index_identifier(table_name: str, column: str) -> sql.Identifier:
    return sql.Identifier(index_name(table_name, column))


__all__ = [
    "MAX_IDENTIFIER_LENGTH",
    "validate_identifier",
    "split_table_name",
    "table_identifier",
    "index_name",
    "index_identifier",
]
