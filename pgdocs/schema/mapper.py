"""
Schema mapping between flat JSON documents and partially typed rows.

A schema is a mapping of field name to a type tag such as ``"string"``,
``"number:integer"`` or ``"json"``. In hybrid mode each schema field gets a real
column of the mapped type; every other field of a document lives in the
catch-all ``_data`` JSONB column. This module decides the column types, splits
documents before they are written, and merges rows back into documents after
they are read.
"""

from __future__ import annotations

import enum
import json
import types
import typing
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Type, Union
from uuid import UUID

from psycopg.types.json import Jsonb
from pydantic import BaseModel

from pgdocs.errors import SchemaError
from pgdocs.infrastructure.identifiers import validate_identifier
from pgdocs.utils.identity import to_iso

ID_FIELD = "_id"
CREATED_FIELD = "_createdAt"
UPDATED_FIELD = "_updatedAt"
DATA_COLUMN = "_data"

RESERVED_FIELDS = frozenset({ID_FIELD, CREATED_FIELD, UPDATED_FIELD})
RESERVED_COLUMNS = RESERVED_FIELDS | {DATA_COLUMN}

SchemaLike = Union[Mapping[str, str], Type[BaseModel]]


class ColumnType(str, enum.Enum):
    """PostgreSQL column types a schema tag can map to."""

    TEXT = "TEXT"
    UUID = "UUID"
    INTEGER = "INTEGER"
    BIGINT = "BIGINT"
    DOUBLE = "DOUBLE PRECISION"
    BOOLEAN = "BOOLEAN"
    TIMESTAMP = "TIMESTAMPTZ"
    JSON = "JSONB"
    BLOB = "BYTEA"


_TEXT_MARKERS = ("string", "text", "email", "url", "char")


def map_type_to_column(tag: Any) -> ColumnType:
    """
    Map a schema type tag to a column type.

    Matching is case-insensitive and by substring, first rule wins. Unknown
    tags fall back to TEXT.
    """
    t = str(tag).lower()
    if any(marker in t for marker in _TEXT_MARKERS):
        return ColumnType.TEXT
    if "uuid" in t:
        return ColumnType.UUID
    if "number" in t:
        # "bigint" also contains "int", so it has to be tested first.
        if "bigint" in t:
            return ColumnType.BIGINT
        if "int" in t:
            return ColumnType.INTEGER
        return ColumnType.DOUBLE
    if "boolean" in t:
        return ColumnType.BOOLEAN
    if "date" in t:
        return ColumnType.TIMESTAMP
    if "json" in t:
        return ColumnType.JSON
    if "blob" in t:
        return ColumnType.BLOB
    return ColumnType.TEXT


def _tag_for_annotation(annotation: Any) -> str:
    origin = typing.get_origin(annotation)
    if origin is Union or origin is getattr(types, "UnionType", Union):
        args = [arg for arg in typing.get_args(annotation) if arg is not type(None)]
        if len(args) == 1:
            return _tag_for_annotation(args[0])
        return "json"
    if not isinstance(annotation, type):
        return "json"
    # bool is a subclass of int, datetime a subclass of date.
    if issubclass(annotation, bool):
        return "boolean"
    if issubclass(annotation, int):
        return "number:integer"
    if issubclass(annotation, (float, Decimal)):
        return "number"
    if issubclass(annotation, str):
        return "string"
    if issubclass(annotation, (datetime, date)):
        return "date"
    if issubclass(annotation, UUID):
        return "uuid"
    if issubclass(annotation, bytes):
        return "blob"
    return "json"


def tags_from_model(model: Type[BaseModel]) -> Dict[str, str]:
    """Derive a field-name to type-tag mapping from a pydantic model class."""
    return {
        name: _tag_for_annotation(info.annotation) for name, info in model.model_fields.items()
    }


def coerce_schema(schema: SchemaLike) -> Dict[str, str]:
    if isinstance(schema, type) and issubclass(schema, BaseModel):
        return tags_from_model(schema)
    return {str(name): str(tag) for name, tag in dict(schema).items()}


def parse_blob(value: Any) -> Dict[str, Any]:
    """
    Interpret a stored JSON column value as a document.

    Dicts pass through, JSON strings are parsed, and anything that does not
    end up as an object becomes an empty dict.
    """
    if isinstance(value, dict):
        return value
    if isinstance(value, (str, bytes, bytearray)):
        try:
            parsed = json.loads(value)
        except ValueError:
            return {}
        return parsed if isinstance(parsed, dict) else {}
    return {}


def to_document_value(value: Any) -> Any:
    """Convert a typed column value into its JSON-representable form."""
    if isinstance(value, datetime):
        return to_iso(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, memoryview):
        return value.tobytes()
    return value


class SchemaMapper:
    """
    Splits documents across typed columns and the extras blob, and merges rows
    back into flat documents.
    """

    def __init__(self, schema: SchemaLike) -> None:
        tags = coerce_schema(schema)
        self.columns: Dict[str, ColumnType] = {}
        for name, tag in tags.items():
            validate_identifier(name, "field")
            if name in RESERVED_COLUMNS:
                raise SchemaError(f"Schema field '{name}' collides with a reserved column")
            self.columns[name] = map_type_to_column(tag)

    @property
    def field_names(self) -> Tuple[str, ...]:
        return tuple(self.columns)

    def column_definitions(self) -> List[Tuple[str, ColumnType]]:
        return list(self.columns.items())

    def split(self, document: Mapping[str, Any]) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        """
        Partition `document` into (schema_fields, extra_fields).

        Reserved id and timestamp keys are dropped from both halves since they
        are stored in their own columns.
        """
        schema_fields: Dict[str, Any] = {}
        extra_fields: Dict[str, Any] = {}
        for key, value in document.items():
            if key in self.columns:
                schema_fields[key] = value
            elif key not in RESERVED_FIELDS:
                extra_fields[key] = value
        return schema_fields, extra_fields

    def merge(self, row: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Rebuild a flat document from a hybrid row.

        Typed columns (NULL ones as None) and reserved columns form the base.
        The parsed extras blob is overlaid last, so on a key clash the blob
        value is what the caller sees.
        """
        document: Dict[str, Any] = {}
        for key, value in row.items():
            if key == DATA_COLUMN:
                continue
            document[key] = to_document_value(value)
        document.update(parse_blob(row.get(DATA_COLUMN)))
        return document

    def column_values(
        self, schema_fields: Mapping[str, Any], names: Optional[Sequence[str]] = None
    ) -> List[Any]:
        """
        Bound parameters for the columns in `names` (all schema columns when
        omitted), adapting JSON columns for psycopg.
        """
        values: List[Any] = []
        for name in names if names is not None else self.columns:
            value = schema_fields.get(name)
            if value is not None and self.columns[name] is ColumnType.JSON:
                value = Jsonb(value)
            values.append(value)
        return values


__all__ = [
    "ID_FIELD",
    "CREATED_FIELD",
    "UPDATED_FIELD",
    "DATA_COLUMN",
    "RESERVED_FIELDS",
    "RESERVED_COLUMNS",
    "ColumnType",
    "SchemaLike",
    "SchemaMapper",
    "coerce_schema",
    "map_type_to_column",
    "parse_blob",
    "tags_from_model",
    "to_document_value",
]
