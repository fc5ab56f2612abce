"""
Schema package for pgdocs: type-tag mapping and document/row conversion.
"""

from pgdocs.schema.mapper import (
    ColumnType,
    SchemaMapper,
    map_type_to_column,
    tags_from_model,
)

__all__ = [
    "ColumnType",
    "SchemaMapper",
    "map_type_to_column",
    "tags_from_model",
]
