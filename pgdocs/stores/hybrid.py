"""
Hybrid record store: schema fields in typed columns, the rest in ``_data``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, List, Mapping

from psycopg.types.json import Jsonb

from pgdocs.domain.models import StoreOptions
from pgdocs.infrastructure.statements import HybridStatements
from pgdocs.schema.mapper import ID_FIELD, SchemaLike, SchemaMapper
from pgdocs.stores.abstract import AbstractRecordStore, Document
from pgdocs.utils.identity import generate_id


class HybridStore(AbstractRecordStore):
    """
    Projects the schema's fields into real columns.

    On write the document is split by the `SchemaMapper`: schema fields go to
    their columns, everything else to the extras blob. On read the row is
    merged back into one flat document. Fields outside the schema, nested
    structures included, round-trip through the blob unchanged.
    """

    mode: str = "hybrid"

    def __init__(
        self,
        options: StoreOptions,
        schema: SchemaLike,
        id_factory: Callable[[], str] = generate_id,
    ) -> None:
        super().__init__(options, id_factory=id_factory)
        self.mapper = SchemaMapper(schema)
        self.statements = HybridStatements(options.table_name, self.mapper)

    def _row_to_document(self, row: Mapping[str, Any]) -> Document:
        return self.mapper.merge(row)

    def _insert_params(self, record: Document, created_at: datetime) -> List[Any]:
        schema_fields, extras = self.mapper.split(record)
        return [
            record[ID_FIELD],
            *self.mapper.column_values(schema_fields),
            Jsonb(extras),
            created_at,
            created_at,
        ]

    def _update_statement(self, record: Document, updated_at: datetime) -> tuple:
        schema_fields, extras = self.mapper.split(record)
        # Only the schema fields the record carries are assigned.
        names = [name for name in self.mapper.field_names if name in schema_fields]
        params = [
            *self.mapper.column_values(schema_fields, names),
            Jsonb(extras),
            updated_at,
            record[ID_FIELD],
        ]
        return self.statements.update_shape(names), params


__all__ = ["HybridStore"]
