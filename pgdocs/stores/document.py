"""
Schema-less record store: the whole record lives in one JSONB column.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, List, Mapping

from psycopg.types.json import Jsonb

from pgdocs.domain.models import StoreOptions
from pgdocs.infrastructure.statements import DocumentStatements
from pgdocs.schema.mapper import DATA_COLUMN, ID_FIELD, parse_blob
from pgdocs.stores.abstract import AbstractRecordStore, Document
from pgdocs.utils.identity import generate_id


class DocumentStore(AbstractRecordStore):
    """
    Stores each record, reserved fields included, in the ``_data`` column.

    ``_createdAt`` and ``_updatedAt`` are mirrored into timestamp columns so
    the two indexes can serve time-ordered raw queries.
    """

    mode: str = "document"

    def __init__(
        self,
        options: StoreOptions,
        id_factory: Callable[[], str] = generate_id,
    ) -> None:
        super().__init__(options, id_factory=id_factory)
        self.statements = DocumentStatements(options.table_name)

    def _row_to_document(self, row: Mapping[str, Any]) -> Document:
        return parse_blob(row.get(DATA_COLUMN))

    def _insert_params(self, record: Document, created_at: datetime) -> List[Any]:
        return [record[ID_FIELD], Jsonb(record), created_at, created_at]

    def _update_statement(self, record: Document, updated_at: datetime) -> tuple:
        return (
            self.statements.update_shape(),
            [Jsonb(record), updated_at, record[ID_FIELD]],
        )


__all__ = ["DocumentStore"]
