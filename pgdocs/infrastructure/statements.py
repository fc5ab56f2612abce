"""
Fixed SQL statement shapes for a record table.

Statements are composed once per store with `psycopg.sql`, from validated
identifiers only. Hybrid updates depend on which schema fields a record
carries, so those shapes are built on first use and cached per field set.
"""

from __future__ import annotations

from typing import Dict, List, Sequence, Tuple

from psycopg import sql

from pgdocs.infrastructure.identifiers import index_identifier, table_identifier
from pgdocs.schema.mapper import (
    CREATED_FIELD,
    DATA_COLUMN,
    ID_FIELD,
    UPDATED_FIELD,
    SchemaMapper,
)

_ID = sql.Identifier(ID_FIELD)
_DATA = sql.Identifier(DATA_COLUMN)
_CREATED = sql.Identifier(CREATED_FIELD)
_UPDATED = sql.Identifier(UPDATED_FIELD)


def _placeholders(count: int) -> sql.Composed:
    return sql.SQL(", ").join([sql.Placeholder()] * count)


def _identifiers(names: Sequence[str]) -> sql.Composed:
    return sql.SQL(", ").join(sql.Identifier(name) for name in names)


class TableStatements:
    """
    Statements shared by both storage layouts.

    Subclasses fill in the column layout: `columns` lists every column in
    select/insert order and `_column_definitions()` returns the DDL for each.
    """

    columns: Tuple[str, ...]

    def __init__(self, table_name: str) -> None:
        self.table_name = table_name
        self.table = table_identifier(table_name)
        self._update_shapes: Dict[Tuple[str, ...], sql.Composed] = {}

        self.create_table = sql.SQL("CREATE TABLE IF NOT EXISTS {table} ({columns})").format(
            table=self.table,
            columns=sql.SQL(", ").join(self._column_definitions()),
        )
        self.create_indexes: List[sql.Composed] = [
            sql.SQL("CREATE INDEX IF NOT EXISTS {index} ON {table} ({column})").format(
                index=index_identifier(table_name, column),
                table=self.table,
                column=sql.Identifier(column),
            )
            for column in (CREATED_FIELD, UPDATED_FIELD)
        ]
        self.select_all = sql.SQL("SELECT {columns} FROM {table}").format(
            columns=_identifiers(self.columns), table=self.table
        )
        self.select_by_id = sql.SQL("SELECT {columns} FROM {table} WHERE {id} = %s LIMIT 1").format(
            columns=_identifiers(self.columns), table=self.table, id=_ID
        )
        self.insert = sql.SQL(
            "INSERT INTO {table} ({columns}) VALUES ({values}) RETURNING {columns}"
        ).format(
            table=self.table,
            columns=_identifiers(self.columns),
            values=_placeholders(len(self.columns)),
        )
        self.delete_by_id = sql.SQL("DELETE FROM {table} WHERE {id} = %s").format(
            table=self.table, id=_ID
        )
        self.count_all = sql.SQL("SELECT COUNT(*) AS count FROM {table}").format(table=self.table)
        self.clear = sql.SQL("DELETE FROM {table}").format(table=self.table)
        self.drop = sql.SQL("DROP TABLE IF EXISTS {table}").format(table=self.table)
        self.vacuum = sql.SQL("VACUUM {table}").format(table=self.table)
        self.analyze = sql.SQL("ANALYZE {table}").format(table=self.table)

    @property
    def provisioning(self) -> List[sql.Composed]:
        return [self.create_table, *self.create_indexes]

    def _column_definitions(self) -> List[sql.Composable]:  # pragma: no cover - interface only
        raise NotImplementedError

    def update_shape(self, fields: Sequence[str] = ()) -> sql.Composed:
        """
        ``UPDATE ... SET <fields>, _data, _updatedAt WHERE _id`` for the given
        schema fields. Parameters follow the same order, id last.
        """
        key = tuple(fields)
        statement = self._update_shapes.get(key)
        if statement is None:
            assignments = [
                sql.SQL("{} = %s").format(sql.Identifier(name)) for name in (*key, DATA_COLUMN)
            ]
            assignments.append(sql.SQL("{} = %s").format(_UPDATED))
            statement = sql.SQL("UPDATE {table} SET {assignments} WHERE {id} = %s").format(
                table=self.table,
                assignments=sql.SQL(", ").join(assignments),
                id=_ID,
            )
            self._update_shapes[key] = statement
        return statement


class DocumentStatements(TableStatements):
    """The whole record, reserved fields included, lives in ``_data``."""

    columns = (ID_FIELD, DATA_COLUMN, CREATED_FIELD, UPDATED_FIELD)

    def _column_definitions(self) -> List[sql.Composable]:
        return [
            sql.SQL("{} VARCHAR(100) PRIMARY KEY").format(_ID),
            sql.SQL("{} JSONB NOT NULL").format(_DATA),
            sql.SQL("{} TIMESTAMPTZ NOT NULL").format(_CREATED),
            sql.SQL("{} TIMESTAMPTZ NOT NULL").format(_UPDATED),
        ]


class HybridStatements(TableStatements):
    """One typed column per schema field plus the ``_data`` extras blob."""

    def __init__(self, table_name: str, mapper: SchemaMapper) -> None:
        self.mapper = mapper
        self.columns = (ID_FIELD, *mapper.field_names, DATA_COLUMN, CREATED_FIELD, UPDATED_FIELD)
        super().__init__(table_name)

    def _column_definitions(self) -> List[sql.Composable]:
        definitions: List[sql.Composable] = [
            sql.SQL("{} VARCHAR(100) PRIMARY KEY").format(_ID)
        ]
        for name, column_type in self.mapper.column_definitions():
            definitions.append(
                sql.SQL("{} {}").format(sql.Identifier(name), sql.SQL(column_type.value))
            )
        definitions.extend(
            [
                sql.SQL("{} JSONB NOT NULL DEFAULT '{{}}'::jsonb").format(_DATA),
                sql.SQL("{} TIMESTAMPTZ NOT NULL").format(_CREATED),
                sql.SQL("{} TIMESTAMPTZ NOT NULL").format(_UPDATED),
            ]
        )
        return definitions


__all__ = [
    "TableStatements",
    "DocumentStatements",
    "HybridStatements",
]
