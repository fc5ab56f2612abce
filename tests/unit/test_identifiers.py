from __future__ import annotations

import pytest

from pgdocs.errors import InvalidIdentifierError
from pgdocs.infrastructure.identifiers import (
    MAX_IDENTIFIER_LENGTH,
    index_name,
    split_table_name,
    validate_identifier,
)
from pgdocs.infrastructure.statements import (
    DocumentStatements,
    HybridStatements,
)
from pgdocs.schema.mapper import SchemaMapper


@pytest.mark.parametrize("name", ["records", "_private", "Table_2", "a" * 63])
def test_validate_identifier_accepts_safe_names(name: str) -> None:
    assert validate_identifier(name) == name


@pytest.mark.parametrize(
    "name",
    ["", "2fast", "drop table", 'x"; --', "a-b", "a" * 64, None],
)
def test_validate_identifier_rejects_unsafe_names(name) -> None:
    with pytest.raises(InvalidIdentifierError):
        validate_identifier(name)


def test_split_table_name_handles_schema_qualified_names() -> None:
    assert split_table_name("public.records") == ("public", "records")
    with pytest.raises(InvalidIdentifierError):
        split_table_name("a.b.c")


def test_document_statements_column_order() -> None:
    statements = DocumentStatements("records")

    assert statements.columns == ("_id", "_data", "_createdAt", "_updatedAt")
    assert statements.provisioning[0] is statements.create_table


def test_hybrid_statements_column_order() -> None:
    statements = HybridStatements("people", SchemaMapper({"age": "number", "email": "string"}))

    assert statements.columns == ("_id", "age", "email", "_data", "_createdAt", "_updatedAt")
    assert len(statements.provisioning) == 3


def test_update_shapes_are_cached_per_field_set() -> None:
    statements = HybridStatements("people", SchemaMapper({"age": "number", "email": "string"}))

    first = statements.update_shape(["age"])
    assert statements.update_shape(("age",)) is first
    assert statements.update_shape(("age", "email")) is not first


def test_index_name_is_plain_for_short_tables() -> None:
    assert index_name("public.records", "_createdAt") == "idx_public_records__createdAt"


def test_index_name_stays_unique_within_identifier_limit() -> None:
    table = "t" * 60

    created = index_name(table, "_createdAt")
    updated = index_name(table, "_updatedAt")

    assert len(created) == MAX_IDENTIFIER_LENGTH
    assert len(updated) == MAX_IDENTIFIER_LENGTH
    assert created != updated
    assert created == index_name(table, "_createdAt")
    assert validate_identifier(created) == created
