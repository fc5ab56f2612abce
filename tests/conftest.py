"""
Pytest configuration for pgdocs.

Provides fixtures for:
- Settings and DSN for integration tests against a real PostgreSQL
- An in-memory stand-in for psycopg_pool's AsyncConnectionPool, so unit tests
  can drive full store operations without a database
"""

from __future__ import annotations

import copy
import json
import os
from contextlib import AbstractAsyncContextManager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import psycopg
import pytest
import pytest_asyncio
from psycopg.types.json import Jsonb

from pgdocs.config import Settings
from pgdocs.domain.models import StoreOptions
from pgdocs.infrastructure import db_factory
from pgdocs.schema.mapper import ColumnType
from pgdocs.stores.document import DocumentStore
from pgdocs.stores.hybrid import HybridStore

PEOPLE_SCHEMA = {"age": "number:integer", "email": "string"}


# ---- integration --------------------------------------------------------


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "postgres"),
        db_password=os.getenv("DB_PASSWORD", "postgres"),
        db_name=os.getenv("DB_NAME", "pgdocs_test"),
        log_level="DEBUG",
    )


@pytest.fixture(scope="session")
def test_dsn(test_settings: Settings) -> str:
    """
    Database connection string for tests.
    """
    return os.getenv("DATABASE_URL") or (
        f"postgresql://{test_settings.db_user}:{test_settings.db_password}"
        f"@{test_settings.db_host}:{test_settings.db_port}/{test_settings.db_name}"
    )


@pytest.fixture(scope="session")
def db_connection_available(test_dsn: str) -> bool:
    """
    Check if database is reachable.

    Used to conditionally skip integration tests when DB is not available.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=5) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")
                cur.fetchone()
        return True
    except psycopg.Error:
        return False


# ---- in-memory pool -----------------------------------------------------


def _stored(value: Any) -> Any:
    """What a value looks like after a trip through the database."""
    if isinstance(value, Jsonb):
        return json.loads(json.dumps(value.obj))
    return value


class _FakeCursor:
    def __init__(self, rows: Optional[List[Dict[str, Any]]]) -> None:
        self._rows = rows
        self.description = None if rows is None else [("column",)]

    async def fetchall(self) -> List[Dict[str, Any]]:
        return list(self._rows or [])


class _FakeConnection:
    def __init__(self, backend: "InMemoryBackend") -> None:
        self._backend = backend

    async def execute(self, query: Any, params: Any = None) -> _FakeCursor:
        return _FakeCursor(self._backend.run(self, query, params))


class _ConnectionContext(AbstractAsyncContextManager[_FakeConnection]):
    def __init__(self, pool: "FakePool") -> None:
        self._pool = pool

    async def __aenter__(self) -> _FakeConnection:
        if self._pool.closed:
            raise RuntimeError("pool is already closed")
        return _FakeConnection(self._pool.backend)

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        del exc_type, exc, tb
        return False


class FakePool:
    def __init__(self, backend: "InMemoryBackend", **kwargs: Any) -> None:
        self.backend = backend
        self.kwargs = kwargs
        self.opened = False
        self.closed = False
        self.checked_out: List[_FakeConnection] = []
        self.returned: List[_FakeConnection] = []

    async def open(self, wait: bool = False, timeout: float = 30.0) -> None:
        del wait, timeout
        if self.backend.failing_opens > 0:
            self.backend.failing_opens -= 1
            raise psycopg.OperationalError("connection refused")
        self.opened = True

    async def close(self) -> None:
        self.closed = True

    def connection(self) -> _ConnectionContext:
        return _ConnectionContext(self)

    async def getconn(self) -> _FakeConnection:
        conn = _FakeConnection(self.backend)
        self.checked_out.append(conn)
        return conn

    async def putconn(self, conn: _FakeConnection) -> None:
        self.returned.append(conn)


class InMemoryBackend:
    """
    Executes a store's fixed statement shapes against a dict of rows.

    Statements are recognized by identity against the bound store's
    `statements`, so no SQL text is parsed. Plain string statements are
    recorded and answered from `raw_results`.
    """

    def __init__(self) -> None:
        self.rows: Dict[str, Dict[str, Any]] = {}
        self.statements: Any = None
        self.pools: List[FakePool] = []
        self.executed: List[tuple] = []
        self.raw_results: Dict[str, List[Dict[str, Any]]] = {}
        self.failing_opens = 0
        self.fail_on: Any = None

    def bind(self, store: Any) -> Any:
        self.statements = store.statements
        return store

    def make_pool(self, **kwargs: Any) -> FakePool:
        pool = FakePool(self, **kwargs)
        self.pools.append(pool)
        return pool

    def run(self, conn: _FakeConnection, query: Any, params: Any) -> Optional[List[Dict[str, Any]]]:
        self.executed.append((conn, query, params))
        if self.fail_on is not None and query is self.fail_on:
            raise psycopg.errors.UndefinedTable("relation does not exist")
        if isinstance(query, str):
            return self.raw_results.get(query)

        s = self.statements
        if s is None:
            return None
        if query is s.select_all:
            return [copy.deepcopy(row) for row in self.rows.values()]
        if query is s.select_by_id:
            row = self.rows.get(params[0])
            return [copy.deepcopy(row)] if row is not None else []
        if query is s.count_all:
            return [{"count": len(self.rows)}]
        if query is s.insert:
            row = {
                column: self._column_value(column, value)
                for column, value in zip(s.columns, params)
            }
            self.rows[row["_id"]] = row
            return [copy.deepcopy(row)]
        if query is s.delete_by_id:
            self.rows.pop(params[0], None)
            return None
        if query is s.clear:
            self.rows.clear()
            return None
        for fields, statement in s._update_shapes.items():
            if statement is query:
                *values, record_id = params
                row = self.rows.get(record_id)
                if row is not None:
                    columns = (*fields, "_data", "_updatedAt")
                    row.update(
                        (column, self._column_value(column, value))
                        for column, value in zip(columns, values)
                    )
                return None
        return None

    def _column_value(self, column: str, value: Any) -> Any:
        """Coerce a bound value the way its column type would."""
        value = _stored(value)
        mapper = getattr(self.statements, "mapper", None)
        if (
            mapper is not None
            and mapper.columns.get(column) is ColumnType.TIMESTAMP
            and isinstance(value, str)
        ):
            parsed = datetime.fromisoformat(value)
            return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
        return value

    def queries(self) -> List[Any]:
        return [query for _, query, _ in self.executed]


@pytest.fixture
def backend(monkeypatch) -> InMemoryBackend:
    memory = InMemoryBackend()
    monkeypatch.setattr(db_factory, "AsyncConnectionPool", memory.make_pool)
    return memory


@pytest.fixture
def store_options() -> StoreOptions:
    return StoreOptions(connection_string="postgresql://test", table_name="records")


@pytest_asyncio.fixture
async def document_store(backend: InMemoryBackend, store_options: StoreOptions):
    store = backend.bind(DocumentStore(store_options))
    await store.connect()
    try:
        yield store
    finally:
        await store.disconnect()


@pytest_asyncio.fixture
async def hybrid_store(backend: InMemoryBackend):
    options = StoreOptions(connection_string="postgresql://test", table_name="people")
    store = backend.bind(HybridStore(options, PEOPLE_SCHEMA))
    await store.connect()
    try:
        yield store
    finally:
        await store.disconnect()
