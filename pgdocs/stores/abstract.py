"""
Record store interfaces and the behavior shared by both storage layouts.

`RecordStore` is the capability every store offers. `AbstractRecordStore`
implements the lifecycle, criteria filtering, update/remove/count/exists,
maintenance, transactions and raw execution on top of three layout hooks that
`DocumentStore` and `HybridStore` provide.

Criteria are flat equality conjunctions evaluated in memory after the
candidate rows are loaded. Multi-record updates and removals are not atomic:
each matching record is written on its own, and a failure part way leaves the
earlier writes in place.
"""

from __future__ import annotations

import abc
from dataclasses import dataclass, field
from datetime import datetime
from typing import (
    Any,
    Callable,
    Dict,
    List,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    Union,
    runtime_checkable,
)

from psycopg import AsyncConnection, sql
from psycopg_pool import AsyncConnectionPool

from pgdocs.domain.models import ConnectionState, StoreOptions
from pgdocs.errors import NotConnectedError, TransactionError
from pgdocs.infrastructure.db_factory import open_pool
from pgdocs.infrastructure.statements import TableStatements
from pgdocs.schema.mapper import CREATED_FIELD, ID_FIELD, UPDATED_FIELD
from pgdocs.utils.identity import generate_id, next_timestamp, utc_now
from pgdocs.utils.logging import get_logger

log = get_logger(__name__)

Document = Dict[str, Any]
Criteria = Mapping[str, Any]
Statement = Union[str, sql.Composable]
Parameters = Optional[Union[Sequence[Any], Mapping[str, Any]]]

_MISSING = object()


def values_equal(actual: Any, expected: Any) -> bool:
    """
    Equality as criteria see it: booleans only match booleans, so ``1`` does
    not match ``True``.
    """
    if isinstance(actual, bool) or isinstance(expected, bool):
        return type(actual) is type(expected) and actual == expected
    return actual == expected


def matches_criteria(document: Mapping[str, Any], criteria: Criteria) -> bool:
    """True when every criteria key is present in `document` with an equal value."""
    for key, expected in criteria.items():
        actual = document.get(key, _MISSING)
        if actual is _MISSING or not values_equal(actual, expected):
            return False
    return True


async def _rows(cursor: Any) -> List[Dict[str, Any]]:
    if cursor.description is None:
        return []
    return list(await cursor.fetchall())


@dataclass
class Transaction:
    """
    A dedicated pooled connection with an open transaction.

    Obtained from `begin_transaction()`; finish it with the store's `commit()`
    or `rollback()`, which also hand the connection back to the pool.
    """

    connection: AsyncConnection
    pool: AsyncConnectionPool
    finished: bool = field(default=False)

    async def execute(self, statement: Statement, parameters: Parameters = None) -> List[Dict[str, Any]]:
        if self.finished:
            raise TransactionError("Transaction already committed or rolled back")
        cursor = await self.connection.execute(statement, parameters)
        return await _rows(cursor)


@runtime_checkable
class RecordStore(Protocol):
    """
    Document-level operations over one table.

    Attributes
    ----------
    mode : str
        Storage layout identifier ("document" or "hybrid").
    table_name : str
        Backing table.
    """

    mode: str
    table_name: str

    async def connect(self) -> None: ...

    async def disconnect(self) -> None: ...

    async def insert(self, fields: Mapping[str, Any]) -> Document: ...

    async def find(self, criteria: Optional[Criteria] = None) -> List[Document]: ...

    async def find_one(self, criteria: Optional[Criteria] = None) -> Optional[Document]: ...

    async def update(self, criteria: Criteria, patch: Mapping[str, Any]) -> int: ...

    async def remove(self, criteria: Criteria) -> int: ...

    async def exists(self, criteria: Optional[Criteria] = None) -> bool: ...

    async def count(self, criteria: Optional[Criteria] = None) -> int: ...


class AbstractRecordStore(abc.ABC):
    """
    Shared implementation of `RecordStore`.

    Subclasses set `mode`, build `statements` and implement the row hooks
    `_row_to_document`, `_insert_params` and `_update_statement`.
    """

    mode: str
    statements: TableStatements

    def __init__(
        self,
        options: StoreOptions,
        id_factory: Callable[[], str] = generate_id,
    ) -> None:
        self.options = options
        self.table_name = options.table_name
        self._id_factory = id_factory
        self._pool: Optional[AsyncConnectionPool] = None
        self._state = ConnectionState.DISCONNECTED

    # ---- lifecycle ------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def pool(self) -> Optional[AsyncConnectionPool]:
        """The live connection pool, or None while disconnected."""
        return self._pool

    async def connect(self) -> None:
        """
        Open the pool and provision the table and its timestamp indexes.

        Does nothing when already connected. If provisioning fails the pool
        is closed again and the store stays disconnected.
        """
        if self._state is ConnectionState.CONNECTED:
            return
        pool = await open_pool(self.options)
        try:
            async with pool.connection() as conn:
                for statement in self.statements.provisioning:
                    await conn.execute(statement)
            log.info(
                f"[PROVISION] {self.table_name}",
                extra={"table": self.table_name, "columns": list(self.statements.columns)},
            )
        except BaseException:
            await pool.close()
            raise
        self._pool = pool
        self._state = ConnectionState.CONNECTED
        log.info(
            f"[CONNECT] {self.table_name}",
            extra={"table": self.table_name, "mode": self.mode},
        )

    async def disconnect(self) -> None:
        if self._pool is None:
            return
        pool, self._pool = self._pool, None
        self._state = ConnectionState.DISCONNECTED
        await pool.close()
        log.info(
            f"[DISCONNECT] {self.table_name}",
            extra={"table": self.table_name, "mode": self.mode},
        )

    async def __aenter__(self) -> "AbstractRecordStore":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.disconnect()

    def _require_pool(self) -> AsyncConnectionPool:
        if self._state is not ConnectionState.CONNECTED or self._pool is None:
            raise NotConnectedError(self.table_name)
        return self._pool

    async def _fetch(self, statement: Statement, parameters: Parameters = None) -> List[Dict[str, Any]]:
        pool = self._require_pool()
        async with pool.connection() as conn:
            cursor = await conn.execute(statement, parameters)
            return await _rows(cursor)

    async def _execute(self, statement: Statement, parameters: Parameters = None) -> None:
        pool = self._require_pool()
        async with pool.connection() as conn:
            await conn.execute(statement, parameters)

    # ---- layout hooks ---------------------------------------------------

    @abc.abstractmethod
    def _row_to_document(self, row: Mapping[str, Any]) -> Document:
        """Rebuild the flat document stored in `row`."""
        raise NotImplementedError

    @abc.abstractmethod
    def _insert_params(self, record: Document, created_at: datetime) -> List[Any]:
        """Parameters for `statements.insert`, in column order."""
        raise NotImplementedError

    @abc.abstractmethod
    def _update_statement(self, record: Document, updated_at: datetime) -> tuple:
        """(statement, parameters) writing `record` back over its row."""
        raise NotImplementedError

    # ---- documents ------------------------------------------------------

    async def insert(self, fields: Mapping[str, Any]) -> Document:
        """
        Store a new record and return it with `_id`, `_createdAt` and
        `_updatedAt` filled in. Reserved keys in `fields` are overwritten.

        The returned document is rebuilt from the inserted row, so it is
        exactly what a later `find` returns (typed columns in their read-back
        form, unset schema fields as None).
        """
        self._require_pool()
        now = utc_now()
        stamp = now.isoformat()
        record: Document = {
            **fields,
            ID_FIELD: self._id_factory(),
            CREATED_FIELD: stamp,
            UPDATED_FIELD: stamp,
        }
        rows = await self._fetch(self.statements.insert, self._insert_params(record, now))
        if rows:
            record = self._row_to_document(rows[0])
        log.debug(
            "Inserted record",
            extra={"table": self.table_name, "record_id": record[ID_FIELD]},
        )
        return record

    async def _candidates(self, criteria: Criteria) -> List[Document]:
        record_id = criteria.get(ID_FIELD)
        if isinstance(record_id, str):
            rows = await self._fetch(self.statements.select_by_id, [record_id])
        else:
            rows = await self._fetch(self.statements.select_all)
        return [self._row_to_document(row) for row in rows]

    async def find(self, criteria: Optional[Criteria] = None) -> List[Document]:
        """
        Every record matching all `criteria` equalities, in storage order.
        Empty criteria return every record.
        """
        criteria = criteria or {}
        self._require_pool()
        documents = await self._candidates(criteria)
        if criteria:
            documents = [doc for doc in documents if matches_criteria(doc, criteria)]
        log.debug(
            "Find",
            extra={"table": self.table_name, "criteria_keys": sorted(criteria), "rows": len(documents)},
        )
        return documents

    async def find_one(self, criteria: Optional[Criteria] = None) -> Optional[Document]:
        """
        First record matching `criteria`, or None. Criteria naming `_id` are
        answered with a single-row lookup instead of a scan.
        """
        criteria = criteria or {}
        self._require_pool()
        if isinstance(criteria.get(ID_FIELD), str):
            rows = await self._fetch(self.statements.select_by_id, [criteria[ID_FIELD]])
            for row in rows:
                document = self._row_to_document(row)
                if matches_criteria(document, criteria):
                    return document
            return None
        results = await self.find(criteria)
        return results[0] if results else None

    async def update(self, criteria: Criteria, patch: Mapping[str, Any]) -> int:
        """
        Shallow-merge `patch` into every record matching `criteria`.

        `_id` and `_createdAt` are kept from the stored record and
        `_updatedAt` is refreshed. Returns the number of records written.
        """
        records = await self.find(criteria)
        count = 0
        for existing in records:
            updated_at = next_timestamp(existing.get(UPDATED_FIELD))
            updated: Document = {**existing, **patch}
            updated[ID_FIELD] = existing[ID_FIELD]
            updated[CREATED_FIELD] = existing.get(CREATED_FIELD)
            updated[UPDATED_FIELD] = updated_at.isoformat()
            statement, params = self._update_statement(updated, updated_at)
            await self._execute(statement, params)
            count += 1
        log.debug("Updated records", extra={"table": self.table_name, "rows": count})
        return count

    async def remove(self, criteria: Criteria) -> int:
        """Delete every record matching `criteria`; returns how many were deleted."""
        records = await self.find(criteria)
        count = 0
        for record in records:
            await self._execute(self.statements.delete_by_id, [record[ID_FIELD]])
            count += 1
        log.debug("Removed records", extra={"table": self.table_name, "rows": count})
        return count

    async def exists(self, criteria: Optional[Criteria] = None) -> bool:
        return await self.find_one(criteria) is not None

    async def count(self, criteria: Optional[Criteria] = None) -> int:
        if not criteria:
            rows = await self._fetch(self.statements.count_all)
            return int(rows[0]["count"]) if rows else 0
        return len(await self.find(criteria))

    # ---- maintenance ----------------------------------------------------

    async def clear(self) -> None:
        """Delete every row, keeping the table."""
        await self._execute(self.statements.clear)

    async def drop(self) -> None:
        """Drop the table and its indexes. All data is lost."""
        await self._execute(self.statements.drop)
        log.info(f"[DROP] {self.table_name}", extra={"table": self.table_name})

    async def vacuum(self) -> None:
        await self._execute(self.statements.vacuum)

    async def analyze(self) -> None:
        await self._execute(self.statements.analyze)

    # ---- transactions and raw SQL ---------------------------------------

    async def begin_transaction(self) -> Transaction:
        """
        Check out a dedicated connection and issue BEGIN on it.

        Document operations never join this transaction; use
        `Transaction.execute` or `execute_raw(..., transaction=...)`.
        """
        pool = self._require_pool()
        conn = await pool.getconn()
        try:
            await conn.execute("BEGIN")
        except BaseException:
            await pool.putconn(conn)
            raise
        return Transaction(connection=conn, pool=pool)

    async def _finish(self, transaction: Transaction, command: str) -> None:
        if transaction.finished:
            raise TransactionError("Transaction already committed or rolled back")
        transaction.finished = True
        try:
            await transaction.connection.execute(command)
        finally:
            await transaction.pool.putconn(transaction.connection)

    async def commit(self, transaction: Transaction) -> None:
        await self._finish(transaction, "COMMIT")

    async def rollback(self, transaction: Transaction) -> None:
        await self._finish(transaction, "ROLLBACK")

    async def execute_raw(
        self,
        statement: Statement,
        parameters: Parameters = None,
        transaction: Optional[Transaction] = None,
    ) -> List[Dict[str, Any]]:
        """
        Run any statement and return its rows (empty when it returns none).

        WARNING: this bypasses every guarantee of the document API, including
        identifier validation. Use with caution.
        """
        self._require_pool()
        if transaction is not None:
            return await transaction.execute(statement, parameters)
        return await self._fetch(statement, parameters)


__all__ = [
    "AbstractRecordStore",
    "Criteria",
    "Document",
    "RecordStore",
    "Transaction",
    "matches_criteria",
    "values_equal",
]
