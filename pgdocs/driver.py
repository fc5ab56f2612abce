"""
Entry points for building record stores.

Usage:
    from pgdocs.driver import open_store

    async with open_store(table_name="people", schema={"age": "number:integer"}) as store:
        person = await store.insert({"age": 30, "nickname": "Al"})
        await store.find({"age": 30})

The storage layout is chosen once, at construction: a schema selects the
hybrid layout, no schema the document layout.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Dict, List, Optional

from pgdocs.config import get_settings
from pgdocs.domain.models import StoreOptions
from pgdocs.schema.mapper import SchemaLike
from pgdocs.stores.abstract import AbstractRecordStore
from pgdocs.stores.document import DocumentStore
from pgdocs.stores.hybrid import HybridStore
from pgdocs.utils.logging import get_logger

log = get_logger(__name__)


def _store_factories() -> Dict[str, Callable[..., AbstractRecordStore]]:
    """Registry of available storage layouts."""
    return {
        "document": lambda options, schema, **kwargs: DocumentStore(options, **kwargs),
        "hybrid": lambda options, schema, **kwargs: HybridStore(options, schema, **kwargs),
    }


def available_modes() -> List[str]:
    """List available storage layout names."""
    return sorted(_store_factories().keys())


def create_store(
    options: Optional[StoreOptions] = None,
    schema: Optional[SchemaLike] = None,
    id_factory: Optional[Callable[[], str]] = None,
    **overrides: Any,
) -> AbstractRecordStore:
    """
    Build a disconnected record store.

    Parameters
    ----------
    options : StoreOptions | None
        Connection and table configuration. When omitted, options are read
        from the environment via `get_settings()`, with `overrides` applied.
    schema : mapping | pydantic model class | None
        Field-name to type-tag mapping. Any schema, even an empty one,
        selects the hybrid layout.
    id_factory : callable | None
        Replacement record id generator.
    **overrides
        `StoreOptions` fields, e.g. ``table_name="people"``.
    """
    if options is None:
        options = StoreOptions.from_settings(get_settings(), **overrides)
    elif overrides:
        options = StoreOptions(**{**options.model_dump(), **overrides})

    mode = "document" if schema is None else "hybrid"
    kwargs: Dict[str, Any] = {}
    if id_factory is not None:
        kwargs["id_factory"] = id_factory
    store = _store_factories()[mode](options, schema, **kwargs)
    log.debug("Store created", extra={"table": options.table_name, "mode": mode})
    return store


@asynccontextmanager
async def open_store(
    options: Optional[StoreOptions] = None,
    schema: Optional[SchemaLike] = None,
    **overrides: Any,
) -> AsyncIterator[AbstractRecordStore]:
    """Create a store, connect it, and disconnect on exit."""
    store = create_store(options, schema, **overrides)
    await store.connect()
    try:
        yield store
    finally:
        await store.disconnect()


__all__ = [
    "available_modes",
    "create_store",
    "open_store",
]
