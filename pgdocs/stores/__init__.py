"""
Stores package for pgdocs.

Re-exports the capability interface and both storage layouts so downstream
code can import from `pgdocs.stores` directly.
"""

from pgdocs.stores.abstract import (
    AbstractRecordStore,
    RecordStore,
    Transaction,
    matches_criteria,
)
from pgdocs.stores.document import DocumentStore
from pgdocs.stores.hybrid import HybridStore

__all__ = [
    # Abstracts
    "AbstractRecordStore",
    "RecordStore",
    "Transaction",
    "matches_criteria",
    # Concrete stores
    "DocumentStore",
    "HybridStore",
]
