"""
Domain package for pgdocs.

Exports the configuration and lifecycle models shared by the stores.
"""

from pgdocs.domain.models import ConnectionState, StoreOptions

__all__ = [
    "ConnectionState",
    "StoreOptions",
]
