"""
Utilities package for pgdocs.

Exports shared helpers for logging and record identity. Keep this package
lightweight and free of storage logic.
"""

from pgdocs.utils.identity import generate_id, next_timestamp, to_iso, utc_now
from pgdocs.utils.logging import configure_logging, get_logger

__all__ = [
    "configure_logging",
    "get_logger",
    "generate_id",
    "next_timestamp",
    "to_iso",
    "utc_now",
]
