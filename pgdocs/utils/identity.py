"""
Record identity and timestamp helpers.
"""

from __future__ import annotations

import time
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any


def generate_id() -> str:
    """
    Millisecond time prefix plus a random 128-bit suffix.

    The prefix keeps ids roughly ordered by creation; the uuid4 suffix makes
    collisions practically impossible even for ids minted in the same
    millisecond.
    """
    return f"{int(time.time() * 1000)}_{uuid.uuid4().hex}"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(value: datetime) -> str:
    """ISO-8601 text for a timestamp, normalized to UTC when timezone-aware."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.isoformat()


def next_timestamp(previous: Any) -> datetime:
    """
    Current UTC time, bumped to stay strictly after `previous`.

    `previous` is the ISO text of the last `_updatedAt`; anything unparseable
    is ignored.
    """
    now = utc_now()
    if not isinstance(previous, str):
        return now
    try:
        last = datetime.fromisoformat(previous)
    except ValueError:
        return now
    if last.tzinfo is None:
        last = last.replace(tzinfo=timezone.utc)
    if now <= last:
        return last + timedelta(microseconds=1)
    return now


__all__ = ["generate_id", "utc_now", "to_iso", "next_timestamp"]
