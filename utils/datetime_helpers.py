# -*- coding: utf-8 -*-
"""Datetime helpers.

Every ``datetime`` stored in the database is naive UTC. These helpers keep
that convention in one place and render ISO strings for the API layer.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Current time as naive UTC, matching the storage convention."""

    return datetime.now(timezone.utc).replace(tzinfo=None)


def _ensure_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_naive_utc(dt: datetime) -> datetime:
    """Convert any ``datetime`` to the naive UTC form used for storage."""

    return _ensure_utc(dt).replace(tzinfo=None)


def to_epoch(dt: datetime) -> float:
    """Seconds since the epoch for a stored (naive UTC) or aware datetime."""

    return _ensure_utc(dt).timestamp()


def datetime_to_iso(dt: Optional[datetime]) -> Optional[str]:
    """Format a stored datetime as an ISO 8601 string with ``+00:00``.

    :param dt: value to format; ``None`` is passed through.
    """

    if dt is None:
        return None
    return _ensure_utc(dt).isoformat()
