"""
Date/time helpers — framework-agnostic.

MongoDB stores datetimes as UTC without tzinfo; documents written by older
clients may come back naive even though the service itself always writes
aware values. Everything here normalises to aware UTC before comparing.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    """Return the current instant as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Return *value* as an aware UTC datetime.

    Naive datetimes (no ``tzinfo``) are assumed to be UTC. ``None`` passes
    through unchanged.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def expires_in(seconds: int, now: Optional[datetime] = None) -> datetime:
    """Return the instant *seconds* after *now* (default: the current time)."""
    return (now or utcnow()) + timedelta(seconds=seconds)


def is_expired(expires_at: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """Return True when *expires_at* is missing or not after *now*."""
    expires_at = ensure_utc(expires_at)
    if expires_at is None:
        return True
    return (now or utcnow()) >= expires_at
