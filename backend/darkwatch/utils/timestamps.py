"""Timestamp parsing shared by the ingest path and the pydantic schemas."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

_COMMON_TIMESTAMP_FORMATS = [
    "%Y-%m-%d %H:%M:%S",
    "%Y/%m/%d %H:%M:%S",
    "%m/%d/%Y %H:%M:%S",
    "%d-%m-%Y %H:%M:%S",
]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(ts: datetime) -> datetime:
    """Attach UTC to naive datetimes; convert aware ones to UTC."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def parse_timestamp_flexible(ts: Any) -> datetime | None:
    """Parse a timestamp from various formats.

    Returns a UTC-aware datetime or None if parsing fails.
    Supports: datetime objects, ISO 8601 (with trailing Z), Unix epoch seconds,
    and a few common strftime formats.
    """
    if isinstance(ts, datetime):
        return ensure_utc(ts)

    if isinstance(ts, bool):
        return None

    if isinstance(ts, (int, float)) and ts > 1_000_000_000:
        try:
            return datetime.fromtimestamp(ts, tz=timezone.utc)
        except (OSError, ValueError, OverflowError):
            return None

    if isinstance(ts, str):
        ts_str = ts.strip()
        if not ts_str:
            return None
        try:
            return ensure_utc(datetime.fromisoformat(ts_str.replace("Z", "+00:00")))
        except ValueError:
            pass
        for fmt in _COMMON_TIMESTAMP_FORMATS:
            try:
                return datetime.strptime(ts_str, fmt).replace(tzinfo=timezone.utc)
            except ValueError:
                continue

    return None
