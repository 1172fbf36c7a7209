"""Timestamp conversion for values read back from the document store."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any


def _to_datetime(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value

    for method in ("to_datetime", "ToDatetime"):
        convert = getattr(value, method, None)
        if callable(convert):
            converted = convert()
            return converted if isinstance(converted, datetime) else None

    # Exported Firestore timestamps: {"_seconds": ..., "_nanoseconds": ...}
    if isinstance(value, Mapping):
        seconds = value.get("_seconds", value.get("seconds"))
        nanos = value.get("_nanoseconds", value.get("nanos", 0)) or 0
        if isinstance(seconds, (int, float)) and not isinstance(seconds, bool):
            return datetime.fromtimestamp(seconds + nanos / 1e9, tz=timezone.utc)
        return None

    if isinstance(value, str) and value.strip():
        return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))

    return None


def to_iso_timestamp(value: Any) -> str | None:
    """ISO-8601 (UTC, milliseconds, ``Z``) for timestamp-like values, else ``None``."""
    try:
        converted = _to_datetime(value)
    except (ValueError, TypeError, OverflowError, OSError):
        return None
    if converted is None:
        return None
    if converted.tzinfo is None:
        converted = converted.replace(tzinfo=timezone.utc)
    return converted.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def utc_now_iso() -> str:
    return to_iso_timestamp(datetime.now(timezone.utc)) or ""


def parse_iso_timestamp(value: str | None) -> float | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.timestamp()
