from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string with microseconds.

    All stored timestamps use this format so they sort lexicographically.
    """
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def utc_iso_seconds_ago(seconds: int, now: Optional[str] = None) -> str:
    base = datetime.fromisoformat(now) if now else datetime.now(timezone.utc)
    return (base - timedelta(seconds=seconds)).isoformat(timespec="microseconds")
