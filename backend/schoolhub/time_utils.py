"""
Timestamps for audit columns.

Every created_on / last_modified_on / deleted_on value is stored as a naive
UTC datetime. API payloads carry ISO-8601 strings with a trailing 'Z'.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Naive UTC 'now' used for every audit stamp."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _as_naive_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse client input into a naive UTC datetime.

    Blank input gives None. Offsets (including 'Z') are converted to UTC;
    values without an offset are taken as UTC already.
    Raises ValueError for anything datetime.fromisoformat rejects.
    """
    text = (value or "").strip()
    if not text:
        return None
    if text.endswith(("Z", "z")):
        text = f"{text[:-1]}+00:00"
    return _as_naive_utc(datetime.fromisoformat(text))


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """Serialize to second precision with a trailing 'Z'; None passes through."""
    if dt is None:
        return None
    stamp = _as_naive_utc(dt).replace(microsecond=0)
    return f"{stamp.isoformat()}Z"
