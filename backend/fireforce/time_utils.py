"""
UTC helpers for record timestamps, snapshot headers and scheduler keys.

Everything in memory is a naive datetime meaning UTC. Everything written
out (records, snapshots, local-store keys) is ISO-8601 with a trailing Z.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Read a stored or snapshot timestamp.

    Blank values give None. Offsets (including Z) are folded into UTC;
    values without one are taken as UTC already. Raises ValueError for
    anything that is not ISO-8601.
    """
    if value is None or not value.strip():
        return None
    text = value.strip()
    if text[-1] in "Zz":
        text = text[:-1] + "+00:00"
    return _as_utc(datetime.fromisoformat(text)).replace(tzinfo=None)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """Whole-second ISO-8601 in UTC, e.g. 2026-10-19T12:00:00Z."""
    if dt is None:
        return None
    stamp = _as_utc(dt).replace(microsecond=0, tzinfo=None)
    return stamp.isoformat() + "Z"


def epoch_millis(dt: datetime) -> int:
    """Milliseconds since the epoch; used for backup history ids and file names."""
    return int(_as_utc(dt).timestamp() * 1000)
