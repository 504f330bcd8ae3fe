from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Optional


def _system_clock() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


_clock: Callable[[], datetime] = _system_clock


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return _clock()


def set_clock(clock: Optional[Callable[[], datetime]]) -> None:
    """
    Replace the clock used by utcnow().

    Pass None to restore the system clock. Tests pin time with this so
    due dates and invoice numbers are predictable.
    """
    global _clock
    _clock = clock or _system_clock


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")


def date_stamp(dt: datetime) -> str:
    """YYYY-MM-DD portion used in invoice numbers."""
    return dt.strftime("%Y-%m-%d")
