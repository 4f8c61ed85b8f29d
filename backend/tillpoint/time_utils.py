from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string and normalize to UTC-naive datetime.

    - None / "" -> None
    - "YYYY-MM-DDTHH:MM" (naive) is interpreted as UTC
    - "...Z" or "...+/-HH:MM" is converted to UTC and tzinfo is stripped
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    # Accept trailing Z
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)

    # Normalize to UTC-naive
    if dt.tzinfo is None:
        # interpret naive as UTC
        return dt.replace(tzinfo=None)

    return dt.astimezone(timezone.utc).replace(tzinfo=None)


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


def from_epoch_ms(value: int) -> datetime:
    """Epoch milliseconds -> UTC-naive datetime."""
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc).replace(tzinfo=None)


def to_epoch_ms(dt: Optional[datetime]) -> Optional[int]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)


def _from_epoch_ms_checked(value) -> datetime:
    try:
        return from_epoch_ms(int(value))
    except (OverflowError, OSError):
        raise ValueError("timestamp out of range")


def coerce_timestamp(value) -> Optional[datetime]:
    """
    Accept the timestamp shapes clients send and normalize to UTC-naive.

    - None -> None
    - int/float -> epoch milliseconds
    - str of digits -> epoch milliseconds
    - other str -> ISO-8601
    - datetime -> aware converted to UTC, naive kept as-is
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError("invalid timestamp")
    if isinstance(value, (int, float)):
        return _from_epoch_ms_checked(value)
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    if isinstance(value, str):
        s = value.strip()
        if s.isascii() and s.isdigit():
            return _from_epoch_ms_checked(int(s))
        return parse_iso_datetime(s)
    raise ValueError("invalid timestamp")


def parse_day(value: Optional[str]) -> Optional[date]:
    """'YYYY-MM-DD' -> date; None / "" -> None."""
    if value is None or not value.strip():
        return None
    return date.fromisoformat(value.strip())


def to_local(dt: datetime, tz_name: str) -> datetime:
    """UTC-naive datetime -> aware datetime in the given zone."""
    return dt.replace(tzinfo=timezone.utc).astimezone(ZoneInfo(tz_name))


def local_day_bounds(day: date, tz_name: str) -> tuple[datetime, datetime]:
    """
    UTC-naive [start, end) covering one local calendar day.

    Days containing a DST transition are 23 or 25 hours long.
    """
    zone = ZoneInfo(tz_name)
    start = datetime(day.year, day.month, day.day, tzinfo=zone)
    end = datetime.combine(day + timedelta(days=1), datetime.min.time(), tzinfo=zone)
    return (
        start.astimezone(timezone.utc).replace(tzinfo=None),
        end.astimezone(timezone.utc).replace(tzinfo=None),
    )
