"""Timestamp parsing for backend payloads.

The backend emits either a standard date-time string or a locale-formatted
``"YYYY-MM-DD h:mm AM|PM"`` string. :func:`parse_timestamp` accepts both and
never raises: anything it cannot read becomes :data:`EPOCH` so sorting and
range filtering stay total. All returned values are naive local wall time.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

import pandas as pd

from .logging_setup import get_logger

logger = get_logger(__name__)

EPOCH = pd.Timestamp(0)
_MERIDIEMS = ("AM", "PM")


def _has_meridiem(raw: str) -> bool:
    tokens = raw.strip().split()
    return len(tokens) > 1 and tokens[-1].upper() in _MERIDIEMS


def _parse_meridiem(raw: str) -> pd.Timestamp:
    parts = raw.strip().split()
    if len(parts) != 3:
        raise ValueError(f"expected 'date time AM|PM', got {raw!r}")
    date_part, time_part, period = parts
    year, month, day = (int(piece) for piece in date_part.split("-"))
    clock = time_part.split(":")
    if len(clock) < 2:
        raise ValueError(f"missing minutes in {raw!r}")
    # Seconds, when present, are ignored.
    hours, minutes = int(clock[0]), int(clock[1])
    if not 1 <= hours <= 12:
        raise ValueError(f"hour out of 12-hour range in {raw!r}")

    period = period.upper()
    if period == "PM" and hours != 12:
        hours += 12
    if period == "AM" and hours == 12:
        hours = 0
    return pd.Timestamp(datetime(year, month, day, hours, minutes))


def _to_local(ts: pd.Timestamp) -> pd.Timestamp:
    if ts.tzinfo is None:
        return ts
    return pd.Timestamp(ts.to_pydatetime().astimezone().replace(tzinfo=None))


def _parse_generic(raw: Any) -> pd.Timestamp:
    if raw is None:
        raise TypeError("timestamp is missing")
    if isinstance(raw, bool):
        raise TypeError("boolean is not a timestamp")
    if isinstance(raw, (int, float)):
        # Numeric payloads are epoch milliseconds.
        ts = pd.Timestamp(raw, unit="ms", tz="UTC")
    elif isinstance(raw, (pd.Timestamp, datetime, date)):
        ts = pd.Timestamp(raw)
    elif isinstance(raw, str):
        ts = pd.Timestamp(raw.strip())
    else:
        raise TypeError(f"unsupported timestamp type {type(raw).__name__}")

    if pd.isna(ts):
        raise ValueError(f"unparseable timestamp {raw!r}")
    return _to_local(ts)


def try_parse_timestamp(raw: Any) -> pd.Timestamp | None:
    """Parse ``raw`` or return None when it is not a readable timestamp."""

    try:
        if isinstance(raw, str) and _has_meridiem(raw):
            return _parse_meridiem(raw)
        return _parse_generic(raw)
    except (TypeError, ValueError, OverflowError) as exc:
        logger.debug("Could not parse timestamp %r: %s", raw, exc)
        return None


def parse_timestamp(raw: Any) -> pd.Timestamp:
    """Parse a backend timestamp, substituting :data:`EPOCH` on failure."""

    parsed = try_parse_timestamp(raw)
    return EPOCH if parsed is None else parsed


def start_of_day(day: date | datetime | str) -> pd.Timestamp:
    """00:00:00.000 local on ``day``."""

    return pd.Timestamp(day).normalize()


def end_of_day(day: date | datetime | str) -> pd.Timestamp:
    """23:59:59.999 local on ``day``."""

    return pd.Timestamp(day).normalize() + pd.Timedelta(hours=23, minutes=59, seconds=59, milliseconds=999)


def format_datetime(raw: Any) -> str:
    """Render like ``Jan 5, 2024, 3:04 PM``; unreadable input gives ``Invalid Date``."""

    ts = try_parse_timestamp(raw)
    if ts is None:
        return "Invalid Date"
    hour = ts.hour % 12 or 12
    meridiem = "PM" if ts.hour >= 12 else "AM"
    return f"{ts.strftime('%b')} {ts.day}, {ts.year}, {hour}:{ts.minute:02d} {meridiem}"


def format_date(raw: Any) -> str:
    ts = try_parse_timestamp(raw)
    if ts is None:
        return "Invalid Date"
    return f"{ts.strftime('%b')} {ts.day}, {ts.year}"
