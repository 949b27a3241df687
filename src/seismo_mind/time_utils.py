"""Local-time helpers for window resolution and day/hour bucketing.

Every function takes an optional ``tz``. ``None`` means the observer's local
time zone (what ``datetime.fromtimestamp`` uses); pass a ``tzinfo`` to pin
bucketing to a specific zone.
"""

from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Optional, Union

# Trailing windows offered by the app's statistics views.
WINDOW_CHOICES = (3, 7, 30, 365)

_WINDOW_KEYWORDS = {
    "week": 7,
    "month": 30,
    "year": 365,
    "周": 7,
    "月": 30,
    "年": 365,
}


def to_local(ts_ms: int, tz: Optional[tzinfo] = None) -> datetime:
    """Convert epoch milliseconds to a local datetime."""
    return datetime.fromtimestamp(ts_ms / 1000, tz)


def to_ms(dt: datetime) -> int:
    """Convert a datetime (naive = local) to epoch milliseconds."""
    return round(dt.timestamp() * 1000)


def local_hour(ts_ms: int, tz: Optional[tzinfo] = None) -> int:
    return to_local(ts_ms, tz).hour


def day_start_ms(day: date, tz: Optional[tzinfo] = None) -> int:
    """Epoch milliseconds of local midnight at the start of ``day``."""
    return to_ms(datetime.combine(day, time.min, tzinfo=tz))


def day_label(day: date) -> str:
    """Short "M/D" label, e.g. "3/7"."""
    return f"{day.month}/{day.day}"


def window_days_ending(
    now_ms: int,
    window_days: int,
    tz: Optional[tzinfo] = None,
) -> list[date]:
    """Return the ``window_days`` local dates ending with ``now``'s local day.

    Args:
        now_ms: Reference instant in epoch milliseconds.
        window_days: Number of days, at least 1.
        tz: Time zone for day alignment, ``None`` for local time.

    Returns:
        Dates in ascending order; the last one is today.

    Raises:
        ValueError: If ``window_days`` is less than 1.
    """
    if window_days < 1:
        raise ValueError(f"window_days must be >= 1, got {window_days}")
    today = to_local(now_ms, tz).date()
    return [today - timedelta(days=offset) for offset in range(window_days - 1, -1, -1)]


def day_boundaries(
    now_ms: int,
    window_days: int,
    tz: Optional[tzinfo] = None,
) -> list[int]:
    """Local-midnight boundaries for a trailing window.

    Returns ``window_days + 1`` ascending timestamps: the start of every day in
    the window followed by the start of tomorrow. Day ``i`` covers
    ``[bounds[i], bounds[i + 1])``, so DST days are 23 or 25 hours long.
    """
    days = window_days_ending(now_ms, window_days, tz)
    bounds = [day_start_ms(d, tz) for d in days]
    bounds.append(day_start_ms(days[-1] + timedelta(days=1), tz))
    return bounds


def window_range(
    now_ms: int,
    window_days: int,
    tz: Optional[tzinfo] = None,
) -> tuple[int, int]:
    """Half-open ``[start, end)`` range of events a trailing window covers.

    Starts at the first local midnight of the window and ends just after
    ``now``, so events later than ``now`` are never counted.
    """
    return day_boundaries(now_ms, window_days, tz)[0], now_ms + 1


def resolve_window(hint: Union[int, str, None], default: int = 7) -> int:
    """Resolve a window hint to a number of days.

    Accepts integers, digit strings ("30", "30d", "30 days", "最近30天") and
    keywords ("week", "month", "year", "周", "月", "年").

    Raises:
        ValueError: If the hint cannot be parsed or is not positive.
    """
    if hint is None or hint == "":
        return default
    if isinstance(hint, int):
        days = hint
    else:
        text = str(hint).strip().lower()
        m = re.search(r"(\d+)\s*(?:d|days?|天)?", text)
        if m:
            days = int(m.group(1))
        else:
            days = next((v for k, v in _WINDOW_KEYWORDS.items() if k in text), 0)
            if not days:
                raise ValueError(f"Unrecognised window: {hint!r}")
    if days < 1:
        raise ValueError(f"window must be >= 1 day, got {days}")
    return days
