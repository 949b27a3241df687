"""Aggregator - level histograms, rolling day buckets, tag matrices, hour histograms."""

from __future__ import annotations

import bisect
from datetime import tzinfo
from typing import Iterable, Optional

from .models import (
    LEVEL_COUNT,
    LEVEL_RANGE,
    AggregateSummary,
    Category,
    DataIntegrityError,
    DayBucket,
    Event,
    HourHistogram,
    TagIntensityMatrix,
    level_weight,
)
from .time_utils import day_boundaries, day_label, local_hour, window_days_ending


def validate_events(events: Iterable[Event]) -> list[Event]:
    """Check every event's intensity is an integer in ``1..LEVEL_COUNT``.

    Args:
        events: Events to check.

    Returns:
        The events as a list, unchanged.

    Raises:
        DataIntegrityError: On the first out-of-range event, naming its id.
    """
    checked = list(events)
    for event in checked:
        level = event.intensity
        if isinstance(level, bool) or not isinstance(level, int) or level not in LEVEL_RANGE:
            raise DataIntegrityError(
                f"Event {event.id!r} has intensity {level!r}, expected 1..{LEVEL_COUNT}",
                event_id=event.id,
                value=level,
            )
    return checked


def filter_by_category(events: Iterable[Event], category: Category) -> list[Event]:
    return [e for e in events if e.category == category]


def events_in_range(events: Iterable[Event], start_ms: int, end_ms: int) -> list[Event]:
    """Events with ``start_ms <= timestamp < end_ms``."""
    return [e for e in events if start_ms <= e.timestamp < end_ms]


def histogram_by_level(events: Iterable[Event]) -> dict[int, int]:
    """Count events per intensity level.

    Every level is present in the result, zero-count levels included.

    Raises:
        DataIntegrityError: If an event's intensity is out of range.
    """
    counts = {level: 0 for level in LEVEL_RANGE}
    for event in validate_events(events):
        counts[event.intensity] += 1
    return counts


def weighted_intensity_sum(events: Iterable[Event]) -> int:
    """Sum of ``(LEVEL_COUNT + 1) - level`` over events."""
    return sum(level_weight(e.intensity) for e in validate_events(events))


def rolling_day_buckets(
    events: Iterable[Event],
    window_days: int,
    now: int,
    tz: Optional[tzinfo] = None,
) -> list[DayBucket]:
    """Bucket events into the trailing ``window_days`` local days ending today.

    Events are sorted once and each bucket's slice is located with a binary
    search over the sorted timestamps. An event exactly at midnight belongs
    to the day starting at that midnight. Events outside the window are not
    counted.

    Args:
        events: Events to bucket.
        window_days: Number of days (3, 7, 30 and 365 in the app).
        now: Reference instant (epoch ms); its local day is the last bucket.
        tz: Time zone for day alignment, ``None`` for local time.

    Returns:
        ``window_days`` buckets in ascending date order.

    Raises:
        DataIntegrityError: If an event's intensity is out of range.
        ValueError: If ``window_days`` is less than 1.
    """
    ordered = sorted(validate_events(events), key=lambda e: e.timestamp)
    stamps = [e.timestamp for e in ordered]
    days = window_days_ending(now, window_days, tz)
    bounds = day_boundaries(now, window_days, tz)

    buckets = []
    lo = bisect.bisect_left(stamps, bounds[0])
    for i, day in enumerate(days):
        hi = bisect.bisect_left(stamps, bounds[i + 1], lo)
        in_day = ordered[lo:hi]
        buckets.append(DayBucket(
            label=day_label(day),
            start_ms=bounds[i],
            end_ms=bounds[i + 1],
            count=len(in_day),
            weighted_intensity_sum=sum(level_weight(e.intensity) for e in in_day),
        ))
        lo = hi
    return buckets


def tag_intensity_matrix(events: Iterable[Event]) -> TagIntensityMatrix:
    """Count how often each tag co-occurs with each intensity level.

    Duplicate tags on one event count once. Tags are ordered by total count
    descending; tags with equal totals keep the order in which they were
    first seen (Python's sort is stable).

    Raises:
        DataIntegrityError: If an event's intensity is out of range.
    """
    counts: dict[str, dict[int, int]] = {}
    for event in validate_events(events):
        for tag in event.unique_tags():
            row = counts.get(tag)
            if row is None:
                row = counts[tag] = {level: 0 for level in LEVEL_RANGE}
            row[event.intensity] += 1

    totals = {tag: sum(row.values()) for tag, row in counts.items()}
    ordered = sorted(counts, key=lambda t: totals[t], reverse=True)
    max_cell = max((c for row in counts.values() for c in row.values()), default=0)
    return TagIntensityMatrix(tags=ordered, counts=counts, totals=totals, max_cell=max_cell)


def hour_histogram(events: Iterable[Event], tz: Optional[tzinfo] = None) -> HourHistogram:
    """Count events per local hour of day (0..23)."""
    hours = [0] * 24
    checked = validate_events(events)
    for event in checked:
        hours[local_hour(event.timestamp, tz)] += 1
    max_count = max(hours)
    return HourHistogram(
        hours=tuple(hours),
        max_count=max_count,
        peak_hour=hours.index(max_count) if max_count else None,
        total=len(checked),
    )


def summarize(
    events: Iterable[Event],
    window_days: int,
    now: int,
    tz: Optional[tzinfo] = None,
) -> AggregateSummary:
    """Compute every aggregate for one event collection.

    Level, tag and hour aggregates cover all given events; only the day
    buckets (and ``daily_rate``) are restricted to the trailing window.

    Raises:
        DataIntegrityError: If an event's intensity is out of range.
    """
    checked = validate_events(events)
    buckets = rolling_day_buckets(checked, window_days, now, tz)
    window_count = sum(b.count for b in buckets)
    total = len(checked)
    weighted = weighted_intensity_sum(checked)
    return AggregateSummary(
        level_counts=histogram_by_level(checked),
        day_buckets=buckets,
        tag_matrix=tag_intensity_matrix(checked),
        hour_histogram=hour_histogram(checked, tz),
        total=total,
        echo_count=sum(1 for e in checked if e.is_echo),
        weighted_sum=weighted,
        mean_weight=weighted / total if total else 0.0,
        window_days=window_days,
        window_count=window_count,
        daily_rate=window_count / window_days,
    )
