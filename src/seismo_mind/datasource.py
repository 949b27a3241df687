"""Data source layer for Seismo-Mind."""

import json
import logging
import random
import time
from pathlib import Path
from typing import Any, Optional, Protocol

from .models import Category, Event

logger = logging.getLogger(__name__)

# Timestamps below this are taken to be seconds rather than milliseconds.
_SECONDS_CUTOFF = 10_000_000_000

DAY_MS = 24 * 60 * 60 * 1000


class DataSourceError(Exception):
    """Exception raised when data source operations fail."""

    def __init__(self, message: str, cause: Optional[Exception] = None):
        self.message = message
        self.cause = cause
        super().__init__(message)


class EventDataSource(Protocol):
    """Protocol for event log sources."""

    def list_events(self) -> list[Event]:
        """Return every stored event.

        Returns:
            List of Event objects, sorted by timestamp ascending.
        """
        ...


def _parse_tags(raw: Any, row_id: str) -> tuple[str, ...]:
    if raw is None or raw == "":
        return ()
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise DataSourceError(f"Row {row_id}: tags is not valid JSON", cause=e)
    if not isinstance(raw, list):
        raise DataSourceError(f"Row {row_id}: tags must be a list, got {type(raw).__name__}")
    return tuple(str(t) for t in raw)


def _parse_timestamp(raw: Any, row_id: str) -> int:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise DataSourceError(f"Row {row_id}: timestamp must be a number, got {raw!r}")
    ts = int(raw)
    if ts < _SECONDS_CUTOFF:
        ts *= 1000
    return ts


def event_from_row(row: dict) -> Event:
    """Build an Event from one exported row.

    Intensity is passed through as stored; range checks happen in the
    aggregator so the offending event id can be reported there.

    Raises:
        DataSourceError: If a required field is missing or malformed.
    """
    if not isinstance(row, dict):
        raise DataSourceError(f"Expected an object per row, got {type(row).__name__}")
    if "id" not in row or "timestamp" not in row or "intensity" not in row:
        raise DataSourceError(f"Row missing id, timestamp or intensity: {row!r}")

    row_id = str(row["id"])
    try:
        category = Category.parse(row.get("type"))
    except ValueError as e:
        raise DataSourceError(f"Row {row_id}: unknown type {row.get('type')!r}", cause=e)

    raw_tags = row["tags"] if "tags" in row else row.get("tag")
    return Event(
        id=row_id,
        intensity=row["intensity"],
        timestamp=_parse_timestamp(row["timestamp"], row_id),
        content=str(row.get("content") or ""),
        is_echo=bool(row.get("isAftershock", False)),
        tags=_parse_tags(raw_tags, row_id),
        category=category,
    )


class JsonFileDataSource:
    """Data source that reads an exported event log JSON file."""

    def __init__(self, path: str):
        """Initialize with the path to an export file.

        The file holds either a JSON array of rows or an object with a
        ``logs`` array.

        Args:
            path: Path to the JSON file.

        Raises:
            DataSourceError: If the file cannot be read or is not valid JSON.
        """
        self._events: list[Event] = []

        try:
            path_obj = Path(path)
            if not path_obj.exists():
                raise DataSourceError(f"Event file not found: {path}")

            with open(path_obj, "r", encoding="utf-8") as f:
                data = json.load(f)

            rows = data.get("logs") if isinstance(data, dict) else data
            if not isinstance(rows, list):
                raise DataSourceError(f"Event file must hold a list of rows: {path}")

            self._events = sorted((event_from_row(r) for r in rows), key=lambda e: e.timestamp)

        except json.JSONDecodeError as e:
            raise DataSourceError(f"Invalid JSON in event file: {path}", cause=e)
        except Exception as e:
            if isinstance(e, DataSourceError):
                raise
            raise DataSourceError(f"Failed to load event file: {path}", cause=e)

        logger.debug("Loaded %d events from %s", len(self._events), path)

    def list_events(self) -> list[Event]:
        return list(self._events)


class MockDataSource:
    """Reproducible demo log: the same seed and ``now`` give the same events."""

    NEGATIVE_TAGS = ("组会", "焦虑", "加班", "父母", "ddl", "失眠", "刷视频", "外卖", "排查")
    POSITIVE_TAGS = ("跑步", "阅读", "早睡", "开心", "冥想", "写作", "放松")
    NEGATIVE_NOTES = ("又被催进度", "睡前刷手机停不下来", "线上故障排查到凌晨", "被问什么时候结婚")
    POSITIVE_NOTES = ("晨跑五公里", "读完一本书", "和朋友吃了顿好的", "今天很平静")

    def __init__(self, seed: int = 0, now: Optional[int] = None, count: int = 60, days: int = 14):
        self.seed = seed
        self.now = int(time.time() * 1000) if now is None else now
        self.count = count
        self.days = days
        self._events = self._build_events()

    def _build_events(self) -> list[Event]:
        rng = random.Random(self.seed)
        events = []
        for i in range(self.count):
            positive = rng.random() < 0.35
            if positive:
                category = Category.POSITIVE
                pool, notes = self.POSITIVE_TAGS, self.POSITIVE_NOTES
                intensity = rng.choice((3, 4, 5, 5, 6, 6))
            else:
                category = Category.NEGATIVE
                pool, notes = self.NEGATIVE_TAGS, self.NEGATIVE_NOTES
                intensity = rng.choice((1, 2, 3, 3, 4, 4, 5, 5, 6))
            tags = tuple(rng.sample(pool, rng.randint(0, 3)))
            timestamp = self.now - rng.randrange(self.days * DAY_MS)
            events.append(Event(
                id=f"mock_{i:03d}",
                intensity=intensity,
                timestamp=timestamp,
                content=rng.choice(notes),
                is_echo=rng.random() < 0.15,
                tags=tags,
                category=category,
            ))
        events.sort(key=lambda e: e.timestamp)
        return events

    def list_events(self) -> list[Event]:
        return list(self._events)


def get_data_source(
    source: str = "mock",
    path: Optional[str] = None,
    seed: int = 0,
    now: Optional[int] = None,
) -> EventDataSource:
    """Get a data source by name.

    Args:
        source: Data source name ("mock" or "file").
        path: Path to the JSON export (used when source="file").
        seed: Generator seed (used when source="mock").
        now: Reference instant for generated events (used when source="mock").

    Returns:
        An EventDataSource instance.

    Raises:
        ValueError: If source is unknown or required arguments are missing.
    """
    if source == "mock":
        return MockDataSource(seed=seed, now=now)
    elif source == "file":
        if not path:
            raise ValueError("path is required when source='file'")
        return JsonFileDataSource(path)
    else:
        raise ValueError(f"Unknown data source: {source}")
