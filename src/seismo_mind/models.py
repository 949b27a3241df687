"""Core data models for Seismo-Mind."""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Optional


# Intensity levels run 1..LEVEL_COUNT; 1 is the most severe, LEVEL_COUNT the mildest.
LEVEL_COUNT = 6
LEVEL_RANGE = tuple(range(1, LEVEL_COUNT + 1))


class DataIntegrityError(ValueError):
    """Raised when input data violates a structural invariant.

    Either an event carries an intensity outside ``1..LEVEL_COUNT`` or a seat
    allocation received a negative (or non-finite) weight.
    """

    def __init__(
        self,
        message: str,
        event_id: Optional[str] = None,
        key: Optional[str] = None,
        value: Any = None,
    ):
        self.message = message
        self.event_id = event_id
        self.key = key
        self.value = value
        super().__init__(message)


class Category(str, Enum):
    """The two cohorts an event log is partitioned into."""

    NEGATIVE = "negative"
    POSITIVE = "positive"

    @classmethod
    def parse(cls, value: Optional[str]) -> "Category":
        """Parse a stored ``type`` value; missing values mean NEGATIVE."""
        if value is None or value == "":
            return cls.NEGATIVE
        if isinstance(value, Category):
            return value
        return cls(str(value).strip().lower())


CATEGORY_ORDER = (Category.NEGATIVE, Category.POSITIVE)


@dataclass(frozen=True)
class LevelInfo:
    """Display metadata for one intensity level."""

    level: int
    label: str
    alert_name: str
    core_definition: str
    color: str  # hex, used for bars and heatmap tints


LEVELS: dict[int, LevelInfo] = {
    1: LevelInfo(1, "L1", "核爆级", "生存威胁/彻底崩盘/不可逆毁灭", "#dc2626"),
    2: LevelInfo(2, "L2", "熔断级", "结构性永久损伤/核心信念碎裂", "#ea580c"),
    3: LevelInfo(3, "L3", "震荡级", "重大连锁危机/情绪地基松动", "#eab308"),
    4: LevelInfo(4, "L4", "干扰级", "效率崩坏/短期尖峰不适", "#3b82f6"),
    5: LevelInfo(5, "L5", "噪音级", "日常垃圾情绪/小事放大成烦", "#14b8a6"),
    6: LevelInfo(6, "L6", "蚊子级", "几乎无感/正常人波动", "#94a3b8"),
}


def level_weight(level: int) -> int:
    """Weight of a level: the most severe level contributes the most."""
    return (LEVEL_COUNT + 1) - level


@dataclass(frozen=True)
class Event:
    """A single journal entry ("seismic log")."""

    id: str
    intensity: int  # 1..LEVEL_COUNT, 1 = most severe
    timestamp: int  # Unix timestamp in milliseconds
    content: str = ""
    is_echo: bool = False  # aftershock of an earlier event
    tags: tuple[str, ...] = ()
    category: Category = Category.NEGATIVE

    def unique_tags(self) -> list[str]:
        """Tags with blanks dropped and duplicates removed, first occurrence wins."""
        return list(dict.fromkeys(t.strip() for t in self.tags if t and t.strip()))


@dataclass
class DayBucket:
    """One local calendar day in a rolling window."""

    label: str  # "M/D"
    start_ms: int
    end_ms: int  # exclusive
    count: int = 0
    weighted_intensity_sum: int = 0


@dataclass
class TagIntensityMatrix:
    """Tag x intensity co-occurrence counts."""

    tags: list[str] = field(default_factory=list)  # display order: total desc, first-seen on ties
    counts: dict[str, dict[int, int]] = field(default_factory=dict)
    totals: dict[str, int] = field(default_factory=dict)
    max_cell: int = 0

    def total_for_tag(self, tag: str) -> int:
        return self.totals.get(tag, 0)

    def __getitem__(self, tag: str) -> dict[int, int]:
        return self.counts[tag]

    def __len__(self) -> int:
        return len(self.tags)


@dataclass
class HourHistogram:
    """Event counts per local hour of day."""

    hours: tuple[int, ...] = (0,) * 24
    max_count: int = 0  # largest single bucket
    peak_hour: Optional[int] = None  # first hour holding max_count
    total: int = 0


@dataclass
class AggregateSummary:
    """All aggregates for one event collection and window."""

    level_counts: dict[int, int]
    day_buckets: list[DayBucket]
    tag_matrix: TagIntensityMatrix
    hour_histogram: HourHistogram
    total: int = 0
    echo_count: int = 0
    weighted_sum: int = 0
    mean_weight: float = 0.0
    window_days: int = 7
    window_count: int = 0  # events inside the day-bucket window
    daily_rate: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class SeatAllocation:
    """Integer seats per key, summing to the allocation total."""

    seats: dict[str, int]
    total: int = 100
    floor: int = 0
    floor_relaxed: bool = False

    def __getitem__(self, key: str) -> int:
        return self.seats[key]

    def to_dict(self) -> dict:
        return asdict(self)
