"""Parliament metaphor - tag and intensity driven party scores mapped to 100 seats."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import tzinfo
from typing import Iterable, Optional

from .aggregate import events_in_range, validate_events
from .apportion import CATEGORY_MIX_FLOOR, TOTAL_SEATS, apportion
from .models import Event, SeatAllocation, TagIntensityMatrix
from .time_utils import window_range

PARTY_KEYWORDS: dict[str, tuple[str, ...]] = {
    "indul": ("纵欲", "娱乐", "视频", "刷", "游戏", "熬夜", "外卖", "酒", "性", "社交"),
    "discipline": ("自律", "健身", "跑步", "学习", "早睡", "复盘", "阅读", "写作", "冥想",
                   "规划", "科研", "代码", "任务", "ddl", "deadline"),
    "anxiety": ("焦虑", "组会", "父母", "年龄", "proposal", "催命", "崩", "恐惧", "危机"),
    "stability": ("平稳", "正常", "放松", "开心", "满足", "平和", "宁静"),
    "crisis": ("应对", "会议", "准备", "修复", "处理", "加班", "解决", "补救", "排查"),
}

PARTY_LABELS = {
    "indul": "纵欲党",
    "discipline": "自律党",
    "anxiety": "焦虑派",
    "stability": "稳定派",
    "crisis": "危机管理派",
}

PARTY_COLORS = {
    "discipline": "#10b981",
    "stability": "#0ea5e9",
    "crisis": "#6366f1",
    "anxiety": "#f43f5e",
    "indul": "#f59e0b",
}

# Display order: ruling coalition first, then opposition.
PARTY_ORDER = ("discipline", "stability", "crisis", "anxiety", "indul")
RULING_PARTIES = ("discipline", "stability", "crisis")
OPPOSITION_PARTIES = ("indul", "anxiety")

# Intensity-driven score bonuses.
_LEVEL_BONUS = {
    1: ("anxiety", 2.0),
    2: ("anxiety", 2.0),
    3: ("anxiety", 2.0),
    4: ("crisis", 1.5),
    5: ("indul", 1.0),
    6: ("stability", 1.5),
}
BASE_SCORE = 1.0


@dataclass
class ParliamentReport:
    """Seats and derived governance indicators for a window of events."""

    sample_size: int
    scores: dict[str, float]
    allocation: SeatAllocation
    ruling: int
    opposition: int
    ruling_status: str
    dopamine_ratio: float
    dopamine_status: str

    @property
    def seats(self) -> dict[str, int]:
        return self.allocation.seats

    @property
    def diff(self) -> int:
        return self.ruling - self.opposition

    def to_dict(self) -> dict:
        d = asdict(self)
        d["seats"] = dict(self.seats)
        d["diff"] = self.diff
        return d


def party_scores(events: Iterable[Event]) -> dict[str, float]:
    """Score each party from tag keyword hits and intensity bonuses.

    A tag matching one of a party's keywords (substring match) scores one
    point for that party; a tag can score for several parties. Every party
    starts from BASE_SCORE so no party is ever empty.
    """
    score = {k: 0.0 for k in PARTY_KEYWORDS}
    for event in validate_events(events):
        for tag in event.unique_tags():
            lowered = tag.lower()
            for party, words in PARTY_KEYWORDS.items():
                if any(w in lowered for w in words):
                    score[party] += 1
        party, bonus = _LEVEL_BONUS[event.intensity]
        score[party] += bonus
    return {k: v + BASE_SCORE for k, v in score.items()}


def ruling_status(diff: int) -> str:
    if diff >= 10:
        return "稳健执政"
    if diff <= -10:
        return "在野占优"
    return "弱势执政"


def dopamine_index(scores: dict[str, float]) -> tuple[float, str]:
    """Indulgence / discipline ratio and its label."""
    indul = scores.get("indul", 0.0)
    disc = scores.get("discipline", 0.0)
    ratio = indul if disc == 0 else indul / disc
    if ratio >= 1.4:
        status = "超发"
    elif ratio <= 0.7:
        status = "紧缩"
    else:
        status = "平衡"
    return round(ratio, 2), status


def parliament_report(
    events: Iterable[Event],
    now: int,
    tz: Optional[tzinfo] = None,
    window_days: int = 7,
) -> ParliamentReport:
    """Build the parliament for the trailing ``window_days`` local days.

    Events later than ``now`` are ignored.
    """
    recent = events_in_range(validate_events(events), *window_range(now, window_days, tz))
    scores = party_scores(recent)
    ordered = {k: scores[k] for k in PARTY_ORDER}
    allocation = apportion(ordered, total=TOTAL_SEATS)
    ruling = sum(allocation.seats[k] for k in RULING_PARTIES)
    opposition = sum(allocation.seats[k] for k in OPPOSITION_PARTIES)
    ratio, dopamine = dopamine_index(scores)
    return ParliamentReport(
        sample_size=len(recent),
        scores=ordered,
        allocation=allocation,
        ruling=ruling,
        opposition=opposition,
        ruling_status=ruling_status(ruling - opposition),
        dopamine_ratio=ratio,
        dopamine_status=dopamine,
    )


def category_mix(
    matrix: TagIntensityMatrix,
    top: int = 5,
    floor: int = CATEGORY_MIX_FLOOR,
) -> Optional[SeatAllocation]:
    """Seat share of the ``top`` most frequent tags, each with at least ``floor`` seats.

    Returns None when there are no tags.
    """
    tags = matrix.tags[:top]
    if not tags:
        return None
    return apportion({t: matrix.total_for_tag(t) for t in tags}, total=TOTAL_SEATS, floor=floor)
