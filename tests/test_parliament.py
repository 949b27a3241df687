"""Unit tests for the parliament model."""

import pytest

from seismo_mind.aggregate import tag_intensity_matrix
from seismo_mind.models import Event, TagIntensityMatrix
from seismo_mind.parliament import (
    PARTY_ORDER,
    category_mix,
    dopamine_index,
    parliament_report,
    party_scores,
    ruling_status,
)

from conftest import NOW, UTC

DAY_MS = 24 * 60 * 60 * 1000


def make_event(event_id: str, intensity: int, timestamp: int = NOW, tags: tuple = ()) -> Event:
    """Helper to create a test event."""
    return Event(id=event_id, intensity=intensity, timestamp=timestamp, tags=tuple(tags))


class TestPartyScores:
    """Tests for keyword and intensity scoring."""

    def test_base_score_only(self):
        assert party_scores([]) == {p: 1.0 for p in ("indul", "discipline", "anxiety", "stability", "crisis")}

    def test_keyword_and_level_bonus(self):
        scores = party_scores([make_event("a", 6, tags=("健身",))])
        assert scores["discipline"] == 2.0
        assert scores["stability"] == 2.5
        assert scores["anxiety"] == 1.0

    def test_severe_levels_feed_anxiety(self):
        scores = party_scores([make_event("a", 1), make_event("b", 3)])
        assert scores["anxiety"] == 5.0

    def test_keyword_match_is_case_insensitive_substring(self):
        scores = party_scores([make_event("a", 4, tags=("赶DDL中",))])
        assert scores["discipline"] == 2.0
        assert scores["crisis"] == 2.5


class TestIndicators:
    """Tests for ruling status and dopamine index."""

    @pytest.mark.parametrize("diff,expected", [
        (10, "稳健执政"),
        (40, "稳健执政"),
        (9, "弱势执政"),
        (-9, "弱势执政"),
        (-10, "在野占优"),
    ])
    def test_ruling_status(self, diff, expected):
        assert ruling_status(diff) == expected

    def test_dopamine_index(self):
        assert dopamine_index({"indul": 3.0, "discipline": 2.0}) == (1.5, "超发")
        assert dopamine_index({"indul": 1.0, "discipline": 2.0}) == (0.5, "紧缩")
        assert dopamine_index({"indul": 1.0, "discipline": 1.0}) == (1.0, "平衡")

    def test_dopamine_without_discipline(self):
        assert dopamine_index({"indul": 2.0, "discipline": 0.0}) == (2.0, "超发")


class TestParliamentReport:
    """Tests for parliament_report."""

    def test_empty_window_is_even(self):
        report = parliament_report([], NOW, UTC)
        assert report.sample_size == 0
        assert report.seats == {p: 20 for p in PARTY_ORDER}
        assert report.ruling == 60
        assert report.opposition == 40
        assert report.ruling_status == "稳健执政"

    def test_window_filters_events(self):
        events = [
            make_event("in", 1, NOW - DAY_MS, tags=("焦虑",)),
            make_event("old", 1, NOW - 30 * DAY_MS, tags=("焦虑",)),
            make_event("future", 1, NOW + 60_000, tags=("焦虑",)),
        ]
        report = parliament_report(events, NOW, UTC, window_days=7)
        assert report.sample_size == 1
        assert report.scores["anxiety"] == 4.0

    def test_seats_sum_to_hundred(self):
        events = [make_event(str(i), 1 + i % 6, NOW - i * 3_600_000, tags=("刷视频", "健身")[: i % 3])
                  for i in range(50)]
        report = parliament_report(events, NOW, UTC)
        assert sum(report.seats.values()) == 100
        assert report.ruling + report.opposition == 100
        assert report.diff == report.ruling - report.opposition
        assert list(report.seats) == list(PARTY_ORDER)

    def test_to_dict(self):
        d = parliament_report([], NOW, UTC).to_dict()
        assert d["seats"]["discipline"] == 20
        assert d["diff"] == 20
        assert d["allocation"]["total"] == 100


class TestCategoryMix:
    """Tests for category_mix."""

    def test_no_tags(self):
        assert category_mix(TagIntensityMatrix()) is None

    def test_top_five_with_floor(self):
        events = [make_event("big", 1, tags=("a",)) for _ in range(200)]
        events += [make_event(f"t{i}", 2, tags=(t,)) for i, t in enumerate("bcdefg")]
        mix = category_mix(tag_intensity_matrix(events))
        assert list(mix.seats) == ["a", "b", "c", "d", "e"]
        assert sum(mix.seats.values()) == 100
        assert all(v >= 5 for v in mix.seats.values())
        assert mix.floor == 5
