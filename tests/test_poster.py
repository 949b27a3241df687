"""Tests for the poster composer."""

import xml.etree.ElementTree as ET

import pytest

from seismo_mind.config import PosterConfig
from seismo_mind.models import Category, DataIntegrityError, Event
from seismo_mind.poster import (
    HEATMAP_GAP,
    NO_DATA,
    NO_TAGS,
    SLOGANS,
    compose_poster,
    heatmap_boxes,
    pick_slogan,
    section_boxes,
)

from conftest import NOW, UTC

DAY_MS = 24 * 60 * 60 * 1000


def make_event(
    event_id: str,
    intensity: int,
    timestamp: int = NOW,
    tags: tuple = (),
    category: Category = Category.NEGATIVE,
) -> Event:
    """Helper to create a test event."""
    return Event(id=event_id, intensity=intensity, timestamp=timestamp, tags=tuple(tags), category=category)


def mixed_events() -> list[Event]:
    events = [make_event(f"w{i}", level, NOW - i * 3_600_000, tags=("work",))
              for i, level in enumerate([1, 1, 2, 3, 6, 6])]
    events += [make_event(f"s{i}", level, NOW - i * 7_200_000, tags=("sleep", "跑步"), category=Category.POSITIVE)
               for i, level in enumerate([4, 5, 5, 6])]
    return events


class TestLayoutBands:
    """Tests for the fixed section geometry."""

    def test_bands_cover_canvas(self):
        bands = section_boxes(1080, 1920)
        assert bands["header"].y == 0
        assert bands["top"].y == pytest.approx(bands["header"].bottom)
        assert bands["heatmaps"].y == pytest.approx(bands["top"].bottom)
        assert bands["footer"].y == pytest.approx(bands["heatmaps"].bottom)
        assert bands["footer"].bottom == pytest.approx(1920)

    def test_heatmap_halves(self):
        section = section_boxes(1080, 1920)["heatmaps"]
        first, second = heatmap_boxes(section)
        assert first.height == pytest.approx((section.height - HEATMAP_GAP) / 2)
        assert second.height == pytest.approx(first.height)
        assert second.y == pytest.approx(first.bottom + HEATMAP_GAP)
        assert second.bottom == pytest.approx(section.bottom)


class TestComposePoster:
    """Tests for compose_poster."""

    def test_fixed_canvas_size(self):
        doc = compose_poster(mixed_events(), NOW, tz=UTC)
        assert (doc.width, doc.height) == (1080, 1920)
        assert 'width="1080" height="1920"' in doc.svg

    def test_deterministic(self):
        a = compose_poster(mixed_events(), NOW, tz=UTC, seed=4)
        b = compose_poster(list(reversed(mixed_events())), NOW, tz=UTC, seed=4)
        assert a.svg == b.svg

    def test_well_formed_xml(self):
        doc = compose_poster(mixed_events(), NOW, tz=UTC, slogan="<今天> & 明天")
        root = ET.fromstring(doc.svg)
        assert root.tag == "{http://www.w3.org/2000/svg}svg"
        assert "&lt;今天&gt; &amp; 明天" in doc.svg

    def test_categories_scoped_independently(self):
        doc = compose_poster(mixed_events(), NOW, tz=UTC)
        neg = doc.cohorts[Category.NEGATIVE].summary
        pos = doc.cohorts[Category.POSITIVE].summary
        assert neg.total == 6
        assert pos.total == 4
        assert neg.tag_matrix.tags == ["work"]
        assert pos.tag_matrix.tags == ["sleep", "跑步"]
        assert doc.heatmaps[Category.NEGATIVE].tag_count == 1
        assert doc.heatmaps[Category.POSITIVE].tag_count == 2

    def test_empty_log_says_no_data(self):
        doc = compose_poster([], NOW, tz=UTC)
        # two cards and two heatmaps
        assert doc.svg.count(NO_DATA) == 4
        assert doc.heatmaps[Category.NEGATIVE].columns == 0

    def test_one_empty_category(self):
        events = [e for e in mixed_events() if e.category is Category.NEGATIVE]
        doc = compose_poster(events, NOW, tz=UTC)
        assert doc.svg.count(NO_DATA) == 2
        assert doc.cohorts[Category.POSITIVE].empty
        assert not doc.cohorts[Category.NEGATIVE].empty

    def test_untagged_events_say_no_tags(self):
        doc = compose_poster([make_event("a", 2)], NOW, tz=UTC)
        assert NO_TAGS in doc.svg

    def test_events_outside_window_ignored(self):
        doc = compose_poster([make_event("old", 1, NOW - 20 * DAY_MS, tags=("x",))], NOW, tz=UTC, window_days=7)
        assert doc.cohorts[Category.NEGATIVE].summary.total == 0
        doc = compose_poster([make_event("old", 1, NOW - 20 * DAY_MS, tags=("x",))], NOW, tz=UTC, window_days=30)
        assert doc.cohorts[Category.NEGATIVE].summary.total == 1

    def test_many_tags_degrade(self):
        events = [make_event(f"e{i}", 1 + i % 6, NOW - i * 60_000, tags=(f"tag{i}",)) for i in range(500)]
        doc = compose_poster(events, NOW, tz=UTC)
        assert doc.degraded
        layout = doc.heatmaps[Category.NEGATIVE]
        assert layout.columns <= 4
        assert layout.cell_size < 12
        ET.fromstring(doc.svg)

    def test_many_tags_stay_on_canvas(self):
        events = [make_event(f"e{i}", 1 + i % 6, NOW - i * 60_000, tags=(f"tag{i}",)) for i in range(500)]
        doc = compose_poster(events, NOW, tz=UTC)
        root = ET.fromstring(doc.svg)
        rects = root.findall("{http://www.w3.org/2000/svg}rect")
        assert len(rects) > 500 * 6
        for rect in rects:
            x, y = float(rect.get("x")), float(rect.get("y"))
            w, h = float(rect.get("width")), float(rect.get("height"))
            assert x >= 0 and y >= 0
            assert x + w <= doc.width + 0.01  # two-decimal rounding
            assert y + h <= doc.height + 0.01

    def test_events_after_now_ignored_everywhere(self):
        later_today = make_event("later", 5, NOW + 3_600_000, tags=("焦虑",))
        doc = compose_poster([later_today], NOW, tz=UTC)
        assert doc.cohorts[Category.NEGATIVE].summary.total == 0
        assert doc.parliament.sample_size == 0

    def test_custom_config(self):
        config = PosterConfig(width=800, height=1400, min_cell_size=10, max_cell_size=20)
        doc = compose_poster(mixed_events(), NOW, tz=UTC, config=config)
        assert 'viewBox="0 0 800 1400"' in doc.svg
        assert doc.heatmaps[Category.NEGATIVE].cell_size <= 20

    def test_bad_intensity(self):
        with pytest.raises(DataIntegrityError):
            compose_poster([make_event("bad", 7)], NOW, tz=UTC)

    def test_parliament_strip(self):
        doc = compose_poster(mixed_events(), NOW, tz=UTC)
        assert sum(doc.parliament.seats.values()) == 100
        assert "自律党" in doc.svg

    def test_save(self, tmp_path):
        doc = compose_poster(mixed_events(), NOW, tz=UTC)
        out = doc.save(str(tmp_path / "poster.svg"))
        assert out.read_text(encoding="utf-8") == doc.svg


class TestSlogan:
    """Tests for seeded slogan selection."""

    def test_seeded(self):
        assert pick_slogan(3) == pick_slogan(3)
        assert pick_slogan(3) in SLOGANS

    def test_seed_reaches_poster(self):
        doc = compose_poster([], NOW, tz=UTC, seed=5)
        assert doc.slogan == pick_slogan(5)

    def test_config_seed_default(self):
        doc = compose_poster([], NOW, tz=UTC, config=PosterConfig(seed=2))
        assert doc.slogan == pick_slogan(2)
