"""Poster composer - one fixed-size SVG infographic for both event categories.

Layout, top to bottom, as fractions of the canvas height:

    header    HEADER_FRACTION   title, window, slogan, parliament strip
    top       TOP_FRACTION      one card per category (ring, level bars, numbers)
    heatmaps  HEATMAP_FRACTION  one tag x level heatmap per category, stacked
    footer    the remainder

Every coordinate is computed up front from the aggregates; nothing is
measured at render time. Text widths follow the fixed-width assumption in
``svg.text_width``, so very wide fonts may still overflow a label strip.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from datetime import tzinfo
from pathlib import Path
from typing import Iterable, Optional

from .aggregate import events_in_range, filter_by_category, summarize, validate_events
from .circadian import hour_angles, polar_to_cartesian, ring_segments
from .config import PosterConfig
from .heatmap import Box, HeatmapLayout, layout_heatmap
from .models import (
    CATEGORY_ORDER,
    LEVEL_RANGE,
    LEVELS,
    AggregateSummary,
    Category,
    Event,
)
from .parliament import (
    PARTY_COLORS,
    PARTY_LABELS,
    PARTY_ORDER,
    ParliamentReport,
    category_mix,
    parliament_report,
)
from .svg import SVGCanvas, Style, fit_text
from .time_utils import to_local, window_range

logger = logging.getLogger(__name__)

HEADER_FRACTION = 0.14
TOP_FRACTION = 0.38
HEATMAP_FRACTION = 0.44
MARGIN = 48.0
CARD_GAP = 24.0
HEATMAP_GAP = 24.0

# Sizes the header and card offsets are drawn for; other sizes scale uniformly.
HEADER_REF = (1080.0, 268.8)
CARD_REF = (480.0, 705.6)

BACKGROUND = "#f8fafc"
CARD_FILL = "#ffffff"
CARD_STROKE = "#e2e8f0"
INK = "#0f172a"
MUTED = "#64748b"
EMPTY_CELL = "#f1f5f9"

COHORT_STYLE = {
    Category.NEGATIVE: ("震感", "NEGATIVE", "#e11d48"),
    Category.POSITIVE: ("微光", "POSITIVE", "#059669"),
}

SLOGANS = (
    "地壳在动，说明你还活着。",
    "每一次震感，都是一次被记录的勇气。",
    "余震会过去，观测会留下。",
    "今天的震级，不定义明天的你。",
    "把情绪写下来，它就不再是黑箱。",
    "监测站持续运行中，请保持观测。",
    "小震不断，大震不来。",
    "Every tremor logged is a tremor understood.",
)

NO_DATA = "暂无数据 · NO DATA"
NO_TAGS = "暂无标签记录 · NO TAGS"

MIX_SHADES = (1.0, 0.78, 0.58, 0.42, 0.28)


def pick_slogan(seed: int) -> str:
    """Choose a slogan with a seeded generator; the same seed gives the same slogan."""
    return random.Random(seed).choice(SLOGANS)


@dataclass
class CohortView:
    """Everything the renderer needs for one category."""

    category: Category
    title: str
    subtitle: str
    accent: str
    summary: AggregateSummary

    @property
    def empty(self) -> bool:
        return self.summary.total == 0


@dataclass
class PosterDocument:
    """A rendered poster and the intermediate results it was built from."""

    svg: str
    width: int
    height: int
    slogan: str
    cohorts: dict[Category, CohortView] = field(default_factory=dict)
    heatmaps: dict[Category, HeatmapLayout] = field(default_factory=dict)
    parliament: Optional[ParliamentReport] = None

    @property
    def degraded(self) -> bool:
        """True when any heatmap had to fall back to the minimum cell size."""
        return any(h.degraded for h in self.heatmaps.values())

    def save(self, path: str) -> Path:
        out = Path(path)
        out.write_text(self.svg, encoding="utf-8")
        return out


def section_boxes(width: float, height: float) -> dict[str, Box]:
    """Vertical bands of the canvas."""
    header_h = height * HEADER_FRACTION
    top_h = height * TOP_FRACTION
    heat_h = height * HEATMAP_FRACTION
    top_y = header_h
    heat_y = top_y + top_h
    footer_y = heat_y + heat_h
    return {
        "header": Box(0, 0, width, header_h),
        "top": Box(0, top_y, width, top_h),
        "heatmaps": Box(0, heat_y, width, heat_h),
        "footer": Box(0, footer_y, width, height - footer_y),
    }


def heatmap_boxes(section: Box, count: int = 2) -> list[Box]:
    """Split the heatmap band into ``count`` equal stacked boxes separated by HEATMAP_GAP."""
    inner_w = section.width - 2 * MARGIN
    each = (section.height - (count - 1) * HEATMAP_GAP) / count
    return [Box(MARGIN, section.y + i * (each + HEATMAP_GAP), inner_w, each) for i in range(count)]


def card_boxes(section: Box, count: int = 2) -> list[Box]:
    inner_w = section.width - 2 * MARGIN
    each = (inner_w - (count - 1) * CARD_GAP) / count
    return [
        Box(MARGIN + i * (each + CARD_GAP), section.y, each, section.height - CARD_GAP)
        for i in range(count)
    ]


# ---------------------------------------------------------------------------
# header / footer
# ---------------------------------------------------------------------------


def _render_header(
    canvas: SVGCanvas,
    box: Box,
    *,
    slogan: str,
    date_text: str,
    window_days: int,
    total: int,
    parliament: ParliamentReport,
) -> None:
    k = min(box.width / HEADER_REF[0], box.height / HEADER_REF[1])
    right = box.right - MARGIN
    canvas.add_text(MARGIN, box.y + 72 * k, "SEISMO-MIND",
                    Style(fill=INK, font_size=44 * k, font_weight="bold"))
    canvas.add_text(MARGIN, box.y + 104 * k, "心理震感记录仪 · 观测海报",
                    Style(fill=MUTED, font_size=20 * k))
    canvas.add_text(right, box.y + 68 * k, f"最近 {window_days} 天 · 截至 {date_text}",
                    Style(fill=MUTED, font_size=18 * k, text_anchor="end"))
    canvas.add_text(right, box.y + 100 * k, f"{total} 次记录",
                    Style(fill=INK, font_size=22 * k, font_weight="bold", text_anchor="end"))
    canvas.add_text(MARGIN, box.y + 146 * k, fit_text(slogan, box.width - 2 * MARGIN, 22 * k),
                    Style(fill=INK, font_size=22 * k))

    # Parliament: 100 seats as a strip of cells, ruling coalition first.
    strip_w = box.width - 2 * MARGIN
    gap = 2.0
    seat_w = (strip_w - 99 * gap) / 100
    strip_y = box.y + 170 * k
    seat = 0
    for party in PARTY_ORDER:
        for _ in range(parliament.seats[party]):
            canvas.add_rect(MARGIN + seat * (seat_w + gap), strip_y, seat_w, 28 * k, rx=2,
                            style=Style(fill=PARTY_COLORS[party]))
            seat += 1

    slot_w = strip_w / len(PARTY_ORDER)
    legend_y = strip_y + 56 * k
    for i, party in enumerate(PARTY_ORDER):
        x = MARGIN + i * slot_w
        canvas.add_circle(x + 7 * k, legend_y - 5 * k, 6 * k, Style(fill=PARTY_COLORS[party]))
        label = f"{PARTY_LABELS[party]} {parliament.seats[party]}"
        canvas.add_text(x + 18 * k, legend_y, fit_text(label, slot_w - 22 * k, 15 * k),
                        Style(fill=INK, font_size=15 * k))


def _render_footer(canvas: SVGCanvas, box: Box, generated: str, parliament: ParliamentReport) -> None:
    text = (
        f"Seismo-Mind · 生成于 {generated} · {parliament.ruling_status}"
        f" · 多巴胺{parliament.dopamine_status} {parliament.dopamine_ratio:.2f}"
    )
    canvas.add_text(box.width / 2, box.y + box.height / 2 + 5,
                    fit_text(text, box.width - 2 * MARGIN, 14),
                    Style(fill=MUTED, font_size=14, text_anchor="middle"))


# ---------------------------------------------------------------------------
# category card
# ---------------------------------------------------------------------------


def _render_no_data(canvas: SVGCanvas, box: Box, message: str, font_size: float = 22) -> None:
    canvas.add_text(box.x + box.width / 2, box.y + box.height / 2, message,
                    Style(fill=MUTED, font_size=font_size, font_weight="bold", text_anchor="middle"))


def _render_category_card(canvas: SVGCanvas, box: Box, view: CohortView, config: PosterConfig) -> None:
    """One top-section card. Called once per category with that category's data.

    Offsets are designed for a CARD_REF sized card and scaled uniformly to fit ``box``.
    """
    x, y, w = box.x, box.y, box.width
    k = min(w / CARD_REF[0], box.height / CARD_REF[1])
    pad = 28 * k
    canvas.add_rect(x, y, w, box.height, rx=24 * k, style=Style(fill=CARD_FILL, stroke=CARD_STROKE, stroke_width=1.5))
    canvas.add_rect(x + pad, y + 26 * k, 6 * k, 28 * k, rx=3 * k, style=Style(fill=view.accent))
    canvas.add_text(x + pad + 16 * k, y + 50 * k, f"{view.title} · {view.subtitle}",
                    Style(fill=INK, font_size=26 * k, font_weight="bold"))

    if view.empty:
        _render_no_data(canvas, Box(x, y + 70 * k, w, box.height - 70 * k), NO_DATA, 22 * k)
        return

    s = view.summary

    # Circadian ring
    cx, cy = x + w / 2, y + 220 * k
    outer, inner = 130 * k, 78 * k
    for seg in ring_segments(s.hour_histogram, inner, outer, config.base_alpha):
        canvas.add_path(seg.path_d(cx, cy), Style(fill=view.accent, opacity=seg.alpha, stroke=CARD_FILL, stroke_width=1))
    for hour in (0, 6, 12, 18):
        lx, ly = polar_to_cartesian(cx, cy, outer + 16 * k, hour_angles(hour)[0])
        canvas.add_text(lx, ly + 4 * k, str(hour), Style(fill=MUTED, font_size=12 * k, text_anchor="middle"))
    canvas.add_text(cx, cy + 8 * k, str(s.total),
                    Style(fill=INK, font_size=40 * k, font_weight="bold", text_anchor="middle"))
    canvas.add_text(cx, cy + 32 * k, "次记录", Style(fill=MUTED, font_size=14 * k, text_anchor="middle"))

    # Level distribution bars
    max_count = max(max(s.level_counts.values()), 1)
    track_x = x + 150 * k
    track_w = w - 214 * k
    bar_h = 12 * k
    for i, level in enumerate(LEVEL_RANGE):
        info = LEVELS[level]
        row_y = y + (392 + i * 28) * k
        count = s.level_counts[level]
        canvas.add_text(x + pad, row_y + 11 * k, f"{info.label} {info.alert_name}",
                        Style(fill=INK, font_size=14 * k, font_weight="bold"))
        canvas.add_rect(track_x, row_y, track_w, bar_h, rx=bar_h / 2, style=Style(fill=EMPTY_CELL))
        canvas.add_rect(track_x, row_y, max(count / max_count, 0.02) * track_w, bar_h, rx=bar_h / 2,
                        style=Style(fill=info.color))
        canvas.add_text(x + w - pad, row_y + 11 * k, str(count),
                        Style(fill=MUTED, font_size=14 * k, font_weight="bold", text_anchor="end"))

    # Top-tag mix, floor-constrained seats
    mix = category_mix(s.tag_matrix)
    mix_y = y + 578 * k
    mix_w = w - 2 * pad
    if mix is None:
        caption = "标签构成 · 无标签"
    else:
        caption = "标签构成 · " + " · ".join(f"#{t} {n}" for t, n in mix.seats.items())
        offset = 0.0
        for i, (tag, seats) in enumerate(mix.seats.items()):
            seg_w = mix_w * seats / mix.total
            canvas.add_rect(x + pad + offset, mix_y + 10 * k, seg_w, bar_h,
                            style=Style(fill=view.accent, opacity=MIX_SHADES[i % len(MIX_SHADES)]))
            offset += seg_w
    canvas.add_text(x + pad, mix_y, fit_text(caption, mix_w, 12 * k), Style(fill=MUTED, font_size=12 * k))

    # Summary numbers
    stats = (
        ("日均", f"{s.daily_rate:.1f}"),
        ("余震", str(s.echo_count)),
        ("平均权重", f"{s.mean_weight:.1f}"),
    )
    col_w = (w - 2 * pad) / len(stats)
    for i, (label, value) in enumerate(stats):
        sx = x + pad + i * col_w
        canvas.add_text(sx, y + 640 * k, label, Style(fill=MUTED, font_size=12 * k))
        canvas.add_text(sx, y + 674 * k, value, Style(fill=INK, font_size=26 * k, font_weight="bold"))


# ---------------------------------------------------------------------------
# heatmap
# ---------------------------------------------------------------------------


def _render_heatmap(canvas: SVGCanvas, box: Box, view: CohortView, config: PosterConfig) -> HeatmapLayout:
    """Lay out and draw one category's tag x level heatmap inside ``box``."""
    matrix = view.summary.tag_matrix
    layout = layout_heatmap(
        len(matrix.tags),
        box,
        min_cell=config.min_cell_size,
        max_cell=config.max_cell_size,
        max_columns=config.max_columns,
    )

    canvas.add_text(box.x, box.y + 24, f"{view.title} · 标签 × 震级",
                    Style(fill=INK, font_size=20, font_weight="bold"))
    note = f"{len(matrix.tags)} 个标签" + (" · 已压缩" if layout.degraded else "")
    canvas.add_text(box.right, box.y + 24, note, Style(fill=MUTED, font_size=14, text_anchor="end"))

    if view.empty or layout.columns == 0:
        _render_no_data(canvas, Box(box.x, box.y + layout.header_height, box.width,
                                    box.height - layout.header_height),
                        NO_DATA if view.empty else NO_TAGS)
        return layout

    cell = layout.cell_size
    level_font = min(11.0, cell * 0.8)
    for column in range(layout.columns):
        cx0 = box.x + layout.column_x(column) + layout.label_width
        for level in LEVEL_RANGE:
            canvas.add_text(cx0 + (level - 0.5) * cell, box.y + layout.header_height - 8,
                            LEVELS[level].label,
                            Style(fill=MUTED, font_size=level_font, text_anchor="middle"))

    label_font = min(14.0, max(8.0, cell * 0.6))
    count_font = cell * 0.42
    inset = min(1.0, cell / 10)
    max_cell_count = max(matrix.max_cell, 1)
    for index, tag in enumerate(matrix.tags):
        ox, oy = layout.cell_origin(index)
        row_x, row_y = box.x + ox, box.y + oy
        if layout.label_width >= label_font and label_font <= layout.row_height:
            label = fit_text(f"#{tag}", layout.label_width - 8, label_font)
            canvas.add_text(row_x, row_y + cell / 2 + label_font * 0.35, label,
                            Style(fill=INK, font_size=label_font))
        for level in LEVEL_RANGE:
            count = matrix.counts[tag][level]
            cx = row_x + layout.label_width + (level - 1) * cell
            if count:
                style = Style(fill=LEVELS[level].color, opacity=0.2 + 0.8 * count / max_cell_count)
            else:
                style = Style(fill=EMPTY_CELL)
            canvas.add_rect(cx + inset, row_y, cell - 2 * inset, cell, rx=min(4.0, cell / 4), style=style)
            if count and cell >= 20:
                canvas.add_text(cx + cell / 2, row_y + cell / 2 + count_font * 0.35, str(count),
                                Style(fill=INK, font_size=count_font, text_anchor="middle"))
    return layout


# ---------------------------------------------------------------------------
# composer
# ---------------------------------------------------------------------------


def build_cohorts(
    events: Iterable[Event],
    now: int,
    window_days: int = 7,
    tz: Optional[tzinfo] = None,
) -> dict[Category, CohortView]:
    """Summaries for each category over the trailing window ending at ``now``."""
    in_window = events_in_range(validate_events(events), *window_range(now, window_days, tz))
    cohorts = {}
    for category in CATEGORY_ORDER:
        title, subtitle, accent = COHORT_STYLE[category]
        cohorts[category] = CohortView(
            category=category,
            title=title,
            subtitle=subtitle,
            accent=accent,
            summary=summarize(filter_by_category(in_window, category), window_days, now, tz),
        )
    return cohorts


def compose_poster(
    events: Iterable[Event],
    now: int,
    *,
    config: Optional[PosterConfig] = None,
    window_days: int = 7,
    tz: Optional[tzinfo] = None,
    seed: Optional[int] = None,
    slogan: Optional[str] = None,
) -> PosterDocument:
    """Render the shareable poster for an event log.

    Args:
        events: The full event log; events outside the trailing window are ignored.
        now: Reference instant (epoch ms) for the window and the printed date.
        config: Canvas and layout settings.
        window_days: Trailing window in days.
        tz: Time zone for bucketing and the printed date, ``None`` for local time.
        seed: Seed for the slogan pick; defaults to ``config.seed``.
        slogan: Fixed slogan, overriding the seeded pick.

    Returns:
        A PosterDocument. Identical arguments give a byte-identical ``svg``.

    Raises:
        DataIntegrityError: If an event's intensity is out of range.
    """
    config = config or PosterConfig()
    checked = validate_events(events)
    if slogan is None:
        slogan = pick_slogan(config.seed if seed is None else seed)

    cohorts = build_cohorts(checked, now, window_days, tz)
    parliament = parliament_report(checked, now, tz, window_days)
    local_now = to_local(now, tz)

    canvas = SVGCanvas(config.width, config.height, background=BACKGROUND)
    bands = section_boxes(config.width, config.height)
    _render_header(
        canvas,
        bands["header"],
        slogan=slogan,
        date_text=local_now.strftime("%Y-%m-%d"),
        window_days=window_days,
        total=sum(c.summary.total for c in cohorts.values()),
        parliament=parliament,
    )

    views = [cohorts[c] for c in CATEGORY_ORDER]
    for box, view in zip(card_boxes(bands["top"], len(views)), views):
        _render_category_card(canvas, box, view, config)

    heatmaps = {}
    for box, view in zip(heatmap_boxes(bands["heatmaps"], len(views)), views):
        heatmaps[view.category] = _render_heatmap(canvas, box, view, config)

    _render_footer(canvas, bands["footer"], local_now.strftime("%Y-%m-%d %H:%M"), parliament)

    logger.debug(
        "Composed %dx%d poster: %d elements, heatmap columns %s",
        config.width, config.height, len(canvas),
        {c.value: h.columns for c, h in heatmaps.items()},
    )
    return PosterDocument(
        svg=canvas.render(),
        width=config.width,
        height=config.height,
        slogan=slogan,
        cohorts=cohorts,
        heatmaps=heatmaps,
        parliament=parliament,
    )
