"""Heatmap layout - fit a tag x intensity grid into a fixed bounding box.

The number of tags is only known at render time, so the grid flows tags
column-major into as many side-by-side columns as needed. Each column holds
a label strip followed by one square cell per intensity level.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from .models import LEVEL_COUNT

logger = logging.getLogger(__name__)

DEFAULT_MIN_CELL = 12.0
DEFAULT_MAX_CELL = 36.0
DEFAULT_MAX_COLUMNS = 4
HEADER_HEIGHT = 56.0  # section title + level labels
COLUMN_GAP = 24.0
ROW_GAP = 4.0
LABEL_RATIO = 0.34
LABEL_MIN = 48.0
LABEL_MAX = 180.0


@dataclass(frozen=True)
class Box:
    """An axis-aligned rectangle; ``x``/``y`` is the top-left corner."""

    x: float
    y: float
    width: float
    height: float

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def right(self) -> float:
        return self.x + self.width


@dataclass(frozen=True)
class HeatmapLayout:
    """Geometry for one heatmap, relative to its bounding box."""

    tag_count: int
    columns: int
    rows_per_column: int
    cell_size: float
    label_width: float
    column_width: float
    header_height: float = HEADER_HEIGHT
    column_gap: float = COLUMN_GAP
    row_gap: float = ROW_GAP
    level_count: int = LEVEL_COUNT
    degraded: bool = False  # min_cell with full labels could not be met within the column cap

    @property
    def row_height(self) -> float:
        return self.cell_size + self.row_gap

    @property
    def content_height(self) -> float:
        """Height of the tallest column, header included."""
        rows = min(self.rows_per_column, self.tag_count)
        return self.header_height + rows * self.row_height

    def column_x(self, column: int) -> float:
        return column * (self.column_width + self.column_gap)

    def cell_origin(self, index: int) -> tuple[float, float]:
        """Top-left of the row for tag ``index``, where its label starts."""
        if not 0 <= index < self.tag_count:
            raise IndexError(f"tag index {index} out of range for {self.tag_count} tags")
        column, row = divmod(index, self.rows_per_column)
        return (self.column_x(column), self.header_height + row * self.row_height)


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def layout_heatmap(
    tag_count: int,
    box: Box,
    *,
    level_count: int = LEVEL_COUNT,
    min_cell: float = DEFAULT_MIN_CELL,
    max_cell: float = DEFAULT_MAX_CELL,
    max_columns: int = DEFAULT_MAX_COLUMNS,
    header_height: float = HEADER_HEIGHT,
    column_gap: float = COLUMN_GAP,
    row_gap: float = ROW_GAP,
    label_ratio: float = LABEL_RATIO,
    label_min: float = LABEL_MIN,
    label_max: float = LABEL_MAX,
) -> HeatmapLayout:
    """Compute a multi-column grid for ``tag_count`` tags inside ``box``.

    Starting from one column, each step derives the column width, the label
    width (``label_ratio`` of the column, clamped to ``[label_min,
    label_max]``) and the cell size, limited by the width left for
    ``level_count`` cells, by the height available to
    ``ceil(tag_count / columns)`` rows and by ``max_cell``. The first column
    count whose cell size reaches ``min_cell`` wins. Columns never exceed
    ``tag_count`` or ``max_columns``.

    When no column count up to the cap reaches ``min_cell`` the layout
    degrades: labels narrow first, then cells (and row gaps) shrink below
    ``min_cell``, using whichever column count within the cap gives the
    largest cell. The grid still stays inside the box in both directions.

    Args:
        tag_count: Number of tag rows to place.
        box: Bounding box; only its width and height are used.
        level_count: Cells per tag row.
        min_cell: Smallest acceptable cell edge.
        max_cell: Largest cell edge.
        max_columns: Column cap for the widening search.
        header_height: Space reserved at the top for titles and level labels.

    Returns:
        A HeatmapLayout. ``columns * rows_per_column >= tag_count`` always.
    """
    spacing = dict(header_height=header_height, column_gap=column_gap, row_gap=row_gap,
                   level_count=level_count)
    if tag_count <= 0:
        return HeatmapLayout(tag_count=0, columns=0, rows_per_column=0, cell_size=0.0,
                             label_width=0.0, column_width=0.0, **spacing)

    available = max(0.0, box.height - header_height)

    def _widths(columns: int) -> tuple[float, float, float]:
        column_width = (box.width - (columns - 1) * column_gap) / columns
        label_width = _clamp(column_width * label_ratio, label_min, label_max)
        width_cell = (column_width - label_width) / level_count
        return column_width, label_width, width_cell

    cap = max(1, min(max_columns, tag_count))
    for columns in range(1, cap + 1):
        column_width, label_width, width_cell = _widths(columns)
        rows = math.ceil(tag_count / columns)
        height_cell = available / rows - row_gap
        cell = min(max_cell, width_cell, height_cell)
        if cell >= min_cell:
            return HeatmapLayout(tag_count=tag_count, columns=columns, rows_per_column=rows,
                                 cell_size=cell, label_width=label_width,
                                 column_width=column_width, **spacing)

    best = None
    for columns in range(1, cap + 1):
        column_width, label_width, width_cell = _widths(columns)
        rows = math.ceil(tag_count / columns)
        pitch = available / rows
        # Gaps shrink with the row pitch once a full gap no longer fits.
        gap = min(row_gap, pitch * row_gap / (min_cell + row_gap))
        # Labels give way until cells reach min_cell, never further.
        cell = max(0.0, min(max_cell, pitch - gap, max(min_cell, width_cell), column_width / level_count))
        if best is None or cell > best[0]:
            best = (cell, columns, rows, gap, column_width, label_width)

    cell, columns, rows, gap, column_width, label_width = best
    label_width = _clamp(column_width - level_count * cell, 0.0, label_width)
    spacing["row_gap"] = gap
    logger.info(
        "Heatmap for %d tags degraded to %d columns x %d rows at cell size %.1f",
        tag_count, columns, rows, cell,
    )
    return HeatmapLayout(tag_count=tag_count, columns=columns, rows_per_column=rows,
                         cell_size=cell, label_width=label_width,
                         column_width=column_width, degraded=True, **spacing)
