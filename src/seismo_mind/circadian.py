"""Circadian ring - 24 annular wedges, one per hour, hour 0 at the top.

Angles are in radians in screen coordinates (y grows downwards), so
increasing angles run clockwise on the rendered image.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from .models import HourHistogram
from .svg import fmt

HOURS = 24
DEFAULT_BASE_ALPHA = 0.12


@dataclass(frozen=True)
class RingSegment:
    """One hour's wedge of the ring."""

    hour: int
    count: int
    start_angle: float
    end_angle: float
    inner_radius: float
    outer_radius: float
    alpha: float

    @property
    def span(self) -> float:
        return self.end_angle - self.start_angle

    def path_d(self, cx: float, cy: float) -> str:
        return annular_wedge_path(cx, cy, self.inner_radius, self.outer_radius,
                                  self.start_angle, self.end_angle)


def hour_angles(hour: int, hours: int = HOURS) -> tuple[float, float]:
    """Start and end angle of an hour slot, rotated so hour 0 starts at the top."""
    start = (hour / hours) * 2 * math.pi - math.pi / 2
    end = ((hour + 1) / hours) * 2 * math.pi - math.pi / 2
    return start, end


def polar_to_cartesian(cx: float, cy: float, radius: float, angle: float) -> tuple[float, float]:
    return (cx + radius * math.cos(angle), cy + radius * math.sin(angle))


def annular_wedge_path(
    cx: float,
    cy: float,
    inner_radius: float,
    outer_radius: float,
    start_angle: float,
    end_angle: float,
) -> str:
    """SVG path data for a ring segment between two angles.

    The outer arc is drawn clockwise from ``start_angle`` to ``end_angle``
    and the inner arc back again. ``large-arc`` is set when the span exceeds
    half a turn. With ``inner_radius == 0`` the wedge closes at the centre
    (a pie slice).
    """
    large_arc = 1 if (end_angle - start_angle) > math.pi else 0
    ox0, oy0 = polar_to_cartesian(cx, cy, outer_radius, start_angle)
    ox1, oy1 = polar_to_cartesian(cx, cy, outer_radius, end_angle)
    r_out = fmt(outer_radius)
    parts = [
        f"M {fmt(ox0)} {fmt(oy0)}",
        f"A {r_out} {r_out} 0 {large_arc} 1 {fmt(ox1)} {fmt(oy1)}",
    ]
    if inner_radius > 0:
        ix1, iy1 = polar_to_cartesian(cx, cy, inner_radius, end_angle)
        ix0, iy0 = polar_to_cartesian(cx, cy, inner_radius, start_angle)
        r_in = fmt(inner_radius)
        parts.append(f"L {fmt(ix1)} {fmt(iy1)}")
        parts.append(f"A {r_in} {r_in} 0 {large_arc} 0 {fmt(ix0)} {fmt(iy0)}")
    else:
        parts.append(f"L {fmt(cx)} {fmt(cy)}")
    parts.append("Z")
    return " ".join(parts)


def segment_alpha(count: int, max_count: int, base_alpha: float = DEFAULT_BASE_ALPHA) -> float:
    """Opacity for a wedge; empty hours keep ``base_alpha`` so the ring stays whole."""
    if max_count <= 0:
        return base_alpha
    return base_alpha + (count / max_count) * (1 - base_alpha)


def ring_segments(
    histogram: HourHistogram,
    inner_radius: float,
    outer_radius: float,
    base_alpha: float = DEFAULT_BASE_ALPHA,
) -> list[RingSegment]:
    """Build the 24 wedges for an hour histogram.

    Raises:
        ValueError: If the histogram does not have 24 buckets or the radii
            are inverted.
    """
    if len(histogram.hours) != HOURS:
        raise ValueError(f"expected {HOURS} hour buckets, got {len(histogram.hours)}")
    if not 0 <= inner_radius < outer_radius:
        raise ValueError(f"invalid ring radii: inner={inner_radius}, outer={outer_radius}")

    max_count = max(histogram.hours)
    segments = []
    for hour, count in enumerate(histogram.hours):
        start, end = hour_angles(hour)
        segments.append(RingSegment(
            hour=hour,
            count=count,
            start_angle=start,
            end_angle=end,
            inner_radius=inner_radius,
            outer_radius=outer_radius,
            alpha=segment_alpha(count, max_count, base_alpha),
        ))
    return segments
