"""Minimal SVG canvas used by the poster renderer.

Elements are appended in paint order and serialised by ``render()``. Numbers
are formatted with a fixed precision so identical input always yields
identical bytes.
"""

from __future__ import annotations

import unicodedata
from dataclasses import dataclass
from html import escape
from typing import Optional

FONT_FAMILY = "'Helvetica Neue', Arial, 'PingFang SC', 'Noto Sans CJK SC', sans-serif"

# Fixed-width text metrics: no font is measured, so widths are estimated as
# LATIN_EM per narrow character and WIDE_EM per East-Asian wide character.
LATIN_EM = 0.6
WIDE_EM = 1.0


def fmt(value: float) -> str:
    """Format a coordinate with at most two decimals and no trailing zeros."""
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return "0" if text in ("-0", "") else text


def char_em(ch: str) -> float:
    return WIDE_EM if unicodedata.east_asian_width(ch) in ("W", "F") else LATIN_EM


def text_width(text: str, font_size: float) -> float:
    """Estimated rendered width of ``text`` under the fixed-width assumption."""
    return sum(char_em(ch) for ch in text) * font_size


def fit_text(text: str, max_width: float, font_size: float) -> str:
    """Truncate ``text`` with an ellipsis so it fits ``max_width``."""
    if text_width(text, font_size) <= max_width:
        return text
    budget = max_width - LATIN_EM * font_size
    out = []
    used = 0.0
    for ch in text:
        w = char_em(ch) * font_size
        if used + w > budget:
            break
        out.append(ch)
        used += w
    return "".join(out) + "…" if out else ""


@dataclass(frozen=True)
class Style:
    fill: Optional[str] = None
    stroke: Optional[str] = None
    stroke_width: Optional[float] = None
    opacity: Optional[float] = None
    font_size: Optional[float] = None
    font_weight: Optional[str] = None
    text_anchor: Optional[str] = None

    def attrs(self) -> str:
        pairs = []
        if self.fill is not None:
            pairs.append(("fill", self.fill))
        if self.stroke is not None:
            pairs.append(("stroke", self.stroke))
        if self.stroke_width is not None:
            pairs.append(("stroke-width", fmt(self.stroke_width)))
        if self.opacity is not None:
            pairs.append(("opacity", fmt(self.opacity)))
        if self.font_size is not None:
            pairs.append(("font-size", fmt(self.font_size)))
        if self.font_weight is not None:
            pairs.append(("font-weight", self.font_weight))
        if self.text_anchor is not None:
            pairs.append(("text-anchor", self.text_anchor))
        return "".join(f' {k}="{escape(v)}"' for k, v in pairs)


class SVGCanvas:
    """Append-only SVG document of fixed size."""

    def __init__(self, width: float, height: float, background: Optional[str] = None):
        self.width = width
        self.height = height
        self._elements: list[str] = []
        if background:
            self.add_rect(0, 0, width, height, style=Style(fill=background))

    def __len__(self) -> int:
        return len(self._elements)

    def add_rect(self, x: float, y: float, w: float, h: float, rx: float = 0,
                 style: Style = Style()) -> None:
        radius = f' rx="{fmt(rx)}"' if rx else ""
        self._elements.append(
            f'<rect x="{fmt(x)}" y="{fmt(y)}" width="{fmt(max(0.0, w))}" '
            f'height="{fmt(max(0.0, h))}"{radius}{style.attrs()}/>'
        )

    def add_circle(self, cx: float, cy: float, r: float, style: Style = Style()) -> None:
        self._elements.append(f'<circle cx="{fmt(cx)}" cy="{fmt(cy)}" r="{fmt(r)}"{style.attrs()}/>')

    def add_line(self, x1: float, y1: float, x2: float, y2: float, style: Style = Style()) -> None:
        self._elements.append(
            f'<line x1="{fmt(x1)}" y1="{fmt(y1)}" x2="{fmt(x2)}" y2="{fmt(y2)}"{style.attrs()}/>'
        )

    def add_path(self, d: str, style: Style = Style()) -> None:
        self._elements.append(f'<path d="{d}"{style.attrs()}/>')

    def add_text(self, x: float, y: float, text: str, style: Style = Style()) -> None:
        self._elements.append(
            f'<text x="{fmt(x)}" y="{fmt(y)}"{style.attrs()}>{escape(text, quote=False)}</text>'
        )

    def render(self) -> str:
        w, h = fmt(self.width), fmt(self.height)
        head = (
            f'<svg xmlns="http://www.w3.org/2000/svg" width="{w}" height="{h}" '
            f'viewBox="0 0 {w} {h}" font-family="{escape(FONT_FAMILY)}">'
        )
        return "\n".join([head, *self._elements, "</svg>"]) + "\n"
