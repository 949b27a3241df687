"""Unit tests for the SVG canvas and text metrics."""

import xml.etree.ElementTree as ET

import pytest

from seismo_mind.svg import SVGCanvas, Style, fit_text, fmt, text_width


class TestFormatting:
    """Tests for number formatting and text metrics."""

    @pytest.mark.parametrize("value,expected", [
        (1.0, "1"),
        (12.5, "12.5"),
        (0.125, "0.12"),
        (-0.001, "0"),
        (1080, "1080"),
    ])
    def test_fmt(self, value, expected):
        assert fmt(value) == expected

    def test_text_width_wide_chars(self):
        assert text_width("ab", 10) == pytest.approx(12)
        assert text_width("震感", 10) == pytest.approx(20)

    def test_fit_text_unchanged_when_short(self):
        assert fit_text("#work", 200, 14) == "#work"

    def test_fit_text_truncates(self):
        text = fit_text("#" + "很长的标签" * 10, 120, 14)
        assert text.endswith("…")
        assert text_width(text, 14) <= 120

    def test_fit_text_no_room(self):
        assert fit_text("abcdef", 5, 14) == ""


class TestSVGCanvas:
    """Tests for SVGCanvas."""

    def test_render_header_and_size(self):
        canvas = SVGCanvas(1080, 1920)
        svg = canvas.render()
        assert svg.startswith('<svg xmlns="http://www.w3.org/2000/svg" width="1080" height="1920"')
        assert 'viewBox="0 0 1080 1920"' in svg
        assert svg.endswith("</svg>\n")

    def test_background_rect(self):
        canvas = SVGCanvas(100, 50, background="#fff")
        assert len(canvas) == 1
        assert '<rect x="0" y="0" width="100" height="50" fill="#fff"/>' in canvas.render()

    def test_text_escaped(self):
        canvas = SVGCanvas(100, 100)
        canvas.add_text(1, 2, "<a & b>", Style(fill="#000", font_size=12, text_anchor="middle"))
        svg = canvas.render()
        assert "&lt;a &amp; b&gt;" in svg
        assert 'font-size="12"' in svg
        assert 'text-anchor="middle"' in svg
        ET.fromstring(svg)

    def test_elements_in_paint_order(self):
        canvas = SVGCanvas(10, 10)
        canvas.add_rect(0, 0, 5, 5, rx=1, style=Style(opacity=0.5))
        canvas.add_circle(5, 5, 2)
        canvas.add_line(0, 0, 10, 10, Style(stroke="#111", stroke_width=1.5))
        canvas.add_path("M 0 0 L 1 1 Z")
        lines = canvas.render().splitlines()
        assert lines[1].startswith("<rect") and 'rx="1"' in lines[1] and 'opacity="0.5"' in lines[1]
        assert lines[2].startswith("<circle")
        assert lines[3].startswith("<line") and 'stroke-width="1.5"' in lines[3]
        assert lines[4] == '<path d="M 0 0 L 1 1 Z"/>'

    def test_negative_size_clamped(self):
        canvas = SVGCanvas(10, 10)
        canvas.add_rect(0, 0, -3, 4)
        assert 'width="0"' in canvas.render()
