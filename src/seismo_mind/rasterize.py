"""PNG export for rendered posters via CairoSVG (optional ``png`` extra)."""

import logging
from typing import Optional

logger = logging.getLogger(__name__)


class RasterizeError(Exception):
    """Exception raised when an SVG cannot be converted to PNG."""

    def __init__(self, message: str, cause: Optional[Exception] = None):
        self.message = message
        self.cause = cause
        super().__init__(message)


def render_png(svg: str, width: int, height: int, scale: float = 1.0) -> bytes:
    """Rasterize an SVG document.

    Args:
        svg: The SVG text.
        width: Canvas width in SVG user units.
        height: Canvas height in SVG user units.
        scale: Output pixels per user unit (2.0 for a retina export).

    Returns:
        PNG bytes of ``width * scale`` x ``height * scale`` pixels.

    Raises:
        RasterizeError: If CairoSVG is not installed or the conversion fails.
    """
    if scale <= 0:
        raise RasterizeError(f"scale must be positive, got {scale}")
    try:
        import cairosvg
    except ImportError as e:
        raise RasterizeError(
            "PNG export needs CairoSVG; install with: pip install 'seismo-mind[png]'",
            cause=e,
        )
    except OSError as e:
        # cairocffi raises OSError when the native Cairo library is missing
        raise RasterizeError(f"Cairo library unavailable: {e}", cause=e)

    out_w, out_h = round(width * scale), round(height * scale)
    try:
        png = cairosvg.svg2png(bytestring=svg.encode("utf-8"), output_width=out_w, output_height=out_h)
    except Exception as e:
        raise RasterizeError(f"Failed to rasterize poster: {e}", cause=e)
    logger.debug("Rasterized %dx%d poster to %d bytes", out_w, out_h, len(png))
    return png
