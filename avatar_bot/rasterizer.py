from __future__ import annotations

"""
SVG to PNG conversion.

A thin layer over cairosvg; it only exists so the rest of the bot can talk
about ``RenderError`` instead of whatever cairo decided to throw today.
"""

import logging
from typing import Optional

from .renderer import RenderError

try:
    import cairosvg  # type: ignore
except (ImportError, OSError):  # the wheel imports fine but libcairo may be missing
    cairosvg = None  # type: ignore

LOGGER = logging.getLogger(__name__)


class RasterizeError(RenderError):
    """Raised when SVG markup cannot be turned into a bitmap."""


class SvgRasterizer:
    """Converts SVG markup into PNG bytes."""

    def __init__(self, output_size: Optional[int] = None):
        """
        Parameters
        ----------
        output_size : int, optional
            Force the PNG width and height. ``None`` trusts the SVG's own size.
        """

        self._output_size = output_size

    def ensure_available(self) -> None:
        """
        Raises
        ------
        SystemExit
            If cairosvg (or the cairo library under it) is not installed.
        """

        if cairosvg is None:
            raise SystemExit("Install cairosvg and the cairo library: pip install cairosvg")

    def to_png(self, svg: str) -> bytes:
        """
        Rasterize ``svg``.

        Raises
        ------
        RasterizeError
            If there is nothing to convert or cairosvg chokes on it.
        """

        if not svg:
            raise RasterizeError("Nothing to rasterize.")
        if cairosvg is None:
            raise RasterizeError("cairosvg is not available.")

        kwargs = {}
        if self._output_size:
            kwargs["output_width"] = self._output_size
            kwargs["output_height"] = self._output_size

        try:
            png = cairosvg.svg2png(bytestring=svg.encode("utf-8"), **kwargs)
        except Exception as exc:
            LOGGER.warning("SVG to PNG conversion failed: %s", exc)
            raise RasterizeError(f"PNG conversion failed: {exc}") from exc

        if not png:
            raise RasterizeError("PNG conversion produced no data.")
        return png
