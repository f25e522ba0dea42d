from __future__ import annotations

"""
High-level avatar generation.

Hands the name to the renderer, the SVG to the rasterizer, and the pair
back to whoever asked.
"""

import asyncio
import logging
from typing import List, Optional, Sequence

from .config import RenderConfig
from .models import RenderedAvatar
from .palette import default_palette, random_palette
from .rasterizer import SvgRasterizer
from .renderer import AvatarRenderer

LOGGER = logging.getLogger(__name__)


class AvatarGenerator:
    """Wraps AvatarRenderer and SvgRasterizer behind one call."""

    def __init__(
        self,
        renderer: AvatarRenderer,
        rasterizer: SvgRasterizer,
        config: Optional[RenderConfig] = None,
    ):
        """
        Parameters
        ----------
        renderer : AvatarRenderer
            Produces the SVG.
        rasterizer : SvgRasterizer
            Produces the PNG from that SVG.
        config : RenderConfig, optional
            Size, corner style, and palettes. Defaults apply when omitted.
        """

        self._renderer = renderer
        self._rasterizer = rasterizer
        self._config = config or RenderConfig()

    def default_colors(self) -> List[str]:
        return list(self._config.default_colors) or default_palette()

    def random_colors(self) -> List[str]:
        return random_palette(self._config.palette_size)

    def render_svg(self, name: str, variant: str, colors: Sequence[str]) -> str:
        return self._renderer.render(name, variant, colors, size=self._config.size, square=self._config.square)

    def generate(self, name: str, variant: str, colors: Sequence[str]) -> RenderedAvatar:
        """
        Render and rasterize in one go.

        Returns
        -------
        RenderedAvatar
            SVG and PNG that agree on ``(name, variant, colors)``.

        Raises
        ------
        RenderError
            If either step fails; nothing partial is returned.
        """

        svg = self.render_svg(name, variant, colors)
        png = self._rasterizer.to_png(svg)
        LOGGER.debug("Generated %s avatar for %r with %d colors", variant, name, len(colors))
        return RenderedAvatar(name=name, variant=variant, colors=tuple(colors), svg=svg, png=png)

    async def generate_async(self, name: str, variant: str, colors: Sequence[str]) -> RenderedAvatar:
        """Same as :meth:`generate`, off the event loop."""

        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.generate, name, variant, list(colors))
