from __future__ import annotations

"""
Convenience imports for the Avatar Bot package.

The drawing side lives here; the chat side lives in ``avatar_bot.telegram``.
"""

from .config import AppConfig, ConfigError, ConfigLoader, RenderConfig
from .generator import AvatarGenerator
from .rasterizer import RasterizeError, SvgRasterizer
from .renderer import AvatarRenderer, RenderError

__all__ = [
    "AppConfig",
    "ConfigError",
    "ConfigLoader",
    "RenderConfig",
    "AvatarGenerator",
    "AvatarRenderer",
    "RasterizeError",
    "RenderError",
    "SvgRasterizer",
]
