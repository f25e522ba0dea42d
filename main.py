#!/usr/bin/env python3
from __future__ import annotations

"""
Command-line avatar renderer.

Same drawing code as the bot, minus the chat: pick a name, a style and a
palette, and the SVG (plus a PNG, unless told otherwise) lands on disk.
"""

import argparse
import logging
from pathlib import Path
from typing import Any, List

from avatar_bot.config import AppConfig, ConfigError, ConfigLoader
from avatar_bot.generator import AvatarGenerator
from avatar_bot.palette import ColorParseError, parse_custom_colors
from avatar_bot.rasterizer import SvgRasterizer
from avatar_bot.renderer import AvatarRenderer, RenderError
from avatar_bot.styles import STYLE_SLUGS
from avatar_bot.telegram.messages import MessageFactory


def parse_args() -> argparse.Namespace:
    """
    Build and parse the CLI arguments.

    Returns
    -------
    argparse.Namespace
        The parsed arguments.
    """

    parser = argparse.ArgumentParser(description="Render a generated avatar to SVG and PNG.")
    parser.add_argument("name", help="Text the avatar is derived from.")
    parser.add_argument("--variant", default="beam", choices=STYLE_SLUGS, help="Avatar style (default: beam).")
    palette = parser.add_mutually_exclusive_group()
    palette.add_argument("--colors", help='Comma-separated HEX colors, e.g. "#ff0000, 00ff00, abc".')
    palette.add_argument("--random", action="store_true", help="Use a random palette instead of the default one.")
    parser.add_argument("--size", type=int, help="Output size in pixels (default: 800).")
    parser.add_argument(
        "--round", dest="square", action="store_const", const=False, default=None, help="Clip the avatar to a circle."
    )
    parser.add_argument("--output-dir", default=".", help="Where to write the files (default: current directory).")
    parser.add_argument("--svg-only", action="store_true", help="Skip the PNG.")
    parser.add_argument("--config", help="Optional JSON configuration file.")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging regardless of config.")
    return parser.parse_args()


def configure_logging(config: AppConfig, debug: bool) -> None:
    """
    Funnel the logging level into place.

    Parameters
    ----------
    config : AppConfig
        Loaded configuration with its chosen verbosity.
    debug : bool
        When ``True`` we skip straight to DEBUG.
    """

    level_name = "DEBUG" if debug else config.logging.level.upper()
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def collect_overrides(args: argparse.Namespace) -> dict[str, Any]:
    return {
        "size": args.size,
        "square": args.square,
    }


def resolve_colors(args: argparse.Namespace, generator: AvatarGenerator) -> List[str]:
    if args.colors:
        return parse_custom_colors(args.colors)
    if args.random:
        return generator.random_colors()
    return generator.default_colors()


def main() -> None:
    """
    Run the CLI workflow.

    Steps
    -----
    1. Parse CLI arguments and load config.
    2. Work out the palette.
    3. Render the SVG, optionally rasterize it, and write both out.
    """

    args = parse_args()

    try:
        config = ConfigLoader(args.config).load()
    except ConfigError as exc:
        raise SystemExit(str(exc)) from exc

    config = ConfigLoader.apply_overrides(config, collect_overrides(args))
    configure_logging(config, args.debug)

    rasterizer = SvgRasterizer()
    if not args.svg_only:
        rasterizer.ensure_available()
    generator = AvatarGenerator(AvatarRenderer(), rasterizer, config.render)

    try:
        colors = resolve_colors(args, generator)
    except ColorParseError as exc:
        raise SystemExit(f"ERROR: {exc}") from exc

    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    svg_path = output_dir / MessageFactory.svg_filename(args.name, args.variant)

    logging.info("Rendering %s avatar for %r with colors %s", args.variant, args.name, ", ".join(colors))
    try:
        if args.svg_only:
            svg = generator.render_svg(args.name, args.variant, colors)
            png = None
        else:
            avatar = generator.generate(args.name, args.variant, colors)
            svg, png = avatar.svg, avatar.png
    except RenderError as exc:
        raise SystemExit(f"ERROR: {exc}") from exc

    svg_path.write_text(svg, encoding="utf-8")
    logging.info("Wrote %s", svg_path)
    if png is not None:
        png_path = svg_path.with_suffix(".png")
        png_path.write_bytes(png)
        logging.info("Wrote %s", png_path)

    logging.info("Done.")


if __name__ == "__main__":
    main()
