from __future__ import annotations

"""Palette helpers: random draws and parsing of user-typed HEX lists."""

import random
import re
from typing import List, Optional

DEFAULT_PALETTE_SIZE = 5
DEFAULT_COLORS = ("#92A1C6", "#146A7C", "#F0AB3D", "#C271B4", "#C20D90")

_HEX_COLOR = re.compile(r"^#([0-9a-f]{3}|[0-9a-f]{6})$", re.IGNORECASE)


class ColorParseError(ValueError):
    """Raised when a custom color list contains anything that is not a HEX color."""

    def __init__(self, message: str, invalid: Optional[List[str]] = None):
        super().__init__(message)
        self.invalid = invalid or []


def default_palette() -> List[str]:
    return list(DEFAULT_COLORS)


def random_palette(count: int = DEFAULT_PALETTE_SIZE, rng: Optional[random.Random] = None) -> List[str]:
    """
    Draw ``count`` independent 24-bit colors.

    Parameters
    ----------
    count : int, optional
        Palette length, five by default.
    rng : random.Random, optional
        Source of randomness; the module-level generator when omitted.

    Returns
    -------
    list[str]
        Lowercase ``#rrggbb`` strings. Duplicates are allowed.
    """

    source = rng or random
    return [f"#{source.randrange(0x1000000):06x}" for _ in range(count)]


def is_hex_color(value: str) -> bool:
    return bool(_HEX_COLOR.match(value))


def parse_custom_colors(text: str) -> List[str]:
    """
    Turn ``"#ff0000, 00ff00, abc"`` into ``["#ff0000", "#00ff00", "#abc"]``.

    Pieces are split on commas, trimmed, and empty ones dropped. A missing
    ``#`` is added. The input is accepted only if every piece is a 3- or
    6-digit HEX color.

    Raises
    ------
    ColorParseError
        If nothing usable was given or any piece is malformed.
    """

    colors: List[str] = []
    for piece in (text or "").split(","):
        token = piece.strip()
        if not token:
            continue
        if not token.startswith("#"):
            token = f"#{token}"
        colors.append(token)

    if not colors:
        raise ColorParseError("No colors given.")

    invalid = [color for color in colors if not is_hex_color(color)]
    if invalid:
        raise ColorParseError(f"Not HEX colors: {', '.join(invalid)}", invalid=invalid)
    return colors


def expand_hex(color: str) -> str:
    """Expand ``#abc`` to ``#aabbcc``; six-digit colors pass through unchanged."""

    digits = color.lstrip("#")
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    return f"#{digits}"
