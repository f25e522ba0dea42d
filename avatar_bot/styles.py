from __future__ import annotations

"""Avatar style catalogue: the slugs users can pick and how we label them."""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple


@dataclass(frozen=True)
class AvatarStyle:
    """One selectable avatar look."""

    slug: str
    label: str
    blurb: str


_STYLES: Tuple[AvatarStyle, ...] = (
    AvatarStyle(slug="marble", label="Marble", blurb="blurred swirls of color"),
    AvatarStyle(slug="beam", label="Beam", blurb="a tilted shape with a little face"),
    AvatarStyle(slug="pixel", label="Pixel", blurb="an 8x8 mosaic"),
    AvatarStyle(slug="sunset", label="Sunset", blurb="two stacked gradients"),
    AvatarStyle(slug="ring", label="Ring", blurb="concentric half rings"),
    AvatarStyle(slug="bauhaus", label="Bauhaus", blurb="a bar, a circle, and a line"),
)

_STYLES_BY_SLUG: Dict[str, AvatarStyle] = {style.slug: style for style in _STYLES}

STYLE_SLUGS: Tuple[str, ...] = tuple(style.slug for style in _STYLES)


def all_styles() -> Tuple[AvatarStyle, ...]:
    return _STYLES


def get_style(slug: Optional[str]) -> Optional[AvatarStyle]:
    if not slug:
        return None
    return _STYLES_BY_SLUG.get(slug.strip().lower())


def is_known_style(slug: Optional[str]) -> bool:
    return get_style(slug) is not None


def describe_style(slug: str) -> str:
    """Return a friendly label for ``slug``, or the slug itself when unknown."""

    style = get_style(slug)
    return style.label if style else slug
