from __future__ import annotations

"""
SVG avatar rendering.

Each style turns the avatar name into a 32-bit hash and derives every
offset, rotation and color pick from its digits, so the same
``(name, colors)`` pair always draws the same picture. Output is plain
SVG markup built from templates; rasterizing it is someone else's job.
"""

import logging
from html import escape
from typing import Callable, Dict, List, Optional, Sequence

from .palette import expand_hex, is_hex_color

LOGGER = logging.getLogger(__name__)


class RenderError(Exception):
    """Raised when an avatar cannot be rendered or rasterized."""


def hash_code(name: str) -> int:
    """
    Java-style string hash over UTF-16 code units, folded to a non-negative int.

    Parameters
    ----------
    name : str
        Avatar name.

    Returns
    -------
    int
        ``abs`` of the signed 32-bit hash.
    """

    value = 0
    raw = name.encode("utf-16-le")
    for idx in range(0, len(raw), 2):
        unit = raw[idx] | (raw[idx + 1] << 8)
        value = ((value << 5) - value + unit) & 0xFFFFFFFF
    if value >= 0x80000000:
        value -= 0x100000000
    return abs(value)


def get_digit(number: int, position: int) -> int:
    return (number // 10**position) % 10


def get_boolean(number: int, position: int) -> bool:
    return get_digit(number, position) % 2 == 0


def get_unit(number: int, span: int, index: Optional[int] = None) -> int:
    value = number % span
    if index and get_digit(number, index) % 2 == 0:
        return -value
    return value


def pick_color(number: int, colors: Sequence[str]) -> str:
    return colors[number % len(colors)]


def contrast_color(color: str) -> str:
    """Black or white, whichever reads better on ``color`` (YIQ brightness)."""

    digits = expand_hex(color).lstrip("#")
    red, green, blue = (int(digits[pos : pos + 2], 16) for pos in (0, 2, 4))
    yiq = (red * 299 + green * 587 + blue * 114) / 1000
    return "#000000" if yiq >= 128 else "#FFFFFF"


def _num(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.4f}".rstrip("0").rstrip(".")


def _wrap(name: str, view: int, size: int, body: str) -> str:
    return (
        f'<svg viewBox="0 0 {view} {view}" fill="none" role="img" xmlns="http://www.w3.org/2000/svg" '
        f'width="{size}" height="{size}">'
        f"<title>{escape(name)}</title>"
        f"{body}"
        "</svg>"
    )


def _mask(mask_id: str, view: int, square: bool) -> str:
    corner = "" if square else f' rx="{view * 2}"'
    return (
        f'<mask id="{mask_id}" maskUnits="userSpaceOnUse" x="0" y="0" width="{view}" height="{view}">'
        f'<rect width="{view}" height="{view}"{corner} fill="#FFFFFF"/>'
        "</mask>"
    )


def render_marble(name: str, colors: Sequence[str], size: int, square: bool) -> str:
    view = 80
    seed = hash_code(name)
    parts = []
    for idx in range(3):
        scaled = seed * (idx + 1)
        parts.append(
            {
                "color": pick_color(seed + idx, colors),
                "tx": get_unit(scaled, view // 10, 1),
                "ty": get_unit(scaled, view // 10, 2),
                "scale": 1.2 + get_unit(scaled, view // 20) / 10,
                "rotate": get_unit(scaled, 360, 1),
            }
        )

    def transform(part: dict) -> str:
        return (
            f'translate({_num(part["tx"])} {_num(part["ty"])}) '
            f'rotate({_num(part["rotate"])} {view // 2} {view // 2}) scale({_num(part["scale"])})'
        )

    mask_id = f"mask__marble{seed}"
    filter_id = f"filter__marble{seed}"
    body = (
        _mask(mask_id, view, square)
        + f'<g mask="url(#{mask_id})">'
        + f'<rect width="{view}" height="{view}" fill="{parts[0]["color"]}"/>'
        + f'<path filter="url(#{filter_id})" '
        'd="M32.414 59.35L50.376 70.5H72.5v-71H33.728L26.5 13.381l19.057 27.08L32.414 59.35z" '
        f'fill="{parts[1]["color"]}" transform="{transform(parts[1])}"/>'
        + f'<path filter="url(#{filter_id})" style="mix-blend-mode:overlay" '
        'd="M22.216 24L0 46.75l14.108 38.129L78 86l-3.081-59.276-22.378 4.005 12.972 20.186-23.35 27.395L22.215 24z" '
        f'fill="{parts[2]["color"]}" transform="{transform(parts[2])}"/>'
        + "</g>"
        + "<defs>"
        + f'<filter id="{filter_id}" filterUnits="userSpaceOnUse" color-interpolation-filters="sRGB">'
        '<feFlood flood-opacity="0" result="BackgroundImageFix"/>'
        '<feBlend in="SourceGraphic" in2="BackgroundImageFix" result="shape"/>'
        '<feGaussianBlur stdDeviation="7" result="effect1_foregroundBlur"/>'
        "</filter>"
        "</defs>"
    )
    return _wrap(name, view, size, body)


def render_beam(name: str, colors: Sequence[str], size: int, square: bool) -> str:
    view = 36
    seed = hash_code(name)
    wrapper_color = pick_color(seed, colors)
    pre_x = get_unit(seed, 10, 1)
    wrapper_x = pre_x + view / 9 if pre_x < 5 else pre_x
    pre_y = get_unit(seed, 10, 2)
    wrapper_y = pre_y + view / 9 if pre_y < 5 else pre_y
    face_color = contrast_color(wrapper_color)
    background = pick_color(seed + 13, colors)
    wrapper_rotate = get_unit(seed, 360)
    wrapper_scale = 1 + get_unit(seed, view // 12) / 10
    mouth_open = get_boolean(seed, 2)
    is_circle = get_boolean(seed, 1)
    eye_spread = get_unit(seed, 5)
    mouth_spread = get_unit(seed, 3)
    face_rotate = get_unit(seed, 10, 3)
    face_x = wrapper_x / 2 if wrapper_x > view / 6 else get_unit(seed, 8, 1)
    face_y = wrapper_y / 2 if wrapper_y > view / 6 else get_unit(seed, 7, 2)

    if mouth_open:
        mouth = (
            f'<path d="M15 {_num(19 + mouth_spread)}c2 1 4 1 6 0" stroke="{face_color}" '
            'fill="none" stroke-linecap="round"/>'
        )
    else:
        mouth = f'<path d="M13,{_num(19 + mouth_spread)} a1,0.75 0 0,0 10,0" fill="{face_color}"/>'

    mask_id = f"mask__beam{seed}"
    half = view // 2
    body = (
        _mask(mask_id, view, square)
        + f'<g mask="url(#{mask_id})">'
        + f'<rect width="{view}" height="{view}" fill="{background}"/>'
        + f'<rect x="0" y="0" width="{view}" height="{view}" '
        f'transform="translate({_num(wrapper_x)} {_num(wrapper_y)}) rotate({_num(wrapper_rotate)} {half} {half}) '
        f'scale({_num(wrapper_scale)})" fill="{wrapper_color}" rx="{view if is_circle else 6}"/>'
        + f'<g transform="translate({_num(face_x)} {_num(face_y)}) rotate({_num(face_rotate)} {half} {half})">'
        + mouth
        + f'<rect x="{_num(14 - eye_spread)}" y="14" width="1.5" height="2" rx="1" stroke="none" fill="{face_color}"/>'
        + f'<rect x="{_num(20 + eye_spread)}" y="14" width="1.5" height="2" rx="1" stroke="none" fill="{face_color}"/>'
        + "</g>"
        + "</g>"
    )
    return _wrap(name, view, size, body)


def render_pixel(name: str, colors: Sequence[str], size: int, square: bool) -> str:
    view = 80
    cell = 10
    seed = hash_code(name)
    cells = []
    for idx in range(64):
        color = pick_color(seed % (idx + 1), colors)
        x = (idx % 8) * cell
        y = (idx // 8) * cell
        cells.append(f'<rect x="{x}" y="{y}" width="{cell}" height="{cell}" fill="{color}"/>')

    mask_id = f"mask__pixel{seed}"
    body = _mask(mask_id, view, square) + f'<g mask="url(#{mask_id})">' + "".join(cells) + "</g>"
    return _wrap(name, view, size, body)


def render_sunset(name: str, colors: Sequence[str], size: int, square: bool) -> str:
    view = 80
    half = view // 2
    seed = hash_code(name)
    picks = [pick_color(seed + idx, colors) for idx in range(4)]
    top_id = f"gradient__sunset_top{seed}"
    bottom_id = f"gradient__sunset_bottom{seed}"
    mask_id = f"mask__sunset{seed}"
    body = (
        _mask(mask_id, view, square)
        + f'<g mask="url(#{mask_id})">'
        + f'<path fill="url(#{top_id})" d="M0 0h{view}v{half}H0z"/>'
        + f'<path fill="url(#{bottom_id})" d="M0 {half}h{view}v{half}H0z"/>'
        + "</g>"
        + "<defs>"
        + f'<linearGradient id="{top_id}" x1="{half}" y1="0" x2="{half}" y2="{half}" gradientUnits="userSpaceOnUse">'
        f'<stop stop-color="{picks[0]}"/><stop offset="1" stop-color="{picks[1]}"/>'
        "</linearGradient>"
        + f'<linearGradient id="{bottom_id}" x1="{half}" y1="{half}" x2="{half}" y2="{view}" gradientUnits="userSpaceOnUse">'
        f'<stop stop-color="{picks[2]}"/><stop offset="1" stop-color="{picks[3]}"/>'
        "</linearGradient>"
        + "</defs>"
    )
    return _wrap(name, view, size, body)


def render_ring(name: str, colors: Sequence[str], size: int, square: bool) -> str:
    view = 90
    seed = hash_code(name)
    shuffled = [pick_color(seed + idx, colors) for idx in range(5)]
    fills = [
        shuffled[0],
        shuffled[1],
        shuffled[1],
        shuffled[2],
        shuffled[2],
        shuffled[3],
        shuffled[3],
        shuffled[0],
        shuffled[4],
    ]
    shapes = (
        "M0 0h90v45H0z",
        "M0 45h90v45H0z",
        "M83 45a38 38 0 00-76 0h76z",
        "M83 45a38 38 0 01-76 0h76z",
        "M77 45a32 32 0 10-64 0h64z",
        "M77 45a32 32 0 11-64 0h64z",
        "M71 45a26 26 0 00-52 0h52z",
        "M71 45a26 26 0 01-52 0h52z",
    )
    paths = "".join(f'<path d="{shape}" fill="{fill}"/>' for shape, fill in zip(shapes, fills))
    mask_id = f"mask__ring{seed}"
    body = (
        _mask(mask_id, view, square)
        + f'<g mask="url(#{mask_id})">'
        + paths
        + f'<circle cx="45" cy="45" r="23" fill="{fills[8]}"/>'
        + "</g>"
    )
    return _wrap(name, view, size, body)


def render_bauhaus(name: str, colors: Sequence[str], size: int, square: bool) -> str:
    view = 80
    half = view // 2
    seed = hash_code(name)
    parts = []
    for idx in range(4):
        scaled = seed * (idx + 1)
        span = half - (idx + 17)
        parts.append(
            {
                "color": pick_color(seed + idx, colors),
                "tx": get_unit(scaled, span, 1),
                "ty": get_unit(scaled, span, 2),
                "rotate": get_unit(scaled, 360),
                "square": get_boolean(seed, 2),
            }
        )

    mask_id = f"mask__bauhaus{seed}"
    bar, circle, line = parts[1], parts[2], parts[3]
    body = (
        _mask(mask_id, view, square)
        + f'<g mask="url(#{mask_id})">'
        + f'<rect width="{view}" height="{view}" fill="{parts[0]["color"]}"/>'
        + f'<rect x="{(view - 60) // 2}" y="{(view - 20) // 2}" width="{view}" '
        f'height="{view if bar["square"] else 10}" fill="{bar["color"]}" '
        f'transform="translate({bar["tx"]} {bar["ty"]}) rotate({bar["rotate"]} {half} {half})"/>'
        + f'<circle cx="{half}" cy="{half}" fill="{circle["color"]}" r="{view // 5}" '
        f'transform="translate({circle["tx"]} {circle["ty"]})"/>'
        + f'<line x1="0" y1="{half}" x2="{view}" y2="{half}" stroke-width="2" stroke="{line["color"]}" '
        f'transform="translate({line["tx"]} {line["ty"]}) rotate({line["rotate"]} {half} {half})"/>'
        + "</g>"
    )
    return _wrap(name, view, size, body)


_RENDERERS: Dict[str, Callable[[str, Sequence[str], int, bool], str]] = {
    "marble": render_marble,
    "beam": render_beam,
    "pixel": render_pixel,
    "sunset": render_sunset,
    "ring": render_ring,
    "bauhaus": render_bauhaus,
}


class AvatarRenderer:
    """Produces SVG markup for a ``(name, variant, colors)`` triple."""

    def render(self, name: str, variant: str, colors: Sequence[str], size: int, square: bool = True) -> str:
        """
        Render one avatar.

        Parameters
        ----------
        name : str
            Text the picture is derived from.
        variant : str
            Style slug, see :mod:`avatar_bot.styles`.
        colors : Sequence[str]
            HEX palette, at least one entry.
        size : int
            Width and height of the output in pixels.
        square : bool, optional
            Square corners when ``True``, a circle otherwise.

        Returns
        -------
        str
            The SVG document.

        Raises
        ------
        RenderError
            On an unknown style, an empty or malformed palette, or a bad size.
        """

        draw = _RENDERERS.get(variant)
        if draw is None:
            raise RenderError(f"Unknown avatar style: {variant}")
        palette: List[str] = list(colors)
        if not palette:
            raise RenderError("At least one color is required.")
        bad = [color for color in palette if not is_hex_color(color)]
        if bad:
            raise RenderError(f"Not HEX colors: {', '.join(bad)}")
        if size <= 0:
            raise RenderError(f"Invalid avatar size: {size}")

        svg = draw(name, palette, size, square)
        LOGGER.debug("Rendered %s avatar for %r (%d bytes)", variant, name, len(svg))
        return svg
