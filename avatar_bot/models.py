from __future__ import annotations

"""
Data models for Avatar Bot.

A dialog session is exactly one of the state classes below. Each carries
only the fields that make sense at that step, so a preview always knows
its message and nothing else ever pretends to.
"""

from dataclasses import dataclass
from typing import ClassVar, Tuple, Union


@dataclass(frozen=True)
class RenderedAvatar:
    """An SVG and the PNG made from it, plus the parameters that produced both."""

    name: str
    variant: str
    colors: Tuple[str, ...]
    svg: str
    png: bytes


@dataclass(frozen=True)
class TypeSelection:
    """Waiting for the first style pick."""

    step: ClassVar[str] = "type_selection"

    name: str


@dataclass(frozen=True)
class ColorMethodSelection:
    """Style chosen; waiting for random, default, or custom colors."""

    step: ClassVar[str] = "color_method_selection"

    name: str
    variant: str


@dataclass(frozen=True)
class AwaitingCustomColors:
    """Waiting for a typed HEX list."""

    step: ClassVar[str] = "awaiting_custom_colors"

    name: str
    variant: str
    prompt_message_id: int


@dataclass(frozen=True)
class Preview:
    """A rendered avatar is on screen with the follow-up buttons."""

    step: ClassVar[str] = "preview"

    name: str
    variant: str
    colors: Tuple[str, ...]
    svg: str
    preview_message_id: int

    @classmethod
    def from_render(cls, avatar: RenderedAvatar, preview_message_id: int) -> "Preview":
        return cls(
            name=avatar.name,
            variant=avatar.variant,
            colors=avatar.colors,
            svg=avatar.svg,
            preview_message_id=preview_message_id,
        )


@dataclass(frozen=True)
class SelectingNewStyle:
    """Preview dismissed; waiting for a replacement style, colors kept."""

    step: ClassVar[str] = "selecting_new_style"

    name: str
    variant: str
    colors: Tuple[str, ...]
    svg: str


Session = Union[TypeSelection, ColorMethodSelection, AwaitingCustomColors, Preview, SelectingNewStyle]
