from __future__ import annotations

"""
Pytest configuration helpers.

Puts the repository root on ``sys.path`` so ``avatar_bot`` imports without an
install, and hands out the small objects most tests want.
"""

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]

if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from avatar_bot.renderer import AvatarRenderer  # noqa: E402
from avatar_bot.telegram.controller import AvatarDialogController  # noqa: E402
from avatar_bot.telegram.keyboards import KeyboardBuilder  # noqa: E402


@pytest.fixture
def renderer() -> AvatarRenderer:
    return AvatarRenderer()


@pytest.fixture
def keyboards() -> KeyboardBuilder:
    return AvatarDialogController.build_keyboards()
