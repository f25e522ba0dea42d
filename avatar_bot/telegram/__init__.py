"""
Telegram bot components for avatar_bot.
"""

from .controller import AvatarDialogController
from .keyboards import KeyboardBuilder
from .messages import MessageFactory, DEFAULT_ERROR_TEXTS
from .sessions import SessionStore

__all__ = [
    "AvatarDialogController",
    "KeyboardBuilder",
    "MessageFactory",
    "DEFAULT_ERROR_TEXTS",
    "SessionStore",
]
