import re
from typing import Dict, Optional, Sequence

from avatar_bot.styles import all_styles, describe_style

_UNSAFE_FILENAME_CHARS = re.compile(r"[^0-9A-Za-zА-Яа-яЁё]")
_MAX_FILENAME_STEM = 30

DEFAULT_ERROR_TEXTS = {
    "render": "Something went wrong while drawing the avatar. Start again with /avatar <name>.",
    "preview": "Sorry, I couldn't send the preview image. Start again with /avatar <name>.",
    "regenerate": "Couldn't draw new colors this time. Tap 🎨 New colors to try again.",
    "restyle": "Couldn't draw that style. Pick another one or try again.",
    "export": "😔 Couldn't send the SVG file. Tap 💾 Get SVG to try again.",
    "nothing_to_export": "There is no finished avatar to export yet. Start with /avatar <name>.",
    "send_failed": "Telegram didn't take my reply. The preview is still here, tap the button again.",
    "internal": "⚠️ Something broke on my side. It has been logged; please try again.",
}


class MessageFactory:
    def __init__(self, error_texts: Optional[Dict[str, str]] = None) -> None:
        # Copy to avoid accidental mutation of defaults.
        self._errors = dict(DEFAULT_ERROR_TEXTS)
        if error_texts:
            self._errors.update(error_texts)

    def error(self, key: str) -> str:
        return self._errors.get(key, self._errors["internal"])

    @staticmethod
    def greeting() -> str:
        styles = ", ".join(style.slug for style in all_styles())
        return (
            "Hi! 👋\n"
            "I draw unique generated avatars.\n\n"
            "Send me:\n"
            "`/avatar YourName`\n\n"
            f"Then pick a style ({styles}) and a palette. ✨"
        )

    @staticmethod
    def usage_hint() -> str:
        return "Tell me what to draw after the command, e.g. `/avatar MyCoolName`."

    @staticmethod
    def style_prompt(name: str) -> str:
        return f"Great! Using the text “{name}”.\nNow choose an avatar style:"

    @staticmethod
    def style_prompt_again(name: str) -> str:
        return f"OK, back to choosing a style for “{name}”:"

    @staticmethod
    def new_style_prompt(name: str, colors: Sequence[str]) -> str:
        return f"Changing the style for “{name}”. Pick a new one:\n(Current colors [{', '.join(colors)}] will be kept)"

    @staticmethod
    def color_method_prompt(variant: str) -> str:
        return f"Style selected: {describe_style(variant)}.\nNow let's sort out the colors:"

    @staticmethod
    def custom_colors_prompt() -> str:
        return (
            "OK. Send me a comma-separated list of colors.\n\n"
            "*Example:*\n"
            "#ff0000, 0000ff, #aabbcc\n"
            "(With or without #, 3 or 6 hex digits)"
        )

    @staticmethod
    def invalid_colors() -> str:
        return (
            "🚫 Those don't look like colors. Separate them with commas and use HEX codes "
            "(for example `#ff0000, 00ff00, abc`). Try again."
        )

    @staticmethod
    def working(name: str, variant: str) -> str:
        return f"⏳ Generating avatar “{name}” (style: {describe_style(variant)})…"

    @staticmethod
    def preview_caption(name: str, variant: str) -> str:
        return f"Here is the preview for “{name}” (style: {describe_style(variant)}).\nWhat next?"

    @staticmethod
    def regenerated_caption(name: str, variant: str) -> str:
        return f"Preview for “{name}” (style: {describe_style(variant)}). Colors updated! What next?"

    @staticmethod
    def regenerating_toast() -> str:
        return "🎨 Generating new colors…"

    @staticmethod
    def export_caption(name: str) -> str:
        return f"✅ Your SVG file for “{name}” is ready!"

    @staticmethod
    def cancelled() -> str:
        return "Avatar creation cancelled."

    @staticmethod
    def unexpected_action() -> str:
        return "Unexpected action"

    @staticmethod
    def svg_filename(name: str, variant: str) -> str:
        """
        Build a download name such as ``My_Name_beam.svg``.

        Anything that is not a Latin or Cyrillic letter or a digit becomes
        ``_``; the name part is capped at 30 characters.
        """

        stem = _UNSAFE_FILENAME_CHARS.sub("_", name)[:_MAX_FILENAME_STEM] or "avatar"
        return f"{stem}_{variant}.svg"
