from typing import List, Sequence

from telegram import InlineKeyboardButton, InlineKeyboardMarkup

from avatar_bot.styles import AvatarStyle, all_styles


class KeyboardBuilder:
    def __init__(
        self,
        style_prefix: str,
        color_prefix: str,
        regenerate_callback: str,
        change_style_callback: str,
        export_svg_callback: str,
        back_to_colors_callback: str,
        back_to_style_callback: str,
        cancel_callback: str,
        styles: Sequence[AvatarStyle] = (),
    ) -> None:
        self._style_prefix = style_prefix
        self._color_prefix = color_prefix
        self._regenerate_callback = regenerate_callback
        self._change_style_callback = change_style_callback
        self._export_svg_callback = export_svg_callback
        self._back_to_colors_callback = back_to_colors_callback
        self._back_to_style_callback = back_to_style_callback
        self._cancel_callback = cancel_callback
        self._styles = tuple(styles) or all_styles()

    def _cancel_button(self) -> InlineKeyboardButton:
        return InlineKeyboardButton("❌ Cancel", callback_data=self._cancel_callback)

    def style_keyboard(self) -> InlineKeyboardMarkup:
        buttons: List[List[InlineKeyboardButton]] = []
        row: List[InlineKeyboardButton] = []
        for style in self._styles:
            row.append(InlineKeyboardButton(style.label, callback_data=f"{self._style_prefix}{style.slug}"))
            if len(row) == 2:
                buttons.append(row)
                row = []
        if row:
            buttons.append(row)
        buttons.append([self._cancel_button()])
        return InlineKeyboardMarkup(buttons)

    def color_method_keyboard(self) -> InlineKeyboardMarkup:
        return InlineKeyboardMarkup(
            [
                [InlineKeyboardButton("🎨 Random palette", callback_data=f"{self._color_prefix}random")],
                [InlineKeyboardButton("🖌️ Default colors", callback_data=f"{self._color_prefix}default")],
                [InlineKeyboardButton("⌨️ Type my own colors", callback_data=f"{self._color_prefix}custom")],
                [
                    InlineKeyboardButton("⬅️ Back to styles", callback_data=self._back_to_style_callback),
                    self._cancel_button(),
                ],
            ]
        )

    def custom_colors_keyboard(self) -> InlineKeyboardMarkup:
        return InlineKeyboardMarkup(
            [
                [InlineKeyboardButton("⬅️ Back to palette options", callback_data=self._back_to_colors_callback)],
                [self._cancel_button()],
            ]
        )

    def preview_keyboard(self) -> InlineKeyboardMarkup:
        return InlineKeyboardMarkup(
            [
                [
                    InlineKeyboardButton("🎨 New colors", callback_data=self._regenerate_callback),
                    InlineKeyboardButton("🔄 Change style", callback_data=self._change_style_callback),
                ],
                [
                    InlineKeyboardButton("💾 Get SVG", callback_data=self._export_svg_callback),
                    InlineKeyboardButton("🎨 Other colors", callback_data=self._back_to_colors_callback),
                ],
                [self._cancel_button()],
            ]
        )
