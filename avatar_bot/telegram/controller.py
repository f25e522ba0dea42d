import logging
from typing import Optional, Tuple

from telegram import InputMediaPhoto, Update
from telegram.constants import ParseMode
from telegram.error import InvalidToken, TelegramError
from telegram.ext import ContextTypes

from avatar_bot.generator import AvatarGenerator
from avatar_bot.models import (
    AwaitingCustomColors,
    ColorMethodSelection,
    Preview,
    RenderedAvatar,
    SelectingNewStyle,
    Session,
    TypeSelection,
)
from avatar_bot.palette import ColorParseError, parse_custom_colors
from avatar_bot.renderer import RenderError
from avatar_bot.styles import get_style, is_known_style

from .keyboards import KeyboardBuilder
from .messages import MessageFactory
from .sessions import SessionStore

LOGGER = logging.getLogger(__name__)


class AvatarDialogController:
    """Walks a chat through name, style, and colors, then hands over the avatar."""

    STYLE_PREFIX = "style:"
    COLOR_PREFIX = "colors:"
    REGENERATE_CALLBACK = "preview:regenerate"
    CHANGE_STYLE_CALLBACK = "preview:restyle"
    EXPORT_SVG_CALLBACK = "preview:svg"
    BACK_TO_COLORS_CALLBACK = "back:colors"
    BACK_TO_STYLE_CALLBACK = "back:style"
    CANCEL_CALLBACK = "cancel"

    def __init__(
        self,
        generator: AvatarGenerator,
        sessions: SessionStore,
        keyboards: KeyboardBuilder,
        messages: MessageFactory,
    ) -> None:
        self._generator = generator
        self._sessions = sessions
        self._keyboards = keyboards
        self._messages = messages

    @classmethod
    def build_keyboards(cls) -> KeyboardBuilder:
        return KeyboardBuilder(
            style_prefix=cls.STYLE_PREFIX,
            color_prefix=cls.COLOR_PREFIX,
            regenerate_callback=cls.REGENERATE_CALLBACK,
            change_style_callback=cls.CHANGE_STYLE_CALLBACK,
            export_svg_callback=cls.EXPORT_SVG_CALLBACK,
            back_to_colors_callback=cls.BACK_TO_COLORS_CALLBACK,
            back_to_style_callback=cls.BACK_TO_STYLE_CALLBACK,
            cancel_callback=cls.CANCEL_CALLBACK,
        )

    async def handle_start(self, update: Update, _: ContextTypes.DEFAULT_TYPE) -> None:
        chat_id = update.effective_chat.id if update.effective_chat else None
        if chat_id is None:
            return
        async with self._sessions.lock(chat_id):
            if self._sessions.clear(chat_id) is not None:
                LOGGER.debug("Chat %s: session reset by /start", chat_id)
            await self._reply(update, self._messages.greeting(), markdown=True)

    async def handle_help(self, update: Update, _: ContextTypes.DEFAULT_TYPE) -> None:
        await self._reply(update, self._messages.greeting(), markdown=True)

    async def handle_avatar(self, update: Update, _: ContextTypes.DEFAULT_TYPE) -> None:
        message = update.message
        chat_id = update.effective_chat.id if update.effective_chat else None
        if not message or chat_id is None:
            return

        name = self._command_argument(message.text)
        if not name:
            await self._reply(update, self._messages.usage_hint(), markdown=True)
            return

        async with self._sessions.lock(chat_id):
            self._sessions.start(chat_id, name)
            LOGGER.debug("Chat %s: new session for %r", chat_id, name)
            await self._reply(
                update,
                self._messages.style_prompt(name),
                reply_markup=self._keyboards.style_keyboard(),
            )

    async def handle_text(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        if not update.message or not update.message.text:
            return

        chat_id = update.effective_chat.id if update.effective_chat else None
        if chat_id is None:
            LOGGER.debug("Skipping message without chat.")
            return

        async with self._sessions.lock(chat_id):
            session = self._sessions.get(chat_id)
            if not isinstance(session, AwaitingCustomColors):
                return

            try:
                colors = parse_custom_colors(update.message.text)
            except ColorParseError as exc:
                LOGGER.debug("Chat %s: rejected custom colors: %s", chat_id, exc)
                await self._reply(update, self._messages.invalid_colors(), markdown=True)
                return

            bot = context.bot
            await self._quietly(
                bot.edit_message_reply_markup(chat_id=chat_id, message_id=session.prompt_message_id, reply_markup=None),
                "clear the custom colors prompt",
            )
            await self._render_first_preview(bot, chat_id, session.name, session.variant, colors)

    async def handle_callback(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        query = update.callback_query
        if not query or not query.data:
            return

        message = query.message
        if message is None:
            LOGGER.warning("Callback %s arrived for a message that no longer exists.", query.data)
            await self._answer(query, self._messages.unexpected_action())
            return

        chat_id = message.chat_id
        async with self._sessions.lock(chat_id):
            await self._dispatch_callback(query, message, chat_id, context.bot)

    async def handle_error(self, update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
        error = context.error
        if isinstance(error, InvalidToken):
            LOGGER.critical("Telegram rejected the bot token; stopping.")
            context.application.stop_running()
            return

        LOGGER.exception("Unhandled error while processing an update", exc_info=error)
        if isinstance(update, Update) and update.effective_message:
            try:
                await update.effective_message.reply_text(self._messages.error("internal"))
            except TelegramError:
                LOGGER.debug("Could not report the error to the chat either.")

    async def _dispatch_callback(self, query, message, chat_id: int, bot) -> None:
        data = query.data
        session = self._sessions.get(chat_id)
        LOGGER.debug("Chat %s: callback %s in %s", chat_id, data, session.step if session else "no session")

        if data == self.CANCEL_CALLBACK:
            await self._answer(query)
            await self._cancel(bot, chat_id, message)
            return
        if data == self.BACK_TO_STYLE_CALLBACK:
            await self._back_to_style(query, message, chat_id, bot, session)
            return
        if data == self.BACK_TO_COLORS_CALLBACK:
            await self._back_to_colors(query, message, chat_id, bot, session)
            return
        if data.startswith(self.STYLE_PREFIX):
            await self._style_selected(query, message, chat_id, bot, session, data[len(self.STYLE_PREFIX) :])
            return
        if data.startswith(self.COLOR_PREFIX):
            await self._color_method_selected(query, message, chat_id, bot, session, data[len(self.COLOR_PREFIX) :])
            return
        if data in (self.REGENERATE_CALLBACK, self.CHANGE_STYLE_CALLBACK, self.EXPORT_SVG_CALLBACK):
            await self._preview_action(query, message, chat_id, bot, session, data)
            return

        await self._reject(query, chat_id, data, session)

    async def _style_selected(self, query, message, chat_id: int, bot, session: Optional[Session], variant: str) -> None:
        if not is_known_style(variant) or not isinstance(session, (TypeSelection, SelectingNewStyle)):
            await self._reject(query, chat_id, f"{self.STYLE_PREFIX}{variant}", session)
            return

        await self._answer(query)
        variant = get_style(variant).slug
        if isinstance(session, TypeSelection):
            self._sessions.set(chat_id, ColorMethodSelection(name=session.name, variant=variant))
            await self._show(
                bot,
                chat_id,
                message.message_id,
                self._messages.color_method_prompt(variant),
                self._keyboards.color_method_keyboard(),
            )
            return

        avatar, working_id = await self._render_with_progress(
            bot, chat_id, session.name, variant, session.colors, reuse_message_id=message.message_id
        )
        if avatar is None:
            # Keep the old style and colors so another pick can succeed.
            await self._show(
                bot,
                chat_id,
                working_id,
                self._messages.error("restyle"),
                self._keyboards.style_keyboard(),
            )
            return
        await self._present(bot, chat_id, avatar, working_id)

    async def _color_method_selected(
        self, query, message, chat_id: int, bot, session: Optional[Session], method: str
    ) -> None:
        if not isinstance(session, ColorMethodSelection) or method not in ("random", "default", "custom"):
            await self._reject(query, chat_id, f"{self.COLOR_PREFIX}{method}", session)
            return

        await self._answer(query)
        if method == "custom":
            self._sessions.set(
                chat_id,
                AwaitingCustomColors(name=session.name, variant=session.variant, prompt_message_id=message.message_id),
            )
            await self._show(
                bot,
                chat_id,
                message.message_id,
                self._messages.custom_colors_prompt(),
                self._keyboards.custom_colors_keyboard(),
                parse_mode=ParseMode.MARKDOWN,
            )
            return

        colors = self._generator.random_colors() if method == "random" else self._generator.default_colors()
        await self._render_first_preview(
            bot, chat_id, session.name, session.variant, colors, reuse_message_id=message.message_id
        )

    async def _preview_action(self, query, message, chat_id: int, bot, session: Optional[Session], data: str) -> None:
        if not isinstance(session, Preview) or session.preview_message_id != message.message_id:
            await self._reject(query, chat_id, data, session)
            if data == self.EXPORT_SVG_CALLBACK:
                await self._quietly(
                    bot.send_message(chat_id=chat_id, text=self._messages.error("nothing_to_export")),
                    "explain the missing export",
                )
            return

        if data == self.REGENERATE_CALLBACK:
            await self._answer(query, self._messages.regenerating_toast())
            await self._regenerate_colors(bot, chat_id, session)
        elif data == self.CHANGE_STYLE_CALLBACK:
            await self._answer(query)
            await self._change_style(bot, chat_id, session)
        else:
            await self._answer(query)
            await self._export_svg(bot, chat_id, session)

    async def _regenerate_colors(self, bot, chat_id: int, session: Preview) -> None:
        colors = self._generator.random_colors()
        try:
            avatar = await self._generator.generate_async(session.name, session.variant, colors)
        except RenderError:
            LOGGER.exception("Chat %s: could not render new colors", chat_id)
            await self._quietly(
                bot.send_message(chat_id=chat_id, text=self._messages.error("regenerate")),
                "report the failed regeneration",
            )
            return

        caption = self._messages.regenerated_caption(avatar.name, avatar.variant)
        try:
            await bot.edit_message_media(
                media=InputMediaPhoto(media=avatar.png, caption=caption),
                chat_id=chat_id,
                message_id=session.preview_message_id,
                reply_markup=self._keyboards.preview_keyboard(),
            )
        except TelegramError as exc:
            LOGGER.warning("Chat %s: in-place preview update failed (%s); sending a new one.", chat_id, exc)
            await self._quietly(
                bot.delete_message(chat_id=chat_id, message_id=session.preview_message_id),
                "delete the outdated preview",
            )
            await self._send_preview(bot, chat_id, avatar, caption=caption)
            return

        self._sessions.set(chat_id, Preview.from_render(avatar, session.preview_message_id))

    async def _change_style(self, bot, chat_id: int, session: Preview) -> None:
        sent_id = await self._show(
            bot,
            chat_id,
            None,
            self._messages.new_style_prompt(session.name, session.colors),
            self._keyboards.style_keyboard(),
        )
        if sent_id is None:
            await self._keep_preview(bot, chat_id)
            return

        self._sessions.set(
            chat_id,
            SelectingNewStyle(name=session.name, variant=session.variant, colors=session.colors, svg=session.svg),
        )
        await self._quietly(
            bot.delete_message(chat_id=chat_id, message_id=session.preview_message_id),
            "delete the preview",
        )

    async def _keep_preview(self, bot, chat_id: int) -> None:
        # The preview and its buttons stay untouched, so the same tap can be retried.
        await self._quietly(
            bot.send_message(chat_id=chat_id, text=self._messages.error("send_failed")),
            "report the lost prompt",
        )

    async def _export_svg(self, bot, chat_id: int, session: Preview) -> None:
        filename = self._messages.svg_filename(session.name, session.variant)
        try:
            await bot.send_document(
                chat_id=chat_id,
                document=session.svg.encode("utf-8"),
                filename=filename,
                caption=self._messages.export_caption(session.name),
            )
        except TelegramError:
            LOGGER.exception("Chat %s: sending %s failed", chat_id, filename)
            await self._quietly(
                bot.send_message(chat_id=chat_id, text=self._messages.error("export")),
                "report the failed export",
            )
            return

        LOGGER.info("Chat %s: sent %s", chat_id, filename)
        self._sessions.clear(chat_id)
        await self._quietly(
            bot.edit_message_reply_markup(chat_id=chat_id, message_id=session.preview_message_id, reply_markup=None),
            "strip the preview buttons",
        )

    async def _back_to_style(self, query, message, chat_id: int, bot, session: Optional[Session]) -> None:
        if not isinstance(session, (TypeSelection, ColorMethodSelection, AwaitingCustomColors)):
            await self._reject(query, chat_id, self.BACK_TO_STYLE_CALLBACK, session)
            return

        await self._answer(query)
        self._sessions.set(chat_id, TypeSelection(name=session.name))
        await self._show(
            bot,
            chat_id,
            message.message_id,
            self._messages.style_prompt_again(session.name),
            self._keyboards.style_keyboard(),
        )

    async def _back_to_colors(self, query, message, chat_id: int, bot, session: Optional[Session]) -> None:
        if isinstance(session, TypeSelection):
            # No style yet: the only sensible step back is the style picker.
            await self._back_to_style(query, message, chat_id, bot, session)
            return

        is_current_preview = isinstance(session, Preview) and session.preview_message_id == message.message_id
        if not (is_current_preview or isinstance(session, (ColorMethodSelection, AwaitingCustomColors))):
            await self._reject(query, chat_id, self.BACK_TO_COLORS_CALLBACK, session)
            return

        await self._answer(query)
        text = self._messages.color_method_prompt(session.variant)
        if isinstance(session, Preview):
            if await self._show(bot, chat_id, None, text, self._keyboards.color_method_keyboard()) is None:
                await self._keep_preview(bot, chat_id)
                return
            self._sessions.set(chat_id, ColorMethodSelection(name=session.name, variant=session.variant))
            await self._quietly(
                bot.delete_message(chat_id=chat_id, message_id=session.preview_message_id),
                "delete the preview",
            )
            return

        self._sessions.set(chat_id, ColorMethodSelection(name=session.name, variant=session.variant))
        await self._show(bot, chat_id, message.message_id, text, self._keyboards.color_method_keyboard())

    async def _cancel(self, bot, chat_id: int, message) -> None:
        session = self._sessions.clear(chat_id)
        LOGGER.debug("Chat %s: cancelled from %s", chat_id, session.step if session else "no session")

        text = self._messages.cancelled()
        target_id = session.preview_message_id if isinstance(session, Preview) else message.message_id
        is_photo = isinstance(session, Preview) or bool(getattr(message, "photo", None))
        try:
            await bot.edit_message_text(text=text, chat_id=chat_id, message_id=target_id, reply_markup=None)
        except TelegramError as exc:
            if not is_photo:
                LOGGER.debug("Chat %s: could not mark message %s as cancelled: %s", chat_id, target_id, exc)
                return
            await self._quietly(bot.delete_message(chat_id=chat_id, message_id=target_id), "delete the preview")
            await self._quietly(bot.send_message(chat_id=chat_id, text=text), "confirm the cancellation")

    async def _render_first_preview(
        self,
        bot,
        chat_id: int,
        name: str,
        variant: str,
        colors,
        reuse_message_id: Optional[int] = None,
    ) -> None:
        avatar, working_id = await self._render_with_progress(
            bot, chat_id, name, variant, colors, reuse_message_id=reuse_message_id
        )
        if avatar is None:
            self._sessions.clear(chat_id)
            await self._show(bot, chat_id, working_id, self._messages.error("render"), None)
            return
        await self._present(bot, chat_id, avatar, working_id)

    async def _render_with_progress(
        self,
        bot,
        chat_id: int,
        name: str,
        variant: str,
        colors,
        reuse_message_id: Optional[int] = None,
    ) -> Tuple[Optional[RenderedAvatar], Optional[int]]:
        working_id = await self._show(bot, chat_id, reuse_message_id, self._messages.working(name, variant), None)
        try:
            avatar = await self._generator.generate_async(name, variant, colors)
        except RenderError:
            LOGGER.exception("Chat %s: rendering %s avatar failed", chat_id, variant)
            return None, working_id
        return avatar, working_id

    async def _present(self, bot, chat_id: int, avatar: RenderedAvatar, working_id: Optional[int]) -> None:
        if working_id is not None:
            await self._quietly(
                bot.delete_message(chat_id=chat_id, message_id=working_id),
                "delete the progress message",
            )
        await self._send_preview(bot, chat_id, avatar)

    async def _send_preview(self, bot, chat_id: int, avatar: RenderedAvatar, caption: Optional[str] = None) -> bool:
        try:
            sent = await bot.send_photo(
                chat_id=chat_id,
                photo=avatar.png,
                caption=caption or self._messages.preview_caption(avatar.name, avatar.variant),
                reply_markup=self._keyboards.preview_keyboard(),
            )
        except TelegramError:
            LOGGER.exception("Chat %s: sending the preview failed", chat_id)
            self._sessions.clear(chat_id)
            await self._quietly(
                bot.send_message(chat_id=chat_id, text=self._messages.error("preview")),
                "report the failed preview",
            )
            return False

        self._sessions.set(chat_id, Preview.from_render(avatar, sent.message_id))
        LOGGER.debug("Chat %s: preview %s for %s", chat_id, sent.message_id, avatar.variant)
        return True

    async def _show(
        self,
        bot,
        chat_id: int,
        message_id: Optional[int],
        text: str,
        reply_markup,
        parse_mode: Optional[str] = None,
    ) -> Optional[int]:
        """Edit ``message_id`` into ``text``, or send a fresh message when that is impossible."""

        if message_id is not None:
            try:
                await bot.edit_message_text(
                    text=text,
                    chat_id=chat_id,
                    message_id=message_id,
                    reply_markup=reply_markup,
                    parse_mode=parse_mode,
                )
                return message_id
            except TelegramError as exc:
                if "not modified" in str(exc).lower():
                    return message_id
                LOGGER.debug("Chat %s: could not edit message %s: %s", chat_id, message_id, exc)

        try:
            sent = await bot.send_message(chat_id=chat_id, text=text, reply_markup=reply_markup, parse_mode=parse_mode)
        except TelegramError:
            LOGGER.exception("Chat %s: sending a message failed", chat_id)
            return None
        return sent.message_id

    async def _reject(self, query, chat_id: int, data: str, session: Optional[Session]) -> None:
        LOGGER.warning(
            "Chat %s: unexpected callback %s in state %s",
            chat_id,
            data,
            session.step if session else "no session",
        )
        await self._answer(query, self._messages.unexpected_action())

    @staticmethod
    async def _answer(query, text: Optional[str] = None) -> None:
        try:
            await query.answer(text=text)
        except TelegramError as exc:
            LOGGER.debug("Could not answer callback query: %s", exc)

    @staticmethod
    async def _quietly(call, action: str) -> bool:
        try:
            await call
        except TelegramError as exc:
            LOGGER.debug("Could not %s: %s", action, exc)
            return False
        return True

    @staticmethod
    def _command_argument(text: Optional[str]) -> str:
        parts = (text or "").split(maxsplit=1)
        return parts[1].strip() if len(parts) > 1 else ""

    async def _reply(
        self,
        update: Update,
        text: str,
        markdown: bool = False,
        reply_markup=None,
    ) -> None:
        message = update.message
        if not message and update.callback_query:
            message = update.callback_query.message
        if not message:
            return
        parse_mode = ParseMode.MARKDOWN if markdown else None
        await message.reply_text(text, parse_mode=parse_mode, reply_markup=reply_markup)
