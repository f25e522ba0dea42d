from __future__ import annotations

"""Dialog flow tests for AvatarDialogController with a fake Telegram bot."""

import asyncio
import itertools
import unittest
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, call

from telegram import InputMediaPhoto
from telegram.error import BadRequest, InvalidToken, NetworkError

from avatar_bot.config import DEFAULT_COLORS, RenderConfig
from avatar_bot.generator import AvatarGenerator
from avatar_bot.models import (
    AwaitingCustomColors,
    ColorMethodSelection,
    Preview,
    SelectingNewStyle,
    TypeSelection,
)
from avatar_bot.rasterizer import RasterizeError
from avatar_bot.renderer import AvatarRenderer
from avatar_bot.telegram.controller import AvatarDialogController
from avatar_bot.telegram.messages import MessageFactory
from avatar_bot.telegram.sessions import SessionStore

CHAT_ID = 42


class FakeBot:
    """Just enough of ``telegram.Bot`` for the dialog; every send gets a fresh message id."""

    def __init__(self) -> None:
        self._ids = itertools.count(100)
        self.send_message = AsyncMock(side_effect=self._sent)
        self.send_photo = AsyncMock(side_effect=self._sent)
        self.send_document = AsyncMock(side_effect=self._sent)
        self.edit_message_text = AsyncMock()
        self.edit_message_media = AsyncMock()
        self.edit_message_reply_markup = AsyncMock()
        self.delete_message = AsyncMock()

    def _sent(self, *args, **kwargs):
        return SimpleNamespace(message_id=next(self._ids))


def command_update(text: str, chat_id: int = CHAT_ID):
    message = SimpleNamespace(text=text, chat_id=chat_id, message_id=1, reply_text=AsyncMock())
    return SimpleNamespace(
        message=message,
        effective_message=message,
        effective_chat=SimpleNamespace(id=chat_id),
        callback_query=None,
    )


def callback_update(data: str, message_id: int, chat_id: int = CHAT_ID, photo=None):
    message = SimpleNamespace(chat_id=chat_id, message_id=message_id, photo=photo)
    query = SimpleNamespace(data=data, message=message, answer=AsyncMock())
    return SimpleNamespace(
        message=None,
        effective_message=message,
        effective_chat=SimpleNamespace(id=chat_id),
        callback_query=query,
    )


class DialogTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.bot = FakeBot()
        self.context = SimpleNamespace(bot=self.bot)
        self.renderer = MagicMock(wraps=AvatarRenderer())
        self.rasterizer = MagicMock()
        self.rasterizer.to_png.return_value = b"\x89PNG"
        self.generator = AvatarGenerator(self.renderer, self.rasterizer, RenderConfig(size=64))
        self.sessions = SessionStore()
        self.messages = MessageFactory()
        self.controller = AvatarDialogController(
            self.generator,
            self.sessions,
            keyboards=AvatarDialogController.build_keyboards(),
            messages=self.messages,
        )

    @property
    def session(self):
        return self.sessions.get(CHAT_ID)

    async def press(self, data: str, message_id: int, photo=None):
        update = callback_update(data, message_id, photo=photo)
        await self.controller.handle_callback(update, self.context)
        return update.callback_query

    async def say(self, text: str):
        update = command_update(text)
        if text.startswith("/avatar"):
            await self.controller.handle_avatar(update, self.context)
        elif text.startswith("/start"):
            await self.controller.handle_start(update, self.context)
        else:
            await self.controller.handle_text(update, self.context)
        return update.message

    async def reach_preview(self, variant: str = "beam", method: str = "default") -> Preview:
        await self.say("/avatar Ada")
        await self.press(f"style:{variant}", message_id=10)
        await self.press(f"colors:{method}", message_id=10)
        session = self.session
        self.assertIsInstance(session, Preview)
        return session


class EntryCommandTests(DialogTestCase):
    async def test_avatar_without_name_shows_usage(self) -> None:
        message = await self.say("/avatar   ")
        self.assertIsNone(self.session)
        text = message.reply_text.call_args[0][0]
        self.assertEqual(text, self.messages.usage_hint())

    async def test_avatar_starts_type_selection(self) -> None:
        message = await self.say("/avatar Ada Lovelace")
        self.assertEqual(self.session, TypeSelection(name="Ada Lovelace"))
        markup = message.reply_text.call_args.kwargs["reply_markup"]
        self.assertEqual(markup.inline_keyboard[0][0].callback_data, "style:marble")

    async def test_start_clears_session(self) -> None:
        await self.reach_preview()
        await self.say("/start")
        self.assertIsNone(self.session)


class ColorSelectionTests(DialogTestCase):
    async def test_default_colors_render_exactly_once(self) -> None:
        session = await self.reach_preview(variant="pixel")
        self.renderer.render.assert_called_once_with("Ada", "pixel", list(DEFAULT_COLORS), size=64, square=True)
        self.assertEqual(session.colors, DEFAULT_COLORS)
        self.bot.send_photo.assert_awaited_once()
        self.assertEqual(session.preview_message_id, 100)
        # The progress message reused the keyboard message and was then removed.
        self.bot.delete_message.assert_awaited_once_with(chat_id=CHAT_ID, message_id=10)

    async def test_style_pick_moves_to_color_methods(self) -> None:
        await self.say("/avatar Ada")
        query = await self.press("style:sunset", message_id=10)
        self.assertEqual(self.session, ColorMethodSelection(name="Ada", variant="sunset"))
        query.answer.assert_awaited_once_with(text=None)
        self.assertEqual(self.bot.edit_message_text.call_args.kwargs["message_id"], 10)

    async def test_random_colors_are_five_fresh_hex_values(self) -> None:
        session = await self.reach_preview(method="random")
        self.assertEqual(len(session.colors), 5)
        self.assertNotEqual(session.colors, DEFAULT_COLORS)

    async def test_custom_colors_accepted(self) -> None:
        await self.say("/avatar Ada")
        await self.press("style:ring", message_id=10)
        await self.press("colors:custom", message_id=10)
        self.assertEqual(self.session, AwaitingCustomColors(name="Ada", variant="ring", prompt_message_id=10))

        await self.say("#ff0000, 00ff00, abc")

        self.assertIsInstance(self.session, Preview)
        self.assertEqual(self.session.colors, ("#ff0000", "#00ff00", "#abc"))
        self.bot.edit_message_reply_markup.assert_any_await(chat_id=CHAT_ID, message_id=10, reply_markup=None)

    async def test_custom_colors_rejected_in_full(self) -> None:
        await self.say("/avatar Ada")
        await self.press("style:ring", message_id=10)
        await self.press("colors:custom", message_id=10)

        message = await self.say("red, 12345")

        self.assertIsInstance(self.session, AwaitingCustomColors)
        self.renderer.render.assert_not_called()
        self.assertEqual(message.reply_text.call_args[0][0], self.messages.invalid_colors())

    async def test_free_text_outside_custom_step_is_ignored(self) -> None:
        await self.say("/avatar Ada")
        message = await self.say("#ffffff")
        self.assertEqual(self.session, TypeSelection(name="Ada"))
        message.reply_text.assert_not_awaited()

    async def test_render_failure_leaves_no_session(self) -> None:
        self.rasterizer.to_png.side_effect = RasterizeError("cairo says no")
        await self.say("/avatar Ada")
        await self.press("style:beam", message_id=10)
        await self.press("colors:default", message_id=10)

        self.assertIsNone(self.session)
        self.bot.send_photo.assert_not_awaited()
        self.assertEqual(self.bot.edit_message_text.call_args.kwargs["text"], self.messages.error("render"))

        query = await self.press("preview:regenerate", message_id=10)
        query.answer.assert_awaited_once_with(text=self.messages.unexpected_action())
        self.assertIsNone(self.session)

    async def test_preview_send_failure_destroys_session(self) -> None:
        self.bot.send_photo.side_effect = NetworkError("timeout")
        await self.say("/avatar Ada")
        await self.press("style:beam", message_id=10)
        await self.press("colors:default", message_id=10)
        self.assertIsNone(self.session)
        self.assertEqual(self.bot.send_message.call_args.kwargs["text"], self.messages.error("preview"))

    async def test_color_pick_in_wrong_state_is_unexpected(self) -> None:
        await self.say("/avatar Ada")
        query = await self.press("colors:random", message_id=10)
        query.answer.assert_awaited_once_with(text=self.messages.unexpected_action())
        self.assertEqual(self.session, TypeSelection(name="Ada"))
        self.renderer.render.assert_not_called()


class PreviewActionTests(DialogTestCase):
    async def test_regenerate_twice_keeps_only_latest_palette(self) -> None:
        preview = await self.reach_preview()

        await self.press("preview:regenerate", message_id=preview.preview_message_id)
        first = self.session.colors
        await self.press("preview:regenerate", message_id=preview.preview_message_id)
        second = self.session.colors

        self.assertNotEqual(first, second)
        self.assertEqual(len(second), 5)
        self.assertEqual(self.renderer.render.call_args[0][2], list(second))
        self.assertEqual(self.session.preview_message_id, preview.preview_message_id)
        self.assertEqual(self.bot.edit_message_media.await_count, 2)
        media = self.bot.edit_message_media.call_args.kwargs["media"]
        self.assertIsInstance(media, InputMediaPhoto)

    async def test_regenerate_falls_back_to_new_message(self) -> None:
        preview = await self.reach_preview()
        self.bot.edit_message_media.side_effect = BadRequest("Message can't be edited")

        await self.press("preview:regenerate", message_id=preview.preview_message_id)

        self.bot.delete_message.assert_any_await(chat_id=CHAT_ID, message_id=preview.preview_message_id)
        self.assertEqual(self.bot.send_photo.await_count, 2)
        self.assertIsInstance(self.session, Preview)
        self.assertNotEqual(self.session.preview_message_id, preview.preview_message_id)

    async def test_regenerate_render_failure_keeps_preview(self) -> None:
        preview = await self.reach_preview()
        self.rasterizer.to_png.side_effect = RasterizeError("boom")

        await self.press("preview:regenerate", message_id=preview.preview_message_id)

        self.assertEqual(self.session, preview)
        self.bot.edit_message_media.assert_not_awaited()
        self.assertEqual(self.bot.send_message.call_args.kwargs["text"], self.messages.error("regenerate"))

    async def test_change_style_keeps_colors(self) -> None:
        preview = await self.reach_preview(method="random")

        await self.press("preview:restyle", message_id=preview.preview_message_id)
        self.assertIsInstance(self.session, SelectingNewStyle)
        self.bot.delete_message.assert_any_await(chat_id=CHAT_ID, message_id=preview.preview_message_id)
        self.assertEqual(
            self.bot.send_message.call_args.kwargs["text"],
            self.messages.new_style_prompt("Ada", preview.colors),
        )

        await self.press("style:bauhaus", message_id=101)

        self.assertIsInstance(self.session, Preview)
        self.assertEqual(self.session.variant, "bauhaus")
        self.assertEqual(self.session.colors, preview.colors)
        self.assertNotEqual(self.session.svg, preview.svg)

    async def test_change_style_render_failure_offers_styles_again(self) -> None:
        preview = await self.reach_preview()
        await self.press("preview:restyle", message_id=preview.preview_message_id)
        self.rasterizer.to_png.side_effect = RasterizeError("boom")

        await self.press("style:marble", message_id=101)

        self.assertIsInstance(self.session, SelectingNewStyle)
        self.assertEqual(self.session.variant, "beam")
        last_edit = self.bot.edit_message_text.call_args.kwargs
        self.assertEqual(last_edit["text"], self.messages.error("restyle"))
        self.assertIsNotNone(last_edit["reply_markup"])

    async def test_export_sends_svg_and_ends_session(self) -> None:
        preview = await self.reach_preview()

        await self.press("preview:svg", message_id=preview.preview_message_id)

        kwargs = self.bot.send_document.call_args.kwargs
        self.assertEqual(kwargs["filename"], "Ada_beam.svg")
        self.assertEqual(kwargs["document"], preview.svg.encode("utf-8"))
        self.assertIsNone(self.session)
        self.bot.edit_message_reply_markup.assert_any_await(
            chat_id=CHAT_ID, message_id=preview.preview_message_id, reply_markup=None
        )

    async def test_export_failure_keeps_session_for_retry(self) -> None:
        preview = await self.reach_preview()
        self.bot.send_document.side_effect = NetworkError("timeout")

        await self.press("preview:svg", message_id=preview.preview_message_id)

        self.assertEqual(self.session, preview)
        self.assertEqual(self.bot.send_message.call_args.kwargs["text"], self.messages.error("export"))

    async def test_export_without_preview_reports_error(self) -> None:
        await self.say("/avatar Ada")
        query = await self.press("preview:svg", message_id=10)

        query.answer.assert_awaited_once_with(text=self.messages.unexpected_action())
        self.bot.send_document.assert_not_awaited()
        self.assertEqual(self.bot.send_message.call_args.kwargs["text"], self.messages.error("nothing_to_export"))
        self.assertEqual(self.session, TypeSelection(name="Ada"))

    async def test_stale_preview_buttons_are_ignored(self) -> None:
        preview = await self.reach_preview()
        query = await self.press("preview:regenerate", message_id=preview.preview_message_id + 50)
        query.answer.assert_awaited_once_with(text=self.messages.unexpected_action())
        self.assertEqual(self.session, preview)

    async def test_back_to_colors_from_preview(self) -> None:
        preview = await self.reach_preview(variant="ring")

        await self.press("back:colors", message_id=preview.preview_message_id)

        self.assertEqual(self.session, ColorMethodSelection(name="Ada", variant="ring"))
        self.bot.delete_message.assert_any_await(chat_id=CHAT_ID, message_id=preview.preview_message_id)
        self.assertEqual(self.bot.send_message.call_args.kwargs["text"], self.messages.color_method_prompt("ring"))

    def assert_preview_not_deleted(self, preview: Preview) -> None:
        self.assertNotIn(
            call(chat_id=CHAT_ID, message_id=preview.preview_message_id),
            self.bot.delete_message.await_args_list,
        )

    async def test_change_style_send_failure_keeps_preview(self) -> None:
        preview = await self.reach_preview()
        self.bot.send_message.side_effect = NetworkError("down")

        await self.press("preview:restyle", message_id=preview.preview_message_id)

        self.assertEqual(self.session, preview)
        self.assert_preview_not_deleted(preview)
        self.assertEqual(self.bot.send_message.call_args.kwargs["text"], self.messages.error("send_failed"))

        self.bot.send_message.side_effect = self.bot._sent
        await self.press("preview:restyle", message_id=preview.preview_message_id)

        self.assertIsInstance(self.session, SelectingNewStyle)
        self.bot.delete_message.assert_any_await(chat_id=CHAT_ID, message_id=preview.preview_message_id)

    async def test_back_to_colors_send_failure_keeps_preview(self) -> None:
        preview = await self.reach_preview(variant="ring")
        self.bot.send_message.side_effect = NetworkError("down")

        await self.press("back:colors", message_id=preview.preview_message_id)

        self.assertEqual(self.session, preview)
        self.assert_preview_not_deleted(preview)
        self.assertEqual(self.bot.send_message.call_args.kwargs["text"], self.messages.error("send_failed"))


class SerializationTests(DialogTestCase):
    async def test_same_chat_callbacks_run_one_at_a_time(self) -> None:
        preview = await self.reach_preview()
        original = self.generator.generate_async
        running = 0
        peak = 0
        drawn = []

        async def slow_generate(name, variant, colors):
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            drawn.append(tuple(colors))
            try:
                await asyncio.sleep(0.01)
                return await original(name, variant, colors)
            finally:
                running -= 1

        self.generator.generate_async = slow_generate
        await asyncio.gather(
            self.press("preview:regenerate", message_id=preview.preview_message_id),
            self.press("preview:regenerate", message_id=preview.preview_message_id),
        )

        self.assertEqual(peak, 1)
        self.assertEqual(len(drawn), 2)
        self.assertIsInstance(self.session, Preview)
        self.assertEqual(self.session.colors, drawn[-1])
        self.assertEqual(self.bot.edit_message_media.await_count, 2)


class NavigationTests(DialogTestCase):
    async def test_style_slug_is_normalized(self) -> None:
        await self.say("/avatar Ada")
        await self.press("style:BEAM", message_id=10)
        self.assertEqual(self.session, ColorMethodSelection(name="Ada", variant="beam"))

        await self.press("colors:default", message_id=10)
        self.assertIsInstance(self.session, Preview)
        self.assertEqual(self.session.variant, "beam")

    async def test_back_to_style_from_color_methods(self) -> None:
        await self.say("/avatar Ada")
        await self.press("style:beam", message_id=10)
        await self.press("back:style", message_id=10)
        self.assertEqual(self.session, TypeSelection(name="Ada"))

    async def test_back_to_colors_without_style_routes_to_style_picker(self) -> None:
        await self.say("/avatar Ada")
        await self.press("back:colors", message_id=10)
        self.assertEqual(self.session, TypeSelection(name="Ada"))
        kwargs = self.bot.edit_message_text.call_args.kwargs
        self.assertEqual(kwargs["text"], self.messages.style_prompt_again("Ada"))
        self.assertEqual(kwargs["reply_markup"].inline_keyboard[0][0].callback_data, "style:marble")

    async def test_back_from_custom_prompt(self) -> None:
        await self.say("/avatar Ada")
        await self.press("style:pixel", message_id=10)
        await self.press("colors:custom", message_id=10)
        await self.press("back:colors", message_id=10)
        self.assertEqual(self.session, ColorMethodSelection(name="Ada", variant="pixel"))

    async def test_unknown_callback_is_acknowledged(self) -> None:
        await self.say("/avatar Ada")
        query = await self.press("teleport", message_id=10)
        query.answer.assert_awaited_once_with(text=self.messages.unexpected_action())
        self.assertEqual(self.session, TypeSelection(name="Ada"))

    async def test_callback_without_message(self) -> None:
        update = callback_update("cancel", message_id=10)
        update.callback_query.message = None
        await self.controller.handle_callback(update, self.context)
        update.callback_query.answer.assert_awaited_once()


class CancelTests(DialogTestCase):
    async def test_cancel_from_every_state_then_start_fresh(self) -> None:
        async def to_type():
            await self.say("/avatar Ada")
            return 10

        async def to_colors():
            await self.say("/avatar Ada")
            await self.press("style:beam", message_id=10)
            return 10

        async def to_custom():
            await to_colors()
            await self.press("colors:custom", message_id=10)
            return 10

        async def to_preview():
            return (await self.reach_preview(method="random")).preview_message_id

        async def to_new_style():
            preview = await self.reach_preview(method="random")
            await self.press("preview:restyle", message_id=preview.preview_message_id)
            return 10

        for reach in (to_type, to_colors, to_custom, to_preview, to_new_style):
            with self.subTest(state=reach.__name__):
                message_id = await reach()
                await self.press("cancel", message_id=message_id)
                self.assertIsNone(self.session)

                await self.say("/avatar Grace")
                self.assertEqual(self.session, TypeSelection(name="Grace"))
                self.sessions.clear(CHAT_ID)

    async def test_cancel_preview_falls_back_to_delete_and_send(self) -> None:
        preview = await self.reach_preview()
        self.bot.edit_message_text.side_effect = BadRequest("There is no text in the message to edit")

        await self.press("cancel", message_id=preview.preview_message_id, photo=["photo"])

        self.assertIsNone(self.session)
        self.bot.delete_message.assert_any_await(chat_id=CHAT_ID, message_id=preview.preview_message_id)
        self.assertEqual(self.bot.send_message.call_args.kwargs["text"], self.messages.cancelled())

    async def test_cancel_text_message_edits_in_place(self) -> None:
        await self.say("/avatar Ada")
        await self.press("cancel", message_id=10)
        self.bot.edit_message_text.assert_awaited_with(
            text=self.messages.cancelled(), chat_id=CHAT_ID, message_id=10, reply_markup=None
        )
        self.bot.send_message.assert_not_awaited()


class ErrorHandlerTests(DialogTestCase):
    async def test_invalid_token_stops_application(self) -> None:
        application = MagicMock()
        context = SimpleNamespace(error=InvalidToken(), application=application, bot=self.bot)
        await self.controller.handle_error(None, context)
        application.stop_running.assert_called_once()

    async def test_other_errors_are_logged(self) -> None:
        context = SimpleNamespace(error=RuntimeError("bug"), application=MagicMock(), bot=self.bot)
        with self.assertLogs("avatar_bot.telegram.controller", level="ERROR"):
            await self.controller.handle_error(None, context)
        context.application.stop_running.assert_not_called()


if __name__ == "__main__":
    unittest.main()
