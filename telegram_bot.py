#!/usr/bin/env python3
from __future__ import annotations

"""
Telegram front end for avatar_bot.

Usage
-----
python telegram_bot.py [--config config.json] [--token <bot-token>]

Flow
----
- User sends: ``/avatar Ada``.
- Bot offers the styles, then the palette options (random, default, or typed HEX).
- Bot replies with a PNG preview and buttons to reroll colors, switch style,
  download the SVG, or cancel.
"""

import argparse
import logging

from dotenv import load_dotenv
from telegram.error import InvalidToken
from telegram.ext import (
    Application,
    ApplicationBuilder,
    CallbackQueryHandler,
    CommandHandler,
    MessageHandler,
    filters,
)

from avatar_bot.config import TOKEN_ENV_VAR, AppConfig, ConfigError, ConfigLoader
from avatar_bot.generator import AvatarGenerator
from avatar_bot.rasterizer import SvgRasterizer
from avatar_bot.renderer import AvatarRenderer
from avatar_bot.telegram import AvatarDialogController, MessageFactory, SessionStore

LOGGER = logging.getLogger(__name__)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Telegram bot that draws generated avatars.")
    parser.add_argument("--config", help="Optional JSON configuration file.")
    parser.add_argument("--token", help=f"Telegram Bot API token (overrides {TOKEN_ENV_VAR} and config).")
    parser.add_argument("--size", type=int, help="Avatar size in pixels (default: 800).")
    parser.add_argument(
        "--telemetry-level",
        help="Logging level for stdout (DEBUG/INFO/WARNING/ERROR); defaults to the config value.",
    )
    return parser.parse_args()


def build_app(config: AppConfig, token: str) -> Application:
    rasterizer = SvgRasterizer()
    rasterizer.ensure_available()
    generator = AvatarGenerator(AvatarRenderer(), rasterizer, config.render)
    controller = AvatarDialogController(
        generator,
        SessionStore(),
        keyboards=AvatarDialogController.build_keyboards(),
        messages=MessageFactory(),
    )

    # Chats run concurrently; the session store serialises updates within one chat.
    application = ApplicationBuilder().token(token).concurrent_updates(True).build()
    application.add_handler(CommandHandler("start", controller.handle_start))
    application.add_handler(CommandHandler("help", controller.handle_help))
    application.add_handler(CommandHandler("avatar", controller.handle_avatar))
    application.add_handler(CallbackQueryHandler(controller.handle_callback))
    application.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, controller.handle_text))
    application.add_error_handler(controller.handle_error)
    return application


def main() -> None:
    load_dotenv()
    args = parse_args()

    loader = ConfigLoader(args.config)
    try:
        config = loader.load()
    except ConfigError as exc:
        raise SystemExit(f"Config error: {exc}") from exc

    config = ConfigLoader.apply_overrides(config, {"size": args.size, "log_level": args.telemetry_level})
    logging.basicConfig(
        level=getattr(logging, config.logging.level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # httpx logs every long-poll request at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)

    token = config.resolve_token(args.token)
    if not token:
        raise SystemExit(f"Provide a Telegram token via --token, {TOKEN_ENV_VAR}, or config.telegram.bot_token.")

    application = build_app(config, token)

    LOGGER.info("Starting Telegram bot in polling mode.")
    try:
        application.run_polling()
    except InvalidToken as exc:
        raise SystemExit(f"Telegram rejected the bot token: {exc}") from exc


if __name__ == "__main__":
    main()
