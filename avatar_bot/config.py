from __future__ import annotations

"""
Configuration plumbing for Avatar Bot.

Everything is optional except the Telegram token, and even that one can
arrive from the environment instead of the file.
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional

from .palette import DEFAULT_COLORS, DEFAULT_PALETTE_SIZE, is_hex_color

TOKEN_ENV_VAR = "TELEGRAM_BOT_TOKEN"
DEFAULT_RENDER_SIZE = 800


class ConfigError(Exception):
    """Raised when the configuration file is missing, unreadable, or nonsense."""


@dataclass
class TelegramConfig:
    """Bot credentials."""

    bot_token: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "TelegramConfig":
        if data is None:
            return cls()
        token = data.get("bot_token")
        return cls(bot_token=str(token) if token else None)


@dataclass
class RenderConfig:
    """How avatars are drawn: output size, corners, and the fallback palette."""

    size: int = DEFAULT_RENDER_SIZE
    square: bool = True
    palette_size: int = DEFAULT_PALETTE_SIZE
    default_colors: List[str] = field(default_factory=lambda: list(DEFAULT_COLORS))

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "RenderConfig":
        """
        Build an instance from the ``render`` section.

        Parameters
        ----------
        data : dict[str, Any] | None
            Render section of the config JSON. ``None`` keeps every default.

        Returns
        -------
        RenderConfig
            Settings ready for the generator.

        Raises
        ------
        ConfigError
            If a number is not a number, or the palette is empty or holds a non-HEX entry.
        """

        if data is None:
            return cls()

        try:
            size = int(data.get("size", DEFAULT_RENDER_SIZE))
            palette_size = int(data.get("palette_size", DEFAULT_PALETTE_SIZE))
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid render setting: {exc}") from exc

        if size <= 0:
            raise ConfigError("render.size must be a positive integer")
        if palette_size <= 0:
            raise ConfigError("render.palette_size must be a positive integer")

        colors = data.get("default_colors", list(DEFAULT_COLORS))
        if not isinstance(colors, list) or not colors:
            raise ConfigError("render.default_colors must be a non-empty list")
        invalid = [color for color in colors if not isinstance(color, str) or not is_hex_color(color)]
        if invalid:
            raise ConfigError(f"render.default_colors has non-HEX entries: {invalid}")

        return cls(
            size=size,
            square=bool(data.get("square", True)),
            palette_size=palette_size,
            default_colors=[str(color) for color in colors],
        )


@dataclass
class LoggingConfig:
    """Lightweight logging configuration."""

    level: str = "INFO"

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "LoggingConfig":
        if data is None:
            return cls()
        return cls(level=str(data.get("level", "INFO")).upper())


@dataclass
class AppConfig:
    """Aggregate configuration: Telegram, rendering, and logging."""

    telegram: TelegramConfig = field(default_factory=TelegramConfig)
    render: RenderConfig = field(default_factory=RenderConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AppConfig":
        """
        Stitch together the full configuration set from JSON.

        Parameters
        ----------
        data : dict[str, Any]
            Entire configuration payload. Every section is optional.

        Returns
        -------
        AppConfig
            Everything the bot needs to know.

        Raises
        ------
        ConfigError
            If the payload is not a JSON object.
        """

        if not isinstance(data, dict):
            raise ConfigError("Configuration root must be a JSON object")

        return cls(
            telegram=TelegramConfig.from_dict(data.get("telegram")),
            render=RenderConfig.from_dict(data.get("render")),
            logging=LoggingConfig.from_dict(data.get("logging")),
        )

    def resolve_token(self, cli_token: Optional[str] = None) -> Optional[str]:
        """
        Pick the bot token: CLI first, then ``TELEGRAM_BOT_TOKEN``, then the file.

        Returns
        -------
        str | None
            The token, or ``None`` when nobody bothered to provide one.
        """

        return cli_token or os.environ.get(TOKEN_ENV_VAR) or self.telegram.bot_token


class ConfigLoader:
    """Loads application configuration from JSON files."""

    def __init__(self, path: str | Path | None):
        """
        Parameters
        ----------
        path : str | Path | None
            Location of the config JSON. ``None`` means run on defaults.
        """

        self.path = Path(path) if path else None

    def load(self) -> AppConfig:
        """
        Read and validate the configuration file.

        Returns
        -------
        AppConfig
            The parsed configuration, or the defaults when no path was given.

        Raises
        ------
        ConfigError
            When the file is missing or invalid.
        """

        if self.path is None:
            return AppConfig()

        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError as exc:
            raise ConfigError(f"Configuration file not found: {self.path}") from exc
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Invalid JSON configuration: {exc.msg}") from exc

        return AppConfig.from_dict(payload)

    @staticmethod
    def apply_overrides(config: AppConfig, overrides: dict[str, Any]) -> AppConfig:
        """
        Update the in-memory configuration with CLI overrides.

        ``None`` values leave the existing setting alone.

        Returns
        -------
        AppConfig
            The same object, adjusted in place.
        """

        render = config.render

        if overrides.get("size") is not None:
            render.size = int(overrides["size"])
        if overrides.get("square") is not None:
            render.square = bool(overrides["square"])
        if overrides.get("bot_token"):
            config.telegram.bot_token = overrides["bot_token"]
        if overrides.get("log_level"):
            config.logging.level = str(overrides["log_level"]).upper()

        return config
