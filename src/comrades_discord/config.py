"""Bot configuration loaded from a key-value property file."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import msgspec

from .errors import ConfigurationError
from .logging import get_logger

logger = get_logger(__name__)

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "PLACEHOLDER_TOKEN",
    "BotSettings",
    "load_settings",
    "parse_properties",
]

DEFAULT_CONFIG_PATH = Path("config.properties")
PLACEHOLDER_TOKEN = "YOUR_BOT_TOKEN_HERE"
REQUIRED_KEYS = ("bot.token", "bot.prefix")

# property key -> BotSettings field
_FIELDS = {
    "bot.token": "token",
    "bot.prefix": "prefix",
    "bot.guild_id": "guild_id",
    "bot.shutdown_timeout": "shutdown_timeout",
    "poll.default_duration": "poll_default_minutes",
    "log.level": "log_level",
}


class BotSettings(msgspec.Struct, frozen=True, kw_only=True):
    """Validated runtime settings."""

    token: str
    prefix: str = "!"
    guild_id: int | None = None
    shutdown_timeout: float = 5.0
    poll_default_minutes: int = 60
    log_level: str = "info"


def parse_properties(text: str) -> dict[str, str]:
    """Parse ``key=value`` (or ``key: value``) lines, skipping ``#`` and ``!`` comments."""
    result: dict[str, str] = {}
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line[0] in "#!":
            continue
        separators = [i for i in (line.find("="), line.find(":")) if i != -1]
        if not separators:
            result[line] = ""
            continue
        index = min(separators)
        result[line[:index].strip()] = line[index + 1 :].strip()
    return result


def _read_properties(path: Path) -> dict[str, str]:
    try:
        return parse_properties(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigurationError(
            f"Unable to read {path}: {exc}",
            user_message=f"Could not read configuration file {path}.",
        ) from exc


def load_settings(
    path: Path = DEFAULT_CONFIG_PATH,
    *,
    token: str | None = None,
    guild_id: int | None = None,
) -> BotSettings:
    """Load settings, letting a token and guild id from the command line win.

    The file may be absent only when a token is given directly.
    """
    if path.exists():
        logger.info("config.loading", path=str(path))
        properties = _read_properties(path)
    elif token is not None:
        logger.info("config.missing", path=str(path))
        properties = {}
    else:
        raise ConfigurationError(
            f"Configuration file {path} does not exist",
            user_message=f"Configuration file {path} not found; pass the token on the command line or create it.",
        )

    if token is None:
        missing = [key for key in REQUIRED_KEYS if not properties.get(key)]
        if missing:
            raise ConfigurationError(f"Missing required properties: {', '.join(missing)}")

    raw: dict[str, Any] = {
        field: properties[key] for key, field in _FIELDS.items() if properties.get(key)
    }
    if token is not None:
        raw["token"] = token
    if guild_id is not None:
        raw["guild_id"] = guild_id

    if raw.get("token") == PLACEHOLDER_TOKEN:
        raise ConfigurationError(
            "Bot token is still set to the default placeholder",
            user_message=f"Replace {PLACEHOLDER_TOKEN} with your actual bot token.",
        )

    try:
        settings = msgspec.convert(raw, BotSettings, strict=False)
    except msgspec.ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc

    if not settings.prefix.strip():
        raise ConfigurationError("Command prefix must not be blank")
    if settings.shutdown_timeout <= 0:
        raise ConfigurationError("bot.shutdown_timeout must be positive")
    if settings.poll_default_minutes < 1:
        raise ConfigurationError("poll.default_duration must be at least 1 minute")

    # never log the token itself
    logger.info(
        "config.loaded",
        token_length=len(settings.token),
        prefix=settings.prefix,
        guild_id=settings.guild_id,
    )
    return settings
