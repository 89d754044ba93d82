"""Command line entry point."""

from __future__ import annotations

from pathlib import Path

import anyio
import click
import discord

from .config import DEFAULT_CONFIG_PATH, PLACEHOLDER_TOKEN, load_settings
from .errors import ConfigurationError
from .logging import get_logger, setup_logging
from .loop import run_main_loop

logger = get_logger(__name__)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("token", required=False)
@click.argument("guild_id", required=False, type=int)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=DEFAULT_CONFIG_PATH,
    show_default=True,
    help="Property file with bot.token and bot.prefix.",
)
@click.option("--log-level", default=None, help="Override log.level from the config file.")
@click.option("--json-logs", is_flag=True, help="Emit JSON log lines.")
def main(
    token: str | None,
    guild_id: int | None,
    config_path: Path,
    log_level: str | None,
    json_logs: bool,
) -> None:
    """Run the bot.

    TOKEN overrides bot.token and GUILD_ID registers slash commands to a single
    server instead of globally.
    """
    try:
        setup_logging(log_level or "info", json=json_logs)
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc
    try:
        settings = load_settings(config_path, token=token, guild_id=guild_id)
    except ConfigurationError as exc:
        logger.error("config.invalid", error=exc.message)
        if token is None:
            logger.info("config.hint", hint="pass the token directly: comrades-bot YOUR_BOT_TOKEN")
        raise click.ClickException(exc.user_message) from exc

    if log_level is None and settings.log_level != "info":
        try:
            setup_logging(settings.log_level, json=json_logs)
        except ValueError as exc:
            raise click.ClickException(str(exc)) from exc

    logger.info("bot.starting", guild_id=settings.guild_id)
    try:
        anyio.run(run_main_loop, settings)
    except KeyboardInterrupt:
        logger.info("bot.interrupted")
    except discord.LoginFailure as exc:
        logger.error("bot.login_failed", error=str(exc))
        raise click.ClickException(
            f"Discord rejected the token. Check bot.token (and that it is not {PLACEHOLDER_TOKEN})."
        ) from exc
