"""Basic text and slash command handlers."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

import discord

from .errors import InvalidInputError, PermissionDeniedError
from .render import (
    command_help_embed,
    help_embed,
    ping_embed,
    server_info_embed,
    unknown_command_embed,
    user_info_embed,
)
from .types import CommandParameter, OptionType, SlashCommand, TextCommand

if TYPE_CHECKING:
    from .context import InteractionContext, MessageContext
    from .registry import CommandRegistry, InteractionRegistry

__all__ = ["check_mentions", "register_slash_commands", "register_text_commands"]

MASS_MENTIONS = ("@everyone", "@here")


def check_mentions(text: str, permissions: discord.Permissions) -> None:
    """Refuse ``@everyone``/``@here`` from users who may not ping everyone."""
    if any(mention in text for mention in MASS_MENTIONS) and not permissions.mention_everyone:
        raise PermissionDeniedError(
            "Echo with mass mention denied",
            user_message="You don't have permission to mention everyone.",
        )


def register_text_commands(registry: CommandRegistry, *, prefix: str) -> None:
    """Register ``ping``, ``echo`` and ``help``; help lists in registration order."""

    async def ping(args: list[str], ctx: MessageContext) -> None:
        started = time.perf_counter()
        message = await ctx.send("Pinging...")
        elapsed = (time.perf_counter() - started) * 1000
        await message.edit(content=f"Pong! Response time: {elapsed:.0f}ms")

    async def echo(args: list[str], ctx: MessageContext) -> None:
        if not args:
            raise InvalidInputError("You didn't provide anything to echo!")
        text = " ".join(args)
        check_mentions(text, ctx.permissions())
        await ctx.send(text)

    async def help_command(args: list[str], ctx: MessageContext) -> None:
        if not args:
            await ctx.send(embed=help_embed(registry.list(), prefix))
            return
        name = args[0].lower()
        command = registry.lookup(name)
        if command is None:
            await ctx.send(embed=unknown_command_embed(name))
            return
        await ctx.send(embed=command_help_embed(command, prefix))

    registry.register(TextCommand("ping", "Checks the bot's response time", "ping", ping))
    registry.register(TextCommand("echo", "Repeats what you say", "echo [message]", echo))
    registry.register(TextCommand("help", "Shows a list of all commands", "help [command]", help_command))


async def ping_slash(ctx: InteractionContext) -> None:
    started = time.perf_counter()
    await ctx.defer()
    rest_ms = (time.perf_counter() - started) * 1000
    await ctx.followup(embed=ping_embed(ctx.latency_ms, rest_ms))


async def echo_slash(ctx: InteractionContext) -> None:
    message = ctx.option("message")
    if message is None or not message.strip():
        raise InvalidInputError("You didn't provide anything to echo!")
    check_mentions(message, ctx.permissions())
    await ctx.reply(message)


async def userinfo_slash(ctx: InteractionContext) -> None:
    user = await ctx.resolve_user("user") or ctx.user
    member: discord.Member | None = None
    if isinstance(user, discord.Member):
        member = user
    elif ctx.guild is not None:
        member = ctx.guild.get_member(user.id)
    await ctx.reply(embed=user_info_embed(user, member))


async def serverinfo_slash(ctx: InteractionContext) -> None:
    guild = ctx.require_guild()
    await ctx.defer()
    await ctx.followup(embed=server_info_embed(guild))


def register_slash_commands(registry: InteractionRegistry) -> None:
    registry.register(SlashCommand("ping", "Checks the bot's response time", ping_slash))
    registry.register(
        SlashCommand(
            "echo",
            "Repeats what you say",
            echo_slash,
            parameters=(CommandParameter("message", "The message to echo"),),
        )
    )
    registry.register(
        SlashCommand(
            "userinfo",
            "Displays information about a user",
            userinfo_slash,
            parameters=(
                CommandParameter("user", "The user to get info about", type=OptionType.user, required=False),
            ),
            guild_only=True,
        )
    )
    registry.register(
        SlashCommand(
            "serverinfo",
            "Displays information about this Discord server",
            serverinfo_slash,
            guild_only=True,
        )
    )
