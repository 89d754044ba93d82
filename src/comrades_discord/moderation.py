"""``/mod``: kick, ban, timeout, removetimeout and purge."""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

import discord

from .context import remote_call
from .errors import InvalidInputError, PermissionDeniedError, RemoteServiceError
from .logging import get_logger
from .types import CommandParameter, OptionType, SlashCommand, Subcommand

if TYPE_CHECKING:
    from .context import InteractionContext
    from .registry import InteractionRegistry

logger = get_logger(__name__)

__all__ = ["can_interact", "register_moderation_command"]

NO_REASON = "No reason provided"
PURGE_SCAN_LIMIT = 200
MAX_TIMEOUT_MINUTES = 28 * 24 * 60


def can_interact(actor: discord.Member, target: discord.Member) -> bool:
    """Whether ``actor`` outranks ``target`` in the role hierarchy."""
    guild = actor.guild
    if target.id == guild.owner_id:
        return False
    if actor.id == guild.owner_id:
        return True
    return actor.top_role > target.top_role


async def _target_member(ctx: InteractionContext, guild: discord.Guild, action: str) -> discord.Member:
    user = await ctx.resolve_user("user")
    if user is None:
        raise InvalidInputError(f"You must specify a user to {action}")
    if isinstance(user, discord.Member):
        member = user
    else:
        try:
            member = await guild.fetch_member(user.id)
        except discord.NotFound:
            raise InvalidInputError("This user is not a member of this server.") from None
        except discord.HTTPException as exc:
            raise RemoteServiceError(f"fetch_member failed: {exc}") from exc
    _check_hierarchy(ctx, guild, member, action)
    return member


def _check_hierarchy(
    ctx: InteractionContext,
    guild: discord.Guild,
    member: discord.Member,
    action: str,
) -> None:
    if not can_interact(guild.me, member):
        raise PermissionDeniedError(
            f"Bot cannot {action} {member.id}",
            user_message=f"I don't have permission to {action} this user. They may have higher roles than me.",
        )
    invoker = ctx.member
    if invoker is not None and not can_interact(invoker, member):
        raise PermissionDeniedError(
            f"{ctx.user_id} cannot {action} {member.id}",
            user_message=f"You don't have permission to {action} this user. They may have higher roles than you.",
        )


def _failed(action: str, name: str, exc: discord.HTTPException) -> RemoteServiceError:
    logger.error("moderation.failed", action=action, target=name, error=str(exc))
    return RemoteServiceError(
        f"{action} {name} failed: {exc}",
        user_message=f"Failed to {action} **{name}**: {exc.text or exc}",
    )


async def _kick(ctx: InteractionContext, guild: discord.Guild) -> None:
    member = await _target_member(ctx, guild, "kick")
    reason = ctx.option("reason", NO_REASON)
    try:
        await member.kick(reason=reason)
    except discord.HTTPException as exc:
        raise _failed("kick", member.name, exc) from exc
    logger.info("moderation.kick", actor=ctx.user_name, target=member.name, reason=reason)
    await ctx.reply(f"**{member.name}** has been kicked. Reason: {reason}")


async def _ban(ctx: InteractionContext, guild: discord.Guild) -> None:
    user = await ctx.resolve_user("user")
    if user is None:
        raise InvalidInputError("You must specify a user to ban")
    reason = ctx.option("reason", NO_REASON)
    delete_days = min(max(ctx.option("delete_days", 1), 0), 7)

    target: discord.abc.Snowflake = user
    member = user if isinstance(user, discord.Member) else guild.get_member(user.id)
    if member is not None:
        _check_hierarchy(ctx, guild, member, "ban")
        target = member
    try:
        await guild.ban(target, reason=reason, delete_message_seconds=delete_days * 86400)
    except discord.HTTPException as exc:
        raise _failed("ban", user.name, exc) from exc
    logger.info(
        "moderation.ban",
        actor=ctx.user_name,
        target=user.name,
        in_server=member is not None,
        reason=reason,
    )
    await ctx.reply(f"**{user.name}** has been banned. Reason: {reason}")


async def _timeout(ctx: InteractionContext, guild: discord.Guild) -> None:
    member = await _target_member(ctx, guild, "timeout")
    minutes = ctx.require("duration")
    if not 1 <= minutes <= MAX_TIMEOUT_MINUTES:
        raise InvalidInputError(f"Timeout duration must be between 1 and {MAX_TIMEOUT_MINUTES} minutes.")
    reason = ctx.option("reason", NO_REASON)
    try:
        await member.timeout(timedelta(minutes=minutes), reason=reason)
    except discord.HTTPException as exc:
        raise _failed("timeout", member.name, exc) from exc
    logger.info("moderation.timeout", actor=ctx.user_name, target=member.name, minutes=minutes)
    await ctx.reply(f"**{member.name}** has been timed out for {minutes} minutes. Reason: {reason}")


async def _remove_timeout(ctx: InteractionContext, guild: discord.Guild) -> None:
    member = await _target_member(ctx, guild, "modify")
    try:
        await member.timeout(None)
    except discord.HTTPException as exc:
        raise _failed("remove timeout from", member.name, exc) from exc
    logger.info("moderation.remove_timeout", actor=ctx.user_name, target=member.name)
    await ctx.reply(f"Timeout has been removed from **{member.name}**.")


async def _purge(ctx: InteractionContext, guild: discord.Guild) -> None:
    amount = min(max(ctx.option("amount", 10), 1), 100)
    author = await ctx.resolve_user("user")
    channel = ctx.channel
    if not isinstance(channel, (discord.TextChannel, discord.Thread, discord.VoiceChannel)):
        raise InvalidInputError("Messages can only be purged in a text channel.")

    await ctx.defer(ephemeral=True)
    limit = PURGE_SCAN_LIMIT if author is not None else amount
    with remote_call("read the message history"):
        history = [message async for message in channel.history(limit=limit)]
    if author is not None:
        history = [message for message in history if message.author.id == author.id]
    messages = history[:amount]

    suffix = f" from {author.name}" if author is not None else ""
    if not messages:
        await ctx.followup(f"No messages{suffix} found to delete.")
        return
    try:
        if len(messages) == 1:
            await messages[0].delete()
        else:
            await channel.delete_messages(messages)
    except discord.HTTPException as exc:
        logger.error("moderation.purge_failed", error=str(exc))
        raise RemoteServiceError(
            f"purge failed: {exc}",
            user_message=f"Failed to delete messages: {exc.text or exc}",
        ) from exc

    noun = "message" if len(messages) == 1 else "messages"
    logger.info("moderation.purge", actor=ctx.user_name, deleted=len(messages), channel_id=channel.id)
    await ctx.followup(f"Deleted {len(messages)} {noun}{suffix}.")


_ACTIONS = {
    "kick": _kick,
    "ban": _ban,
    "timeout": _timeout,
    "removetimeout": _remove_timeout,
    "purge": _purge,
}


async def moderation_command(ctx: InteractionContext) -> None:
    guild = ctx.require_guild()
    action = _ACTIONS.get(ctx.subcommand or "")
    if action is None:
        raise InvalidInputError("Unknown moderation command")
    await action(ctx, guild)


def register_moderation_command(registry: InteractionRegistry) -> None:
    user = OptionType.user
    integer = OptionType.integer
    registry.register(
        SlashCommand(
            name="mod",
            description="Moderation commands for server management",
            callback=moderation_command,
            guild_only=True,
            default_permissions=discord.Permissions(
                kick_members=True, ban_members=True, moderate_members=True
            ),
            subcommands=(
                Subcommand(
                    "kick",
                    "Kick a member from the server",
                    (
                        CommandParameter("user", "The user to kick", type=user),
                        CommandParameter("reason", "Reason for kicking the user", required=False),
                    ),
                ),
                Subcommand(
                    "ban",
                    "Ban a member from the server",
                    (
                        CommandParameter("user", "The user to ban", type=user),
                        CommandParameter(
                            "delete_days",
                            "Number of days of messages to delete (0-7)",
                            type=integer,
                            required=False,
                            min_value=0,
                            max_value=7,
                        ),
                        CommandParameter("reason", "Reason for banning the user", required=False),
                    ),
                ),
                Subcommand(
                    "timeout",
                    "Timeout (mute) a member",
                    (
                        CommandParameter("user", "The user to timeout", type=user),
                        CommandParameter(
                            "duration",
                            "Duration of the timeout in minutes",
                            type=integer,
                            min_value=1,
                            max_value=MAX_TIMEOUT_MINUTES,
                        ),
                        CommandParameter("reason", "Reason for the timeout", required=False),
                    ),
                ),
                Subcommand(
                    "removetimeout",
                    "Remove a timeout from a member",
                    (CommandParameter("user", "The user to remove timeout from", type=user),),
                ),
                Subcommand(
                    "purge",
                    "Delete a number of messages from a channel",
                    (
                        CommandParameter(
                            "amount",
                            "Number of messages to delete (1-100)",
                            type=integer,
                            min_value=1,
                            max_value=100,
                        ),
                        CommandParameter("user", "Only delete messages from this user", type=user, required=False),
                    ),
                ),
            ),
        )
    )
