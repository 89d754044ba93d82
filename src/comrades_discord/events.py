"""Member join and leave announcements."""

from __future__ import annotations

import discord

from .logging import get_logger
from .render import farewell_embed, welcome_embed

logger = get_logger(__name__)

__all__ = ["announce_member_join", "announce_member_leave", "find_welcome_channel"]

WELCOME_NAMES = {"welcome", "greetings"}
FALLBACK_NAMES = {"general", "chat", "main"}


def find_welcome_channel(guild: discord.Guild) -> discord.TextChannel | None:
    """Pick the channel for greetings.

    Order:
    - a channel named welcome or greetings
    - the guild's system channel
    - a channel named general, chat or main
    """
    for channel in guild.text_channels:
        if channel.name.lower() in WELCOME_NAMES:
            return channel
    if guild.system_channel is not None:
        return guild.system_channel
    for channel in guild.text_channels:
        if channel.name.lower() in FALLBACK_NAMES:
            return channel
    return None


async def _announce(member: discord.Member, embed: discord.Embed, kind: str) -> None:
    channel = find_welcome_channel(member.guild)
    if channel is None:
        logger.debug("member.no_channel", kind=kind, guild_id=member.guild.id)
        return
    try:
        await channel.send(embed=embed)
    except discord.HTTPException as exc:
        logger.warning("member.announce_failed", kind=kind, channel_id=channel.id, error=str(exc))


async def announce_member_join(member: discord.Member) -> None:
    logger.info("member.joined", user=member.name, user_id=member.id, guild=member.guild.name)
    await _announce(member, welcome_embed(member), "join")


async def announce_member_leave(member: discord.Member) -> None:
    logger.info("member.left", user=member.name, user_id=member.id, guild=member.guild.name)
    await _announce(member, farewell_embed(member), "leave")
