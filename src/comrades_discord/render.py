"""Embed builders for bot replies."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import TYPE_CHECKING

import discord

if TYPE_CHECKING:
    from .polls import PollResult
    from .types import ReactionRolePair, TextCommand

NUMBER_EMOJI = ("1️⃣", "2️⃣", "3️⃣", "4️⃣", "5️⃣")


def option_emoji(position: int) -> str:
    if 1 <= position <= len(NUMBER_EMOJI):
        return NUMBER_EMOJI[position - 1]
    return "🔹"


def _now() -> datetime:
    return discord.utils.utcnow()


def ping_embed(gateway_ms: float, rest_ms: float) -> discord.Embed:
    embed = discord.Embed(
        title="🏓 Pong!",
        description="Bot is up and running!",
        color=discord.Color.green(),
        timestamp=_now(),
    )
    embed.add_field(name="Gateway Ping", value=f"{gateway_ms:.0f}ms", inline=True)
    embed.add_field(name="REST API Ping", value=f"{rest_ms:.0f}ms", inline=True)
    return embed


def help_embed(commands: Sequence[TextCommand], prefix: str) -> discord.Embed:
    embed = discord.Embed(title="Bot Commands", color=discord.Color.blue(), timestamp=_now())
    for command in commands:
        embed.add_field(name=command.name, value=command.description, inline=False)
    embed.set_footer(text=f"Type {prefix}help [command] for detailed usage information")
    return embed


def command_help_embed(command: TextCommand, prefix: str) -> discord.Embed:
    embed = discord.Embed(title="Bot Commands", color=discord.Color.blue(), timestamp=_now())
    embed.add_field(name="Command", value=command.name, inline=False)
    embed.add_field(name="Description", value=command.description, inline=False)
    embed.add_field(name="Usage", value=f"{prefix}{command.usage}", inline=False)
    return embed


def unknown_command_embed(name: str) -> discord.Embed:
    return discord.Embed(
        title="Unknown Command",
        description=f"The command `{name}` does not exist.",
        color=discord.Color.red(),
        timestamp=_now(),
    )


def user_info_embed(
    user: discord.User | discord.Member,
    member: discord.Member | None,
) -> discord.Embed:
    color = member.color if member is not None and member.color.value else discord.Color.blue()
    embed = discord.Embed(title="User Information", color=color, timestamp=_now())
    embed.set_thumbnail(url=user.display_avatar.url)
    embed.add_field(name="Username", value=user.name, inline=True)
    embed.add_field(name="Display Name", value=user.display_name, inline=True)
    embed.add_field(name="User ID", value=str(user.id), inline=True)
    embed.add_field(name="Account Created", value=discord.utils.format_dt(user.created_at), inline=False)
    if member is not None:
        if member.joined_at is not None:
            embed.add_field(
                name="Joined Server", value=discord.utils.format_dt(member.joined_at), inline=False
            )
        roles = [role.name for role in member.roles if not role.is_default()]
        embed.add_field(name="Roles", value=", ".join(roles) or "None", inline=False)
    return embed


def server_info_embed(guild: discord.Guild) -> discord.Embed:
    members = guild.members
    statuses = {status: 0 for status in discord.Status}
    for member in members:
        statuses[member.status] = statuses.get(member.status, 0) + 1
    bots = sum(1 for member in members if member.bot)
    text_channels = len(guild.text_channels)
    voice_channels = len(guild.voice_channels)
    categories = len(guild.categories)

    embed = discord.Embed(title=f"Server Information: {guild.name}", color=discord.Color.blue())
    if guild.icon is not None:
        embed.set_thumbnail(url=guild.icon.url)
    owner = guild.owner.display_name if guild.owner is not None else "Unknown"
    embed.add_field(name="Owner", value=owner, inline=True)
    embed.add_field(name="Server ID", value=str(guild.id), inline=True)
    embed.add_field(name="Created On", value=guild.created_at.strftime("%B %d, %Y"), inline=True)
    embed.add_field(name="Members", value=f"Total: {guild.member_count or len(members)}", inline=False)
    embed.add_field(
        name="Member Status",
        value=(
            f"🟢 Online: {statuses[discord.Status.online]}\n"
            f"🟠 Idle: {statuses[discord.Status.idle]}\n"
            f"🔴 Do Not Disturb: {statuses[discord.Status.dnd]}\n"
            f"⚫ Offline: {statuses[discord.Status.offline]}\n"
            f"🤖 Bots: {bots}"
        ),
        inline=True,
    )
    embed.add_field(
        name="Channels",
        value=(
            f"💬 Text: {text_channels}\n"
            f"🔊 Voice: {voice_channels}\n"
            f"📁 Categories: {categories}\n"
            f"📊 Total: {text_channels + voice_channels + categories}"
        ),
        inline=True,
    )
    embed.add_field(name="Roles", value=str(len(guild.roles)), inline=True)
    embed.add_field(name="Emojis", value=str(len(guild.emojis)), inline=True)
    embed.add_field(name="Boost Tier", value=f"Level {guild.premium_tier}", inline=True)
    embed.add_field(name="Boost Count", value=str(guild.premium_subscription_count), inline=True)
    if guild.features:
        features = ", ".join(f.replace("_", " ").lower() for f in guild.features)
        embed.add_field(name="Server Features", value=features[:1024], inline=False)
    embed.add_field(name="Verification Level", value=str(guild.verification_level), inline=True)
    return embed


def poll_embed(question: str, minutes: int, author: discord.User | discord.Member) -> discord.Embed:
    embed = discord.Embed(
        title=f"📊 Poll: {question}",
        description=f"Click the buttons below to vote. Poll ends in {minutes} minutes.",
        color=discord.Color.teal(),
    )
    embed.set_footer(text=f"Poll created by {author.name}", icon_url=author.display_avatar.url)
    return embed


def poll_results_embed(question: str, result: PollResult) -> discord.Embed:
    embed = discord.Embed(
        title=f"📊 Poll Results: {question}",
        description="The poll has ended. Here are the results:",
        color=discord.Color.green(),
    )
    for position, (option, count) in enumerate(zip(result.options, result.counts), start=1):
        embed.add_field(name=f"{option_emoji(position)} {option}", value=f"{count} votes", inline=False)
    embed.add_field(name="📣 Results", value=result.summary, inline=False)
    return embed


def reaction_roles_embed(
    title: str,
    description: str,
    pairs: Sequence[ReactionRolePair],
) -> discord.Embed:
    embed = discord.Embed(title=title, description=description, color=discord.Color.blue())
    for pair in pairs:
        embed.add_field(name=pair.role_name, value=f"{pair.emoji} - {pair.role_name}", inline=False)
    return embed


def welcome_embed(member: discord.Member) -> discord.Embed:
    guild = member.guild
    embed = discord.Embed(
        title=f"Welcome to {guild.name}!",
        description=f"We're excited to have you join us, {member.mention}!",
        color=discord.Color.green(),
        timestamp=_now(),
    )
    embed.set_thumbnail(url=member.display_avatar.url)
    embed.add_field(name="Member Count", value=f"You are member #{guild.member_count}", inline=False)
    embed.add_field(
        name="Account Created", value=discord.utils.format_dt(member.created_at), inline=False
    )
    embed.set_footer(text=f"User ID: {member.id}")
    return embed


def farewell_embed(member: discord.Member) -> discord.Embed:
    embed = discord.Embed(
        title="A Member Has Left",
        description=f"{member.mention} has left the server.",
        color=discord.Color.red(),
        timestamp=_now(),
    )
    embed.set_thumbnail(url=member.display_avatar.url)
    embed.add_field(
        name="Member Count", value=f"We now have {member.guild.member_count} members", inline=False
    )
    embed.set_footer(text=f"User ID: {member.id}")
    return embed
