"""Reaction roles: members pick up roles by reacting to a bot message."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

import discord

from .errors import InvalidInputError, PermissionDeniedError, RemoteServiceError
from .logging import get_logger
from .render import reaction_roles_embed
from .types import (
    CommandParameter,
    CustomEmoji,
    Emoji,
    OptionType,
    ReactionRolePair,
    SlashCommand,
    UnicodeEmoji,
)

if TYPE_CHECKING:
    from .context import InteractionContext
    from .registry import InteractionRegistry

logger = get_logger(__name__)

__all__ = ["MAX_PAIRS", "ReactionRoleManager", "parse_emoji", "register_reaction_role_command"]

MAX_PAIRS = 5
CUSTOM_EMOJI_PATTERN = re.compile(r"^<(?P<animated>a?):(?P<name>\w+):(?P<id>\d+)>$")


def parse_emoji(text: str) -> Emoji:
    """Parse ``<:name:id>`` / ``<a:name:id>`` into a custom emoji, anything else as unicode."""
    value = text.strip()
    if not value:
        raise InvalidInputError("An emoji is required for every role.")
    match = CUSTOM_EMOJI_PATTERN.match(value)
    if match is not None:
        return CustomEmoji(
            name=match.group("name"),
            id=int(match.group("id")),
            animated=bool(match.group("animated")),
        )
    return UnicodeEmoji(value)


def emoji_key(emoji: discord.PartialEmoji) -> str:
    """Lookup key of an emoji seen on a reaction event."""
    if emoji.id is not None:
        return str(emoji.id)
    return emoji.name or ""


class ReactionRoleManager:
    """In-memory ``message id -> emoji key -> role id`` bindings."""

    def __init__(self) -> None:
        self._bindings: dict[int, dict[str, int]] = {}

    def bind(self, message_id: int, emoji: Emoji, role_id: int) -> None:
        self._bindings.setdefault(message_id, {})[emoji.key] = role_id
        logger.info("reaction_role.bound", message_id=message_id, emoji=str(emoji), role_id=role_id)

    def role_for(self, message_id: int, key: str) -> int | None:
        roles = self._bindings.get(message_id)
        if roles is None:
            return None
        return roles.get(key)

    def bindings(self, message_id: int) -> dict[str, int]:
        return dict(self._bindings.get(message_id, {}))

    def __len__(self) -> int:
        return len(self._bindings)

    async def handle_reaction(
        self,
        payload: discord.RawReactionActionEvent,
        guild: discord.Guild | None,
        *,
        added: bool,
    ) -> bool:
        """Grant or revoke the bound role; returns whether a role changed."""
        if guild is None:
            return False
        role_id = self.role_for(payload.message_id, emoji_key(payload.emoji))
        if role_id is None:
            return False
        role = guild.get_role(role_id)
        if role is None:
            logger.warning("reaction_role.role_missing", role_id=role_id, message_id=payload.message_id)
            return False

        member = payload.member or guild.get_member(payload.user_id)
        if member is None:
            try:
                member = await guild.fetch_member(payload.user_id)
            except discord.HTTPException as exc:
                logger.warning("reaction_role.member_missing", user_id=payload.user_id, error=str(exc))
                return False
        if member.bot:
            return False

        has_role = any(r.id == role.id for r in member.roles)
        try:
            if added and not has_role:
                await member.add_roles(role, reason="Reaction role")
                logger.info("reaction_role.added", role=role.name, member=member.display_name)
                return True
            if not added and has_role:
                await member.remove_roles(role, reason="Reaction role")
                logger.info("reaction_role.removed", role=role.name, member=member.display_name)
                return True
        except discord.HTTPException as exc:
            logger.error(
                "reaction_role.update_failed",
                role=role.name,
                member=member.display_name,
                added=added,
                error=str(exc),
            )
        return False


def register_reaction_role_command(
    registry: InteractionRegistry,
    manager: ReactionRoleManager,
) -> None:
    """Register ``/reactionrole``."""

    async def reaction_role_command(ctx: InteractionContext) -> None:
        guild = ctx.require_guild()
        if not guild.me.guild_permissions.manage_roles:
            raise PermissionDeniedError(
                "Bot lacks Manage Roles",
                user_message="I don't have permission to manage roles in this server.",
            )
        title = ctx.option("title") or "Reaction Roles"
        description = ctx.option("description") or "React to this message to get the corresponding role."

        pairs: list[ReactionRolePair] = []
        for i in range(1, MAX_PAIRS + 1):
            role = ctx.resolve_role(f"role{i}")
            raw_emoji = ctx.option(f"emoji{i}")
            if role is None or raw_emoji is None:
                continue
            if role >= guild.me.top_role:
                raise PermissionDeniedError(
                    f"Role {role.name} is above the bot",
                    user_message=f"I can't assign **{role.name}**; it is above my highest role.",
                )
            pairs.append(ReactionRolePair(role_id=role.id, role_name=role.name, emoji=parse_emoji(raw_emoji)))
        if not pairs:
            raise InvalidInputError("Provide at least one role with its emoji.")

        await ctx.reply("Creating reaction roles message...", ephemeral=True)
        message = await ctx.send_to_channel(embed=reaction_roles_embed(title, description, pairs))

        for pair in pairs:
            try:
                await message.add_reaction(pair.emoji)
            except RemoteServiceError as exc:
                logger.error("reaction_role.reaction_failed", emoji=str(pair.emoji), error=exc.message)
                continue
            manager.bind(message.message_id, pair.emoji, pair.role_id)

    options: list[CommandParameter] = [
        CommandParameter("title", "Title for the reaction roles message"),
        CommandParameter("description", "Description explaining how to use the reaction roles"),
    ]
    ordinals = ("first", "second", "third", "fourth", "fifth")
    for i, ordinal in enumerate(ordinals, start=1):
        required = i == 1
        options.append(
            CommandParameter(f"role{i}", f"The {ordinal} role to assign", type=OptionType.role, required=required)
        )
        options.append(
            CommandParameter(f"emoji{i}", f"Emoji for the {ordinal} role", required=required)
        )

    registry.register(
        SlashCommand(
            name="reactionrole",
            description="Create a reaction role message",
            callback=reaction_role_command,
            parameters=tuple(options),
            guild_only=True,
            default_permissions=discord.Permissions(manage_roles=True),
        )
    )
