"""Invocation contexts handed to command handlers.

The contexts wrap the discord.py message or interaction that triggered a
command and turn every failed platform call into a :class:`RemoteServiceError`,
so handlers never deal with ``discord.HTTPException`` directly.
"""

from __future__ import annotations

import contextlib
from collections.abc import Iterator
from typing import Any

import discord

from .errors import InvalidInputError, RemoteServiceError
from .types import Emoji, OptionType

__all__ = [
    "InteractionContext",
    "MessageContext",
    "MessageHandle",
    "extract_options",
    "remote_call",
]

# option types whose values are snowflakes sent as strings
_SNOWFLAKE_TYPES = {
    OptionType.user.value,
    OptionType.channel.value,
    OptionType.role.value,
    OptionType.mentionable.value,
}
_GROUP_TYPES = {OptionType.subcommand.value, OptionType.subcommand_group.value}


@contextlib.contextmanager
def remote_call(action: str) -> Iterator[None]:
    """Translate discord.py request failures into :class:`RemoteServiceError`."""
    try:
        yield
    except discord.Forbidden as exc:
        raise RemoteServiceError(
            f"{action} forbidden: {exc}",
            user_message=f"I don't have permission to {action}.",
        ) from exc
    except discord.HTTPException as exc:
        raise RemoteServiceError(f"{action} failed: {exc}") from exc


def _message_kwargs(
    content: str | None,
    embed: discord.Embed | None,
    view: discord.ui.View | None,
) -> dict[str, Any]:
    kwargs: dict[str, Any] = {}
    if content is not None:
        kwargs["content"] = content
    if embed is not None:
        kwargs["embed"] = embed
    if view is not None:
        kwargs["view"] = view
    return kwargs


def extract_options(data: dict[str, Any] | None) -> tuple[str | None, dict[str, Any]]:
    """Return ``(subcommand, {option name: value})`` from raw interaction data.

    Snowflake options (users, roles, channels) are converted to ``int``.
    """
    if not data:
        return None, {}
    raw_options: list[dict[str, Any]] = data.get("options") or []
    subcommand: str | None = None
    # descend through subcommand groups into the invoked subcommand
    while raw_options and raw_options[0].get("type") in _GROUP_TYPES:
        group = raw_options[0]
        subcommand = group["name"] if subcommand is None else f"{subcommand} {group['name']}"
        raw_options = group.get("options") or []

    values: dict[str, Any] = {}
    for option in raw_options:
        value = option.get("value")
        if value is not None and option.get("type") in _SNOWFLAKE_TYPES:
            value = int(value)
        values[option["name"]] = value
    return subcommand, values


class MessageHandle:
    """A sent message that can be edited or reacted to later."""

    def __init__(
        self,
        message: discord.Message | discord.PartialMessage | discord.WebhookMessage,
    ) -> None:
        self._message = message

    @property
    def message(self) -> discord.Message | discord.PartialMessage | discord.WebhookMessage:
        return self._message

    @property
    def message_id(self) -> int:
        return self._message.id

    @property
    def channel_id(self) -> int:
        return self._message.channel.id

    async def edit(
        self,
        *,
        content: str | None = None,
        embed: discord.Embed | None = None,
        clear_components: bool = False,
    ) -> None:
        kwargs = _message_kwargs(content, embed, None)
        if clear_components:
            kwargs["view"] = None
        with remote_call("edit the message"):
            await self._message.edit(**kwargs)

    async def add_reaction(self, emoji: Emoji) -> None:
        with remote_call(f"add reaction {emoji}"):
            await self._message.add_reaction(emoji.to_partial())


class MessageContext:
    """Context of a prefixed text command."""

    def __init__(self, message: discord.Message, client: discord.Client | None = None) -> None:
        self.message = message
        self.client = client

    @property
    def author(self) -> discord.User | discord.Member:
        return self.message.author

    @property
    def user_id(self) -> int:
        return self.message.author.id

    @property
    def user_name(self) -> str:
        return self.message.author.name

    @property
    def is_bot(self) -> bool:
        return self.message.author.bot

    @property
    def channel(self) -> discord.abc.Messageable:
        return self.message.channel

    @property
    def guild(self) -> discord.Guild | None:
        return self.message.guild

    @property
    def latency_ms(self) -> float | None:
        if self.client is None:
            return None
        return self.client.latency * 1000

    def permissions(self) -> discord.Permissions:
        author = self.message.author
        channel = self.message.channel
        if isinstance(author, discord.Member) and isinstance(channel, discord.abc.GuildChannel):
            return channel.permissions_for(author)
        # outside guilds there is nobody to notify, treat as unrestricted
        return discord.Permissions.all()

    async def send(
        self,
        content: str | None = None,
        *,
        embed: discord.Embed | None = None,
    ) -> MessageHandle:
        with remote_call("send a message"):
            sent = await self.message.channel.send(**_message_kwargs(content, embed, None))
        return MessageHandle(sent)


class InteractionContext:
    """Context of a slash command or component click."""

    def __init__(self, interaction: discord.Interaction) -> None:
        self.interaction = interaction
        data: dict[str, Any] = dict(interaction.data or {})
        self.command_name: str | None = data.get("name")
        self.custom_id: str | None = data.get("custom_id")
        self.subcommand, self.options = extract_options(data)

    @property
    def client(self) -> discord.Client:
        return self.interaction.client

    @property
    def user(self) -> discord.User | discord.Member:
        return self.interaction.user

    @property
    def user_id(self) -> int:
        return self.interaction.user.id

    @property
    def user_name(self) -> str:
        return self.interaction.user.name

    @property
    def member(self) -> discord.Member | None:
        user = self.interaction.user
        return user if isinstance(user, discord.Member) else None

    @property
    def guild(self) -> discord.Guild | None:
        return self.interaction.guild

    @property
    def channel(self) -> Any:
        return self.interaction.channel

    @property
    def acknowledged(self) -> bool:
        return self.interaction.response.is_done()

    @property
    def latency_ms(self) -> float:
        return self.client.latency * 1000

    def permissions(self) -> discord.Permissions:
        return self.interaction.permissions

    def option(self, name: str, default: Any = None) -> Any:
        value = self.options.get(name)
        return default if value is None else value

    def require(self, name: str) -> Any:
        value = self.options.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise InvalidInputError(f"Missing required option: {name}")
        return value

    def require_guild(self) -> discord.Guild:
        if self.guild is None:
            raise InvalidInputError("This command can only be used in a server.")
        return self.guild

    async def resolve_user(self, name: str) -> discord.User | discord.Member | None:
        user_id = self.option(name)
        if user_id is None:
            return None
        guild = self.guild
        if guild is not None:
            member = guild.get_member(user_id)
            if member is not None:
                return member
        user = self.client.get_user(user_id)
        if user is not None:
            return user
        with remote_call("look up that user"):
            return await self.client.fetch_user(user_id)

    def resolve_role(self, name: str) -> discord.Role | None:
        role_id = self.option(name)
        if role_id is None or self.guild is None:
            return None
        return self.guild.get_role(role_id)

    async def reply(
        self,
        content: str | None = None,
        *,
        embed: discord.Embed | None = None,
        view: discord.ui.View | None = None,
        ephemeral: bool = False,
    ) -> None:
        with remote_call("reply"):
            await self.interaction.response.send_message(
                ephemeral=ephemeral, **_message_kwargs(content, embed, view)
            )

    async def defer(self, *, ephemeral: bool = False) -> None:
        with remote_call("acknowledge the command"):
            await self.interaction.response.defer(ephemeral=ephemeral, thinking=True)

    async def followup(
        self,
        content: str | None = None,
        *,
        embed: discord.Embed | None = None,
        ephemeral: bool = False,
    ) -> MessageHandle:
        with remote_call("send a followup"):
            sent = await self.interaction.followup.send(
                ephemeral=ephemeral, wait=True, **_message_kwargs(content, embed, None)
            )
        return MessageHandle(sent)

    async def respond(
        self,
        content: str | None = None,
        *,
        embed: discord.Embed | None = None,
        ephemeral: bool = False,
    ) -> None:
        """Reply if the interaction is not acknowledged yet, otherwise follow up."""
        if self.acknowledged:
            await self.followup(content, embed=embed, ephemeral=ephemeral)
        else:
            await self.reply(content, embed=embed, ephemeral=ephemeral)

    async def original_message(self) -> MessageHandle:
        """Handle to the response message, edited through the bot's channel route.

        The interaction webhook token expires 15 minutes after the command.
        """
        with remote_call("fetch the original response"):
            message = await self.interaction.original_response()
        return MessageHandle(message.channel.get_partial_message(message.id))

    async def send_to_channel(self, *, embed: discord.Embed) -> MessageHandle:
        channel = self.interaction.channel
        if not isinstance(channel, discord.abc.Messageable):
            raise InvalidInputError("I can't post messages in this channel.")
        with remote_call("post in this channel"):
            sent = await channel.send(embed=embed)
        return MessageHandle(sent)
