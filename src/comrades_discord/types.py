"""Type definitions for commands, parameters and emoji."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import discord

if TYPE_CHECKING:
    from .context import InteractionContext, MessageContext

TextCallback = Callable[[list[str], "MessageContext"], Awaitable[None]]
SlashCallback = Callable[["InteractionContext"], Awaitable[None]]
OptionType = discord.AppCommandOptionType


@dataclass(frozen=True, slots=True)
class TextCommand:
    """Prefixed text command, e.g. ``!help ping``."""

    name: str
    description: str
    usage: str
    callback: TextCallback


@dataclass(frozen=True, slots=True)
class CommandParameter:
    """Typed option declared by a slash command."""

    name: str
    description: str
    type: OptionType = OptionType.string
    required: bool = True
    min_value: int | None = None
    max_value: int | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "type": self.type.value,
            "name": self.name,
            "description": self.description,
            "required": self.required,
        }
        if self.min_value is not None:
            payload["min_value"] = self.min_value
        if self.max_value is not None:
            payload["max_value"] = self.max_value
        return payload


@dataclass(frozen=True, slots=True)
class Subcommand:
    """Subcommand of a slash command group such as ``/mod kick``."""

    name: str
    description: str
    parameters: tuple[CommandParameter, ...] = ()

    def to_payload(self) -> dict[str, Any]:
        return {
            "type": OptionType.subcommand.value,
            "name": self.name,
            "description": self.description,
            "options": [p.to_payload() for p in self.parameters],
        }


@dataclass(frozen=True, slots=True)
class SlashCommand:
    """Application (slash) command."""

    name: str
    description: str
    callback: SlashCallback
    parameters: tuple[CommandParameter, ...] = ()
    subcommands: tuple[Subcommand, ...] = ()
    guild_only: bool = False
    default_permissions: discord.Permissions | None = None

    def to_payload(self) -> dict[str, Any]:
        """Render the bulk registration payload for this command."""
        options = [s.to_payload() for s in self.subcommands]
        options.extend(p.to_payload() for p in self.parameters)
        payload: dict[str, Any] = {
            "type": 1,
            "name": self.name,
            "description": self.description,
            "options": options,
        }
        if self.guild_only:
            payload["dm_permission"] = False
        if self.default_permissions is not None:
            payload["default_member_permissions"] = str(self.default_permissions.value)
        return payload


@dataclass(frozen=True, slots=True)
class CustomEmoji:
    """Guild emoji written as ``<:name:id>`` or ``<a:name:id>``."""

    name: str
    id: int
    animated: bool = False

    @property
    def key(self) -> str:
        return str(self.id)

    def __str__(self) -> str:
        prefix = "a" if self.animated else ""
        return f"<{prefix}:{self.name}:{self.id}>"

    def to_partial(self) -> discord.PartialEmoji:
        return discord.PartialEmoji(name=self.name, id=self.id, animated=self.animated)


@dataclass(frozen=True, slots=True)
class UnicodeEmoji:
    """Standard emoji such as a thumbs up."""

    value: str

    @property
    def key(self) -> str:
        return self.value

    def __str__(self) -> str:
        return self.value

    def to_partial(self) -> discord.PartialEmoji:
        return discord.PartialEmoji(name=self.value)


Emoji = CustomEmoji | UnicodeEmoji


@dataclass(frozen=True, slots=True)
class ReactionRolePair:
    """A role offered on a reaction-role message."""

    role_id: int
    role_name: str
    emoji: Emoji

