"""Name to handler registries for text and slash commands."""

from __future__ import annotations

from typing import Any

from .logging import get_logger
from .types import SlashCommand, TextCommand

logger = get_logger(__name__)

__all__ = ["CommandRegistry", "InteractionRegistry", "parse_prefixed"]


def parse_prefixed(body: str, prefix: str) -> tuple[str, list[str]] | None:
    """Split a prefixed message into command name and arguments.

    Returns ``None`` when the body does not start with ``prefix`` or holds
    nothing but the prefix.

    Examples:
        ("!echo hi  there", "!") -> ("echo", ["hi", "there"])
        ("!PING", "!") -> ("ping", [])
        ("!", "!") -> None
    """
    if not prefix or not body.startswith(prefix):
        return None
    parts = body[len(prefix) :].split()
    if not parts:
        return None
    return parts[0].lower(), parts[1:]


class CommandRegistry:
    """Prefixed text commands; names are matched case-insensitively."""

    def __init__(self) -> None:
        self._commands: dict[str, TextCommand] = {}

    def register(self, command: TextCommand) -> None:
        # last registration wins, position in the listing is kept
        self._commands[command.name.lower()] = command
        logger.info("command.registered", command=command.name, kind="text")

    def lookup(self, name: str) -> TextCommand | None:
        return self._commands.get(name.lower())

    def list(self) -> list[TextCommand]:
        return list(self._commands.values())

    def __len__(self) -> int:
        return len(self._commands)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._commands


class InteractionRegistry:
    """Slash commands; names are matched exactly."""

    def __init__(self) -> None:
        self._commands: dict[str, SlashCommand] = {}

    def register(self, command: SlashCommand) -> None:
        self._commands[command.name] = command
        logger.info("command.registered", command=command.name, kind="slash")

    def lookup(self, name: str) -> SlashCommand | None:
        return self._commands.get(name)

    def list(self) -> list[SlashCommand]:
        return list(self._commands.values())

    def payloads(self) -> list[dict[str, Any]]:
        """Bulk registration payload for every command, in registration order."""
        return [command.to_payload() for command in self._commands.values()]

    def __len__(self) -> int:
        return len(self._commands)

    def __contains__(self, name: object) -> bool:
        return name in self._commands
