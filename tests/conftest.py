"""Shared fixtures and fakes for discord.py objects."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from comrades_discord.context import InteractionContext, MessageContext


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


def make_sent_message(message_id: int = 900, channel_id: int = 10) -> MagicMock:
    sent = MagicMock()
    sent.id = message_id
    sent.channel.id = channel_id
    sent.edit = AsyncMock()
    sent.add_reaction = AsyncMock()
    return sent


def make_message(
    content: str,
    *,
    author_id: int = 1,
    author_name: str = "alice",
    bot: bool = False,
) -> MagicMock:
    message = MagicMock()
    message.id = 500
    message.content = content
    message.author.id = author_id
    message.author.name = author_name
    message.author.bot = bot
    message.guild = None
    message.channel.send = AsyncMock(return_value=make_sent_message())
    return message


def make_message_context(content: str = "", **kwargs: Any) -> MessageContext:
    return MessageContext(make_message(content, **kwargs))


def make_interaction(
    data: dict[str, Any] | None = None,
    *,
    acknowledged: bool = False,
    user_id: int = 1,
    user_name: str = "alice",
    guild: Any = None,
) -> MagicMock:
    interaction = MagicMock()
    interaction.id = 700
    interaction.data = data or {}
    interaction.user.id = user_id
    interaction.user.name = user_name
    interaction.guild = guild
    interaction.client.latency = 0.042
    interaction.response.is_done = MagicMock(return_value=acknowledged)
    interaction.response.send_message = AsyncMock()
    interaction.response.defer = AsyncMock()
    interaction.followup.send = AsyncMock(return_value=make_sent_message(901))
    original = make_sent_message(902)
    original.channel.get_partial_message = MagicMock(return_value=make_sent_message(902))
    interaction.original_response = AsyncMock(return_value=original)
    return interaction


def command_data(name: str, **options: Any) -> dict[str, Any]:
    """Raw application command data with string/integer options."""
    return {
        "name": name,
        "options": [
            {"name": key, "type": 4 if isinstance(value, int) else 3, "value": value}
            for key, value in options.items()
        ],
    }


def make_interaction_context(data: dict[str, Any] | None = None, **kwargs: Any) -> InteractionContext:
    return InteractionContext(make_interaction(data, **kwargs))
