"""Tests for component construction and event wiring."""

from unittest.mock import MagicMock

import anyio
import discord
import pytest

from comrades_discord.config import BotSettings
from comrades_discord.loop import build_components, wire_events
from comrades_discord.supervisor import TaskSupervisor

from .conftest import make_message

pytestmark = pytest.mark.anyio


class FakeClient:
    """Records handlers the way DiscordBotClient.set_handler does."""

    def __init__(self):
        self.handlers = {}
        self.bot = MagicMock()
        self.user = MagicMock(id=999)

    def set_handler(self, event_name, handler):
        self.handlers[event_name] = handler

    def get_guild(self, guild_id):
        return None


async def test_build_components_registers_everything():
    async with TaskSupervisor() as supervisor:
        components = build_components(BotSettings(token="t", prefix="?"), supervisor)

    assert [c.name for c in components.commands.list()] == ["ping", "echo", "help"]
    assert [c.name for c in components.interactions.list()] == [
        "ping",
        "echo",
        "userinfo",
        "serverinfo",
        "poll",
        "mod",
        "reactionrole",
    ]
    assert components.dispatcher.prefix == "?"


async def test_message_event_runs_command_in_supervisor():
    client = FakeClient()
    async with TaskSupervisor() as supervisor:
        components = build_components(BotSettings(token="t"), supervisor)
        wire_events(client, components)
        assert set(client.handlers) == {
            "on_message",
            "on_interaction",
            "on_raw_reaction_add",
            "on_raw_reaction_remove",
            "on_member_join",
            "on_member_remove",
        }

        message = make_message("!echo hi")
        await client.handlers["on_message"](message)
        with anyio.fail_after(1):
            while supervisor.active:
                await anyio.sleep(0.01)

    message.channel.send.assert_awaited_once_with(content="hi")


async def test_events_dropped_after_shutdown():
    client = FakeClient()
    async with TaskSupervisor() as supervisor:
        components = build_components(BotSettings(token="t"), supervisor)
        wire_events(client, components)
        await supervisor.shutdown(1)

        message = make_message("!echo hi")
        await client.handlers["on_message"](message)

    message.channel.send.assert_not_awaited()


async def test_own_reactions_are_ignored():
    client = FakeClient()
    async with TaskSupervisor() as supervisor:
        components = build_components(BotSettings(token="t"), supervisor)
        wire_events(client, components)
        payload = MagicMock(spec=discord.RawReactionActionEvent)
        payload.user_id = 999
        await client.handlers["on_raw_reaction_add"](payload)
        assert supervisor.active == []
