"""Tests for member join and leave announcements."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from comrades_discord.events import announce_member_join, find_welcome_channel


def make_channel(name):
    channel = MagicMock()
    channel.name = name
    channel.send = AsyncMock()
    return channel


def make_guild(names, *, system_channel=None):
    guild = MagicMock()
    guild.text_channels = [make_channel(name) for name in names]
    guild.system_channel = system_channel
    return guild


class TestFindWelcomeChannel:
    def test_prefers_welcome_named_channel(self):
        system = make_channel("system")
        guild = make_guild(["general", "Welcome"], system_channel=system)
        assert find_welcome_channel(guild).name == "Welcome"

    def test_falls_back_to_system_channel(self):
        system = make_channel("system")
        guild = make_guild(["general"], system_channel=system)
        assert find_welcome_channel(guild) is system

    def test_falls_back_to_general(self):
        guild = make_guild(["random", "chat"])
        assert find_welcome_channel(guild).name == "chat"

    def test_nothing_suitable(self):
        assert find_welcome_channel(make_guild(["random"])) is None


@pytest.mark.anyio
async def test_join_posts_welcome_embed():
    guild = make_guild(["welcome"])
    member = MagicMock()
    member.guild = guild
    member.mention = "<@5>"
    member.name = "newbie"
    member.created_at = datetime(2020, 1, 1, tzinfo=timezone.utc)

    await announce_member_join(member)

    embed = guild.text_channels[0].send.await_args.kwargs["embed"]
    assert embed.description == "We're excited to have you join us, <@5>!"
