"""Tests for the /mod command group."""

from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from comrades_discord.errors import InvalidInputError, PermissionDeniedError
from comrades_discord.moderation import can_interact, moderation_command, register_moderation_command
from comrades_discord.registry import InteractionRegistry

from .conftest import make_interaction_context

OWNER_ID = 1
BOT_ID = 2
TARGET_ID = 50


def make_member(guild, member_id, top_role, name="member"):
    member = MagicMock()
    member.guild = guild
    member.id = member_id
    member.name = name
    member.top_role = top_role
    member.kick = AsyncMock()
    member.timeout = AsyncMock()
    return member


def make_guild(*, bot_rank=10):
    guild = MagicMock()
    guild.owner_id = OWNER_ID
    guild.me = make_member(guild, BOT_ID, bot_rank, name="bot")
    guild.ban = AsyncMock()
    return guild


def mod_data(subcommand, **options):
    types = {"user": 6}
    return {
        "name": "mod",
        "options": [
            {
                "name": subcommand,
                "type": 1,
                "options": [
                    {
                        "name": key,
                        "type": types.get(key, 4 if isinstance(value, int) else 3),
                        "value": str(value) if key == "user" else value,
                    }
                    for key, value in options.items()
                ],
            }
        ],
    }


def setup_target(guild, *, rank=3):
    target = make_member(guild, TARGET_ID, rank, name="bob")
    guild.get_member = MagicMock(return_value=target)
    guild.fetch_member = AsyncMock(return_value=target)
    return target


class TestCanInteract:
    def test_higher_role_wins(self):
        guild = make_guild()
        assert can_interact(make_member(guild, 3, 5), make_member(guild, 4, 2))
        assert not can_interact(make_member(guild, 3, 2), make_member(guild, 4, 5))
        assert not can_interact(make_member(guild, 3, 2), make_member(guild, 4, 2))

    def test_owner_rules(self):
        guild = make_guild()
        owner = make_member(guild, OWNER_ID, 0)
        assert can_interact(owner, make_member(guild, 4, 9))
        assert not can_interact(make_member(guild, 3, 99), owner)


@pytest.mark.anyio
class TestModerationCommand:
    async def test_kick(self):
        guild = make_guild()
        target = setup_target(guild)
        ctx = make_interaction_context(mod_data("kick", user=TARGET_ID, reason="spam"), guild=guild)

        await moderation_command(ctx)

        target.kick.assert_awaited_once_with(reason="spam")
        ctx.interaction.response.send_message.assert_awaited_once_with(
            ephemeral=False, content="**bob** has been kicked. Reason: spam"
        )

    async def test_kick_above_bot_is_denied(self):
        guild = make_guild(bot_rank=3)
        target = setup_target(guild, rank=8)
        ctx = make_interaction_context(mod_data("kick", user=TARGET_ID), guild=guild)

        with pytest.raises(PermissionDeniedError) as exc_info:
            await moderation_command(ctx)
        assert "higher roles than me" in exc_info.value.user_message
        target.kick.assert_not_awaited()

    async def test_kick_non_member(self):
        guild = make_guild()
        setup_target(guild)
        guild.fetch_member.side_effect = discord.NotFound(MagicMock(status=404, reason="Not Found"), "Unknown Member")
        ctx = make_interaction_context(mod_data("kick", user=TARGET_ID), guild=guild)

        with pytest.raises(InvalidInputError) as exc_info:
            await moderation_command(ctx)
        assert exc_info.value.user_message == "This user is not a member of this server."

    async def test_ban_clamps_delete_days(self):
        guild = make_guild()
        target = setup_target(guild)
        ctx = make_interaction_context(mod_data("ban", user=TARGET_ID, delete_days=30), guild=guild)

        await moderation_command(ctx)

        guild.ban.assert_awaited_once_with(target, reason="No reason provided", delete_message_seconds=7 * 86400)

    async def test_timeout_range(self):
        guild = make_guild()
        target = setup_target(guild)
        ctx = make_interaction_context(mod_data("timeout", user=TARGET_ID, duration=50000), guild=guild)

        with pytest.raises(InvalidInputError):
            await moderation_command(ctx)
        target.timeout.assert_not_awaited()

    async def test_remove_timeout(self):
        guild = make_guild()
        target = setup_target(guild)
        ctx = make_interaction_context(mod_data("removetimeout", user=TARGET_ID), guild=guild)

        await moderation_command(ctx)

        target.timeout.assert_awaited_once_with(None)

    async def test_purge_filters_by_author(self):
        guild = make_guild()
        setup_target(guild)
        messages = [MagicMock(), MagicMock(), MagicMock()]
        for message, author_id in zip(messages, (TARGET_ID, 60, TARGET_ID)):
            message.author.id = author_id
        channel = MagicMock(spec=discord.TextChannel)
        channel.id = 10
        channel.history.return_value.__aiter__.return_value = messages
        channel.delete_messages = AsyncMock()
        ctx = make_interaction_context(mod_data("purge", amount=10, user=TARGET_ID), guild=guild)
        ctx.interaction.channel = channel

        await moderation_command(ctx)

        channel.history.assert_called_once_with(limit=200)
        channel.delete_messages.assert_awaited_once_with([messages[0], messages[2]])
        ctx.interaction.response.defer.assert_awaited_once_with(ephemeral=True, thinking=True)
        assert ctx.interaction.followup.send.await_args.kwargs["content"] == "Deleted 2 messages from bob."

    async def test_unknown_subcommand(self):
        ctx = make_interaction_context(mod_data("explode"), guild=make_guild())
        with pytest.raises(InvalidInputError):
            await moderation_command(ctx)

    async def test_requires_guild(self):
        ctx = make_interaction_context(mod_data("kick", user=TARGET_ID))
        with pytest.raises(InvalidInputError):
            await moderation_command(ctx)


def test_registration_payload():
    registry = InteractionRegistry()
    register_moderation_command(registry)
    payload = registry.lookup("mod").to_payload()

    assert [option["name"] for option in payload["options"]] == ["kick", "ban", "timeout", "removetimeout", "purge"]
    expected = discord.Permissions(kick_members=True, ban_members=True, moderate_members=True)
    assert payload["default_member_permissions"] == str(expected.value)
