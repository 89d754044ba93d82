"""Tests for option extraction and request error translation."""

from unittest.mock import MagicMock

import discord
import pytest

from comrades_discord.context import extract_options, remote_call
from comrades_discord.errors import InvalidInputError, RemoteServiceError

from .conftest import make_interaction_context


class TestExtractOptions:
    def test_empty(self):
        assert extract_options(None) == (None, {})
        assert extract_options({"name": "ping"}) == (None, {})

    def test_top_level_options(self):
        data = {
            "name": "poll",
            "options": [
                {"name": "question", "type": 3, "value": "Lunch?"},
                {"name": "duration", "type": 4, "value": 5},
            ],
        }
        assert extract_options(data) == (None, {"question": "Lunch?", "duration": 5})

    def test_subcommand_with_snowflakes(self):
        data = {
            "name": "mod",
            "options": [
                {
                    "name": "kick",
                    "type": 1,
                    "options": [
                        {"name": "user", "type": 6, "value": "123456789012345678"},
                        {"name": "reason", "type": 3, "value": "spam"},
                    ],
                }
            ],
        }
        subcommand, options = extract_options(data)
        assert subcommand == "kick"
        assert options == {"user": 123456789012345678, "reason": "spam"}

    def test_subcommand_group(self):
        data = {
            "name": "admin",
            "options": [
                {"name": "roles", "type": 2, "options": [{"name": "add", "type": 1, "options": []}]}
            ],
        }
        assert extract_options(data) == ("roles add", {})


class TestOptions:
    def test_option_default(self):
        ctx = make_interaction_context({"name": "poll", "options": []})
        assert ctx.option("duration", 60) == 60

    def test_require_missing_or_blank(self):
        ctx = make_interaction_context(
            {"name": "poll", "options": [{"name": "question", "type": 3, "value": "  "}]}
        )
        with pytest.raises(InvalidInputError) as exc_info:
            ctx.require("question")
        assert exc_info.value.user_message == "Missing required option: question"

    def test_require_guild(self):
        ctx = make_interaction_context({"name": "serverinfo"})
        with pytest.raises(InvalidInputError):
            ctx.require_guild()


class TestRemoteCall:
    def test_forbidden(self):
        with pytest.raises(RemoteServiceError) as exc_info:
            with remote_call("kick members"):
                raise discord.Forbidden(MagicMock(status=403, reason="Forbidden"), "Missing Permissions")
        assert exc_info.value.user_message == "I don't have permission to kick members."

    def test_http_failure(self):
        with pytest.raises(RemoteServiceError) as exc_info:
            with remote_call("send a message"):
                raise discord.HTTPException(MagicMock(status=500, reason="Server Error"), "oops")
        assert isinstance(exc_info.value.__cause__, discord.HTTPException)

    def test_other_errors_untouched(self):
        with pytest.raises(KeyError):
            with remote_call("send a message"):
                raise KeyError("x")
