"""Discord bot with prefixed and slash commands, polls, reaction roles and moderation."""

__version__ = "0.1.0"
