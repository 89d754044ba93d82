"""Failure taxonomy for command handlers.

Every error carries two messages: ``message`` is the diagnostic text that goes
to the logs, ``user_message`` is what the invoking user gets to see.
"""

from __future__ import annotations

__all__ = [
    "BotError",
    "ConfigurationError",
    "ExecutionError",
    "InvalidInputError",
    "PermissionDeniedError",
    "RemoteServiceError",
]


class BotError(Exception):
    """Base class for errors reported back to the invoking user."""

    default_user_message = "Something went wrong while handling your request."

    def __init__(self, message: str, *, user_message: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.user_message = user_message or self.default_user_message


class InvalidInputError(BotError):
    """User supplied arguments failed validation."""

    def __init__(self, message: str, *, user_message: str | None = None) -> None:
        # the validation message is already written for the user
        super().__init__(message, user_message=user_message or message)


class PermissionDeniedError(BotError):
    """The actor lacks a capability the action requires."""

    default_user_message = "You don't have permission to do that."


class ExecutionError(BotError):
    """The handler itself failed unexpectedly."""

    def __init__(
        self,
        message: str,
        *,
        command: str | None = None,
        user_message: str | None = None,
    ) -> None:
        if user_message is None:
            target = f" `{command}`" if command else ""
            user_message = f"An error occurred while running the command{target}."
        super().__init__(message, user_message=user_message)
        self.command = command


class RemoteServiceError(BotError):
    """Discord rejected or failed a request made on the user's behalf."""

    default_user_message = "Discord could not complete that request. Please try again later."


class ConfigurationError(BotError):
    """Startup configuration is missing or invalid."""

    default_user_message = "The bot is not configured correctly."
