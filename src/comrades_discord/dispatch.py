"""Routing of text commands, slash commands and component clicks."""

from __future__ import annotations

from collections.abc import Awaitable, Callable

import anyio

from .context import InteractionContext, MessageContext
from .errors import (
    BotError,
    ExecutionError,
    InvalidInputError,
    PermissionDeniedError,
)
from .logging import get_logger
from .registry import CommandRegistry, InteractionRegistry, parse_prefixed

logger = get_logger(__name__)

__all__ = ["ComponentHandler", "Dispatcher", "translate_error"]

ComponentHandler = Callable[[InteractionContext], Awaitable[None]]

# failures caused by the user rather than by the bot
_EXPECTED = (InvalidInputError, PermissionDeniedError)


def translate_error(exc: Exception, command: str) -> BotError:
    """Map any handler failure onto the error taxonomy."""
    if isinstance(exc, BotError):
        return exc
    error = ExecutionError(f"Unexpected error in {command}: {exc!r}", command=command)
    error.__cause__ = exc
    return error


def _log_failure(error: BotError, *, kind: str, command: str, user_id: int) -> None:
    if isinstance(error, _EXPECTED):
        logger.info(
            "dispatch.rejected",
            kind=kind,
            command=command,
            user_id=user_id,
            error=type(error).__name__,
            reason=error.message,
        )
        return
    cause = error.__cause__ if error.__cause__ is not None else error
    logger.error(
        "dispatch.failed",
        kind=kind,
        command=command,
        user_id=user_id,
        error=type(error).__name__,
        reason=error.message,
        exc_info=cause,
    )


class Dispatcher:
    """Looks up handlers, runs them and reports failures to the user.

    Invocations of one handler are serialized; different handlers may run
    concurrently.
    """

    def __init__(
        self,
        *,
        commands: CommandRegistry,
        interactions: InteractionRegistry,
        prefix: str,
    ) -> None:
        self.commands = commands
        self.interactions = interactions
        self.prefix = prefix
        self._components: dict[str, ComponentHandler] = {}
        self._locks: dict[tuple[str, str], anyio.Lock] = {}

    def _lock_for(self, kind: str, name: str) -> anyio.Lock:
        key = (kind, name)
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = anyio.Lock()
        return lock

    def add_component_handler(self, prefix: str, handler: ComponentHandler) -> None:
        """Route component clicks whose ``custom_id`` starts with ``prefix``."""
        self._components[prefix] = handler

    async def handle_message(self, ctx: MessageContext, body: str) -> bool:
        """Dispatch a chat message; returns whether a command ran."""
        if ctx.is_bot:
            return False
        parsed = parse_prefixed(body, self.prefix)
        if parsed is None:
            return False
        name, args = parsed
        return await self.dispatch_text(name, args, ctx)

    async def dispatch_text(self, name: str, args: list[str], ctx: MessageContext) -> bool:
        command = self.commands.lookup(name)
        if command is None:
            logger.debug("dispatch.unknown", kind="text", command=name)
            return False

        logger.info(
            "dispatch.text",
            command=command.name,
            user_id=ctx.user_id,
            user=ctx.user_name,
            args=len(args),
        )
        async with self._lock_for("text", command.name):
            try:
                await command.callback(args, ctx)
            except Exception as exc:
                error = translate_error(exc, command.name)
                _log_failure(error, kind="text", command=command.name, user_id=ctx.user_id)
                await self._report_text(ctx, error)
        return True

    async def dispatch_interaction(self, ctx: InteractionContext) -> bool:
        name = ctx.command_name or ""
        command = self.interactions.lookup(name)
        if command is None:
            logger.warning("dispatch.unknown", kind="slash", command=name, user_id=ctx.user_id)
            if not ctx.acknowledged:
                await self._report_interaction(ctx, f"Unknown command: {name}")
            return False

        logger.info(
            "dispatch.slash",
            command=command.name,
            subcommand=ctx.subcommand,
            user_id=ctx.user_id,
            user=ctx.user_name,
        )
        async with self._lock_for("slash", command.name):
            try:
                await command.callback(ctx)
            except Exception as exc:
                error = translate_error(exc, command.name)
                _log_failure(error, kind="slash", command=command.name, user_id=ctx.user_id)
                await self._report_interaction(ctx, error.user_message)
        return True

    async def dispatch_component(self, ctx: InteractionContext) -> bool:
        custom_id = ctx.custom_id or ""
        for prefix, handler in self._components.items():
            if custom_id.startswith(prefix):
                break
        else:
            logger.debug("dispatch.unknown", kind="component", custom_id=custom_id)
            return False

        logger.info("dispatch.component", custom_id=custom_id, user_id=ctx.user_id)
        # clicks are not serialized, polls guard their own state
        try:
            await handler(ctx)
        except Exception as exc:
            error = translate_error(exc, prefix)
            _log_failure(error, kind="component", command=prefix, user_id=ctx.user_id)
            await self._report_interaction(ctx, error.user_message)
        return True

    async def _report_text(self, ctx: MessageContext, error: BotError) -> None:
        try:
            await ctx.send(error.user_message)
        except Exception:
            logger.exception("dispatch.report_failed", kind="text", user_id=ctx.user_id)

    async def _report_interaction(self, ctx: InteractionContext, message: str) -> None:
        try:
            await ctx.respond(message, ephemeral=True)
        except Exception:
            logger.exception("dispatch.report_failed", kind="slash", user_id=ctx.user_id)
