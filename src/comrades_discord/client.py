"""Discord API client wrapper."""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING, Any

import discord

from .logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable, Coroutine

    EventHandler = Callable[..., Coroutine[Any, Any, None]]

logger = get_logger(__name__)

# gateway events forwarded to registered handlers
FORWARDED_EVENTS = (
    "on_message",
    "on_interaction",
    "on_raw_reaction_add",
    "on_raw_reaction_remove",
    "on_member_join",
    "on_member_remove",
)


class DiscordBotClient:
    """Wrapper around ``discord.Client``: intents, event fan-out, command sync."""

    def __init__(
        self,
        token: str,
        *,
        guild_id: int | None = None,
        activity: str = "Type / for commands",
    ) -> None:
        self._token = token
        self._guild_id = guild_id
        self._activity = activity
        self._handlers: dict[str, EventHandler] = {}
        # Defer client creation until inside async context
        self._bot: discord.Client | None = None
        self._ready_event: asyncio.Event | None = None
        self._start_task: asyncio.Task[None] | None = None

    def _ensure_bot(self) -> discord.Client:
        """Create the client if not already created. Must be called from async context."""
        if self._bot is not None:
            return self._bot

        intents = discord.Intents.default()
        intents.message_content = True
        intents.guilds = True
        intents.members = True  # join/leave events and role assignment
        intents.presences = True  # member status counts in /serverinfo
        intents.messages = True
        intents.reactions = True
        self._bot = discord.Client(
            intents=intents,
            activity=discord.Game(self._activity),
            status=discord.Status.online,
        )
        self._ready_event = asyncio.Event()

        @self._bot.event
        async def on_ready() -> None:
            assert self._ready_event is not None
            assert self._bot is not None
            logger.info("bot.connected", guilds=len(self._bot.guilds))
            self._ready_event.set()

        for event_name in FORWARDED_EVENTS:
            self._bot.event(self._forwarder(event_name))

        return self._bot

    def _forwarder(self, event_name: str) -> EventHandler:
        async def forward(*args: Any) -> None:
            handler = self._handlers.get(event_name)
            if handler is None:
                return
            if event_name == "on_message":
                message: discord.Message = args[0]
                if self._bot is not None and message.author == self._bot.user:
                    return
            await handler(*args)

        forward.__name__ = event_name
        return forward

    @property
    def bot(self) -> discord.Client:
        """Get the underlying client. Creates it if needed."""
        return self._ensure_bot()

    @property
    def user(self) -> discord.ClientUser | None:
        if self._bot is None:
            return None
        return self._bot.user

    @property
    def latency_ms(self) -> float:
        return self.bot.latency * 1000

    def set_handler(self, event_name: str, handler: EventHandler) -> None:
        """Route a forwarded gateway event (e.g. ``on_message``) to ``handler``."""
        if event_name not in FORWARDED_EVENTS:
            raise ValueError(f"Unsupported event: {event_name}")
        self._handlers[event_name] = handler

    async def start(self) -> None:
        """Start the client and wait until ready."""
        bot = self._ensure_bot()
        assert self._ready_event is not None

        async def _run_bot() -> None:
            try:
                await bot.start(self._token)
            except asyncio.CancelledError:
                pass
            except RuntimeError as e:
                # Suppress "Session is closed" error during shutdown
                if "Session is closed" not in str(e):
                    raise

        self._start_task = asyncio.create_task(_run_bot(), name="discord-bot-start")
        ready = asyncio.create_task(self._ready_event.wait())
        done, _ = await asyncio.wait({ready, self._start_task}, return_when=asyncio.FIRST_COMPLETED)
        if ready not in done:
            ready.cancel()
            # login failed before the gateway became ready
            self._start_task.result()
            raise RuntimeError("Discord connection closed before becoming ready")

    async def close(self) -> None:
        """Close the bot connection."""
        if self._bot is not None:
            await self._bot.close()
            # Cancel the start task and wait for it to finish
            if self._start_task is not None and not self._start_task.done():
                self._start_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await self._start_task

    async def wait_until_ready(self) -> None:
        self._ensure_bot()
        assert self._ready_event is not None
        await self._ready_event.wait()

    async def sync_commands(self, payload: list[dict[str, Any]]) -> None:
        """Bulk-register slash commands, to one guild if configured, else globally."""
        bot = self._ensure_bot()
        application_id = bot.application_id
        if application_id is None:
            raise RuntimeError("Application id unknown; start the client first")
        if self._guild_id is not None:
            if bot.get_guild(self._guild_id) is None:
                logger.error("commands.guild_not_found", guild_id=self._guild_id)
                return
            await bot.http.bulk_upsert_guild_commands(application_id, self._guild_id, payload)
            logger.info("commands.synced", scope="guild", guild_id=self._guild_id, count=len(payload))
        else:
            await bot.http.bulk_upsert_global_commands(application_id, payload)
            logger.info("commands.synced", scope="global", count=len(payload))

    def get_guild(self, guild_id: int) -> discord.Guild | None:
        return self.bot.get_guild(guild_id)
