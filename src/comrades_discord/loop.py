"""Main event loop: builds every component and wires gateway events to them."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import anyio
import discord

from .client import DiscordBotClient
from .config import BotSettings
from .context import InteractionContext, MessageContext
from .dispatch import Dispatcher
from .events import announce_member_join, announce_member_leave
from .handlers import register_slash_commands, register_text_commands
from .logging import get_logger
from .moderation import register_moderation_command
from .polls import PollManager, register_poll_command
from .reaction_roles import ReactionRoleManager, register_reaction_role_command
from .registry import CommandRegistry, InteractionRegistry
from .supervisor import TaskSupervisor

logger = get_logger(__name__)

__all__ = ["BotComponents", "build_components", "run_main_loop", "wire_events"]


@dataclass(slots=True)
class BotComponents:
    """Everything the event handlers need, constructed once per process."""

    supervisor: TaskSupervisor
    commands: CommandRegistry
    interactions: InteractionRegistry
    dispatcher: Dispatcher
    polls: PollManager
    reaction_roles: ReactionRoleManager


def build_components(settings: BotSettings, supervisor: TaskSupervisor) -> BotComponents:
    commands = CommandRegistry()
    interactions = InteractionRegistry()
    dispatcher = Dispatcher(commands=commands, interactions=interactions, prefix=settings.prefix)
    polls = PollManager(supervisor)
    reaction_roles = ReactionRoleManager()

    register_text_commands(commands, prefix=settings.prefix)
    register_slash_commands(interactions)
    register_poll_command(
        interactions,
        dispatcher,
        polls,
        default_minutes=settings.poll_default_minutes,
    )
    register_moderation_command(interactions)
    register_reaction_role_command(interactions, reaction_roles)
    logger.info("commands.registered", text=len(commands), slash=len(interactions))

    return BotComponents(
        supervisor=supervisor,
        commands=commands,
        interactions=interactions,
        dispatcher=dispatcher,
        polls=polls,
        reaction_roles=reaction_roles,
    )


def wire_events(bot: DiscordBotClient, components: BotComponents) -> None:
    """Hand every gateway event to the supervisor as its own task."""
    supervisor = components.supervisor
    dispatcher = components.dispatcher

    def launch(name: str, func: Callable[..., Awaitable[Any]], *args: Any) -> None:
        if not supervisor.running:
            logger.debug("event.dropped", task=name, reason="shutting down")
            return
        supervisor.launch(name, func, *args)

    async def handle_message(message: discord.Message) -> None:
        ctx = MessageContext(message, bot.bot)
        launch(f"message:{message.id}", dispatcher.handle_message, ctx, message.content)

    async def handle_interaction(interaction: discord.Interaction) -> None:
        if interaction.type == discord.InteractionType.application_command:
            launch(
                f"interaction:{interaction.id}",
                dispatcher.dispatch_interaction,
                InteractionContext(interaction),
            )
        elif interaction.type == discord.InteractionType.component:
            launch(
                f"component:{interaction.id}",
                dispatcher.dispatch_component,
                InteractionContext(interaction),
            )

    def reaction_handler(added: bool) -> Callable[[discord.RawReactionActionEvent], Awaitable[None]]:
        async def handle_reaction(payload: discord.RawReactionActionEvent) -> None:
            if bot.user is not None and payload.user_id == bot.user.id:
                return
            guild = bot.get_guild(payload.guild_id) if payload.guild_id is not None else None
            launch(
                f"reaction:{payload.message_id}",
                _apply_reaction,
                components.reaction_roles,
                payload,
                guild,
                added,
            )

        return handle_reaction

    async def handle_member_join(member: discord.Member) -> None:
        launch(f"member-join:{member.id}", announce_member_join, member)

    async def handle_member_remove(member: discord.Member) -> None:
        launch(f"member-leave:{member.id}", announce_member_leave, member)

    bot.set_handler("on_message", handle_message)
    bot.set_handler("on_interaction", handle_interaction)
    bot.set_handler("on_raw_reaction_add", reaction_handler(True))
    bot.set_handler("on_raw_reaction_remove", reaction_handler(False))
    bot.set_handler("on_member_join", handle_member_join)
    bot.set_handler("on_member_remove", handle_member_remove)


async def _apply_reaction(
    manager: ReactionRoleManager,
    payload: discord.RawReactionActionEvent,
    guild: discord.Guild | None,
    added: bool,
) -> None:
    await manager.handle_reaction(payload, guild, added=added)


async def run_main_loop(settings: BotSettings) -> None:
    """Run the bot until cancelled, then drain supervised work and disconnect."""
    async with TaskSupervisor(shutdown_timeout=settings.shutdown_timeout) as supervisor:
        components = build_components(settings, supervisor)
        bot = DiscordBotClient(settings.token, guild_id=settings.guild_id)
        wire_events(bot, components)

        logger.info("loop.config", prefix=settings.prefix, guild_id=settings.guild_id)
        try:
            await bot.start()
            await bot.sync_commands(components.interactions.payloads())
            logger.info("bot.ready", user=bot.user.name if bot.user else "unknown")

            # Keep running until cancelled
            await anyio.sleep_forever()
        finally:
            with anyio.CancelScope(shield=True):
                await supervisor.shutdown(settings.shutdown_timeout)
                await bot.close()
                logger.info("bot.stopped", live_polls=len(components.polls))
