"""Button polls: live sessions, concurrent votes and timed results."""

from __future__ import annotations

import secrets
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

import anyio
import discord

from .errors import InvalidInputError
from .logging import get_logger
from .render import option_emoji, poll_embed, poll_results_embed
from .types import CommandParameter, OptionType, SlashCommand

if TYPE_CHECKING:
    from .context import InteractionContext
    from .dispatch import Dispatcher
    from .registry import InteractionRegistry
    from .supervisor import SupervisedTask, TaskSupervisor

logger = get_logger(__name__)

__all__ = [
    "MAX_OPTIONS",
    "MIN_OPTIONS",
    "POLL_ID_PREFIX",
    "PollManager",
    "PollResult",
    "PollSession",
    "register_poll_command",
]

POLL_ID_PREFIX = "poll-"
MIN_OPTIONS = 2
MAX_OPTIONS = 5


class EditableMessage(Protocol):
    async def edit(
        self,
        *,
        content: str | None = None,
        embed: discord.Embed | None = None,
        clear_components: bool = False,
    ) -> None: ...


@dataclass(slots=True)
class PollSession:
    """State of one live poll."""

    poll_id: str
    question: str
    options: tuple[str, ...]
    votes: dict[int, set[int]] = field(default_factory=dict)
    lock: anyio.Lock = field(default_factory=anyio.Lock, repr=False)
    view: discord.ui.View | None = field(default=None, repr=False)
    closed: bool = False

    def option_text(self, position: int) -> str | None:
        if 1 <= position <= len(self.options):
            return self.options[position - 1]
        return None


@dataclass(frozen=True, slots=True)
class PollResult:
    """Final tally of a poll."""

    question: str
    options: tuple[str, ...]
    counts: tuple[int, ...]

    @property
    def max_votes(self) -> int:
        return max(self.counts, default=0)

    @property
    def winners(self) -> tuple[str, ...]:
        """Options sharing the highest count; empty when nobody voted."""
        top = self.max_votes
        if top == 0:
            return ()
        return tuple(o for o, c in zip(self.options, self.counts) if c == top)

    @property
    def summary(self) -> str:
        winners = self.winners
        if not winners:
            return "No votes were cast"
        if len(winners) == 1:
            return f"Winner: {winners[0]} with {self.max_votes} votes"
        return f"Tie between: {', '.join(winners)} with {self.max_votes} votes each"


class PollManager:
    """Live poll table.

    A voter is in at most one option of a poll; a new vote replaces the old
    one. ``end`` removes a poll from the table exactly once, however many
    times it fires.
    """

    def __init__(self, supervisor: TaskSupervisor) -> None:
        self._supervisor = supervisor
        self._polls: dict[str, PollSession] = {}

    def __contains__(self, poll_id: object) -> bool:
        return poll_id in self._polls

    def __len__(self) -> int:
        return len(self._polls)

    def get(self, poll_id: str) -> PollSession | None:
        return self._polls.get(poll_id)

    def new_id(self) -> str:
        while True:
            poll_id = f"{POLL_ID_PREFIX}{secrets.token_hex(4)}"
            if poll_id not in self._polls:
                return poll_id

    def create(
        self,
        poll_id: str,
        question: str,
        options: list[str] | tuple[str, ...],
        *,
        view: discord.ui.View | None = None,
    ) -> PollSession:
        if poll_id in self._polls:
            raise ValueError(f"Poll {poll_id} is already running")
        session = PollSession(
            poll_id=poll_id,
            question=question,
            options=tuple(options),
            votes={position: set() for position in range(1, len(options) + 1)},
            view=view,
        )
        self._polls[poll_id] = session
        logger.info("poll.created", poll_id=poll_id, options=len(options))
        return session

    def discard(self, poll_id: str) -> None:
        """Drop a poll whose announcement never made it out."""
        session = self._polls.pop(poll_id, None)
        if session is not None:
            session.closed = True
            _stop_view(session)
            logger.info("poll.discarded", poll_id=poll_id)

    def schedule_end(
        self,
        poll_id: str,
        handle: EditableMessage,
        seconds: float,
    ) -> SupervisedTask:
        # the timer is not cancelled if the poll goes away first; end() is a no-op then
        return self._supervisor.launch(f"poll-end:{poll_id}", self._end_after, poll_id, handle, seconds)

    async def _end_after(self, poll_id: str, handle: EditableMessage, seconds: float) -> None:
        await anyio.sleep(seconds)
        await self.end(poll_id, handle)

    async def record_vote(self, poll_id: str, position: int, voter_id: int) -> str | None:
        """Record ``voter_id``'s vote; returns the chosen option text.

        Returns ``None`` without changing anything when the poll is not live or
        the position does not exist.
        """
        session = self._polls.get(poll_id)
        if session is None:
            return None
        option = session.option_text(position)
        if option is None:
            return None
        async with session.lock:
            if session.closed:
                return None
            for voters in session.votes.values():
                voters.discard(voter_id)
            session.votes[position].add(voter_id)
        logger.debug("poll.vote", poll_id=poll_id, position=position, voter_id=voter_id)
        return option

    async def end(self, poll_id: str, handle: EditableMessage | None) -> PollResult | None:
        """Close the poll and publish the results; no-op when already ended."""
        session = self._polls.pop(poll_id, None)
        if session is None:
            return None
        async with session.lock:
            session.closed = True
            result = PollResult(
                question=session.question,
                options=session.options,
                counts=tuple(len(session.votes[p]) for p in range(1, len(session.options) + 1)),
            )
        _stop_view(session)
        logger.info("poll.ended", poll_id=poll_id, counts=result.counts, summary=result.summary)
        if handle is not None:
            await handle.edit(
                embed=poll_results_embed(session.question, result),
                clear_components=True,
            )
        return result

    async def handle_vote(self, ctx: InteractionContext) -> None:
        """Component handler for ``<poll id>:<position>`` buttons."""
        poll_id, _, raw_position = (ctx.custom_id or "").partition(":")
        option: str | None = None
        if raw_position.isdigit():
            option = await self.record_vote(poll_id, int(raw_position), ctx.user_id)
        if option is None:
            await ctx.reply("This poll has ended or is no longer active.", ephemeral=True)
            return
        await ctx.reply(f"You voted for: {option}", ephemeral=True)


def _stop_view(session: PollSession) -> None:
    # drops the view from the client's view store; votes are routed by custom_id
    if session.view is not None:
        session.view.stop()
        session.view = None


def build_poll_view(poll_id: str, options: list[str] | tuple[str, ...]) -> discord.ui.View:
    view = discord.ui.View(timeout=None)
    for position, option in enumerate(options, start=1):
        view.add_item(
            discord.ui.Button(
                style=discord.ButtonStyle.primary,
                label=f"{option_emoji(position)} {option}"[:80],
                custom_id=f"{poll_id}:{position}",
            )
        )
    return view


def register_poll_command(
    registry: InteractionRegistry,
    dispatcher: Dispatcher,
    manager: PollManager,
    *,
    default_minutes: int = 60,
) -> None:
    """Register ``/poll`` and route its vote buttons."""

    async def poll_command(ctx: InteractionContext) -> None:
        question = ctx.require("question")
        options = [
            text.strip()
            for i in range(1, MAX_OPTIONS + 1)
            if (text := ctx.option(f"option{i}")) is not None and text.strip()
        ]
        if not MIN_OPTIONS <= len(options) <= MAX_OPTIONS:
            raise InvalidInputError(f"A poll needs between {MIN_OPTIONS} and {MAX_OPTIONS} options.")
        minutes = ctx.option("duration", default_minutes)
        if minutes < 1:
            raise InvalidInputError("Poll duration must be at least 1 minute.")

        poll_id = manager.new_id()
        view = build_poll_view(poll_id, options)
        manager.create(poll_id, question, options, view=view)
        try:
            await ctx.reply(
                f"Poll created! Voting ends in {minutes} minutes.",
                embed=poll_embed(question, minutes, ctx.user),
                view=view,
            )
            handle = await ctx.original_message()
        except BaseException:
            manager.discard(poll_id)
            raise
        manager.schedule_end(poll_id, handle, minutes * 60)

    registry.register(
        SlashCommand(
            name="poll",
            description="Create a poll with up to 5 options",
            callback=poll_command,
            parameters=(
                CommandParameter("question", "The poll question"),
                CommandParameter("option1", "First option"),
                CommandParameter("option2", "Second option"),
                CommandParameter("option3", "Third option (optional)", required=False),
                CommandParameter("option4", "Fourth option (optional)", required=False),
                CommandParameter("option5", "Fifth option (optional)", required=False),
                CommandParameter(
                    "duration",
                    f"Poll duration in minutes (default: {default_minutes})",
                    type=OptionType.integer,
                    required=False,
                    min_value=1,
                ),
            ),
        )
    )
    dispatcher.add_component_handler(POLL_ID_PREFIX, manager.handle_vote)
