"""Supervision of background tasks.

All asynchronously launched work (event handlers, poll timers) runs as a child
of one anyio task group owned by :class:`TaskSupervisor`. A child that raises
is logged and forgotten; it never takes its siblings or the supervisor down.
"""

from __future__ import annotations

import itertools
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from types import TracebackType
from typing import Any

import anyio
from anyio.abc import TaskGroup

from .logging import get_logger

logger = get_logger(__name__)

__all__ = ["SupervisedTask", "TaskSupervisor"]


@dataclass(slots=True, eq=False)
class SupervisedTask:
    """Handle to a launched child task."""

    name: str
    task_id: int
    scope: anyio.CancelScope = field(repr=False)
    done: anyio.Event = field(repr=False)

    def cancel(self) -> None:
        self.scope.cancel()

    @property
    def finished(self) -> bool:
        return self.done.is_set()


class TaskSupervisor:
    """Owns the root task group; use as ``async with TaskSupervisor() as sup``."""

    def __init__(self, *, shutdown_timeout: float = 5.0) -> None:
        self._shutdown_timeout = shutdown_timeout
        self._task_group: TaskGroup | None = None
        self._tasks: dict[int, SupervisedTask] = {}
        self._ids = itertools.count(1)
        self._idle: anyio.Event | None = None
        self._closing = False

    async def __aenter__(self) -> TaskSupervisor:
        if self._task_group is not None or self._closing:
            raise RuntimeError("TaskSupervisor cannot be entered twice")
        task_group = anyio.create_task_group()
        await task_group.__aenter__()
        self._task_group = task_group
        self._idle = anyio.Event()
        self._idle.set()
        logger.debug("supervisor.started")
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> bool | None:
        if not self._closing:
            with anyio.CancelScope(shield=True):
                await self.shutdown(self._shutdown_timeout)
        assert self._task_group is not None
        try:
            return await self._task_group.__aexit__(exc_type, exc, tb)
        finally:
            self._task_group = None

    @property
    def running(self) -> bool:
        return self._task_group is not None and not self._closing

    @property
    def active(self) -> list[str]:
        """Names of children that have not finished yet."""
        return [task.name for task in self._tasks.values()]

    def launch(
        self,
        name: str,
        func: Callable[..., Awaitable[Any]],
        *args: Any,
    ) -> SupervisedTask:
        """Start ``func(*args)`` as a supervised child named ``name``."""
        if self._task_group is None or self._closing:
            raise RuntimeError(f"Cannot launch {name!r}: supervisor is not running")
        task = SupervisedTask(
            name=name,
            task_id=next(self._ids),
            scope=anyio.CancelScope(),
            done=anyio.Event(),
        )
        self._tasks[task.task_id] = task
        if self._idle is None or self._idle.is_set():
            self._idle = anyio.Event()
        self._task_group.start_soon(self._run_child, task, func, args, name=name)
        return task

    async def _run_child(
        self,
        task: SupervisedTask,
        func: Callable[..., Awaitable[Any]],
        args: tuple[Any, ...],
    ) -> None:
        logger.debug("task.start", task=task.name)
        try:
            with task.scope:
                await func(*args)
        except Exception:
            logger.exception("task.failed", task=task.name)
        finally:
            if task.scope.cancel_called:
                logger.debug("task.cancelled", task=task.name)
            self._tasks.pop(task.task_id, None)
            task.done.set()
            if not self._tasks and self._idle is not None:
                self._idle.set()

    async def shutdown(self, timeout: float = 5.0) -> bool:
        """Cancel every child and wait at most ``timeout`` seconds for them.

        New launches are rejected from here on. Returns ``True`` when all
        children finished within the timeout; returns ``False`` otherwise
        without waiting any longer.
        """
        if self._closing:
            return not self._tasks
        self._closing = True
        logger.info("supervisor.shutdown", pending=len(self._tasks), timeout=timeout)

        for task in list(self._tasks.values()):
            task.cancel()

        if self._tasks and self._idle is not None:
            with anyio.move_on_after(max(timeout, 0)):
                await self._idle.wait()

        drained = not self._tasks
        if drained:
            logger.info("supervisor.drained")
        else:
            logger.warning(
                "supervisor.shutdown_timeout",
                timeout=timeout,
                still_running=self.active,
            )
        return drained
