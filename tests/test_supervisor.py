"""Tests for supervised background tasks."""

import anyio
import pytest

from comrades_discord.supervisor import TaskSupervisor

pytestmark = pytest.mark.anyio


class TestLaunch:
    async def test_runs_child(self):
        done = anyio.Event()

        async def work(value):
            assert value == 42
            done.set()

        async with TaskSupervisor() as supervisor:
            task = supervisor.launch("work", work, 42)
            with anyio.fail_after(1):
                await task.done.wait()

        assert done.is_set()
        assert task.finished

    async def test_failing_child_does_not_affect_siblings(self):
        sibling_done = anyio.Event()

        async def explode():
            raise RuntimeError("boom")

        async def sibling():
            await anyio.sleep(0.05)
            sibling_done.set()

        async with TaskSupervisor() as supervisor:
            failing = supervisor.launch("explode", explode)
            supervisor.launch("sibling", sibling)
            with anyio.fail_after(1):
                await failing.done.wait()
            assert supervisor.running
            with anyio.fail_after(1):
                await sibling_done.wait()

    async def test_active_lists_running_children(self):
        async with TaskSupervisor() as supervisor:
            supervisor.launch("poll-end:poll-1", anyio.sleep_forever)
            assert supervisor.active == ["poll-end:poll-1"]

    async def test_launch_before_enter_raises(self):
        supervisor = TaskSupervisor()
        with pytest.raises(RuntimeError):
            supervisor.launch("early", anyio.sleep, 0)

    async def test_launch_after_shutdown_raises(self):
        async with TaskSupervisor() as supervisor:
            assert await supervisor.shutdown(1) is True
            assert not supervisor.running
            with pytest.raises(RuntimeError):
                supervisor.launch("late", anyio.sleep, 0)

    async def test_cancel_single_child(self):
        async with TaskSupervisor() as supervisor:
            task = supervisor.launch("forever", anyio.sleep_forever)
            await anyio.sleep(0)
            task.cancel()
            with anyio.fail_after(1):
                await task.done.wait()
            assert supervisor.active == []


class TestShutdown:
    async def test_cancels_pending_children(self):
        async with TaskSupervisor() as supervisor:
            for i in range(3):
                supervisor.launch(f"forever-{i}", anyio.sleep_forever)
            await anyio.sleep(0)
            with anyio.fail_after(1):
                assert await supervisor.shutdown(1) is True
            assert supervisor.active == []

    async def test_is_idempotent(self):
        async with TaskSupervisor() as supervisor:
            assert await supervisor.shutdown(1) is True
            assert await supervisor.shutdown(1) is True

    async def test_gives_up_after_timeout(self):
        cleanup_done = anyio.Event()

        async def stubborn():
            try:
                await anyio.sleep_forever()
            finally:
                with anyio.CancelScope(shield=True):
                    await anyio.sleep(0.6)
                    cleanup_done.set()

        async with TaskSupervisor() as supervisor:
            supervisor.launch("stubborn", stubborn)
            await anyio.sleep(0)
            started = anyio.current_time()
            drained = await supervisor.shutdown(0.1)
            elapsed = anyio.current_time() - started

            assert drained is False
            assert elapsed < 0.5
            assert supervisor.active == ["stubborn"]

        # leaving the block still waits for the child
        assert cleanup_done.is_set()

    async def test_exit_shuts_down(self):
        supervisor = TaskSupervisor(shutdown_timeout=1)
        async with supervisor:
            task = supervisor.launch("forever", anyio.sleep_forever)
        assert task.finished
        assert not supervisor.running
