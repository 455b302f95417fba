"""
Tests for the fire-and-forget reply executor.
"""

import asyncio

import pytest

from wabridge.core.exceptions import TransportError
from wabridge.core.tasks import ReplyExecutor


class TestReplyExecutor:
    """Test task ownership, failure logging and the shutdown drain."""

    @pytest.mark.asyncio
    async def test_submitted_task_runs_and_is_released(self):
        executor = ReplyExecutor()
        done = asyncio.Event()

        async def send():
            done.set()
            return "sent"

        task = executor.submit(send(), description="greeting reply")
        assert executor.pending == 1

        assert await task == "sent"
        await asyncio.sleep(0)
        assert done.is_set()
        assert executor.pending == 0

    @pytest.mark.asyncio
    async def test_transport_error_is_logged_not_raised(self, caplog):
        executor = ReplyExecutor()

        async def send():
            raise TransportError("connection reset", url="https://graph.example/v1/1/messages")

        result = await executor.submit(send(), description="help reply")

        assert result is None
        assert "✗ help reply failed: network error" in caplog.text
        assert "https://graph.example/v1/1/messages" in caplog.text

    @pytest.mark.asyncio
    async def test_unexpected_error_is_logged_with_stack(self, caplog):
        executor = ReplyExecutor()

        async def send():
            raise KeyError("missing")

        await executor.submit(send(), description="greeting reply")

        record = next(r for r in caplog.records if "greeting reply failed" in r.getMessage())
        assert record.exc_info is not None

    @pytest.mark.asyncio
    async def test_drain_waits_for_in_flight_tasks(self):
        executor = ReplyExecutor()
        finished = []

        async def send():
            await asyncio.sleep(0.01)
            finished.append(True)

        executor.submit(send())
        executor.submit(send())

        cancelled = await executor.drain(timeout=1)

        assert cancelled == 0
        assert finished == [True, True]
        assert executor.pending == 0

    @pytest.mark.asyncio
    async def test_drain_cancels_stragglers(self, caplog):
        executor = ReplyExecutor()

        async def hang():
            await asyncio.sleep(60)

        task = executor.submit(hang(), description="slow reply")

        cancelled = await executor.drain(timeout=0.01)

        assert cancelled == 1
        assert task.cancelled()
        assert "slow reply did not finish within 0.01s" in caplog.text
        assert "slow reply cancelled before completion" in caplog.text

    @pytest.mark.asyncio
    async def test_submit_after_drain_is_refused(self, caplog):
        executor = ReplyExecutor()
        await executor.drain()

        async def send():
            raise AssertionError("must not run")

        coro = send()
        assert executor.submit(coro, description="late reply") is None
        assert executor.closing
        assert coro.cr_frame is None  # closed, never started
        assert "late reply not sent" in caplog.text
