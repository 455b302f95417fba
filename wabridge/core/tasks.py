"""
Reply Executor - runs outbound sends as fire-and-forget tasks.

Single Responsibility: keep background reply tasks alive, log how they end and
drain them on shutdown so none is dropped silently.
"""

import asyncio
from collections.abc import Coroutine
from typing import Any

from wabridge.core.exceptions import TransportError
from wabridge.core.logging.logger import ContextLogger, get_logger


class ReplyExecutor:
    """
    Owns background reply tasks.

    Pattern:
        Fire-and-forget: the webhook request returns without awaiting the send.
        The executor holds a strong reference to every task until it finishes
        and logs failures, because nobody else awaits the result.

    Usage:
        executor = ReplyExecutor()
        executor.submit(client.send(...), description="greeting reply")
        ...
        await executor.drain(timeout=10)
    """

    def __init__(self, logger: ContextLogger | None = None):
        self.logger = logger or get_logger(__name__)
        self._tasks: set[asyncio.Task] = set()
        self._closing = False

    @property
    def pending(self) -> int:
        """Number of tasks still in flight."""
        return len(self._tasks)

    @property
    def closing(self) -> bool:
        return self._closing

    def submit(
        self, coro: Coroutine[Any, Any, Any], *, description: str = "reply"
    ) -> asyncio.Task | None:
        """
        Schedule a coroutine on the running loop without awaiting it.

        Args:
            coro: Coroutine to run (typically ``ReplyClient.send(...)``)
            description: Label for log lines

        Returns:
            The created task, or None if the executor is shutting down
        """
        if self._closing:
            coro.close()
            self.logger.warning(f"⚠ Shutting down, {description} not sent")
            return None

        task = asyncio.create_task(self._run(coro, description), name=description)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        self.logger.debug(f"Scheduled {description} ({self.pending} in flight)")
        return task

    async def _run(self, coro: Coroutine[Any, Any, Any], description: str) -> Any:
        try:
            return await coro
        except asyncio.CancelledError:
            self.logger.warning(f"⚠ {description} cancelled before completion")
            raise
        except TransportError as e:
            self.logger.error(
                f"✗ {description} failed: network error",
                payload={"error": str(e), "url": e.url},
            )
        except Exception as e:
            self.logger.exception(
                f"✗ {description} failed", payload={"error": str(e)}
            )
        return None

    async def drain(self, timeout: float = 10.0) -> int:
        """
        Wait for in-flight tasks, cancelling those still running after ``timeout``.

        Further submissions are refused once draining starts.

        Returns:
            Number of tasks that had to be cancelled
        """
        self._closing = True
        if not self._tasks:
            return 0

        self.logger.info(f"Waiting for {self.pending} in-flight replies...")
        _, still_running = await asyncio.wait(set(self._tasks), timeout=timeout)

        for task in still_running:
            self.logger.error(
                f"✗ {task.get_name()} did not finish within {timeout}s, cancelling"
            )
            task.cancel()
        if still_running:
            await asyncio.gather(*still_running, return_exceptions=True)

        return len(still_running)
