"""Detached background execution with its own error channel.

Work submitted here runs after the submitting call has returned. Its
outcome never reaches that caller: failures are logged and handed to an
optional ``on_error`` callback instead. The runner keeps a strong
reference to every task until it finishes, so tasks are not garbage
collected mid-flight, and ``drain()`` lets shutdown code and tests wait
for outstanding work.
"""

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any

logger = logging.getLogger(__name__)

ErrorHandler = Callable[[str, BaseException], None]


class BackgroundTaskRunner:
    """Fire-and-forget task submission decoupled from the caller's result.

    Attributes:
        _tasks: In-flight tasks, held until completion.
        _on_error: Optional callback receiving (task name, exception).
    """

    def __init__(self, on_error: ErrorHandler | None = None) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()
        self._on_error = on_error

    @property
    def pending(self) -> int:
        """Number of tasks still running."""
        return len(self._tasks)

    def submit(self, coro: Coroutine[Any, Any, Any], *, name: str) -> asyncio.Task[Any]:
        """Schedule a coroutine on the running loop.

        Args:
            coro: Work to run detached.
            name: Task name used in logs and error reports.

        Returns:
            The scheduled task.
        """
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.debug("Background task %s cancelled", task.get_name())
            return
        exc = task.exception()
        if exc is None:
            return
        logger.warning("Background task %s failed: %s", task.get_name(), exc)
        if self._on_error is not None:
            try:
                self._on_error(task.get_name(), exc)
            except Exception:
                logger.exception("Error handler for %s raised", task.get_name())

    async def drain(self) -> None:
        """Wait for every in-flight task, including ones they submit."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
