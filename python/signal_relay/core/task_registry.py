"""
Background task registry.

Every long-lived task the server starts (connection writers, the stats loop)
is registered here so failures are logged with their name and shutdown can
cancel them all.
"""

import asyncio
import itertools
import logging
from typing import Any, Coroutine, Dict, Set

logger = logging.getLogger("signal_relay.tasks")


class TaskRegistry:
    """Track named asyncio tasks, log failures, and cancel on shutdown."""

    def __init__(self):
        self._tasks: Dict[str, asyncio.Task] = {}
        self._failed_tasks: Set[str] = set()
        self._completed_count: int = 0
        self._ids = itertools.count(1)

    def spawn(
        self,
        name: str,
        coro: Coroutine[Any, Any, Any],
    ) -> asyncio.Task:
        """
        Start a coroutine as a tracked task.

        Args:
            name: Task name; a numeric suffix is added if it is already in use
            coro: Coroutine to execute

        Returns:
            The created asyncio.Task
        """
        if name in self._tasks:
            name = f"{name}#{next(self._ids)}"
        task = asyncio.create_task(coro, name=name)
        self._tasks[name] = task
        task.add_done_callback(lambda t: self._on_task_done(name, t))
        logger.debug(f"Task started: {name}")
        return task

    def _on_task_done(self, name: str, task: asyncio.Task) -> None:
        self._tasks.pop(name, None)
        self._completed_count += 1

        if task.cancelled():
            logger.debug(f"Task '{name}' was cancelled")
            return

        exc = task.exception()
        if exc:
            self._failed_tasks.add(name)
            logger.error(f"Task '{name}' failed with exception: {exc}", exc_info=exc)

    @property
    def active_count(self) -> int:
        """Number of currently active tasks."""
        return len(self._tasks)

    @property
    def failed_count(self) -> int:
        """Number of tasks that failed with exceptions."""
        return len(self._failed_tasks)

    @property
    def completed_count(self) -> int:
        """Total number of finished tasks."""
        return self._completed_count

    def get_failed_task_names(self) -> Set[str]:
        return set(self._failed_tasks)

    async def shutdown(self, timeout: float = 5.0) -> None:
        """
        Cancel all tasks and wait for them to finish.

        Args:
            timeout: Maximum time to wait for tasks to complete
        """
        if not self._tasks:
            logger.debug("No active tasks to shutdown")
            return

        tasks = list(self._tasks.values())
        logger.info(f"Shutting down {len(tasks)} active tasks (timeout={timeout}s)")

        for task in tasks:
            task.cancel()

        done, pending = await asyncio.wait(tasks, timeout=timeout)
        if pending:
            logger.warning(f"Shutdown timeout: {len(pending)} tasks still running")

        logger.info(f"Task registry shutdown complete. Failed tasks: {len(self._failed_tasks)}")

