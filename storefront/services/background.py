"""Fire-and-forget work that must never block or fail a request."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

logger = logging.getLogger(__name__)


class DetachedTaskRunner:
    """Schedules side effects (view counts, execution stats) off the request path.

    Task references are held until completion so they are not garbage
    collected mid-flight; failures are logged and never re-raised.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def spawn(self, coro: Coroutine[Any, Any, Any], *, name: str) -> asyncio.Task[None]:
        task = asyncio.create_task(self._guard(coro, name), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @staticmethod
    async def _guard(coro: Coroutine[Any, Any, Any], name: str) -> None:
        try:
            await coro
        except Exception:  # pylint: disable=broad-exception-caught
            logger.warning("Detached task %s failed", name, exc_info=True)

    async def drain(self) -> None:
        """Wait for every scheduled task; used on shutdown and in tests."""

        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


_runner = DetachedTaskRunner()


def get_task_runner() -> DetachedTaskRunner:
    """FastAPI dependency factory."""

    return _runner
