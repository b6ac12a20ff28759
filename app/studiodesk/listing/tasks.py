from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine
from functools import partial
from typing import Any

from app.studiodesk.core.logging import log_json

logger = logging.getLogger("studiodesk.tasks")


class TaskTracker:
    """Keeps references to background tasks and logs the ones that fail."""

    def __init__(self, name: str):
        self.name = name
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def spawn(self, coro: Coroutine[Any, Any, Any], *, label: str) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(partial(self._on_done, label))
        return task

    def _on_done(self, label: str, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            log_json(
                logger,
                {
                    "event": "background_task_failed",
                    "owner": self.name,
                    "label": label,
                    "error_class": error.__class__.__name__,
                    "error": str(error),
                },
                level=logging.ERROR,
            )

    async def wait_idle(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def cancel_all(self) -> None:
        for task in list(self._tasks):
            task.cancel()
