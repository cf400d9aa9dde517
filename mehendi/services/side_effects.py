"""
Fire-and-forget dispatch of post-commit side effects (push + email).

State changes are committed before anything is dispatched here. A failed
side effect is logged and never reaches the caller.
"""

import asyncio
import logging
from typing import Awaitable

logger = logging.getLogger(__name__)


class SideEffectDispatcher:
    """Runs side-effect coroutines as detached tasks and logs their failures"""

    def __init__(self):
        # Strong references so pending tasks are not garbage collected
        self._tasks: set[asyncio.Task] = set()

    def dispatch(self, label: str, coro: Awaitable) -> asyncio.Task:
        """Schedule a coroutine on the running loop without awaiting it"""
        task = asyncio.ensure_future(coro)
        task.set_name(label)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning(f"⚠️ Side effect {task.get_name()} was cancelled before completing")
            return
        error = task.exception()
        if error is not None:
            logger.error(f"❌ Side effect {task.get_name()} failed: {error}")
        else:
            logger.debug(f"✅ Side effect {task.get_name()} completed")

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every pending side effect (shutdown and tests)"""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


side_effects = SideEffectDispatcher()


def get_side_effects() -> SideEffectDispatcher:
    """Dependency returning the process-wide dispatcher"""
    return side_effects
