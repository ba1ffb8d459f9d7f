"""
Auto-run scheduler.

Holds at most one deferred Run. Scheduling again replaces the pending one;
cancel() is safe to call at any time.
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional

from code_debugger.logging import get_logger

logger = get_logger(__name__)


class AutoRunScheduler:
    """Single-slot deferred runner for repaired code."""

    def __init__(self, run_callback: Callable[[str], Awaitable[Any]]):
        """
        Args:
            run_callback: Coroutine function invoked with the code when the timer fires
        """
        self._run_callback = run_callback
        self._task: Optional[asyncio.Task] = None
        self._pending_code: Optional[str] = None
        self._fired_count = 0

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def pending_code(self) -> Optional[str]:
        return self._pending_code if self.pending else None

    @property
    def fired_count(self) -> int:
        """Number of scheduled runs that actually fired."""
        return self._fired_count

    def schedule(self, code: str, delay_seconds: float) -> None:
        """
        Run `code` after `delay_seconds`, replacing any pending run.

        Must be called from inside a running event loop.
        """
        if delay_seconds < 0:
            raise ValueError("delay_seconds must be >= 0")

        replaced = self.cancel()
        loop = asyncio.get_running_loop()
        self._pending_code = code
        self._task = loop.create_task(self._fire_after(code, delay_seconds))

        logger.debug("Auto-run scheduled", delay=delay_seconds, replaced=replaced)

    def cancel(self) -> bool:
        """
        Cancel the pending run, if any.

        Returns:
            True if a pending run was cancelled
        """
        task, self._task = self._task, None
        self._pending_code = None
        if task is None or task.done():
            return False
        task.cancel()
        logger.debug("Auto-run cancelled")
        return True

    async def _fire_after(self, code: str, delay_seconds: float) -> None:
        await asyncio.sleep(delay_seconds)

        # Detach first so the run it triggers cannot cancel itself
        if self._task is asyncio.current_task():
            self._task = None
            self._pending_code = None

        self._fired_count += 1
        logger.info("Auto-run firing", code_length=len(code))
        await self._run_callback(code)

    async def wait(self) -> None:
        """Wait for the pending run to fire and finish; returns at once if none is pending."""
        task = self._task
        if task is None:
            return
        # asyncio.wait does not raise if the task gets cancelled meanwhile
        await asyncio.wait({task})
