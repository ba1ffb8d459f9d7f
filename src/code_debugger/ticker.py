"""
Progress ticker.

Cycles through a persona's messages while a repair is in flight. The
repeating timer is a single asyncio task; stop() cancels it and may be
called any number of times.
"""

import asyncio
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterator, Optional, Tuple

from code_debugger.logging import get_logger
from code_debugger.personas import Persona, messages_for

logger = get_logger(__name__)

DEFAULT_INTERVAL_SECONDS = 3.5


class TickerPhase(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"


@dataclass(frozen=True)
class TickerState:
    """Snapshot of a ticker for display."""

    active: bool
    messages: Tuple[str, ...]
    current_index: int

    @property
    def current_message(self) -> Optional[str]:
        if not self.messages:
            return None
        return self.messages[self.current_index]


class ProgressTicker:
    """
    Repeating display-message timer.

    Usage:
        ticker = ProgressTicker(on_message=print, interval_seconds=3.5)
        with ticker.running_for(Persona.HACKER):
            await long_call()
    """

    def __init__(
        self,
        on_message: Callable[[str], None],
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._on_message = on_message
        self.interval_seconds = interval_seconds
        self._phase = TickerPhase.STOPPED
        self._messages: Tuple[str, ...] = ()
        self._index = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def phase(self) -> TickerPhase:
        return self._phase

    @property
    def running(self) -> bool:
        return self._phase == TickerPhase.RUNNING

    @property
    def state(self) -> TickerState:
        return TickerState(
            active=self.running,
            messages=self._messages,
            current_index=self._index,
        )

    def start(self, persona: "Persona | str") -> None:
        """
        Show the persona's first message and start cycling.

        Must be called from inside a running event loop. A ticker that is
        already running is stopped first.
        """
        if self.running:
            logger.debug("Ticker restarted while running")
            self.stop()

        messages = messages_for(persona)
        loop = asyncio.get_running_loop()

        self._messages = messages
        self._index = 0
        self._phase = TickerPhase.RUNNING
        self._emit()
        self._task = loop.create_task(self._tick())

        logger.debug(
            "Ticker started",
            persona=Persona.parse(persona).value,
            interval=self.interval_seconds,
        )

    def stop(self) -> None:
        """Stop cycling. Idempotent."""
        self._phase = TickerPhase.STOPPED
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            logger.debug("Ticker stopped", index=self._index)

    @contextmanager
    def running_for(self, persona: "Persona | str") -> Iterator["ProgressTicker"]:
        """Run the ticker for the duration of a block."""
        self.start(persona)
        try:
            yield self
        finally:
            self.stop()

    async def _tick(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            if not self.running:
                return
            self._index = (self._index + 1) % len(self._messages)
            self._emit()

    def _emit(self) -> None:
        try:
            self._on_message(self._messages[self._index])
        except Exception as e:
            # A display callback must not kill the timer
            logger.error("Ticker display callback failed", error=str(e))
