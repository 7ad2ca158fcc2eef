"""Cancellable delayed actions on the running asyncio loop."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class Debouncer:
    """Run an async action once, ``delay`` seconds after the last schedule().

    Every call to schedule() re-arms the timer, so a burst of calls
    collapses into a single run.  The action reads whatever state is
    current when it runs, not when it was scheduled.

    Runs fired by the timer have no caller to report to, so their
    errors are logged.  flush() runs the action inline and lets errors
    propagate.
    """

    def __init__(
        self,
        delay: float,
        action: Callable[[], Awaitable[None]],
        name: str = "action",
    ) -> None:
        self.delay = delay
        self.name = name
        self._action = action
        self._handle: asyncio.TimerHandle | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def pending(self) -> bool:
        """True while a timer is armed and has not fired yet."""
        return self._handle is not None

    def schedule(self) -> None:
        """(Re)arm the timer. Must be called from inside the event loop."""
        loop = asyncio.get_running_loop()
        self.cancel()
        self._handle = loop.call_later(self.delay, self._fire)

    def cancel(self) -> None:
        """Drop the armed timer without running the action."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        try:
            await self._action()
        except Exception:
            logger.exception("Debounced %s failed", self.name)

    async def wait(self) -> None:
        """Wait for a timer-fired run that is already in progress."""
        if self._task is not None and not self._task.done():
            await self._task

    async def flush(self) -> None:
        """Run the action now if a timer is armed."""
        await self.wait()
        if self._handle is not None:
            self.cancel()
            await self._action()

    async def close(self, flush: bool = True) -> None:
        """Tear down, flushing a pending run unless ``flush`` is False."""
        if flush:
            await self.flush()
        else:
            self.cancel()
            await self.wait()
