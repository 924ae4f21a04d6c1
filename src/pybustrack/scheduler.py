"""Cancellable periodic tasks with generation tracking.

Each :class:`PeriodicTask` fires its callback immediately on start and
then on a fixed wall-clock cadence.  Ticks run as independent asyncio
tasks, so a slow tick never delays the next one and two ticks of the
same loop may be in flight at once.

Every start/stop bumps the task's generation.  A tick is handed the
generation it was scheduled under and must call :meth:`is_current`
before committing side effects; results of ticks that outlive a stop
are thereby discarded.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

_logger = logging.getLogger(__name__)

TickCallback = Callable[[int], Awaitable[object]]


class PeriodicTask:
    """A named, restartable interval timer on the running event loop."""

    def __init__(self, name: str, interval: float, callback: TickCallback) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._name = name
        self._interval = interval
        self._callback = callback
        self._generation = 0
        self._runner: asyncio.Task[None] | None = None
        self._inflight: set[asyncio.Task[None]] = set()

    @property
    def name(self) -> str:
        return self._name

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_running(self) -> bool:
        return self._runner is not None

    def is_current(self, generation: int) -> bool:
        """Whether a tick scheduled under *generation* may still commit its result."""
        return self._runner is not None and generation == self._generation

    def start(self) -> int:
        """Start ticking; returns the new generation.  No-op if already running."""
        if self._runner is not None:
            return self._generation
        self._generation += 1
        self._runner = asyncio.get_running_loop().create_task(
            self._run(self._generation),
            name=f"pybustrack-{self._name}",
        )
        _logger.debug("%s started generation=%d interval=%.1fs", self._name, self._generation, self._interval)
        return self._generation

    def stop(self) -> None:
        """Stop scheduling further ticks.

        Ticks already in flight run to completion but are no longer current.
        """
        runner = self._runner
        if runner is None:
            return
        self._generation += 1
        self._runner = None
        runner.cancel()
        _logger.debug("%s stopped generation=%d inflight=%d", self._name, self._generation, len(self._inflight))

    async def drain(self) -> None:
        """Wait for every in-flight tick to finish."""
        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    async def _run(self, generation: int) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time()
        while True:
            self._spawn(generation)
            deadline += self._interval
            now = loop.time()
            if deadline < now:
                # Missed ticks after a stalled loop are dropped, not replayed.
                deadline = now + self._interval
            await asyncio.sleep(deadline - now)

    def _spawn(self, generation: int) -> None:
        task = asyncio.get_running_loop().create_task(self._tick(generation))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def _tick(self, generation: int) -> None:
        try:
            await self._callback(generation)
        except asyncio.CancelledError:
            raise
        except Exception:
            _logger.warning("%s tick failed", self._name, exc_info=True)
