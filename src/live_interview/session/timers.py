"""
Cancellable repeating timers.

Both the ready-signal poll and the elapsed-time tick run on a RepeatingTimer.
Ticks are awaited one at a time, so a slow tick delays the next one instead of
overlapping it.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Protocol

logger = logging.getLogger(__name__)

TickCallback = Callable[[], Awaitable[None] | None]


class Timer(Protocol):
    @property
    def active(self) -> bool: ...

    def start(self) -> None: ...

    def cancel(self) -> None: ...


TimerFactory = Callable[[float, TickCallback, str], Timer]


class RepeatingTimer:
    """asyncio equivalent of a cancellable interval."""

    def __init__(self, interval_s: float, callback: TickCallback, name: str = "timer") -> None:
        if interval_s <= 0:
            raise ValueError(f"interval_s must be positive, got {interval_s}")
        self._interval_s = interval_s
        self._callback = callback
        self._name = name
        self._task: asyncio.Task[None] | None = None

    @property
    def interval_s(self) -> float:
        return self._interval_s

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.active:
            return
        self._task = asyncio.create_task(self._run(), name=self._name)

    def cancel(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval_s)
            try:
                result = self._callback()
                if inspect.isawaitable(result):
                    await result
            except asyncio.CancelledError:
                raise
            except Exception:
                # A failing tick never stops the interval.
                logger.exception(f"[TIMER] {self._name} tick failed")
