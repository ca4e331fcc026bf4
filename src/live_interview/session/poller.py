"""
Ready-signal polling.

Asks the interview service every few seconds whether the response for the
current turn is ready. The poller holds no turn state of its own: whether to
skip a tick and what to do on a ready signal are both answered by the
session controller.
"""

import logging
from collections.abc import Callable

from live_interview.api.gateway import InterviewGateway, NetworkError
from live_interview.session.timers import RepeatingTimer, Timer, TimerFactory

logger = logging.getLogger(__name__)


class TurnPoller:
    def __init__(
        self,
        gateway: InterviewGateway,
        *,
        should_skip: Callable[[], bool],
        on_ready: Callable[[], None],
        interval_s: float = 3.0,
        timer_factory: TimerFactory = RepeatingTimer,
    ) -> None:
        self._gateway = gateway
        self._should_skip = should_skip
        self._on_ready = on_ready
        self._interval_s = interval_s
        self._timer_factory = timer_factory
        self._timer: Timer | None = None

        self.ticks = 0
        self.skipped = 0
        self.failures = 0

    @property
    def running(self) -> bool:
        return self._timer is not None and self._timer.active

    def start(self) -> None:
        if self.running:
            return
        self._timer = self._timer_factory(self._interval_s, self.tick, "turn-poll")
        self._timer.start()
        logger.info(f"[POLL] started interval={self._interval_s:.1f}s")

    def stop(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
            logger.info(f"[POLL] stopped ticks={self.ticks} skipped={self.skipped} failures={self.failures}")

    async def tick(self) -> None:
        """Run one poll. Skipped ticks are dropped, never queued."""
        self.ticks += 1
        if self._should_skip():
            self.skipped += 1
            return

        try:
            ready = await self._gateway.poll_ready()
        except NetworkError as e:
            self.failures += 1
            logger.warning(f"[POLL] /question failed: {e}")
            return

        if ready:
            logger.info("[POLL] response ready")
            self._on_ready()
