"""
Recording lifecycle.

Owns the fragment buffer, the elapsed-time tick and the pending clip for one
recording at a time: inactive -> starting -> recording -> inactive (with
pending clip).
"""

import asyncio
import logging
from collections.abc import Callable
from enum import Enum

from live_interview.media.capture import DeviceError, MediaSource
from live_interview.media.recorder import Recorder
from live_interview.session.schemas import Clip
from live_interview.session.timers import RepeatingTimer, Timer, TimerFactory

logger = logging.getLogger(__name__)


class RecordingState(str, Enum):
    INACTIVE = "inactive"
    STARTING = "starting"
    RECORDING = "recording"


class RecordingController:
    """
    Governs start/stop of a capture and assembles the finalized clip.

    Fragments are tagged with the generation of the recording that produced
    them, so a fragment arriving after its recording was stopped (or after a
    newer recording started) can never leak into another clip.

    A stop() or abort() issued while the recorder is still starting waits for
    the start to settle, so the encoder it launched is always stopped.
    """

    def __init__(
        self,
        recorder: Recorder,
        *,
        tick_interval_s: float = 1.0,
        mime_type: str = "video/webm",
        on_tick: Callable[[int], None] | None = None,
        timer_factory: TimerFactory = RepeatingTimer,
    ) -> None:
        self._recorder = recorder
        self._tick_interval_s = tick_interval_s
        self._mime_type = mime_type
        self._on_tick = on_tick
        self._timer_factory = timer_factory

        self._state = RecordingState.INACTIVE
        self._fragments: list[bytes] = []
        self._generation = 0
        self._accepting = False
        self._timer: Timer | None = None
        self._start_settled: asyncio.Event | None = None
        self._elapsed_seconds = 0
        self._clip: Clip | None = None

    @property
    def state(self) -> RecordingState:
        return self._state

    @property
    def is_recording(self) -> bool:
        return self._state == RecordingState.RECORDING

    @property
    def elapsed_seconds(self) -> int:
        return self._elapsed_seconds

    @property
    def clip(self) -> Clip | None:
        """The clip finalized by the last stop(), if not yet discarded."""
        return self._clip

    def discard_clip(self) -> None:
        if self._clip is not None:
            logger.debug(f"[RECORDING] discarded clip bytes={self._clip.size}")
        self._clip = None

    async def start(self, source: MediaSource | None) -> bool:
        """
        Begin a new recording.

        Returns:
            False without side effects when there is no live source or a
            recording is already running or starting; False after cleanup
            when the recorder cannot start.
        """
        if source is None or not source.active:
            logger.debug("[RECORDING] start ignored: no media source")
            return False
        if self._state != RecordingState.INACTIVE:
            logger.debug(f"[RECORDING] start ignored: state={self._state.value}")
            return False

        self._clip = None
        self._fragments = []
        self._generation += 1
        self._accepting = True
        self._set_elapsed(0)
        self._timer = self._timer_factory(self._tick_interval_s, self._tick, "elapsed-tick")
        self._timer.start()
        self._state = RecordingState.STARTING
        settled = self._start_settled = asyncio.Event()

        generation = self._generation
        try:
            await self._recorder.start(source, lambda data: self._on_fragment(generation, data))
        except DeviceError as e:
            logger.error(f"[RECORDING] recorder failed to start: {e}")
            self._reset()
            return False
        except asyncio.CancelledError:
            self._reset()
            raise
        finally:
            settled.set()

        self._state = RecordingState.RECORDING
        logger.info(f"[RECORDING] started generation={generation}")
        return True

    async def stop(self) -> Clip | None:
        """
        Stop the running recording and finalize its clip.

        Returns:
            The new clip, or None if nothing was recording.
        """
        await self._wait_for_start()
        if not self.is_recording:
            return None

        self._cancel_timer()
        try:
            # Trailing fragments flushed by the recorder still belong to this take.
            await self._recorder.stop()
        except DeviceError as e:
            logger.warning(f"[RECORDING] recorder stop failed, keeping captured fragments: {e}")
        finally:
            self._accepting = False
            self._state = RecordingState.INACTIVE

        fragments = self._fragments
        self._fragments = []
        self._clip = Clip(
            data=b"".join(fragments),
            mime_type=self._mime_type,
            fragment_count=len(fragments),
        )
        if not self._clip.data:
            logger.warning("[RECORDING] stopped with no captured data")
        logger.info(
            f"[RECORDING] stopped elapsed={self._elapsed_seconds}s fragments={len(fragments)} bytes={self._clip.size}"
        )
        return self._clip

    async def abort(self) -> None:
        """Tear down a running recording without producing a clip."""
        await self._wait_for_start()
        if not self.is_recording:
            self._cancel_timer()
            return
        self._cancel_timer()
        self._accepting = False
        try:
            await self._recorder.stop()
        except DeviceError as e:
            logger.warning(f"[RECORDING] recorder stop failed during abort: {e}")
        finally:
            self._reset()
        logger.info("[RECORDING] aborted")

    async def _wait_for_start(self) -> None:
        if self._state == RecordingState.STARTING and self._start_settled is not None:
            logger.debug("[RECORDING] waiting for recorder start to settle")
            await self._start_settled.wait()

    def _on_fragment(self, generation: int, data: bytes) -> None:
        if not data:
            return
        if generation != self._generation or not self._accepting:
            logger.debug(f"[RECORDING] dropped late fragment generation={generation} bytes={len(data)}")
            return
        self._fragments.append(data)

    def _tick(self) -> None:
        if self.is_recording:
            self._set_elapsed(self._elapsed_seconds + 1)

    def _set_elapsed(self, value: int) -> None:
        self._elapsed_seconds = value
        if self._on_tick is not None:
            self._on_tick(value)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _reset(self) -> None:
        self._cancel_timer()
        self._accepting = False
        self._fragments = []
        self._state = RecordingState.INACTIVE
