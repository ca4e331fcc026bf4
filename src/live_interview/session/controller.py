"""
Session controller.

The turn-taking state machine: wires capture, recording, upload, polling and
playback together and is the only writer of Session state.

    record -> stop -> upload -> (poll: ready) -> AI speaks -> record again
                                    ... finish -> check -> success -> results
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from typing import Any

from live_interview.api.gateway import InterviewGateway, NetworkError
from live_interview.config import Settings, get_settings
from live_interview.media.capture import CaptureSource, DeviceError
from live_interview.media.player import AudioPlayer, PlaybackError
from live_interview.media.recorder import Recorder
from live_interview.session.playback import PlaybackEngine
from live_interview.session.poller import TurnPoller
from live_interview.session.recording import RecordingController
from live_interview.session.schemas import Clip, SessionSnapshot, SessionStatus
from live_interview.session.state import Session
from live_interview.session.timers import RepeatingTimer, TimerFactory

logger = logging.getLogger(__name__)

SnapshotListener = Callable[[SessionSnapshot], None]
Navigator = Callable[[str], None]


class SessionController:
    """
    Orchestrates one live interview session.

    All user actions return a bool (or the new clip) instead of raising: a
    refused action is logged and leaves the session untouched, and every
    device, network or playback failure resolves to a visible state.
    """

    def __init__(
        self,
        *,
        gateway: InterviewGateway,
        capture: CaptureSource,
        recorder: Recorder,
        player: AudioPlayer,
        settings: Settings | None = None,
        navigate: Navigator | None = None,
        timer_factory: TimerFactory = RepeatingTimer,
    ) -> None:
        """
        Initialize the controller.

        Args:
            gateway: Interview service client; closed by close().
            capture: Source of the camera/microphone handle.
            recorder: Encoder turning the handle into clip fragments.
            player: Speaker output for response audio.
            settings: Application settings (uses config if not provided).
            navigate: Called with the results route after a successful finish.
            timer_factory: Builds the poll and elapsed-time timers.
        """
        self._settings = settings or get_settings()
        self._gateway = gateway
        self._capture = capture
        self._navigate = navigate
        self._session = Session()

        self._recording = RecordingController(
            recorder,
            tick_interval_s=self._settings.elapsed_tick_s,
            mime_type=self._settings.clip_mime_type,
            on_tick=self._on_elapsed_tick,
            timer_factory=timer_factory,
        )
        self._poller = TurnPoller(
            gateway,
            should_skip=self._should_skip_poll,
            on_ready=self._on_ready_signal,
            interval_s=self._settings.poll_interval_s,
            timer_factory=timer_factory,
        )
        self._playback = PlaybackEngine(gateway, player)
        self._playback_task: asyncio.Task[None] | None = None

        self._listeners: list[SnapshotListener] = []
        self._started = False
        self._closed = False

    # ------------------------------------------------------------------
    # Read-only surface
    # ------------------------------------------------------------------

    @property
    def status(self) -> SessionStatus:
        return self._session.status

    @property
    def ai_speaking(self) -> bool:
        return self._session.ai_speaking

    @property
    def recording(self) -> bool:
        return self._session.recording

    @property
    def elapsed_seconds(self) -> int:
        return self._session.elapsed_seconds

    @property
    def recording_enabled(self) -> bool:
        return self._session.recording_enabled

    @property
    def clip(self) -> Clip | None:
        return self._recording.clip

    @property
    def poller(self) -> TurnPoller:
        return self._poller

    def snapshot(self) -> SessionSnapshot:
        s = self._session
        return SessionSnapshot(
            status=s.status,
            ai_speaking=s.ai_speaking,
            recording=s.recording,
            elapsed_seconds=s.elapsed_seconds,
            has_clip=self._recording.clip is not None,
            recording_enabled=s.recording_enabled,
        )

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """Register a listener called with a snapshot after every change."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Acquire capture devices once and start polling for the AI's turn."""
        if self._started or self._closed:
            return
        self._started = True

        try:
            self._session.media = await self._capture.acquire()
        except DeviceError as e:
            # Non-fatal: the session stays idle with recording disabled.
            logger.error(f"[CAPTURE] acquisition failed, recording disabled: {e}")

        self._poller.start()
        self._notify()

    async def close(self) -> None:
        """Stop both timers, any playback, and release devices and the HTTP client."""
        if self._closed:
            return
        self._closed = True

        self._poller.stop()
        await self._recording.abort()
        self._session.recording = False

        task = self._playback_task
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        media = self._session.media
        self._session.media = None
        if media is not None:
            await media.release()

        await self._gateway.close()
        logger.info("[SESSION] closed")

    async def __aenter__(self) -> SessionController:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------------

    async def start_recording(self) -> bool:
        s = self._session
        if self._closed:
            return False
        if not s.recording_enabled:
            logger.info("[SESSION] record ignored: no capture device")
            return False
        if s.status != SessionStatus.IDLE or s.ai_speaking or s.busy:
            logger.info(
                f"[SESSION] record ignored: status={s.status.value} ai_speaking={s.ai_speaking} busy={s.busy}"
            )
            return False

        # Claim the slot before awaiting so a ready signal cannot start playback meanwhile.
        s.recording = True
        started = await self._recording.start(s.media)
        if not started:
            s.recording = False
        self._notify()
        return started

    async def stop_recording(self) -> Clip | None:
        if not self._session.recording:
            return None
        try:
            clip = await self._recording.stop()
        finally:
            self._session.recording = False
            self._notify()
        return clip

    async def upload(self) -> bool:
        """
        Upload the pending clip.

        Allowed from idle, or from error as the user's retry. On success the
        status stays `uploading` until the poller sees the AI's response.
        """
        s = self._session
        if self._closed:
            return False
        if s.status not in (SessionStatus.IDLE, SessionStatus.ERROR) or s.ai_speaking or s.busy:
            logger.info(
                f"[SESSION] upload ignored: status={s.status.value} ai_speaking={s.ai_speaking} busy={s.busy}"
            )
            return False

        clip = self._recording.clip
        if clip is None:
            logger.warning("[SESSION] upload ignored: no clip to upload, record a new answer")
            return False

        self._set_status(SessionStatus.UPLOADING)
        s.request_in_flight = True
        self._notify()
        try:
            await self._gateway.upload_clip(clip, self._settings.upload_filename)
        except NetworkError as e:
            logger.error(f"[SESSION] upload failed: {e}")
            s.request_in_flight = False
            self._set_status(SessionStatus.ERROR)
            self._notify()
            return False

        s.request_in_flight = False
        logger.info("[SESSION] upload accepted, waiting for the AI response")
        self._notify()
        return True

    async def finish(self) -> bool:
        """
        End the live interview (the end-of-turn check).

        On acknowledgment the status becomes `success` and the navigator is
        called exactly once with the results route.
        """
        s = self._session
        if self._closed:
            return False
        if s.status in (SessionStatus.SUCCESS, SessionStatus.ERROR) or s.ai_speaking or s.busy:
            logger.info(
                f"[SESSION] finish ignored: status={s.status.value} ai_speaking={s.ai_speaking} busy={s.busy}"
            )
            return False

        self._set_status(SessionStatus.UPLOADING)
        s.request_in_flight = True
        self._notify()
        try:
            await self._gateway.check(self._settings.check_filename)
        except NetworkError as e:
            logger.error(f"[SESSION] check failed: {e}")
            s.request_in_flight = False
            self._set_status(SessionStatus.ERROR)
            self._notify()
            return False

        s.request_in_flight = False
        self._set_status(SessionStatus.SUCCESS)
        self._poller.stop()
        self._notify()
        self._navigate_to_results()
        return True

    async def wait_for_playback(self) -> None:
        """Wait until the current response playback (if any) has ended."""
        task = self._playback_task
        if task is not None:
            await asyncio.wait({task})

    # ------------------------------------------------------------------
    # Transitions driven by timers and playback
    # ------------------------------------------------------------------

    def _should_skip_poll(self) -> bool:
        s = self._session
        return (
            self._closed
            or s.is_playing
            or s.recording
            or s.request_in_flight
            or s.status == SessionStatus.SUCCESS
        )

    def _on_ready_signal(self) -> None:
        s = self._session
        if self._should_skip_poll():
            return

        # Guard goes up before anything can yield to the event loop.
        s.is_playing = True
        s.ai_speaking = True
        if s.status != SessionStatus.SUCCESS:
            self._set_status(SessionStatus.IDLE)
        self._notify()
        self._playback_task = asyncio.create_task(self._run_playback(), name="response-playback")

    async def _run_playback(self) -> None:
        try:
            await self._playback.play(self._settings.audio_path)
        except asyncio.CancelledError:
            self._end_playback(completed=False)
            raise
        except PlaybackError as e:
            logger.error(f"[PLAYBACK] failed, returning control to the user: {e}")
            self._end_playback(completed=False)
        except Exception:
            logger.exception("[PLAYBACK] unexpected failure, returning control to the user")
            self._end_playback(completed=False)
        else:
            self._end_playback(completed=True)

    def _end_playback(self, *, completed: bool) -> None:
        s = self._session
        s.is_playing = False
        s.ai_speaking = False
        if completed:
            # The next turn needs a fresh answer; the old clip must not be re-uploaded.
            self._recording.discard_clip()
        logger.info(f"[PLAYBACK] ended completed={completed}")
        self._notify()

    def _on_elapsed_tick(self, elapsed: int) -> None:
        self._session.elapsed_seconds = elapsed
        self._notify()

    def _set_status(self, status: SessionStatus) -> None:
        old = self._session.status
        if old != status:
            logger.info(f"[SESSION] status {old.value} -> {status.value}")
        self._session.status = status

    def _navigate_to_results(self) -> None:
        s = self._session
        if s.navigated or self._navigate is None:
            return
        s.navigated = True
        route = self._settings.results_route
        logger.info(f"[SESSION] navigating to {route}")
        try:
            self._navigate(route)
        except Exception:
            logger.exception(f"[SESSION] navigation to {route} failed")

    def _notify(self) -> None:
        if not self._listeners:
            return
        snap = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snap)
            except Exception:
                logger.exception("[SESSION] snapshot listener failed")
