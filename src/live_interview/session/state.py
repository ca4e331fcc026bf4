"""
Session state.

The mutable aggregate of one interview turn cycle. Only SessionController
transition methods write to it; timers and the poller go through the
controller.
"""

from dataclasses import dataclass

from live_interview.media.capture import MediaSource
from live_interview.session.schemas import SessionStatus


@dataclass
class Session:
    status: SessionStatus = SessionStatus.IDLE
    recording: bool = False
    ai_speaking: bool = False
    elapsed_seconds: int = 0

    # Guards
    is_playing: bool = False
    request_in_flight: bool = False
    navigated: bool = False

    media: MediaSource | None = None

    @property
    def recording_enabled(self) -> bool:
        return self.media is not None and self.media.active

    @property
    def busy(self) -> bool:
        """True while recording, a request, or a response playback is in progress."""
        return self.recording or self.request_in_flight or self.is_playing
