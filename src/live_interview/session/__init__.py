"""
Session module: the turn-taking state machine and its collaborators.
"""

from live_interview.session.controller import SessionController
from live_interview.session.playback import PlaybackEngine
from live_interview.session.poller import TurnPoller
from live_interview.session.recording import RecordingController, RecordingState
from live_interview.session.schemas import (
    Clip,
    DisplayMode,
    SessionSnapshot,
    SessionStatus,
    format_elapsed,
)
from live_interview.session.state import Session
from live_interview.session.timers import RepeatingTimer

__all__ = [
    "Clip",
    "DisplayMode",
    "PlaybackEngine",
    "RecordingController",
    "RecordingState",
    "RepeatingTimer",
    "Session",
    "SessionController",
    "SessionSnapshot",
    "SessionStatus",
    "TurnPoller",
    "format_elapsed",
]
