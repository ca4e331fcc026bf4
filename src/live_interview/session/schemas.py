"""
Pydantic schemas for the session module.

Defines the clip payload and the read-only state surface handed to the
rendering layer.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, computed_field


class SessionStatus(str, Enum):
    """Upload/finalize status of the session."""

    IDLE = "idle"
    UPLOADING = "uploading"
    SUCCESS = "success"
    ERROR = "error"


class DisplayMode(str, Enum):
    """What the rendering layer should show for a given snapshot."""

    CONTROLS = "controls"
    RECORDING = "recording"
    AI_SPEAKING = "ai_speaking"
    LOADING = "loading"
    ERROR = "error"
    FINISHED = "finished"


def format_elapsed(seconds: int) -> str:
    """Render an elapsed second count as MM:SS."""
    seconds = max(0, int(seconds))
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


class Clip(BaseModel):
    """
    A finalized recording pending upload.

    Immutable once built; the payload is the concatenation of every fragment
    captured between one start and the following stop.
    """

    model_config = ConfigDict(frozen=True)

    data: bytes = Field(..., description="Container bytes of the recording")
    mime_type: str = Field(default="video/webm", description="Container/codec tag")
    fragment_count: int = Field(default=0, description="Number of fragments concatenated")

    @property
    def size(self) -> int:
        return len(self.data)


class SessionSnapshot(BaseModel):
    """Point-in-time view of the session for the rendering layer."""

    model_config = ConfigDict(frozen=True)

    status: SessionStatus
    ai_speaking: bool = False
    recording: bool = False
    elapsed_seconds: int = 0
    has_clip: bool = False
    recording_enabled: bool = False

    @computed_field  # type: ignore[prop-decorator]
    @property
    def elapsed_display(self) -> str:
        return format_elapsed(self.elapsed_seconds)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def display_mode(self) -> DisplayMode:
        if self.status == SessionStatus.SUCCESS:
            return DisplayMode.FINISHED
        if self.status == SessionStatus.ERROR:
            return DisplayMode.ERROR
        if self.status == SessionStatus.UPLOADING:
            return DisplayMode.LOADING
        # idle while the AI speaks is its own mode, never idle-with-controls
        if self.ai_speaking:
            return DisplayMode.AI_SPEAKING
        if self.recording:
            return DisplayMode.RECORDING
        return DisplayMode.CONTROLS
