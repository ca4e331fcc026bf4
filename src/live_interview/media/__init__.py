"""Local media subsystem.

Capability interfaces for the platform side of an interview turn:

camera/mic -> recorder -> clip,   response audio -> speaker

The session controller depends only on the abstract classes here; device
backends pull in `sounddevice`/`soundfile` lazily.
"""

from live_interview.media.capture import (
    CaptureSource,
    DeviceCaptureConfig,
    DeviceCaptureSource,
    DeviceError,
    DeviceMediaSource,
    MediaSource,
    mirror_frame,
)
from live_interview.media.player import AudioPlayer, PlaybackError, PlayerConfig, SoundDevicePlayer
from live_interview.media.recorder import FFmpegRecorder, Recorder, RecorderConfig

__all__ = [
    "AudioPlayer",
    "CaptureSource",
    "DeviceCaptureConfig",
    "DeviceCaptureSource",
    "DeviceError",
    "DeviceMediaSource",
    "FFmpegRecorder",
    "MediaSource",
    "PlaybackError",
    "PlayerConfig",
    "Recorder",
    "RecorderConfig",
    "SoundDevicePlayer",
    "mirror_frame",
]
