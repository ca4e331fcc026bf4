"""Camera + microphone acquisition.

This module only answers "can we capture, and from what?". It hands out a
MediaSource describing the live devices; encoding is the recorder's job.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
from abc import ABC, abstractmethod
from dataclasses import dataclass

import numpy as np

logger = logging.getLogger(__name__)


class DeviceError(Exception):
    """Raised when capture devices cannot be acquired or driven."""


def mirror_frame(frame: np.ndarray) -> np.ndarray:
    """Flip a video frame horizontally for self-view."""
    if frame.ndim < 2:
        raise ValueError(f"Expected an image array, got ndim={frame.ndim}")
    return np.fliplr(frame)


class MediaSource(ABC):
    """A live audio+video capture handle."""

    mirror_preview: bool = True

    @property
    @abstractmethod
    def active(self) -> bool: ...

    @abstractmethod
    async def release(self) -> None: ...

    def preview(self, frame: np.ndarray) -> np.ndarray:
        """
        Self-view hook for the rendering layer.

        The session never decodes video itself; a UI that draws the live
        camera feed passes each frame through here before display. Only the
        preview is mirrored, never the recorded stream.
        """
        return mirror_frame(frame) if self.mirror_preview else frame


class CaptureSource(ABC):
    @abstractmethod
    async def acquire(self) -> MediaSource:
        """Acquire combined audio+video access or raise DeviceError."""
        ...


@dataclass(frozen=True)
class DeviceCaptureConfig:
    ffmpeg_bin: str = "ffmpeg"
    video_device: str = "/dev/video0"
    video_format: str = "v4l2"
    audio_device: str | None = None  # None -> system default input
    audio_format: str = "pulse"
    mirror_preview: bool = True


class DeviceMediaSource(MediaSource):
    def __init__(self, config: DeviceCaptureConfig, ffmpeg_path: str, audio_name: str) -> None:
        self._config = config
        self._ffmpeg_path = ffmpeg_path
        self._audio_name = audio_name
        self._active = True
        self.mirror_preview = config.mirror_preview

    @property
    def active(self) -> bool:
        return self._active

    @property
    def ffmpeg_path(self) -> str:
        return self._ffmpeg_path

    def input_args(self) -> list[str]:
        """ffmpeg input arguments for the acquired camera and microphone."""
        return [
            "-f",
            self._config.video_format,
            "-i",
            self._config.video_device,
            "-f",
            self._config.audio_format,
            "-i",
            self._config.audio_device or "default",
        ]

    async def release(self) -> None:
        if self._active:
            self._active = False
            logger.info(f"[CAPTURE] released video={self._config.video_device} audio={self._audio_name}")


class DeviceCaptureSource(CaptureSource):
    """Local camera + microphone, recorded through ffmpeg."""

    def __init__(self, config: DeviceCaptureConfig | None = None) -> None:
        self._config = config or DeviceCaptureConfig()
        self._source: DeviceMediaSource | None = None

    @property
    def config(self) -> DeviceCaptureConfig:
        return self._config

    def _require_sounddevice(self):
        try:
            import sounddevice as sd  # type: ignore

            return sd
        except (ImportError, OSError) as e:  # pragma: no cover
            raise DeviceError(
                "sounddevice is required to probe the microphone. Install with: pip install -e '.[media]'. "
                "If you see 'PortAudio library not found', install PortAudio (Debian/Ubuntu: sudo apt-get install portaudio19-dev)."
            ) from e

    def _require_ffmpeg(self) -> str:
        p = shutil.which(self._config.ffmpeg_bin)
        if not p:
            raise DeviceError(
                f"ffmpeg not found (looked for {self._config.ffmpeg_bin!r}). Install ffmpeg or set FFMPEG_BIN."
            )
        return p

    def _check_camera(self) -> None:
        device = self._config.video_device
        # Only device nodes can be checked up front; other inputs are ffmpeg's call.
        if not device.startswith("/dev/"):
            return
        if not os.path.exists(device):
            raise DeviceError(f"camera {device} not found")
        if not os.access(device, os.R_OK):
            raise DeviceError(f"permission denied for camera {device}")

    def _check_microphone(self) -> str:
        sd = self._require_sounddevice()
        try:
            info = sd.query_devices(self._config.audio_device, kind="input")
        except (ValueError, sd.PortAudioError) as e:
            raise DeviceError(f"no usable microphone: {e}") from e
        return str(info.get("name", "unknown"))

    async def acquire(self) -> MediaSource:
        if self._source is not None and self._source.active:
            return self._source

        ffmpeg_path = self._require_ffmpeg()
        self._check_camera()
        audio_name = await asyncio.to_thread(self._check_microphone)

        self._source = DeviceMediaSource(self._config, ffmpeg_path, audio_name)
        logger.info(f"[CAPTURE] acquired video={self._config.video_device} audio={audio_name}")
        return self._source
