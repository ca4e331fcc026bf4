"""Speaker playback of response audio.

Decodes an in-memory audio payload with `soundfile` and plays it through
`sounddevice`. Knows nothing about turns or polling.
"""

from __future__ import annotations

import asyncio
import io
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

logger = logging.getLogger(__name__)


class PlaybackError(Exception):
    """Raised when response audio cannot be fetched, decoded or played."""


class AudioPlayer(ABC):
    @abstractmethod
    async def play(self, audio: bytes) -> None:
        """Play `audio` to completion; raise PlaybackError if it cannot start."""
        ...

    def stop(self) -> None:
        """Interrupt playback in progress, if any."""
        return None


@dataclass(frozen=True)
class PlayerConfig:
    timeout_s: float = 120.0
    device: int | str | None = None


class SoundDevicePlayer(AudioPlayer):
    def __init__(self, config: PlayerConfig | None = None) -> None:
        self._config = config or PlayerConfig()

    @property
    def config(self) -> PlayerConfig:
        return self._config

    def _require_backend(self):
        try:
            import sounddevice as sd  # type: ignore
            import soundfile as sf  # type: ignore

            return sd, sf
        except (ImportError, OSError) as e:  # pragma: no cover
            raise PlaybackError(
                "sounddevice and soundfile are required for playback. Install with: pip install -e '.[media]'."
            ) from e

    async def play(self, audio: bytes) -> None:
        sd, sf = self._require_backend()

        def _decode():
            return sf.read(io.BytesIO(audio), dtype="float32", always_2d=False)

        try:
            data, sample_rate = await asyncio.to_thread(_decode)
        except (RuntimeError, TypeError) as e:  # LibsndfileError is a RuntimeError
            raise PlaybackError(f"could not decode response audio ({len(audio)} bytes): {e}") from e

        try:
            sd.play(data, samplerate=sample_rate, device=self._config.device, blocking=False)
        except sd.PortAudioError as e:
            raise PlaybackError(f"could not start playback: {e}") from e

        duration = len(data) / float(sample_rate) if sample_rate else 0.0
        logger.info(f"[PLAYBACK] playing dur={duration:.2f}s sr={sample_rate}")
        try:
            await asyncio.wait_for(asyncio.to_thread(sd.wait), timeout=self._config.timeout_s)
        except asyncio.TimeoutError as e:
            self.stop()
            raise PlaybackError(f"playback exceeded {self._config.timeout_s:.1f}s") from e
        except asyncio.CancelledError:
            self.stop()
            raise

    def stop(self) -> None:
        sd, _ = self._require_backend()
        try:
            sd.stop()
        except sd.PortAudioError as e:
            logger.debug(f"[PLAYBACK] stop failed: {e}")
