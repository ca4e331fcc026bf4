"""Clip encoding.

Default implementation runs `ffmpeg` as a subprocess that writes a WebM stream
to stdout; every chunk read from the pipe is handed out as one fragment.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass

from live_interview.media.capture import DeviceError, DeviceMediaSource, MediaSource

logger = logging.getLogger(__name__)

FragmentSink = Callable[[bytes], None]


class Recorder(ABC):
    @abstractmethod
    async def start(self, source: MediaSource, on_fragment: FragmentSink) -> None:
        """Begin encoding `source`, delivering fragments in capture order."""
        ...

    @abstractmethod
    async def stop(self) -> None:
        """Stop encoding. Trailing fragments are delivered before this returns."""
        ...


@dataclass(frozen=True)
class RecorderConfig:
    video_codec: str = "libvpx"  # vp8
    audio_codec: str = "libopus"
    chunk_size: int = 64 * 1024
    stop_timeout_s: float = 5.0
    stderr_tail_bytes: int = 4096


class FFmpegRecorder(Recorder):
    def __init__(self, config: RecorderConfig | None = None) -> None:
        self._config = config or RecorderConfig()
        self._proc: asyncio.subprocess.Process | None = None
        self._pump_task: asyncio.Task[None] | None = None
        self._stderr_task: asyncio.Task[bytes] | None = None

    @property
    def config(self) -> RecorderConfig:
        return self._config

    def _build_cmd(self, source: DeviceMediaSource) -> list[str]:
        return [
            source.ffmpeg_path,
            "-hide_banner",
            "-loglevel",
            "error",
            *source.input_args(),
            "-c:v",
            self._config.video_codec,
            "-c:a",
            self._config.audio_codec,
            "-f",
            "webm",
            "pipe:1",
        ]

    async def start(self, source: MediaSource, on_fragment: FragmentSink) -> None:
        if not isinstance(source, DeviceMediaSource):
            raise DeviceError(f"FFmpegRecorder cannot record from {type(source).__name__}")
        if not source.active:
            raise DeviceError("media source has been released")
        if self._proc is not None:
            raise DeviceError("recorder is already running")

        cmd = self._build_cmd(source)
        try:
            self._proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise DeviceError(f"could not launch ffmpeg: {e}") from e

        logger.debug(f"[RECORDING] ffmpeg pid={self._proc.pid} cmd={' '.join(cmd)}")
        self._pump_task = asyncio.create_task(self._pump(self._proc, on_fragment))
        self._stderr_task = asyncio.create_task(self._drain_stderr(self._proc))

    async def _pump(self, proc: asyncio.subprocess.Process, on_fragment: FragmentSink) -> None:
        assert proc.stdout is not None
        while True:
            chunk = await proc.stdout.read(self._config.chunk_size)
            if not chunk:
                break
            on_fragment(chunk)

    async def _drain_stderr(self, proc: asyncio.subprocess.Process) -> bytes:
        """Read stderr to EOF while recording, keeping only the last bytes."""
        assert proc.stderr is not None
        tail = b""
        while True:
            chunk = await proc.stderr.read(self._config.stderr_tail_bytes)
            if not chunk:
                return tail
            tail = (tail + chunk)[-self._config.stderr_tail_bytes :]

    async def stop(self) -> None:
        proc = self._proc
        pump = self._pump_task
        stderr_task = self._stderr_task
        self._proc = None
        self._pump_task = None
        self._stderr_task = None
        if proc is None:
            return

        # `q` on stdin makes ffmpeg finalize the container before exiting.
        if proc.stdin is not None and not proc.stdin.is_closing():
            try:
                proc.stdin.write(b"q")
                await proc.stdin.drain()
                proc.stdin.close()
            except (BrokenPipeError, ConnectionResetError):
                logger.debug("[RECORDING] ffmpeg stdin already closed")

        try:
            await asyncio.wait_for(proc.wait(), timeout=self._config.stop_timeout_s)
        except asyncio.TimeoutError:
            logger.warning(f"[RECORDING] ffmpeg did not exit within {self._config.stop_timeout_s:.1f}s; killing")
            proc.kill()
            await proc.wait()

        if pump is not None:
            await pump
        stderr = await stderr_task if stderr_task is not None else b""

        if proc.returncode not in (0, None, 255):
            logger.warning(
                f"[RECORDING] ffmpeg exit={proc.returncode} stderr={stderr.decode(errors='replace').strip() or '<empty>'}"
            )
