import asyncio

import pytest

from live_interview.api.gateway import NetworkError
from live_interview.config import Settings
from live_interview.media.capture import CaptureSource, DeviceError, MediaSource
from live_interview.media.player import AudioPlayer, PlaybackError
from live_interview.media.recorder import Recorder


class FakeMediaSource(MediaSource):
    def __init__(self) -> None:
        self._active = True
        self.released = 0

    @property
    def active(self) -> bool:
        return self._active

    async def release(self) -> None:
        self._active = False
        self.released += 1


class FakeCapture(CaptureSource):
    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.calls = 0
        self.source = FakeMediaSource()

    async def acquire(self) -> MediaSource:
        self.calls += 1
        if self.fail:
            raise DeviceError("permission denied")
        return self.source


class FakeRecorder(Recorder):
    """Delivers fragments only when the test says so."""

    def __init__(self) -> None:
        self.on_fragment = None
        self.running = False
        self.starts = 0
        self.stops = 0
        self.fail_start = False
        self.trailing: list[bytes] = []
        self.start_gate: asyncio.Future | None = None

    async def start(self, source, on_fragment) -> None:
        if self.start_gate is not None:
            await self.start_gate
        if self.fail_start:
            raise DeviceError("encoder unavailable")
        self.starts += 1
        self.running = True
        self.on_fragment = on_fragment

    def emit(self, *chunks: bytes) -> None:
        assert self.on_fragment is not None
        for chunk in chunks:
            self.on_fragment(chunk)

    async def stop(self) -> None:
        self.stops += 1
        for chunk in self.trailing:
            self.on_fragment(chunk)
        self.trailing = []
        self.running = False


class FakePlayer(AudioPlayer):
    """Playback lasts until finish() or fail() is called."""

    def __init__(self) -> None:
        self.played: list[bytes] = []
        self.stopped = 0
        self.fail_on_start = False
        self._done: asyncio.Future | None = None

    async def play(self, audio: bytes) -> None:
        if self.fail_on_start:
            raise PlaybackError("autoplay blocked")
        self.played.append(audio)
        self._done = asyncio.get_running_loop().create_future()
        await self._done

    def finish(self) -> None:
        assert self._done is not None
        self._done.set_result(None)

    def fail(self) -> None:
        assert self._done is not None
        self._done.set_exception(PlaybackError("device lost"))

    def stop(self) -> None:
        self.stopped += 1


class FakeGateway:
    """Records calls; poll results are consumed in order (an Exception is raised)."""

    def __init__(self) -> None:
        self.poll_results: list = []
        self.audio = b"RIFF-fake-audio"
        self.upload_error: Exception | None = None
        self.check_error: Exception | None = None
        self.upload_gate: asyncio.Future | None = None
        self.calls: list[tuple] = []
        self.closed = False

    async def poll_ready(self) -> bool:
        self.calls.append(("poll",))
        result = self.poll_results.pop(0) if self.poll_results else False
        if isinstance(result, Exception):
            raise result
        return result is True

    async def fetch_audio(self, path: str | None = None) -> bytes:
        self.calls.append(("audio", path))
        return self.audio

    async def upload_clip(self, clip, filename: str | None = None) -> None:
        self.calls.append(("upload", clip.data, filename))
        if self.upload_gate is not None:
            await self.upload_gate
        if self.upload_error is not None:
            raise self.upload_error

    async def check(self, uploaded_filename: str) -> None:
        self.calls.append(("check", uploaded_filename))
        if self.check_error is not None:
            raise self.check_error

    async def close(self) -> None:
        self.closed = True

    def called(self, name: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == name]


class ManualTimer:
    def __init__(self, interval_s: float, callback, name: str) -> None:
        self.interval_s = interval_s
        self.callback = callback
        self.name = name
        self.started = False
        self.cancelled = False

    @property
    def active(self) -> bool:
        return self.started and not self.cancelled

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    async def fire(self, times: int = 1) -> None:
        for _ in range(times):
            assert self.active, f"{self.name} fired while inactive"
            result = self.callback()
            if asyncio.iscoroutine(result):
                await result


class ManualTimers:
    """Timer factory that keeps every timer it built, newest last."""

    def __init__(self) -> None:
        self.built: list[ManualTimer] = []

    def __call__(self, interval_s: float, callback, name: str) -> ManualTimer:
        timer = ManualTimer(interval_s, callback, name)
        self.built.append(timer)
        return timer

    def latest(self, name: str) -> ManualTimer:
        return [t for t in self.built if t.name == name][-1]


def network_error(status: int = 500) -> NetworkError:
    return NetworkError(f"returned {status}", status_code=status)


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture
def timers() -> ManualTimers:
    return ManualTimers()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def recorder() -> FakeRecorder:
    return FakeRecorder()


@pytest.fixture
def player() -> FakePlayer:
    return FakePlayer()
