import asyncio

import pytest

from conftest import FakeMediaSource, FakeRecorder, ManualTimers

from live_interview.session.recording import RecordingController, RecordingState


@pytest.fixture
def ticks() -> list[int]:
    return []


@pytest.fixture
def controller(recorder: FakeRecorder, timers: ManualTimers, ticks: list[int]) -> RecordingController:
    return RecordingController(recorder, on_tick=ticks.append, timer_factory=timers)


@pytest.mark.asyncio
async def test_start_without_source_is_a_noop(controller: RecordingController, recorder: FakeRecorder) -> None:
    assert await controller.start(None) is False
    assert controller.state == RecordingState.INACTIVE
    assert recorder.starts == 0


@pytest.mark.asyncio
async def test_start_with_released_source_is_a_noop(controller: RecordingController) -> None:
    source = FakeMediaSource()
    await source.release()
    assert await controller.start(source) is False


@pytest.mark.asyncio
async def test_clip_holds_only_fragments_since_latest_start(
    controller: RecordingController, recorder: FakeRecorder
) -> None:
    source = FakeMediaSource()

    await controller.start(source)
    recorder.emit(b"a1", b"a2")
    first = await controller.stop()
    assert first is not None
    assert first.data == b"a1a2"
    assert first.fragment_count == 2

    await controller.start(source)
    assert controller.clip is None
    recorder.emit(b"b1", b"", b"b2", b"b3")
    recorder.trailing = [b"b4"]
    second = await controller.stop()

    assert second is not None
    assert second.data == b"b1b2b3b4"
    assert second.fragment_count == 4
    assert second.mime_type == "video/webm"
    assert first.data == b"a1a2"


@pytest.mark.asyncio
async def test_late_fragment_from_previous_recording_is_dropped(
    controller: RecordingController, recorder: FakeRecorder
) -> None:
    source = FakeMediaSource()
    await controller.start(source)
    stale_sink = recorder.on_fragment
    recorder.emit(b"old")
    await controller.stop()

    await controller.start(source)
    stale_sink(b"late-old")
    recorder.emit(b"new")
    clip = await controller.stop()

    assert clip is not None
    assert clip.data == b"new"


@pytest.mark.asyncio
async def test_fragment_after_stop_is_not_accumulated(
    controller: RecordingController, recorder: FakeRecorder
) -> None:
    await controller.start(FakeMediaSource())
    recorder.emit(b"x")
    clip = await controller.stop()
    recorder.emit(b"after")

    assert clip is not None
    assert clip.data == b"x"
    assert controller.clip == clip


@pytest.mark.asyncio
async def test_elapsed_ticks_reset_per_recording(
    controller: RecordingController, timers: ManualTimers, ticks: list[int]
) -> None:
    source = FakeMediaSource()
    await controller.start(source)
    timer = timers.latest("elapsed-tick")
    assert timer.interval_s == 1.0
    await timer.fire(5)
    await controller.stop()

    assert controller.elapsed_seconds == 5
    assert timer.cancelled

    await controller.start(source)
    assert controller.elapsed_seconds == 0
    assert ticks == [0, 1, 2, 3, 4, 5, 0]


@pytest.mark.asyncio
async def test_stop_when_inactive_returns_none(controller: RecordingController) -> None:
    assert await controller.stop() is None


@pytest.mark.asyncio
async def test_recorder_start_failure_cleans_up(
    controller: RecordingController, recorder: FakeRecorder, timers: ManualTimers
) -> None:
    recorder.fail_start = True

    assert await controller.start(FakeMediaSource()) is False
    assert controller.state == RecordingState.INACTIVE
    assert timers.latest("elapsed-tick").cancelled


@pytest.mark.asyncio
async def test_abort_discards_fragments(
    controller: RecordingController, recorder: FakeRecorder, timers: ManualTimers
) -> None:
    await controller.start(FakeMediaSource())
    recorder.emit(b"partial")
    await controller.abort()

    assert controller.clip is None
    assert not controller.is_recording
    assert recorder.stops == 1
    assert timers.latest("elapsed-tick").cancelled


@pytest.mark.asyncio
async def test_abort_while_starting_stops_the_recorder(
    controller: RecordingController, recorder: FakeRecorder
) -> None:
    gate = asyncio.get_running_loop().create_future()
    recorder.start_gate = gate
    starting = asyncio.create_task(controller.start(FakeMediaSource()))
    await asyncio.sleep(0)
    assert controller.state == RecordingState.STARTING
    assert await controller.start(FakeMediaSource()) is False

    aborting = asyncio.create_task(controller.abort())
    await asyncio.sleep(0)
    assert recorder.stops == 0

    gate.set_result(None)
    assert await starting is True
    await aborting

    assert recorder.stops == 1
    assert not recorder.running
    assert controller.state == RecordingState.INACTIVE
    assert controller.clip is None


@pytest.mark.asyncio
async def test_stop_while_start_fails_returns_none(
    controller: RecordingController, recorder: FakeRecorder
) -> None:
    gate = asyncio.get_running_loop().create_future()
    recorder.start_gate = gate
    recorder.fail_start = True
    starting = asyncio.create_task(controller.start(FakeMediaSource()))
    await asyncio.sleep(0)

    stopping = asyncio.create_task(controller.stop())
    await asyncio.sleep(0)
    gate.set_result(None)

    assert await starting is False
    assert await stopping is None
    assert recorder.stops == 0
    assert controller.state == RecordingState.INACTIVE
