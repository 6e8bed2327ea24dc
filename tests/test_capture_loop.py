import numpy as np
import pytest

from attendance_kiosk.processing import CaptureLoop, GateState
from attendance_kiosk.processing.attendance import MSG_CAMERA_DENIED, MSG_MARKED

from conftest import FakeCamera, FakeClock, wait_for


def solid(value):
    return np.full((480, 640, 3), value, dtype=np.uint8)


@pytest.fixture
def camera():
    return FakeCamera(frame=solid(40))


@pytest.fixture
def ticks():
    return FakeClock(0.0)


@pytest.fixture
def loop(camera, orchestrator, ticks):
    loop = CaptureLoop(camera, orchestrator, tick_interval=10.0, clock=ticks)
    yield loop
    loop.close()


def test_motion_end_to_end(loop, camera, orchestrator, log_client, ticks):
    assert loop.open()
    assert loop.start_detection()

    assert loop.tick() is GateState.PRIMED
    ticks.advance(0.25)
    assert loop.tick() is GateState.STILL

    camera.frame = solid(200)
    ticks.advance(0.25)
    assert loop.tick() is GateState.TRIGGERED

    assert wait_for(lambda: len(orchestrator.history) == 1)
    result = orchestrator.history.snapshot()[0]
    assert result.message == MSG_MARKED
    assert result.student_id == "A"
    assert len(log_client.records) == 1
    assert camera.captures == 1

    # lock được giữ sau khi xong -> tick chỉ báo BUSY
    ticks.advance(0.25)
    assert loop.tick() is GateState.BUSY


def test_camera_unavailable_reported_once(orchestrator):
    loop = CaptureLoop(FakeCamera(available=False), orchestrator)
    try:
        assert loop.open() is False
        assert loop.start_detection() is False
        assert loop.start_detection() is False
        messages = [r.message for r in orchestrator.history.snapshot()]
        assert messages == [MSG_CAMERA_DENIED]
        assert not loop.detecting
    finally:
        loop.close()


def test_stop_keeps_camera_close_releases(loop, camera):
    loop.open()
    loop.start_detection()
    assert loop.detecting

    loop.stop_detection()
    assert not loop.detecting
    assert loop.tick() is GateState.IDLE
    assert camera.opened and not camera.released

    loop.close()
    assert camera.released


def test_restart_does_not_reuse_stale_frame(loop, camera, ticks):
    loop.open()
    loop.start_detection()
    loop.tick()

    loop.stop_detection()
    camera.frame = solid(255)
    loop.start_detection()
    ticks.advance(0.01)
    assert loop.tick() is GateState.PRIMED


def test_ticker_thread_runs(camera, orchestrator):
    loop = CaptureLoop(camera, orchestrator, tick_interval=0.01)
    try:
        loop.open()
        loop.start_detection()
        assert wait_for(lambda: loop.gate.last_difference is not None)
    finally:
        loop.close()


def test_status(loop, orchestrator):
    loop.open()
    status = loop.status()
    assert status['detecting'] is False
    assert status['processing'] is False
    assert status['camera_ready'] is True
    assert status['current_class'] == "Math"
    assert status['history'] == []
    assert status['last_error'] is None


def test_recognize_now(loop, log_client):
    loop.open()
    result = loop.recognize_now()
    assert result.message == MSG_MARKED
    assert loop.recognize_now() is None  # đang giữ lock
