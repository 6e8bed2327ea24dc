import numpy as np
import pytest

from attendance_kiosk.processing import GateState, MotionGate, downsample, frame_difference


def solid(value, shape=(36, 64, 3)):
    return np.full(shape, value, dtype=np.uint8)


class Frames:
    """Trả lần lượt từng frame, đếm số lần lấy mẫu."""

    def __init__(self, *frames):
        self.frames = list(frames)
        self.calls = 0

    def __call__(self):
        self.calls += 1
        return self.frames.pop(0) if self.frames else None


@pytest.fixture
def triggers():
    return []


@pytest.fixture
def gate(triggers):
    gate = MotionGate(on_trigger=lambda: triggers.append(1), threshold=5, interval=0.2)
    gate.arm()
    return gate


class TestFrameDifference:
    def test_identical_frames(self):
        frame = np.random.default_rng(0).integers(0, 255, (36, 64, 3), dtype=np.uint8)
        assert frame_difference(frame, frame.copy()) == 0.0

    def test_uniform_brightness_shift(self):
        # +20 trên 3 kênh -> chênh lệch tổng = 60
        assert frame_difference(solid(100), solid(120)) == pytest.approx(60.0)

    def test_alpha_channel_ignored(self):
        a = np.zeros((4, 4, 4), dtype=np.uint8)
        b = a.copy()
        b[..., 3] = 255
        assert frame_difference(a, b) == 0.0

    def test_full_scale(self):
        assert frame_difference(solid(0), solid(255)) == pytest.approx(765.0)


class TestDownsample:
    def test_keeps_aspect_ratio(self):
        small = downsample(solid(10, (480, 640, 3)), 64)
        assert small.shape == (48, 64, 3)

    def test_none(self):
        assert downsample(None) is None


class TestMotionGate:
    def test_idle_when_disarmed(self, triggers):
        gate = MotionGate(on_trigger=lambda: triggers.append(1))
        frames = Frames(solid(0))
        assert gate.tick(0.0, frames) is GateState.IDLE
        assert frames.calls == 0

    def test_first_sample_only_primes(self, gate, triggers):
        assert gate.tick(0.0, Frames(solid(0))) is GateState.PRIMED
        assert triggers == []

    def test_still_scene_does_not_trigger(self, gate, triggers):
        gate.tick(0.0, Frames(solid(50)))
        assert gate.tick(0.3, Frames(solid(50))) is GateState.STILL
        assert gate.last_difference == 0.0
        assert triggers == []

    def test_motion_triggers_and_clears_previous(self, gate, triggers):
        gate.tick(0.0, Frames(solid(50)))
        assert gate.tick(0.3, Frames(solid(150))) is GateState.TRIGGERED
        assert triggers == [1]
        # previous đã bị xóa -> lần sau chỉ prime lại
        assert gate.tick(0.6, Frames(solid(0))) is GateState.PRIMED
        assert triggers == [1]

    def test_small_change_below_threshold(self, gate, triggers):
        gate.tick(0.0, Frames(solid(50)))
        # +1 trên 3 kênh = 3 <= 5
        assert gate.tick(0.3, Frames(solid(51))) is GateState.STILL
        assert triggers == []

    def test_throttle(self, gate):
        gate.tick(0.0, Frames(solid(0)))
        frames = Frames(solid(200))
        assert gate.tick(0.1, frames) is GateState.THROTTLED
        assert gate.tick(0.199, frames) is GateState.THROTTLED
        assert frames.calls == 0
        assert gate.tick(0.2, frames) is GateState.TRIGGERED

    def test_busy_suppresses_sampling(self, triggers):
        busy = [True]
        gate = MotionGate(on_trigger=lambda: triggers.append(1), is_busy=lambda: busy[0])
        gate.arm()
        frames = Frames(solid(0), solid(200))
        assert gate.tick(0.0, frames) is GateState.BUSY
        assert gate.tick(1.0, frames) is GateState.BUSY
        assert frames.calls == 0

        busy[0] = False
        assert gate.tick(2.0, frames) is GateState.PRIMED
        assert gate.tick(2.2, frames) is GateState.TRIGGERED
        assert triggers == [1]

    def test_no_frame(self, gate):
        assert gate.tick(0.0, Frames()) is GateState.NO_FRAME

    def test_resolution_change_reprimes(self, gate, triggers):
        gate.tick(0.0, Frames(solid(0, (36, 64, 3))))
        assert gate.tick(0.3, Frames(solid(255, (48, 64, 3)))) is GateState.PRIMED
        assert triggers == []

    def test_rearm_clears_previous_and_throttle(self, gate, triggers):
        gate.tick(0.0, Frames(solid(0)))
        gate.disarm()
        assert not gate.armed
        gate.arm()
        # không throttle, và frame cũ không được so sánh
        assert gate.tick(0.05, Frames(solid(255))) is GateState.PRIMED
        assert triggers == []
