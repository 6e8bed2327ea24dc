# attendance_kiosk/processing/motion.py
"""
Motion detection module.

Phát hiện chuyển động bằng cách so sánh 2 frame nhỏ liên tiếp:
- Resize frame về chiều rộng 64px (giữ tỉ lệ)
- Chênh lệch mỗi pixel = |(R1+G1+B1) - (R2+G2+B2)|  (thang 0-765)
- Trung bình > threshold -> có chuyển động -> kích hoạt nhận diện

MotionGate là state machine chạy mỗi tick của scheduler:

    IDLE       chưa bật detection, không làm gì
    BUSY       đang nhận diện (hoặc trong thời gian giữ lock), bỏ qua
    THROTTLED  chưa đủ 200ms từ lần lấy mẫu trước, bỏ qua
    NO_FRAME   camera không trả frame
    PRIMED     frame đầu tiên sau khi bật, chỉ lưu lại
    STILL      không có chuyển động, lưu frame làm "previous"
    TRIGGERED  có chuyển động, gọi on_trigger() và xóa "previous"

Usage:
    gate = MotionGate(on_trigger=dispatch, is_busy=orchestrator.is_busy)
    gate.arm(time.monotonic())
    while running:
        gate.tick(time.monotonic(), lambda: downsample(camera.read()))
"""
import logging
from enum import Enum
from typing import Callable, Optional

import cv2
import numpy as np

logger = logging.getLogger(__name__)

DEFAULT_MOTION_THRESHOLD = 5.0
DEFAULT_DOWNSAMPLE_WIDTH = 64
DEFAULT_MOTION_INTERVAL = 0.2


class GateState(Enum):
    """Trạng thái của một tick."""
    IDLE = "idle"
    BUSY = "busy"
    THROTTLED = "throttled"
    NO_FRAME = "no_frame"
    PRIMED = "primed"
    STILL = "still"
    TRIGGERED = "triggered"


def downsample(frame: Optional[np.ndarray], width: int = DEFAULT_DOWNSAMPLE_WIDTH) -> Optional[np.ndarray]:
    """Resize frame về chiều rộng `width`, giữ tỉ lệ khung hình."""
    if frame is None or frame.size == 0:
        return None
    h, w = frame.shape[:2]
    height = max(1, int(round(width * h / w)))
    return cv2.resize(frame, (width, height), interpolation=cv2.INTER_AREA)


def frame_difference(previous: np.ndarray, current: np.ndarray) -> float:
    """
    Trung bình |tổng RGB cũ - tổng RGB mới| trên mọi pixel.

    Chỉ dùng 3 kênh đầu (bỏ alpha nếu có). Thang giá trị 0-765.
    """
    prev_sum = previous[..., :3].astype(np.int32).sum(axis=-1)
    curr_sum = current[..., :3].astype(np.int32).sum(axis=-1)
    return float(np.abs(prev_sum - curr_sum).mean())


class MotionGate:
    """
    State machine lấy mẫu chuyển động, có throttle và busy-gate.
    """

    def __init__(
        self,
        on_trigger: Callable[[], None],
        is_busy: Callable[[], bool] = lambda: False,
        threshold: float = DEFAULT_MOTION_THRESHOLD,
        interval: float = DEFAULT_MOTION_INTERVAL
    ):
        """
        Args:
            on_trigger: Gọi khi phát hiện chuyển động (không được block)
            is_busy: True khi đang có một lần nhận diện
            threshold: Ngưỡng chênh lệch trung bình
            interval: Khoảng cách tối thiểu giữa 2 lần lấy mẫu (giây)
        """
        self.on_trigger = on_trigger
        self.is_busy = is_busy
        self.threshold = threshold
        self.interval = interval

        self._armed = False
        self._last_check: Optional[float] = None
        self._previous: Optional[np.ndarray] = None
        self.last_difference: Optional[float] = None

    @property
    def armed(self) -> bool:
        return self._armed

    def _reset(self):
        self._last_check = None
        self._previous = None
        self.last_difference = None

    def arm(self):
        """Bật detection. Reset throttle và frame cũ."""
        self._reset()
        self._armed = True

    def disarm(self):
        """Tắt detection. Frame cũ không được dùng lại sau khi bật lại."""
        self._armed = False
        self._reset()

    def tick(self, now: float, sample: Callable[[], Optional[np.ndarray]]) -> GateState:
        """
        Chạy một tick.

        Args:
            now: Thời điểm hiện tại (giây, monotonic)
            sample: Trả về frame đã downsample, hoặc None

        Returns:
            GateState của tick này
        """
        if not self._armed:
            return GateState.IDLE

        if self.is_busy():
            return GateState.BUSY

        if self._last_check is not None and now - self._last_check < self.interval:
            return GateState.THROTTLED
        self._last_check = now

        current = sample()
        if current is None:
            return GateState.NO_FRAME

        previous = self._previous
        if previous is None or previous.shape != current.shape:
            self._previous = current
            return GateState.PRIMED

        self.last_difference = frame_difference(previous, current)
        if self.last_difference > self.threshold:
            logger.debug(f"Motion detected (avg diff {self.last_difference:.1f})")
            # Xóa previous để frame kế tiếp không kích hoạt lại ngay
            self._previous = None
            self.on_trigger()
            return GateState.TRIGGERED

        self._previous = current
        return GateState.STILL
