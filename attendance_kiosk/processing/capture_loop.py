# attendance_kiosk/processing/capture_loop.py
"""
Motion-gated capture loop.

- Ticker thread: mỗi ~33ms chạy MotionGate.tick() (lấy mẫu nhỏ, không block)
- Khi có chuyển động: lấy single-flight lock rồi đẩy việc nhận diện sang
  worker thread (1 worker), ticker tiếp tục chạy
- stop_detection(): dừng ticker ngay, camera vẫn mở
- close(): dừng tất cả và release camera

Usage:
    with CaptureLoop(camera, orchestrator) as loop:
        loop.start_detection()
        ...
"""
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, Optional

import numpy as np

from ..core.camera import CameraManager
from ..data.models import RecognitionResult
from .attendance import MSG_CAMERA_DENIED, RecognitionOrchestrator
from .motion import (
    DEFAULT_DOWNSAMPLE_WIDTH,
    DEFAULT_MOTION_INTERVAL,
    DEFAULT_MOTION_THRESHOLD,
    GateState,
    MotionGate,
    downsample,
)

logger = logging.getLogger(__name__)


class CaptureLoop:
    """Camera + MotionGate + dispatch nhận diện."""

    def __init__(
        self,
        camera: CameraManager,
        orchestrator: RecognitionOrchestrator,
        threshold: float = DEFAULT_MOTION_THRESHOLD,
        downsample_width: int = DEFAULT_DOWNSAMPLE_WIDTH,
        motion_interval: float = DEFAULT_MOTION_INTERVAL,
        tick_interval: float = 0.033,
        clock: Callable[[], float] = time.monotonic
    ):
        self.camera = camera
        self.orchestrator = orchestrator
        self.downsample_width = downsample_width
        self.tick_interval = tick_interval
        self.clock = clock

        self.gate = MotionGate(
            on_trigger=self._dispatch,
            is_busy=orchestrator.is_busy,
            threshold=threshold,
            interval=motion_interval
        )

        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="recognize")
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._control_lock = threading.Lock()
        self._camera_ready = False

    # === LIFECYCLE ===
    def open(self) -> bool:
        """Mở camera. Lỗi được báo 1 lần vào history."""
        self._camera_ready = self.camera.open()
        if not self._camera_ready:
            self.orchestrator.history.push(
                RecognitionResult(recognized=False, message=MSG_CAMERA_DENIED)
            )
        return self._camera_ready

    def close(self):
        """Teardown: dừng detection, dừng worker, release camera."""
        self.stop_detection()
        self._executor.shutdown(wait=False, cancel_futures=True)
        self.camera.release()
        self._camera_ready = False

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    # === DETECTION ON/OFF ===
    @property
    def detecting(self) -> bool:
        return self.gate.armed

    def start_detection(self) -> bool:
        """Bật detection. False nếu camera chưa sẵn sàng."""
        with self._control_lock:
            if not self._camera_ready:
                logger.warning("⚠️ Camera not available, detection not started")
                return False
            if self.gate.armed:
                return True

            self.gate.arm()
            self._stop_event = threading.Event()
            self._thread = threading.Thread(
                target=self._run, args=(self._stop_event,), name="motion-ticker", daemon=True
            )
            self._thread.start()
            logger.info("▶️ Real-time detection started")
            return True

    def stop_detection(self):
        """Tắt detection. Ticker dừng ngay, camera vẫn giữ."""
        with self._control_lock:
            if not self.gate.armed and self._thread is None:
                return
            self.gate.disarm()
            self._stop_event.set()
            thread, self._thread = self._thread, None

        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=2.0)
        logger.info("⏸️ Real-time detection stopped")

    # === TICK ===
    def _run(self, stop_event: threading.Event):
        while not stop_event.wait(self.tick_interval):
            self.tick()

    def tick(self) -> GateState:
        """Một tick của scheduler. Không bao giờ raise."""
        try:
            return self.gate.tick(self.clock(), self._sample)
        except Exception:
            logger.exception("Motion tick failed")
            return GateState.NO_FRAME

    def _sample(self) -> Optional[np.ndarray]:
        return downsample(self.camera.read(), self.downsample_width)

    def _dispatch(self):
        """Được gọi từ MotionGate. Không block ticker."""
        if not self.orchestrator.try_acquire():
            return
        self._executor.submit(self.orchestrator.process, self.camera.capture_jpeg)

    def recognize_now(self) -> Optional[RecognitionResult]:
        """Nhận diện ngay (đồng bộ), bỏ qua motion. None nếu đang bận."""
        return self.orchestrator.capture_and_recognize(self.camera.capture_jpeg)

    # === STATUS ===
    def status(self) -> Dict[str, Any]:
        return {
            'detecting': self.detecting,
            'processing': self.orchestrator.is_busy(),
            'camera_ready': self._camera_ready,
            'current_class': self.orchestrator.current_class(),
            'history': [r.to_dict() for r in self.orchestrator.history.snapshot()],
            'last_error': self.orchestrator.last_error,
        }
