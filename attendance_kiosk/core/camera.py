# attendance_kiosk/core/camera.py
"""
Camera Manager module.

Mở camera (có retry), đọc frame, encode JPEG cho mỗi lần nhận diện.
Camera là tài nguyên độc quyền: mở 1 lần khi kiosk khởi động,
release khi teardown (không release khi chỉ tạm dừng detection).

Usage:
    from attendance_kiosk.core.camera import CameraManager

    with CameraManager() as camera:
        frame = camera.read()
        jpeg = camera.capture_jpeg()
"""
import cv2
import time
import logging
from typing import Optional, Tuple
from dataclasses import dataclass

import numpy as np

logger = logging.getLogger(__name__)


class CameraError(RuntimeError):
    """Camera không mở được hoặc không đọc được frame."""


@dataclass
class CameraConfig:
    """Cấu hình camera."""
    width: int = 640
    height: int = 480
    buffer_size: int = 1
    warmup_frames: int = 5
    max_retries: int = 3
    retry_delay: float = 2.0
    jpeg_quality: int = 92


class CameraManager:
    """
    Quản lý camera với retry logic.
    """

    def __init__(self, device_id: int = 0, config: Optional[CameraConfig] = None):
        self.device_id = device_id
        self.config = config or CameraConfig()

        self._cap: Optional[cv2.VideoCapture] = None
        self._is_open = False

    def open(self) -> bool:
        """
        Mở camera với retry logic.

        Returns:
            True nếu thành công
        """
        for attempt in range(self.config.max_retries):
            try:
                self._cap = cv2.VideoCapture(self.device_id)

                if self._cap.isOpened():
                    self._configure_camera()
                    self._warmup()
                    self._is_open = True

                    actual_w, actual_h = self.get_resolution()
                    logger.info(f"📹 Camera opened: {actual_w}x{actual_h}")
                    return True

            except cv2.error as e:
                logger.warning(f"Camera error: {e}")

            if attempt < self.config.max_retries - 1:
                logger.warning(
                    f"⚠️ Camera not ready, retrying "
                    f"({attempt + 1}/{self.config.max_retries})..."
                )
                time.sleep(self.config.retry_delay)

        logger.error("❌ Cannot open camera!")
        return False

    def _configure_camera(self):
        if self._cap is None:
            return
        self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.config.width)
        self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.config.height)
        self._cap.set(cv2.CAP_PROP_BUFFERSIZE, self.config.buffer_size)

    def _warmup(self):
        """Đọc vài frame đầu để camera ổn định (auto exposure)."""
        if self._cap is None:
            return
        for _ in range(self.config.warmup_frames):
            self._cap.grab()

    def read(self) -> Optional[np.ndarray]:
        """
        Đọc một frame BGR từ camera.

        Returns:
            Frame (numpy array) hoặc None nếu lỗi
        """
        if not self._is_open or self._cap is None:
            return None

        ret, frame = self._cap.read()
        if not ret:
            logger.warning("Failed to read frame!")
            return None
        return frame

    def capture_jpeg(self) -> bytes:
        """Chụp frame hiện tại ở độ phân giải đầy đủ và encode JPEG."""
        frame = self.read()
        if frame is None:
            raise CameraError("Could not capture a frame from the camera.")
        ok, buffer = cv2.imencode(
            '.jpg', frame, [int(cv2.IMWRITE_JPEG_QUALITY), self.config.jpeg_quality]
        )
        if not ok:
            raise CameraError("JPEG encoding failed.")
        return buffer.tobytes()

    def release(self):
        """Giải phóng camera."""
        if self._cap is not None:
            self._cap.release()
            self._cap = None
        if self._is_open:
            logger.info("📹 Camera released")
        self._is_open = False


    def get_resolution(self) -> Tuple[int, int]:
        if self._cap is None:
            return (0, 0)
        return (
            int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        )

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
        return False
