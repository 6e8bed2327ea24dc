# attendance_kiosk/core/settings.py
"""
Configuration cho Attendance Kiosk.

Thứ tự ưu tiên: default -> config/config.json -> biến môi trường (secrets)
-> command line (main.apply_arguments).
"""
import os
import json
from dataclasses import dataclass, field
from typing import Optional


# === PATHS ===
BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
CONFIG_PATH = os.path.join(BASE_DIR, 'config', 'config.json')


def _load_json_config(path: str) -> dict:
    """Load config từ JSON file, trả về {} nếu lỗi."""
    if not os.path.exists(path):
        return {}
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except (OSError, ValueError):
        return {}


@dataclass
class Settings:
    """Tất cả các tham số runtime của kiosk."""

    BASE_DIR: str = field(default_factory=lambda: BASE_DIR)

    # === MOTION DETECTION ===
    MOTION_THRESHOLD: float = 5.0        # Trung bình chênh lệch RGB-sum (thang 0-765)
    DOWNSAMPLE_WIDTH: int = 64           # Ảnh nhỏ để so sánh nhanh
    MOTION_INTERVAL_MS: int = 200        # Khoảng cách tối thiểu giữa 2 lần lấy mẫu
    TICK_INTERVAL_MS: int = 33           # Nhịp scheduler (~30 tick/giây)

    # === ATTENDANCE ===
    COOLDOWN_MS: int = 10000             # 10s giữa 2 lần ghi log cùng 1 người
    PROCESSING_HOLD_MS: int = 2000       # Giữ lock 2s sau mỗi lần nhận diện
    HISTORY_SIZE: int = 5

    # === RECOGNITION ===
    MATCH_CONFIDENCE_FLOOR: float = 0.85
    RECOGNITION_TIMEOUT_SECONDS: float = 30.0
    RECOGNITION_MAX_WORKERS: int = 8
    GEMINI_MODEL: str = "gemini-2.5-pro"
    GEMINI_API_BASE: str = "https://generativelanguage.googleapis.com/v1beta"
    GEMINI_REQUEST_TIMEOUT_SECONDS: float = 20.0
    GEMINI_API_KEY: Optional[str] = None

    # === ATTENDANCE LOG STORE ===
    LOG_STORE_URL: str = "https://sest-attendance-default-rtdb.asia-southeast1.firebasedatabase.app"
    LOG_STORE_AUTH: Optional[str] = None
    LOG_STORE_TIMEOUT_SECONDS: float = 10.0

    # === WEB SERVER ===
    ENABLE_WEB_SERVER: bool = True
    WEB_PORT: int = 5000

    # === CAMERA ===
    CAMERA_ID: int = 0
    CAMERA_WIDTH: int = 640
    CAMERA_HEIGHT: int = 480

    # === LOGGING ===
    LOG_FILE: Optional[str] = None

    def __post_init__(self):
        self._load_from_json()
        self._load_from_env()

    def _load_from_json(self):
        """Load settings từ config.json nếu có."""
        config = _load_json_config(CONFIG_PATH)
        for key, value in config.items():
            if hasattr(self, key) and value is not None:
                setattr(self, key, value)

    def _load_from_env(self):
        """Secrets không để trong config.json."""
        api_key = os.environ.get("GEMINI_API_KEY") or os.environ.get("API_KEY")
        if api_key:
            self.GEMINI_API_KEY = api_key
        if os.environ.get("LOG_STORE_URL"):
            self.LOG_STORE_URL = os.environ["LOG_STORE_URL"]
        if os.environ.get("LOG_STORE_AUTH"):
            self.LOG_STORE_AUTH = os.environ["LOG_STORE_AUTH"]

    # === PROPERTY ALIASES (giây) ===
    @property
    def motion_interval(self) -> float:
        return self.MOTION_INTERVAL_MS / 1000.0

    @property
    def tick_interval(self) -> float:
        return self.TICK_INTERVAL_MS / 1000.0

    @property
    def cooldown_seconds(self) -> float:
        return self.COOLDOWN_MS / 1000.0

    @property
    def processing_hold_seconds(self) -> float:
        return self.PROCESSING_HOLD_MS / 1000.0


# === SINGLETON ===
settings = Settings()
