# attendance_kiosk/processing/attendance.py
"""
Attendance Logic module.

Một lần nhận diện (capture -> identify -> timetable -> log):
- Single-flight: tại một thời điểm chỉ có 1 lần nhận diện, và lock được giữ
  thêm 2s sau khi xong để giới hạn số lần gọi API khi chuyển động liên tục.
- Cooldown: cùng 1 sinh viên chỉ được ghi log 1 lần trong 10s.
- History: 5 kết quả gần nhất, mới nhất trước.

Usage:
    orchestrator = RecognitionOrchestrator(roster, timetable, gateway, log_client)

    if orchestrator.try_acquire():
        result = orchestrator.process(camera.capture_jpeg)
"""
import logging
import threading
import time
from collections import deque
from datetime import datetime
from typing import Callable, Deque, Dict, List, Optional

from ..data.attendance_log import AttendanceLogClient
from ..data.models import AttendanceRecord, RecognitionResult, StudentImage
from ..data.roster import StudentRoster
from ..data.timetable import Timetable
from ..recognition.gateway import RecognitionGateway

logger = logging.getLogger(__name__)

MSG_NO_MATCH = "No matching student found."
MSG_MARKED = "Attendance marked successfully!"
MSG_ALREADY_MARKED = "Attendance already marked recently."
MSG_NO_CLASS = "Student recognized, but no class is scheduled right now."
MSG_CAMERA_DENIED = "Camera permission denied. Please allow camera access and refresh."


class CooldownTracker:
    """
    Theo dõi cooldown giữa các lần ghi log.
    Tránh ghi log liên tục cùng 1 người trong thời gian ngắn.
    """

    def __init__(self, cooldown_seconds: float = 10.0):
        self.cooldown_seconds = cooldown_seconds
        self._last_logged: Dict[str, float] = {}

    def is_in_cooldown(self, student_id: str, current_time: float) -> bool:
        """Chưa từng ghi, hoặc ghi cách đây hơn cooldown -> False."""
        if student_id not in self._last_logged:
            return False
        return current_time - self._last_logged[student_id] <= self.cooldown_seconds

    def record(self, student_id: str, current_time: float):
        """Chỉ gọi sau khi ghi log thành công."""
        self._last_logged[student_id] = current_time

    def get_remaining_cooldown(self, student_id: str, current_time: float) -> float:
        if student_id not in self._last_logged:
            return 0.0
        elapsed = current_time - self._last_logged[student_id]
        return max(0.0, self.cooldown_seconds - elapsed)


class RecognitionHistory:
    """N kết quả gần nhất, mới nhất trước."""

    def __init__(self, size: int = 5):
        self._items: Deque[RecognitionResult] = deque(maxlen=size)
        self._lock = threading.Lock()

    def push(self, result: RecognitionResult):
        with self._lock:
            self._items.appendleft(result)

    def snapshot(self) -> List[RecognitionResult]:
        with self._lock:
            return list(self._items)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


class RecognitionOrchestrator:
    """
    Điều phối một lần nhận diện: identify -> tra thời khóa biểu -> ghi log.
    """

    def __init__(
        self,
        roster: StudentRoster,
        timetable: Timetable,
        gateway: RecognitionGateway,
        log_client: AttendanceLogClient,
        cooldown: Optional[CooldownTracker] = None,
        history: Optional[RecognitionHistory] = None,
        hold_seconds: float = 2.0,
        clock: Callable[[], float] = time.time
    ):
        """
        Args:
            hold_seconds: Thời gian giữ lock sau mỗi lần nhận diện
            clock: Trả về epoch seconds (inject trong test)
        """
        self.roster = roster
        self.timetable = timetable
        self.gateway = gateway
        self.log_client = log_client
        self.cooldown = cooldown or CooldownTracker()
        self.history = history or RecognitionHistory()
        self.hold_seconds = hold_seconds
        self.clock = clock

        self.last_error: Optional[str] = None
        self._lock = threading.Lock()
        self._in_flight = False
        self._busy_until = 0.0

    # === TIMETABLE ===
    def set_timetable(self, timetable: Timetable):
        """Thay toàn bộ thời khóa biểu."""
        self.timetable = timetable

    def current_class(self) -> Optional[str]:
        return self.timetable.current_class(datetime.fromtimestamp(self.clock()))

    # === SINGLE-FLIGHT ===
    def is_busy(self) -> bool:
        with self._lock:
            return self._in_flight or self.clock() < self._busy_until

    def try_acquire(self) -> bool:
        """Lấy lock. False nếu đang nhận diện hoặc còn trong thời gian giữ."""
        with self._lock:
            if self._in_flight or self.clock() < self._busy_until:
                return False
            self._in_flight = True
            return True

    def _release(self):
        with self._lock:
            self._in_flight = False
            self._busy_until = self.clock() + self.hold_seconds

    # === CYCLE ===
    def capture_and_recognize(self, capture: Callable[[], bytes]) -> Optional[RecognitionResult]:
        """try_acquire() + process(). None nếu đang bận."""
        if not self.try_acquire():
            return None
        return self.process(capture)

    def process(self, capture: Callable[[], bytes]) -> RecognitionResult:
        """
        Chạy một lần nhận diện. Phải gọi sau try_acquire() thành công.

        Args:
            capture: Trả về ảnh JPEG của frame hiện tại
        """
        try:
            result = self._run_cycle(capture)
            self.last_error = None
        except Exception as e:
            logger.exception("Recognition process failed")
            self.last_error = f"An error occurred: {e}"
            result = RecognitionResult(recognized=False, message=self.last_error)
        finally:
            self._release()

        self.history.push(result)
        logger.info(f"{'🟢' if result.recognized else '⚪'} {result.message}"
                    + (f" [{result.student_id}]" if result.student_id else ""))
        return result

    def _run_cycle(self, capture: Callable[[], bytes]) -> RecognitionResult:
        probe = StudentImage(
            name=f"capture-{int(self.clock() * 1000)}.jpg",
            data=capture(),
            mime_type='image/jpeg'
        )

        match = self.gateway.identify(probe, self.roster.students())
        if match is None:
            return RecognitionResult(recognized=False, message=MSG_NO_MATCH)

        now = self.clock()
        class_name = self.timetable.current_class(datetime.fromtimestamp(now))
        if not class_name:
            return RecognitionResult(
                recognized=True,
                student_id=match.student_id,
                confidence=match.confidence,
                message=MSG_NO_CLASS
            )

        if self.cooldown.is_in_cooldown(match.student_id, now):
            remaining = self.cooldown.get_remaining_cooldown(match.student_id, now)
            logger.debug(f"{match.student_id} in cooldown ({remaining:.1f}s left), not logging")
            return RecognitionResult(
                recognized=True,
                student_id=match.student_id,
                confidence=match.confidence,
                class_name=class_name,
                message=MSG_ALREADY_MARKED
            )

        record = AttendanceRecord(
            student_id=match.student_id,
            class_name=class_name,
            confidence=match.confidence,
            timestamp=int(now),
        )
        self.log_client.append(record)
        self.cooldown.record(match.student_id, now)

        return RecognitionResult(
            recognized=True,
            student_id=record.student_id,
            confidence=record.confidence,
            timestamp=record.timestamp,
            class_name=record.class_name,
            message=MSG_MARKED
        )
