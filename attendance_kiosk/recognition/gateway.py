# attendance_kiosk/recognition/gateway.py
"""
Recognition Gateway - chọn sinh viên khớp nhất với ảnh probe.

Việc so khớp khuôn mặt do một matcher bên ngoài đảm nhận (GeminiMatcher,
hoặc fake trong test). Gateway chỉ:
- gửi 1 lần so sánh cho mỗi sinh viên (chạy song song)
- lọc: match == True và confidence > floor
- chọn confidence cao nhất (bằng nhau -> người đứng trước trong roster)

Lỗi của từng sinh viên chỉ bị coi là "không khớp", không làm hỏng cả lần nhận diện.

Timeout tính cho cả lần identify. So sánh nào chưa xong lúc hết hạn bị coi là
"không khớp", kể cả so sánh còn nằm trong hàng đợi vì roster lớn hơn max_workers
(bị cancel, matcher không được gọi). So sánh đang chạy thì không dừng được,
kết quả của nó bị bỏ qua.
"""
import logging
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from ..data.models import Student, StudentImage

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE_FLOOR = 0.85


@dataclass(frozen=True)
class Comparison:
    """Kết quả so sánh probe với một sinh viên."""
    is_match: bool
    confidence: float


@dataclass(frozen=True)
class Match:
    student_id: str
    confidence: float


# matcher(probe, student) -> Comparison
Matcher = Callable[[StudentImage, Student], Comparison]


class RecognitionGateway:
    """Fan-out so sánh tới matcher, fan-in chọn kết quả tốt nhất."""

    def __init__(
        self,
        matcher: Matcher,
        confidence_floor: float = DEFAULT_CONFIDENCE_FLOOR,
        timeout: Optional[float] = 30.0,
        max_workers: int = 8
    ):
        self.matcher = matcher
        self.confidence_floor = confidence_floor
        self.timeout = timeout
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="recognition"
        )

    def _compare(self, probe: StudentImage, student: Student) -> Optional[Match]:
        try:
            result = self.matcher(probe, student)
        except Exception as e:
            logger.error(f"Error recognizing student {student.id}: {e}")
            return None

        if result.is_match and result.confidence > self.confidence_floor:
            return Match(student_id=student.id, confidence=result.confidence)
        return None

    def identify(self, probe: StudentImage, candidates: Sequence[Student]) -> Optional[Match]:
        """
        Tìm sinh viên khớp với probe.

        Returns:
            Match có confidence cao nhất, hoặc None
        """
        if not candidates:
            return None

        futures = [self._executor.submit(self._compare, probe, s) for s in candidates]
        done, not_done = wait(futures, timeout=self.timeout)

        for future in not_done:
            future.cancel()
        if not_done:
            logger.warning(f"⏱️ {len(not_done)}/{len(futures)} comparisons timed out")

        hits: List[Match] = [f.result() for f in futures if f in done and f.result() is not None]
        if not hits:
            return None

        best = hits[0]
        for hit in hits[1:]:
            if hit.confidence > best.confidence:
                best = hit
        logger.debug(f"{len(hits)} hit(s), best={best.student_id} ({best.confidence:.2f})")
        return best

    def close(self):
        self._executor.shutdown(wait=False, cancel_futures=True)
