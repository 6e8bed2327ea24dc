# attendance_kiosk/data/roster.py
"""
Danh sách sinh viên đã đăng ký (trong bộ nhớ, theo session).

Thread-safe: web server thêm/xóa trong khi worker nhận diện đọc snapshot.
"""
import logging
import os
import threading
from typing import Dict, Iterable, List, Optional

from .models import Student, StudentImage

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = ('.jpg', '.jpeg', '.png')


class EnrollmentError(ValueError):
    """Đăng ký thất bại: thiếu ID, thiếu ảnh hoặc trùng ID."""


class StudentRoster:
    """Tập sinh viên theo ID (ID là duy nhất)."""

    def __init__(self):
        self._students: Dict[str, Student] = {}
        self._lock = threading.Lock()

    def enroll(self, student_id: str, images: Iterable[StudentImage]) -> Student:
        """
        Đăng ký sinh viên mới.

        Raises:
            EnrollmentError: ID rỗng, không có ảnh, hoặc ID đã tồn tại
        """
        student_id = (student_id or '').strip()
        images = tuple(images or ())
        if not student_id or not images:
            raise EnrollmentError("Student ID and at least one image are required.")

        with self._lock:
            if student_id in self._students:
                raise EnrollmentError("A student with this ID already exists.")
            student = Student(id=student_id, images=images)
            self._students[student_id] = student

        logger.info(f"👤 Enrolled {student_id} ({len(images)} images)")
        return student

    def remove(self, student_id: str) -> bool:
        """Xóa sinh viên. Không có thì bỏ qua."""
        with self._lock:
            removed = self._students.pop(student_id, None) is not None
        if removed:
            logger.info(f"🗑️ Removed {student_id}")
        return removed

    def get(self, student_id: str) -> Optional[Student]:
        with self._lock:
            return self._students.get(student_id)

    def students(self) -> List[Student]:
        """Snapshot theo thứ tự đăng ký."""
        with self._lock:
            return list(self._students.values())

    def ids(self) -> List[str]:
        with self._lock:
            return list(self._students)

    def load_directory(self, root: str) -> int:
        """
        Đăng ký từ thư mục: mỗi thư mục con là một sinh viên.

            students/
            ├── 2400102415/
            │   ├── 1.jpg
            │   └── 2.jpg
            └── 2400102416/
                └── 1.png

        Returns:
            Số sinh viên đăng ký thành công
        """
        count = 0
        for entry in sorted(os.listdir(root)):
            student_dir = os.path.join(root, entry)
            if entry.startswith('.') or not os.path.isdir(student_dir):
                continue
            images = [
                StudentImage.from_path(os.path.join(student_dir, name))
                for name in sorted(os.listdir(student_dir))
                if name.lower().endswith(IMAGE_EXTENSIONS)
            ]
            try:
                self.enroll(entry, images)
                count += 1
            except EnrollmentError as e:
                logger.warning(f"⚠️ Skipping {entry}: {e}")
        return count

    def __len__(self) -> int:
        with self._lock:
            return len(self._students)

    def __contains__(self, student_id: object) -> bool:
        with self._lock:
            return student_id in self._students
