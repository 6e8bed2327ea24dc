# attendance_kiosk/data/models.py
"""
Các kiểu dữ liệu dùng chung: ảnh sinh viên, sinh viên, bản ghi điểm danh,
kết quả nhận diện.
"""
import base64
import mimetypes
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

PRESENT = "Present"


@dataclass(frozen=True)
class StudentImage:
    """Một ảnh (đăng ký hoặc chụp live). Bất biến sau khi tạo."""
    name: str
    data: bytes
    mime_type: str

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode('ascii')

    @classmethod
    def from_path(cls, path: str) -> "StudentImage":
        mime_type, _ = mimetypes.guess_type(path)
        with open(path, 'rb') as f:
            data = f.read()
        return cls(name=os.path.basename(path), data=data, mime_type=mime_type or 'image/jpeg')


@dataclass(frozen=True)
class Student:
    id: str
    images: Tuple[StudentImage, ...]


@dataclass(frozen=True)
class AttendanceRecord:
    """Một bản ghi điểm danh, gửi lên log store ngay sau khi tạo."""
    student_id: str
    class_name: str
    confidence: float
    timestamp: int
    status: str = PRESENT

    def to_dict(self) -> Dict[str, Any]:
        # Key theo format JSON của log store
        return {
            'studentId': self.student_id,
            'class': self.class_name,
            'status': self.status,
            'confidence': self.confidence,
            'timestamp': self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AttendanceRecord":
        return cls(
            student_id=str(data['studentId']),
            class_name=str(data.get('class', '')),
            status=str(data.get('status', PRESENT)),
            confidence=float(data.get('confidence', 0.0)),
            timestamp=int(data.get('timestamp', 0)),
        )


@dataclass(frozen=True)
class RecognitionResult:
    """Kết quả một lần nhận diện, chỉ để hiển thị (không lưu)."""
    recognized: bool
    message: str
    student_id: Optional[str] = None
    confidence: Optional[float] = None
    timestamp: Optional[int] = None
    class_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {'recognized': self.recognized, 'message': self.message}
        if self.student_id is not None:
            data['studentId'] = self.student_id
        if self.confidence is not None:
            data['confidence'] = self.confidence
        if self.timestamp is not None:
            data['timestamp'] = self.timestamp
        if self.class_name is not None:
            data['className'] = self.class_name
        return data
