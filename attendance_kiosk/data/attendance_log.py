# attendance_kiosk/data/attendance_log.py
"""
Client cho log store điểm danh (Firebase Realtime Database qua REST).

Cấu trúc trên store:
    attendance/
        <studentId>/
            <recordId do store sinh>: {studentId, class, status, confidence, timestamp}

- append():   POST attendance/<studentId>.json
- list_all(): GET attendance.json -> flatten -> sort timestamp giảm dần
"""
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

from .models import AttendanceRecord

logger = logging.getLogger(__name__)


class AttendanceLogError(RuntimeError):
    """Ghi hoặc đọc log store thất bại."""


def flatten_records(data: Optional[Dict[str, Dict[str, Dict[str, Any]]]]) -> List[AttendanceRecord]:
    """
    {studentId: {recordId: record}} -> list bản ghi, mới nhất trước.
    """
    if not data:
        return []
    records = [
        AttendanceRecord.from_dict(raw)
        for student_logs in data.values()
        if student_logs
        for raw in student_logs.values()
    ]
    records.sort(key=lambda r: r.timestamp, reverse=True)
    return records


class AttendanceLogClient:
    """Append/list bản ghi điểm danh trên log store."""

    def __init__(
        self,
        base_url: str,
        auth: Optional[str] = None,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None
    ):
        self.base_url = base_url.rstrip('/')
        self.auth = auth
        self.timeout = timeout
        self._session = session or requests.Session()

    def _params(self) -> Dict[str, str]:
        return {'auth': self.auth} if self.auth else {}

    def append(self, record: AttendanceRecord) -> str:
        """
        Ghi một bản ghi dưới attendance/<studentId>.

        Returns:
            ID bản ghi do store sinh ra (có thể rỗng)

        Raises:
            AttendanceLogError: store trả lỗi hoặc không kết nối được
        """
        url = f"{self.base_url}/attendance/{quote(record.student_id, safe='')}.json"
        try:
            response = self._session.post(
                url, json=record.to_dict(), params=self._params(), timeout=self.timeout
            )
        except requests.RequestException as e:
            raise AttendanceLogError(f"Failed to log attendance to Firebase: {e}") from e

        if not response.ok:
            detail = _error_detail(response)
            raise AttendanceLogError(f"Failed to log attendance to Firebase: {detail}")

        record_id = ''
        try:
            record_id = (response.json() or {}).get('name', '')
        except ValueError:
            pass
        logger.info(f"📝 Logged {record.student_id} @ {record.class_name} ({record_id or 'no id'})")
        return record_id

    def list_all(self) -> List[AttendanceRecord]:
        """
        Lấy toàn bộ bản ghi của mọi sinh viên, mới nhất trước.

        Raises:
            AttendanceLogError: không đọc được store
        """
        url = f"{self.base_url}/attendance.json"
        try:
            response = self._session.get(url, params=self._params(), timeout=self.timeout)
        except requests.RequestException as e:
            raise AttendanceLogError(f"Failed to fetch attendance logs from Firebase: {e}") from e

        if not response.ok:
            raise AttendanceLogError("Failed to fetch attendance logs from Firebase.")

        try:
            data = response.json()
        except ValueError as e:
            raise AttendanceLogError("Failed to fetch attendance logs from Firebase.") from e

        try:
            return flatten_records(data)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.error(f"❌ Malformed attendance record in store: {e!r}")
            raise AttendanceLogError("Failed to fetch attendance logs from Firebase.") from e


def _error_detail(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get('error'):
        return str(body['error'])
    return response.reason or f"HTTP {response.status_code}"
