# attendance_kiosk/data/timetable.py
"""
Thời khóa biểu: ngày trong tuần -> {"HH:MM-HH:MM": tên lớp}.

Format CSV:
    Day,09:00-10:00,10:00-11:00,11:00-12:00
    Monday,Math,Physics,Lunch
    Tuesday,x,Chemistry,Biology

Ô trống, "lunch" hoặc "x" (không phân biệt hoa thường) = không có lớp.

Lưu ý: không kiểm tra các khoảng thời gian chồng nhau. current_class() trả về
khoảng đầu tiên khớp theo thứ tự cột trong file, nên file phải tránh chồng lấn
nếu muốn kết quả xác định.
"""
import csv
import io
import logging
from datetime import datetime
from typing import Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
NO_CLASS_MARKERS = ("lunch", "x")


class TimetableParseError(ValueError):
    """File thời khóa biểu không đọc được hoặc không có lớp nào."""


def _parse_clock(value: str) -> float:
    hours, minutes = value.strip().split(':')
    return int(hours) + int(minutes) / 60


def parse_time_range(slot: str) -> Tuple[float, float]:
    """'09:30-10:15' -> (9.5, 10.25). Raise ValueError nếu sai format."""
    start, end = slot.split('-')
    return _parse_clock(start), _parse_clock(end)


class Timetable:
    """Index thời khóa biểu trong bộ nhớ. Thay thế nguyên khối khi upload file mới."""

    def __init__(self, schedule: Optional[Dict[str, Dict[str, str]]] = None):
        # dict giữ thứ tự chèn -> thứ tự cột trong file
        self._schedule: Dict[str, Dict[str, str]] = {
            day: dict(slots) for day, slots in (schedule or {}).items()
        }

    @classmethod
    def parse_csv(cls, text: str) -> "Timetable":
        """
        Đọc CSV (hàng = ngày, cột = khung giờ).

        Raises:
            TimetableParseError: ít hơn 2 hàng hoặc không có lớp nào
        """
        rows = [row for row in csv.reader(io.StringIO(text.strip())) if row]
        if len(rows) < 2:
            raise TimetableParseError("Failed to parse timetable. Please check the CSV format.")

        headers = [h.strip() for h in rows[0]]
        schedule: Dict[str, Dict[str, str]] = {}

        for row in rows[1:]:
            values = [v.strip() for v in row]
            day = values[0]
            if not day:
                continue
            slots = schedule[day] = {}
            for col in range(1, len(headers)):
                time_slot = headers[col]
                class_name = values[col] if col < len(values) else ''
                if not time_slot or not class_name:
                    continue
                if class_name.lower() in NO_CLASS_MARKERS:
                    continue
                slots[time_slot] = class_name

        if not schedule:
            raise TimetableParseError("Failed to parse timetable. Please check the CSV format.")
        return cls(schedule)

    @classmethod
    def from_file(cls, path: str) -> "Timetable":
        with open(path, 'r', encoding='utf-8-sig') as f:
            return cls.parse_csv(f.read())

    def current_class(self, now: Optional[datetime] = None) -> Optional[str]:
        """Lớp đang diễn ra tại thời điểm now, hoặc None."""
        if now is None:
            now = datetime.now()

        day_schedule = self._schedule.get(WEEKDAYS[now.weekday()])
        if not day_schedule:
            return None

        current_hour = now.hour + now.minute / 60
        for time_slot, class_name in day_schedule.items():
            try:
                start, end = parse_time_range(time_slot)
            except ValueError:
                logger.debug(f"Skipping malformed time slot: {time_slot!r}")
                continue
            if start <= current_hour < end:
                return class_name
        return None

    @property
    def days(self) -> List[str]:
        return list(self._schedule)

    def to_dict(self) -> Dict[str, Dict[str, str]]:
        return {day: dict(slots) for day, slots in self._schedule.items()}

    def __len__(self) -> int:
        """Tổng số (ngày, khung giờ) có lớp."""
        return sum(len(slots) for slots in self._schedule.values())
