"""
Data layer - models, roster, timetable và log store client.
"""
from .models import (
    PRESENT,
    StudentImage,
    Student,
    AttendanceRecord,
    RecognitionResult,
)
from .roster import StudentRoster, EnrollmentError
from .timetable import Timetable, TimetableParseError, parse_time_range
from .attendance_log import AttendanceLogClient, AttendanceLogError, flatten_records

__all__ = [
    'PRESENT',
    'StudentImage',
    'Student',
    'AttendanceRecord',
    'RecognitionResult',
    'StudentRoster',
    'EnrollmentError',
    'Timetable',
    'TimetableParseError',
    'parse_time_range',
    'AttendanceLogClient',
    'AttendanceLogError',
    'flatten_records',
]
