import time
from datetime import datetime

import numpy as np
import pytest

from attendance_kiosk.data import AttendanceLogError, StudentImage, StudentRoster, Timetable
from attendance_kiosk.processing import (
    CooldownTracker,
    RecognitionHistory,
    RecognitionOrchestrator,
)
from attendance_kiosk.recognition import Comparison, RecognitionGateway

# 2024-01-01 là thứ Hai
MONDAY_0930 = datetime(2024, 1, 1, 9, 30).timestamp()
MONDAY_1100 = datetime(2024, 1, 1, 11, 0).timestamp()


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FakeMatcher:
    """student_id -> Comparison hoặc Exception."""

    def __init__(self, replies=None):
        self.replies = dict(replies or {})
        self.calls = []

    def __call__(self, probe, student):
        self.calls.append((probe, student.id))
        reply = self.replies.get(student.id, Comparison(is_match=False, confidence=0.1))
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeLogClient:
    def __init__(self, fail=False):
        self.records = []
        self.fail = fail

    def append(self, record):
        if self.fail:
            raise AttendanceLogError("Failed to log attendance to Firebase: Permission denied")
        self.records.append(record)
        return f"-N{len(self.records)}"

    def list_all(self):
        if self.fail:
            raise AttendanceLogError("Failed to fetch attendance logs from Firebase.")
        return sorted(self.records, key=lambda r: r.timestamp, reverse=True)


class FakeCamera:
    def __init__(self, available=True, frame=None):
        self.available = available
        self.frame = frame if frame is not None else np.zeros((48, 64, 3), dtype=np.uint8)
        self.opened = False
        self.released = False
        self.captures = 0

    def open(self):
        self.opened = self.available
        return self.available

    def read(self):
        return self.frame if self.opened else None

    def capture_jpeg(self):
        self.captures += 1
        return b'\xff\xd8fake-jpeg\xff\xd9'

    def release(self):
        self.opened = False
        self.released = True


def make_image(name='1.jpg'):
    return StudentImage(name=name, data=b'\xff\xd8' + name.encode(), mime_type='image/jpeg')


def wait_for(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture
def roster():
    roster = StudentRoster()
    roster.enroll("A", [make_image("a.jpg")])
    return roster


@pytest.fixture
def timetable():
    return Timetable({"Monday": {"09:00-10:00": "Math"}})


@pytest.fixture
def matcher():
    return FakeMatcher({"A": Comparison(is_match=True, confidence=0.92)})


@pytest.fixture
def gateway(matcher):
    gateway = RecognitionGateway(matcher, timeout=5.0, max_workers=4)
    yield gateway
    gateway.close()


@pytest.fixture
def log_client():
    return FakeLogClient()


@pytest.fixture
def clock():
    return FakeClock(MONDAY_0930)


@pytest.fixture
def orchestrator(roster, timetable, gateway, log_client, clock):
    return RecognitionOrchestrator(
        roster,
        timetable,
        gateway,
        log_client,
        cooldown=CooldownTracker(10.0),
        history=RecognitionHistory(5),
        hold_seconds=2.0,
        clock=clock
    )
