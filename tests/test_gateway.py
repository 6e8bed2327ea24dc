import threading

import pytest
import requests

from attendance_kiosk.data import StudentRoster
from attendance_kiosk.recognition import Comparison, MatcherError, RecognitionGateway

from conftest import FakeMatcher, make_image

PROBE = make_image("capture.jpg")


def roster_of(*ids):
    roster = StudentRoster()
    for sid in ids:
        roster.enroll(sid, [make_image(f"{sid}.jpg")])
    return roster.students()


@pytest.fixture
def make_gateway():
    gateways = []

    def factory(replies, **kwargs):
        gateway = RecognitionGateway(FakeMatcher(replies), **kwargs)
        gateways.append(gateway)
        return gateway

    yield factory
    for gateway in gateways:
        gateway.close()


def test_single_hit_among_many(make_gateway):
    gateway = make_gateway({
        "A": Comparison(False, 0.99),
        "B": Comparison(True, 0.90),
        "C": Comparison(True, 0.80),
        "D": Comparison(False, 0.2),
    })
    match = gateway.identify(PROBE, roster_of("A", "B", "C", "D"))
    assert match.student_id == "B"
    assert match.confidence == 0.90


def test_highest_confidence_wins(make_gateway):
    gateway = make_gateway({"A": Comparison(True, 0.88), "B": Comparison(True, 0.97)})
    assert gateway.identify(PROBE, roster_of("A", "B")).student_id == "B"


def test_tie_goes_to_first_in_roster_order(make_gateway):
    gateway = make_gateway({"A": Comparison(True, 0.9), "B": Comparison(True, 0.9)})
    assert gateway.identify(PROBE, roster_of("B", "A")).student_id == "B"


def test_floor_is_strict(make_gateway):
    gateway = make_gateway({"A": Comparison(True, 0.85)})
    assert gateway.identify(PROBE, roster_of("A")) is None


def test_no_candidates(make_gateway):
    gateway = make_gateway({})
    assert gateway.identify(PROBE, []) is None
    assert gateway.matcher.calls == []


def test_one_call_per_candidate(make_gateway):
    gateway = make_gateway({})
    assert gateway.identify(PROBE, roster_of("A", "B", "C")) is None
    assert sorted(sid for _, sid in gateway.matcher.calls) == ["A", "B", "C"]


@pytest.mark.parametrize("error", [
    MatcherError("Malformed model reply"),
    requests.ConnectionError("connection reset"),
    RuntimeError("boom"),
])
def test_candidate_failure_is_isolated(make_gateway, error):
    gateway = make_gateway({"A": error, "B": Comparison(True, 0.91)})
    match = gateway.identify(PROBE, roster_of("A", "B"))
    assert match.student_id == "B"


def test_custom_floor(make_gateway):
    gateway = make_gateway({"A": Comparison(True, 0.7)}, confidence_floor=0.6)
    assert gateway.identify(PROBE, roster_of("A")).confidence == 0.7


def test_slow_candidates_count_as_no_hit_after_timeout():
    release = threading.Event()

    def matcher(probe, student):
        if student.id == "slow":
            release.wait(5)
            return Comparison(True, 0.99)
        return Comparison(True, 0.9)

    gateway = RecognitionGateway(matcher, timeout=0.2, max_workers=2)
    try:
        match = gateway.identify(PROBE, roster_of("slow", "fast"))
        assert match.student_id == "fast"
    finally:
        release.set()
        gateway.close()


def test_queued_candidates_are_cancelled_at_deadline():
    release = threading.Event()
    called = []

    def matcher(probe, student):
        called.append(student.id)
        if student.id == "slow":
            release.wait(5)
        return Comparison(True, 0.99)

    # 1 worker: "queued" chỉ chạy được sau "slow"
    gateway = RecognitionGateway(matcher, timeout=0.2, max_workers=1)
    try:
        assert gateway.identify(PROBE, roster_of("slow", "queued")) is None
        assert called == ["slow"]
    finally:
        release.set()
        gateway.close()
