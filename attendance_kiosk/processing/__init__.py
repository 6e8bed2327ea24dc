# attendance_kiosk/processing/__init__.py
"""
Processing modules - Motion & Recognition flow.

- motion: Frame difference + MotionGate state machine
- attendance: Cooldown, history, recognition orchestrator
- capture_loop: Ticker thread + camera + dispatch
"""

from .motion import GateState, MotionGate, downsample, frame_difference
from .attendance import (
    CooldownTracker,
    RecognitionHistory,
    RecognitionOrchestrator,
)
from .capture_loop import CaptureLoop

__all__ = [
    'GateState',
    'MotionGate',
    'downsample',
    'frame_difference',
    'CooldownTracker',
    'RecognitionHistory',
    'RecognitionOrchestrator',
    'CaptureLoop',
]
