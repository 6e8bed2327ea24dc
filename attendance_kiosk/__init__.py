# attendance_kiosk package
"""
Attendance Kiosk - Motion-triggered face recognition attendance.

Structure:
    attendance_kiosk/
    ├── core/                     # Core infrastructure
    │   ├── settings.py           # Configuration
    │   └── camera.py             # Camera management
    ├── data/                     # Data layer
    │   ├── models.py             # StudentImage, Student, AttendanceRecord, ...
    │   ├── roster.py             # Enrolled students (in-memory)
    │   ├── timetable.py          # Timetable CSV + current class lookup
    │   └── attendance_log.py     # Remote log store client
    ├── recognition/              # Face recognition (external API)
    │   ├── gateway.py            # Fan-out / best-match selection
    │   └── gemini.py             # Gemini generateContent matcher
    ├── processing/               # Processing modules
    │   ├── motion.py             # Frame difference + motion gate
    │   ├── attendance.py         # Cooldown, history, orchestrator
    │   └── capture_loop.py       # Ticker thread + dispatch
    ├── web/                      # Web server
    │   ├── server.py             # Flask app (kiosk control, logs)
    │   └── management.py         # Student/timetable management API
    └── main.py                   # Main application
"""

from .core.settings import settings
from .processing import CaptureLoop, MotionGate, RecognitionOrchestrator
from .recognition import RecognitionGateway, GeminiMatcher

__all__ = [
    'settings',
    'CaptureLoop',
    'MotionGate',
    'RecognitionOrchestrator',
    'RecognitionGateway',
    'GeminiMatcher',
]
