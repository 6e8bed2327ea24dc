# attendance_kiosk/main.py
"""
Attendance Kiosk - Main Entry Point.

File này chỉ kết nối các module lại với nhau:
- core/: settings, camera
- data/: roster, timetable, log store client
- recognition/: gateway + Gemini matcher
- processing/: motion gate, orchestrator, capture loop
- web/: Flask API

Usage:
    python -m attendance_kiosk.main                         # Run with defaults
    python -m attendance_kiosk.main --students ./students --timetable tt.csv --start
    python -m attendance_kiosk.main --no-web --start        # Headless kiosk
"""
import argparse
import logging
import sys
import threading

from .core import settings, CameraManager, CameraConfig
from .data import (
    AttendanceLogClient,
    StudentRoster,
    Timetable,
    TimetableParseError,
)
from .processing import (
    CaptureLoop,
    CooldownTracker,
    RecognitionHistory,
    RecognitionOrchestrator,
)
from .recognition import GeminiMatcher, RecognitionGateway
from .web import create_app, run_server

logger = logging.getLogger(__name__)


def parse_arguments(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='Attendance Kiosk - motion-triggered face recognition attendance',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m attendance_kiosk.main --students ./students --timetable timetable.csv
  python -m attendance_kiosk.main --no-web --start
        """
    )

    # Data
    parser.add_argument(
        '--students',
        metavar='DIR',
        help='Enroll students from DIR/<student_id>/*.jpg on startup'
    )
    parser.add_argument(
        '--timetable',
        metavar='CSV',
        help='Load timetable CSV on startup'
    )

    # Recognition
    parser.add_argument(
        '--confidence-floor',
        type=float,
        metavar='VALUE',
        help=f'Match confidence floor (default: {settings.MATCH_CONFIDENCE_FLOOR})'
    )
    parser.add_argument(
        '--cooldown',
        type=float,
        metavar='SECONDS',
        help=f'Cooldown between logs of the same student (default: {settings.cooldown_seconds:g}s)'
    )

    # Web server
    parser.add_argument('--no-web', action='store_true', help='Disable web server')
    parser.add_argument(
        '--port', '-p',
        type=int,
        metavar='PORT',
        help=f'Web server port (default: {settings.WEB_PORT})'
    )

    # Camera
    parser.add_argument(
        '--camera', '-c',
        type=int,
        metavar='ID',
        help=f'Camera device ID (default: {settings.CAMERA_ID})'
    )
    parser.add_argument(
        '--resolution', '-r',
        type=str,
        metavar='WxH',
        help=f'Camera resolution (default: {settings.CAMERA_WIDTH}x{settings.CAMERA_HEIGHT})'
    )
    parser.add_argument('--start', action='store_true', help='Start motion detection immediately')

    # Debug
    parser.add_argument('--log-file', metavar='PATH', help='Also write logs to PATH')
    parser.add_argument('--verbose', '-v', action='store_true', help='Verbose logging')

    return parser.parse_args(argv)


def apply_arguments(args):
    """Apply command line arguments to settings."""
    changes = []

    if args.confidence_floor is not None:
        settings.MATCH_CONFIDENCE_FLOOR = args.confidence_floor
        changes.append(f"Confidence floor: {args.confidence_floor}")
    if args.cooldown is not None:
        settings.COOLDOWN_MS = int(args.cooldown * 1000)
        changes.append(f"Cooldown: {args.cooldown:g}s")

    if args.no_web:
        settings.ENABLE_WEB_SERVER = False
        changes.append("Web: disabled")
    if args.port:
        settings.WEB_PORT = args.port
        changes.append(f"Port: {args.port}")

    if args.camera is not None:
        settings.CAMERA_ID = args.camera
        changes.append(f"Camera: {args.camera}")
    if args.resolution:
        try:
            w, h = map(int, args.resolution.lower().split('x'))
            settings.CAMERA_WIDTH = w
            settings.CAMERA_HEIGHT = h
            changes.append(f"Resolution: {w}x{h}")
        except ValueError:
            print(f"⚠️ Invalid resolution format: {args.resolution} (use WxH, e.g., 640x480)")

    if args.log_file:
        settings.LOG_FILE = args.log_file
        changes.append(f"Log file: {args.log_file}")

    return changes


def setup_logging(verbose: bool = False, log_file=None):
    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding='utf-8'))
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=handlers
    )
    # requests/urllib3 quá ồn ở DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def build_kiosk(roster: StudentRoster, timetable: Timetable):
    """Tạo log client, gateway, orchestrator và capture loop từ settings."""
    log_client = AttendanceLogClient(
        settings.LOG_STORE_URL,
        auth=settings.LOG_STORE_AUTH,
        timeout=settings.LOG_STORE_TIMEOUT_SECONDS
    )
    matcher = GeminiMatcher(
        api_key=settings.GEMINI_API_KEY,
        model=settings.GEMINI_MODEL,
        api_base=settings.GEMINI_API_BASE,
        timeout=settings.GEMINI_REQUEST_TIMEOUT_SECONDS
    )
    gateway = RecognitionGateway(
        matcher,
        confidence_floor=settings.MATCH_CONFIDENCE_FLOOR,
        timeout=settings.RECOGNITION_TIMEOUT_SECONDS,
        max_workers=settings.RECOGNITION_MAX_WORKERS
    )
    orchestrator = RecognitionOrchestrator(
        roster,
        timetable,
        gateway,
        log_client,
        cooldown=CooldownTracker(settings.cooldown_seconds),
        history=RecognitionHistory(settings.HISTORY_SIZE),
        hold_seconds=settings.processing_hold_seconds
    )
    camera = CameraManager(
        device_id=settings.CAMERA_ID,
        config=CameraConfig(width=settings.CAMERA_WIDTH, height=settings.CAMERA_HEIGHT)
    )
    loop = CaptureLoop(
        camera,
        orchestrator,
        threshold=settings.MOTION_THRESHOLD,
        downsample_width=settings.DOWNSAMPLE_WIDTH,
        motion_interval=settings.motion_interval,
        tick_interval=settings.tick_interval
    )
    return loop, gateway, log_client


def print_startup_info(roster: StudentRoster, timetable: Timetable, camera_ok: bool):
    """In thông tin khởi động."""
    print("\n" + "=" * 50)
    print("🎓 ATTENDANCE KIOSK")
    print("=" * 50)
    print(f"👥 Roster: {len(roster)} students")
    print(f"📅 Timetable: {len(timetable.days)} days, {len(timetable)} classes")
    print(f"📹 Camera: {'ready' if camera_ok else 'NOT AVAILABLE'}")
    print(f"🎯 Match floor: {settings.MATCH_CONFIDENCE_FLOOR}")
    print(f"⏱️ Cooldown: {settings.cooldown_seconds:g}s")
    if settings.ENABLE_WEB_SERVER:
        print(f"🌐 Web: port {settings.WEB_PORT}")
    print("-" * 50)
    print("⌨️  Ctrl+C để thoát")
    print("=" * 50 + "\n")


def main(argv=None):
    """Main entry point."""

    # === 0. ARGUMENTS & LOGGING ===
    args = parse_arguments(argv)
    arg_changes = apply_arguments(args)
    setup_logging(args.verbose, settings.LOG_FILE)

    if arg_changes:
        logger.info("🔧 Command-line overrides: " + ", ".join(arg_changes))

    if not settings.GEMINI_API_KEY:
        logger.error("❌ GEMINI_API_KEY (or API_KEY) environment variable not set")
        return 1

    # === 1. ROSTER & TIMETABLE ===
    roster = StudentRoster()
    if args.students:
        count = roster.load_directory(args.students)
        logger.info(f"👥 Enrolled {count} students from {args.students}")

    timetable = Timetable()
    if args.timetable:
        try:
            timetable = Timetable.from_file(args.timetable)
        except (OSError, TimetableParseError) as e:
            logger.error(f"❌ Timetable not loaded: {e}")

    # === 2. COMPONENTS ===
    loop, gateway, log_client = build_kiosk(roster, timetable)

    try:
        camera_ok = loop.open()
        print_startup_info(roster, timetable, camera_ok)

        if args.start:
            loop.start_detection()

        # === 3. WEB SERVER (block) hoặc chờ Ctrl+C ===
        if settings.ENABLE_WEB_SERVER:
            app = create_app(loop, roster, log_client)
            run_server(app, port=settings.WEB_PORT)
        else:
            threading.Event().wait()

    except KeyboardInterrupt:
        print("\n🛑 Stopped (Ctrl+C)")

    finally:
        loop.close()
        gateway.close()
        print("👋 Bye!")

    return 0


if __name__ == "__main__":
    sys.exit(main())
