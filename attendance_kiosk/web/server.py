# attendance_kiosk/web/server.py
"""
Web server cho kiosk: điều khiển detection, xem hoạt động gần đây và log.
Truy cập: http://<IP>:5000
"""
import logging
import socket
from dataclasses import dataclass

from flask import Flask, current_app, jsonify

from ..data.attendance_log import AttendanceLogClient, AttendanceLogError
from ..data.roster import StudentRoster
from ..processing.capture_loop import CaptureLoop
from .management import management_bp

logger = logging.getLogger(__name__)


@dataclass
class KioskServices:
    """Các object mà route cần dùng."""
    loop: CaptureLoop
    roster: StudentRoster
    log_client: AttendanceLogClient


def create_app(loop: CaptureLoop, roster: StudentRoster, log_client: AttendanceLogClient) -> Flask:
    app = Flask(__name__)
    app.extensions['attendance_kiosk'] = KioskServices(loop=loop, roster=roster, log_client=log_client)

    @app.route('/health')
    def health():
        return jsonify({'status': 'ok'})

    @app.route('/api/kiosk/status')
    def api_status():
        return jsonify(current_app.extensions['attendance_kiosk'].loop.status())

    @app.route('/api/kiosk/start', methods=['POST'])
    def api_start():
        loop = current_app.extensions['attendance_kiosk'].loop
        if not loop.start_detection():
            return jsonify({'success': False, 'error': 'Camera is not available.'}), 409
        return jsonify({'success': True, 'detecting': True})

    @app.route('/api/kiosk/stop', methods=['POST'])
    def api_stop():
        current_app.extensions['attendance_kiosk'].loop.stop_detection()
        return jsonify({'success': True, 'detecting': False})

    @app.route('/api/attendance')
    def api_attendance():
        """Toàn bộ log điểm danh, mới nhất trước."""
        client = current_app.extensions['attendance_kiosk'].log_client
        try:
            records = client.list_all()
        except AttendanceLogError as e:
            logger.error(f"❌ {e}")
            return jsonify({'success': False, 'error': str(e)}), 502
        return jsonify([r.to_dict() for r in records])

    app.register_blueprint(management_bp)
    return app


def get_local_ip():
    """Lấy địa chỉ IP local của máy"""
    try:
        s = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        s.connect(("8.8.8.8", 80))
        ip = s.getsockname()[0]
        s.close()
        return ip
    except OSError:
        return "localhost"


def run_server(app: Flask, host='0.0.0.0', port=5000):
    """Chạy web server (block)."""
    local_ip = get_local_ip()
    logger.info(f"🌐 Web API: http://{local_ip}:{port} (local: http://localhost:{port})")
    app.run(host=host, port=port, debug=False, threaded=True, use_reloader=False)
