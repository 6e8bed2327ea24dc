# attendance_kiosk/web/management.py
"""
Web Management API - đăng ký/xóa sinh viên và upload thời khóa biểu.

Endpoints:
- GET    /api/students          - Danh sách sinh viên + số ảnh
- POST   /api/students          - Đăng ký (form: student_id, images[])
- DELETE /api/students/<id>     - Xóa sinh viên
- GET    /api/timetable         - Thời khóa biểu hiện tại
- POST   /api/timetable         - Upload CSV (form: file)
"""
import logging

from flask import Blueprint, current_app, jsonify, request

from ..data.models import StudentImage
from ..data.roster import EnrollmentError
from ..data.timetable import Timetable, TimetableParseError

logger = logging.getLogger(__name__)

management_bp = Blueprint('management', __name__)


def _services():
    return current_app.extensions['attendance_kiosk']


@management_bp.route('/api/students', methods=['GET'])
def api_students():
    roster = _services().roster
    return jsonify([
        {'id': s.id, 'image_count': len(s.images)}
        for s in roster.students()
    ])


@management_bp.route('/api/students', methods=['POST'])
def api_enroll():
    """
    POST /api/students

    Form data:
        - student_id: ID sinh viên
        - images: một hoặc nhiều file ảnh

    Response:
        {"success": true, "student": {...}}
        or
        {"success": false, "error": "..."}
    """
    student_id = request.form.get('student_id', '').strip()
    images = [
        StudentImage(
            name=f.filename,
            data=f.read(),
            mime_type=f.mimetype or 'image/jpeg'
        )
        for f in request.files.getlist('images')
        if f and f.filename
    ]

    try:
        student = _services().roster.enroll(student_id, images)
    except EnrollmentError as e:
        return jsonify({'success': False, 'error': str(e)}), 400

    return jsonify({
        'success': True,
        'student': {'id': student.id, 'image_count': len(student.images)}
    }), 201


@management_bp.route('/api/students/<student_id>', methods=['DELETE'])
def api_delete_student(student_id):
    removed = _services().roster.remove(student_id.strip())
    return jsonify({'success': True, 'removed': removed})


@management_bp.route('/api/timetable', methods=['GET'])
def api_timetable():
    return jsonify(_services().loop.orchestrator.timetable.to_dict())


@management_bp.route('/api/timetable', methods=['POST'])
def api_upload_timetable():
    upload = request.files.get('file')
    if upload is None or upload.filename == '':
        return jsonify({'success': False, 'error': 'Error reading the timetable file.'}), 400

    try:
        text = upload.read().decode('utf-8-sig')
    except UnicodeDecodeError:
        return jsonify({'success': False, 'error': 'Error reading the timetable file.'}), 400

    try:
        timetable = Timetable.parse_csv(text)
    except TimetableParseError as e:
        return jsonify({'success': False, 'error': str(e)}), 400

    _services().loop.orchestrator.set_timetable(timetable)
    logger.info(f"📅 Timetable loaded: {len(timetable.days)} days, {len(timetable)} classes")
    return jsonify({'success': True, 'timetable': timetable.to_dict()})
