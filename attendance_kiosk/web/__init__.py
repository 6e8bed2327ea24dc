"""
Web module - Flask server và management API.
"""
from .server import create_app, run_server, KioskServices
from .management import management_bp

__all__ = [
    'create_app',
    'run_server',
    'KioskServices',
    'management_bp',
]
