# attendance_kiosk/core/__init__.py
"""
Core modules - Infrastructure & Configuration.

- settings: Unified configuration
- camera: Camera management
"""

from .settings import settings, Settings
from .camera import CameraManager, CameraConfig, CameraError

__all__ = [
    'settings',
    'Settings',
    'CameraManager',
    'CameraConfig',
    'CameraError',
]
