"""
Reading List Manager - FastAPI Backend.
"""

from .main import create_app, main
from .dependencies import (
    Settings,
    get_settings,
    get_service_container,
    get_current_session,
    get_required_session,
    ServiceContainer,
)

__all__ = [
    # Application
    "create_app",
    "main",
    # Dependencies
    "Settings",
    "get_settings",
    "get_service_container",
    "get_current_session",
    "get_required_session",
    "ServiceContainer",
]
