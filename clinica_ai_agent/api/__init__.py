"""
API layer for the Clinica AI Agent system.
"""

from .app import create_app
from .dependencies import Services, build_services
from .middleware import LoggingMiddleware

__all__ = [
    "create_app",
    "Services",
    "build_services",
    "LoggingMiddleware",
]
