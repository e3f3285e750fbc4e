"""
Configuration management for the Clinica AI Agent system.
"""

from .settings import Settings, get_settings
from .scheduling import SchedulingConfig

__all__ = [
    "Settings",
    "get_settings",
    "SchedulingConfig",
]
