"""
Clinic relational store, availability and patient services.
"""

from .repository import ClinicRepository
from .availability import AvailabilityService
from .patient import PatientService
from .notifications import NotificationService

__all__ = [
    "ClinicRepository",
    "AvailabilityService",
    "PatientService",
    "NotificationService",
]
