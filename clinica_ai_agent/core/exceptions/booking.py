"""
Booking-related exceptions.
"""


class BookingFlowError(Exception):
    """Base exception for booking flow errors."""
    pass


class SlotUnavailableError(BookingFlowError):
    """Exception raised when a booking slot is no longer available."""
    pass


class AppointmentNotFoundError(BookingFlowError):
    """Exception raised when an appointment cannot be located."""
    pass


class BookingPersistenceError(BookingFlowError):
    """Exception raised when the relational store rejects a write."""
    pass
