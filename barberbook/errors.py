# barberbook/errors.py

"""
Domain exception hierarchy for the booking engine.

Each class carries the HTTP status the API answers with, so routers can let
domain errors propagate and a single handler translates them.
"""


class BookingError(Exception):
    """Base class for all booking-level errors."""

    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class InvalidTimeError(BookingError, ValueError):
    """Raised for malformed or out-of-range time strings and minute offsets."""

    status_code = 422


class InvalidDurationError(BookingError, ValueError):
    """Raised when a requested duration is not a positive number of minutes."""

    status_code = 422


class InvalidBookingError(BookingError, ValueError):
    """Raised when a booking draft is incomplete or references unknown services."""

    status_code = 422


class SlotUnavailableError(BookingError):
    """Raised when the chosen slot was taken (or never offered) at commit time."""

    status_code = 409

    def __init__(self, detail: str = "Slot no longer available, choose another"):
        super().__init__(detail)


class InvalidTransitionError(BookingError):
    """Raised when an event is not allowed from the appointment's current status."""

    status_code = 409


class AppointmentNotFoundError(BookingError):
    status_code = 404

    def __init__(self, appointment_id: int):
        super().__init__(f"Appointment {appointment_id} not found")
        self.appointment_id = appointment_id


class PermissionDeniedError(BookingError):
    status_code = 403


class UnknownDurationError(BookingError):
    """Raised when a stored appointment has no duration and no fallback is configured."""

    status_code = 500


class StoreUnavailableError(BookingError):
    """Raised when the database cannot be reached in time. Safe to retry."""

    status_code = 503
