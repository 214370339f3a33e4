"""
Typed booking outcomes

Every failure the core can report is one of these classes. The HTTP layer maps
them to status codes through ``status_code`` and to a stable machine-readable
``code``; the message is safe to show to the caller.
"""

from typing import Optional


class BookingError(Exception):
    """Base class for all typed outcomes of the booking core"""

    status_code = 400
    code = "booking_error"
    default_message = "Booking request failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.code, "detail": self.message}


class ValidationError(BookingError):
    code = "validation_error"
    default_message = "Invalid request"


class SlotUnavailable(ValidationError):
    code = "slot_unavailable"
    default_message = "The requested time is not an available slot"


class InvalidStatusTransition(ValidationError):
    code = "invalid_status_transition"
    default_message = "Invalid status transition"


class NotFoundError(BookingError):
    status_code = 404
    code = "not_found"
    default_message = "Not found"


class ConflictError(BookingError):
    status_code = 409
    code = "conflict"
    default_message = "Conflicting resource"


class SlotAlreadyBooked(ConflictError):
    status_code = 400
    code = "slot_already_booked"
    default_message = "This slot has already been booked"


class OverlappingSchedule(ConflictError):
    code = "overlapping_schedule"
    default_message = "Schedule overlaps an existing schedule for the same day"


class DuplicateException(ConflictError):
    code = "duplicate_exception"
    default_message = "An exception already exists for this date"


class AuthorizationError(BookingError):
    status_code = 403
    code = "forbidden"
    default_message = "Not allowed"


class Unauthorized(AuthorizationError):
    status_code = 401
    code = "unauthorized"
    default_message = "Not authenticated"


class InvalidOrExpiredToken(AuthorizationError):
    status_code = 400
    code = "invalid_or_expired_token"
    default_message = "Invalid or expired token"


class TransientStoreError(BookingError):
    """Connection loss or lock timeout. Safe for the caller to retry."""

    status_code = 503
    code = "temporarily_unavailable"
    default_message = "Service temporarily unavailable, please retry"
