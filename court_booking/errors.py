"""
Domain errors raised by the booking and auth services.

Every error carries a machine-readable ``code`` and the HTTP status the
API layer answers with. None of them is fatal: they are the expected
outcome of malformed or concurrent requests.
"""

from __future__ import annotations


class BookingServiceError(Exception):
    code = "error"
    status_code = 400

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"detail": self.message, "error": self.code}


class NotFoundError(BookingServiceError):
    """A court, booking, or user identifier is unknown."""

    code = "not_found"
    status_code = 404


class ValidationError(BookingServiceError):
    """Malformed date/time, past date, out-of-hours or empty range."""

    code = "validation_error"
    status_code = 400


class ConflictError(BookingServiceError):
    """The requested range overlaps a non-terminal booking, or a unique value is taken."""

    code = "conflict"
    status_code = 409

    def __init__(self, message: str, *, conflicting_booking_id: str | None = None) -> None:
        super().__init__(message)
        self.conflicting_booking_id = conflicting_booking_id

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.conflicting_booking_id is not None:
            data["conflicting_booking_id"] = self.conflicting_booking_id
        return data


class InvalidStateError(BookingServiceError):
    """Illegal lifecycle transition, e.g. cancelling a cancelled booking."""

    code = "invalid_state"
    status_code = 409


class AuthorizationError(BookingServiceError):
    """The actor lacks permission for the target resource."""

    code = "forbidden"
    status_code = 403


class AuthenticationError(BookingServiceError):
    """Bad credentials or an invalid, expired, or revoked session."""

    code = "unauthenticated"
    status_code = 401
