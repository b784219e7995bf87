"""
Domain error taxonomy.

Services raise these instead of HTTP exceptions; the API layer renders
them into the `{ok: false, error: {...}}` envelope. Every concrete error
has a stable `code` that clients (kiosks, scanners) switch on.

    ValidationError  malformed input, caller's fault, no state change
    ConflictError    depends on current state; inspect and retry
    NotFoundError    unknown QR, booking, seat, rod, user
    TemporalError    right seat, wrong day
    DependencyError  side effect failed; logged, never propagated
"""

from fastapi import status


class DomainError(Exception):
    kind = "error"
    code = "ERROR"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Operation failed"

    def __init__(self, message: str | None = None, **context):
        self.message = message or self.default_message
        self.context = context
        super().__init__(self.message)

    def to_dict(self) -> dict:
        payload = {"kind": self.kind, "code": self.code, "message": self.message}
        if self.context:
            payload["details"] = self.context
        return payload


# --- kinds ---------------------------------------------------------------

class ValidationError(DomainError):
    kind = "validation_error"
    code = "VALIDATION_ERROR"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "Invalid input"


class ConflictError(DomainError):
    kind = "conflict"
    code = "CONFLICT"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Request conflicts with current state"


class NotFoundError(DomainError):
    kind = "not_found"
    code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class TemporalError(DomainError):
    kind = "temporal_error"
    code = "TEMPORAL_ERROR"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Not allowed at this time"


class DependencyError(DomainError):
    kind = "dependency_error"
    code = "DEPENDENCY_ERROR"
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "A downstream dependency failed"


# --- validation ------------------------------------------------------------

class InvalidWeight(ValidationError):
    code = "INVALID_WEIGHT"
    default_message = "Weight must be greater than 0"


class InvalidLength(ValidationError):
    code = "INVALID_LENGTH"
    default_message = "Length must be greater than 0"


class SeatOutOfRange(ValidationError):
    code = "SEAT_OUT_OF_RANGE"
    default_message = "Seat number is beyond the capacity of this pond or event"


# --- not found -------------------------------------------------------------

class InvalidQr(NotFoundError):
    code = "INVALID_QR"
    default_message = "Invalid QR code. Seat not found."


class InvalidRod(NotFoundError):
    code = "INVALID_ROD"
    default_message = "Invalid rod QR code. Rod not found."


class SeatNotFound(NotFoundError):
    code = "SEAT_NOT_FOUND"
    default_message = "Seat not found or does not belong to this booking"


class BookingNotFound(NotFoundError):
    code = "BOOKING_NOT_FOUND"
    default_message = "Booking not found"


class UnknownRecipient(NotFoundError):
    code = "UNKNOWN_RECIPIENT"
    default_message = "User with this email not found. They must have an account."


class UserNotFound(NotFoundError):
    code = "USER_NOT_FOUND"
    default_message = "User not found"


class PondNotFound(NotFoundError):
    code = "POND_NOT_FOUND"
    default_message = "Pond not found"


class EventNotFound(NotFoundError):
    code = "EVENT_NOT_FOUND"
    default_message = "Event not found"


class TimeSlotNotFound(NotFoundError):
    code = "TIME_SLOT_NOT_FOUND"
    default_message = "Time slot not found"


class CheckInRecordNotFound(NotFoundError):
    code = "CHECK_IN_NOT_FOUND"
    default_message = "Check-in record not found"


# --- conflicts -------------------------------------------------------------

class CapacityExceeded(ConflictError):
    code = "CAPACITY_EXCEEDED"
    default_message = "Not enough available seats"


class SeatTaken(ConflictError):
    code = "SEAT_TAKEN"
    default_message = "Seat is already held by another booking"


class BookingDisabled(ConflictError):
    code = "BOOKING_DISABLED"
    default_message = "Booking is currently disabled for this pond"


class BookingInactive(ConflictError):
    code = "BOOKING_INACTIVE"
    default_message = "Booking is no longer active"


class BookingAlreadyCancelled(ConflictError):
    code = "BOOKING_ALREADY_CANCELLED"
    default_message = "Booking is already cancelled"


class SeatAlreadyCheckedIn(ConflictError):
    code = "SEAT_ALREADY_CHECKED_IN"
    default_message = "Cannot modify a seat that has been checked in"


class SeatUnassigned(ConflictError):
    code = "SEAT_UNASSIGNED"
    default_message = "This seat has not been assigned to a user yet."


class AlreadyCheckedOut(ConflictError):
    code = "ALREADY_CHECKED_OUT"
    default_message = "Already checked out"


class NotCheckedIn(ConflictError):
    code = "NOT_CHECKED_IN"
    default_message = "User must check in before rod label printing"


class RodAlreadyIssued(ConflictError):
    code = "ROD_ALREADY_ISSUED"
    default_message = "Rod label already printed for this seat"


class RodLabelCollision(ConflictError):
    code = "ROD_LABEL_COLLISION"
    default_message = "Generated rod label is already in use. Please print again."


class RodNotActive(ConflictError):
    code = "ROD_NOT_ACTIVE"
    default_message = "This rod is no longer active. Cannot record catch."


class SeatNotCheckedIn(ConflictError):
    code = "SEAT_NOT_CHECKED_IN"
    default_message = "User must check in before recording catches"


class NoGameConfigured(ConflictError):
    code = "NO_GAME_CONFIGURED"
    default_message = "No game configured for this event"


# --- temporal --------------------------------------------------------------

class WrongDay(TemporalError):
    code = "WRONG_DAY"
    default_message = "Check-in is only available on the event day itself."


class EventPassed(TemporalError):
    code = "EVENT_PASSED"
    default_message = "This event has already passed."
