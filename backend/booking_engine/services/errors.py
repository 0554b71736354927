"""
Typed scheduling errors.

Every failure a caller has to branch on is a SchedulingError subclass with a
stable `code`. The API layer renders them as typed JSON results
({"error": code, "detail": message, "retryable": bool}); anything else is an
infrastructure fault and surfaces as a plain 500.
"""

from typing import Optional


class SchedulingError(Exception):
    code = "scheduling_error"
    status_code = 400
    retryable = False
    default_message = "Scheduling request failed"

    def __init__(self, message: Optional[str] = None, **extra):
        self.message = message or self.default_message
        self.extra = extra
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {
            "error": self.code,
            "detail": self.message,
            "retryable": self.retryable,
            **self.extra,
        }


class SlotNoLongerAvailable(SchedulingError):
    """The slot was taken (or became past/blocked) before the commit."""
    code = "slot_no_longer_available"
    status_code = 409
    retryable = True
    default_message = "That time was just taken, please choose another."


class ReservationTimeout(SchedulingError):
    """The (provider, date) unit of work could not be acquired in time."""
    code = "reservation_timeout"
    status_code = 503
    retryable = True
    default_message = "The schedule is busy right now, please try again."


class IllegalTransition(SchedulingError):
    code = "illegal_transition"
    status_code = 409
    default_message = "This status change is not allowed"


class Forbidden(SchedulingError):
    code = "forbidden"
    status_code = 403
    default_message = "You are not allowed to modify this appointment"


class UpstreamPaymentFailure(SchedulingError):
    code = "upstream_payment_failure"
    status_code = 502
    retryable = True
    default_message = "The payment provider could not process the request"


class ValidationError(SchedulingError):
    code = "validation_error"
    status_code = 422
    default_message = "Invalid request"


class NotFound(SchedulingError):
    code = "not_found"
    status_code = 404
    default_message = "Not found"
