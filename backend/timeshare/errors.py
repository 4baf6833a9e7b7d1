"""Engine error taxonomy.

Every error raised by the services derives from :class:`EngineError` and
carries the HTTP status it maps to, so routers never translate domain errors
by hand. ``detail`` is what the caller sees: enough to act on (current
status, conflict counts), never credentials.
"""

from typing import Any


class EngineError(Exception):
    """Base class for all errors surfaced by the transaction engine."""

    status_code: int = 400
    code: str = "engine_error"

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    @property
    def detail(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, **self.context}


class NotFound(EngineError):
    """Entity missing, or not visible to the caller."""

    status_code = 404
    code = "not_found"


class InvalidState(EngineError):
    """Transition attempted from a state that forbids it."""

    status_code = 409
    code = "invalid_state"


class NotAvailable(InvalidState):
    """A week or booking is not in a state that allows it to be offered."""

    code = "not_available"


class Conflict(EngineError):
    """The conflict checker reported an overlap for the range."""

    status_code = 409
    code = "conflict"


class PeakRestricted(EngineError):
    """The date range touches a configured peak period."""

    status_code = 422
    code = "peak_restricted"


class InsufficientBalance(EngineError):
    """A night credit does not hold enough nights."""

    status_code = 422
    code = "insufficient_balance"


class Forbidden(EngineError):
    """The caller has no requester/responder/staff relationship to the entity."""

    status_code = 403
    code = "forbidden"


class ExternalFailure(EngineError):
    """The PMS or the payment gateway failed or timed out."""

    status_code = 502
    code = "external_failure"


class NoActiveStaff(EngineError):
    """The property has no active staff member to arbitrate a swap."""

    status_code = 422
    code = "no_active_staff"


class DuplicateIdempotencyKey(Exception):
    """A booking with the same idempotency key was committed concurrently.

    Internal: the idempotency guard resolves it to the existing booking.
    """

    def __init__(self, idempotency_key: str) -> None:
        super().__init__(f"Duplicate idempotency key {idempotency_key!r}")
        self.idempotency_key = idempotency_key
