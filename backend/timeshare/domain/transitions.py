"""Transition tables for swap requests and night-credit requests.

Services never assign a ``status`` directly: they ask these functions for the
next state, which raise :class:`InvalidState` for any combination that is not
listed here. The stored status is left untouched in that case.
"""

import enum

from timeshare.domain.enums import CreditRequestStatus, SwapStatus
from timeshare.errors import InvalidState


class SwapEvent(str, enum.Enum):
    STAFF_APPROVE = "staff_approve"
    STAFF_REJECT = "staff_reject"
    RESPONDER_ACCEPT = "responder_accept"
    RESPONDER_REJECT = "responder_reject"
    REQUESTER_CANCEL = "requester_cancel"
    PAYMENT_CONFIRMED = "payment_confirmed"


_SWAP_SOURCES: dict[SwapEvent, frozenset[SwapStatus]] = {
    SwapEvent.STAFF_APPROVE: frozenset({SwapStatus.PENDING, SwapStatus.MATCHED}),
    SwapEvent.STAFF_REJECT: frozenset({SwapStatus.PENDING, SwapStatus.MATCHED}),
    SwapEvent.RESPONDER_ACCEPT: frozenset(
        {SwapStatus.PENDING, SwapStatus.MATCHED, SwapStatus.AWAITING_PAYMENT}
    ),
    SwapEvent.RESPONDER_REJECT: frozenset(
        {SwapStatus.PENDING, SwapStatus.MATCHED, SwapStatus.AWAITING_PAYMENT}
    ),
    SwapEvent.REQUESTER_CANCEL: frozenset(
        {SwapStatus.PENDING, SwapStatus.MATCHED, SwapStatus.AWAITING_PAYMENT}
    ),
    SwapEvent.PAYMENT_CONFIRMED: frozenset({SwapStatus.AWAITING_PAYMENT}),
}


def next_swap_status(
    current: SwapStatus,
    event: SwapEvent,
    *,
    staff_approved: bool = False,
) -> SwapStatus:
    """Return the status a swap moves to when ``event`` happens in ``current``.

    Responder acceptance is the only event whose target depends on more than
    the current status: a pending swap becomes ``matched`` once a responder
    slot is attached, and a matched swap only advances to
    ``awaiting_payment`` after staff approval has been recorded.

    Raises:
        InvalidState: If the event is not allowed from ``current``.
    """
    allowed = _SWAP_SOURCES[event]
    if current not in allowed:
        raise InvalidState(
            f"Swap cannot handle {event.value} in status {current.value}",
            current_status=current.value,
            allowed_statuses=sorted(s.value for s in allowed),
        )

    if event is SwapEvent.STAFF_APPROVE:
        return SwapStatus.AWAITING_PAYMENT
    if event is SwapEvent.RESPONDER_ACCEPT:
        if current is SwapStatus.PENDING:
            return SwapStatus.MATCHED
        if current is SwapStatus.MATCHED and not staff_approved:
            return SwapStatus.MATCHED
        return SwapStatus.AWAITING_PAYMENT
    if event is SwapEvent.PAYMENT_CONFIRMED:
        return SwapStatus.COMPLETED
    # staff reject, responder reject, requester cancel
    return SwapStatus.CANCELLED


_REQUEST_TRANSITIONS: dict[CreditRequestStatus, frozenset[CreditRequestStatus]] = {
    CreditRequestStatus.PENDING: frozenset(
        {
            CreditRequestStatus.APPROVED,
            CreditRequestStatus.REJECTED,
            CreditRequestStatus.EXPIRED,
        }
    ),
    CreditRequestStatus.APPROVED: frozenset({CreditRequestStatus.COMPLETED}),
}


def ensure_request_transition(
    current: CreditRequestStatus, target: CreditRequestStatus
) -> CreditRequestStatus:
    """Validate a night-credit request transition and return ``target``."""
    if target not in _REQUEST_TRANSITIONS.get(current, frozenset()):
        raise InvalidState(
            f"Night credit request cannot move from {current.value} to {target.value}",
            current_status=current.value,
            requested_status=target.value,
        )
    return target
