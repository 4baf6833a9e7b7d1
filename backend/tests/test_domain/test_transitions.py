"""Tests for the swap and night-credit request transition tables."""

import pytest

from timeshare.domain.enums import CreditRequestStatus, SwapStatus
from timeshare.domain.transitions import SwapEvent, ensure_request_transition, next_swap_status
from timeshare.errors import InvalidState


class TestSwapTransitions:
    """Legal moves of the swap state machine."""

    @pytest.mark.parametrize("current", [SwapStatus.PENDING, SwapStatus.MATCHED])
    def test_staff_approve_moves_to_awaiting_payment(self, current):
        assert next_swap_status(current, SwapEvent.STAFF_APPROVE) is SwapStatus.AWAITING_PAYMENT

    def test_accept_on_pending_matches(self):
        assert next_swap_status(SwapStatus.PENDING, SwapEvent.RESPONDER_ACCEPT) is SwapStatus.MATCHED

    def test_accept_on_matched_waits_for_staff(self):
        result = next_swap_status(SwapStatus.MATCHED, SwapEvent.RESPONDER_ACCEPT, staff_approved=False)
        assert result is SwapStatus.MATCHED

    def test_accept_on_matched_after_approval(self):
        result = next_swap_status(SwapStatus.MATCHED, SwapEvent.RESPONDER_ACCEPT, staff_approved=True)
        assert result is SwapStatus.AWAITING_PAYMENT

    def test_payment_completes(self):
        assert next_swap_status(SwapStatus.AWAITING_PAYMENT, SwapEvent.PAYMENT_CONFIRMED) is SwapStatus.COMPLETED

    @pytest.mark.parametrize(
        "event",
        [SwapEvent.STAFF_REJECT, SwapEvent.RESPONDER_REJECT, SwapEvent.REQUESTER_CANCEL],
    )
    def test_rejections_cancel(self, event):
        assert next_swap_status(SwapStatus.PENDING, event) is SwapStatus.CANCELLED

    @pytest.mark.parametrize("current", [SwapStatus.COMPLETED, SwapStatus.CANCELLED])
    @pytest.mark.parametrize("event", list(SwapEvent))
    def test_terminal_states_accept_nothing(self, current, event):
        with pytest.raises(InvalidState) as exc_info:
            next_swap_status(current, event)
        assert exc_info.value.context["current_status"] == current.value

    def test_staff_cannot_approve_twice(self):
        with pytest.raises(InvalidState):
            next_swap_status(SwapStatus.AWAITING_PAYMENT, SwapEvent.STAFF_APPROVE)

    def test_payment_requires_awaiting_payment(self):
        with pytest.raises(InvalidState):
            next_swap_status(SwapStatus.MATCHED, SwapEvent.PAYMENT_CONFIRMED)


class TestRequestTransitions:
    """Night-credit request lifecycle."""

    @pytest.mark.parametrize(
        "target",
        [CreditRequestStatus.APPROVED, CreditRequestStatus.REJECTED, CreditRequestStatus.EXPIRED],
    )
    def test_pending_moves(self, target):
        assert ensure_request_transition(CreditRequestStatus.PENDING, target) is target

    def test_approved_completes(self):
        result = ensure_request_transition(CreditRequestStatus.APPROVED, CreditRequestStatus.COMPLETED)
        assert result is CreditRequestStatus.COMPLETED

    def test_pending_cannot_complete(self):
        with pytest.raises(InvalidState):
            ensure_request_transition(CreditRequestStatus.PENDING, CreditRequestStatus.COMPLETED)

    def test_approved_cannot_be_approved_again(self):
        with pytest.raises(InvalidState):
            ensure_request_transition(CreditRequestStatus.APPROVED, CreditRequestStatus.APPROVED)

    @pytest.mark.parametrize(
        "current",
        [CreditRequestStatus.REJECTED, CreditRequestStatus.EXPIRED, CreditRequestStatus.COMPLETED],
    )
    def test_terminal_requests_are_final(self, current):
        with pytest.raises(InvalidState):
            ensure_request_transition(current, CreditRequestStatus.APPROVED)
