"""Swap state machine.

Every transition opens one store transaction, re-reads the swap under lock,
asks :func:`next_swap_status` for the target state and only then writes.
Completion exchanges the owners of both slots in that same transaction.
"""

import logging
import uuid
from decimal import Decimal

from timeshare.billing.gateway import PaymentGateway, PaymentIntent
from timeshare.config import settings
from timeshare.domain.dates import utcnow
from timeshare.domain.enums import (
    IN_FLIGHT_SWAP_STATUSES,
    ResponderAcceptance,
    StaffApprovalStatus,
    SwapPaymentStatus,
    SwapStatus,
    UserRole,
    WeekStatus,
)
from timeshare.domain.sources import SwapSource
from timeshare.domain.transitions import SwapEvent, next_swap_status
from timeshare.errors import (
    Forbidden,
    InvalidState,
    NoActiveStaff,
    NotFound,
    PeakRestricted,
)
from timeshare.models import SwapRequest, User, Week
from timeshare.repositories.base import Store, Transaction
from timeshare.services.conflicts import ensure_available
from timeshare.services.external import call_external
from timeshare.services.peak_calendar import PeakCalendar
from timeshare.services.slots import SwapSlot, resolve_source

logger = logging.getLogger(__name__)


async def ensure_arbiter(tx: Transaction, staff_id: uuid.UUID, property_id: uuid.UUID) -> User:
    """Return the user if they may arbitrate for ``property_id``.

    Admins arbitrate every property; staff only the one they are assigned to.
    """
    user = await tx.get_user(staff_id)
    if user is None or not user.is_active:
        raise Forbidden("Only active staff can review requests")
    if user.role == UserRole.ADMIN:
        return user
    if user.role == UserRole.STAFF and user.property_id == property_id:
        return user
    raise Forbidden(
        "Staff member is not assigned to this property",
        property_id=str(property_id),
    )


class SwapService:
    def __init__(
        self,
        store: Store,
        peak_calendar: PeakCalendar,
        payments: PaymentGateway,
        *,
        swap_fee: Decimal | None = None,
        currency: str | None = None,
        payment_timeout: float | None = None,
    ) -> None:
        self.store = store
        self.peak_calendar = peak_calendar
        self.payments = payments
        self.swap_fee = settings.swap_fee if swap_fee is None else swap_fee
        self.currency = currency or settings.payment_currency
        self.payment_timeout = payment_timeout or settings.payment_timeout_seconds

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _lock_swap(self, tx: Transaction, swap_id: uuid.UUID) -> SwapRequest:
        swap = await tx.get_swap(swap_id, for_update=True)
        if swap is None:
            raise NotFound("Swap request not found", swap_id=str(swap_id))
        return swap

    def _ensure_outside_peak(self, slot: SwapSlot) -> None:
        if self.peak_calendar.overlaps_peak(slot.start, slot.end):
            raise PeakRestricted(
                "Swaps are not allowed during peak periods",
                source_type=slot.source.type.value,
                source_id=str(slot.source.id),
                start_date=slot.start.isoformat(),
                end_date=slot.end.isoformat(),
            )

    async def _ensure_not_committed(
        self, tx: Transaction, source: SwapSource, exclude_swap_id: uuid.UUID | None = None
    ) -> None:
        active = await tx.list_swaps_referencing([source], statuses=IN_FLIGHT_SWAP_STATUSES)
        if any(s.id != exclude_swap_id for s in active):
            raise InvalidState(
                f"{source.type.value.capitalize()} is already part of an active swap",
                source_type=source.type.value,
                source_id=str(source.id),
            )

    async def _validate_responder(
        self,
        tx: Transaction,
        requester_slot: SwapSlot,
        source: SwapSource,
        requester_id: uuid.UUID,
        *,
        swap_id: uuid.UUID | None = None,
    ) -> SwapSlot:
        slot = await resolve_source(tx, source, for_update=True)
        if slot.owner_id == requester_id:
            raise InvalidState("Cannot swap with your own slot", source_id=str(source.id))
        if slot.accommodation_type != requester_slot.accommodation_type:
            raise InvalidState(
                "Accommodation types do not match",
                requester_accommodation_type=requester_slot.accommodation_type,
                responder_accommodation_type=slot.accommodation_type,
            )
        slot.ensure_offerable()
        self._ensure_outside_peak(slot)
        await self._ensure_not_committed(tx, source, exclude_swap_id=swap_id)
        await self._ensure_slot_free(tx, slot, requester_slot, swap_id=swap_id)
        return slot

    async def _ensure_slot_free(
        self,
        tx: Transaction,
        slot: SwapSlot,
        other: SwapSlot,
        *,
        swap_id: uuid.UUID | None = None,
    ) -> None:
        await ensure_available(
            tx,
            slot.property_id,
            slot.start,
            slot.end,
            exclude_week_ids=slot.week_ids() + other.week_ids(),
            exclude_booking_ids=slot.booking_ids() + other.booking_ids(),
            exclude_swap_ids=[swap_id] if swap_id is not None else [],
        )

    # ------------------------------------------------------------------
    # Creation and reads
    # ------------------------------------------------------------------

    async def create_swap(
        self,
        requester_id: uuid.UUID,
        requester_source: SwapSource,
        responder_source: SwapSource | None = None,
        *,
        notes: str | None = None,
    ) -> SwapRequest:
        """Open a swap for one of the requester's slots.

        With ``responder_source`` the swap starts ``matched``; otherwise it
        waits ``pending`` for a responder. Nothing is persisted unless every
        check passes.
        """
        async with self.store.transaction() as tx:
            slot = await resolve_source(tx, requester_source, for_update=True)
            if slot.owner_id != requester_id:
                raise Forbidden("You can only offer your own weeks and bookings")
            slot.ensure_offerable()
            self._ensure_outside_peak(slot)
            await self._ensure_not_committed(tx, requester_source)
            if not await tx.has_active_staff(slot.property_id):
                raise NoActiveStaff(
                    "No active staff member is assigned to this property",
                    property_id=str(slot.property_id),
                )

            swap = SwapRequest(
                requester_id=requester_id,
                property_id=slot.property_id,
                requester_source_type=requester_source.type,
                requester_source_id=requester_source.id,
                accommodation_type=slot.accommodation_type,
                status=SwapStatus.PENDING,
                staff_approval_status=StaffApprovalStatus.PENDING_REVIEW,
                responder_acceptance=ResponderAcceptance.PENDING,
                payment_status=SwapPaymentStatus.PENDING,
                notes=notes,
            )
            if responder_source is not None:
                responder = await self._validate_responder(tx, slot, responder_source, requester_id)
                swap.responder_source_type = responder_source.type
                swap.responder_source_id = responder_source.id
                swap.responder_id = responder.owner_id
                swap.status = SwapStatus.MATCHED
            await tx.add(swap)

        logger.info(
            "Swap %s created by %s for %s %s (status=%s)",
            swap.id,
            requester_id,
            requester_source.type.value,
            requester_source.id,
            swap.status.value,
        )
        return swap

    async def get_swap(self, swap_id: uuid.UUID, user_id: uuid.UUID) -> SwapRequest:
        """Return the swap if the user takes part in it or arbitrates it."""
        async with self.store.transaction() as tx:
            swap = await tx.get_swap(swap_id)
            user = await tx.get_user(user_id)
            if swap is None or user is None or not self._can_view(swap, user):
                raise NotFound("Swap request not found", swap_id=str(swap_id))
            return swap

    @staticmethod
    def _can_view(swap: SwapRequest, user: User) -> bool:
        if user.id in (swap.requester_id, swap.responder_id):
            return True
        if user.role == UserRole.ADMIN:
            return True
        return user.role == UserRole.STAFF and user.property_id == swap.property_id

    async def list_property_swaps(
        self, staff_id: uuid.UUID, *, statuses: frozenset[SwapStatus] | None = None
    ) -> list[SwapRequest]:
        """Swaps awaiting (or past) review at the staff member's property."""
        async with self.store.transaction() as tx:
            user = await tx.get_user(staff_id)
            if user is None or user.role not in (UserRole.STAFF, UserRole.ADMIN):
                raise Forbidden("Only staff can list property swaps")
            swaps = await tx.list_swaps(statuses=statuses)
            if user.role == UserRole.ADMIN:
                return swaps
            return [s for s in swaps if s.property_id == user.property_id]

    # ------------------------------------------------------------------
    # Staff arbitration
    # ------------------------------------------------------------------

    async def approve_swap(
        self, swap_id: uuid.UUID, staff_id: uuid.UUID, notes: str | None = None
    ) -> SwapRequest:
        """Approve a pending or matched swap and move it to ``awaiting_payment``.

        Raises:
            Forbidden: Staff member is not assigned to the swap's property.
            InvalidState: The swap is not pending or matched.
            Conflict: The responder slot is no longer free.
        """
        async with self.store.transaction() as tx:
            swap = await self._lock_swap(tx, swap_id)
            await ensure_arbiter(tx, staff_id, swap.property_id)
            new_status = next_swap_status(swap.status, SwapEvent.STAFF_APPROVE)

            if swap.responder_source is not None:
                requester_slot = await resolve_source(tx, swap.requester_source, for_update=True)
                responder_slot = await resolve_source(tx, swap.responder_source, for_update=True)
                await self._ensure_slot_free(tx, responder_slot, requester_slot, swap_id=swap.id)

            swap.status = new_status
            swap.staff_approval_status = StaffApprovalStatus.APPROVED
            swap.reviewed_by_staff_id = staff_id
            swap.staff_review_date = utcnow()
            swap.staff_notes = notes
            swap.swap_fee = self.swap_fee

        logger.info("Swap %s approved by staff %s (fee=%s)", swap_id, staff_id, swap.swap_fee)
        return swap

    async def reject_swap(self, swap_id: uuid.UUID, staff_id: uuid.UUID, reason: str | None = None) -> SwapRequest:
        async with self.store.transaction() as tx:
            swap = await self._lock_swap(tx, swap_id)
            await ensure_arbiter(tx, staff_id, swap.property_id)
            swap.status = next_swap_status(swap.status, SwapEvent.STAFF_REJECT)
            swap.staff_approval_status = StaffApprovalStatus.REJECTED
            swap.reviewed_by_staff_id = staff_id
            swap.staff_review_date = utcnow()
            swap.staff_notes = reason

        logger.info("Swap %s rejected by staff %s", swap_id, staff_id)
        return swap

    # ------------------------------------------------------------------
    # Responder and requester actions
    # ------------------------------------------------------------------

    async def accept_swap(
        self,
        swap_id: uuid.UUID,
        user_id: uuid.UUID,
        responder_source: SwapSource | None = None,
    ) -> SwapRequest:
        """Accept a swap as the owner of the responder slot.

        An open swap (no responder yet) needs ``responder_source``: the slot
        is validated as at creation and attached. A swap that already has a
        responder can only be accepted by that slot's owner.
        """
        async with self.store.transaction() as tx:
            swap = await self._lock_swap(tx, swap_id)
            new_status = next_swap_status(
                swap.status,
                SwapEvent.RESPONDER_ACCEPT,
                staff_approved=swap.staff_approval_status == StaffApprovalStatus.APPROVED,
            )
            if swap.responder_acceptance == ResponderAcceptance.ACCEPTED:
                raise InvalidState(
                    "Swap has already been accepted",
                    current_status=swap.status.value,
                )

            if swap.responder_source is None:
                if responder_source is None:
                    raise InvalidState("A responder week or booking is required to accept this swap")
                if user_id == swap.requester_id:
                    raise Forbidden("You cannot accept your own swap request")
                requester_slot = await resolve_source(tx, swap.requester_source, for_update=True)
                slot = await self._validate_responder(
                    tx, requester_slot, responder_source, swap.requester_id, swap_id=swap.id
                )
                if slot.owner_id != user_id:
                    raise Forbidden("You can only offer your own weeks and bookings")
                swap.responder_source_type = responder_source.type
                swap.responder_source_id = responder_source.id
            else:
                if responder_source is not None and responder_source != swap.responder_source:
                    raise InvalidState("Swap is already matched with a different slot")
                slot = await resolve_source(tx, swap.responder_source, for_update=True)
                if slot.owner_id != user_id:
                    raise Forbidden("Only the responder can accept this swap")

            swap.responder_id = user_id
            swap.responder_acceptance = ResponderAcceptance.ACCEPTED
            swap.responder_acceptance_date = utcnow()
            swap.status = new_status

        logger.info("Swap %s accepted by %s (status=%s)", swap_id, user_id, swap.status.value)
        return swap

    async def reject_as_responder(self, swap_id: uuid.UUID, user_id: uuid.UUID) -> SwapRequest:
        async with self.store.transaction() as tx:
            swap = await self._lock_swap(tx, swap_id)
            new_status = next_swap_status(swap.status, SwapEvent.RESPONDER_REJECT)
            if swap.responder_source is None:
                raise InvalidState("Swap has no responder yet", current_status=swap.status.value)
            slot = await resolve_source(tx, swap.responder_source)
            if slot.owner_id != user_id:
                raise Forbidden("Only the responder can reject this swap")
            swap.status = new_status
            swap.responder_acceptance = ResponderAcceptance.REJECTED
            swap.responder_acceptance_date = utcnow()

        logger.info("Swap %s rejected by responder %s", swap_id, user_id)
        return swap

    async def cancel_swap(self, swap_id: uuid.UUID, user_id: uuid.UUID) -> SwapRequest:
        async with self.store.transaction() as tx:
            swap = await self._lock_swap(tx, swap_id)
            if swap.requester_id != user_id:
                raise Forbidden("Only the requester can cancel this swap")
            swap.status = next_swap_status(swap.status, SwapEvent.REQUESTER_CANCEL)

        logger.info("Swap %s cancelled by requester %s", swap_id, user_id)
        return swap

    # ------------------------------------------------------------------
    # Payment and completion
    # ------------------------------------------------------------------

    def _ensure_payable(self, swap: SwapRequest, user_id: uuid.UUID) -> None:
        if swap.requester_id != user_id:
            raise Forbidden("Only the requester pays the swap fee")
        if swap.status != SwapStatus.AWAITING_PAYMENT:
            raise InvalidState(
                "Swap is not awaiting payment",
                current_status=swap.status.value,
                allowed_statuses=[SwapStatus.AWAITING_PAYMENT.value],
            )
        if swap.responder_acceptance != ResponderAcceptance.ACCEPTED:
            raise InvalidState(
                "Swap has not been accepted by the responder yet",
                responder_acceptance=swap.responder_acceptance.value,
            )

    def _stored_intent(self, swap: SwapRequest, fee: Decimal) -> PaymentIntent:
        # the client secret is only handed out when the intent is created
        return PaymentIntent(id=swap.payment_intent_id, client_secret=None, amount=fee, currency=self.currency)

    async def create_payment_intent(self, swap_id: uuid.UUID, user_id: uuid.UUID) -> PaymentIntent:
        """Create (once) the payment intent for the swap fee."""
        async with self.store.transaction() as tx:
            swap = await self._lock_swap(tx, swap_id)
            self._ensure_payable(swap, user_id)
            fee = swap.swap_fee if swap.swap_fee is not None else self.swap_fee
            if swap.payment_intent_id:
                return self._stored_intent(swap, fee)

        intent = await call_external(
            self.payments.create_payment_intent(
                fee,
                self.currency,
                {"swap_id": str(swap_id), "requester_id": str(user_id), "type": "swap_fee"},
            ),
            timeout=self.payment_timeout,
            service="payments",
            operation="create_payment_intent",
        )

        async with self.store.transaction() as tx:
            swap = await self._lock_swap(tx, swap_id)
            self._ensure_payable(swap, user_id)
            if swap.payment_intent_id and swap.payment_intent_id != intent.id:
                # a concurrent call stored its intent first
                return self._stored_intent(swap, fee)
            swap.payment_intent_id = intent.id

        logger.info("Payment intent %s created for swap %s", intent.id, swap_id)
        return intent

    async def confirm_payment(
        self, swap_id: uuid.UUID, user_id: uuid.UUID, payment_intent_id: str
    ) -> SwapRequest:
        """Verify the fee payment with the gateway, then complete the swap.

        Raises:
            ExternalFailure: The gateway errored or timed out.
            InvalidState: The payment did not succeed (recorded as ``failed``).
        """
        async with self.store.transaction() as tx:
            swap = await self._lock_swap(tx, swap_id)
            self._ensure_payable(swap, user_id)
            if swap.payment_intent_id and swap.payment_intent_id != payment_intent_id:
                raise InvalidState("Payment intent does not belong to this swap")

        confirmation = await call_external(
            self.payments.confirm_payment(payment_intent_id),
            timeout=self.payment_timeout,
            service="payments",
            operation="confirm_payment",
        )
        if not confirmation.success:
            async with self.store.transaction() as tx:
                swap = await self._lock_swap(tx, swap_id)
                swap.payment_status = SwapPaymentStatus.FAILED
                swap.payment_intent_id = payment_intent_id
            logger.warning(
                "Payment %s for swap %s not completed (%s)", payment_intent_id, swap_id, confirmation.status
            )
            raise InvalidState(
                "Payment has not been completed",
                payment_status=confirmation.status or "unknown",
            )

        return await self.complete_swap(swap_id, payment_intent_id=payment_intent_id)

    async def complete_swap(self, swap_id: uuid.UUID, *, payment_intent_id: str | None = None) -> SwapRequest:
        """Exchange the owners of both slots. Fails closed on any mismatch."""
        async with self.store.transaction() as tx:
            swap = await self._lock_swap(tx, swap_id)
            new_status = next_swap_status(swap.status, SwapEvent.PAYMENT_CONFIRMED)
            if swap.staff_approval_status != StaffApprovalStatus.APPROVED:
                raise InvalidState("Swap has not been approved by staff")
            if swap.responder_acceptance != ResponderAcceptance.ACCEPTED or swap.responder_source is None:
                raise InvalidState("Swap has not been accepted by the responder")

            requester_slot = await resolve_source(tx, swap.requester_source, for_update=True)
            responder_slot = await resolve_source(tx, swap.responder_source, for_update=True)
            if requester_slot.owner_id != swap.requester_id:
                raise InvalidState("Requester no longer owns the offered slot")
            if responder_slot.owner_id != swap.responder_id:
                raise InvalidState("Responder no longer owns the offered slot")
            requester_slot.ensure_offerable()
            responder_slot.ensure_offerable()

            requester_slot.entity.owner_id = swap.responder_id
            responder_slot.entity.owner_id = swap.requester_id
            for slot in (requester_slot, responder_slot):
                if isinstance(slot.entity, Week):
                    slot.entity.status = WeekStatus.CONFIRMED

            swap.status = new_status
            swap.payment_status = SwapPaymentStatus.PAID
            swap.paid_at = utcnow()
            if payment_intent_id is not None:
                swap.payment_intent_id = payment_intent_id

        logger.info(
            "Swap %s completed: %s %s -> %s, %s %s -> %s",
            swap_id,
            requester_slot.source.type.value,
            requester_slot.source.id,
            swap.responder_id,
            responder_slot.source.type.value,
            responder_slot.source.id,
            swap.requester_id,
        )
        return swap
