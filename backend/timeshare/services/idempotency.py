"""Idempotency guard for operations that create a booking.

Only the local ledger is protected: the key is forwarded to the PMS, but a
PMS that ignores it can still end up with a duplicate remote booking.

Keys are unique across the ledger, but a key only replays for the caller
that first used it: the same owner spending the same credit. Anyone else
presenting that key gets a ``Conflict`` and never sees the booking.
"""

import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from timeshare.errors import Conflict, DuplicateIdempotencyKey
from timeshare.models import Booking
from timeshare.repositories.base import Store

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IdempotentResult:
    value: Booking
    replayed: bool = False


def ensure_key_holder(
    booking: Booking,
    key: str,
    owner_id: uuid.UUID | None = None,
    credit_id: uuid.UUID | None = None,
) -> None:
    """Raise ``Conflict`` unless ``booking`` was made by this owner with this credit."""
    if owner_id is not None and booking.owner_id != owner_id:
        raise Conflict("Idempotency key already used", idempotency_key=key)
    if credit_id is not None and booking.night_credit_id != credit_id:
        raise Conflict("Idempotency key already used", idempotency_key=key)


class IdempotencyGuard:
    def __init__(self, store: Store) -> None:
        self.store = store

    async def find(self, key: str) -> Booking | None:
        async with self.store.transaction() as tx:
            return await tx.get_booking_by_idempotency_key(key)

    async def run(
        self,
        key: str | None,
        operation: Callable[[], Awaitable[Booking]],
        *,
        owner_id: uuid.UUID | None = None,
        credit_id: uuid.UUID | None = None,
    ) -> IdempotentResult:
        """Run ``operation`` at most once per ``key``.

        ``operation`` must re-check the key inside its own transaction. When
        a concurrent caller commits the same key first, the unique constraint
        fires and the winner's booking is returned as a replay.

        Raises:
            Conflict: The key belongs to a booking of another owner or credit.
        """
        if key is None:
            return IdempotentResult(await operation())

        existing = await self.find(key)
        if existing is not None:
            ensure_key_holder(existing, key, owner_id, credit_id)
            logger.info("Idempotent replay for key %s (booking %s)", key, existing.id)
            return IdempotentResult(existing, replayed=True)

        try:
            return IdempotentResult(await operation())
        except DuplicateIdempotencyKey:
            winner = await self.find(key)
            if winner is None:
                raise
            ensure_key_holder(winner, key, owner_id, credit_id)
            logger.info("Idempotency key %s won by concurrent request (booking %s)", key, winner.id)
            return IdempotentResult(winner, replayed=True)
