"""Tests for the booking idempotency guard."""

import pytest

from conftest import SPRING, make_booking
from timeshare.errors import Conflict, DuplicateIdempotencyKey
from timeshare.services.idempotency import IdempotencyGuard

pytestmark = pytest.mark.asyncio


class TestIdempotencyGuard:
    async def test_runs_without_key(self, store, world):
        guard = IdempotencyGuard(store)
        calls = []

        async def operation():
            calls.append(1)
            return make_booking(store, world.alice, world.lodge, SPRING)

        first = await guard.run(None, operation)
        second = await guard.run(None, operation)

        assert len(calls) == 2
        assert not first.replayed and not second.replayed

    async def test_replays_committed_key(self, store, world):
        guard = IdempotencyGuard(store)
        existing = make_booking(store, world.alice, world.lodge, SPRING)
        existing.idempotency_key = "abc"

        async def operation():
            raise AssertionError("must not run")

        result = await guard.run("abc", operation)

        assert result.replayed is True
        assert result.value is existing

    async def test_duplicate_resolves_to_winner(self, store, world):
        guard = IdempotencyGuard(store)

        async def operation():
            winner = make_booking(store, world.bob, world.lodge, SPRING)
            winner.idempotency_key = "abc"
            raise DuplicateIdempotencyKey("abc")

        result = await guard.run("abc", operation)

        assert result.replayed is True
        assert result.value.owner_id == world.bob.id

    async def test_duplicate_without_winner_propagates(self, store):
        guard = IdempotencyGuard(store)

        async def operation():
            raise DuplicateIdempotencyKey("abc")

        with pytest.raises(DuplicateIdempotencyKey):
            await guard.run("abc", operation)

    async def test_key_of_another_owner_conflicts(self, store, world):
        guard = IdempotencyGuard(store)
        existing = make_booking(store, world.alice, world.lodge, SPRING)
        existing.idempotency_key = "abc"

        async def operation():
            raise AssertionError("must not run")

        with pytest.raises(Conflict):
            await guard.run("abc", operation, owner_id=world.bob.id)

    async def test_concurrent_winner_of_another_owner_conflicts(self, store, world):
        guard = IdempotencyGuard(store)

        async def operation():
            winner = make_booking(store, world.bob, world.lodge, SPRING)
            winner.idempotency_key = "abc"
            raise DuplicateIdempotencyKey("abc")

        with pytest.raises(Conflict):
            await guard.run("abc", operation, owner_id=world.alice.id)
