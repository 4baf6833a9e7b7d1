"""Tests for the owner-side swap endpoints and staff arbitration over HTTP."""

import uuid

import pytest
from httpx import AsyncClient

from conftest import SPRING, auth_headers, make_week

pytestmark = pytest.mark.asyncio


def _week(week) -> dict:
    return {"type": "week", "id": str(week.id)}


async def _create(client: AsyncClient, world, swap_weeks, *, responder: bool = True) -> dict:
    body = {"requester_source": _week(swap_weeks.alice), "notes": "Spring break"}
    if responder:
        body["responder_source"] = _week(swap_weeks.bob)
    response = await client.post("/api/v1/swaps", json=body, headers=auth_headers(world.alice))
    assert response.status_code == 201, response.text
    return response.json()


# ---------------------------------------------------------------------------
# POST /api/v1/swaps
# ---------------------------------------------------------------------------


class TestCreateSwap:
    """Tests for opening swap requests."""

    async def test_create_matched(self, client: AsyncClient, world, swap_weeks) -> None:
        data = await _create(client, world, swap_weeks)

        assert data["status"] == "matched"
        assert data["requester_id"] == str(world.alice.id)
        assert data["responder_id"] == str(world.bob.id)
        assert data["property_id"] == str(world.resort.id)
        assert data["requester_source_type"] == "week"
        assert data["staff_approval_status"] == "pending_review"
        assert data["notes"] == "Spring break"

    async def test_create_open(self, client: AsyncClient, world, swap_weeks) -> None:
        data = await _create(client, world, swap_weeks, responder=False)

        assert data["status"] == "pending"
        assert data["responder_id"] is None

    async def test_no_active_staff(self, client: AsyncClient, store, world) -> None:
        week = make_week(store, world.alice, world.unstaffed, SPRING)
        response = await client.post(
            "/api/v1/swaps",
            json={"requester_source": _week(week)},
            headers=auth_headers(world.alice),
        )

        assert response.status_code == 422
        assert response.json()["detail"]["code"] == "no_active_staff"
        assert response.json()["detail"]["property_id"] == str(world.unstaffed.id)

    async def test_invalid_source_type(self, client: AsyncClient, world, swap_weeks) -> None:
        response = await client.post(
            "/api/v1/swaps",
            json={"requester_source": {"type": "villa", "id": str(swap_weeks.alice.id)}},
            headers=auth_headers(world.alice),
        )
        assert response.status_code == 422

    async def test_requires_auth(self, client: AsyncClient, swap_weeks) -> None:
        response = await client.post("/api/v1/swaps", json={"requester_source": _week(swap_weeks.alice)})
        assert response.status_code in (401, 403)

    async def test_invalid_token(self, client: AsyncClient, swap_weeks) -> None:
        response = await client.post(
            "/api/v1/swaps",
            json={"requester_source": _week(swap_weeks.alice)},
            headers={"Authorization": "Bearer not-a-token"},
        )
        assert response.status_code == 401

    async def test_inactive_user(self, client: AsyncClient, world, swap_weeks) -> None:
        world.alice.is_active = False
        response = await client.get("/api/v1/swaps", headers=auth_headers(world.alice))
        assert response.status_code == 401


# ---------------------------------------------------------------------------
# GET /api/v1/swaps
# ---------------------------------------------------------------------------


class TestReadSwaps:
    async def test_list_by_role(self, client: AsyncClient, world, swap_weeks) -> None:
        created = await _create(client, world, swap_weeks)

        mine = await client.get("/api/v1/swaps", params={"role": "requester"}, headers=auth_headers(world.alice))
        theirs = await client.get("/api/v1/swaps", params={"role": "requester"}, headers=auth_headers(world.bob))
        answering = await client.get("/api/v1/swaps", params={"role": "responder"}, headers=auth_headers(world.bob))

        assert mine.json()["total"] == 1
        assert mine.json()["items"][0]["id"] == created["id"]
        assert theirs.json()["total"] == 0
        assert answering.json()["total"] == 1

    async def test_get_as_stranger(self, client: AsyncClient, world, swap_weeks) -> None:
        created = await _create(client, world, swap_weeks)

        response = await client.get(f"/api/v1/swaps/{created['id']}", headers=auth_headers(world.carol))

        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "not_found"

    async def test_get_unknown(self, client: AsyncClient, world) -> None:
        response = await client.get(f"/api/v1/swaps/{uuid.uuid4()}", headers=auth_headers(world.alice))
        assert response.status_code == 404

    async def test_available_for_responder(self, client: AsyncClient, world, swap_weeks) -> None:
        created = await _create(client, world, swap_weeks, responder=False)

        response = await client.get("/api/v1/swaps/available", headers=auth_headers(world.bob))

        assert response.status_code == 200
        assert [s["id"] for s in response.json()["items"]] == [created["id"]]

    async def test_compatible_weeks(self, client: AsyncClient, world, swap_weeks) -> None:
        response = await client.get(
            f"/api/v1/weeks/{swap_weeks.alice.id}/compatible", headers=auth_headers(world.alice)
        )

        assert response.status_code == 200
        data = response.json()
        assert [w["id"] for w in data] == [str(swap_weeks.bob.id)]
        assert data[0]["nights"] == 7

    async def test_compatible_weeks_limit_is_bounded(self, client: AsyncClient, world, swap_weeks) -> None:
        response = await client.get(
            f"/api/v1/weeks/{swap_weeks.alice.id}/compatible",
            params={"limit": 0},
            headers=auth_headers(world.alice),
        )
        assert response.status_code == 422


# ---------------------------------------------------------------------------
# Full flow
# ---------------------------------------------------------------------------


class TestSwapFlow:
    async def test_approve_accept_pay_complete(self, client: AsyncClient, world, swap_weeks) -> None:
        created = await _create(client, world, swap_weeks)
        swap_id = created["id"]

        approved = await client.post(
            f"/api/v1/staff/swaps/{swap_id}/approve",
            json={"notes": "Dates verified"},
            headers=auth_headers(world.resort_staff),
        )
        assert approved.status_code == 200, approved.text
        assert approved.json()["status"] == "awaiting_payment"
        assert approved.json()["swap_fee"] == "10.00"

        accepted = await client.post(f"/api/v1/swaps/{swap_id}/accept", headers=auth_headers(world.bob))
        assert accepted.status_code == 200
        assert accepted.json()["responder_acceptance"] == "accepted"

        intent = await client.post(f"/api/v1/swaps/{swap_id}/payment-intent", headers=auth_headers(world.alice))
        assert intent.status_code == 200
        assert intent.json()["client_secret"] == "pi_test_1_secret"

        confirmed = await client.post(
            f"/api/v1/swaps/{swap_id}/confirm-payment",
            json={"payment_intent_id": intent.json()["id"]},
            headers=auth_headers(world.alice),
        )
        assert confirmed.status_code == 200
        assert confirmed.json()["status"] == "completed"
        assert confirmed.json()["payment_status"] == "paid"
        assert swap_weeks.alice.owner_id == world.bob.id
        assert swap_weeks.bob.owner_id == world.alice.id

    async def test_accept_open_swap_with_slot(self, client: AsyncClient, world, swap_weeks) -> None:
        created = await _create(client, world, swap_weeks, responder=False)

        response = await client.post(
            f"/api/v1/swaps/{created['id']}/accept",
            json={"responder_source": _week(swap_weeks.bob)},
            headers=auth_headers(world.bob),
        )

        assert response.status_code == 200
        assert response.json()["status"] == "matched"
        assert response.json()["responder_source_id"] == str(swap_weeks.bob.id)

    async def test_double_accept_conflicts(self, client: AsyncClient, world, swap_weeks) -> None:
        created = await _create(client, world, swap_weeks)
        url = f"/api/v1/swaps/{created['id']}/accept"

        await client.post(url, headers=auth_headers(world.bob))
        response = await client.post(url, headers=auth_headers(world.bob))

        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "invalid_state"

    async def test_responder_reject(self, client: AsyncClient, world, swap_weeks) -> None:
        created = await _create(client, world, swap_weeks)

        response = await client.post(f"/api/v1/swaps/{created['id']}/reject", headers=auth_headers(world.bob))

        assert response.json()["status"] == "cancelled"
        assert response.json()["responder_acceptance"] == "rejected"

    async def test_cancel_by_other_owner_is_forbidden(self, client: AsyncClient, world, swap_weeks) -> None:
        created = await _create(client, world, swap_weeks)

        response = await client.post(f"/api/v1/swaps/{created['id']}/cancel", headers=auth_headers(world.bob))

        assert response.status_code == 403
        assert response.json()["detail"]["code"] == "forbidden"

    async def test_confirm_with_failed_payment(self, client: AsyncClient, world, swap_weeks, payments) -> None:
        created = await _create(client, world, swap_weeks)
        swap_id = created["id"]
        await client.post(f"/api/v1/staff/swaps/{swap_id}/approve", headers=auth_headers(world.resort_staff))
        await client.post(f"/api/v1/swaps/{swap_id}/accept", headers=auth_headers(world.bob))
        intent = await client.post(f"/api/v1/swaps/{swap_id}/payment-intent", headers=auth_headers(world.alice))
        payments.succeed = False

        response = await client.post(
            f"/api/v1/swaps/{swap_id}/confirm-payment",
            json={"payment_intent_id": intent.json()["id"]},
            headers=auth_headers(world.alice),
        )

        assert response.status_code == 409
        assert response.json()["detail"]["payment_status"] == "requires_payment_method"
