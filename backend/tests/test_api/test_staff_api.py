"""Tests for the staff arbitration endpoints."""

import pytest
from httpx import AsyncClient

from conftest import AUTUMN, auth_headers, make_credit
from timeshare.domain.sources import WeekSource

pytestmark = pytest.mark.asyncio


class TestStaffSwaps:
    async def test_owner_gets_403(self, client: AsyncClient, world) -> None:
        response = await client.get("/api/v1/staff/swaps", headers=auth_headers(world.alice))

        assert response.status_code == 403
        assert response.json()["detail"] == "Staff access required"

    async def test_list_filtered_by_status(self, client: AsyncClient, world, swap_weeks, swap_service) -> None:
        swap = await swap_service.create_swap(
            world.alice.id, WeekSource(swap_weeks.alice.id), WeekSource(swap_weeks.bob.id)
        )

        matched = await client.get(
            "/api/v1/staff/swaps", params={"status": "matched"}, headers=auth_headers(world.resort_staff)
        )
        pending = await client.get(
            "/api/v1/staff/swaps", params={"status": "pending"}, headers=auth_headers(world.resort_staff)
        )
        elsewhere = await client.get("/api/v1/staff/swaps", headers=auth_headers(world.lodge_staff))

        assert [s["id"] for s in matched.json()["items"]] == [str(swap.id)]
        assert pending.json()["total"] == 0
        assert elsewhere.json()["total"] == 0

    async def test_other_property_staff_cannot_approve(
        self, client: AsyncClient, world, swap_weeks, swap_service
    ) -> None:
        swap = await swap_service.create_swap(world.alice.id, WeekSource(swap_weeks.alice.id))

        response = await client.post(
            f"/api/v1/staff/swaps/{swap.id}/approve", headers=auth_headers(world.lodge_staff)
        )

        assert response.status_code == 403

    async def test_reject_with_notes(self, client: AsyncClient, world, swap_weeks, swap_service) -> None:
        swap = await swap_service.create_swap(world.alice.id, WeekSource(swap_weeks.alice.id))

        response = await client.post(
            f"/api/v1/staff/swaps/{swap.id}/reject",
            json={"notes": "Unit under renovation"},
            headers=auth_headers(world.resort_staff),
        )

        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"
        assert response.json()["staff_notes"] == "Unit under renovation"


class TestStaffNightCreditRequests:
    async def _request(self, credit_service, world, store, **kwargs):
        credit = make_credit(store, world.alice)
        return await credit_service.create_request(
            world.alice.id, credit.id, world.lodge.id, AUTUMN, AUTUMN.replace(day=8), 6, **kwargs
        )

    async def test_approve_completes(self, client: AsyncClient, store, world, credit_service) -> None:
        request = await self._request(credit_service, world, store)

        response = await client.patch(
            f"/api/v1/staff/night-credits/requests/{request.id}/approve",
            headers=auth_headers(world.lodge_staff),
        )

        assert response.status_code == 200, response.text
        assert response.json()["status"] == "completed"
        assert response.json()["booking_id"] is not None

    async def test_list_pending(self, client: AsyncClient, store, world, credit_service) -> None:
        request = await self._request(credit_service, world, store)

        response = await client.get(
            "/api/v1/staff/night-credits/requests",
            params={"status": "pending"},
            headers=auth_headers(world.lodge_staff),
        )

        assert [r["id"] for r in response.json()["items"]] == [str(request.id)]

    async def test_pms_failure_then_retry(self, client: AsyncClient, store, world, credit_service, pms) -> None:
        request = await self._request(credit_service, world, store)
        pms.status = "failed"

        failed = await client.patch(
            f"/api/v1/staff/night-credits/requests/{request.id}/approve",
            headers=auth_headers(world.lodge_staff),
        )
        assert failed.status_code == 502
        assert failed.json()["detail"]["code"] == "external_failure"

        pms.status = "confirmed"
        retried = await client.patch(
            f"/api/v1/staff/night-credits/requests/{request.id}/complete",
            headers=auth_headers(world.lodge_staff),
        )
        assert retried.status_code == 200
        assert retried.json()["status"] == "completed"

    async def test_retry_by_other_property_staff(self, client: AsyncClient, store, world, credit_service) -> None:
        request = await self._request(credit_service, world, store)

        response = await client.patch(
            f"/api/v1/staff/night-credits/requests/{request.id}/complete",
            headers=auth_headers(world.resort_staff),
        )

        assert response.status_code == 404

    async def test_reject(self, client: AsyncClient, store, world, credit_service) -> None:
        request = await self._request(credit_service, world, store)

        response = await client.patch(
            f"/api/v1/staff/night-credits/requests/{request.id}/reject",
            json={"notes": "No 2BR units left"},
            headers=auth_headers(world.admin),
        )

        assert response.json()["status"] == "rejected"
