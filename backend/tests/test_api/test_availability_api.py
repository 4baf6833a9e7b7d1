"""Tests for the availability endpoint and the service-level routes."""

import pytest
from httpx import AsyncClient

from conftest import AUTUMN, SPRING, auth_headers, make_booking, make_week

pytestmark = pytest.mark.asyncio


class TestAvailability:
    async def test_free_range(self, client: AsyncClient, world) -> None:
        response = await client.get(
            "/api/v1/availability",
            params={"property_id": str(world.lodge.id), "start_date": "2027-10-02", "end_date": "2027-10-09"},
            headers=auth_headers(world.alice),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["available"] is True
        assert data["conflicts"] == {"bookings": 0, "weeks": 0, "swaps": 0}
        assert data["peak"] is False

    async def test_counts_conflicts(self, client: AsyncClient, store, world) -> None:
        make_booking(store, world.bob, world.lodge, AUTUMN, nights=3)
        make_week(store, world.carol, world.lodge, AUTUMN)

        response = await client.get(
            "/api/v1/availability",
            params={"property_id": str(world.lodge.id), "start_date": "2027-10-02", "end_date": "2027-10-09"},
            headers=auth_headers(world.alice),
        )

        data = response.json()
        assert data["available"] is False
        assert data["conflicts"] == {"bookings": 1, "weeks": 1, "swaps": 0}

    async def test_peak_is_reported(self, client: AsyncClient, world) -> None:
        response = await client.get(
            "/api/v1/availability",
            params={"property_id": str(world.lodge.id), "start_date": "2027-12-20", "end_date": "2027-12-27"},
            headers=auth_headers(world.alice),
        )

        assert response.json()["peak"] is True

    async def test_empty_range_rejected(self, client: AsyncClient, world) -> None:
        day = SPRING.isoformat()
        response = await client.get(
            "/api/v1/availability",
            params={"property_id": str(world.lodge.id), "start_date": day, "end_date": day},
            headers=auth_headers(world.alice),
        )

        assert response.status_code == 422


class TestServiceRoutes:
    async def test_health(self, client: AsyncClient) -> None:
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    async def test_root(self, client: AsyncClient) -> None:
        response = await client.get("/")

        assert response.json()["docs"] == "/docs"
