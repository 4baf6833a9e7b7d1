"""Tests for the development PMS adapter and the adapter factory."""

import uuid
from datetime import date

import pytest

from timeshare.pms import factory
from timeshare.pms.base import PmsBookingPayload
from timeshare.pms.http import HttpPmsAdapter
from timeshare.pms.mock import MockPmsAdapter


def _payload(key=None):
    return PmsBookingPayload(
        property_id=uuid.uuid4(),
        check_in=date(2027, 3, 6),
        check_out=date(2027, 3, 10),
        idempotency_key=key,
    )


@pytest.mark.asyncio
class TestMockPms:
    async def test_always_available(self):
        availability = await MockPmsAdapter().check_availability(uuid.uuid4(), date(2027, 3, 6), date(2027, 3, 10), 4)

        assert availability.available is True
        assert availability.available_nights >= 4

    async def test_confirms_bookings(self):
        result = await MockPmsAdapter().create_booking(_payload())

        assert result.confirmed
        assert result.provider == "mock"
        assert result.pms_booking_id.startswith("mock-booking-")

    async def test_same_key_returns_same_booking(self):
        pms = MockPmsAdapter()

        first = await pms.create_booking(_payload("k1"))
        second = await pms.create_booking(_payload("k1"))
        other = await pms.create_booking(_payload("k2"))

        assert second == first
        assert other.pms_booking_id != first.pms_booking_id

    async def test_without_key_books_again(self):
        pms = MockPmsAdapter()

        first = await pms.create_booking(_payload())
        second = await pms.create_booking(_payload())

        assert first.pms_booking_id != second.pms_booking_id

    async def test_cancel_is_recorded(self):
        pms = MockPmsAdapter()
        result = await pms.create_booking(_payload())

        await pms.cancel_booking(result.pms_booking_id)

        assert result.pms_booking_id in pms.cancelled


class TestFactory:
    def test_mock_by_default(self, monkeypatch):
        monkeypatch.setattr(factory.settings, "pms_provider", "mock")
        factory.get_pms_adapter.cache_clear()

        assert isinstance(factory.get_pms_adapter(), MockPmsAdapter)
        factory.get_pms_adapter.cache_clear()

    def test_http_provider(self, monkeypatch):
        monkeypatch.setattr(factory.settings, "pms_provider", "http")
        monkeypatch.setattr(factory.settings, "pms_base_url", "https://pms.example.com/api/")
        factory.get_pms_adapter.cache_clear()

        adapter = factory.get_pms_adapter()

        assert isinstance(adapter, HttpPmsAdapter)
        assert adapter.base_url == "https://pms.example.com/api"
        factory.get_pms_adapter.cache_clear()
