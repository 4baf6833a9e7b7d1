"""Tests for the HTTP PMS adapter against a mocked transport."""

import json
import uuid
from datetime import date

import httpx
import pytest

from timeshare.pms.base import PmsBookingPayload, PmsError
from timeshare.pms.http import HttpPmsAdapter

pytestmark = pytest.mark.asyncio

PROPERTY_ID = uuid.UUID("00000000-0000-0000-0000-00000000c0de")


@pytest.fixture
def requests_seen():
    return []


@pytest.fixture
def respond(monkeypatch, requests_seen):
    """Route the adapter's httpx client through a handler set by the test."""
    real_client = httpx.AsyncClient
    state = {"handler": None}

    def _client(**kwargs):
        def _handler(request: httpx.Request) -> httpx.Response:
            requests_seen.append(request)
            return state["handler"](request)

        return real_client(transport=httpx.MockTransport(_handler), **kwargs)

    monkeypatch.setattr("timeshare.pms.http.httpx.AsyncClient", _client)

    def _set(handler):
        state["handler"] = handler

    return _set


def _payload():
    return PmsBookingPayload(
        property_id=PROPERTY_ID,
        check_in=date(2027, 3, 6),
        check_out=date(2027, 3, 12),
        owner_id=uuid.UUID(int=7),
        room_type="2BR",
        idempotency_key="night-credit-request-1",
        metadata={"night_credit_request_id": "1"},
    )


class TestHttpPms:
    async def test_availability(self, respond, requests_seen):
        respond(lambda request: httpx.Response(200, json={"available": True, "available_nights": 6}))
        adapter = HttpPmsAdapter("https://pms.example.com", api_key="secret")

        availability = await adapter.check_availability(PROPERTY_ID, date(2027, 3, 6), date(2027, 3, 12), 6)

        assert availability.available is True
        assert availability.available_nights == 6
        request = requests_seen[0]
        assert request.url.path == "/availability"
        assert request.url.params["property_id"] == str(PROPERTY_ID)
        assert request.url.params["nights"] == "6"
        assert request.headers["Authorization"] == "Bearer secret"

    async def test_create_booking_forwards_idempotency_key(self, respond, requests_seen):
        respond(lambda request: httpx.Response(201, json={"id": "PMS-1", "status": "confirmed"}))
        adapter = HttpPmsAdapter("https://pms.example.com")

        result = await adapter.create_booking(_payload())

        assert result.pms_booking_id == "PMS-1"
        assert result.confirmed
        assert result.provider == "http"
        request = requests_seen[0]
        assert request.method == "POST"
        assert request.headers["Idempotency-Key"] == "night-credit-request-1"
        assert "Authorization" not in request.headers
        body = json.loads(request.content)
        assert body["check_in"] == "2027-03-06"
        assert body["room_type"] == "2BR"

    async def test_booking_without_id(self, respond):
        respond(lambda request: httpx.Response(200, json={"status": "confirmed"}))

        with pytest.raises(PmsError):
            await HttpPmsAdapter("https://pms.example.com").create_booking(_payload())

    async def test_server_error_is_retryable(self, respond):
        respond(lambda request: httpx.Response(503))

        with pytest.raises(PmsError) as excinfo:
            await HttpPmsAdapter("https://pms.example.com").create_booking(_payload())

        assert excinfo.value.retryable is True
        assert excinfo.value.details == {"status_code": 503}

    async def test_client_error_is_not_retryable(self, respond):
        respond(lambda request: httpx.Response(409, json={"error": "taken"}))

        with pytest.raises(PmsError) as excinfo:
            await HttpPmsAdapter("https://pms.example.com").create_booking(_payload())

        assert excinfo.value.retryable is False

    async def test_transport_error(self, respond):
        def _fail(request):
            raise httpx.ConnectError("refused", request=request)

        respond(_fail)

        with pytest.raises(PmsError) as excinfo:
            await HttpPmsAdapter("https://pms.example.com").check_availability(
                PROPERTY_ID, date(2027, 3, 6), date(2027, 3, 12), 6
            )

        assert excinfo.value.retryable is True

    async def test_cancel(self, respond, requests_seen):
        respond(lambda request: httpx.Response(204))

        await HttpPmsAdapter("https://pms.example.com/").cancel_booking("PMS-1")

        assert requests_seen[0].method == "DELETE"
        assert requests_seen[0].url.path == "/bookings/PMS-1"

    async def test_body_that_is_not_json(self, respond):
        respond(lambda request: httpx.Response(200, text="<html>maintenance</html>"))

        with pytest.raises(PmsError) as excinfo:
            await HttpPmsAdapter("https://pms.example.com").create_booking(_payload())

        assert excinfo.value.retryable is False

    async def test_json_that_is_not_an_object(self, respond):
        respond(lambda request: httpx.Response(200, json=["PMS-1"]))

        with pytest.raises(PmsError) as excinfo:
            await HttpPmsAdapter("https://pms.example.com").check_availability(
                PROPERTY_ID, date(2027, 3, 6), date(2027, 3, 12), 6
            )

        assert excinfo.value.details == {"type": "list"}
