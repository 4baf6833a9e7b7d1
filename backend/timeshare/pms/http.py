"""PMS adapter for providers reachable over a JSON HTTP API."""

import logging
import uuid
from datetime import date
from typing import Any

import httpx

from timeshare.pms.base import PmsAdapter, PmsAvailability, PmsBookingPayload, PmsBookingResult, PmsError

logger = logging.getLogger(__name__)


class HttpPmsAdapter(PmsAdapter):
    """Thin httpx client.

    Endpoints (relative to ``base_url``):
    - ``GET /availability`` with ``property_id``, ``start``, ``end``, ``nights``
    - ``POST /bookings`` (``Idempotency-Key`` header forwarded)
    - ``DELETE /bookings/{id}``
    """

    provider = "http"

    def __init__(self, base_url: str, api_key: str = "", timeout: float = 20.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout

    def _headers(self, idempotency_key: str | None = None) -> dict[str, str]:
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key
        return headers

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        try:
            async with httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout) as client:
                response = await client.request(method, path, **kwargs)
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status_code = exc.response.status_code
            raise PmsError(
                f"PMS returned HTTP {status_code}",
                retryable=status_code >= 500,
                details={"status_code": status_code},
            ) from exc
        except httpx.HTTPError as exc:
            raise PmsError(f"PMS request failed: {exc.__class__.__name__}", retryable=True) from exc

        if not response.content:
            return {}
        try:
            data = response.json()
        except ValueError as exc:
            raise PmsError("PMS returned a body that is not JSON", retryable=False) from exc
        if not isinstance(data, dict):
            raise PmsError(
                "PMS returned an unexpected JSON payload",
                retryable=False,
                details={"type": type(data).__name__},
            )
        return data

    async def check_availability(
        self, property_id: uuid.UUID, start: date, end: date, nights: int
    ) -> PmsAvailability:
        data = await self._request(
            "GET",
            "/availability",
            params={
                "property_id": str(property_id),
                "start": start.isoformat(),
                "end": end.isoformat(),
                "nights": nights,
            },
            headers=self._headers(),
        )
        return PmsAvailability(
            available=bool(data.get("available", False)),
            available_nights=int(data.get("available_nights", 0)),
            reason=data.get("reason"),
        )

    async def create_booking(self, payload: PmsBookingPayload) -> PmsBookingResult:
        body = {
            "property_id": str(payload.property_id),
            "check_in": payload.check_in.isoformat(),
            "check_out": payload.check_out.isoformat(),
            "room_type": payload.room_type,
            "owner_id": str(payload.owner_id) if payload.owner_id else None,
            "metadata": payload.metadata,
        }
        data = await self._request(
            "POST", "/bookings", json=body, headers=self._headers(payload.idempotency_key)
        )
        if "id" not in data:
            raise PmsError("PMS booking response carried no id", details={"keys": sorted(data)})
        logger.info("PMS booking %s created (status=%s)", data["id"], data.get("status"))
        return PmsBookingResult(
            pms_booking_id=str(data["id"]),
            status=str(data.get("status", "")),
            provider=self.provider,
            guest_token=data.get("guest_token"),
            payment_reference=data.get("payment_reference"),
        )

    async def cancel_booking(self, pms_booking_id: str) -> None:
        await self._request("DELETE", f"/bookings/{pms_booking_id}", headers=self._headers())
