"""Staff arbitration API router.

Staff act on swaps and night-credit requests for the property they are
assigned to; administrators act on every property.
"""

import uuid

from fastapi import APIRouter, Depends, Query

from timeshare.api.deps import get_night_credit_service, get_swap_service, require_staff
from timeshare.domain.enums import CreditRequestStatus, SwapStatus
from timeshare.models import NightCreditRequest, SwapRequest, User
from timeshare.schemas.common import StaffDecision
from timeshare.schemas.night_credit import NightCreditRequestListResponse, NightCreditRequestResponse
from timeshare.schemas.swap import SwapListResponse, SwapResponse
from timeshare.services.night_credit_service import NightCreditService
from timeshare.services.swap_service import SwapService

router = APIRouter(prefix="/api/v1/staff", tags=["staff"])


# ---------------------------------------------------------------------------
# Swaps
# ---------------------------------------------------------------------------


@router.get("/swaps", response_model=SwapListResponse, summary="Swaps at my property")
async def list_property_swaps(
    status_filter: SwapStatus | None = Query(None, alias="status"),
    staff: User = Depends(require_staff),
    service: SwapService = Depends(get_swap_service),
) -> dict:
    statuses = frozenset({status_filter}) if status_filter else None
    swaps = await service.list_property_swaps(staff.id, statuses=statuses)
    return {"items": swaps, "total": len(swaps)}


@router.post("/swaps/{swap_id}/approve", response_model=SwapResponse, summary="Approve a swap")
async def approve_swap(
    swap_id: uuid.UUID,
    body: StaffDecision | None = None,
    staff: User = Depends(require_staff),
    service: SwapService = Depends(get_swap_service),
) -> SwapRequest:
    return await service.approve_swap(swap_id, staff.id, body.notes if body else None)


@router.post("/swaps/{swap_id}/reject", response_model=SwapResponse, summary="Reject a swap")
async def reject_swap(
    swap_id: uuid.UUID,
    body: StaffDecision | None = None,
    staff: User = Depends(require_staff),
    service: SwapService = Depends(get_swap_service),
) -> SwapRequest:
    return await service.reject_swap(swap_id, staff.id, body.notes if body else None)


# ---------------------------------------------------------------------------
# Night-credit requests
# ---------------------------------------------------------------------------


@router.get(
    "/night-credits/requests",
    response_model=NightCreditRequestListResponse,
    summary="Night credit requests at my property",
)
async def list_credit_requests(
    status_filter: CreditRequestStatus | None = Query(None, alias="status"),
    staff: User = Depends(require_staff),
    service: NightCreditService = Depends(get_night_credit_service),
) -> dict:
    statuses = frozenset({status_filter}) if status_filter else None
    requests = await service.list_property_requests(staff.id, statuses=statuses)
    return {"items": requests, "total": len(requests)}


@router.patch(
    "/night-credits/requests/{request_id}/approve",
    response_model=NightCreditRequestResponse,
    summary="Approve a night credit request",
)
async def approve_credit_request(
    request_id: uuid.UUID,
    body: StaffDecision | None = None,
    staff: User = Depends(require_staff),
    service: NightCreditService = Depends(get_night_credit_service),
) -> NightCreditRequest:
    """Approve and, when no payment is outstanding, book the stay immediately."""
    return await service.approve_request(request_id, staff.id, body.notes if body else None)


@router.patch(
    "/night-credits/requests/{request_id}/reject",
    response_model=NightCreditRequestResponse,
    summary="Reject a night credit request",
)
async def reject_credit_request(
    request_id: uuid.UUID,
    body: StaffDecision | None = None,
    staff: User = Depends(require_staff),
    service: NightCreditService = Depends(get_night_credit_service),
) -> NightCreditRequest:
    return await service.reject_request(request_id, staff.id, body.notes if body else None)


@router.patch(
    "/night-credits/requests/{request_id}/complete",
    response_model=NightCreditRequestResponse,
    summary="Retry booking an approved request",
)
async def complete_credit_request(
    request_id: uuid.UUID,
    staff: User = Depends(require_staff),
    service: NightCreditService = Depends(get_night_credit_service),
) -> NightCreditRequest:
    """Retry the PMS booking for an approved request whose completion failed."""
    await service.get_request(request_id, staff.id)
    return await service.complete_request(request_id)
