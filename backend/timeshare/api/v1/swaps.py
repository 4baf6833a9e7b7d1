"""Swap request API router (owner side).

Routers only translate HTTP to service calls; domain errors propagate to the
``EngineError`` handler registered in ``main``.
"""

import uuid

from fastapi import APIRouter, Depends, Query, status

from timeshare.api.deps import get_current_user, get_matcher, get_swap_service
from timeshare.models import SwapRequest, User, Week
from timeshare.schemas.common import PaymentConfirm, PaymentIntentResponse, WeekResponse
from timeshare.schemas.swap import SwapAccept, SwapCreate, SwapListResponse, SwapResponse
from timeshare.services.matcher import CompatibilityMatcher, SwapRole
from timeshare.services.swap_service import SwapService

router = APIRouter(prefix="/api/v1", tags=["swaps"])


@router.post(
    "/swaps",
    response_model=SwapResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Open a swap request",
)
async def create_swap(
    body: SwapCreate,
    current_user: User = Depends(get_current_user),
    service: SwapService = Depends(get_swap_service),
) -> SwapRequest:
    """Offer one of your weeks or bookings, optionally naming the slot you want."""
    return await service.create_swap(
        current_user.id,
        body.requester_source.to_source(),
        body.responder_source.to_source() if body.responder_source else None,
        notes=body.notes,
    )


@router.get("/swaps", response_model=SwapListResponse, summary="List my swaps")
async def list_my_swaps(
    role: SwapRole = Query("both"),
    current_user: User = Depends(get_current_user),
    matcher: CompatibilityMatcher = Depends(get_matcher),
) -> dict:
    swaps = await matcher.get_owner_swaps(current_user.id, role)
    return {"items": swaps, "total": len(swaps)}


@router.get("/swaps/available", response_model=SwapListResponse, summary="Open swaps I can answer")
async def list_available_swaps(
    current_user: User = Depends(get_current_user),
    matcher: CompatibilityMatcher = Depends(get_matcher),
) -> dict:
    swaps = await matcher.get_available_swaps_for_user(current_user.id)
    return {"items": swaps, "total": len(swaps)}


@router.get("/swaps/{swap_id}", response_model=SwapResponse, summary="Get a swap request")
async def get_swap(
    swap_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    service: SwapService = Depends(get_swap_service),
) -> SwapRequest:
    return await service.get_swap(swap_id, current_user.id)


@router.post("/swaps/{swap_id}/accept", response_model=SwapResponse, summary="Accept as responder")
async def accept_swap(
    swap_id: uuid.UUID,
    body: SwapAccept | None = None,
    current_user: User = Depends(get_current_user),
    service: SwapService = Depends(get_swap_service),
) -> SwapRequest:
    source = body.responder_source.to_source() if body and body.responder_source else None
    return await service.accept_swap(swap_id, current_user.id, source)


@router.post("/swaps/{swap_id}/reject", response_model=SwapResponse, summary="Reject as responder")
async def reject_swap(
    swap_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    service: SwapService = Depends(get_swap_service),
) -> SwapRequest:
    return await service.reject_as_responder(swap_id, current_user.id)


@router.post("/swaps/{swap_id}/cancel", response_model=SwapResponse, summary="Cancel my swap request")
async def cancel_swap(
    swap_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    service: SwapService = Depends(get_swap_service),
) -> SwapRequest:
    return await service.cancel_swap(swap_id, current_user.id)


@router.post(
    "/swaps/{swap_id}/payment-intent",
    response_model=PaymentIntentResponse,
    summary="Create the swap fee payment intent",
)
async def create_swap_payment_intent(
    swap_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    service: SwapService = Depends(get_swap_service),
):
    return await service.create_payment_intent(swap_id, current_user.id)


@router.post(
    "/swaps/{swap_id}/confirm-payment",
    response_model=SwapResponse,
    summary="Confirm the fee payment and complete the swap",
)
async def confirm_swap_payment(
    swap_id: uuid.UUID,
    body: PaymentConfirm,
    current_user: User = Depends(get_current_user),
    service: SwapService = Depends(get_swap_service),
) -> SwapRequest:
    return await service.confirm_payment(swap_id, current_user.id, body.payment_intent_id)


@router.get(
    "/weeks/{week_id}/compatible",
    response_model=list[WeekResponse],
    summary="Weeks compatible with one of mine",
)
async def compatible_weeks(
    week_id: uuid.UUID,
    property_id: uuid.UUID | None = Query(None),
    limit: int | None = Query(None, ge=1, le=200),
    current_user: User = Depends(get_current_user),
    matcher: CompatibilityMatcher = Depends(get_matcher),
) -> list[Week]:
    return await matcher.find_compatible_weeks(week_id, current_user.id, property_id=property_id, limit=limit)
