"""Owner night-credit request API router."""

import uuid

from fastapi import APIRouter, Depends, status

from timeshare.api.deps import get_current_user, get_night_credit_service
from timeshare.models import NightCreditRequest, User
from timeshare.schemas.common import PaymentConfirm, PaymentIntentResponse
from timeshare.schemas.night_credit import (
    NightCreditRequestCreate,
    NightCreditRequestListResponse,
    NightCreditRequestResponse,
)
from timeshare.services.night_credit_service import NightCreditService

router = APIRouter(prefix="/api/v1/owner/night-credits", tags=["night-credits"])


@router.post(
    "/requests",
    response_model=NightCreditRequestResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Request a stay paid with night credits",
)
async def create_request(
    body: NightCreditRequestCreate,
    current_user: User = Depends(get_current_user),
    service: NightCreditService = Depends(get_night_credit_service),
) -> NightCreditRequest:
    return await service.create_request(
        current_user.id,
        body.credit_id,
        body.property_id,
        body.check_in,
        body.check_out,
        body.nights_requested,
        additional_nights=body.additional_nights,
        room_type=body.room_type,
    )


@router.get("/requests", response_model=NightCreditRequestListResponse, summary="List my requests")
async def list_requests(
    current_user: User = Depends(get_current_user),
    service: NightCreditService = Depends(get_night_credit_service),
) -> dict:
    requests = await service.list_owner_requests(current_user.id)
    return {"items": requests, "total": len(requests)}


@router.get("/requests/{request_id}", response_model=NightCreditRequestResponse, summary="Get a request")
async def get_request(
    request_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    service: NightCreditService = Depends(get_night_credit_service),
) -> NightCreditRequest:
    return await service.get_request(request_id, current_user.id)


@router.post(
    "/requests/{request_id}/pay",
    response_model=PaymentIntentResponse,
    summary="Create the payment intent for extra nights",
)
async def pay_request(
    request_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    service: NightCreditService = Depends(get_night_credit_service),
):
    return await service.create_payment_intent(request_id, current_user.id)


@router.post(
    "/requests/{request_id}/confirm-payment",
    response_model=NightCreditRequestResponse,
    summary="Confirm the extra-nights payment and book the stay",
)
async def confirm_request_payment(
    request_id: uuid.UUID,
    body: PaymentConfirm,
    current_user: User = Depends(get_current_user),
    service: NightCreditService = Depends(get_night_credit_service),
) -> NightCreditRequest:
    return await service.confirm_payment(request_id, current_user.id, body.payment_intent_id)


@router.delete("/requests/{request_id}", response_model=NightCreditRequestResponse, summary="Cancel a request")
async def cancel_request(
    request_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    service: NightCreditService = Depends(get_night_credit_service),
) -> NightCreditRequest:
    return await service.cancel_request(request_id, current_user.id)
