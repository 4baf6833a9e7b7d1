"""Timeshare owner API router: credit balances, direct redemption, week conversion."""

import uuid

from fastapi import APIRouter, Depends, Header, Response, status

from timeshare.api.deps import get_current_user, get_night_credit_service
from timeshare.models import NightCredit, User
from timeshare.schemas.night_credit import NightCreditResponse, UseCreditsRequest, UseCreditsResponse
from timeshare.services.night_credit_service import NightCreditService

router = APIRouter(prefix="/api/v1/timeshare", tags=["timeshare"])


@router.get("/night-credits", response_model=list[NightCreditResponse], summary="List my night credits")
async def list_credits(
    current_user: User = Depends(get_current_user),
    service: NightCreditService = Depends(get_night_credit_service),
) -> list[NightCredit]:
    return await service.list_credits(current_user.id)


@router.post(
    "/night-credits/{credit_id}/use",
    response_model=UseCreditsResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Book a stay with night credits",
)
async def use_credits(
    credit_id: uuid.UUID,
    body: UseCreditsRequest,
    response: Response,
    idempotency_key: str | None = Header(None, alias="Idempotency-Key", max_length=255),
    current_user: User = Depends(get_current_user),
    service: NightCreditService = Depends(get_night_credit_service),
) -> dict:
    """Spend credits on a booking. Retrying with the same ``Idempotency-Key``
    returns the original booking with ``replayed: true``.
    """
    result = await service.use_credits(
        current_user.id,
        credit_id,
        body.property_id,
        body.check_in,
        body.check_out,
        room_type=body.room_type,
        idempotency_key=idempotency_key,
    )
    if result.replayed:
        response.status_code = status.HTTP_200_OK
    return {"booking": result.value, "replayed": result.replayed}


@router.post(
    "/weeks/{week_id}/convert",
    response_model=NightCreditResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Convert a week into night credits",
)
async def convert_week(
    week_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    service: NightCreditService = Depends(get_night_credit_service),
) -> NightCredit:
    return await service.convert_week(current_user.id, week_id)
