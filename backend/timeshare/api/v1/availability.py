"""Availability API router: exposes the conflict checker."""

import uuid
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status

from timeshare.api.deps import get_current_user, get_peak_calendar, get_store
from timeshare.models import User
from timeshare.repositories.base import Store
from timeshare.schemas.availability import AvailabilityResponse
from timeshare.services.conflicts import check_availability
from timeshare.services.peak_calendar import PeakCalendar

router = APIRouter(prefix="/api/v1/availability", tags=["availability"])


@router.get("", response_model=AvailabilityResponse, summary="Check a property's availability")
async def get_availability(
    property_id: uuid.UUID = Query(...),
    start_date: date = Query(...),
    end_date: date = Query(...),
    _user: User = Depends(get_current_user),
    store: Store = Depends(get_store),
    peak_calendar: PeakCalendar = Depends(get_peak_calendar),
) -> dict:
    if end_date <= start_date:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="end_date must be after start_date",
        )
    async with store.transaction() as tx:
        result = await check_availability(tx, property_id, start_date, end_date)
    return {
        "property_id": property_id,
        "start_date": start_date,
        "end_date": end_date,
        "available": result.available,
        "conflicts": result.conflicts.as_dict(),
        "peak": peak_calendar.overlaps_peak(start_date, end_date),
    }
