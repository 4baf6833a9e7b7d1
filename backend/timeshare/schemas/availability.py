"""Pydantic v2 schemas for the availability endpoint."""

import uuid
from datetime import date

from pydantic import BaseModel


class ConflictCountsResponse(BaseModel):
    bookings: int
    weeks: int
    swaps: int


class AvailabilityResponse(BaseModel):
    """Conflict checker result for a property and date range."""

    property_id: uuid.UUID
    start_date: date
    end_date: date
    available: bool
    conflicts: ConflictCountsResponse
    peak: bool = False
