"""Pydantic v2 request/response schemas for night-credit endpoints."""

import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from timeshare.domain.enums import CreditPaymentStatus, CreditRequestStatus, NightCreditStatus
from timeshare.schemas.common import BookingResponse

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class NightCreditRequestCreate(BaseModel):
    """Schema for asking a property to accept a stay paid with credits."""

    credit_id: uuid.UUID
    property_id: uuid.UUID
    check_in: date
    check_out: date
    nights_requested: int = Field(..., ge=1)
    additional_nights: int = Field(0, ge=0)
    room_type: str | None = Field(None, max_length=100)

    @model_validator(mode="after")
    def check_dates(self) -> "NightCreditRequestCreate":
        """Validate that check_out is strictly after check_in."""
        if self.check_out <= self.check_in:
            raise ValueError("check_out must be after check_in")
        return self


class UseCreditsRequest(BaseModel):
    """Schema for booking directly against a credit."""

    property_id: uuid.UUID
    check_in: date
    check_out: date
    room_type: str | None = Field(None, max_length=100)

    @model_validator(mode="after")
    def check_dates(self) -> "UseCreditsRequest":
        if self.check_out <= self.check_in:
            raise ValueError("check_out must be after check_in")
        return self


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class NightCreditResponse(BaseModel):
    id: uuid.UUID
    owner_id: uuid.UUID
    original_week_id: uuid.UUID | None = None
    total_nights: int
    remaining_nights: int
    expiry_date: datetime
    status: NightCreditStatus
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class NightCreditRequestResponse(BaseModel):
    id: uuid.UUID
    owner_id: uuid.UUID
    credit_id: uuid.UUID
    property_id: uuid.UUID
    check_in: date
    check_out: date
    nights_requested: int
    room_type: str | None = None
    status: CreditRequestStatus
    additional_nights: int
    additional_price: Decimal
    additional_commission: Decimal
    payment_intent_id: str | None = None
    payment_status: CreditPaymentStatus
    booking_id: uuid.UUID | None = None
    reviewed_by_staff_id: uuid.UUID | None = None
    review_date: datetime | None = None
    staff_notes: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class NightCreditRequestListResponse(BaseModel):
    items: list[NightCreditRequestResponse]
    total: int


class UseCreditsResponse(BaseModel):
    """Booking created (or replayed) by a credit redemption."""

    booking: BookingResponse
    replayed: bool = False
