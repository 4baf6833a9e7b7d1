"""Pydantic v2 schemas shared by several routers."""

import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from timeshare.domain.enums import BookingOrigin, BookingStatus, WeekStatus


class StaffDecision(BaseModel):
    """Optional free-text note recorded with an approval or a rejection."""

    notes: str | None = Field(None, max_length=2000)


class PaymentConfirm(BaseModel):
    """Identifier of the payment intent the client completed."""

    payment_intent_id: str = Field(..., min_length=1, max_length=255)


class PaymentIntentResponse(BaseModel):
    """Payment intent handed to the client to collect the payment."""

    id: str
    client_secret: str | None = None
    amount: Decimal
    currency: str

    model_config = ConfigDict(from_attributes=True)


class WeekResponse(BaseModel):
    """Timeshare week as exposed to owners."""

    id: uuid.UUID
    owner_id: uuid.UUID
    property_id: uuid.UUID
    accommodation_type: str
    start_date: date
    end_date: date
    status: WeekStatus
    valid_until: date | None = None
    nights: int

    model_config = ConfigDict(from_attributes=True)


class BookingResponse(BaseModel):
    """Booking created by a redemption or held by an owner."""

    id: uuid.UUID
    property_id: uuid.UUID
    owner_id: uuid.UUID | None = None
    room_type: str | None = None
    check_in: date
    check_out: date
    status: BookingStatus
    origin: BookingOrigin
    guest_token: str | None = None
    pms_booking_id: str | None = None
    pms_provider: str | None = None
    night_credit_id: uuid.UUID | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
