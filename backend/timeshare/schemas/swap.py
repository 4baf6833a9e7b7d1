"""Pydantic v2 request/response schemas for swap endpoints."""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from timeshare.domain.enums import (
    ResponderAcceptance,
    SourceType,
    StaffApprovalStatus,
    SwapPaymentStatus,
    SwapStatus,
)
from timeshare.domain.sources import SwapSource, make_source

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class SourceRef(BaseModel):
    """A week or a booking offered in a swap."""

    type: SourceType
    id: uuid.UUID

    def to_source(self) -> SwapSource:
        return make_source(self.type, self.id)


class SwapCreate(BaseModel):
    """Schema for opening a swap request."""

    requester_source: SourceRef
    responder_source: SourceRef | None = None
    notes: str | None = Field(None, max_length=2000)


class SwapAccept(BaseModel):
    """Responder slot, required when the swap has no responder yet."""

    responder_source: SourceRef | None = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class SwapResponse(BaseModel):
    """Full swap request state."""

    id: uuid.UUID
    requester_id: uuid.UUID
    responder_id: uuid.UUID | None = None
    property_id: uuid.UUID
    requester_source_type: SourceType
    requester_source_id: uuid.UUID
    responder_source_type: SourceType | None = None
    responder_source_id: uuid.UUID | None = None
    accommodation_type: str
    status: SwapStatus
    staff_approval_status: StaffApprovalStatus
    responder_acceptance: ResponderAcceptance
    payment_status: SwapPaymentStatus
    swap_fee: Decimal | None = None
    payment_intent_id: str | None = None
    paid_at: datetime | None = None
    reviewed_by_staff_id: uuid.UUID | None = None
    staff_review_date: datetime | None = None
    staff_notes: str | None = None
    responder_acceptance_date: datetime | None = None
    notes: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SwapListResponse(BaseModel):
    """List of swaps with a total count."""

    items: list[SwapResponse]
    total: int
