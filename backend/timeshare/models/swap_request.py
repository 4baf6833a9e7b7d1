"""SwapRequest model: an intent to exchange two slots between owners."""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import ForeignKey, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from timeshare.database import Base, TimestampMixin, UUIDPrimaryKeyMixin, status_enum
from timeshare.domain.enums import (
    ResponderAcceptance,
    SourceType,
    StaffApprovalStatus,
    SwapPaymentStatus,
    SwapStatus,
)
from timeshare.domain.sources import SwapSource, make_source


class SwapRequest(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Swap lifecycle record.

    ``requester_source_*`` / ``responder_source_*`` point at either a week or
    a booking; use :attr:`requester_source` / :attr:`responder_source` to get
    the typed :data:`SwapSource` instead of the raw pair.
    """

    __tablename__ = "swap_requests"

    requester_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    property_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    requester_source_type: Mapped[SourceType] = mapped_column(status_enum(SourceType), nullable=False)
    requester_source_id: Mapped[uuid.UUID] = mapped_column(nullable=False, index=True)
    responder_source_type: Mapped[SourceType | None] = mapped_column(status_enum(SourceType), nullable=True)
    responder_source_id: Mapped[uuid.UUID | None] = mapped_column(nullable=True, index=True)
    # Owner of the responder slot when it was attached
    responder_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    accommodation_type: Mapped[str] = mapped_column(String(100), nullable=False)

    status: Mapped[SwapStatus] = mapped_column(
        status_enum(SwapStatus),
        default=SwapStatus.PENDING,
        nullable=False,
        index=True,
    )
    staff_approval_status: Mapped[StaffApprovalStatus] = mapped_column(
        status_enum(StaffApprovalStatus),
        default=StaffApprovalStatus.PENDING_REVIEW,
        nullable=False,
    )
    responder_acceptance: Mapped[ResponderAcceptance] = mapped_column(
        status_enum(ResponderAcceptance),
        default=ResponderAcceptance.PENDING,
        nullable=False,
    )
    payment_status: Mapped[SwapPaymentStatus] = mapped_column(
        status_enum(SwapPaymentStatus),
        default=SwapPaymentStatus.PENDING,
        nullable=False,
    )

    swap_fee: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    payment_intent_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    paid_at: Mapped[datetime | None] = mapped_column(nullable=True)

    reviewed_by_staff_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    staff_review_date: Mapped[datetime | None] = mapped_column(nullable=True)
    staff_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    responder_acceptance_date: Mapped[datetime | None] = mapped_column(nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    @property
    def requester_source(self) -> SwapSource:
        return make_source(self.requester_source_type, self.requester_source_id)

    @property
    def responder_source(self) -> SwapSource | None:
        if self.responder_source_type is None or self.responder_source_id is None:
            return None
        return make_source(self.responder_source_type, self.responder_source_id)

    def __repr__(self) -> str:
        return f"<SwapRequest(id={self.id}, requester_id={self.requester_id}, status={self.status})>"
