"""Booking model: concrete reservations held in the PMS."""

import uuid
from datetime import date

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from timeshare.database import Base, TimestampMixin, UUIDPrimaryKeyMixin, status_enum
from timeshare.domain.enums import BookingOrigin, BookingStatus


class Booking(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A reservation at a property for specific dates.

    Created by a marketplace purchase, a night-credit redemption or a swap.
    ``idempotency_key`` is unique: a retried redemption can never create a
    second row.
    """

    __tablename__ = "bookings"

    property_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    owner_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    room_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    check_in: Mapped[date] = mapped_column(Date, nullable=False)
    check_out: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[BookingStatus] = mapped_column(
        status_enum(BookingStatus),
        default=BookingStatus.PENDING,
        nullable=False,
        index=True,
    )
    origin: Mapped[BookingOrigin] = mapped_column(
        status_enum(BookingOrigin),
        default=BookingOrigin.MARKETPLACE,
        nullable=False,
    )
    guest_token: Mapped[str | None] = mapped_column(String(128), nullable=True)
    pms_booking_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    pms_provider: Mapped[str | None] = mapped_column(String(50), nullable=True)
    payment_reference: Mapped[str | None] = mapped_column(String(255), nullable=True)
    idempotency_key: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    night_credit_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("night_credits.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    __table_args__ = (
        CheckConstraint("check_out > check_in", name="ck_bookings_dates"),
        Index("ix_bookings_property_dates", "property_id", "check_in", "check_out"),
    )

    @property
    def nights(self) -> int:
        return (self.check_out - self.check_in).days

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, property_id={self.property_id}, status={self.status})>"
