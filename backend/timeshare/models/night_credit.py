"""Night-credit models: converted balances and redemption requests."""

import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, Date, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from timeshare.database import Base, TimestampMixin, UUIDPrimaryKeyMixin, status_enum
from timeshare.domain.enums import CreditPaymentStatus, CreditRequestStatus, NightCreditStatus


class NightCredit(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A depletable balance of nights obtained by converting a week."""

    __tablename__ = "night_credits"

    owner_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    original_week_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("weeks.id", ondelete="SET NULL"),
        nullable=True,
    )
    total_nights: Mapped[int] = mapped_column(Integer, nullable=False)
    remaining_nights: Mapped[int] = mapped_column(Integer, nullable=False)
    expiry_date: Mapped[datetime] = mapped_column(nullable=False)
    status: Mapped[NightCreditStatus] = mapped_column(
        status_enum(NightCreditStatus),
        default=NightCreditStatus.ACTIVE,
        nullable=False,
        index=True,
    )

    __table_args__ = (
        CheckConstraint(
            "remaining_nights >= 0 AND remaining_nights <= total_nights",
            name="ck_night_credits_balance",
        ),
    )

    def is_expired(self, now: datetime) -> bool:
        return self.expiry_date <= now

    def __repr__(self) -> str:
        return (
            f"<NightCredit(id={self.id}, owner_id={self.owner_id}, "
            f"remaining={self.remaining_nights}/{self.total_nights}, status={self.status})>"
        )


class NightCreditRequest(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """An owner's request to redeem credits at a property, reviewed by its staff."""

    __tablename__ = "night_credit_requests"

    owner_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    credit_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("night_credits.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    property_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    check_in: Mapped[date] = mapped_column(Date, nullable=False)
    check_out: Mapped[date] = mapped_column(Date, nullable=False)
    nights_requested: Mapped[int] = mapped_column(Integer, nullable=False)
    room_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    status: Mapped[CreditRequestStatus] = mapped_column(
        status_enum(CreditRequestStatus),
        default=CreditRequestStatus.PENDING,
        nullable=False,
        index=True,
    )

    # Paid top-up beyond the credit balance
    additional_nights: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    additional_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"), nullable=False)
    additional_commission: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"), nullable=False)
    payment_intent_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    payment_status: Mapped[CreditPaymentStatus] = mapped_column(
        status_enum(CreditPaymentStatus),
        default=CreditPaymentStatus.NOT_REQUIRED,
        nullable=False,
    )

    booking_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("bookings.id", ondelete="SET NULL"),
        nullable=True,
    )
    reviewed_by_staff_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    review_date: Mapped[datetime | None] = mapped_column(nullable=True)
    staff_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    @property
    def payment_outstanding(self) -> bool:
        return self.payment_status in (CreditPaymentStatus.PENDING, CreditPaymentStatus.FAILED)

    def __repr__(self) -> str:
        return f"<NightCreditRequest(id={self.id}, credit_id={self.credit_id}, status={self.status})>"
