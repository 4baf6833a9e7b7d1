"""Week model: a timeshare ownership slot."""

import uuid
from datetime import date

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from timeshare.database import Base, TimestampMixin, UUIDPrimaryKeyMixin, status_enum
from timeshare.domain.enums import WeekStatus


class Week(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A bounded stay at a property, held by exactly one owner."""

    __tablename__ = "weeks"

    owner_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    property_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    accommodation_type: Mapped[str] = mapped_column(String(100), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[WeekStatus] = mapped_column(
        status_enum(WeekStatus),
        default=WeekStatus.AVAILABLE,
        nullable=False,
        index=True,
    )
    valid_until: Mapped[date | None] = mapped_column(Date, nullable=True)

    __table_args__ = (
        CheckConstraint("end_date > start_date", name="ck_weeks_dates"),
        Index("ix_weeks_property_dates", "property_id", "start_date", "end_date"),
    )

    @property
    def nights(self) -> int:
        return (self.end_date - self.start_date).days

    def __repr__(self) -> str:
        return f"<Week(id={self.id}, owner_id={self.owner_id}, status={self.status})>"
