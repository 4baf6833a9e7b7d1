"""Property model: hotels participating in the exchange."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from timeshare.database import Base, TimestampMixin, UUIDPrimaryKeyMixin


class Property(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A hotel whose weeks can be swapped and whose rooms can be booked with credits."""

    __tablename__ = "properties"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    location: Mapped[str | None] = mapped_column(String(255), default=None)
    status: Mapped[str] = mapped_column(String(50), default="active")  # active, inactive

    def __repr__(self) -> str:
        return f"<Property(id={self.id}, name={self.name!r})>"
