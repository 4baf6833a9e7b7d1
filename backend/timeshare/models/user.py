"""User model: owners, property staff and administrators."""

import uuid

from sqlalchemy import Boolean, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from timeshare.database import Base, TimestampMixin, UUIDPrimaryKeyMixin, status_enum
from timeshare.domain.enums import UserRole


class User(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A marketplace member.

    Staff users carry the ``property_id`` they arbitrate swaps and night-credit
    requests for; owners and admins leave it empty.
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[UserRole] = mapped_column(status_enum(UserRole), default=UserRole.OWNER, nullable=False)
    property_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("properties.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} role={self.role!r}>"
