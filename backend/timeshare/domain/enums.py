"""Closed status vocabularies for every entity in the engine."""

import enum


class UserRole(str, enum.Enum):
    OWNER = "owner"
    STAFF = "staff"
    ADMIN = "admin"


class WeekStatus(str, enum.Enum):
    AVAILABLE = "available"
    CONFIRMED = "confirmed"
    CONVERTED = "converted"


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CHECKED_IN = "checked_in"
    CHECKED_OUT = "checked_out"
    CANCELLED = "cancelled"


class BookingOrigin(str, enum.Enum):
    MARKETPLACE = "marketplace"
    NIGHT_CREDIT = "night_credit"
    SWAP = "swap"


class SourceType(str, enum.Enum):
    WEEK = "week"
    BOOKING = "booking"


class SwapStatus(str, enum.Enum):
    PENDING = "pending"
    MATCHED = "matched"
    AWAITING_PAYMENT = "awaiting_payment"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class StaffApprovalStatus(str, enum.Enum):
    PENDING_REVIEW = "pending_review"
    APPROVED = "approved"
    REJECTED = "rejected"


class ResponderAcceptance(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class SwapPaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class NightCreditStatus(str, enum.Enum):
    ACTIVE = "active"
    USED = "used"


class CreditRequestStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    EXPIRED = "expired"
    COMPLETED = "completed"


class CreditPaymentStatus(str, enum.Enum):
    NOT_REQUIRED = "not_required"
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


# Status sets shared by the conflict checker and the matcher.
BLOCKING_BOOKING_STATUSES = frozenset(
    {BookingStatus.CONFIRMED, BookingStatus.PENDING, BookingStatus.CHECKED_IN}
)
BLOCKING_WEEK_STATUSES = frozenset({WeekStatus.AVAILABLE, WeekStatus.CONFIRMED})
IN_FLIGHT_SWAP_STATUSES = frozenset(
    {SwapStatus.PENDING, SwapStatus.MATCHED, SwapStatus.AWAITING_PAYMENT}
)
TERMINAL_SWAP_STATUSES = frozenset({SwapStatus.COMPLETED, SwapStatus.CANCELLED})
SWAPPABLE_BOOKING_STATUSES = frozenset({BookingStatus.CONFIRMED, BookingStatus.CHECKED_IN})
