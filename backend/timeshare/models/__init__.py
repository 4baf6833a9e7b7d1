"""SQLAlchemy models for the timeshare exchange engine.

All models are imported here so that Alembic's autogenerate can discover
them via Base.metadata. If you add a new model, import it in this file.
"""

from timeshare.models.booking import Booking
from timeshare.models.night_credit import NightCredit, NightCreditRequest
from timeshare.models.property import Property
from timeshare.models.swap_request import SwapRequest
from timeshare.models.user import User
from timeshare.models.week import Week

__all__ = [
    "Booking",
    "NightCredit",
    "NightCreditRequest",
    "Property",
    "SwapRequest",
    "User",
    "Week",
]
