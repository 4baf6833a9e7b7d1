"""Shared API dependencies: single import point for all routers.

Re-exports the store and authentication dependencies and builds the
services from injectable collaborators, so tests can swap any of them via
``app.dependency_overrides``::

    from timeshare.api.deps import get_current_user, get_swap_service
"""

from fastapi import Depends

from timeshare.auth.dependencies import get_current_user, require_staff
from timeshare.billing.gateway import PaymentGateway
from timeshare.billing.stripe_client import StripePaymentGateway
from timeshare.pms.base import PmsAdapter
from timeshare.pms.factory import get_pms_adapter
from timeshare.repositories.base import Store
from timeshare.services.matcher import CompatibilityMatcher
from timeshare.services.night_credit_service import NightCreditService
from timeshare.services.peak_calendar import PeakCalendar
from timeshare.services.swap_service import SwapService
from timeshare.store import get_store


def get_peak_calendar() -> PeakCalendar:
    return PeakCalendar.from_settings()


def get_pms() -> PmsAdapter:
    return get_pms_adapter()


def get_payment_gateway() -> PaymentGateway:
    return StripePaymentGateway()


def get_swap_service(
    store: Store = Depends(get_store),
    peak_calendar: PeakCalendar = Depends(get_peak_calendar),
    payments: PaymentGateway = Depends(get_payment_gateway),
) -> SwapService:
    return SwapService(store, peak_calendar, payments)


def get_matcher(
    store: Store = Depends(get_store),
    peak_calendar: PeakCalendar = Depends(get_peak_calendar),
) -> CompatibilityMatcher:
    return CompatibilityMatcher(store, peak_calendar)


def get_night_credit_service(
    store: Store = Depends(get_store),
    peak_calendar: PeakCalendar = Depends(get_peak_calendar),
    pms: PmsAdapter = Depends(get_pms),
    payments: PaymentGateway = Depends(get_payment_gateway),
) -> NightCreditService:
    return NightCreditService(store, peak_calendar, pms, payments)


__all__ = [
    "get_store",
    "get_current_user",
    "require_staff",
    "get_peak_calendar",
    "get_pms",
    "get_payment_gateway",
    "get_swap_service",
    "get_matcher",
    "get_night_credit_service",
]
