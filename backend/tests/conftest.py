"""Shared test configuration and fixtures.

Every test gets a fresh in-memory store seeded with a small world: three
resorts, one staff member for two of them, an admin and three owners.
External collaborators (PMS, payment gateway) are replaced by recording
fakes, and the API client swaps them in through ``app.dependency_overrides``.

Dates used throughout stay in March and October so they never touch the
default peak periods (Christmas, Easter, summer).
"""

import asyncio
import uuid
from collections.abc import AsyncGenerator
from datetime import date, datetime, timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from timeshare.api.deps import get_payment_gateway, get_pms, get_store
from timeshare.auth.jwt import create_user_token
from timeshare.billing.gateway import PaymentConfirmation, PaymentIntent
from timeshare.domain.enums import (
    BookingOrigin,
    BookingStatus,
    NightCreditStatus,
    UserRole,
    WeekStatus,
)
from timeshare.main import app
from timeshare.models import Booking, NightCredit, Property, User, Week
from timeshare.pms.base import (
    PmsAdapter,
    PmsAvailability,
    PmsBookingPayload,
    PmsBookingResult,
)
from timeshare.repositories.memory import InMemoryStore
from timeshare.services.matcher import CompatibilityMatcher
from timeshare.services.night_credit_service import NightCreditService
from timeshare.services.peak_calendar import PeakCalendar
from timeshare.services.swap_service import SwapService

SPRING = date(2027, 3, 6)
AUTUMN = date(2027, 10, 2)


# ---------------------------------------------------------------------------
# Fakes for external collaborators
# ---------------------------------------------------------------------------


class FakePms(PmsAdapter):
    """Recording PMS whose answers are tuned per test."""

    provider = "fake"

    def __init__(self) -> None:
        self.status = "confirmed"
        self.available_nights = 30
        self.create_error: Exception | None = None
        self.cancel_error: Exception | None = None
        self.delay = 0.0
        self.created: list[PmsBookingPayload] = []
        self.cancelled: list[str] = []

    async def check_availability(
        self, property_id: uuid.UUID, start: date, end: date, nights: int
    ) -> PmsAvailability:
        return PmsAvailability(available=self.available_nights > 0, available_nights=self.available_nights)

    async def create_booking(self, payload: PmsBookingPayload) -> PmsBookingResult:
        self.created.append(payload)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.create_error is not None:
            raise self.create_error
        return PmsBookingResult(
            pms_booking_id=f"fake-{len(self.created)}",
            status=self.status,
            provider=self.provider,
            guest_token=uuid.uuid4().hex,
        )

    async def cancel_booking(self, pms_booking_id: str) -> None:
        if self.cancel_error is not None:
            raise self.cancel_error
        self.cancelled.append(pms_booking_id)


class FakePayments:
    """In-process payment gateway; ``succeed`` decides every confirmation."""

    def __init__(self) -> None:
        self.succeed = True
        self.intents: dict[str, PaymentIntent] = {}

    async def create_payment_intent(
        self, amount: Decimal, currency: str, metadata: dict[str, str]
    ) -> PaymentIntent:
        intent = PaymentIntent(
            id=f"pi_test_{len(self.intents) + 1}",
            client_secret=f"pi_test_{len(self.intents) + 1}_secret",
            amount=amount,
            currency=currency,
        )
        self.intents[intent.id] = intent
        return intent

    async def confirm_payment(self, payment_intent_id: str) -> PaymentConfirmation:
        intent = self.intents.get(payment_intent_id)
        if intent is None or not self.succeed:
            return PaymentConfirmation(
                success=False, amount=Decimal("0"), currency="eur", status="requires_payment_method"
            )
        return PaymentConfirmation(success=True, amount=intent.amount, currency=intent.currency, status="succeeded")


# ---------------------------------------------------------------------------
# Entity builders
# ---------------------------------------------------------------------------


def make_week(
    store: InMemoryStore,
    owner: User,
    prop: Property,
    start: date,
    *,
    nights: int = 7,
    accommodation_type: str = "2BR",
    status: WeekStatus = WeekStatus.AVAILABLE,
    valid_until: date | None = None,
) -> Week:
    week = Week(
        id=uuid.uuid4(),
        owner_id=owner.id,
        property_id=prop.id,
        accommodation_type=accommodation_type,
        start_date=start,
        end_date=start + timedelta(days=nights),
        status=status,
        valid_until=valid_until,
    )
    store.seed(week)
    return week


def make_booking(
    store: InMemoryStore,
    owner: User | None,
    prop: Property,
    check_in: date,
    *,
    nights: int = 7,
    room_type: str | None = "2BR",
    status: BookingStatus = BookingStatus.CONFIRMED,
) -> Booking:
    booking = Booking(
        id=uuid.uuid4(),
        owner_id=owner.id if owner else None,
        property_id=prop.id,
        room_type=room_type,
        check_in=check_in,
        check_out=check_in + timedelta(days=nights),
        status=status,
        origin=BookingOrigin.MARKETPLACE,
    )
    store.seed(booking)
    return booking


def make_credit(
    store: InMemoryStore,
    owner: User,
    *,
    nights: int = 6,
    remaining: int | None = None,
    expiry: datetime | None = None,
    status: NightCreditStatus = NightCreditStatus.ACTIVE,
) -> NightCredit:
    credit = NightCredit(
        id=uuid.uuid4(),
        owner_id=owner.id,
        total_nights=nights,
        remaining_nights=nights if remaining is None else remaining,
        expiry_date=expiry or datetime(2030, 1, 1),
        status=status,
    )
    store.seed(credit)
    return credit


def auth_headers(user: User) -> dict[str, str]:
    """Authorization headers for ``user``."""
    return {"Authorization": f"Bearer {create_user_token(user.id)}"}


# ---------------------------------------------------------------------------
# Store and seeded world
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def world(store: InMemoryStore) -> SimpleNamespace:
    """Resorts, staff and owners; weeks are added by the tests that need them."""
    resort = Property(id=uuid.uuid4(), name="Costa Brava Resort", location="Lloret de Mar")
    lodge = Property(id=uuid.uuid4(), name="Sierra Nevada Lodge", location="Granada")
    unstaffed = Property(id=uuid.uuid4(), name="Island Hideaway", location="Menorca")
    store.seed(resort, lodge, unstaffed)

    def _user(name: str, role: UserRole = UserRole.OWNER, prop: Property | None = None) -> User:
        user = User(
            id=uuid.uuid4(),
            email=f"{name.lower()}@example.com",
            name=name,
            role=role,
            property_id=prop.id if prop else None,
            is_active=True,
        )
        store.seed(user)
        return user

    return SimpleNamespace(
        resort=resort,
        lodge=lodge,
        unstaffed=unstaffed,
        resort_staff=_user("Rosa", UserRole.STAFF, resort),
        lodge_staff=_user("Luis", UserRole.STAFF, lodge),
        admin=_user("Admin", UserRole.ADMIN),
        alice=_user("Alice"),
        bob=_user("Bob"),
        carol=_user("Carol"),
    )


@pytest.fixture
def swap_weeks(store: InMemoryStore, world: SimpleNamespace) -> SimpleNamespace:
    """Alice's 2BR week at the resort and Bob's 2BR week at the lodge."""
    return SimpleNamespace(
        alice=make_week(store, world.alice, world.resort, SPRING),
        bob=make_week(store, world.bob, world.lodge, SPRING + timedelta(weeks=2)),
    )


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------


@pytest.fixture
def pms() -> FakePms:
    return FakePms()


@pytest.fixture
def payments() -> FakePayments:
    return FakePayments()


@pytest.fixture
def peak_calendar() -> PeakCalendar:
    return PeakCalendar.from_settings()


@pytest.fixture
def swap_service(store, peak_calendar, payments) -> SwapService:
    return SwapService(store, peak_calendar, payments, swap_fee=Decimal("10.00"), currency="eur")


@pytest.fixture
def matcher(store, peak_calendar) -> CompatibilityMatcher:
    return CompatibilityMatcher(store, peak_calendar)


@pytest.fixture
def credit_service(store, peak_calendar, pms, payments) -> NightCreditService:
    return NightCreditService(
        store,
        peak_calendar,
        pms,
        payments,
        pms_timeout=1.0,
        payment_timeout=1.0,
        currency="eur",
        peak_blocks_redemption=True,
    )


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def client(store, pms, payments) -> AsyncGenerator[AsyncClient, None]:
    """Provide an httpx AsyncClient wired to the in-memory store and fakes."""
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_pms] = lambda: pms
    app.dependency_overrides[get_payment_gateway] = lambda: payments

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac

    app.dependency_overrides.clear()
