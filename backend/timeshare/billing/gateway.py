"""Payment gateway contract used by the swap and night-credit services."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol


class PaymentError(Exception):
    """The gateway could not be reached or rejected the call."""


@dataclass(frozen=True)
class PaymentIntent:
    id: str
    client_secret: str | None
    amount: Decimal
    currency: str


@dataclass(frozen=True)
class PaymentConfirmation:
    success: bool
    amount: Decimal
    currency: str
    status: str = ""


class PaymentGateway(Protocol):
    async def create_payment_intent(
        self, amount: Decimal, currency: str, metadata: dict[str, str]
    ) -> PaymentIntent: ...

    async def confirm_payment(self, payment_intent_id: str) -> PaymentConfirmation: ...


def to_minor_units(amount: Decimal) -> int:
    """Decimal amount to integer cents."""
    return int((amount * 100).quantize(Decimal("1")))


def from_minor_units(amount: int) -> Decimal:
    return (Decimal(amount) / 100).quantize(Decimal("0.01"))
