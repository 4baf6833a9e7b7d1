"""Tests for the Stripe payment gateway with a mocked StripeClient."""

from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
import stripe

from timeshare.billing.gateway import PaymentError, from_minor_units, to_minor_units
from timeshare.billing.stripe_client import StripePaymentGateway

pytestmark = pytest.mark.asyncio


def _client() -> MagicMock:
    client = MagicMock()
    client.v1.payment_intents.create_async = AsyncMock(
        return_value=SimpleNamespace(id="pi_123", client_secret="pi_123_secret_abc", amount=1050, currency="eur")
    )
    client.v1.payment_intents.retrieve_async = AsyncMock(
        return_value=SimpleNamespace(id="pi_123", status="succeeded", amount=1050, currency="eur")
    )
    return client


class TestMinorUnits:
    async def test_conversion(self):
        assert to_minor_units(Decimal("10.50")) == 1050
        assert to_minor_units(Decimal("112.49")) == 11249
        assert from_minor_units(1050) == Decimal("10.50")


class TestStripePaymentGateway:
    async def test_create_payment_intent(self):
        client = _client()
        gateway = StripePaymentGateway(client)

        intent = await gateway.create_payment_intent(Decimal("10.50"), "eur", {"swap_id": "s1"})

        assert intent.id == "pi_123"
        assert intent.client_secret == "pi_123_secret_abc"
        assert intent.amount == Decimal("10.50")
        params = client.v1.payment_intents.create_async.call_args.kwargs["params"]
        assert params["amount"] == 1050
        assert params["currency"] == "eur"
        assert params["metadata"] == {"swap_id": "s1"}

    async def test_confirm_succeeded(self):
        gateway = StripePaymentGateway(_client())

        confirmation = await gateway.confirm_payment("pi_123")

        assert confirmation.success is True
        assert confirmation.amount == Decimal("10.50")
        assert confirmation.status == "succeeded"

    async def test_confirm_not_yet_paid(self):
        client = _client()
        client.v1.payment_intents.retrieve_async.return_value = SimpleNamespace(
            id="pi_123", status="requires_payment_method", amount=1050, currency="eur"
        )

        confirmation = await StripePaymentGateway(client).confirm_payment("pi_123")

        assert confirmation.success is False
        assert confirmation.status == "requires_payment_method"

    async def test_stripe_errors_become_payment_errors(self):
        client = _client()
        client.v1.payment_intents.create_async.side_effect = stripe.StripeError("card network down")
        client.v1.payment_intents.retrieve_async.side_effect = stripe.StripeError("not found")
        gateway = StripePaymentGateway(client)

        with pytest.raises(PaymentError):
            await gateway.create_payment_intent(Decimal("10.00"), "eur", {})
        with pytest.raises(PaymentError):
            await gateway.confirm_payment("pi_missing")
