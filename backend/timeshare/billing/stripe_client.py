"""Async Stripe payment-intent wrapper for the exchange engine."""

import logging
from decimal import Decimal

import stripe
from stripe import StripeClient

from timeshare.billing.gateway import (
    PaymentConfirmation,
    PaymentError,
    PaymentIntent,
    from_minor_units,
    to_minor_units,
)
from timeshare.config import settings

logger = logging.getLogger(__name__)


def get_stripe_client() -> StripeClient:
    """Create a StripeClient instance with async HTTP support."""
    return StripeClient(
        settings.stripe_secret_key,
        http_client=stripe.HTTPXClient(),
    )


class StripePaymentGateway:
    """:class:`~timeshare.billing.gateway.PaymentGateway` backed by Stripe PaymentIntents."""

    def __init__(self, client: StripeClient | None = None) -> None:
        self._client = client

    @property
    def client(self) -> StripeClient:
        if self._client is None:
            self._client = get_stripe_client()
        return self._client

    async def create_payment_intent(
        self, amount: Decimal, currency: str, metadata: dict[str, str]
    ) -> PaymentIntent:
        logger.info("Creating Stripe payment intent for %s %s (%s)", amount, currency, metadata)
        try:
            intent = await self.client.v1.payment_intents.create_async(
                params={
                    "amount": to_minor_units(amount),
                    "currency": currency,
                    "metadata": metadata,
                    "automatic_payment_methods": {"enabled": True},
                }
            )
        except stripe.StripeError as exc:
            logger.warning("Stripe rejected payment intent creation: %s", exc.user_message or exc)
            raise PaymentError("Payment intent could not be created") from exc

        logger.info("Created Stripe payment intent %s", intent.id)
        return PaymentIntent(
            id=intent.id,
            client_secret=intent.client_secret,
            amount=from_minor_units(intent.amount),
            currency=intent.currency,
        )

    async def confirm_payment(self, payment_intent_id: str) -> PaymentConfirmation:
        """Retrieve the intent and report whether it has succeeded."""
        try:
            intent = await self.client.v1.payment_intents.retrieve_async(payment_intent_id)
        except stripe.StripeError as exc:
            logger.warning("Could not retrieve payment intent %s: %s", payment_intent_id, exc.user_message or exc)
            raise PaymentError("Payment intent could not be retrieved") from exc

        return PaymentConfirmation(
            success=intent.status == "succeeded",
            amount=from_minor_units(intent.amount),
            currency=intent.currency,
            status=intent.status,
        )
