"""Tests for extra-night pricing."""

from decimal import Decimal

from timeshare.config import settings
from timeshare.services.pricing import extra_nights_price, price_breakdown


class TestPriceBreakdown:
    def test_commission_on_top_of_base(self):
        breakdown = price_breakdown(Decimal("300.00"), Decimal("10"))
        assert breakdown.commission == Decimal("30.00")
        assert breakdown.guest_price == Decimal("330.00")
        assert breakdown.hotel_payout == Decimal("300.00")

    def test_rounds_half_up_to_cents(self):
        breakdown = price_breakdown(Decimal("99.99"), Decimal("12.5"))
        # 12.49875 rounds up
        assert breakdown.commission == Decimal("12.50")
        assert breakdown.guest_price == Decimal("112.49")

    def test_zero_rate(self):
        breakdown = price_breakdown(Decimal("50"), Decimal("0"))
        assert breakdown.guest_price == Decimal("50.00")
        assert breakdown.commission == Decimal("0.00")


class TestExtraNightsPrice:
    def test_uses_configured_base_price(self):
        breakdown = extra_nights_price(2)
        assert breakdown.base_price == (settings.extra_night_base_price * 2).quantize(Decimal("0.01"))
        assert breakdown.commission_rate == settings.commission_rate
