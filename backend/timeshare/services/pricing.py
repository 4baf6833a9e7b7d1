"""Guest pricing for paid nights: hotel price plus platform commission."""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from timeshare.config import settings

_CENT = Decimal("0.01")


@dataclass(frozen=True)
class PriceBreakdown:
    base_price: Decimal
    commission_rate: Decimal
    commission: Decimal
    guest_price: Decimal

    @property
    def hotel_payout(self) -> Decimal:
        return self.base_price


def price_breakdown(base_price: Decimal, commission_rate: Decimal | None = None) -> PriceBreakdown:
    """Split a hotel price into what the guest pays and what the platform keeps."""
    rate = settings.commission_rate if commission_rate is None else commission_rate
    base = Decimal(base_price).quantize(_CENT, rounding=ROUND_HALF_UP)
    commission = (base * rate / Decimal(100)).quantize(_CENT, rounding=ROUND_HALF_UP)
    return PriceBreakdown(
        base_price=base,
        commission_rate=rate,
        commission=commission,
        guest_price=base + commission,
    )


def extra_nights_price(nights: int) -> PriceBreakdown:
    """Price of ``nights`` paid nights at the configured per-night base price."""
    return price_breakdown(settings.extra_night_base_price * nights)
