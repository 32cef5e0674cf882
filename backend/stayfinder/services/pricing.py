"""Booking price breakdown and cancellation refund policy.

All money is handled as ``Decimal``. Fees are rounded to whole currency units
one stage at a time (half away from zero) and in a fixed order: cleaning and
service fees on the base price, then taxes on the post-fee subtotal. Changing
that order changes totals.
"""

import math
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from decimal import ROUND_HALF_UP, Decimal

from stayfinder.config import settings
from stayfinder.errors import InvalidDateRange

_WHOLE = Decimal("1")
_CENTS = Decimal("0.01")
_SECONDS_PER_DAY = 24 * 60 * 60


def round_whole(amount: Decimal) -> Decimal:
    """Round to a whole unit, halves away from zero."""
    return amount.quantize(_WHOLE, rounding=ROUND_HALF_UP)


def _as_datetime(value: date | datetime) -> datetime:
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def days_between(start: date | datetime, end: date | datetime) -> int:
    """Whole days from ``start`` to ``end``, rounded up. Negative when end is earlier."""
    delta = _as_datetime(end) - _as_datetime(start)
    return math.ceil(delta.total_seconds() / _SECONDS_PER_DAY)


def count_nights(check_in: date | datetime, check_out: date | datetime) -> int:
    """Number of nights in a stay.

    Raises:
        InvalidDateRange: If check-out is not strictly after check-in.
    """
    if _as_datetime(check_out) <= _as_datetime(check_in):
        raise InvalidDateRange()
    return days_between(check_in, check_out)


@dataclass(frozen=True)
class PricingRates:
    """Fee and tax rates applied to a stay."""

    cleaning_fee: Decimal
    service_fee: Decimal
    tax: Decimal

    @classmethod
    def from_settings(cls) -> "PricingRates":
        return cls(
            cleaning_fee=settings.cleaning_fee_rate,
            service_fee=settings.service_fee_rate,
            tax=settings.tax_rate,
        )


@dataclass(frozen=True)
class PriceBreakdown:
    """Itemised price of a stay. ``total`` is always the sum of the other items."""

    nights: int
    base_price: Decimal
    cleaning_fee: Decimal
    service_fee: Decimal
    taxes: Decimal

    @property
    def total(self) -> Decimal:
        return self.base_price + self.cleaning_fee + self.service_fee + self.taxes


def quote_stay(
    nightly_price: Decimal,
    check_in: date | datetime,
    check_out: date | datetime,
    rates: PricingRates | None = None,
) -> PriceBreakdown:
    """Price a stay of ``nightly_price`` per night between the two dates.

    Raises:
        InvalidDateRange: If check-out is not strictly after check-in.
    """
    rates = rates or PricingRates.from_settings()
    nights = count_nights(check_in, check_out)

    base_price = Decimal(nightly_price) * nights
    cleaning_fee = round_whole(base_price * rates.cleaning_fee)
    service_fee = round_whole(base_price * rates.service_fee)
    taxes = round_whole((base_price + cleaning_fee + service_fee) * rates.tax)

    return PriceBreakdown(
        nights=nights,
        base_price=base_price,
        cleaning_fee=cleaning_fee,
        service_fee=service_fee,
        taxes=taxes,
    )


# ---------------------------------------------------------------------------
# Cancellation refunds
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RefundTier:
    """Refund ``rate`` applies when at least ``min_days`` remain before check-in."""

    min_days: int
    rate: Decimal


def refund_tiers() -> tuple[RefundTier, ...]:
    """Configured tiers, most generous first."""
    return (
        RefundTier(min_days=settings.full_refund_min_days, rate=settings.full_refund_rate),
        RefundTier(min_days=settings.partial_refund_min_days, rate=settings.partial_refund_rate),
    )


def refund_rate(days_until_check_in: int, tiers: tuple[RefundTier, ...] | None = None) -> Decimal:
    for tier in tiers or refund_tiers():
        if days_until_check_in >= tier.min_days:
            return tier.rate
    return Decimal("0")


def compute_refund(
    total: Decimal,
    check_in: date | datetime,
    now: datetime | None = None,
    tiers: tuple[RefundTier, ...] | None = None,
) -> Decimal:
    """Refund owed when a booking is cancelled at ``now``.

    Days until check-in are rounded up, so a cancellation 6.2 days out counts
    as 7 days. The result is quantized to cents.
    """
    now = now or datetime.now(timezone.utc)
    days = days_between(now, check_in)
    rate = refund_rate(days, tiers)
    return (Decimal(total) * rate).quantize(_CENTS, rounding=ROUND_HALF_UP)
