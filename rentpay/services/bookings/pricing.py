"""Fee breakdown for a booking.

Pure functions only: the same inputs always produce the same breakdown, so the
amount sent to the gateway can be recomputed exactly during an audit. Every
rounding step rounds up so the platform never undercharges.
"""

from datetime import date
from decimal import ROUND_CEILING, Decimal

from rentpay.common.records import Breakdown, PriceUnit
from rentpay.services.bookings.availability import validate_range

DEFAULT_PLATFORM_FEE_RATE = Decimal("0.15")
DEFAULT_SAFETY_DEPOSIT = 200


def _ceil(value: Decimal) -> int:
    return int(value.to_integral_value(rounding=ROUND_CEILING))


def duration_units(price_unit: PriceUnit, start: date, end: date) -> int:
    """Whole billable units covered by the inclusive range, at least one.

    A range of calendar dates spans from the start of `start` to the end of
    `end`, i.e. `(end - start).days + 1` full days.
    """

    validate_range(start, end)
    days = (end - start).days + 1
    if price_unit == PriceUnit.HOUR:
        units = days * 24
    elif price_unit == PriceUnit.DAY:
        units = days
    elif price_unit == PriceUnit.WEEK:
        units = _ceil(Decimal(days) / Decimal(7))
    else:
        raise ValueError(f"unknown price unit {price_unit!r}")
    return max(1, units)


def compute_breakdown(
    unit_price: Decimal,
    price_unit: PriceUnit,
    start: date,
    end: date,
    *,
    platform_fee_rate: Decimal = DEFAULT_PLATFORM_FEE_RATE,
    safety_deposit: int = DEFAULT_SAFETY_DEPOSIT,
) -> Breakdown:
    units = duration_units(PriceUnit(price_unit), start, end)
    rent_payment = _ceil(Decimal(str(unit_price)) * units)
    platform_fee = _ceil(Decimal(rent_payment) * Decimal(str(platform_fee_rate)))
    return Breakdown(
        rent_payment=rent_payment,
        platform_fee=platform_fee,
        safety_deposit=safety_deposit,
        total=rent_payment + platform_fee + safety_deposit,
    )


def to_minor_units(amount: int, minor_units: int = 100) -> int:
    """Convert a whole-unit amount to the gateway's minor unit (paise, cents)."""

    return amount * minor_units
