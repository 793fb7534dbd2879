"""
Booking price calculation.

A booking's price is computed once, at creation, from the vehicle's rates at
that moment. Nothing recomputes it afterwards.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from fleet_rental.app.models.booking_enums import BookingType

TAX_RATE = 0.18

ONE_DAY = timedelta(days=1)
ONE_HOUR = timedelta(hours=1)


@dataclass(frozen=True)
class PriceQuote:
    duration_days: int
    duration_hours: int
    base_price: float
    taxes: float
    discount: float
    total_price: float


def _round_cents(amount: float) -> float:
    return round(amount, 2)


def calculate_price(
    start_date: datetime,
    end_date: datetime,
    price_per_day: float,
    price_per_hour: Optional[float] = None,
    booking_type: BookingType = BookingType.DAILY,
) -> PriceQuote:
    """
    Quote a booking.

    Partial days and hours round up. Hourly bookings use the hourly rate only
    when the vehicle has a non-zero one; otherwise they are charged per day like any
    other type. Tax is TAX_RATE of the base, discount is always 0.

    Raises:
        ValueError: If end_date is not after start_date
    """
    if end_date <= start_date:
        raise ValueError("end_date must be after start_date")

    span = end_date - start_date
    days = math.ceil(span / ONE_DAY)
    hours = 0

    if booking_type == BookingType.HOURLY and price_per_hour:
        hours = math.ceil(span / ONE_HOUR)
        base = price_per_hour * hours
    else:
        base = price_per_day * days

    base = _round_cents(base)
    taxes = _round_cents(base * TAX_RATE)
    discount = 0.0

    return PriceQuote(
        duration_days=days,
        duration_hours=hours,
        base_price=base,
        taxes=taxes,
        discount=discount,
        total_price=_round_cents(base + taxes - discount),
    )
