"""
Price quotes are computed once from the vehicle's rates at booking time.
"""

from datetime import datetime, timedelta

import pytest

from fleet_rental.app.models.booking_enums import BookingType
from fleet_rental.app.services.pricing import calculate_price, TAX_RATE

START = datetime(2031, 6, 1, 10, 0)


def test_whole_days():
    quote = calculate_price(START, START + timedelta(days=3), price_per_day=100.0)

    assert quote.duration_days == 3
    assert quote.duration_hours == 0
    assert quote.base_price == 300.0
    assert quote.taxes == 54.0
    assert quote.discount == 0
    assert quote.total_price == 354.0


def test_partial_day_rounds_up():
    quote = calculate_price(START, START + timedelta(days=2, minutes=1), price_per_day=80.0)

    assert quote.duration_days == 3
    assert quote.base_price == 240.0


def test_short_booking_is_a_full_day():
    quote = calculate_price(START, START + timedelta(hours=2), price_per_day=100.0)

    assert quote.duration_days == 1
    assert quote.total_price == 118.0


def test_hourly_uses_hourly_rate():
    quote = calculate_price(
        START,
        START + timedelta(hours=3, minutes=10),
        price_per_day=100.0,
        price_per_hour=12.5,
        booking_type=BookingType.HOURLY,
    )

    assert quote.duration_hours == 4
    assert quote.base_price == 50.0
    assert quote.taxes == 9.0
    assert quote.total_price == 59.0


def test_hourly_without_rate_falls_back_to_days():
    """Vehicles without an hourly rate are charged per day."""
    quote = calculate_price(
        START, START + timedelta(hours=5), price_per_day=100.0, booking_type=BookingType.HOURLY
    )

    assert quote.duration_hours == 0
    assert quote.base_price == 100.0


@pytest.mark.parametrize("hourly_rate", [None, 0.0])
def test_missing_or_zero_hourly_rate_charges_per_day(hourly_rate):
    quote = calculate_price(
        START,
        START + timedelta(hours=3),
        price_per_day=80.0,
        price_per_hour=hourly_rate,
        booking_type=BookingType.HOURLY,
    )

    assert quote.duration_days == 1
    assert quote.base_price == 80.0
    assert quote.total_price == 94.4


def test_weekly_is_charged_per_day():
    quote = calculate_price(
        START, START + timedelta(days=7), price_per_day=50.0, price_per_hour=5.0, booking_type=BookingType.WEEKLY
    )

    assert quote.base_price == 350.0


def test_amounts_are_rounded_to_cents():
    quote = calculate_price(START, START + timedelta(days=1), price_per_day=33.33)

    assert quote.taxes == round(33.33 * TAX_RATE, 2)
    assert quote.total_price == round(quote.base_price + quote.taxes, 2)


@pytest.mark.parametrize("end", [START, START - timedelta(minutes=1)])
def test_end_not_after_start_raises(end):
    with pytest.raises(ValueError):
        calculate_price(START, end, price_per_day=100.0)
