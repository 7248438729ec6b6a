"""Betfair price ladder helpers."""

import math
from decimal import ROUND_HALF_UP, Decimal

# (lowest whole price in band, increment), highest band first
TICK_INCREMENTS = [
    (50, 10.00),
    (30, 2.00),
    (20, 1.00),
    (10, 0.50),
    (6, 0.20),
    (4, 0.10),
]

# Below 4 the increment changes with every whole unit of price
LOW_BAND_TICKS = {
    1: 0.01,
    2: 0.02,
    3: 0.05,
}


def get_tick_offset(price: float) -> float:
    """
    Get the minimum price increment at a given price.

    Banding uses the integer floor of the price, so a band boundary such
    as 4.00 belongs to the band above it. Prices under 1 use the 1.01-1.99
    increment.
    """
    band = math.floor(price)
    for lowest, increment in TICK_INCREMENTS:
        if band >= lowest:
            return increment
    return LOW_BAND_TICKS.get(band, 0.01)


def round_2dp(value: float) -> float:
    """
    Round a price or currency amount to 2 decimal places.

    Exact halves of a cent round away from zero, unlike the builtin round.
    """
    cents = Decimal(value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return float(cents) / 100


def within_ticks(back_price: float, lay_price: float, ticks: int = 2) -> bool:
    """Check whether the back/lay spread is at most `ticks` increments wide."""
    spread = round_2dp(lay_price - back_price)
    return spread <= round_2dp(ticks * get_tick_offset(back_price))
