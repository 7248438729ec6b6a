"""Unit tests for the Betfair price ladder helpers."""

import pytest

from football_trader.services.pricing.ticks import get_tick_offset, round_2dp, within_ticks


class TestTickOffset:
    """Test the tick table bands."""

    @pytest.mark.parametrize(
        "price, tick",
        [
            (1.3, 0.01),
            (2.99, 0.02),
            (3.01, 0.05),
            (5.51, 0.1),
            (9.99, 0.2),
            (11, 0.5),
            (29.99, 1),
            (30.01, 2),
            (100, 10),
        ],
    )
    def test_price_bands(self, price, tick):
        """Each band of the ladder has its own increment."""
        assert get_tick_offset(price) == tick

    def test_band_boundaries_are_left_inclusive(self):
        """A whole price belongs to the band that starts at it."""
        assert get_tick_offset(4.0) == 0.1
        assert get_tick_offset(3.999) == 0.05
        assert get_tick_offset(2.0) == 0.02
        assert get_tick_offset(6.0) == 0.2
        assert get_tick_offset(10.0) == 0.5
        assert get_tick_offset(20.0) == 1
        assert get_tick_offset(30.0) == 2
        assert get_tick_offset(50.0) == 10
        assert get_tick_offset(49.99) == 2

    def test_prices_below_one_use_lowest_increment(self):
        """No-liquidity zero prices still get an increment."""
        assert get_tick_offset(0) == 0.01
        assert get_tick_offset(0.5) == 0.01

    def test_monotonic_across_ladder(self):
        """Increments never shrink as the price grows."""
        prices = [p / 100 for p in range(100, 10001, 7)]
        ticks = [get_tick_offset(p) for p in prices]
        assert ticks == sorted(ticks)


class TestWithinTicks:
    """Test spread comparison in ticks."""

    def test_exact_two_tick_spread_is_within(self):
        """Binary float noise must not push an exact two tick spread outside."""
        assert within_ticks(3.7, 3.8) is True
        assert within_ticks(2.52, 2.56) is True
        assert within_ticks(3.2, 3.3) is True

    def test_wide_spread_is_not_within(self):
        assert within_ticks(2.5, 2.7) is False
        assert within_ticks(4.0, 4.5) is False

    def test_uses_back_price_band(self):
        """3.95/4.05 is two 0.05 ticks at the back price band."""
        assert within_ticks(3.95, 4.05) is True
        assert within_ticks(3.95, 4.1) is False


def test_round_2dp():
    assert round_2dp(109.56521739) == 109.57
    assert round_2dp(-0.3499999999999996) == -0.35
    assert round_2dp(0.20000000000000018) == 0.2


@pytest.mark.parametrize(
    "value, expected",
    [
        (0.125, 0.13),
        (-0.125, -0.13),
        (1.005, 1.0),
        (2.675, 2.67),
    ],
)
def test_round_2dp_halves_round_away_from_zero(value, expected):
    """Exact binary halves of a cent go away from zero, other values to nearest."""
    assert round_2dp(value) == expected
