"""Unit tests for trend extraction."""

import pytest

from football_trader.models.domain import FixturePrices, Price
from football_trader.services.analysis.trends import (
    count_price_changes,
    extract_trend_from_fixture,
    extract_trends,
    find_start_index,
)


def price(back: float, lay: float, stamp: str = "2022-04-06T10:00:00Z") -> Price:
    return Price(time_stamp=stamp, back_price=back, lay_price=lay, back_amount=10, lay_amount=10)


def fixture_with(home_prices: list[Price], away_prices: list[Price], name: str = "Home v Away"):
    return FixturePrices(
        fixture=name,
        event_id="fixture1",
        market_id="1.1",
        home_runner=1,
        away_runner=2,
        history={1: home_prices, 2: away_prices},
    )


class TestFindStartIndex:
    """Test locating the settled entry point."""

    def test_first_settled_snapshot(self):
        prices = [price(2.5, 2.7), price(2.52, 2.56), price(2.4, 2.42)]
        assert find_start_index(prices) == 1

    def test_spread_of_exactly_two_ticks_is_settled(self):
        # 0.10 == 2 ticks of 0.05 in the 3.00-3.95 band
        assert find_start_index([price(3.2, 3.3)]) == 0

    def test_wider_spread_never_settles(self):
        assert find_start_index([price(4.0, 4.5), price(4.1, 4.6)]) is None

    def test_empty_history(self):
        assert find_start_index([]) is None

    def test_one_sided_book_is_not_settled(self):
        """A zero lay price is an empty lay side, not a narrow spread."""
        assert find_start_index([price(3.0, 0.0), price(3.0, 3.05)]) == 1

    def test_empty_book_is_not_settled(self):
        assert find_start_index([price(0.0, 0.0), price(0.0, 3.05), price(3.0, 3.05)]) == 2


class TestCountPriceChanges:
    """Test counting lay price moves."""

    def test_shortening_moves_follow_upward_trend(self):
        prices = [price(2.5, 2.56), price(2.4, 2.42), price(2.3, 2.32)]
        assert count_price_changes(prices, trending_up=True) == (2, 0)

    def test_moves_against_trend(self):
        prices = [price(2.5, 2.56), price(2.5, 2.6), price(2.3, 2.32)]
        assert count_price_changes(prices, trending_up=True) == (1, 1)

    def test_unchanged_lay_is_not_a_move(self):
        prices = [price(2.5, 2.56), price(2.52, 2.56)]
        assert count_price_changes(prices, trending_up=False) == (0, 0)


class TestExtractTrendFromFixture:
    """Test per-fixture trend extraction."""

    def test_sample_fixture(self, sample_store):
        fixture = sample_store.leagues["league1"]["fixture1"]

        home, away = extract_trend_from_fixture(fixture)

        assert home.team == "Leeds"
        assert home.home is True
        assert home.fixture == "Leeds v Southampton"
        assert home.start_time == "2022-04-06T11:00:00Z"
        assert home.start_price == 2.52
        assert home.start_lay_price == 2.56
        assert home.delta == 0.2
        assert home.trending_up is True
        assert home.sample_number == 3
        assert (home.price_changes, home.price_changes_against_trend) == (2, 0)

        assert away.team == "Southampton"
        assert away.home is False
        assert away.start_price == 3.2
        assert away.start_lay_price == 3.3
        assert away.delta == -0.35
        assert away.trending_up is False
        assert away.sample_number == 4
        assert (away.price_changes, away.price_changes_against_trend) == (3, 0)

    def test_current_prices_are_exit_side(self, sample_store):
        """current_price is the latest lay and current_lay_price the latest back."""
        home, _ = extract_trend_from_fixture(sample_store.leagues["league1"]["fixture1"])
        assert home.current_price == 2.32
        assert home.current_lay_price == 2.3

    def test_away_side_uses_its_own_history(self):
        fixture = fixture_with(
            [price(2.0, 2.02), price(1.9, 1.92)],
            [price(5.0, 5.2), price(6.0, 6.2)],
        )

        _, away = extract_trend_from_fixture(fixture)

        assert away.start_price == 5.0
        assert away.current_price == 6.2
        assert away.delta == -1.2

    def test_latest_price_skips_empty_lay_side(self):
        """A trailing snapshot with no lay offer never becomes the exit price."""
        fixture = fixture_with(
            [price(2.5, 2.52), price(2.4, 2.44), price(2.4, 0.0)],
            [price(3.0, 3.05)],
        )

        home, _ = extract_trend_from_fixture(fixture)

        assert home.current_price == 2.44
        assert home.current_lay_price == 2.4
        assert home.delta == 0.06
        assert home.sample_number == 3
        assert (home.price_changes, home.price_changes_against_trend) == (1, 0)

    def test_unsettled_side_drops_fixture(self, sample_store):
        assert extract_trend_from_fixture(sample_store.leagues["league1"]["fixture2"]) == []
        assert extract_trend_from_fixture(sample_store.leagues["league2"]["fixture4"]) == []

    @pytest.mark.parametrize("name", ["Mainz 05 - Dortmund", "Mainz", "A v B v C"])
    def test_malformed_fixture_name(self, name):
        fixture = fixture_with([price(2.0, 2.02)], [price(3.0, 3.05)], name=name)
        assert extract_trend_from_fixture(fixture) == []

    def test_unbound_runners_have_no_history(self):
        fixture = FixturePrices(fixture="Home v Away", event_id="fixture1")
        assert extract_trend_from_fixture(fixture) == []


class TestExtractTrends:
    """Test store-wide extraction."""

    def test_sorted_by_delta(self, sample_store):
        trends = extract_trends(sample_store)

        assert [(t.team, t.delta) for t in trends] == [
            ("Southampton", -0.35),
            ("Leeds", 0.2),
        ]

    def test_empty_store(self, empty_store):
        assert extract_trends(empty_store) == []
