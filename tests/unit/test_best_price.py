"""Unit tests for best price selection from market book offers."""

from datetime import datetime, timezone
from decimal import Decimal

from football_trader.models.domain import Price
from football_trader.services.betfair_client.api import PriceSize, RunnerBook
from football_trader.services.pricing.store import price_from_runner, select_best_price
from tests.fakes import levels

TEST_ODDS = levels(
    ("2.12", "1321.33"),
    ("1.98", "672.21"),
    ("2.16", "1458.00"),
    ("2.14", "253.98"),
)


class TestSelectBestPrice:
    """Test linear best price selection."""

    def test_best_back_price_is_highest(self):
        best = select_best_price(TEST_ODDS, highest=True)
        assert best.price == Decimal("2.16")
        assert best.size == Decimal("1458.00")

    def test_best_lay_price_is_lowest(self):
        best = select_best_price(TEST_ODDS, highest=False)
        assert best.price == Decimal("1.98")
        assert best.size == Decimal("672.21")

    def test_empty_offers_mean_no_liquidity(self):
        """An empty side gives zero price and zero size."""
        for highest in (True, False):
            best = select_best_price([], highest=highest)
            assert best.price == 0
            assert best.size == 0

    def test_ties_keep_first_level(self):
        """Equal prices never replace the running best."""
        offers = levels(("2.0", "10"), ("2.5", "20"), ("2.5", "30"), ("1.5", "40"), ("1.5", "50"))
        assert select_best_price(offers, highest=True).size == Decimal("20")
        assert select_best_price(offers, highest=False).size == Decimal("40")

    def test_single_level(self):
        offers = [PriceSize(price=Decimal("3.4"), size=Decimal("12"))]
        assert select_best_price(offers, highest=True) == offers[0]
        assert select_best_price(offers, highest=False) == offers[0]


class TestPriceFromRunner:
    """Test snapshot construction from a runner book."""

    def test_back_and_lay_prices(self):
        """Back comes from the highest back offer, lay from the lowest lay offer."""
        runner = RunnerBook(
            selection_id=1,
            back_prices=levels(("2.12", "496.23"), ("2.14", "679.25"), ("2.16", "1258.93")),
            lay_prices=levels(("2.08", "87.36"), ("2.06", "378.78"), ("2.04", "862.47")),
        )
        observed_at = datetime(2022, 4, 6, 12, 30, tzinfo=timezone.utc)

        price = price_from_runner(runner, observed_at)

        assert price == Price(
            time_stamp="2022-04-06T12:30:00+00:00",
            back_price=2.16,
            back_amount=1258.93,
            lay_price=2.04,
            lay_amount=862.47,
        )

    def test_timestamp_defaults_to_now(self):
        runner = RunnerBook(selection_id=1)
        before = datetime.now(timezone.utc).replace(microsecond=0)

        price = price_from_runner(runner)

        assert datetime.fromisoformat(price.time_stamp) >= before
        assert price.back_price == 0
        assert price.lay_price == 0
