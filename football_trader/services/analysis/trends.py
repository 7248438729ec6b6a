"""Price trend extraction.

Compares each team's price at the point its market settled with its
latest price.

Key concepts:
- Settled entry point: the first two-sided snapshot where the back/lay spread is
  within two ticks of the back price. Before that the market is too thin
  to trade.
- Delta: entry back price minus latest lay price. Positive means the price
  has shortened since entry and a lay now would lock in a profit.
"""

import structlog

from football_trader.models.domain import FixturePrices, Price, Trend
from football_trader.services.pricing.store import PriceStore
from football_trader.services.pricing.ticks import round_2dp, within_ticks

logger = structlog.get_logger(__name__)

# Spread, in ticks, at which a market is considered settled
SETTLED_SPREAD_TICKS = 2


def has_liquidity(price: Price) -> bool:
    """A zero back or lay price means that side of the book was empty."""
    return price.back_price > 0 and price.lay_price > 0


def find_start_index(prices: list[Price]) -> int | None:
    """Index of the first two-sided snapshot with a spread of at most two ticks."""
    for idx, price in enumerate(prices):
        if not has_liquidity(price):
            continue
        if within_ticks(price.back_price, price.lay_price, SETTLED_SPREAD_TICKS):
            return idx
    return None


def count_price_changes(prices: list[Price], trending_up: bool) -> tuple[int, int]:
    """
    Count lay price moves with and against the trend.

    A falling lay price is a move with an upward (shortening) trend.

    Returns:
        (moves with the trend, moves against the trend)
    """
    with_trend = 0
    against_trend = 0
    for previous, current in zip(prices, prices[1:]):
        if current.lay_price == previous.lay_price:
            continue
        shortened = current.lay_price < previous.lay_price
        if shortened == trending_up:
            with_trend += 1
        else:
            against_trend += 1
    return with_trend, against_trend


def build_trend(
    fixture: FixturePrices,
    team: str,
    home: bool,
    prices: list[Price],
    start: int,
) -> Trend:
    """
    Build the trend for one side from its settled entry point.

    Snapshots with no lay offer are skipped when picking the latest price
    and counting moves. The entry snapshot always has one.
    """
    entry = prices[start]
    quoted = [price for price in prices[start:] if price.lay_price > 0]
    latest = quoted[-1]
    delta = round_2dp(entry.back_price - latest.lay_price)
    with_trend, against_trend = count_price_changes(quoted, delta > 0)
    return Trend(
        fixture=fixture.fixture,
        team=team,
        home=home,
        start_time=entry.time_stamp,
        start_price=entry.back_price,
        start_lay_price=entry.lay_price,
        current_price=latest.lay_price,
        current_lay_price=latest.back_price,
        delta=delta,
        sample_number=len(prices) - start,
        price_changes=with_trend,
        price_changes_against_trend=against_trend,
    )


def extract_trend_from_fixture(fixture: FixturePrices) -> list[Trend]:
    """
    Extract the home and away trends of a fixture.

    Fixtures whose name is not "Home v Away" are skipped, and both sides
    need a settled entry point or the fixture yields nothing.
    """
    teams = fixture.teams()
    if teams is None:
        logger.debug("fixture_name_unsplittable", fixture=fixture.fixture)
        return []

    trends = []
    sides = (
        (teams[0], True, fixture.home_runner),
        (teams[1], False, fixture.away_runner),
    )
    for team, home, runner_id in sides:
        prices = fixture.history.get(runner_id, [])
        start = find_start_index(prices)
        if start is None:
            logger.debug("fixture_never_settled", fixture=fixture.fixture, team=team)
            return []
        trends.append(build_trend(fixture, team, home, prices, start))
    return trends


def extract_trends(store: PriceStore) -> list[Trend]:
    """All fixture trends in the store, sorted by ascending delta."""
    trends = []
    for fixture in store.fixtures():
        trends.extend(extract_trend_from_fixture(fixture))

    trends.sort(key=lambda trend: trend.delta)
    logger.info("trends_extracted", trends=len(trends))
    return trends
