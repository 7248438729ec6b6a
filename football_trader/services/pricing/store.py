"""Price store.

Holds the price history of every tracked fixture, keyed by league id and
then Betfair event id, and keeps it in step with the exchange:

1. listEvents per league inside the fixture window
2. register unseen events as scheduled fixtures
3. listMarketCatalogue (MATCH_ODDS) for those events and bind each market
   to its fixture by team name
4. listMarketBook for the bound markets and append one Price per team
   runner to the fixture history

The whole tree is persisted as a single JSON document. Earlier generations
are kept as timestamped backups next to it.
"""

import time
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path
from typing import Any

import structlog
from pydantic import TypeAdapter

from football_trader.config import get_settings
from football_trader.models.domain import (
    FixturePrices,
    MatchStatus,
    Price,
    StorePrices,
)
from football_trader.models.query import MarketQuery
from football_trader.services.betfair_client import BetfairClient
from football_trader.services.betfair_client.api import (
    MarketBook,
    MarketCatalogue,
    PriceSize,
    RunnerBook,
)

logger = structlog.get_logger(__name__)

_store_adapter = TypeAdapter(StorePrices)

DEFAULT_TRACKING_CONFIG: dict[str, Any] = {
    "event_type_ids": ["1"],
    "market_types": ["MATCH_ODDS"],
    "default_window_days": 7,
    "price_depth": 3,
}


class StorePersistenceError(Exception):
    """Raised when the store file cannot be backed up or written."""

    pass


def select_best_price(levels: list[PriceSize], highest: bool) -> PriceSize:
    """
    Pick the best level from an unordered list of offers.

    The first level seeds the running best and later levels replace it only
    on strict improvement, so ties keep the earliest level. An empty list
    gives a zero price and size, meaning no liquidity.

    Args:
        levels: Offers as returned in the market book
        highest: True for back offers (highest price is best),
                 False for lay offers (lowest price is best)
    """
    best: PriceSize | None = None
    for level in levels:
        if best is None:
            best = level
        elif highest and level.price > best.price:
            best = level
        elif not highest and level.price < best.price:
            best = level

    if best is None:
        return PriceSize(price=Decimal("0"), size=Decimal("0"))
    return best


def price_from_runner(runner: RunnerBook, observed_at: datetime | None = None) -> Price:
    """Build a price snapshot from the best back and lay offers of a runner."""
    observed_at = observed_at or datetime.now(timezone.utc)
    back = select_best_price(runner.back_prices, highest=True)
    lay = select_best_price(runner.lay_prices, highest=False)
    return Price(
        time_stamp=observed_at.isoformat(timespec="seconds"),
        back_price=float(back.price),
        back_amount=float(back.size),
        lay_price=float(lay.price),
        lay_amount=float(lay.size),
    )


def fixture_window(
    query: MarketQuery,
    now: datetime,
    window_days: int = 7,
) -> tuple[datetime, datetime]:
    """
    Work out the fixture start window for a query.

    Defaults to now .. now + window_days. mindays moves the start (and the
    end with it); maxdays, when given, fixes the end at now + maxdays.
    """
    after = now
    if query.min_days > 0:
        after = now + timedelta(days=query.min_days)
    before = after + timedelta(days=window_days)
    if query.max_days > 0:
        before = now + timedelta(days=query.max_days)
    return after, before


class PriceStore:
    """
    Fixture price histories for the tracked leagues.

    The store owns every FixturePrices entry. Fixtures are created once per
    league and event id and their runner histories are only ever appended
    to.
    """

    def __init__(
        self,
        path: str | Path,
        leagues: StorePrices | None = None,
        config: dict[str, Any] | None = None,
    ):
        """
        Initialize the store.

        Args:
            path: Location of the JSON store file
            leagues: Existing league -> fixture -> prices mapping
            config: Optional tracking configuration. If not provided,
                   loads from defaults.yaml
        """
        self.path = Path(path)
        self.leagues: StorePrices = leagues if leagues is not None else {}
        self.config = config if config is not None else self._load_default_config()

    def _load_default_config(self) -> dict[str, Any]:
        """Load tracking config from defaults.yaml."""
        tracking = get_settings().load_defaults_config().get("tracking")
        if not tracking:
            return dict(DEFAULT_TRACKING_CONFIG)
        return {**DEFAULT_TRACKING_CONFIG, **tracking}

    @classmethod
    def load(cls, path: str | Path, config: dict[str, Any] | None = None) -> "PriceStore":
        """
        Load the store from disk.

        A missing, unreadable or unparsable file gives an empty store: a
        first run and a corrupt file are both treated as starting fresh.
        """
        path = Path(path)
        try:
            leagues = _store_adapter.validate_json(path.read_bytes())
        except (OSError, ValueError) as e:
            logger.info("store_load_failed_starting_fresh", path=str(path), error=str(e))
            leagues = {}
        else:
            logger.info(
                "store_loaded",
                path=str(path),
                leagues=len(leagues),
                fixtures=sum(len(league) for league in leagues.values()),
            )
        return cls(path, leagues=leagues, config=config)

    def save(self) -> Path | None:
        """
        Write the store to disk.

        An existing store file is first renamed to <stem>_<unixtime><suffix>, with a _<n>
        counter added when that name is taken, so no earlier generation is
        overwritten.

        Returns:
            Path of the backup file, None when there was nothing to back up

        Raises:
            StorePersistenceError: If the backup rename or the write fails
        """
        payload = _store_adapter.dump_json(self.leagues)

        backup = None
        if self.path.exists():
            backup = self._backup_path()
            try:
                self.path.rename(backup)
            except OSError as e:
                raise StorePersistenceError(
                    f"Unable to back up {self.path} to {backup}: {e}"
                ) from e

        try:
            self.path.write_bytes(payload)
        except OSError as e:
            raise StorePersistenceError(f"Unable to write {self.path}: {e}") from e

        logger.info(
            "store_saved",
            path=str(self.path),
            backup=str(backup) if backup else None,
            bytes=len(payload),
        )
        return backup

    def _backup_path(self) -> Path:
        """Unused <stem>_<unixtime>[_<n>]<suffix> name next to the store file."""
        stamp = int(time.time())
        backup = self.path.with_name(f"{self.path.stem}_{stamp}{self.path.suffix}")
        attempt = 1
        while backup.exists():
            backup = self.path.with_name(
                f"{self.path.stem}_{stamp}_{attempt}{self.path.suffix}"
            )
            attempt += 1
        return backup

    def synchronize(
        self,
        query: MarketQuery,
        betfair: BetfairClient,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        """
        Merge fresh exchange data for the queried leagues into the store.

        Leagues are processed one after another. A failed API call aborts
        the whole synchronization; leagues already processed keep their
        changes.

        Args:
            query: Leagues and fixture window to track
            betfair: Market data source
            now: Reference time for the fixture window

        Returns:
            Stats dict with counts

        Raises:
            BetfairAPIError: If any events, catalogue or book request fails
        """
        stats = {
            "leagues_queried": 0,
            "events_seen": 0,
            "fixtures_added": 0,
            "markets_bound": 0,
            "snapshots_recorded": 0,
        }

        now = now or datetime.now(timezone.utc)
        from_time, to_time = fixture_window(
            query, now, int(self.config["default_window_days"])
        )
        logger.info(
            "synchronize_starting",
            leagues=query.league_ids,
            from_time=from_time.isoformat(),
            to_time=to_time.isoformat(),
        )

        for league_id in query.league_ids:
            stats["leagues_queried"] += 1

            events = betfair.list_events(
                competition_ids=[league_id],
                from_time=from_time,
                to_time=to_time,
                sport_ids=self.config["event_type_ids"],
            )
            if not events:
                logger.debug("no_events_for_league", league_id=league_id)
                continue

            event_ids = []
            for event in events:
                event_ids.append(event.id)
                if self._add_fixture(league_id, event.id, event.name, event.open_date):
                    stats["fixtures_added"] += 1
            stats["events_seen"] += len(event_ids)

            markets = betfair.list_market_catalogue(
                event_ids=event_ids,
                market_types=self.config["market_types"],
                max_results=len(event_ids),
            )
            market_ids = [
                market.market_id for market in markets if self._bind_market(market)
            ]
            stats["markets_bound"] += len(market_ids)

            if not market_ids:
                logger.debug("no_markets_bound", league_id=league_id)
                continue

            books = betfair.list_market_book(
                market_ids, price_depth=int(self.config["price_depth"])
            )
            recorded = 0
            for book in books:
                recorded += self._record_book(league_id, book)
            stats["snapshots_recorded"] += recorded

            logger.info(
                "league_synchronized",
                league_id=league_id,
                events=len(event_ids),
                markets=len(market_ids),
                snapshots=recorded,
            )

        logger.info("synchronize_complete", **stats)
        return stats

    def _add_fixture(self, league_id: str, event_id: str, name: str, open_date: str) -> bool:
        """Register an event as a scheduled fixture. Returns False if already known."""
        league = self.leagues.setdefault(league_id, {})
        if event_id in league:
            return False
        league[event_id] = FixturePrices(
            fixture=name,
            date=open_date,
            status=MatchStatus.SCHEDULED,
            event_id=event_id,
        )
        return True

    def _bind_market(self, market: MarketCatalogue) -> bool:
        """Attach a MATCH_ODDS market and its team runners to the stored fixture."""
        if len(market.runners) < 2:
            logger.debug("market_missing_runners", market_id=market.market_id)
            return False

        home, away = market.runners[0], market.runners[1]
        match = self.find_event_from_teams(home.runner_name, away.runner_name)
        if match is None:
            logger.debug(
                "market_unmatched",
                market_id=market.market_id,
                home=home.runner_name,
                away=away.runner_name,
            )
            return False

        league_id, event_id = match
        fixture = self.leagues[league_id][event_id]
        self.leagues[league_id][event_id] = fixture.model_copy(
            update={
                "market_id": market.market_id,
                "home_runner": home.selection_id,
                "away_runner": away.selection_id,
            }
        )
        return True

    def _record_book(self, league_id: str, book: MarketBook) -> int:
        """Append the best prices of a market book to its fixture. Returns snapshots added."""
        event_id = self.find_event_from_market_id(league_id, book.market_id)
        if event_id is None:
            logger.debug("book_unmatched", league_id=league_id, market_id=book.market_id)
            return 0

        fixture = self.leagues[league_id][event_id]
        observed_at = datetime.now(timezone.utc)
        added = 0
        for runner in book.runners:
            if runner.selection_id not in (fixture.home_runner, fixture.away_runner):
                continue
            fixture.history.setdefault(runner.selection_id, []).append(
                price_from_runner(runner, observed_at)
            )
            added += 1
        return added

    def find_event_from_teams(self, home_team: str, away_team: str) -> tuple[str, str] | None:
        """
        Find the fixture whose name contains both team names.

        Returns:
            (league id, event id) of the first match, None if there is none
        """
        for league_id, league in self.leagues.items():
            for event_id, fixture in league.items():
                if home_team in fixture.fixture and away_team in fixture.fixture:
                    return league_id, event_id
        return None

    def find_event_from_market_id(self, league_id: str, market_id: str) -> str | None:
        """Find the event id of the fixture bound to a market within a league."""
        for event_id, fixture in self.leagues.get(league_id, {}).items():
            if fixture.market_id == market_id:
                return event_id
        return None

    def fixtures(self):
        """Iterate over every stored fixture."""
        for league in self.leagues.values():
            yield from league.values()
