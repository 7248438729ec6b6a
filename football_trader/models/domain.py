"""Domain models for Football Trader.

The persisted price store is a tree of pydantic models:
league id -> fixture (event) id -> FixturePrices -> runner id -> [Price].
Trend and OddsRange are derived at analysis time and never persisted.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MatchStatus(str, Enum):
    """Whether a fixture has been played yet."""

    SCHEDULED = "scheduled"
    PLAYED = "played"


class MatchResult(str, Enum):
    """Final outcome of a fixture."""

    HOME = "home"
    AWAY = "away"
    DRAW = "draw"


class Price(BaseModel):
    """Best back and lay offers for one runner at one point in time."""

    model_config = ConfigDict(frozen=True)

    time_stamp: str
    back_price: float = 0.0
    lay_price: float = 0.0
    back_amount: float = 0.0
    lay_amount: float = 0.0


class FixturePrices(BaseModel):
    """
    A tracked fixture and the price history of its two team runners.

    Runner ids are 0 until a MATCH_ODDS market has been matched to the
    fixture. History lists are chronological and only ever appended to.
    """

    fixture: str
    date: str = ""
    status: MatchStatus = MatchStatus.SCHEDULED
    outcome: Optional[MatchResult] = None
    event_id: str = ""
    market_id: str = ""
    home_runner: int = 0
    away_runner: int = 0
    history: dict[int, list[Price]] = Field(default_factory=dict)

    @field_validator("outcome", mode="before")
    @classmethod
    def _blank_outcome_is_unset(cls, value: Any) -> Any:
        if value == "":
            return None
        return value

    def teams(self) -> list[str] | None:
        """Split "Home v Away" into its two team names."""
        teams = self.fixture.split(" v ")
        if len(teams) != 2:
            return None
        return teams


# league id -> fixture id -> FixturePrices
LeaguePrices = dict[str, FixturePrices]
StorePrices = dict[str, LeaguePrices]


@dataclass
class Trend:
    """Price movement of one team from its settled entry point to now."""

    fixture: str
    team: str
    home: bool
    start_time: str
    start_price: float
    start_lay_price: float
    # Exit side: current_price is the latest lay, current_lay_price the latest back
    current_price: float
    current_lay_price: float
    delta: float
    sample_number: int
    price_changes: int = 0
    price_changes_against_trend: int = 0

    @property
    def trending_up(self) -> bool:
        """Start back price is above the current lay, i.e. the price shortened."""
        return self.delta > 0


@dataclass(frozen=True)
class OddsRange:
    """Inclusive band of starting back prices used to bucket trends."""

    low: float
    high: float

    def contains(self, price: float) -> bool:
        return self.low <= price <= self.high

    def __str__(self) -> str:
        return f"{self.low:.2f} to {self.high:.2f}"


DEFAULT_ODDS_RANGES = (
    OddsRange(1.2, 1.99),
    OddsRange(2.0, 2.99),
    OddsRange(3.0, 4.99),
    OddsRange(5.0, 9.99),
    OddsRange(10.0, 19.99),
    OddsRange(20.0, 29.99),
)
