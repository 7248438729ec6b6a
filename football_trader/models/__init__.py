"""Domain and input models for Football Trader."""

from football_trader.models.domain import (
    DEFAULT_ODDS_RANGES,
    FixturePrices,
    LeaguePrices,
    MatchResult,
    MatchStatus,
    OddsRange,
    Price,
    StorePrices,
    Trend,
)
from football_trader.models.query import ConfigFileError, LoginDetails, MarketQuery

__all__ = [
    # Store
    "Price",
    "FixturePrices",
    "MatchStatus",
    "MatchResult",
    "LeaguePrices",
    "StorePrices",
    # Analysis
    "Trend",
    "OddsRange",
    "DEFAULT_ODDS_RANGES",
    # Inputs
    "MarketQuery",
    "LoginDetails",
    "ConfigFileError",
]
