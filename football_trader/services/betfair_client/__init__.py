"""Betfair API client module."""

from football_trader.services.betfair_client.api import (
    BetfairAPIError,
    BetfairClient,
    BetfairErrorType,
)
from football_trader.services.betfair_client.auth import BetfairAuth, BetfairAuthError

__all__ = [
    "BetfairAPIError",
    "BetfairAuth",
    "BetfairAuthError",
    "BetfairClient",
    "BetfairErrorType",
]
