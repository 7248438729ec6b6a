"""Price store and ladder helpers."""

from football_trader.services.pricing.store import (
    PriceStore,
    StorePersistenceError,
    price_from_runner,
    select_best_price,
)
from football_trader.services.pricing.ticks import get_tick_offset, round_2dp

__all__ = [
    "PriceStore",
    "StorePersistenceError",
    "get_tick_offset",
    "price_from_runner",
    "round_2dp",
    "select_best_price",
]
