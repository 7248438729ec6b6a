"""Command line operations."""

from football_trader.commands.analyze import run_analyze
from football_trader.commands.track import run_track, synchronize_with_reauth

__all__ = ["run_analyze", "run_track", "synchronize_with_reauth"]
