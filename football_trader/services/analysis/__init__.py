"""Trend and profit/loss analysis of recorded prices."""

from football_trader.services.analysis.pnl import (
    PnLAnalyzer,
    RangeReport,
    TrendResult,
    calculate_profit,
    render_report,
)
from football_trader.services.analysis.trends import (
    extract_trend_from_fixture,
    extract_trends,
    find_start_index,
)

__all__ = [
    "PnLAnalyzer",
    "RangeReport",
    "TrendResult",
    "calculate_profit",
    "extract_trend_from_fixture",
    "extract_trends",
    "find_start_index",
    "render_report",
]
