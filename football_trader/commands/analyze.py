"""Analyze command.

Reloads a price store and prints the hedge profit/loss report by odds range.
"""

import sys
from pathlib import Path
from typing import TextIO

from football_trader.services.analysis import (
    PnLAnalyzer,
    RangeReport,
    extract_trends,
    render_report,
)
from football_trader.services.pricing import PriceStore


def run_analyze(
    store_file: str | Path,
    stake: float | None = None,
    commission: float | None = None,
    out: TextIO | None = None,
) -> list[RangeReport]:
    """
    Analyze price trends in the stored fixtures.

    An unreadable store file gives an empty report rather than an error.
    """
    store = PriceStore.load(store_file)
    trends = extract_trends(store)

    analyzer = PnLAnalyzer(stake=stake, commission=commission)
    reports = analyzer.analyze(trends)

    (out or sys.stdout).write(render_report(reports))
    return reports
