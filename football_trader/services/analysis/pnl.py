"""Hedge profit and loss analysis.

Every trend is treated as a back bet of a fixed stake at the entry back
price, hedged now by laying at the latest lay price:

    lay_stake = stake × back_price / (lay_price − commission)
    profit    = lay_stake − stake

Commission is only charged when the hedge wins (lay_stake > stake).
Results are bucketed by entry back price.
"""

from dataclasses import dataclass, field
from typing import Any

import structlog

from football_trader.config import get_settings
from football_trader.models.domain import DEFAULT_ODDS_RANGES, OddsRange, Trend
from football_trader.services.pricing.ticks import round_2dp

logger = structlog.get_logger(__name__)

LINE_BREAK = "_" * 90


def calculate_profit(
    back_price: float,
    lay_price: float,
    stake: float,
    commission: float,
) -> tuple[float, float]:
    """
    Size the lay-off bet and work out the locked-in profit.

    Returns:
        (lay stake, profit), both rounded to 2 decimal places
    """
    lay_stake = (stake * back_price) / (lay_price - commission)
    profit = lay_stake - stake
    if lay_stake > stake:
        profit = profit * (1 - commission)
    return round_2dp(lay_stake), round_2dp(profit)


@dataclass
class TrendResult:
    """Hedge outcome for a single trend."""

    trend: Trend
    percent_move: float
    lay_stake: float
    qualifying_loss: float
    profit: float


@dataclass
class RangeReport:
    """Cumulative hedge results for one odds range."""

    odds_range: OddsRange
    results: list[TrendResult] = field(default_factory=list)
    cumulative_profit: float = 0.0
    cumulative_loss: float = 0.0
    positive: int = 0
    negative: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for output."""
        return {
            "low": self.odds_range.low,
            "high": self.odds_range.high,
            "trends": len(self.results),
            "cumulative_profit": self.cumulative_profit,
            "cumulative_loss": self.cumulative_loss,
            "positive": self.positive,
            "negative": self.negative,
        }


class PnLAnalyzer:
    """
    Calculate hedge profit and loss across the configured odds ranges.

    Stake, commission and odds ranges come from the analysis section of
    defaults.yaml unless given explicitly.
    """

    def __init__(
        self,
        config: dict[str, Any] | None = None,
        stake: float | None = None,
        commission: float | None = None,
    ):
        """
        Initialize the analyzer.

        Args:
            config: Optional analysis configuration. If not provided,
                   loads from defaults.yaml
            stake: Override for the unit back stake
            commission: Override for the exchange commission rate
        """
        if config is None:
            config = self._load_default_config()

        self.config = config
        self.stake = float(stake if stake is not None else config.get("stake", 100))
        self.commission = float(
            commission if commission is not None else config.get("commission", 0.02)
        )
        ranges = config.get("odds_ranges")
        if ranges:
            self.odds_ranges = [OddsRange(float(low), float(high)) for low, high in ranges]
        else:
            self.odds_ranges = list(DEFAULT_ODDS_RANGES)

    def _load_default_config(self) -> dict[str, Any]:
        """Load analysis config from defaults.yaml."""
        return get_settings().load_defaults_config().get("analysis") or {}

    def evaluate(self, trend: Trend) -> TrendResult:
        """Hedge a single trend: back at the entry price, lay at the current price."""
        lay_stake, profit = calculate_profit(
            trend.start_price, trend.current_price, self.stake, self.commission
        )
        return TrendResult(
            trend=trend,
            percent_move=trend.delta * 100 / trend.start_price,
            lay_stake=lay_stake,
            qualifying_loss=round_2dp(self.stake - lay_stake * (1 - self.commission)),
            profit=profit,
        )

    def analyze_range(self, trends: list[Trend], odds_range: OddsRange) -> RangeReport:
        """Accumulate hedge results for the trends starting inside a range."""
        report = RangeReport(odds_range=odds_range)
        for trend in trends:
            if not odds_range.contains(trend.start_price):
                continue
            result = self.evaluate(trend)
            report.results.append(result)
            if trend.delta > 0:
                report.cumulative_profit += result.profit
                report.positive += 1
            else:
                report.cumulative_loss += result.profit
                report.negative += 1

        report.cumulative_profit = round_2dp(report.cumulative_profit)
        report.cumulative_loss = round_2dp(report.cumulative_loss)
        return report

    def analyze(self, trends: list[Trend]) -> list[RangeReport]:
        """Report on every configured odds range, in order."""
        reports = [self.analyze_range(trends, odds_range) for odds_range in self.odds_ranges]
        logger.info(
            "pnl_analyzed",
            trends=len(trends),
            stake=self.stake,
            commission=self.commission,
            profit=round_2dp(sum(r.cumulative_profit for r in reports)),
            loss=round_2dp(sum(r.cumulative_loss for r in reports)),
        )
        return reports


def format_result(result: TrendResult) -> str:
    trend = result.trend
    return (
        f"{trend.fixture} ({trend.team}) ({trend.sample_number}) "
        f"{trend.start_price:.2f} {trend.start_lay_price:.2f} "
        f"{trend.current_price:.2f} {trend.delta:.2f} "
        f"--- {result.percent_move:.2f}% --- "
        f"£{result.lay_stake:.2f} £{result.qualifying_loss:.2f} £{result.profit:.2f}"
    )


def render_report(reports: list[RangeReport]) -> str:
    """Render range reports as the plain text analysis report."""
    lines = []
    for report in reports:
        lines.append(LINE_BREAK)
        lines.append(f"Price analysis in the {report.odds_range} range")
        lines.extend(format_result(result) for result in report.results)
        lines.append(LINE_BREAK)
        lines.append(f"Cumulative Profit {report.cumulative_profit:.2f} ({report.positive})")
        lines.append(f"Cumulative Loss {report.cumulative_loss:.2f} ({report.negative})")
        lines.append(LINE_BREAK)
    return "\n".join(lines) + "\n"
