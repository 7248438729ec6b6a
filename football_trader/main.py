"""Football Trader command line.

Betfair Exchange match odds tracker and hedge trend analyser.

    football-trader track --login-file login.json --query-file query.json --store-dir data
    football-trader analyze --store-file data/store.json
"""

import argparse
import logging
import sys

import structlog

from football_trader import __version__
from football_trader.commands import run_analyze, run_track
from football_trader.config import Settings, get_settings

logger = structlog.get_logger(__name__)


def configure_logging(settings: Settings) -> None:
    """Configure structured logging to stderr, keeping stdout for reports."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
    )

    if settings.log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="football-trader",
        description="Track and analyse Betfair Exchange match odds for football fixtures",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    track = subparsers.add_parser(
        "track", help="Track back and lay prices for the queried leagues"
    )
    track.add_argument(
        "--login-file",
        required=True,
        help="Path to the json file containing the api login information to Betfair",
    )
    track.add_argument(
        "--query-file",
        required=True,
        help="Path to the json file describing the leagues to query for match odds",
    )
    track.add_argument(
        "--store-dir",
        required=True,
        help="Directory where the history of price data for fixtures is stored",
    )

    analyze = subparsers.add_parser("analyze", help="Analyze price trends in fixtures")
    analyze.add_argument(
        "--store-file",
        required=True,
        help="Path to the price history store in json format",
    )
    analyze.add_argument("--stake", type=float, default=None, help="Unit back stake")
    analyze.add_argument(
        "--commission", type=float, default=None, help="Exchange commission rate"
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(settings)

    if args.command == "track" and not settings.betfair_app_key:
        print("error: BETFAIR_APP_KEY is required to be set in environment", file=sys.stderr)
        return 1

    try:
        if args.command == "track":
            run_track(args.login_file, args.query_file, args.store_dir, settings)
        else:
            run_analyze(args.store_file, stake=args.stake, commission=args.commission)
    except Exception as e:
        logger.error("command_failed", command=args.command, error=str(e))
        print(f"error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
