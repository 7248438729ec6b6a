"""Track command.

Runs one synchronize-and-save cycle of the price store against Betfair.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import structlog

from football_trader.config import Settings, get_settings
from football_trader.models.query import LoginDetails, MarketQuery
from football_trader.services.betfair_client import (
    BetfairAPIError,
    BetfairAuth,
    BetfairClient,
)
from football_trader.services.pricing import PriceStore

logger = structlog.get_logger(__name__)

STORE_FILE = "store.json"


def synchronize_with_reauth(
    store: PriceStore,
    query: MarketQuery,
    betfair: BetfairClient,
    auth: BetfairAuth,
) -> dict[str, Any]:
    """
    Synchronize the store, retrying once after an expired session.

    Any other API error, or a second failure, propagates to the caller.
    """
    try:
        return store.synchronize(query, betfair)
    except BetfairAPIError as e:
        if not e.is_session_expired:
            raise
        logger.warning("session_expired_reauthenticating", error=str(e))
        auth.login(force=True)
        return store.synchronize(query, betfair)


def run_track(
    login_file: str | Path,
    query_file: str | Path,
    store_dir: str | Path,
    settings: Settings | None = None,
) -> dict[str, Any]:
    """
    Track back and lay prices for the queried leagues.

    Process:
    1. Read the login file and authenticate (cached session if still valid)
    2. Read the query file
    3. Load <store_dir>/store.json, or start an empty store
    4. Synchronize the store with Betfair, re-authenticating once if the
       session has expired
    5. Save the store, backing up the previous file

    Returns:
        Synchronization stats

    Raises:
        ConfigFileError: If the login or query file is unusable
        BetfairAuthError: If authentication fails
        BetfairAPIError: If a data request fails
        StorePersistenceError: If the store cannot be saved
    """
    settings = settings or get_settings()
    started_at = datetime.now(timezone.utc)

    login = LoginDetails.from_file(login_file)
    auth = BetfairAuth(login, settings)
    auth.get_session_token()

    query = MarketQuery.from_file(query_file)
    store = PriceStore.load(Path(store_dir) / STORE_FILE)

    try:
        with BetfairClient(auth, settings) as betfair:
            stats = synchronize_with_reauth(store, query, betfair, auth)
    except BetfairAPIError as e:
        logger.error(
            "track_failed",
            error=str(e),
            error_type=e.error_type.value,
        )
        raise

    store.save()

    logger.info(
        "track_complete",
        snapshots=stats.get("snapshots_recorded", 0),
        duration_seconds=(datetime.now(timezone.utc) - started_at).total_seconds(),
    )
    return stats
