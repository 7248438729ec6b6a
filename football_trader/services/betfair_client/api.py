"""Betfair Exchange API client.

Provides synchronous access to the three betting operations the price
store needs:
- listEvents
- listMarketCatalogue
- listMarketBook

Requests are not retried here. A failed call raises BetfairAPIError and the
caller decides whether to re-authenticate and try again.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

import httpx
import structlog

from football_trader.config import Settings, get_settings
from football_trader.services.betfair_client.auth import BetfairAuth, BetfairAuthError

logger = structlog.get_logger(__name__)

# Betfair API URLs
BETTING_API_URL = "https://api.betfair.com/exchange/betting/rest/v1.0"

# Error code Betfair embeds in the fault string when the session token has expired
SESSION_EXPIRED_CODE = "ANGX-0003"


class BetfairErrorType(Enum):
    """Classification of Betfair API errors."""

    INVALID_SESSION = "INVALID_SESSION"
    TOO_MUCH_DATA = "TOO_MUCH_DATA"
    TIMEOUT = "TIMEOUT"
    RATE_LIMITED = "RATE_LIMITED"
    INVALID_INPUT = "INVALID_INPUT"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    UNKNOWN = "UNKNOWN"


class BetfairAPIError(Exception):
    """Betfair API error with classification."""

    def __init__(
        self,
        message: str,
        error_type: BetfairErrorType,
        code: str | None = None,
    ):
        super().__init__(message)
        self.error_type = error_type
        self.code = code

    @property
    def is_session_expired(self) -> bool:
        """True when re-authenticating and repeating the call may succeed."""
        return (
            self.error_type == BetfairErrorType.INVALID_SESSION
            or SESSION_EXPIRED_CODE in str(self)
        )


@dataclass
class Event:
    """Match/event from Betfair."""

    id: str
    name: str
    country_code: str | None = None
    timezone: str | None = None
    open_date: str = ""
    market_count: int = 0

    @property
    def start_time(self) -> datetime | None:
        """Parsed open date, None when missing or malformed."""
        if not self.open_date:
            return None
        try:
            return datetime.fromisoformat(self.open_date.replace("Z", "+00:00"))
        except ValueError:
            return None


@dataclass
class Runner:
    """Selection within a market."""

    selection_id: int
    runner_name: str
    handicap: float = 0.0
    sort_priority: int = 0


@dataclass
class MarketCatalogue:
    """Market metadata from Betfair."""

    market_id: str
    market_name: str
    event_id: str = ""
    total_matched: Decimal = Decimal("0")
    runners: list[Runner] = field(default_factory=list)


@dataclass
class PriceSize:
    """Price and size at a level."""

    price: Decimal
    size: Decimal


@dataclass
class RunnerBook:
    """Runner prices and volumes."""

    selection_id: int
    status: str = "ACTIVE"
    last_price_traded: Decimal | None = None
    back_prices: list[PriceSize] = field(default_factory=list)
    lay_prices: list[PriceSize] = field(default_factory=list)


@dataclass
class MarketBook:
    """Live market prices and state."""

    market_id: str
    is_market_data_delayed: bool = False
    status: str = "OPEN"
    in_play: bool = False
    total_matched: Decimal = Decimal("0")
    total_available: Decimal = Decimal("0")
    runners: list[RunnerBook] = field(default_factory=list)


class BetfairClient:
    """
    Betfair Exchange API client.

    Supports:
    - Session token authentication through BetfairAuth
    - Error classification, including session expiry detection
    """

    def __init__(
        self,
        auth: BetfairAuth,
        settings: Settings | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        """
        Initialize Betfair client.

        Args:
            auth: Authentication handler providing session tokens
            settings: Optional settings, defaults to the cached app settings
            transport: Optional httpx transport (used by tests)
        """
        self.settings = settings or get_settings()
        self.auth = auth
        self._transport = transport
        self._http_client: httpx.Client | None = None

    def __enter__(self) -> "BetfairClient":
        self._get_client()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        if self._http_client:
            self._http_client.close()
            self._http_client = None

    def _get_client(self) -> httpx.Client:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.Client(
                timeout=self.settings.request_timeout_seconds,
                transport=self._transport,
            )
        return self._http_client

    def _request(self, endpoint: str, params: dict[str, Any]) -> Any:
        """
        Make a single API request.

        Args:
            endpoint: API operation name
            params: Request body

        Returns:
            Decoded JSON response

        Raises:
            BetfairAPIError: If the request fails for any reason
        """
        url = f"{BETTING_API_URL}/{endpoint}/"

        try:
            token = self.auth.get_session_token()
        except BetfairAuthError as e:
            raise BetfairAPIError(str(e), BetfairErrorType.UNKNOWN)

        try:
            response = self._get_client().post(
                url,
                json=params,
                headers={
                    "X-Application": self.settings.betfair_app_key,
                    "X-Authentication": token,
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                },
            )
            response.raise_for_status()
        except httpx.TimeoutException:
            logger.warning("request_timeout", endpoint=endpoint)
            raise BetfairAPIError(
                f"{endpoint}: request timeout", BetfairErrorType.TIMEOUT
            )
        except httpx.HTTPStatusError as e:
            raise self._error_from_response(endpoint, e.response)
        except httpx.HTTPError as e:
            logger.error("request_failed", endpoint=endpoint, error=str(e))
            raise BetfairAPIError(
                f"{endpoint}: {e}", BetfairErrorType.SERVICE_UNAVAILABLE
            )

        data = response.json()

        # JSON-RPC style error envelope
        if isinstance(data, dict) and "error" in data:
            error = data.get("error") or {}
            error_code = str(error.get("code", "UNKNOWN"))
            error_msg = error.get("message", "Unknown error")
            raise BetfairAPIError(
                f"{endpoint}: {error_msg} [{error_code}]",
                self._classify_error(error_code),
                code=error_code,
            )

        return data

    def _error_from_response(
        self, endpoint: str, response: httpx.Response
    ) -> BetfairAPIError:
        """Build a classified error from a non-2xx betting API response."""
        if response.status_code == 429:
            return BetfairAPIError(
                f"{endpoint}: rate limited", BetfairErrorType.RATE_LIMITED
            )

        fault = ""
        error_code = ""
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            fault = str(body.get("faultstring", ""))
            detail = body.get("detail")
            exception = detail.get("APINGException") if isinstance(detail, dict) else None
            if isinstance(exception, dict):
                error_code = str(exception.get("errorCode", ""))

        if error_code:
            error_type = self._classify_error(error_code)
        elif response.status_code >= 500:
            error_type = BetfairErrorType.SERVICE_UNAVAILABLE
        else:
            error_type = BetfairErrorType.UNKNOWN

        summary = " ".join(part for part in (error_code, fault) if part)
        if not summary:
            summary = response.text[:200] if response.text else "no detail"

        logger.warning(
            "api_error",
            endpoint=endpoint,
            status_code=response.status_code,
            error_code=error_code,
            fault=fault,
        )
        return BetfairAPIError(
            f"{endpoint} failed ({response.status_code}): {summary}",
            error_type,
            code=error_code or None,
        )

    def _classify_error(self, error_code: str) -> BetfairErrorType:
        """Classify a Betfair error code."""
        error_mapping = {
            "INVALID_SESSION_INFORMATION": BetfairErrorType.INVALID_SESSION,
            "NO_SESSION": BetfairErrorType.INVALID_SESSION,
            SESSION_EXPIRED_CODE: BetfairErrorType.INVALID_SESSION,
            "TOO_MUCH_DATA": BetfairErrorType.TOO_MUCH_DATA,
            "INVALID_INPUT_DATA": BetfairErrorType.INVALID_INPUT,
            "INVALID_APP_KEY": BetfairErrorType.INVALID_INPUT,
            "SERVICE_BUSY": BetfairErrorType.SERVICE_UNAVAILABLE,
            "TIMEOUT_ERROR": BetfairErrorType.TIMEOUT,
        }
        return error_mapping.get(error_code, BetfairErrorType.UNKNOWN)

    def list_events(
        self,
        competition_ids: list[str] | None = None,
        from_time: datetime | None = None,
        to_time: datetime | None = None,
        sport_ids: list[str] | None = None,
    ) -> list[Event]:
        """
        Fetch events within time window.

        Args:
            competition_ids: Filter by competition IDs
            from_time: Start of time window
            to_time: End of time window
            sport_ids: Filter by sport IDs

        Returns:
            List of events
        """
        filter_params: dict[str, Any] = {}
        if sport_ids:
            filter_params["eventTypeIds"] = sport_ids
        if competition_ids:
            filter_params["competitionIds"] = competition_ids
        if from_time or to_time:
            filter_params["marketStartTime"] = {}
            if from_time:
                filter_params["marketStartTime"]["from"] = from_time.isoformat()
            if to_time:
                filter_params["marketStartTime"]["to"] = to_time.isoformat()

        data = self._request("listEvents", {"filter": filter_params})

        events = []
        for item in data:
            event_data = item["event"]
            events.append(
                Event(
                    id=event_data["id"],
                    name=event_data["name"],
                    country_code=event_data.get("countryCode"),
                    timezone=event_data.get("timezone"),
                    open_date=event_data.get("openDate", ""),
                    market_count=item.get("marketCount", 0),
                )
            )
        return events

    def list_market_catalogue(
        self,
        event_ids: list[str] | None = None,
        market_types: list[str] | None = None,
        max_results: int = 200,
    ) -> list[MarketCatalogue]:
        """
        Fetch market metadata.

        Runners are returned in Betfair's sort priority order, so for
        MATCH_ODDS the first two are the home and away teams.

        Args:
            event_ids: Filter by event IDs
            market_types: Filter by market types
            max_results: Maximum results to return

        Returns:
            List of market catalogues
        """
        filter_params: dict[str, Any] = {}
        if event_ids:
            filter_params["eventIds"] = event_ids
        if market_types:
            filter_params["marketTypeCodes"] = market_types

        data = self._request(
            "listMarketCatalogue",
            {
                "filter": filter_params,
                "maxResults": str(max_results),
                "marketProjection": [
                    "EVENT",
                    "RUNNER_DESCRIPTION",
                    "RUNNER_METADATA",
                ],
            },
        )

        markets = []
        for item in data:
            runners = [
                Runner(
                    selection_id=runner_data["selectionId"],
                    runner_name=runner_data.get("runnerName", "Unknown"),
                    handicap=runner_data.get("handicap", 0.0),
                    sort_priority=runner_data.get("sortPriority", 0),
                )
                for runner_data in item.get("runners", [])
            ]
            markets.append(
                MarketCatalogue(
                    market_id=item["marketId"],
                    market_name=item.get("marketName", ""),
                    event_id=item.get("event", {}).get("id", ""),
                    total_matched=Decimal(str(item.get("totalMatched", 0))),
                    runners=runners,
                )
            )
        return markets

    def list_market_book(
        self,
        market_ids: list[str],
        price_depth: int = 3,
    ) -> list[MarketBook]:
        """
        Fetch best available prices.

        Args:
            market_ids: Market IDs to fetch
            price_depth: Number of price levels per side

        Returns:
            List of market books with prices
        """
        data = self._request(
            "listMarketBook",
            {
                "marketIds": market_ids,
                "priceProjection": {
                    "priceData": ["EX_BEST_OFFERS"],
                    "exBestOffersOverrides": {
                        "bestPricesDepth": price_depth,
                    },
                },
                "orderProjection": "EXECUTABLE",
                "matchProjection": "ROLLED_UP_BY_AVG_PRICE",
            },
        )

        books = []
        for item in data:
            runners = []
            for runner_data in item.get("runners", []):
                ex = runner_data.get("ex", {})
                runners.append(
                    RunnerBook(
                        selection_id=runner_data["selectionId"],
                        status=runner_data.get("status", "ACTIVE"),
                        last_price_traded=Decimal(str(runner_data["lastPriceTraded"]))
                        if runner_data.get("lastPriceTraded")
                        else None,
                        back_prices=_price_levels(ex.get("availableToBack", [])),
                        lay_prices=_price_levels(ex.get("availableToLay", [])),
                    )
                )

            books.append(
                MarketBook(
                    market_id=item["marketId"],
                    is_market_data_delayed=item.get("isMarketDataDelayed", False),
                    status=item.get("status", "OPEN"),
                    in_play=item.get("inplay", False),
                    total_matched=Decimal(str(item.get("totalMatched", 0))),
                    total_available=Decimal(str(item.get("totalAvailable", 0))),
                    runners=runners,
                )
            )
        return books


def _price_levels(levels: list[dict[str, Any]]) -> list[PriceSize]:
    return [
        PriceSize(price=Decimal(str(level["price"])), size=Decimal(str(level["size"])))
        for level in levels
    ]
