"""Betfair authentication handler.

Supports both certificate-based and interactive login authentication.
Session tokens are cached in a JSON file under the session directory so
consecutive runs of the track command reuse one login.
"""

from datetime import datetime, timedelta, timezone
from typing import Any

import httpx
import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from football_trader.config import Settings, get_settings
from football_trader.models.query import LoginDetails

logger = structlog.get_logger(__name__)

# Betfair API URLs
CERT_LOGIN_URL = "https://identitysso-cert.betfair.com/api/certlogin"
INTERACTIVE_LOGIN_URL = "https://identitysso.betfair.com/api/login"

SESSION_FILE = "session.json"


class BetfairAuthError(Exception):
    """Raised when Betfair authentication fails."""

    pass


class CachedSession(BaseModel):
    """Session token persisted between runs."""

    model_config = ConfigDict(populate_by_name=True)

    key: str = Field(alias="sessionkey")
    expires_at: datetime = Field(alias="expiresat")

    def is_valid(self, now: datetime) -> bool:
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return now < expires_at


class BetfairAuth:
    """
    Handle Betfair authentication.

    Supports:
    - Certificate-based authentication (preferred for automation)
    - Interactive login (fallback when no certificate is configured)
    - Session token caching on disk
    - Forced refresh after the exchange reports an expired session
    """

    def __init__(
        self,
        login: LoginDetails | None = None,
        settings: Settings | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        """
        Initialize Betfair authentication handler.

        Args:
            login: Credentials from a login file, overriding settings
            settings: Optional settings, defaults to the cached app settings
            transport: Optional httpx transport (used by tests)
        """
        self.settings = settings or get_settings()
        self.login_details = login or LoginDetails(
            cert_path=self.settings.betfair_cert_path,
            key_path=self.settings.betfair_cert_key_path,
            user=self.settings.betfair_username,
            password=self.settings.betfair_password,
        )
        self._transport = transport
        self._token: str | None = None
        self._token_expiry: datetime | None = None

    @property
    def session_file(self):
        return self.settings.session_dir / SESSION_FILE

    def login(self, force: bool = False) -> str:
        """
        Authenticate with Betfair and return session token.

        Reuses the cached session file unless `force` is set. Prefers
        certificate auth if a certificate path is configured.

        Returns:
            Session token string

        Raises:
            BetfairAuthError: If authentication fails
        """
        if force:
            self._token = None
            self._token_expiry = None
        else:
            token = self._get_cached_token()
            if token:
                logger.debug("using_cached_token")
                return token

        if self.login_details.cert_path:
            token = self._cert_login()
        else:
            token = self._interactive_login()

        self._cache_token(token)

        logger.info("betfair_login_success", forced=force)
        return token

    def get_session_token(self) -> str:
        """
        Get current session token, logging in if needed.

        Returns:
            Valid session token

        Raises:
            BetfairAuthError: If unable to obtain token
        """
        if self._token and self._token_expiry and _now() < self._token_expiry:
            return self._token

        return self.login()

    def _cert_login(self) -> str:
        """
        Authenticate using SSL certificate.

        Returns:
            Session token

        Raises:
            BetfairAuthError: If login fails
        """
        cert_path = self.login_details.cert_path
        key_path = self.login_details.key_path or cert_path.replace(".crt", ".key")
        verify: str | bool = self.login_details.root_ca_path or True

        try:
            with httpx.Client(
                cert=(cert_path, key_path),
                verify=verify,
                timeout=self.settings.auth_timeout_seconds,
                transport=self._transport,
            ) as client:
                response = client.post(
                    CERT_LOGIN_URL,
                    data={
                        "username": self.login_details.user,
                        "password": self.login_details.password,
                    },
                    headers={
                        "X-Application": self.settings.betfair_app_key,
                        "Content-Type": "application/x-www-form-urlencoded",
                    },
                )
                return self._parse_login_response(response.json())
        except httpx.HTTPError as e:
            logger.error("cert_login_http_error", error=str(e))
            raise BetfairAuthError(f"Certificate login HTTP error: {e}")
        except (OSError, ValueError) as e:
            logger.error("cert_login_error", error=str(e))
            raise BetfairAuthError(f"Certificate login failed: {e}")

    def _interactive_login(self) -> str:
        """
        Authenticate using username/password.

        Returns:
            Session token

        Raises:
            BetfairAuthError: If login fails
        """
        try:
            with httpx.Client(
                timeout=self.settings.auth_timeout_seconds,
                transport=self._transport,
            ) as client:
                response = client.post(
                    INTERACTIVE_LOGIN_URL,
                    data={
                        "username": self.login_details.user,
                        "password": self.login_details.password,
                    },
                    headers={
                        "X-Application": self.settings.betfair_app_key,
                        "Content-Type": "application/x-www-form-urlencoded",
                        "Accept": "application/json",
                    },
                )
                return self._parse_login_response(response.json())
        except httpx.HTTPError as e:
            logger.error("interactive_login_http_error", error=str(e))
            raise BetfairAuthError(f"Interactive login HTTP error: {e}")
        except ValueError as e:
            logger.error("interactive_login_error", error=str(e))
            raise BetfairAuthError(f"Interactive login failed: {e}")

    def _parse_login_response(self, data: dict[str, Any]) -> str:
        """Parse login response and extract token."""
        status = data.get("loginStatus") or data.get("status")

        if status == "SUCCESS":
            token = data.get("sessionToken") or data.get("token")
            if token:
                return token
            raise BetfairAuthError("No token in successful response")

        error = data.get("error") or data.get("loginStatus") or "Unknown error"
        raise BetfairAuthError(f"Login failed: {error}")

    def _get_cached_token(self) -> str | None:
        """Get token from cache (memory or session file)."""
        now = _now()
        if self._token and self._token_expiry and now < self._token_expiry:
            return self._token

        try:
            raw = self.session_file.read_text(encoding="utf-8")
        except OSError:
            return None

        try:
            session = CachedSession.model_validate_json(raw)
        except ValidationError as e:
            logger.warning("session_file_invalid", path=str(self.session_file), error=str(e))
            return None

        if not session.is_valid(now):
            logger.debug("session_file_expired", expires_at=session.expires_at.isoformat())
            return None

        self._token = session.key
        self._token_expiry = session.expires_at
        return self._token

    def _cache_token(self, token: str) -> None:
        """Cache token in memory and, best effort, in the session file."""
        expiry = _now() + timedelta(hours=self.settings.session_ttl_hours)

        self._token = token
        self._token_expiry = expiry

        # A failed write only costs another login on the next run
        session = CachedSession(key=token, expires_at=expiry)
        try:
            self.settings.session_dir.mkdir(mode=0o755, parents=True, exist_ok=True)
            self.session_file.write_text(
                session.model_dump_json(by_alias=True), encoding="utf-8"
            )
        except OSError as e:
            logger.warning(
                "session_file_write_error", path=str(self.session_file), error=str(e)
            )


def _now() -> datetime:
    return datetime.now(timezone.utc)
