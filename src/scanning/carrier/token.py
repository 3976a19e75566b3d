"""OAuth client-credentials token cache for the carrier API.

One cache is shared by every submission in the process. A token is reused
while more than ``TOKEN_REFRESH_MARGIN`` of its lifetime remains. Refreshes
are serialised by a lock: concurrent callers that find the token stale wait
for the single in-flight request and reuse its result.
"""

import threading
import time

import requests
import structlog

from scanning.errors import CarrierErrorKind, CarrierSubmissionError
from scanning.settings import DEFAULT_TOKEN_LIFETIME_SECONDS, TOKEN_REFRESH_MARGIN, CarrierSettings

logger = structlog.get_logger(__name__)


def _lifetime_seconds(value) -> int:
    # The identity provider sends expires_in as a string ("3599") or an int.
    try:
        return int(value)
    except (TypeError, ValueError):
        return DEFAULT_TOKEN_LIFETIME_SECONDS


def token_expiry(body: dict, now: float) -> float:
    """Absolute expiry (epoch seconds) of a token response."""
    expires_on = body.get("expires_on")
    if expires_on not in (None, ""):
        try:
            return float(expires_on)
        except (TypeError, ValueError):
            pass
    return now + _lifetime_seconds(body.get("expires_in"))


class TokenCache:
    def __init__(self, settings: CarrierSettings, session: requests.Session | None = None, clock=time.time):
        self._settings = settings
        self._session = session or requests.Session()
        self._clock = clock
        self._lock = threading.Lock()
        self._token: str | None = None
        self._expires_at: float = 0.0
        self.refresh_count = 0

    def _is_fresh(self) -> bool:
        margin = TOKEN_REFRESH_MARGIN.total_seconds()
        return self._token is not None and self._expires_at - self._clock() > margin

    @property
    def expires_at(self) -> float:
        return self._expires_at

    def get_token(self) -> str:
        if self._is_fresh():
            return self._token
        with self._lock:
            # Another caller may have refreshed while we waited.
            if self._is_fresh():
                return self._token
            self._refresh()
            return self._token

    def invalidate(self) -> None:
        with self._lock:
            self._token = None
            self._expires_at = 0.0

    def _refresh(self) -> None:
        settings = self._settings
        logger.info("Requesting carrier access token", token_url=settings.token_url)
        try:
            response = self._session.post(
                settings.token_url,
                data={
                    "grant_type": "client_credentials",
                    "client_id": settings.client_id,
                    "client_secret": settings.client_secret,
                },
                timeout=settings.timeout_seconds,
            )
        except requests.Timeout as exc:
            logger.warning("Carrier token request timed out", token_url=settings.token_url)
            raise CarrierSubmissionError(CarrierErrorKind.TIMEOUT, "Timed out requesting carrier token") from exc
        except requests.RequestException as exc:
            logger.warning("Carrier token request failed", error=str(exc))
            raise CarrierSubmissionError(CarrierErrorKind.NETWORK, f"Could not reach token endpoint: {exc}") from exc

        if response.status_code >= 400:
            logger.warning("Carrier token request rejected", status_code=response.status_code)
            raise CarrierSubmissionError(
                CarrierErrorKind.AUTH,
                "Failed to authenticate with the carrier API",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise CarrierSubmissionError(
                CarrierErrorKind.AUTH, "Token endpoint returned a non-JSON body", status_code=response.status_code
            ) from exc

        token = body.get("access_token") if isinstance(body, dict) else None
        if not token:
            raise CarrierSubmissionError(
                CarrierErrorKind.AUTH, "Token endpoint returned no access token", status_code=response.status_code
            )

        now = self._clock()
        self._token = token
        self._expires_at = token_expiry(body, now)
        self.refresh_count += 1
        logger.info("Carrier access token obtained", expires_in=int(self._expires_at - now))
