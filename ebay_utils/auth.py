"""
ebay_utils/auth.py
------------------
Handles eBay OAuth token retrieval and caching for API access.
Uses the client-credentials grant; one TokenProvider per process
holds the current application token until shortly before it expires.
"""

import base64
import time
from typing import Callable, Optional

import httpx

from ebay_utils.errors import AuthExchangeError, ConfigurationError
from utils.logger import get_logger

# Initialize unified logger
logger = get_logger("ebay_auth")

TOKEN_URL = "https://api.ebay.com/identity/v1/oauth2/token"
TOKEN_SCOPE = "https://api.ebay.com/oauth/api_scope"

# Refresh this many seconds before eBay says the token expires
EXPIRY_MARGIN_SECONDS = 300


def _get_auth_header(client_id: str, client_secret: str) -> str:
    """Return base64 encoded client credentials for eBay API auth."""
    creds = f"{client_id}:{client_secret}".encode("utf-8")
    return base64.b64encode(creds).decode("utf-8")


class TokenProvider:
    """Fetches and caches an eBay application access token."""

    def __init__(
        self,
        client_id: Optional[str],
        client_secret: Optional[str],
        token_url: str = TOKEN_URL,
        timeout: float = 10,
        clock: Callable[[], float] = time.time,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.token_url = token_url
        self.timeout = timeout
        self._clock = clock
        self._access_token: Optional[str] = None
        self._expires_at: float = 0

    @property
    def has_token(self) -> bool:
        return bool(self._access_token)

    def invalidate(self) -> None:
        """Drop the cached token so the next call performs a fresh exchange."""
        if self._access_token:
            logger.info("Discarding cached eBay access token.")
        self._access_token = None
        self._expires_at = 0

    async def get_token(self) -> str:
        """
        Return a valid access token, exchanging client credentials
        only when none is cached or the cached one has expired.
        """
        # Return cached token if still valid
        if self._access_token and self._clock() < self._expires_at:
            return self._access_token

        if not self.client_id or not self.client_secret:
            logger.error("Missing EBAY_CLIENT_ID or EBAY_CLIENT_SECRET (check .env file).")
            raise ConfigurationError("Missing EBAY_CLIENT_ID or EBAY_CLIENT_SECRET")

        headers = {
            "Content-Type": "application/x-www-form-urlencoded",
            "Authorization": f"Basic {_get_auth_header(self.client_id, self.client_secret)}",
        }
        data = {
            "grant_type": "client_credentials",
            "scope": TOKEN_SCOPE,
        }

        logger.info("Requesting new eBay access token...")
        try:
            async with httpx.AsyncClient() as client:
                r = await client.post(self.token_url, headers=headers, data=data, timeout=self.timeout)
        except httpx.HTTPError as e:
            logger.error(f"eBay token request error: {e}")
            raise AuthExchangeError("Failed to get OAuth token") from e

        if r.status_code != 200:
            logger.error(f"eBay token request failed: {r.status_code} - {r.text[:400]}")
            raise AuthExchangeError("Failed to get OAuth token")

        try:
            token_data = r.json()
            token = token_data["access_token"]
            expires_in = float(token_data.get("expires_in", 7200))
        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"Unusable eBay token response: {e}")
            raise AuthExchangeError("Failed to get OAuth token") from e

        if not token:
            logger.error("eBay token response carried an empty access_token")
            raise AuthExchangeError("Failed to get OAuth token")

        self._access_token = token
        self._expires_at = self._clock() + expires_in - EXPIRY_MARGIN_SECONDS

        logger.info("Successfully obtained new eBay access token.")
        return token
