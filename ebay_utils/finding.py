"""
ebay_utils/finding.py
---------------------
eBay Finding API wrapper for SOLD / completed listings (GB marketplace).

Issues a single findCompletedItems call (new condition, located in GB,
soonest-ending first, 100 entries) and decodes the deeply nested JSON
envelope into a flat SearchPage. Authentication is pluggable: plain
app-id, or an OAuth application token sent as a SOA security header.
"""

import asyncio
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import aiohttp

from ebay_utils.auth import TokenProvider
from ebay_utils.errors import AuthRejected, ConfigurationError, MalformedResponse, TransportError
from utils.logger import get_logger

# Initialize unified logger
logger = get_logger("ebay_finding")

# eBay Finding API endpoint
FINDING_API_URL = "https://svcs.ebay.com/services/search/FindingService/v1"
OPERATION_NAME = "findCompletedItems"
SERVICE_VERSION = "1.13.0"
GLOBAL_ID = "EBAY-GB"
LOCATED_IN = "GB"
CONDITION_NEW = "1000"
ENTRIES_PER_PAGE = 100


@dataclass(frozen=True)
class ListingItem:
    currency: Optional[str]
    value: Optional[str]
    title: Optional[str] = None


@dataclass(frozen=True)
class SearchPage:
    items: List[ListingItem] = field(default_factory=list)
    total_results: int = 0


# === Response decoding ===
def _unwrap(value: Any, what: str) -> Optional[dict]:
    """
    Finding API JSON wraps every field in a one-element list.
    Absent or empty -> None; a dict (wrapped or bare) -> the dict; anything else is malformed.
    """
    if value is None:
        return None
    if isinstance(value, list):
        if not value:
            return None
        value = value[0]
    if not isinstance(value, dict):
        raise MalformedResponse(f"Expected object for '{what}', got {type(value).__name__}")
    return value


def _unwrap_scalar(value: Any) -> Optional[str]:
    if isinstance(value, list):
        value = value[0] if value else None
    return None if value is None else str(value)


def _decode_item(raw: Any) -> ListingItem:
    try:
        item = _unwrap(raw, "item")
        status = _unwrap(item.get("sellingStatus"), "sellingStatus") if item else None
        price = _unwrap(status.get("currentPrice"), "currentPrice") if status else None
    except MalformedResponse as e:
        logger.debug(f"Skipping listing with unexpected shape: {e}")
        return ListingItem(currency=None, value=None)

    title = _unwrap_scalar(item.get("title")) if item else None
    if not price:
        return ListingItem(currency=None, value=None, title=title)
    return ListingItem(
        currency=price.get("@currencyId"),
        value=price.get("__value__"),
        title=title,
    )


def _remote_error_message(envelope: dict) -> str:
    try:
        errors = _unwrap(envelope.get("errorMessage"), "errorMessage") or {}
        error = _unwrap(errors.get("error"), "error") or {}
    except MalformedResponse:
        return "unknown error"
    return _unwrap_scalar(error.get("message")) or "unknown error"


def parse_search_response(payload: Any) -> SearchPage:
    """
    Decode a findCompletedItems JSON payload.
    Missing sections yield an empty page; sections with the wrong type,
    or an ack of Failure, raise MalformedResponse.
    """
    if not isinstance(payload, dict):
        raise MalformedResponse(f"Expected JSON object, got {type(payload).__name__}")

    envelope = _unwrap(payload.get("findCompletedItemsResponse"), "findCompletedItemsResponse")
    if envelope is None:
        return SearchPage()

    if _unwrap_scalar(envelope.get("ack")) == "Failure":
        raise MalformedResponse(f"eBay reported failure: {_remote_error_message(envelope)}")

    result = _unwrap(envelope.get("searchResult"), "searchResult")
    if result is None:
        return SearchPage()

    raw_items = result.get("item")
    if raw_items is None:
        raw_items = []
    if not isinstance(raw_items, list):
        raise MalformedResponse(f"Expected list for 'item', got {type(raw_items).__name__}")

    count = result.get("@count", "0")
    try:
        total = int(count)
    except (TypeError, ValueError):
        raise MalformedResponse(f"Non-numeric '@count': {count!r}")

    return SearchPage(items=[_decode_item(raw) for raw in raw_items], total_results=total)


# === Authentication strategies ===
class SearchAuth(ABC):
    """How a Finding API request proves who we are."""

    @abstractmethod
    async def apply(self, params: Dict[str, str], headers: Dict[str, str]) -> None:
        """Add credentials to the outgoing request in place."""

    def on_rejected(self) -> None:
        """Called when eBay answers 401/403."""

    @property
    def has_token(self) -> Optional[bool]:
        """None when the strategy does not use tokens at all."""
        return None


class AppIdAuth(SearchAuth):
    """Legacy app-id only access: SECURITY-APPNAME query parameter, no token."""

    def __init__(self, app_id: Optional[str]):
        self.app_id = app_id

    async def apply(self, params, headers):
        if not self.app_id:
            logger.error("Missing EBAY_CLIENT_ID environment variable")
            raise ConfigurationError("Missing EBAY_CLIENT_ID environment variable")
        params["SECURITY-APPNAME"] = self.app_id


class BearerTokenAuth(SearchAuth):
    """OAuth application token passed in the SOA security header."""

    def __init__(self, token_provider: TokenProvider):
        self.token_provider = token_provider

    async def apply(self, params, headers):
        token = await self.token_provider.get_token()
        params["SECURITY-APPNAME"] = self.token_provider.client_id
        headers["X-EBAY-SOA-SECURITY-TOKEN"] = token
        headers["X-EBAY-SOA-OPERATION-NAME"] = OPERATION_NAME

    def on_rejected(self):
        self.token_provider.invalidate()

    @property
    def has_token(self):
        return self.token_provider.has_token


# === Transport ===
def _decode_body(raw: bytes, charset: Optional[str], strict: bool = True) -> str:
    """Bytes -> text; undecodable bodies (or unknown charsets) are MalformedResponse."""
    try:
        return raw.decode(charset or "utf-8", errors="strict" if strict else "replace")
    except (UnicodeDecodeError, LookupError) as e:
        raise MalformedResponse(f"Undecodable eBay response body: {e}") from e


async def _fetch_text(url: str, params: dict, headers: dict, timeout: float) -> Tuple[int, str]:
    """
    GET `url` and return (status, body text); network problems become TransportError.
    Error bodies are decoded leniently since they are only logged.
    """
    try:
        async with aiohttp.ClientSession() as session:
            async with session.get(
                url, params=params, headers=headers, timeout=aiohttp.ClientTimeout(total=timeout)
            ) as resp:
                raw = await resp.read()
                return resp.status, _decode_body(raw, resp.charset, strict=resp.status == 200)
    except asyncio.TimeoutError as e:
        raise TransportError(f"Timed out after {timeout}s calling {url}") from e
    except aiohttp.ClientError as e:
        raise TransportError(f"Network error calling {url}: {e}") from e


class FindingClient:
    """Sold-listing search against the Finding API."""

    def __init__(self, auth: SearchAuth, endpoint: str = FINDING_API_URL, timeout: float = 20):
        self.auth = auth
        self.endpoint = endpoint
        self.timeout = timeout

    @staticmethod
    def build_params(keywords: str) -> Dict[str, str]:
        return {
            "OPERATION-NAME": OPERATION_NAME,
            "SERVICE-VERSION": SERVICE_VERSION,
            "RESPONSE-DATA-FORMAT": "JSON",
            "REST-PAYLOAD": "",
            "keywords": keywords,
            "itemFilter(0).name": "SoldItemsOnly",
            "itemFilter(0).value": "true",
            "itemFilter(1).name": "Condition",
            "itemFilter(1).value": CONDITION_NEW,
            "itemFilter(2).name": "LocatedIn",
            "itemFilter(2).value": LOCATED_IN,
            "sortOrder": "EndTimeSoonest",
            "paginationInput.entriesPerPage": str(ENTRIES_PER_PAGE),
            "GLOBAL-ID": GLOBAL_ID,
        }

    async def search(self, keywords: str) -> SearchPage:
        """
        Run one findCompletedItems search.

        Raises ConfigurationError before any network call when credentials are
        missing, AuthRejected on 401/403 (after telling the auth strategy),
        TransportError for other failures and MalformedResponse for bad payloads.
        """
        params = self.build_params(keywords)
        headers = {"Accept": "application/json"}
        await self.auth.apply(params, headers)

        logger.info(f"[eBay] GET {self.endpoint} keywords={keywords!r}")
        status, text = await _fetch_text(self.endpoint, params, headers, self.timeout)

        if status in (401, 403):
            logger.warning(f"[eBay] HTTP {status}: {text[:400]}")
            self.auth.on_rejected()
            raise AuthRejected(status)
        if status != 200:
            logger.warning(f"[eBay] HTTP {status}: {text[:400]}")
            raise TransportError(f"HTTP {status} from Finding API")

        try:
            data = json.loads(text)
        except ValueError as e:
            logger.debug(f"Response snippet: {text[:500]}")
            raise MalformedResponse("Failed to parse eBay JSON response") from e

        page = parse_search_response(data)
        logger.info(f"Found {len(page.items)} sold items (eBay reports {page.total_results})")
        return page
