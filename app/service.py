"""
Sold-price lookup pipeline.

normalize -> cache -> Finding API -> aggregate -> cache.
One SoldPriceService lives per process and owns the cache and the search
client (and through it the OAuth token). Remote failures are logged and
reported as None; only missing configuration escapes as an exception.
"""

from typing import Optional

from ebay_utils.auth import TokenProvider
from ebay_utils.errors import AuthExchangeError, AuthRejected, MalformedResponse, TransportError
from ebay_utils.finding import AppIdAuth, BearerTokenAuth, FindingClient
from pricing_tools.cache import ResultCache
from pricing_tools.query import make_cache_key, normalize_query
from pricing_tools.sold_stats import SoldPriceStats, summarize_prices
from utils.logger import get_logger

from .config import Settings

logger = get_logger("price_service")


class SoldPriceService:
    def __init__(self, client: FindingClient, cache: Optional[ResultCache] = None):
        self.client = client
        self.cache = cache if cache is not None else ResultCache()

    @property
    def has_token(self) -> Optional[bool]:
        """Token presence for OAuth mode, None when the client runs on app id only."""
        return self.client.auth.has_token

    async def lookup(self, raw_query: str) -> Optional[SoldPriceStats]:
        """
        Return sold-price statistics for `raw_query`, or None when eBay has
        nothing usable (or could not be reached).
        Concurrent misses for the same key each hit eBay; nothing is deduplicated.
        """
        query = normalize_query(raw_query)
        key = make_cache_key(query)

        cached = self.cache.get(key)
        if cached is not None:
            logger.info(f'✓ Cache hit for: "{query}"')
            return cached

        logger.info(f'🔍 Searching eBay SOLD listings for: "{query}"')
        try:
            page = await self.client.search(query)
        except AuthRejected as e:
            logger.error(f"eBay rejected credentials for '{query}': {e}")
            return None
        except AuthExchangeError as e:
            logger.error(f"Could not obtain eBay token for '{query}': {e}")
            return None
        except (TransportError, MalformedResponse) as e:
            logger.error(f"eBay API error for '{query}': {e}")
            return None

        if not page.items:
            logger.info(f"No sold items for '{query}'")
            return None

        stats = summarize_prices(page.items, page.total_results, query)
        if stats is None:
            logger.info(f"No valid GBP prices for '{query}'")
            return None

        self.cache.put(key, stats)
        return stats


def build_service(settings: Settings) -> SoldPriceService:
    """Wire up the service for the configured auth mode."""
    if settings.auth_mode == "appid":
        auth = AppIdAuth(settings.client_id)
    else:
        auth = BearerTokenAuth(TokenProvider(settings.client_id, settings.client_secret))
    client = FindingClient(auth, timeout=settings.timeout)
    logger.info(f"Using Finding API with {settings.auth_mode} auth for completed listings")
    return SoldPriceService(client)
