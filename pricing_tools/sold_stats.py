"""
pricing_tools/sold_stats.py
---------------------------
Turns sold eBay listings into summary price statistics.
Only GBP prices strictly between 0 and 10,000 are counted;
every figure is rounded half away from zero to 2 decimal places.
"""

from dataclasses import dataclass, asdict
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from statistics import mean, median
from typing import Iterable, List, Optional

from ebay_utils.finding import ListingItem
from utils.logger import get_logger

logger = get_logger("sold_stats")

TARGET_CURRENCY = "GBP"
MAX_VALID_PRICE = 10000

_CENTS = Decimal("0.01")


@dataclass(frozen=True)
class SoldPriceStats:
    average_price: float
    median_price: float
    min_price: float
    max_price: float
    sold_count: int
    total_results: int
    query: str
    from_cache: bool = False

    def to_dict(self) -> dict:
        """camelCase payload; fromCache only appears on cache hits."""
        data = asdict(self)
        payload = {
            "averagePrice": data["average_price"],
            "medianPrice": data["median_price"],
            "minPrice": data["min_price"],
            "maxPrice": data["max_price"],
            "soldCount": data["sold_count"],
            "totalResults": data["total_results"],
            "query": data["query"],
        }
        if self.from_cache:
            payload["fromCache"] = True
        return payload


def round_price(value: float) -> float:
    """Round to pennies, halves away from zero (2.345 -> 2.35)."""
    return float(Decimal(str(value)).quantize(_CENTS, rounding=ROUND_HALF_UP))


def _parse_value(raw) -> Optional[float]:
    if raw is None:
        return None
    try:
        value = Decimal(str(raw).strip())
    except InvalidOperation:
        return None
    if not value.is_finite():
        return None
    return float(value)


def extract_prices(items: Iterable[ListingItem], currency: str = TARGET_CURRENCY) -> List[float]:
    """Keep the sale prices in `currency` that fall inside (0, MAX_VALID_PRICE)."""
    prices = []
    for item in items:
        if item.currency != currency:
            continue
        value = _parse_value(item.value)
        if value is None:
            logger.debug(f"Dropping unparseable price {item.value!r}")
            continue
        if 0 < value < MAX_VALID_PRICE:
            prices.append(value)
    return prices


def summarize_prices(items: Iterable[ListingItem], total_results: int, query: str) -> Optional[SoldPriceStats]:
    """
    Build statistics for a page of sold listings.
    Returns None when no listing carries a usable price.
    """
    prices = extract_prices(items)
    if not prices:
        return None

    stats = SoldPriceStats(
        average_price=round_price(mean(prices)),
        median_price=round_price(median(prices)),
        min_price=round_price(min(prices)),
        max_price=round_price(max(prices)),
        sold_count=len(prices),
        total_results=total_results,
        query=query,
    )

    logger.info(
        f"{stats.sold_count} sold | Avg: £{stats.average_price:.2f} | Median: £{stats.median_price:.2f}"
    )
    return stats
