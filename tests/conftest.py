"""
Shared fixtures for the sold-price tests.

Provides a controllable clock, Finding API payload builders and a stub
search client so the pipeline can run without touching eBay.
"""

import pytest

from ebay_utils.finding import AppIdAuth, ListingItem, SearchPage


class FakeClock:
    """Callable stand-in for time.time() that only moves when told to."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StubFindingClient:
    """Records searched keywords and returns a canned page (or raises)."""

    def __init__(self, page=None, error=None, auth=None):
        self.page = page if page is not None else SearchPage()
        self.error = error
        self.auth = auth or AppIdAuth("test-app-id")
        self.calls = []

    async def search(self, keywords):
        self.calls.append(keywords)
        if self.error is not None:
            raise self.error
        return self.page


def _build_payload(prices, count=None):
    items = []
    for i, price in enumerate(prices):
        value, currency = price if isinstance(price, tuple) else (price, "GBP")
        items.append(
            {
                "itemId": [str(1000 + i)],
                "title": [f"Listing {i}"],
                "sellingStatus": [
                    {
                        "currentPrice": [{"@currencyId": currency, "__value__": str(value)}],
                        "sellingState": ["EndedWithSales"],
                    }
                ],
            }
        )
    return {
        "findCompletedItemsResponse": [
            {
                "ack": ["Success"],
                "version": ["1.13.0"],
                "searchResult": [
                    {"@count": str(count if count is not None else len(items)), "item": items}
                ],
            }
        ]
    }


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def finding_payload():
    """Builder: finding_payload([10, (5, "USD")], count=250) -> response dict."""
    return _build_payload


@pytest.fixture
def gbp_items():
    """Builder for ListingItem lists priced in GBP."""

    def build(*values):
        return [ListingItem(currency="GBP", value=str(v)) for v in values]

    return build


@pytest.fixture
def stub_client():
    return StubFindingClient
