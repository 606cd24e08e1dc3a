"""
Tests for the sold-price lookup pipeline.

Covers cache hits and misses, the "no data" outcomes for every absorbed
failure, configuration errors escaping, and OAuth token handling end to end.
"""

import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest
import respx

from app.config import Settings
from app.service import SoldPriceService, build_service
from ebay_utils.auth import TOKEN_URL, TokenProvider
from ebay_utils.errors import (
    AuthExchangeError,
    AuthRejected,
    ConfigurationError,
    MalformedResponse,
    TransportError,
)
from ebay_utils.finding import AppIdAuth, BearerTokenAuth, FindingClient, ListingItem, SearchPage
from pricing_tools.cache import ResultCache

MOCK_TOKEN_RESPONSE = {"access_token": "tok-1", "expires_in": 7200}


def _page(*values, total=None):
    items = [ListingItem(currency="GBP", value=str(v)) for v in values]
    return SearchPage(items=items, total_results=total if total is not None else len(items))


class TestLookup:

    @pytest.mark.asyncio
    async def test_miss_searches_normalized_query_and_caches(self, stub_client, clock):
        client = stub_client(page=_page(10, 20, 30, total=75))
        service = SoldPriceService(client, ResultCache(clock=clock))

        stats = await service.lookup("  Nintendo Switch!! ")

        assert client.calls == ["Nintendo Switch"]
        assert stats.average_price == 20.0
        assert stats.total_results == 75
        assert stats.query == "Nintendo Switch"
        assert stats.from_cache is False
        assert len(service.cache) == 1

    @pytest.mark.asyncio
    async def test_second_lookup_is_served_from_cache(self, stub_client, clock):
        client = stub_client(page=_page(10, 20))
        service = SoldPriceService(client, ResultCache(clock=clock))

        await service.lookup("Nintendo Switch")
        cached = await service.lookup("nintendo   SWITCH")

        assert len(client.calls) == 1
        assert cached.from_cache is True
        assert cached.query == "Nintendo Switch"

    @pytest.mark.asyncio
    async def test_expired_entry_triggers_new_search(self, stub_client, clock):
        client = stub_client(page=_page(10))
        service = SoldPriceService(client, ResultCache(clock=clock))

        await service.lookup("kettle")
        clock.advance(24 * 60 * 60)
        result = await service.lookup("kettle")

        assert len(client.calls) == 2
        assert result.from_cache is False

    @pytest.mark.asyncio
    async def test_empty_page_is_no_data(self, stub_client):
        service = SoldPriceService(stub_client(page=SearchPage()))
        assert await service.lookup("nothing sold") is None
        assert len(service.cache) == 0

    @pytest.mark.asyncio
    async def test_no_valid_prices_is_no_data_not_a_zero_record(self, stub_client):
        page = SearchPage(
            items=[ListingItem(currency="USD", value="10"), ListingItem(currency="GBP", value="0")],
            total_results=2,
        )
        service = SoldPriceService(stub_client(page=page))

        assert await service.lookup("widget") is None
        assert len(service.cache) == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            AuthRejected(401),
            AuthExchangeError("Failed to get OAuth token"),
            TransportError("HTTP 503 from Finding API"),
            MalformedResponse("bad envelope"),
        ],
    )
    async def test_remote_failures_become_no_data(self, stub_client, error):
        service = SoldPriceService(stub_client(error=error))
        assert await service.lookup("widget") is None

    @pytest.mark.asyncio
    async def test_configuration_error_propagates(self, stub_client):
        service = SoldPriceService(stub_client(error=ConfigurationError("Missing EBAY_CLIENT_ID")))
        with pytest.raises(ConfigurationError):
            await service.lookup("widget")

    @pytest.mark.asyncio
    async def test_has_token_is_none_for_app_id_mode(self, stub_client):
        assert SoldPriceService(stub_client(auth=AppIdAuth("x"))).has_token is None


class TestOAuthPipeline:
    """Real TokenProvider + FindingClient with both network edges mocked."""

    def _service(self, clock):
        provider = TokenProvider("client-id", "client-secret", clock=clock)
        client = FindingClient(BearerTokenAuth(provider))
        return SoldPriceService(client, ResultCache(clock=clock))

    @pytest.mark.asyncio
    async def test_two_lookups_share_one_token_exchange(self, clock, finding_payload):
        service = self._service(clock)
        body = json.dumps(finding_payload([10, 20]))
        fetch = AsyncMock(return_value=(200, body))

        with respx.mock:
            token_route = respx.post(TOKEN_URL).mock(return_value=httpx.Response(200, json=MOCK_TOKEN_RESPONSE))
            with patch("ebay_utils.finding._fetch_text", fetch):
                await service.lookup("kettle")
                await service.lookup("toaster")

        assert token_route.call_count == 1
        assert fetch.await_count == 2
        assert service.has_token is True

    @pytest.mark.asyncio
    async def test_auth_rejection_resets_token_for_next_lookup(self, clock, finding_payload):
        service = self._service(clock)
        fetch = AsyncMock(side_effect=[(401, "Invalid token"), (200, json.dumps(finding_payload([15])))])

        with respx.mock:
            token_route = respx.post(TOKEN_URL).mock(return_value=httpx.Response(200, json=MOCK_TOKEN_RESPONSE))
            with patch("ebay_utils.finding._fetch_text", fetch):
                assert await service.lookup("kettle") is None
                assert service.has_token is False

                stats = await service.lookup("kettle")

        assert token_route.call_count == 2
        assert stats.sold_count == 1
        assert service.has_token is True

    @pytest.mark.asyncio
    async def test_token_endpoint_failure_is_no_data(self, clock):
        service = self._service(clock)
        fetch = AsyncMock()

        with respx.mock:
            respx.post(TOKEN_URL).mock(return_value=httpx.Response(500, text="down"))
            with patch("ebay_utils.finding._fetch_text", fetch):
                assert await service.lookup("kettle") is None

        fetch.assert_not_called()
        assert service.has_token is False

    @pytest.mark.asyncio
    async def test_missing_secret_fails_loudly(self, clock):
        provider = TokenProvider("client-id", None, clock=clock)
        service = SoldPriceService(FindingClient(BearerTokenAuth(provider)))
        with pytest.raises(ConfigurationError):
            await service.lookup("kettle")


class TestBuildService:

    def test_oauth_mode_uses_bearer_auth(self):
        service = build_service(Settings(client_id="id", client_secret="secret", auth_mode="oauth", timeout=7))
        assert isinstance(service.client.auth, BearerTokenAuth)
        assert service.client.timeout == 7
        assert service.has_token is False

    def test_appid_mode_uses_app_id_auth(self):
        service = build_service(Settings(client_id="id", client_secret=None, auth_mode="appid"))
        assert isinstance(service.client.auth, AppIdAuth)
        assert service.has_token is None
