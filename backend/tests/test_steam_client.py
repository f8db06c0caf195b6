"""Tests for the Steam market quote adapter, using a mocked transport."""

import httpx
import pytest

from skinwatch.core.exceptions import UpstreamError, ValidationError
from skinwatch.marketplaces.steam import SteamMarketClient

BASE = "https://market.test/priceoverview/"


def _client(handler, retries=3) -> SteamMarketClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SteamMarketClient(client=http, base_url=BASE, retries=retries, backoff=0)


class TestQuote:
    async def test_success(self):
        seen = {}

        def handler(request: httpx.Request):
            seen.update(request.url.params)
            return httpx.Response(
                200,
                json={
                    "success": True,
                    "lowest_price": "$1,234.56",
                    "volume": "1,024",
                    "median_price": "$1,200.00",
                },
            )

        quote = await _client(handler).quote("AK-47 | Redline (Field-Tested)", "USD")

        assert quote.success is True
        assert quote.lowest_price == 1234.56
        assert quote.median_price == 1200.0
        assert quote.volume == 1024
        assert quote.currency == "USD"
        assert seen == {
            "currency": "1",
            "appid": "730",
            "market_hash_name": "AK-47 | Redline (Field-Tested)",
        }

    async def test_currency_id_and_european_format(self):
        def handler(request):
            assert request.url.params["currency"] == "3"
            return httpx.Response(200, json={"success": True, "lowest_price": "1.234,56€"})

        quote = await _client(handler).quote("x", "EUR", app_id=570)
        assert quote.lowest_price == 1234.56
        assert quote.median_price is None
        assert quote.volume is None

    async def test_unknown_item(self):
        quote = await _client(lambda r: httpx.Response(200, json={"success": False})).quote(
            "nothing", "USD"
        )
        assert quote.success is False
        assert quote.lowest_price is None

    async def test_retries_then_succeeds(self):
        attempts = []

        def handler(request):
            attempts.append(1)
            if len(attempts) < 3:
                return httpx.Response(500)
            return httpx.Response(200, json={"success": True, "lowest_price": "$2.00"})

        quote = await _client(handler).quote("x", "USD")
        assert quote.lowest_price == 2.0
        assert len(attempts) == 3

    @pytest.mark.parametrize("status", [400, 403, 429])
    async def test_client_errors_are_not_retried(self, status):
        attempts = []

        def handler(request):
            attempts.append(1)
            return httpx.Response(status)

        with pytest.raises(UpstreamError):
            await _client(handler).quote("x", "USD")
        assert len(attempts) == 1

    async def test_gives_up_with_upstream_error(self):
        attempts = []

        def handler(request):
            attempts.append(1)
            raise httpx.ConnectTimeout("timed out", request=request)

        with pytest.raises(UpstreamError):
            await _client(handler, retries=2).quote("x", "USD")
        assert len(attempts) == 2

    async def test_unreadable_body(self):
        with pytest.raises(UpstreamError):
            await _client(lambda r: httpx.Response(200, text="<html>")).quote("x", "USD")

    async def test_unsupported_app(self):
        with pytest.raises(ValidationError):
            await _client(lambda r: httpx.Response(200)).quote("x", "USD", app_id=1)

    def test_market_url(self):
        url = SteamMarketClient.market_url("★ Karambit", app_id=730)
        assert url.startswith("https://steamcommunity.com/market/listings/730/")
        assert " " not in url
