import asyncio
from urllib.parse import quote as urlquote

import httpx
import structlog

from skinwatch.core.config import settings
from skinwatch.core.constants import Apps
from skinwatch.core.exceptions import UpstreamError, ValidationError
from skinwatch.core.pricing import get_currency, parse_price_to_decimal, parse_volume
from skinwatch.marketplaces.base import Quote, QuoteSource

logger = structlog.get_logger(__name__)

LISTING_URL = "https://steamcommunity.com/market/listings/{app_id}/{name}"


class SteamMarketClient(QuoteSource):
    """Community market `priceoverview` endpoint."""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        retries: int | None = None,
        backoff: float = 1.0,
    ):
        self.base_url = base_url or settings.STEAM_MARKET_URL
        self.retries = max(1, retries or settings.QUOTE_RETRIES)
        self.backoff = backoff
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout or settings.QUOTE_TIMEOUT_SECONDS,
            headers={"Accept": "application/json"},
        )

    async def quote(
        self, item_name: str, currency: str = "USD", app_id: int | None = None
    ) -> Quote:
        info = get_currency(currency)
        try:
            app = Apps(app_id or settings.DEFAULT_APP_ID)
        except ValueError:
            raise ValidationError(f"Unsupported app id: {app_id}")

        params = {
            "currency": info.steam_id,
            "appid": int(app),
            "market_hash_name": item_name,
        }

        response = await self._fetch_with_retries(params)
        try:
            data = response.json() or {}
        except ValueError as e:
            raise UpstreamError("Market returned an unreadable response.") from e

        if not data.get("success"):
            logger.info("quote.not_found", item=item_name)
            return Quote(success=False, currency=info.code)

        lowest = parse_price_to_decimal(data.get("lowest_price"))
        median = parse_price_to_decimal(data.get("median_price"))

        return Quote(
            success=lowest is not None or median is not None,
            currency=info.code,
            lowest_price=float(lowest) if lowest is not None else None,
            volume=parse_volume(data.get("volume")),
            median_price=float(median) if median is not None else None,
        )

    async def _fetch_with_retries(self, params: dict) -> httpx.Response:
        last_error: Exception | None = None

        for attempt in range(self.retries):
            try:
                r = await self._client.get(self.base_url, params=params)
                r.raise_for_status()
                return r
            except httpx.HTTPStatusError as e:
                if e.response.status_code < 500:
                    logger.warning(
                        "quote.rejected",
                        item=params["market_hash_name"],
                        status=e.response.status_code,
                    )
                    raise UpstreamError(
                        "Error fetching item price. Please try again later."
                    ) from e
                last_error = e
                logger.warning(
                    "quote.attempt_failed",
                    item=params["market_hash_name"],
                    attempt=attempt + 1,
                    error=str(e),
                )
                if attempt < self.retries - 1:
                    await asyncio.sleep(self.backoff * 2**attempt)
            except httpx.HTTPError as e:
                last_error = e
                logger.warning(
                    "quote.attempt_failed",
                    item=params["market_hash_name"],
                    attempt=attempt + 1,
                    error=str(e),
                )
                if attempt < self.retries - 1:
                    await asyncio.sleep(self.backoff * 2**attempt)

        raise UpstreamError(
            "Error fetching item price. Please try again later."
        ) from last_error

    @staticmethod
    def market_url(item_name: str, app_id: int | None = None) -> str:
        return LISTING_URL.format(
            app_id=app_id or settings.DEFAULT_APP_ID, name=urlquote(item_name)
        )

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()
