from dataclasses import dataclass
from datetime import datetime

import structlog
from sqlalchemy.orm import Session

from skinwatch.core.config import settings
from skinwatch.core.exceptions import NotFoundError, RateLimitError, UpstreamError
from skinwatch.core.pricing import format_price
from skinwatch.marketplaces.base import QuoteSource
from skinwatch.services.price_cache import PriceCache
from skinwatch.services.rate_limiter import RateLimiter
from skinwatch.services.users import get_user

logger = structlog.get_logger(__name__)


@dataclass
class PriceResult:
    item_name: str
    success: bool
    price: float | None
    currency: str
    volume: int | None
    median_price: float | None
    cached: bool
    cached_at: datetime | None = None

    @property
    def message(self) -> str:
        if not self.success or self.price is None:
            return f'No price found for "{self.item_name}".'
        text = (
            f'Current lowest price for "{self.item_name}": '
            f"{format_price(self.price, self.currency)}"
        )
        if self.median_price is not None:
            text += f"\nMedian price: {format_price(self.median_price, self.currency)}"
        if self.volume is not None:
            text += f"\n24h volume: {self.volume}"
        return text


@dataclass
class PriceCheck:
    result: PriceResult
    remaining: int


class PriceService:
    """Price lookups routed through the cache so the market is hit once per TTL."""

    def __init__(
        self,
        quotes: QuoteSource,
        cache: PriceCache | None = None,
        limiter: RateLimiter | None = None,
    ):
        self.quotes = quotes
        self.cache = cache or PriceCache()
        self.limiter = limiter or RateLimiter()

    async def lookup(
        self,
        db: Session,
        item_name: str,
        currency: str | None = None,
        app_id: int | None = None,
    ) -> PriceResult:
        currency = currency or settings.DEFAULT_CURRENCY

        entry = self.cache.get(db, item_name)
        if entry is not None and entry.currency == currency:
            return PriceResult(
                item_name=item_name,
                success=entry.success,
                price=entry.price if entry.success else None,
                currency=entry.currency,
                volume=entry.volume,
                median_price=entry.median_price,
                cached=True,
                cached_at=entry.cached_at,
            )

        try:
            quote = await self.quotes.quote(item_name, currency, app_id)
        except UpstreamError:
            logger.warning("quote.failed", item=item_name)
            self.cache.put(db, item_name, None, currency, success=False)
            raise

        price = quote.lowest_price if quote.lowest_price is not None else quote.median_price
        entry = self.cache.put(
            db,
            item_name,
            price,
            quote.currency,
            success=quote.success and price is not None,
            volume=quote.volume,
            median_price=quote.median_price,
        )

        return PriceResult(
            item_name=item_name,
            success=entry.success,
            price=price if entry.success else None,
            currency=entry.currency,
            volume=entry.volume,
            median_price=entry.median_price,
            cached=False,
            cached_at=entry.cached_at,
        )

    async def current_price(
        self, db: Session, item_name: str, currency: str | None = None
    ) -> float:
        """Latest usable price or UpstreamError."""
        result = await self.lookup(db, item_name, currency)
        if not result.success or result.price is None:
            raise UpstreamError(
                "Could not get current price for this item. Please try again."
            )
        return result.price

    async def check_price(
        self, db: Session, telegram_id: str | int, item_name: str
    ) -> PriceCheck:
        """User-facing lookup: rate limited, in the user's preferred currency."""
        user = get_user(db, telegram_id)
        if user is None:
            raise NotFoundError("User not found. Please use /start to register.")

        status = self.limiter.can_check(db, telegram_id)
        if not status.allowed:
            raise RateLimitError(status.remaining, status.reset_time)

        self.limiter.increment(db, telegram_id)
        result = await self.lookup(db, item_name, user.currency)
        return PriceCheck(result=result, remaining=status.remaining)
