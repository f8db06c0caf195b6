import asyncio
from dataclasses import asdict, dataclass

import structlog
from sqlalchemy.orm import Session

from skinwatch.core.config import settings
from skinwatch.core.exceptions import UpstreamError
from skinwatch.marketplaces.base import QuoteSource
from skinwatch.marketplaces.steam import SteamMarketClient
from skinwatch.services.alerts import AlertEngine
from skinwatch.services.notifier import Notifier, TelegramNotifier
from skinwatch.services.pricing import PriceService

logger = structlog.get_logger(__name__)


@dataclass
class SweepStats:
    processed: int = 0
    triggered: int = 0
    errors: int = 0
    skipped: bool = False

    def as_dict(self) -> dict:
        return asdict(self)


class Sweeper:
    """
    One pass over every active alert. Items are handled strictly in
    sequence with a fixed pause after each one, so a sweep of K alerts
    takes at least K * delay seconds. Overlapping runs in the same process
    are refused rather than queued.
    """

    def __init__(
        self,
        prices: PriceService,
        engine: AlertEngine,
        delay: float | None = None,
    ):
        self.prices = prices
        self.engine = engine
        self.delay = settings.SWEEP_DELAY_SECONDS if delay is None else delay
        self._lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._lock.locked()

    async def run(self, db: Session) -> SweepStats:
        if self._lock.locked():
            logger.warning("sweep.skipped", reason="already running")
            return SweepStats(skipped=True)

        async with self._lock:
            return await self._sweep(db)

    async def _sweep(self, db: Session) -> SweepStats:
        removed = self.prices.cache.cleanup_expired(db)
        logger.info("sweep.cache_cleaned", removed=removed)

        alerts = self.engine.list_active(db)
        logger.info("sweep.started", active_alerts=len(alerts))

        stats = SweepStats(processed=len(alerts))

        for alert in alerts:
            try:
                result = await self.prices.lookup(db, alert.item_name, alert.currency)
                if not result.success or result.price is None:
                    raise UpstreamError(f"No price available for {alert.item_name}")

                outcome = await self.engine.process(db, alert, result.price)
                if outcome.trigger:
                    stats.triggered += 1
            except Exception as e:
                # one bad item never aborts the pass
                db.rollback()
                stats.errors += 1
                logger.error(
                    "sweep.item_failed",
                    alert_id=alert.id,
                    item=alert.item_name,
                    error=str(e),
                    error_type=type(e).__name__,
                )
            finally:
                await asyncio.sleep(self.delay)

        logger.info("sweep.finished", **stats.as_dict())
        return stats


def build_sweeper(
    quotes: QuoteSource | None = None,
    notifier: Notifier | None = None,
    delay: float | None = None,
) -> Sweeper:
    prices = PriceService(quotes or SteamMarketClient())
    engine = AlertEngine(notifier or TelegramNotifier())
    return Sweeper(prices, engine, delay=delay)
