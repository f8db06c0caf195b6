from datetime import timedelta

import structlog
from sqlalchemy import delete, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from skinwatch.core.clock import Clock, as_utc, utcnow
from skinwatch.core.config import settings
from skinwatch.db.models.price_cache import PriceCacheEntry
from skinwatch.db.models.price_history import PriceHistoryEntry

logger = structlog.get_logger(__name__)

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class PriceCache:
    """
    One live quote per item plus the append-only history log.

    Failed quotes are cached too so a broken lookup is not hammered for
    the whole TTL.
    """

    def __init__(self, ttl: timedelta | None = None, clock: Clock = utcnow):
        self.ttl = ttl or timedelta(minutes=settings.CACHE_TTL_MINUTES)
        self.clock = clock

    def get(self, db: Session, item_name: str) -> PriceCacheEntry | None:
        entry = db.get(PriceCacheEntry, item_name, populate_existing=True)
        if entry is None:
            return None
        if self.clock() >= as_utc(entry.expires_at):
            return None
        return entry

    def put(
        self,
        db: Session,
        item_name: str,
        price: float | None,
        currency: str,
        success: bool,
        volume: int | None = None,
        median_price: float | None = None,
    ) -> PriceCacheEntry:
        now = self.clock()
        values = {
            "item_name": item_name,
            "price": price or 0.0,
            "currency": currency,
            "volume": volume,
            "median_price": median_price,
            "success": success,
            "cached_at": now,
            "expires_at": now + self.ttl,
        }

        insert = _UPSERT_DIALECTS.get(db.get_bind().dialect.name)
        if insert is not None:
            stmt = insert(PriceCacheEntry).values(**values)
            stmt = stmt.on_conflict_do_update(
                index_elements=[PriceCacheEntry.item_name],
                set_={k: v for k, v in values.items() if k != "item_name"},
            )
            db.execute(stmt)
        else:
            db.merge(PriceCacheEntry(**values))

        db.add(
            PriceHistoryEntry(
                item_name=item_name,
                price=price or 0.0,
                currency=currency,
                volume=volume,
                median_price=median_price,
                success=success,
                recorded_at=now,
            )
        )
        db.commit()

        logger.debug("cache.put", item=item_name, success=success, price=price)
        return db.get(PriceCacheEntry, item_name, populate_existing=True)

    def cleanup_expired(self, db: Session) -> int:
        result = db.execute(
            delete(PriceCacheEntry)
            .where(PriceCacheEntry.expires_at < self.clock())
            .execution_options(synchronize_session=False)
        )
        db.commit()
        return result.rowcount or 0

    def history(
        self, db: Session, item_name: str, days: int = 7
    ) -> list[PriceHistoryEntry]:
        since = self.clock() - timedelta(days=days)
        q = (
            select(PriceHistoryEntry)
            .where(PriceHistoryEntry.item_name == item_name)
            .where(PriceHistoryEntry.recorded_at >= since)
            .order_by(PriceHistoryEntry.recorded_at.desc(), PriceHistoryEntry.id.desc())
        )
        return list(db.execute(q).scalars().all())
