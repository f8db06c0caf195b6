from skinwatch.db.base import Base
from skinwatch.db.models.user import User
from skinwatch.db.models.item import Item
from skinwatch.db.models.price_alert import AlertType, PriceAlert
from skinwatch.db.models.price_cache import PriceCacheEntry
from skinwatch.db.models.price_history import PriceHistoryEntry

__all__ = [
    "Base",
    "User",
    "Item",
    "AlertType",
    "PriceAlert",
    "PriceCacheEntry",
    "PriceHistoryEntry",
]
