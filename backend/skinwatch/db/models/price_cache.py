from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from skinwatch.db.base import Base


class PriceCacheEntry(Base):
    """Live quote per item. Upserted on every fetch, expired after the TTL."""

    __tablename__ = "price_cache"

    item_name: Mapped[str] = mapped_column(Text, primary_key=True)

    price: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    currency: Mapped[str] = mapped_column(String(8), nullable=False)
    volume: Mapped[int | None] = mapped_column(Integer, nullable=True)
    median_price: Mapped[float | None] = mapped_column(Float, nullable=True)
    success: Mapped[bool] = mapped_column(Boolean, nullable=False)

    cached_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )
