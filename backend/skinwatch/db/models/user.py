from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from skinwatch.core.clock import utcnow
from skinwatch.core.constants import DEFAULT_TIER, TIER_LIMITS
from skinwatch.db.base import Base


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    telegram_id: Mapped[str] = mapped_column(
        String(64), unique=True, index=True, nullable=False
    )
    username: Mapped[str | None] = mapped_column(String(255), nullable=True)
    first_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # preferences
    currency: Mapped[str] = mapped_column(String(8), nullable=False, default="USD")
    language: Mapped[str] = mapped_column(String(8), nullable=False, default="en")
    notifications: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # limits
    tier: Mapped[str] = mapped_column(
        String(16), nullable=False, default=DEFAULT_TIER.value
    )
    max_alerts: Mapped[int] = mapped_column(
        Integer, nullable=False, default=TIER_LIMITS[DEFAULT_TIER].max_alerts
    )
    price_checks_per_minute: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=TIER_LIMITS[DEFAULT_TIER].price_checks_per_minute,
    )

    # usage
    alerts_created: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    price_checks_this_minute: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    last_price_check: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    alerts = relationship(
        "PriceAlert", back_populates="user", cascade="all, delete-orphan"
    )
