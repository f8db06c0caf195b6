import enum
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, Float, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from skinwatch.core.clock import utcnow
from skinwatch.db.base import Base


class AlertType(str, enum.Enum):
    ABSOLUTE = "absolute"
    PERCENTAGE_DROP = "percentage_drop"
    PERCENTAGE_INCREASE = "percentage_increase"


class PriceAlert(Base):
    __tablename__ = "price_alerts"

    id: Mapped[int] = mapped_column(primary_key=True)

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    item_name: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    item_id: Mapped[int | None] = mapped_column(
        ForeignKey("items.id", ondelete="SET NULL"), nullable=True
    )

    alert_type: Mapped[AlertType] = mapped_column(
        Enum(
            AlertType,
            name="alert_type",
            native_enum=False,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=AlertType.ABSOLUTE,
    )
    target_price: Mapped[float] = mapped_column(Float, nullable=False)

    # frozen at creation for percentage alerts
    base_price: Mapped[float | None] = mapped_column(Float, nullable=True)
    percentage_threshold: Mapped[float | None] = mapped_column(Float, nullable=True)

    current_price: Mapped[float | None] = mapped_column(Float, nullable=True)
    currency: Mapped[str] = mapped_column(String(8), nullable=False, default="USD")

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    triggered_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    user = relationship("User", back_populates="alerts")


Index("ix_price_alerts_active_user", PriceAlert.is_active, PriceAlert.user_id)
