from datetime import date, datetime

from sqlalchemy import Date, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from skinwatch.core.clock import utcnow
from skinwatch.db.base import Base


class Item(Base):
    """Catalog entry. `name` is the canonical market hash name."""

    __tablename__ = "items"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(Text, unique=True, index=True, nullable=False)

    weapon_name: Mapped[str] = mapped_column(String(128), index=True, nullable=False)
    weapon_type: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    skin_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    rarity: Mapped[str] = mapped_column(String(64), nullable=False, default="Unknown")
    rarity_definition: Mapped[str | None] = mapped_column(String(255), nullable=True)
    rarity_color: Mapped[str | None] = mapped_column(String(32), nullable=True)
    collection: Mapped[str | None] = mapped_column(String(255), nullable=True)
    introduced_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
