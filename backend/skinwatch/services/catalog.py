"""Item catalog queries and the CSV importer that fills it."""
import csv
from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path

import structlog
from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from skinwatch.core.constants import VANILLA
from skinwatch.db.models.item import Item

logger = structlog.get_logger(__name__)

BATCH_SIZE = 100

DATE_FORMATS = ("%Y-%m-%d", "%d %B %Y", "%B %d, %Y", "%d/%m/%Y", "%m/%d/%Y", "%Y")


def weapon_types(db: Session) -> list[str]:
    rows = db.execute(select(Item.weapon_type).distinct()).scalars().all()
    return sorted(rows)


def weapon_names(db: Session, weapon_type: str) -> list[str]:
    rows = (
        db.execute(
            select(Item.weapon_name)
            .where(Item.weapon_type == weapon_type)
            .distinct()
        )
        .scalars()
        .all()
    )
    return sorted(rows)


def skin_names(db: Session, weapon_name: str) -> list[str]:
    rows = db.execute(
        select(Item.skin_name, Item.weapon_type).where(
            Item.weapon_name == weapon_name, Item.skin_name.is_not(None)
        )
    ).all()

    skins = sorted({skin.strip() for skin, _ in rows if skin and skin.strip()})

    # knives can also be bought without any finish
    is_knife = any((wt or "").lower() == "knife" for _, wt in rows)
    if is_knife and skins:
        skins.insert(0, VANILLA)

    return skins


def find_item(db: Session, name: str) -> Item | None:
    return db.execute(select(Item).where(Item.name == name)).scalar_one_or_none()


def similar_items(
    db: Session, weapon_name: str, skin_name: str | None = None, limit: int = 5
) -> list[str]:
    q = select(Item.name).where(Item.weapon_name.ilike(f"%{weapon_name}%"))
    if skin_name and skin_name != VANILLA:
        q = q.where(Item.name.ilike(f"%{skin_name}%"))
    return list(db.execute(q.order_by(Item.name).limit(limit)).scalars().all())


def search(db: Session, query: str, limit: int = 10) -> list[Item]:
    pattern = f"%{query}%"
    q = (
        select(Item)
        .where(
            or_(
                Item.name.ilike(pattern),
                Item.weapon_name.ilike(pattern),
                Item.skin_name.ilike(pattern),
            )
        )
        .order_by(Item.name)
        .limit(limit)
    )
    return list(db.execute(q).scalars().all())


def statistics(db: Session) -> dict:
    types = db.execute(select(Item.weapon_type)).scalars().all()
    by_type = Counter(types)
    return {"total": len(types), "by_type": dict(sorted(by_type.items()))}


# -------------------------
# CSV import
# -------------------------


@dataclass
class ImportReport:
    success: int = 0
    errors: int = 0
    duplicates: int = 0


def _parse_date(raw: str | None) -> date | None:
    if not raw or not raw.strip():
        return None
    raw = raw.strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(raw, fmt).date()
        except ValueError:
            continue
    return None


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def parse_row(row: dict) -> dict | None:
    name = _clean(row.get("Name"))
    weapon_name = _clean(row.get("Weapon Name"))
    weapon_type = _clean(row.get("Weapon Type"))

    if not name or not weapon_name or not weapon_type:
        logger.warning("catalog.row_skipped", name=name)
        return None

    return {
        "name": name,
        "weapon_name": weapon_name,
        "weapon_type": weapon_type,
        "skin_name": _clean(row.get("Skin Name")),
        "rarity": _clean(row.get("Rarity")) or "Unknown",
        "rarity_definition": _clean(row.get("Definition")),
        "rarity_color": _clean(row.get("Colour")),
        "collection": _clean(row.get("Collection")),
        "introduced_date": _parse_date(row.get("Introduced")),
    }


def read_csv(path: str | Path) -> tuple[list[dict], int]:
    items: list[dict] = []
    skipped = 0
    with open(path, newline="", encoding="utf-8-sig") as fh:
        for row in csv.DictReader(fh):
            parsed = parse_row(row)
            if parsed is None:
                skipped += 1
            else:
                items.append(parsed)
    logger.info("catalog.csv_read", path=str(path), items=len(items), skipped=skipped)
    return items, skipped


def import_items(db: Session, items: list[dict]) -> ImportReport:
    """Upsert catalog rows by name, in batches."""
    report = ImportReport()
    seen: set[str] = set()

    for i in range(0, len(items), BATCH_SIZE):
        batch = items[i : i + BATCH_SIZE]
        written = 0
        try:
            names = [it["name"] for it in batch]
            existing = {
                item.name: item
                for item in db.execute(select(Item).where(Item.name.in_(names)))
                .scalars()
                .all()
            }

            for data in batch:
                if data["name"] in seen:
                    report.duplicates += 1
                    continue
                seen.add(data["name"])

                item = existing.get(data["name"])
                if item is None:
                    db.add(Item(**data))
                else:
                    report.duplicates += 1
                    for key, value in data.items():
                        setattr(item, key, value)
                written += 1

            db.commit()
            report.success += written
        except SQLAlchemyError as e:
            db.rollback()
            report.errors += len(batch)
            logger.error("catalog.batch_failed", offset=i, error=str(e))

    return report


def import_csv(db: Session, path: str | Path) -> ImportReport:
    items, skipped = read_csv(path)
    report = import_items(db, items)
    report.errors += skipped
    logger.info(
        "catalog.imported",
        path=str(path),
        success=report.success,
        errors=report.errors,
        duplicates=report.duplicates,
    )
    return report
