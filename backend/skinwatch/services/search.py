"""
Step-by-step item search.

A per-user session walks weapon_type -> weapon_name -> skin_name ->
condition -> category -> complete, one selection per step, and ends with
the canonical market name of the chosen item. Sessions live in process
memory and expire after a period of inactivity.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import assert_never

import structlog
from sqlalchemy.orm import Session

from skinwatch.core.clock import Clock, utcnow
from skinwatch.core.config import settings
from skinwatch.core.constants import (
    CATEGORY_KNIFE_STATTRAK,
    CATEGORY_SOUVENIR,
    CATEGORY_STATTRAK,
    GLOVE_CATEGORIES,
    KNIFE_CATEGORIES,
    SKIN_CONDITIONS,
    VANILLA,
    WEAPON_CATEGORIES,
)
from skinwatch.core.exceptions import NotFoundError, ValidationError
from skinwatch.services import catalog

logger = structlog.get_logger(__name__)

SESSION_EXPIRED = "Search session expired. Please use /search again."


class Step(str, enum.Enum):
    WEAPON_TYPE = "weapon_type"
    WEAPON_NAME = "weapon_name"
    SKIN_NAME = "skin_name"
    CONDITION = "condition"
    CATEGORY = "category"
    COMPLETE = "complete"


class ItemKind(enum.Enum):
    KNIFE = "knife"
    GLOVES = "gloves"
    WEAPON = "weapon"

    @classmethod
    def of(cls, weapon_type: str) -> ItemKind:
        wt = (weapon_type or "").strip().lower()
        if wt == "knife":
            return cls.KNIFE
        if wt == "gloves":
            return cls.GLOVES
        return cls.WEAPON


@dataclass
class SearchSession:
    user_id: str
    step: Step = Step.WEAPON_TYPE
    weapon_type: str | None = None
    weapon_name: str | None = None
    skin_name: str | None = None
    condition: str | None = None
    category: str | None = None
    final_name: str | None = None
    item_id: int | None = None
    timestamp: datetime = field(default_factory=utcnow)


def available_categories(weapon_type: str) -> list[str]:
    kind = ItemKind.of(weapon_type)
    match kind:
        case ItemKind.KNIFE:
            return list(KNIFE_CATEGORIES)
        case ItemKind.GLOVES:
            return list(GLOVE_CATEGORIES)
        case ItemKind.WEAPON:
            return list(WEAPON_CATEGORIES)
        case _:
            assert_never(kind)


def generate_item_name(
    weapon_type: str,
    weapon_name: str,
    skin_name: str | None,
    condition: str,
    category: str,
) -> str:
    kind = ItemKind.of(weapon_type)
    has_skin = bool(
        skin_name and skin_name.strip() and skin_name.strip().lower() != VANILLA.lower()
    )

    match kind:
        case ItemKind.KNIFE:
            prefix = "★ StatTrak™ " if category == CATEGORY_KNIFE_STATTRAK else "★ "
            if not has_skin:
                return f"{prefix}{weapon_name}"
            return f"{prefix}{weapon_name} | {skin_name} ({condition})"

        case ItemKind.GLOVES:
            return f"★ {weapon_name} | {skin_name} ({condition})"

        case ItemKind.WEAPON:
            if category == CATEGORY_STATTRAK:
                prefix = "StatTrak™ "
            elif category == CATEGORY_SOUVENIR:
                prefix = "Souvenir "
            else:
                prefix = ""
            return f"{prefix}{weapon_name} | {skin_name} ({condition})"

        case _:
            assert_never(kind)


class SearchSessionStore:
    """In-memory sessions keyed by user id, expired lazily on read."""

    def __init__(self, idle: timedelta | None = None, clock: Clock = utcnow):
        self.idle = idle or timedelta(minutes=settings.SESSION_IDLE_MINUTES)
        self.clock = clock
        self._sessions: dict[str, SearchSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def create(self, user_id: str | int) -> SearchSession:
        session = SearchSession(user_id=str(user_id), timestamp=self.clock())
        self._sessions[str(user_id)] = session
        return session

    def get(self, user_id: str | int) -> SearchSession | None:
        session = self._sessions.get(str(user_id))
        if session is None:
            return None
        if self.clock() - session.timestamp > self.idle:
            del self._sessions[str(user_id)]
            return None
        return session

    def update(self, user_id: str | int, **changes) -> SearchSession | None:
        session = self._sessions.get(str(user_id))
        if session is None:
            return None
        updated = replace(session, **changes, timestamp=self.clock())
        self._sessions[str(user_id)] = updated
        return updated

    def clear(self, user_id: str | int) -> None:
        self._sessions.pop(str(user_id), None)

    def purge_expired(self) -> int:
        now = self.clock()
        stale = [k for k, s in self._sessions.items() if now - s.timestamp > self.idle]
        for key in stale:
            del self._sessions[key]
        return len(stale)


@dataclass
class StepResult:
    session: SearchSession
    options: list[str] = field(default_factory=list)
    found: bool | None = None
    suggestions: list[str] = field(default_factory=list)
    generated_name: str | None = None


class SearchWizard:
    def __init__(self, store: SearchSessionStore | None = None):
        self.store = store or SearchSessionStore()

    def start(self, db: Session, user_id: str | int) -> StepResult:
        types = catalog.weapon_types(db)
        if not types:
            raise NotFoundError("No weapon types found. Please import items first.")
        self.store.purge_expired()
        self.store.clear(user_id)
        session = self.store.create(user_id)
        return StepResult(session=session, options=types)

    def restart(self, db: Session, user_id: str | int) -> StepResult:
        return self.start(db, user_id)

    def cancel(self, user_id: str | int) -> None:
        self.store.clear(user_id)

    def require(self, user_id: str | int) -> SearchSession:
        session = self.store.get(user_id)
        if session is None:
            raise NotFoundError(SESSION_EXPIRED)
        return session

    def select(
        self, db: Session, user_id: str | int, field_name: str, value: str | None
    ) -> StepResult:
        session = self.require(user_id)

        try:
            step = Step(field_name)
        except ValueError:
            raise ValidationError(f"Unknown search step: {field_name}")

        if step != session.step:
            raise ValidationError(
                f"Expected a {session.step.value.replace('_', ' ')} selection."
            )

        match step:
            case Step.WEAPON_TYPE:
                return self._select_weapon_type(db, session, value)
            case Step.WEAPON_NAME:
                return self._select_weapon_name(db, session, value)
            case Step.SKIN_NAME:
                return self._select_skin_name(session, value)
            case Step.CONDITION:
                return self._select_condition(session, value)
            case Step.CATEGORY:
                return self._select_category(db, session, value)
            case Step.COMPLETE:
                raise ValidationError("Search already complete. Use /search again.")
            case _:
                assert_never(step)

    def _select_weapon_type(self, db, session, value) -> StepResult:
        if not value:
            raise ValidationError("Please choose an item type.")
        names = catalog.weapon_names(db, value)
        if not names:
            raise NotFoundError("No weapons found for this type.")
        session = self.store.update(
            session.user_id, step=Step.WEAPON_NAME, weapon_type=value
        )
        return StepResult(session=session, options=names)

    def _select_weapon_name(self, db, session, value) -> StepResult:
        if not value:
            raise ValidationError("Please choose an item name.")
        skins = catalog.skin_names(db, value)
        session = self.store.update(
            session.user_id, step=Step.SKIN_NAME, weapon_name=value
        )
        return StepResult(session=session, options=skins)

    def _select_skin_name(self, session, value) -> StepResult:
        if not value and ItemKind.of(session.weapon_type) != ItemKind.KNIFE:
            raise ValidationError("Please choose a skin.")
        session = self.store.update(
            session.user_id, step=Step.CONDITION, skin_name=value or None
        )
        return StepResult(session=session, options=list(SKIN_CONDITIONS))

    def _select_condition(self, session, value) -> StepResult:
        if value not in SKIN_CONDITIONS:
            raise ValidationError(
                f"Unknown condition. Choose one of: {', '.join(SKIN_CONDITIONS)}"
            )
        session = self.store.update(
            session.user_id, step=Step.CATEGORY, condition=value
        )
        return StepResult(
            session=session, options=available_categories(session.weapon_type)
        )

    def _select_category(self, db, session, value) -> StepResult:
        categories = available_categories(session.weapon_type)
        if value not in categories:
            raise ValidationError(
                f"Unknown category. Choose one of: {', '.join(categories)}"
            )

        name = generate_item_name(
            session.weapon_type,
            session.weapon_name,
            session.skin_name,
            session.condition,
            value,
        )

        item = catalog.find_item(db, name)
        if item is None:
            suggestions = catalog.similar_items(
                db, session.weapon_name, session.skin_name
            )
            # stay on the category step so another category can be tried
            session = self.store.update(session.user_id)
            logger.info("search.item_not_found", name=name, suggestions=len(suggestions))
            return StepResult(
                session=session,
                found=False,
                suggestions=suggestions,
                generated_name=name,
                options=categories,
            )

        session = self.store.update(
            session.user_id,
            step=Step.COMPLETE,
            category=value,
            final_name=name,
            item_id=item.id,
        )
        return StepResult(session=session, found=True, generated_name=name)
