from sqlalchemy import select
from sqlalchemy.orm import Session

from skinwatch.core.clock import Clock, utcnow
from skinwatch.core.constants import DEFAULT_TIER, TIER_LIMITS, Tier
from skinwatch.core.exceptions import NotFoundError, ValidationError
from skinwatch.core.pricing import get_currency
from skinwatch.db.models.user import User

USER_NOT_FOUND = "User not found. Please use /start to register."


def get_user(db: Session, telegram_id: str | int) -> User | None:
    return db.execute(
        select(User).where(User.telegram_id == str(telegram_id))
    ).scalar_one_or_none()


def require_user(db: Session, telegram_id: str | int) -> User:
    user = get_user(db, telegram_id)
    if user is None:
        raise NotFoundError(USER_NOT_FOUND)
    return user


def register_user(
    db: Session,
    telegram_id: str | int,
    username: str | None = None,
    first_name: str | None = None,
    last_name: str | None = None,
    clock: Clock = utcnow,
) -> User:
    """Create the user on first contact, refresh profile fields afterwards."""
    user = get_user(db, telegram_id)

    if user is not None:
        if username is not None:
            user.username = username
        if first_name is not None:
            user.first_name = first_name
        if last_name is not None:
            user.last_name = last_name
        db.commit()
        return user

    limits = TIER_LIMITS[DEFAULT_TIER]
    user = User(
        telegram_id=str(telegram_id),
        username=username,
        first_name=first_name,
        last_name=last_name,
        currency="USD",
        language="en",
        notifications=True,
        tier=DEFAULT_TIER.value,
        max_alerts=limits.max_alerts,
        price_checks_per_minute=limits.price_checks_per_minute,
        alerts_created=0,
        price_checks_this_minute=0,
        last_price_check=clock(),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def set_tier(db: Session, telegram_id: str | int, tier: Tier | str) -> User:
    try:
        tier = Tier(tier)
    except ValueError:
        raise ValidationError(f"Unknown tier: {tier}")

    user = require_user(db, telegram_id)
    limits = TIER_LIMITS[tier]
    user.tier = tier.value
    user.max_alerts = limits.max_alerts
    user.price_checks_per_minute = limits.price_checks_per_minute
    db.commit()
    return user


def set_currency(db: Session, telegram_id: str | int, code: str) -> User:
    info = get_currency(code)
    user = require_user(db, telegram_id)
    user.currency = info.code
    db.commit()
    return user


def set_notifications(db: Session, telegram_id: str | int, enabled: bool) -> User:
    user = require_user(db, telegram_id)
    user.notifications = enabled
    db.commit()
    return user
