from dataclasses import dataclass
from datetime import datetime, timedelta

import structlog
from sqlalchemy import update
from sqlalchemy.orm import Session

from skinwatch.core.clock import Clock, as_utc, utcnow
from skinwatch.core.constants import DEFAULT_TIER, TIER_LIMITS, Tier
from skinwatch.db.models.user import User
from skinwatch.services.users import get_user

logger = structlog.get_logger(__name__)

WINDOW = timedelta(seconds=60)


@dataclass
class RateLimitStatus:
    allowed: bool
    remaining: int
    reset_time: datetime | None = None


def tier_limit(user: User) -> int:
    if user.price_checks_per_minute:
        return user.price_checks_per_minute
    try:
        tier = Tier(user.tier)
    except ValueError:
        tier = DEFAULT_TIER
    return TIER_LIMITS[tier].price_checks_per_minute


class RateLimiter:
    """
    Rolling per-user quota on price lookups, kept on the user row.

    The window opens at `last_price_check` and lasts 60 seconds; checks
    inside it only bump the counter.
    """

    def __init__(self, clock: Clock = utcnow):
        self.clock = clock

    def _window_expired(self, user: User, now: datetime) -> bool:
        last = as_utc(user.last_price_check)
        return last is None or now - last >= WINDOW

    def can_check(self, db: Session, telegram_id: str | int) -> RateLimitStatus:
        user = get_user(db, telegram_id)
        if user is None:
            return RateLimitStatus(allowed=False, remaining=0)

        now = self.clock()
        limit = tier_limit(user)

        if self._window_expired(user, now):
            return RateLimitStatus(allowed=True, remaining=limit - 1)

        count = user.price_checks_this_minute or 0
        if count >= limit:
            reset_time = as_utc(user.last_price_check) + WINDOW
            logger.info(
                "rate_limit.denied",
                telegram_id=user.telegram_id,
                count=count,
                limit=limit,
            )
            return RateLimitStatus(allowed=False, remaining=0, reset_time=reset_time)

        return RateLimitStatus(allowed=True, remaining=limit - count - 1)

    def increment(self, db: Session, telegram_id: str | int) -> bool:
        user = get_user(db, telegram_id)
        if user is None:
            return False

        now = self.clock()

        if self._window_expired(user, now):
            user.price_checks_this_minute = 1
            user.last_price_check = now
        else:
            db.execute(
                update(User)
                .where(User.id == user.id)
                .values(price_checks_this_minute=User.price_checks_this_minute + 1)
            )

        db.commit()
        db.refresh(user)
        return True
