"""
Alert engine: parses user alert input, creates alerts within tier limits,
evaluates them against a fresh price and acts on triggers.

Percentage alerts freeze `base_price` and `target_price` at creation; an
alert leaves the active set exactly once, when it triggers or is removed.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import assert_never

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from skinwatch.core.clock import Clock, utcnow
from skinwatch.core.exceptions import AlertLimitError, NotFoundError, PersistenceError
from skinwatch.core.pricing import format_price
from skinwatch.db.models.price_alert import AlertType, PriceAlert
from skinwatch.db.models.user import User
from skinwatch.services.notifier import Notifier

logger = structlog.get_logger(__name__)

PERCENT_PATTERN = re.compile(r"^([+-])(\d+(?:\.\d+)?)%$")
ABSOLUTE_PATTERN = re.compile(r"^\d+(?:\.\d+)?$")

INVALID_ALERT_FORMAT = (
    "Invalid alert format!\n\n"
    "Valid formats:\n"
    '• "50" - Alert at $50\n'
    '• "-10%" - Alert when price drops 10%\n'
    '• "+20%" - Alert when price increases 20%'
)


@dataclass(frozen=True)
class AlertSpec:
    alert_type: AlertType
    target_price: float
    percentage_threshold: float | None = None
    base_price: float | None = None


@dataclass(frozen=True)
class Evaluation:
    trigger: bool
    reason: str = ""
    notified: bool = False


def parse_alert_input(text: str, current_price: float) -> AlertSpec | None:
    text = (text or "").strip()

    match = PERCENT_PATTERN.match(text)
    if match:
        sign, raw = match.groups()
        threshold = float(raw)
        if threshold <= 0 or current_price is None or current_price <= 0:
            return None

        if sign == "-":
            if threshold >= 100:
                return None
            return AlertSpec(
                alert_type=AlertType.PERCENTAGE_DROP,
                target_price=current_price * (1 - threshold / 100),
                percentage_threshold=threshold,
                base_price=current_price,
            )
        return AlertSpec(
            alert_type=AlertType.PERCENTAGE_INCREASE,
            target_price=current_price * (1 + threshold / 100),
            percentage_threshold=threshold,
            base_price=current_price,
        )

    if ABSOLUTE_PATTERN.match(text):
        target = float(text)
        if target > 0:
            return AlertSpec(alert_type=AlertType.ABSOLUTE, target_price=target)

    return None


def normalize_prompt_reply(kind: str, text: str) -> str:
    """
    A bare number typed in reply to a drop/increase/target prompt becomes
    "-N%", "+N%" or "N".
    """
    digits = re.sub(r"[^\d.]", "", text or "")
    if not digits:
        return text
    kind = kind.lower()
    if kind == "drop":
        return f"-{digits}%"
    if kind == "increase":
        return f"+{digits}%"
    return digits


class AlertEngine:
    def __init__(self, notifier: Notifier | None = None, clock: Clock = utcnow):
        self.notifier = notifier
        self.clock = clock

    # -------------------------
    # Creation / listing
    # -------------------------

    def count_active(self, db: Session, user_id: int) -> int:
        return db.execute(
            select(func.count(PriceAlert.id)).where(
                PriceAlert.user_id == user_id, PriceAlert.is_active.is_(True)
            )
        ).scalar_one()

    def create(
        self,
        db: Session,
        user: User,
        item_name: str,
        spec: AlertSpec,
        item_id: int | None = None,
        current_price: float | None = None,
    ) -> PriceAlert:
        active = self.count_active(db, user.id)
        if active >= user.max_alerts:
            raise AlertLimitError(current=active, limit=user.max_alerts)

        alert = PriceAlert(
            user_id=user.id,
            item_name=item_name,
            item_id=item_id,
            alert_type=spec.alert_type,
            target_price=spec.target_price,
            percentage_threshold=spec.percentage_threshold,
            base_price=spec.base_price,
            current_price=current_price,
            currency=user.currency,
            is_active=True,
            created_at=self.clock(),
        )

        try:
            db.add(alert)
            db.execute(
                update(User)
                .where(User.id == user.id)
                .values(alerts_created=User.alerts_created + 1)
            )
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("alert.create_failed", user_id=user.id, error=str(e))
            raise PersistenceError("Failed to create alert. Please try again.") from e

        db.refresh(alert)
        logger.info(
            "alert.created",
            alert_id=alert.id,
            user_id=user.id,
            item=item_name,
            alert_type=spec.alert_type.value,
            target=spec.target_price,
        )
        return alert

    def list_active(self, db: Session, user_id: int | None = None) -> list[PriceAlert]:
        q = (
            select(PriceAlert)
            .options(joinedload(PriceAlert.user))
            .where(PriceAlert.is_active.is_(True))
            .order_by(PriceAlert.created_at.desc(), PriceAlert.id.desc())
        )
        if user_id is not None:
            q = q.where(PriceAlert.user_id == user_id)
        return list(db.execute(q).scalars().all())

    def deactivate(self, db: Session, alert_id: int) -> bool:
        """Idempotent; True only for the call that flipped the flag."""
        result = db.execute(
            update(PriceAlert)
            .where(PriceAlert.id == alert_id, PriceAlert.is_active.is_(True))
            .values(is_active=False, triggered_at=self.clock())
            .execution_options(synchronize_session=False)
        )
        db.commit()
        return result.rowcount == 1

    def remove(self, db: Session, user: User, position: int) -> PriceAlert:
        alerts = self.list_active(db, user.id)
        if position < 1 or position > len(alerts):
            raise NotFoundError(
                f"No alert #{position}. Use /alerts to see your active alerts."
            )
        alert = alerts[position - 1]
        self.deactivate(db, alert.id)
        db.refresh(alert)
        logger.info("alert.removed", alert_id=alert.id, user_id=user.id)
        return alert

    # -------------------------
    # Evaluation
    # -------------------------

    def evaluate(self, alert: PriceAlert, current_price: float) -> Evaluation:
        alert_type = AlertType(alert.alert_type)

        match alert_type:
            case AlertType.ABSOLUTE:
                if current_price <= alert.target_price:
                    return Evaluation(
                        True,
                        f"Price dropped to {format_price(current_price, alert.currency)} "
                        f"(target: {format_price(alert.target_price, alert.currency)})",
                    )
                return Evaluation(False)

            case AlertType.PERCENTAGE_DROP:
                if not alert.base_price or not alert.percentage_threshold:
                    return Evaluation(False)
                drop_pct = (alert.base_price - current_price) / alert.base_price * 100
                if drop_pct >= alert.percentage_threshold:
                    return Evaluation(
                        True,
                        f"Price dropped {drop_pct:.1f}% "
                        f"(threshold: {alert.percentage_threshold:g}%)",
                    )
                return Evaluation(False)

            case AlertType.PERCENTAGE_INCREASE:
                if not alert.base_price or not alert.percentage_threshold:
                    return Evaluation(False)
                inc_pct = (current_price - alert.base_price) / alert.base_price * 100
                if inc_pct >= alert.percentage_threshold:
                    return Evaluation(
                        True,
                        f"Price increased {inc_pct:.1f}% "
                        f"(threshold: {alert.percentage_threshold:g}%)",
                    )
                return Evaluation(False)

            case _:
                assert_never(alert_type)

    async def process(
        self, db: Session, alert: PriceAlert, current_price: float
    ) -> Evaluation:
        """
        Evaluate and act: record the price when nothing fires, otherwise
        notify and deactivate while holding the row lock.
        """
        result = self.evaluate(alert, current_price)

        if not result.trigger:
            db.execute(
                update(PriceAlert)
                .where(PriceAlert.id == alert.id, PriceAlert.is_active.is_(True))
                .values(current_price=current_price)
                .execution_options(synchronize_session=False)
            )
            db.commit()
            return result

        # a concurrent sweep holding or having handled the row wins
        locked = db.execute(
            select(PriceAlert)
            .where(PriceAlert.id == alert.id, PriceAlert.is_active.is_(True))
            .with_for_update(skip_locked=True)
        ).scalar_one_or_none()
        if locked is None:
            db.rollback()
            logger.info("alert.already_handled", alert_id=alert.id)
            return Evaluation(False, "already handled")

        user = alert.user
        notified = False
        if user is not None and user.notifications and self.notifier is not None:
            notified = await self.notifier.notify(
                user.telegram_id,
                self.trigger_message(alert, current_price, result.reason),
            )

        updated = db.execute(
            update(PriceAlert)
            .where(PriceAlert.id == alert.id, PriceAlert.is_active.is_(True))
            .values(
                is_active=False,
                current_price=current_price,
                triggered_at=self.clock(),
            )
            .execution_options(synchronize_session=False)
        )
        db.commit()

        logger.info(
            "alert.triggered",
            alert_id=alert.id,
            item=alert.item_name,
            price=current_price,
            reason=result.reason,
            notified=notified,
        )
        return Evaluation(updated.rowcount == 1, result.reason, notified)

    @staticmethod
    def trigger_message(alert: PriceAlert, current_price: float, reason: str) -> str:
        return (
            "🔔 Price Alert Triggered!\n\n"
            f"Item: {alert.item_name}\n"
            f"Current Price: {format_price(current_price, alert.currency)}\n"
            f"Alert Reason: {reason}\n\n"
            "The price has reached your target! 🎉"
        )
