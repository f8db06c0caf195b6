"""
Conversation primitives the chat front-end reduces user events to.

Each call returns a `Reply` with the text to show and the follow-up
actions (button ids) to offer. Errors are raised as `SkinWatchError`
subclasses and rendered by the API layer.
"""
from dataclasses import dataclass, field

import structlog
from sqlalchemy.orm import Session

from skinwatch.core.constants import TIER_DISPLAY_NAMES, Tier
from skinwatch.core.exceptions import NotFoundError, ValidationError
from skinwatch.core.pricing import format_price
from skinwatch.db.models.price_alert import AlertType, PriceAlert
from skinwatch.services import catalog, users
from skinwatch.services.alerts import (
    INVALID_ALERT_FORMAT,
    AlertEngine,
    normalize_prompt_reply,
    parse_alert_input,
)
from skinwatch.services.pricing import PriceService
from skinwatch.services.search import SearchWizard, Step, StepResult
from skinwatch.services.users import register_user, require_user

logger = structlog.get_logger(__name__)

ACTION_RESTART = "search_restart"
ACTION_CANCEL = "search_cancel"
ACTION_CHECK_PRICE = "check_price_from_search"
ALERT_ACTIONS = ["ALERT_DROP", "ALERT_INCREASE", "ALERT_TARGET"]

STEP_PROMPTS = {
    Step.WEAPON_TYPE: "Step 1: Choose item type",
    Step.WEAPON_NAME: "Step 2: Choose item name",
    Step.SKIN_NAME: "Step 3: Choose skin name",
    Step.CONDITION: "Step 4: Choose condition",
    Step.CATEGORY: "Step 5: Choose category",
}

ALERT_TIP = (
    "💡 Tip: reply with a number:\n"
    "• Drop: 10 → -10%\n"
    "• Increase: 20 → +20%\n"
    "• Target: 50 → $50"
)


@dataclass
class Reply:
    text: str
    actions: list[str] = field(default_factory=list)
    options: list[str] = field(default_factory=list)
    data: dict = field(default_factory=dict)


def describe_alert(index: int, alert: PriceAlert) -> str:
    lines = [f"{index}. {alert.item_name}"]
    match AlertType(alert.alert_type):
        case AlertType.ABSOLUTE:
            lines.append("   Type: Absolute price")
            lines.append(f"   Target: {format_price(alert.target_price, alert.currency)}")
        case AlertType.PERCENTAGE_DROP:
            lines.append("   Type: Percentage drop")
            lines.append(f"   Threshold: -{alert.percentage_threshold:g}%")
            lines.append(f"   Base price: {format_price(alert.base_price, alert.currency)}")
        case AlertType.PERCENTAGE_INCREASE:
            lines.append("   Type: Percentage increase")
            lines.append(f"   Threshold: +{alert.percentage_threshold:g}%")
            lines.append(f"   Base price: {format_price(alert.base_price, alert.currency)}")
    current = (
        format_price(alert.current_price, alert.currency)
        if alert.current_price is not None
        else "Checking..."
    )
    lines.append(f"   Current: {current}")
    return "\n".join(lines)


class Conversation:
    def __init__(
        self,
        prices: PriceService,
        alerts: AlertEngine,
        wizard: SearchWizard | None = None,
    ):
        self.prices = prices
        self.alerts = alerts
        self.wizard = wizard or SearchWizard()

    # -------------------------
    # Search wizard
    # -------------------------

    def _step_reply(self, result: StepResult, header: str = "🔍 Step-by-Step Item Search") -> Reply:
        session = result.session
        context = [
            f"Type: {session.weapon_type}" if session.weapon_type else None,
            f"Name: {session.weapon_name}" if session.weapon_name else None,
            f"Skin: {session.skin_name or 'None'}" if session.step in (Step.CONDITION, Step.CATEGORY) else None,
            f"Condition: {session.condition}" if session.condition else None,
        ]
        text = f"{header}\n\n{STEP_PROMPTS[session.step]}"
        ctx = "\n".join(c for c in context if c)
        if ctx:
            text += f"\n\n{ctx}"
        return Reply(
            text=text,
            options=result.options,
            actions=[ACTION_RESTART, ACTION_CANCEL],
            data={"step": session.step.value},
        )

    def start_session(
        self,
        db: Session,
        telegram_id: str | int,
        username: str | None = None,
        first_name: str | None = None,
        last_name: str | None = None,
    ) -> Reply:
        register_user(db, telegram_id, username, first_name, last_name)
        return self._step_reply(self.wizard.start(db, telegram_id))

    def restart(self, db: Session, telegram_id: str | int) -> Reply:
        result = self.wizard.restart(db, telegram_id)
        return self._step_reply(result, header="🔄 Search Session Restarted!")

    def cancel(self, telegram_id: str | int) -> Reply:
        self.wizard.cancel(telegram_id)
        return Reply(
            text=(
                "❌ Search cancelled.\n\nUse /search to start a new search or "
                "send an item name directly to check its price."
            )
        )

    def select_step_value(
        self, db: Session, telegram_id: str | int, field_name: str, value: str | None
    ) -> Reply:
        result = self.wizard.select(db, telegram_id, field_name, value)

        if result.found is None:
            return self._step_reply(result)

        if result.found:
            return Reply(
                text=(
                    f"✅ Item found!\n\nGenerated name: {result.generated_name}\n\n"
                    "Click below to check the price:"
                ),
                actions=[ACTION_CHECK_PRICE, ACTION_RESTART, ACTION_CANCEL],
                data={
                    "step": result.session.step.value,
                    "final_name": result.generated_name,
                    "item_id": result.session.item_id,
                },
            )

        text = f"❌ Item not found in database\n\nGenerated name: {result.generated_name}\n\n"
        if result.suggestions:
            text += "Similar items found:\n"
            text += "\n".join(f"• {s}" for s in result.suggestions) + "\n\n"
        text += "💡 Try another category or use /search again."
        return Reply(
            text=text,
            options=result.options,
            actions=[ACTION_RESTART, ACTION_CANCEL],
            data={
                "step": result.session.step.value,
                "generated_name": result.generated_name,
                "suggestions": result.suggestions,
            },
        )

    # -------------------------
    # Prices
    # -------------------------

    def _item_from_session(self, telegram_id: str | int) -> tuple[str | None, int | None]:
        session = self.wizard.store.get(telegram_id)
        if session and session.final_name:
            return session.final_name, session.item_id
        return None, None

    async def check_price(
        self, db: Session, telegram_id: str | int, item_name: str | None = None
    ) -> Reply:
        if not item_name:
            item_name, _ = self._item_from_session(telegram_id)
        if not item_name:
            raise NotFoundError("Search session expired. Please use /search again.")

        check = await self.prices.check_price(db, telegram_id, item_name)
        result = check.result

        cached = " (cached)" if result.cached else ""
        text = (
            f"💰 Price Check Result{cached}\n"
            f"📊 Rate limit: {check.remaining} checks remaining this minute\n\n"
            f"{result.message}\n\n{ALERT_TIP}"
        )
        return Reply(
            text=text,
            actions=ALERT_ACTIONS if result.success else [],
            data={
                "item_name": item_name,
                "price": result.price,
                "currency": result.currency,
                "cached": result.cached,
                "remaining": check.remaining,
                "market_url": self._market_url(item_name),
            },
        )

    def _market_url(self, item_name: str) -> str | None:
        market_url = getattr(self.prices.quotes, "market_url", None)
        return market_url(item_name) if market_url else None

    # -------------------------
    # Alerts
    # -------------------------

    async def free_text_alert_input(
        self,
        db: Session,
        telegram_id: str | int,
        text: str,
        item_name: str | None = None,
        prompt: str | None = None,
    ) -> Reply:
        item_id = None
        if not item_name:
            item_name, item_id = self._item_from_session(telegram_id)
        if not item_name:
            raise NotFoundError(
                "Please send an item name first, then reply with your alert."
            )

        if prompt:
            text = normalize_prompt_reply(prompt, text)

        # syntax check before touching the market
        if parse_alert_input(text, 1.0) is None:
            logger.info("conversation.invalid_alert_input", telegram_id=str(telegram_id))
            raise ValidationError(INVALID_ALERT_FORMAT)

        user = require_user(db, telegram_id)
        current_price = await self.prices.current_price(db, item_name, user.currency)

        spec = parse_alert_input(text, current_price)
        if spec is None:
            raise ValidationError(INVALID_ALERT_FORMAT)

        alert = self.alerts.create(
            db, user, item_name, spec, item_id=item_id, current_price=current_price
        )

        active = self.alerts.count_active(db, user.id)
        lines = ["✅ Price alert created!", "", f"Item: {item_name}"]
        match spec.alert_type:
            case AlertType.ABSOLUTE:
                lines.append("Type: Absolute price")
                lines.append(f"Target: {format_price(spec.target_price, user.currency)}")
            case AlertType.PERCENTAGE_DROP:
                lines.append("Type: Percentage drop")
                lines.append(f"Threshold: -{spec.percentage_threshold:g}%")
                lines.append(f"Base price: {format_price(spec.base_price, user.currency)}")
                lines.append(f"Target: {format_price(spec.target_price, user.currency)}")
            case AlertType.PERCENTAGE_INCREASE:
                lines.append("Type: Percentage increase")
                lines.append(f"Threshold: +{spec.percentage_threshold:g}%")
                lines.append(f"Base price: {format_price(spec.base_price, user.currency)}")
                lines.append(f"Target: {format_price(spec.target_price, user.currency)}")
        lines.append("")
        lines.append(f"📊 Alerts: {active}/{user.max_alerts}")

        return Reply(
            text="\n".join(lines),
            data={
                "alert_id": alert.id,
                "alert_type": spec.alert_type.value,
                "target_price": spec.target_price,
                "base_price": spec.base_price,
                "percentage_threshold": spec.percentage_threshold,
            },
        )

    def list_alerts(self, db: Session, telegram_id: str | int) -> Reply:
        user = require_user(db, telegram_id)
        alerts = self.alerts.list_active(db, user.id)
        tier = TIER_DISPLAY_NAMES.get(Tier(user.tier), user.tier)

        if not alerts:
            return Reply(
                text=(
                    "🔔 You don't have any active price alerts.\n\n"
                    f"📊 Alert limit: 0/{user.max_alerts} ({tier})"
                ),
                data={"alerts": []},
            )

        body = "\n\n".join(describe_alert(i, a) for i, a in enumerate(alerts, start=1))
        return Reply(
            text=(
                f"🔔 Your Active Price Alerts:\n\n{body}\n\n"
                f"📊 Alert limit: {len(alerts)}/{user.max_alerts} ({tier})\n"
                'To remove an alert, reply with "remove [number]"'
            ),
            data={"alerts": [a.id for a in alerts]},
        )

    def remove_alert(self, db: Session, telegram_id: str | int, position: int) -> Reply:
        user = require_user(db, telegram_id)
        alert = self.alerts.remove(db, user, position)
        return Reply(
            text=f"🗑️ Alert removed: {alert.item_name}",
            data={"alert_id": alert.id},
        )

    # -------------------------
    # Profile and preferences
    # -------------------------

    def set_currency(self, db: Session, telegram_id: str | int, code: str | None) -> Reply:
        user = users.set_currency(db, telegram_id, code)
        return Reply(
            text=f"✅ Currency set to {user.currency}.",
            data={"currency": user.currency},
        )

    def set_notifications(
        self, db: Session, telegram_id: str | int, enabled: bool
    ) -> Reply:
        user = users.set_notifications(db, telegram_id, enabled)
        state = "on" if user.notifications else "off"
        return Reply(
            text=f"🔔 Alert notifications turned {state}.",
            data={"notifications": user.notifications},
        )

    def profile(self, db: Session, telegram_id: str | int) -> Reply:
        user = require_user(db, telegram_id)
        active = self.alerts.count_active(db, user.id)
        tier = TIER_DISPLAY_NAMES.get(Tier(user.tier), user.tier)
        name = " ".join(n for n in (user.first_name, user.last_name) if n) or "-"
        registered = user.created_at.date().isoformat() if user.created_at else "-"

        text = (
            "👤 Your Profile\n\n"
            f"🆔 Telegram ID: {user.telegram_id}\n"
            f"👤 Name: {name}\n"
            f"📅 Registered: {registered}\n\n"
            "⚙️ Preferences:\n"
            f"• Currency: {user.currency}\n"
            f"• Language: {user.language}\n"
            f"• Notifications: {'✅ On' if user.notifications else '❌ Off'}\n\n"
            f"📊 Usage ({tier} tier):\n"
            f"• Price checks: {user.price_checks_this_minute}/{user.price_checks_per_minute}/minute\n"
            f"• Alerts: {active}/{user.max_alerts}"
        )
        return Reply(
            text=text,
            data={
                "currency": user.currency,
                "notifications": user.notifications,
                "tier": user.tier,
                "active_alerts": active,
                "max_alerts": user.max_alerts,
                "price_checks_per_minute": user.price_checks_per_minute,
            },
        )

    # -------------------------
    # Catalog and history
    # -------------------------

    def search_items(self, db: Session, query: str, limit: int = 10) -> Reply:
        items = catalog.search(db, query, limit=limit)
        if not items:
            return Reply(text=f'❌ No items found for "{query}".', data={"items": []})
        names = [item.name for item in items]
        return Reply(
            text="🔎 Matching items:\n\n" + "\n".join(f"• {n}" for n in names),
            data={"items": names},
        )

    def price_history(self, db: Session, item_name: str, days: int = 7) -> Reply:
        rows = [r for r in self.prices.cache.history(db, item_name, days=days) if r.success]
        if not rows:
            return Reply(
                text=f"📈 No price history for {item_name} in the last {days} days.",
                data={"item_name": item_name, "points": []},
            )
        prices = [r.price for r in rows]
        currency = rows[0].currency
        text = (
            f"📈 {item_name}, last {days} days\n\n"
            f"Latest: {format_price(prices[0], currency)}\n"
            f"Low: {format_price(min(prices), currency)}\n"
            f"High: {format_price(max(prices), currency)}\n"
            f"Samples: {len(rows)}"
        )
        return Reply(
            text=text,
            data={
                "item_name": item_name,
                "points": [
                    {"price": r.price, "currency": r.currency, "recorded_at": r.recorded_at.isoformat()}
                    for r in rows
                ],
            },
        )
