from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from skinwatch.api.deps import get_conversation
from skinwatch.api.schemas import (
    AlertListOut,
    AlertOut,
    AlertRemovedOut,
    TierIn,
    UserOut,
)
from skinwatch.core.auth import verify_cron_secret
from skinwatch.db.session import get_db
from skinwatch.services.conversation import Conversation
from skinwatch.services.users import require_user, set_tier

router = APIRouter(prefix="/api/v1/users", tags=["alerts"])


@router.get("/{telegram_id}/alerts", response_model=AlertListOut)
def list_alerts(
    telegram_id: str,
    db: Session = Depends(get_db),
    conversation: Conversation = Depends(get_conversation),
):
    user = require_user(db, telegram_id)
    alerts = conversation.alerts.list_active(db, user.id)
    reply = conversation.list_alerts(db, telegram_id)

    out = [
        AlertOut(
            position=i,
            id=a.id,
            item_name=a.item_name,
            alert_type=getattr(a.alert_type, "value", a.alert_type),
            target_price=a.target_price,
            base_price=a.base_price,
            percentage_threshold=a.percentage_threshold,
            current_price=a.current_price,
            currency=a.currency,
            created_at=a.created_at,
        )
        for i, a in enumerate(alerts, start=1)
    ]
    return AlertListOut(max_alerts=user.max_alerts, alerts=out, text=reply.text)


@router.delete("/{telegram_id}/alerts/{position}", response_model=AlertRemovedOut)
def remove_alert(
    telegram_id: str,
    position: int,
    db: Session = Depends(get_db),
    conversation: Conversation = Depends(get_conversation),
):
    reply = conversation.remove_alert(db, telegram_id, position)
    return AlertRemovedOut(alert_id=reply.data["alert_id"], text=reply.text)


@router.put(
    "/{telegram_id}/tier",
    response_model=UserOut,
    dependencies=[Depends(verify_cron_secret)],
)
def change_tier(telegram_id: str, payload: TierIn, db: Session = Depends(get_db)):
    return set_tier(db, telegram_id, payload.tier)
