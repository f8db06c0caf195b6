from dataclasses import asdict

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from skinwatch.api.deps import get_conversation
from skinwatch.api.schemas import EventIn, ReplyOut
from skinwatch.core.exceptions import ValidationError
from skinwatch.db.session import get_db
from skinwatch.services.conversation import Conversation

router = APIRouter(prefix="/api/v1", tags=["events"])


@router.post("/events", response_model=ReplyOut)
async def handle_event(
    payload: EventIn,
    db: Session = Depends(get_db),
    conversation: Conversation = Depends(get_conversation),
):
    tid = payload.telegram_id

    match payload.type:
        case "start_session":
            reply = conversation.start_session(
                db, tid, payload.username, payload.first_name, payload.last_name
            )
        case "select_step_value":
            if not payload.field:
                raise ValidationError("field is required")
            reply = conversation.select_step_value(db, tid, payload.field, payload.value)
        case "cancel":
            reply = conversation.cancel(tid)
        case "restart":
            reply = conversation.restart(db, tid)
        case "free_text_alert_input":
            if not payload.text:
                raise ValidationError("text is required")
            reply = await conversation.free_text_alert_input(
                db, tid, payload.text, payload.item_name, payload.prompt
            )
        case "check_price":
            reply = await conversation.check_price(db, tid, payload.item_name)
        case "set_currency":
            reply = conversation.set_currency(db, tid, payload.text)
        case "set_notifications":
            if payload.enabled is None:
                raise ValidationError("enabled is required")
            reply = conversation.set_notifications(db, tid, payload.enabled)
        case "profile":
            reply = conversation.profile(db, tid)
        case "search_items":
            if not payload.text:
                raise ValidationError("text is required")
            reply = conversation.search_items(db, payload.text)
        case "price_history":
            if not payload.item_name:
                raise ValidationError("item_name is required")
            reply = conversation.price_history(db, payload.item_name, payload.days)

    return ReplyOut(**asdict(reply))
