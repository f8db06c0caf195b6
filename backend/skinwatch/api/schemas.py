from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

EventType = Literal[
    "start_session",
    "select_step_value",
    "cancel",
    "restart",
    "free_text_alert_input",
    "check_price",
    "set_currency",
    "set_notifications",
    "profile",
    "search_items",
    "price_history",
]


class EventIn(BaseModel):
    type: EventType
    telegram_id: str = Field(min_length=1)

    # start_session
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    # select_step_value
    field: Optional[str] = None
    value: Optional[str] = None

    # free_text_alert_input / check_price
    text: Optional[str] = None
    item_name: Optional[str] = None
    prompt: Optional[Literal["drop", "increase", "target"]] = None

    # set_notifications
    enabled: Optional[bool] = None

    # price_history
    days: int = Field(default=7, ge=1, le=90)


class ReplyOut(BaseModel):
    text: str
    actions: list[str] = []
    options: list[str] = []
    data: dict = {}


class SweepOut(BaseModel):
    success: bool
    processed: int
    triggered: int
    errors: int
    skipped: bool = False


class AlertOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    position: int
    id: int
    item_name: str
    alert_type: str
    target_price: float
    base_price: Optional[float] = None
    percentage_threshold: Optional[float] = None
    current_price: Optional[float] = None
    currency: str
    created_at: Optional[datetime] = None


class AlertListOut(BaseModel):
    max_alerts: int
    alerts: list[AlertOut]
    text: str


class AlertRemovedOut(BaseModel):
    ok: bool = True
    alert_id: int
    text: str


class TierIn(BaseModel):
    tier: Literal["free", "premium", "pro"]


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    telegram_id: str
    tier: str
    max_alerts: int
    price_checks_per_minute: int
    currency: str
    notifications: bool
