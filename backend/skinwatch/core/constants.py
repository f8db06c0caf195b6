import enum
from dataclasses import dataclass


class Tier(str, enum.Enum):
    FREE = "free"
    PREMIUM = "premium"
    PRO = "pro"


@dataclass(frozen=True)
class TierLimits:
    max_alerts: int
    price_checks_per_minute: int


DEFAULT_TIER = Tier.FREE

TIER_LIMITS: dict[Tier, TierLimits] = {
    Tier.FREE: TierLimits(max_alerts=1, price_checks_per_minute=10),
    Tier.PREMIUM: TierLimits(max_alerts=10, price_checks_per_minute=30),
    Tier.PRO: TierLimits(max_alerts=20, price_checks_per_minute=60),
}

TIER_DISPLAY_NAMES = {
    Tier.FREE: "Free",
    Tier.PREMIUM: "Premium",
    Tier.PRO: "Pro",
}


class Apps(enum.IntEnum):
    CS2 = 730
    DOTA2 = 570
    TF2 = 440
    RUST = 252490


SKIN_CONDITIONS = (
    "Factory New",
    "Minimal Wear",
    "Field-Tested",
    "Well-Worn",
    "Battle-Scarred",
)

VANILLA = "Vanilla"

# category labels as shown to users
CATEGORY_NORMAL = "Normal"
CATEGORY_STATTRAK = "StatTrak™"
CATEGORY_SOUVENIR = "Souvenir"
CATEGORY_KNIFE_NORMAL = "Normal ★"
CATEGORY_KNIFE_STATTRAK = "★ StatTrak™"

WEAPON_CATEGORIES = (CATEGORY_NORMAL, CATEGORY_STATTRAK, CATEGORY_SOUVENIR)
KNIFE_CATEGORIES = (CATEGORY_KNIFE_NORMAL, CATEGORY_KNIFE_STATTRAK)
GLOVE_CATEGORIES = (CATEGORY_KNIFE_NORMAL,)
