"""Shared pytest fixtures for the SkinWatch test suite.

Provides:
- In-memory SQLite database (no PostgreSQL needed for tests)
- A controllable clock for every time-dependent component
- Fake quote source and notifier collaborators
- Pre-seeded users and catalog items
- FastAPI test client wired to the test database
"""

import os
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Override settings BEFORE any app imports
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("CRON_SECRET", "test-cron-secret")
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "")
os.environ.setdefault("SWEEP_DELAY_SECONDS", "0")
os.environ.setdefault("LOG_FORMAT", "console")

from skinwatch.core.exceptions import UpstreamError  # noqa: E402
from skinwatch.db.base import Base  # noqa: E402
from skinwatch.db.models import Item  # noqa: E402
from skinwatch.marketplaces.base import Quote, QuoteSource  # noqa: E402
from skinwatch.services.notifier import Notifier  # noqa: E402
from skinwatch.services.users import register_user, set_tier  # noqa: E402

CRON_SECRET = os.environ["CRON_SECRET"]


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------


class FakeClock:
    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeQuotes(QuoteSource):
    """Serves prices from a dict; names in `failing` raise UpstreamError."""

    def __init__(self, prices: dict[str, float] | None = None):
        self.prices = dict(prices or {})
        self.failing: set[str] = set()
        self.calls: list[tuple[str, str]] = []

    async def quote(self, item_name, currency="USD", app_id=None) -> Quote:
        self.calls.append((item_name, currency))
        if item_name in self.failing:
            raise UpstreamError("market down")
        price = self.prices.get(item_name)
        if price is None:
            return Quote(success=False, currency=currency)
        return Quote(
            success=True,
            currency=currency,
            lowest_price=price,
            volume=100,
            median_price=price,
        )

    def market_url(self, item_name, app_id=None) -> str:
        return f"https://market.test/{item_name}"


class FakeNotifier(Notifier):
    def __init__(self, ok: bool = True):
        self.ok = ok
        self.sent: list[tuple[str, str]] = []

    async def notify(self, external_user_id, text) -> bool:
        self.sent.append((external_user_id, text))
        return self.ok


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    import skinwatch.db.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    factory = sessionmaker(
        bind=engine, autocommit=False, autoflush=False, expire_on_commit=False
    )
    session = factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def quotes():
    return FakeQuotes(
        {
            "AK-47 | Redline (Field-Tested)": 100.0,
            "★ Karambit | Doppler (Factory New)": 900.0,
        }
    )


@pytest.fixture
def notifier():
    return FakeNotifier()


# ---------------------------------------------------------------------------
# Test data fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def user(db, clock):
    return register_user(db, "1001", "tester", "Test", "User", clock=clock)


@pytest.fixture
def pro_user(db, clock):
    register_user(db, "2002", "pro", clock=clock)
    return set_tier(db, "2002", "pro")


CATALOG = [
    ("AK-47 | Redline (Field-Tested)", "AK-47", "Rifle", "Redline"),
    ("StatTrak™ AK-47 | Redline (Field-Tested)", "AK-47", "Rifle", "Redline"),
    ("AK-47 | Vulcan (Factory New)", "AK-47", "Rifle", "Vulcan"),
    ("★ Karambit", "Karambit", "Knife", None),
    ("★ Karambit | Doppler (Factory New)", "Karambit", "Knife", "Doppler"),
    ("★ Sport Gloves | Vice (Field-Tested)", "Sport Gloves", "Gloves", "Vice"),
]


@pytest.fixture
def items(db):
    rows = [
        Item(name=name, weapon_name=wn, weapon_type=wt, skin_name=skin)
        for name, wn, wt, skin in CATALOG
    ]
    db.add_all(rows)
    db.commit()
    return rows
