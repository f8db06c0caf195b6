"""HTTP surface: sweep trigger, conversational events and alert management."""

import pytest
from fastapi.testclient import TestClient

from skinwatch.api.deps import get_conversation, get_sweeper
from skinwatch.core.config import settings
from skinwatch.db.session import get_db
from skinwatch.db.models import AlertType
from skinwatch.main import app
from skinwatch.services.alerts import AlertEngine, AlertSpec
from skinwatch.services.conversation import Conversation
from skinwatch.services.monitor import Sweeper, SweepStats
from skinwatch.services.price_cache import PriceCache
from skinwatch.services.pricing import PriceService
from skinwatch.services.rate_limiter import RateLimiter
from skinwatch.services.search import SearchSessionStore, SearchWizard

REDLINE = "AK-47 | Redline (Field-Tested)"
AUTH = {"Authorization": f"Bearer {settings.CRON_SECRET}"}


@pytest.fixture
def services(clock, quotes, notifier):
    prices = PriceService(
        quotes, cache=PriceCache(clock=clock), limiter=RateLimiter(clock=clock)
    )
    engine = AlertEngine(notifier, clock=clock)
    return {
        "sweeper": Sweeper(prices, engine, delay=0),
        "conversation": Conversation(
            prices, engine, SearchWizard(SearchSessionStore(clock=clock))
        ),
    }


@pytest.fixture
def client(db, services):
    def override_db():
        yield db

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_sweeper] = lambda: services["sweeper"]
    app.dependency_overrides[get_conversation] = lambda: services["conversation"]
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestCheckAlertsTrigger:
    def test_missing_header(self, client):
        assert client.get("/api/cron/check-alerts").status_code == 401

    def test_wrong_secret(self, client):
        r = client.get("/api/cron/check-alerts", headers={"Authorization": "Bearer nope"})
        assert r.status_code == 401

    def test_wrong_method(self, client):
        assert client.post("/api/cron/check-alerts", headers=AUTH).status_code == 405

    def test_unconfigured_secret(self, client, monkeypatch):
        monkeypatch.setattr(settings, "CRON_SECRET", "")
        r = client.get("/api/cron/check-alerts", headers=AUTH)
        assert r.status_code == 500
        assert r.json() == {"error": "CRON_SECRET not configured"}

    def test_internal_failure(self, client):
        class Broken:
            async def run(self, db):
                raise RuntimeError("boom")

        app.dependency_overrides[get_sweeper] = lambda: Broken()
        r = client.get("/api/cron/check-alerts", headers=AUTH)
        assert r.status_code == 500
        assert r.json() == {"error": "Internal server error"}

    def test_runs_sweep(self, client, db, services, pro_user):
        engine = services["sweeper"].engine
        engine.create(db, pro_user, REDLINE, _absolute(150))
        engine.create(db, pro_user, REDLINE, _absolute(50))

        r = client.get("/api/cron/check-alerts", headers=AUTH)

        assert r.status_code == 200
        assert r.json() == {
            "success": True,
            "processed": 2,
            "triggered": 1,
            "errors": 0,
            "skipped": False,
        }
        assert len(engine.list_active(db)) == 1

    def test_overlapping_trigger_is_skipped(self, client):
        class Busy:
            async def run(self, db):
                return SweepStats(skipped=True)

        app.dependency_overrides[get_sweeper] = lambda: Busy()
        r = client.get("/api/cron/check-alerts", headers=AUTH)
        assert r.status_code == 200
        assert r.json()["skipped"] is True
        assert r.json()["processed"] == 0


def _absolute(target):
    return AlertSpec(AlertType.ABSOLUTE, target)


class TestEvents:
    def _post(self, client, **payload):
        return client.post("/api/v1/events", json={"telegram_id": "1001", **payload})

    def test_wizard_round_trip(self, client, items):
        r = self._post(client, type="start_session", username="tester")
        assert r.status_code == 200
        assert r.json()["options"] == ["Gloves", "Knife", "Rifle"]

        for field_name, value in [
            ("weapon_type", "Rifle"),
            ("weapon_name", "AK-47"),
            ("skin_name", "Redline"),
            ("condition", "Field-Tested"),
            ("category", "Normal"),
        ]:
            r = self._post(client, type="select_step_value", field=field_name, value=value)
            assert r.status_code == 200

        assert r.json()["data"]["final_name"] == REDLINE

        r = self._post(client, type="check_price")
        assert r.status_code == 200
        assert r.json()["data"]["price"] == 100.0

        r = self._post(client, type="free_text_alert_input", text="10", prompt="drop")
        assert r.status_code == 200
        assert r.json()["data"]["alert_type"] == "percentage_drop"

    def test_expired_session_is_404(self, client, user):
        r = self._post(client, type="select_step_value", field="weapon_type", value="Rifle")
        assert r.status_code == 404
        assert "Search session expired" in r.json()["error"]

    def test_invalid_alert_text_is_422(self, client, user):
        r = self._post(client, type="free_text_alert_input", text="soon", item_name=REDLINE)
        assert r.status_code == 422
        assert r.json()["error"].startswith("Invalid alert format")

    def test_rate_limit_is_429(self, client, user):
        for _ in range(10):
            assert self._post(client, type="check_price", item_name=REDLINE).status_code == 200

        r = self._post(client, type="check_price", item_name=REDLINE)
        assert r.status_code == 429
        body = r.json()
        assert body["remaining"] == 0
        assert body["reset_time"] is not None

    def test_unknown_event_type(self, client):
        assert self._post(client, type="dance").status_code == 422

    def test_cancel(self, client):
        r = self._post(client, type="cancel")
        assert r.status_code == 200
        assert "cancelled" in r.json()["text"]


class TestPreferences:
    def _post(self, client, **payload):
        return client.post("/api/v1/events", json={"telegram_id": "1001", **payload})

    def test_currency_change_shows_in_profile_and_prices(self, client, user):
        r = self._post(client, type="set_currency", text="eur")
        assert r.status_code == 200
        assert r.json()["data"]["currency"] == "EUR"

        profile = self._post(client, type="profile").json()
        assert "Currency: EUR" in profile["text"]
        assert profile["data"]["currency"] == "EUR"

        r = self._post(client, type="check_price", item_name=REDLINE)
        assert r.json()["data"]["currency"] == "EUR"

    def test_unknown_currency_is_422(self, client, user):
        r = self._post(client, type="set_currency", text="ABC")
        assert r.status_code == 422
        assert "Invalid currency code" in r.json()["error"]

    def test_mute_notifications(self, client, user):
        r = self._post(client, type="set_notifications", enabled=False)
        assert r.status_code == 200
        assert r.json()["data"]["notifications"] is False

        profile = self._post(client, type="profile").json()
        assert "Notifications: ❌ Off" in profile["text"]

    def test_notifications_flag_required(self, client, user):
        assert self._post(client, type="set_notifications").status_code == 422

    def test_profile_shows_usage_and_limits(self, client, user):
        self._post(client, type="check_price", item_name=REDLINE)
        body = self._post(client, type="profile").json()

        assert "Usage (Free tier)" in body["text"]
        assert "Price checks: 1/10/minute" in body["text"]
        assert "Alerts: 0/1" in body["text"]

    def test_profile_for_unknown_user(self, client):
        assert self._post(client, type="profile").status_code == 404

    def test_search_items(self, client, items):
        r = self._post(client, type="search_items", text="redline")
        assert r.status_code == 200
        assert REDLINE in r.json()["data"]["items"]

        r = self._post(client, type="search_items", text="nothing-like-this")
        assert r.json()["data"]["items"] == []

    def test_price_history(self, client, user):
        self._post(client, type="check_price", item_name=REDLINE)

        r = self._post(client, type="price_history", item_name=REDLINE)
        assert r.status_code == 200
        points = r.json()["data"]["points"]
        assert [p["price"] for p in points] == [100.0]
        assert "Latest: $100.00" in r.json()["text"]


class TestUserAlerts:
    def test_list_and_delete(self, client, db, services, pro_user):
        engine = services["sweeper"].engine
        engine.create(db, pro_user, REDLINE, _absolute(50))

        r = client.get(f"/api/v1/users/{pro_user.telegram_id}/alerts")
        assert r.status_code == 200
        body = r.json()
        assert body["max_alerts"] == 20
        assert body["alerts"][0]["position"] == 1
        assert body["alerts"][0]["alert_type"] == "absolute"

        r = client.delete(f"/api/v1/users/{pro_user.telegram_id}/alerts/1")
        assert r.status_code == 200
        assert r.json()["ok"] is True

        r = client.delete(f"/api/v1/users/{pro_user.telegram_id}/alerts/1")
        assert r.status_code == 404

    def test_unknown_user(self, client):
        assert client.get("/api/v1/users/nobody/alerts").status_code == 404

    def test_change_tier(self, client, user):
        url = f"/api/v1/users/{user.telegram_id}/tier"
        assert client.put(url, json={"tier": "premium"}).status_code == 401

        r = client.put(url, json={"tier": "premium"}, headers=AUTH)
        assert r.status_code == 200
        assert r.json()["max_alerts"] == 10
        assert r.json()["price_checks_per_minute"] == 30

        assert client.put(url, json={"tier": "gold"}, headers=AUTH).status_code == 422


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["service"] == "skinwatch-api"
