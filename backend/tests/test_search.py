"""Tests for the step-by-step item search wizard."""

from datetime import timedelta

import pytest

from skinwatch.core.exceptions import NotFoundError, ValidationError
from skinwatch.services.search import (
    SearchSessionStore,
    SearchWizard,
    Step,
    available_categories,
    generate_item_name,
)


class TestGenerateItemName:
    @pytest.mark.parametrize(
        "args,expected",
        [
            (("Knife", "Bayonet", None, "Field-Tested", "Normal ★"), "★ Bayonet"),
            (("Knife", "Bayonet", "Vanilla", "Field-Tested", "Normal ★"), "★ Bayonet"),
            (
                ("Knife", "Bayonet", None, "Field-Tested", "★ StatTrak™"),
                "★ StatTrak™ Bayonet",
            ),
            (
                ("Knife", "Bayonet", "Fade", "Field-Tested", "★ StatTrak™"),
                "★ StatTrak™ Bayonet | Fade (Field-Tested)",
            ),
            (
                ("Knife", "Bayonet", "Fade", "Factory New", "Normal ★"),
                "★ Bayonet | Fade (Factory New)",
            ),
            (
                ("Gloves", "Sport Gloves", "Vice", "Field-Tested", "Normal ★"),
                "★ Sport Gloves | Vice (Field-Tested)",
            ),
            (
                ("Rifle", "AK-47", "Redline", "Field-Tested", "StatTrak™"),
                "StatTrak™ AK-47 | Redline (Field-Tested)",
            ),
            (
                ("Rifle", "AK-47", "Redline", "Field-Tested", "Souvenir"),
                "Souvenir AK-47 | Redline (Field-Tested)",
            ),
            (
                ("Pistol", "Glock-18", "Fade", "Minimal Wear", "Normal"),
                "Glock-18 | Fade (Minimal Wear)",
            ),
        ],
    )
    def test_names(self, args, expected):
        assert generate_item_name(*args) == expected

    def test_categories_by_kind(self):
        assert available_categories("Knife") == ["Normal ★", "★ StatTrak™"]
        assert available_categories("Gloves") == ["Normal ★"]
        assert available_categories("Rifle") == ["Normal", "StatTrak™", "Souvenir"]


class TestSessionStore:
    def test_expires_after_idle_limit(self, clock):
        store = SearchSessionStore(clock=clock)
        store.create("1")

        clock.advance(minutes=30, seconds=1)
        assert store.get("1") is None
        assert len(store) == 0

    def test_preserved_within_idle_limit(self, clock):
        store = SearchSessionStore(clock=clock)
        store.create("1")
        store.update("1", step=Step.WEAPON_NAME, weapon_type="Rifle")

        clock.advance(minutes=29)
        session = store.get("1")
        assert session is not None
        assert session.step == Step.WEAPON_NAME
        assert session.weapon_type == "Rifle"

    def test_update_refreshes_idle_timer(self, clock):
        store = SearchSessionStore(clock=clock)
        store.create("1")
        clock.advance(minutes=20)
        store.update("1", weapon_type="Rifle")
        clock.advance(minutes=20)

        assert store.get("1") is not None

    def test_purge_expired(self, clock):
        store = SearchSessionStore(idle=timedelta(minutes=5), clock=clock)
        store.create("1")
        clock.advance(minutes=4)
        store.create("2")
        clock.advance(minutes=2)

        assert store.purge_expired() == 1
        assert store.get("2") is not None


@pytest.fixture
def wizard(clock):
    return SearchWizard(SearchSessionStore(clock=clock))


def _walk(wizard, db, uid, *values):
    steps = ["weapon_type", "weapon_name", "skin_name", "condition", "category"]
    result = None
    for field_name, value in zip(steps, values):
        result = wizard.select(db, uid, field_name, value)
    return result


class TestWizard:
    def test_start_offers_weapon_types(self, db, items, wizard):
        result = wizard.start(db, "1")
        assert result.session.step == Step.WEAPON_TYPE
        assert result.options == ["Gloves", "Knife", "Rifle"]

    def test_start_without_catalog(self, db, wizard):
        with pytest.raises(NotFoundError):
            wizard.start(db, "1")

    def test_steps_advance_in_order(self, db, items, wizard):
        wizard.start(db, "1")

        r = wizard.select(db, "1", "weapon_type", "Rifle")
        assert r.session.step == Step.WEAPON_NAME
        assert r.options == ["AK-47"]

        r = wizard.select(db, "1", "weapon_name", "AK-47")
        assert r.session.step == Step.SKIN_NAME
        assert r.options == ["Redline", "Vulcan"]

        r = wizard.select(db, "1", "skin_name", "Redline")
        assert r.session.step == Step.CONDITION
        assert "Field-Tested" in r.options

        r = wizard.select(db, "1", "condition", "Field-Tested")
        assert r.session.step == Step.CATEGORY
        assert r.options == ["Normal", "StatTrak™", "Souvenir"]

    def test_found_item_completes(self, db, items, wizard):
        wizard.start(db, "1")
        r = _walk(wizard, db, "1", "Rifle", "AK-47", "Redline", "Field-Tested", "StatTrak™")

        assert r.found is True
        assert r.generated_name == "StatTrak™ AK-47 | Redline (Field-Tested)"
        assert r.session.step == Step.COMPLETE
        assert r.session.final_name == r.generated_name
        assert r.session.item_id is not None

    def test_missing_item_stays_at_category_with_suggestions(self, db, items, wizard):
        wizard.start(db, "1")
        r = _walk(wizard, db, "1", "Rifle", "AK-47", "Redline", "Field-Tested", "Souvenir")

        assert r.found is False
        assert r.session.step == Step.CATEGORY
        assert r.session.final_name is None
        assert "AK-47 | Redline (Field-Tested)" in r.suggestions

        # another category can still be chosen
        again = wizard.select(db, "1", "category", "Normal")
        assert again.found is True

    def test_knife_skins_include_vanilla(self, db, items, wizard):
        wizard.start(db, "1")
        wizard.select(db, "1", "weapon_type", "Knife")
        r = wizard.select(db, "1", "weapon_name", "Karambit")
        assert r.options == ["Vanilla", "Doppler"]

    def test_vanilla_knife_is_found(self, db, items, wizard):
        wizard.start(db, "1")
        r = _walk(wizard, db, "1", "Knife", "Karambit", "Vanilla", "Field-Tested", "Normal ★")
        assert r.found is True
        assert r.generated_name == "★ Karambit"

    def test_out_of_order_selection_is_rejected(self, db, items, wizard):
        wizard.start(db, "1")
        with pytest.raises(ValidationError):
            wizard.select(db, "1", "condition", "Field-Tested")
        assert wizard.require("1").step == Step.WEAPON_TYPE

    def test_unknown_condition_and_category(self, db, items, wizard):
        wizard.start(db, "1")
        _walk(wizard, db, "1", "Rifle", "AK-47", "Redline")
        with pytest.raises(ValidationError):
            wizard.select(db, "1", "condition", "Brand New")

        wizard.select(db, "1", "condition", "Field-Tested")
        with pytest.raises(ValidationError):
            wizard.select(db, "1", "category", "Normal ★")

    def test_expired_session(self, db, items, wizard, clock):
        wizard.start(db, "1")
        clock.advance(minutes=31)
        with pytest.raises(NotFoundError):
            wizard.select(db, "1", "weapon_type", "Rifle")

    def test_cancel_and_restart(self, db, items, wizard):
        wizard.start(db, "1")
        wizard.select(db, "1", "weapon_type", "Rifle")

        wizard.cancel("1")
        with pytest.raises(NotFoundError):
            wizard.require("1")

        r = wizard.restart(db, "1")
        assert r.session.step == Step.WEAPON_TYPE
        assert r.session.weapon_type is None
