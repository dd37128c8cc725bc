from decimal import Decimal

from cannacore.abilities import activate_ability
from cannacore.milestones import activate_kickstart
from cannacore.state import EventEffect
from cannacore.stats import delta_production_next, recalc_derived_values, tier_multiplier

from conftest import NOW


def test_fresh_state_has_no_production_and_unit_click(state):
    assert state.production_rate == 0
    assert state.click_yield == 1


def test_ten_seedlings_produce_one_per_second(state):
    state.ownership["seedling"] = 10
    recalc_derived_values(state, NOW)
    assert state.production_rate == Decimal("1")


def test_recalc_is_idempotent(state):
    state.ownership.update({"seedling": 30, "planter": 4})
    state.upgrades_owned.add("rich_soil")
    recalc_derived_values(state, NOW)
    first = (state.production_rate, state.click_yield)
    recalc_derived_values(state, NOW)
    assert (state.production_rate, state.click_yield) == first


def test_tier_bonus_and_softcap(registry):
    seedling = registry.item("seedling")
    assert tier_multiplier(seedling, 24) == 1
    assert tier_multiplier(seedling, 25) == Decimal("1.15")
    assert tier_multiplier(seedling, 100) == Decimal("1.15") ** 4
    # Past the softcap tier the smaller factor takes over.
    assert tier_multiplier(seedling, 150) == Decimal("1.15") ** 4 * Decimal("1.05") ** 2


def test_upgrades_and_achievements_feed_global_multiplier(state):
    state.ownership["seedling"] = 10
    state.upgrades_owned.add("rich_soil")
    state.achievements_unlocked.add("seedling_10")
    recalc_derived_values(state, NOW)
    assert state.production_rate == Decimal("1.25") * Decimal("1.02")
    assert state.click_yield == Decimal("1.25") * Decimal("1.02")


def test_ability_multiplies_only_its_stat(state):
    state.ownership["seedling"] = 10
    recalc_derived_values(state, NOW)
    assert activate_ability(state, "overdrive", NOW)
    recalc_derived_values(state, NOW)
    assert state.production_rate == 5
    assert state.click_yield == 1


def test_event_effect_multiplies_both_stats(state):
    state.ownership["seedling"] = 10
    state.temp.event_effect = EventEffect(
        id="lucky_joint", expires_at=NOW + 1000, bps_multiplier=Decimal(2), bpc_multiplier=Decimal(2)
    )
    recalc_derived_values(state, NOW)
    assert state.production_rate == 2
    assert state.click_yield == 2


def test_kickstart_applies_until_it_expires(state):
    state.ownership["seedling"] = 10
    activate_kickstart(state, 1, NOW)
    recalc_derived_values(state, NOW)
    assert state.production_rate == 2
    assert state.temp.kickstart.active

    recalc_derived_values(state, NOW + 1_200_000)
    assert state.production_rate == 1
    assert state.prestige.kickstart is None


def test_research_multipliers(state):
    state.ownership["seedling"] = 10
    state.research_owned = ["r_start_click", "r_growth"]
    recalc_derived_values(state, NOW)
    assert state.click_yield == Decimal("1.2")
    assert state.production_rate == Decimal("1.15")


def test_delta_production_includes_tier_jump(state):
    seedling = state.registry.item("seedling")
    state.ownership["seedling"] = 24
    recalc_derived_values(state, NOW)
    expected = Decimal("0.1") * 25 * Decimal("1.15") - Decimal("0.1") * 24
    assert delta_production_next(state, seedling) == expected
