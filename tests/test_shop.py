from decimal import Decimal

import pytest

from cannacore.research import lock_reason, research_list
from cannacore.shop import (
    bulk_cost,
    buy_item,
    buy_upgrade,
    item_cost,
    max_affordable,
    next_item_cost,
    purchase_research,
    sorted_shop_entries,
)
from cannacore.stats import recalc_derived_values
from cannacore.types import ItemDefinition

from conftest import NOW


def test_cost_curve_starts_at_base_cost():
    item = ItemDefinition(id="x", name="X", base_cost=25, cost_factor=1.18, bps=1)
    assert item_cost(item, 0) == 25
    assert item_cost(item, 1) == Decimal("29.5")
    assert bulk_cost(item, 0, 2) == Decimal("54.5")


def test_bulk_cost_matches_unit_prices():
    item = ItemDefinition(id="x", name="X", base_cost=25, cost_factor=1.18, bps=1)
    units = sum(item_cost(item, n, Decimal("0.9")) for n in range(4, 14))
    assert bulk_cost(item, 4, 10, Decimal("0.9")) == pytest.approx(units)
    assert bulk_cost(item, 7, 1) == item_cost(item, 7)
    assert bulk_cost(item, 0, 0) == 0
    flat = ItemDefinition(id="f", name="F", base_cost=10, cost_factor=1, bps=1)
    assert bulk_cost(flat, 3, 5) == 50


def test_huge_bulk_buy_fails_without_paying(state):
    state.store.currency = Decimal(10**6)
    assert bulk_cost(state.registry.item("seedling"), 0, 10**9).is_infinite()
    assert not buy_item(state, "seedling", 10**9, NOW)
    assert state.store.currency == Decimal(10**6)


def test_buy_item_debits_and_increments(state):
    state.store.currency = Decimal(100)
    assert buy_item(state, "seedling", 1, NOW)
    assert state.owned("seedling") == 1
    assert state.store.currency == Decimal(85)
    assert state.production_rate == Decimal("0.1")


def test_failed_bulk_buy_leaves_state_untouched(state):
    state.store.currency = Decimal(20)
    before = (state.store.currency, dict(state.ownership))
    assert not buy_item(state, "seedling", 2, NOW)
    assert (state.store.currency, state.ownership) == before


def test_unknown_item_is_a_failure_not_an_error(state):
    state.store.currency = Decimal(10**6)
    assert not buy_item(state, "nope", 1, NOW)
    assert not buy_upgrade(state, "nope", NOW)
    assert not purchase_research(state, "nope", NOW)


def test_achievement_from_purchase_counts_immediately(state):
    state.ownership["seedling"] = 9
    state.store.currency = Decimal(10**6)
    assert buy_item(state, "seedling", 1, NOW)
    assert "seedling_10" in state.achievements_unlocked
    assert state.production_rate == Decimal("1.02")


def test_upgrade_requirements_and_single_ownership(state):
    state.store.currency = Decimal(10_000)
    assert not buy_upgrade(state, "rich_soil", NOW)
    state.store.total_harvested = Decimal(2000)
    assert buy_upgrade(state, "rich_soil", NOW)
    assert state.store.currency == Decimal(7500)
    assert not buy_upgrade(state, "rich_soil", NOW)
    assert state.store.currency == Decimal(7500)


def test_cost_upgrade_discounts_targets(state):
    state.ownership["planter"] = 10
    state.store.currency = Decimal(10_000)
    seedling = state.registry.item("seedling")
    before = next_item_cost(state, seedling)
    assert buy_upgrade(state, "bulk_pots", NOW)
    assert next_item_cost(state, seedling) == before * Decimal("0.9")


def test_research_costs_seeds_and_respects_prerequisites(state):
    state.store.currency = Decimal(5000)
    assert not purchase_research(state, "r_growth", NOW)
    assert purchase_research(state, "r_start_click", NOW)
    assert state.store.currency == Decimal(4000)

    state.prestige.seeds_banked = 3
    assert purchase_research(state, "r_growth", NOW)
    assert state.prestige.seeds_banked == 1
    assert state.prestige.multiplier == Decimal("1.05")


def test_exclusive_research_locks_siblings(state):
    state.research_owned = ["r_start_click", "r_growth"]
    state.prestige.seeds_banked = 20
    recalc_derived_values(state, NOW)
    assert purchase_research(state, "r_seed_sense", NOW)
    drip = state.registry.find_research("r_seed_drip")
    assert lock_reason(state, drip) == "exclusive"
    assert not purchase_research(state, "r_seed_drip", NOW)
    owned = [view.node.id for view in research_list(state, "owned")]
    assert owned == ["r_start_click", "r_growth", "r_seed_sense"]


def test_unlock_any_conditions(state):
    state.research_owned = ["r_start_click", "r_growth"]
    drip = state.registry.find_research("r_seed_drip")
    assert lock_reason(state, drip) == "unlock_any"
    state.prestige.seeds_banked = 10
    assert lock_reason(state, drip) is None


def test_max_affordable_walks_the_curve(state):
    state.store.currency = Decimal(15) + Decimal(15) * Decimal("1.15")
    assert max_affordable(state, "seedling") == 2
    assert max_affordable(state, "nope") == 0


def test_shop_sort_modes(state):
    state.preferences.shop_sort_mode = "price"
    assert sorted_shop_entries(state)[0].item.id == "seedling"
    state.preferences.shop_sort_mode = "bps"
    assert sorted_shop_entries(state)[0].item.id == "genetics_lab"
    state.preferences.shop_sort_mode = "roi"
    entries = sorted_shop_entries(state)
    assert all(e.roi is not None for e in entries)
    assert entries == sorted(entries, key=lambda e: (e.roi, e.order))
