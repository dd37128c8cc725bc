"""Purchases: building cost curves, upgrades, research and achievements.

A unit of building costs ``base_cost * cost_mult * cost_factor ** owned``.
``cost_mult`` combines research cost reductions (floored at 80% of
nominal), per-building upgrade discounts and an active kickstart.

Every buy is atomic: it either pays for and grants everything requested,
or returns False and leaves state untouched. A successful buy evaluates
achievements and then recalculates derived stats once, so an achievement
unlocked by this purchase already counts in the new rates.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, Overflow
from typing import List, Optional

from cannacore.amounts import ONE, ZERO, amount_pow, amount_to_float, to_amount
from cannacore.prestige import update_prestige_multiplier
from cannacore.research import can_afford as can_afford_research
from cannacore.research import requirements_met as research_requirements_met
from cannacore.state import GameState
from cannacore.stats import building_cost_multiplier, delta_production_next, recalc_derived_values
from cannacore.types import ItemDefinition
from cannacore.upgrades import item_unlocked, requirements_satisfied

logger = logging.getLogger(__name__)


@dataclass
class TierInfo:
    stage: int
    progress: int
    remaining: int
    size: int
    next_threshold: int
    bonus: float


@dataclass
class ShopEntry:
    item: ItemDefinition
    owned: int
    cost: Decimal
    delta_production: Decimal
    roi: Optional[float]
    unlocked: bool
    affordable: bool
    tier: TierInfo
    order: int


def item_cost(item: ItemDefinition, owned: int, cost_multiplier: Decimal = ONE) -> Decimal:
    base = to_amount(item.base_cost) * cost_multiplier
    return base * amount_pow(to_amount(item.cost_factor), max(0, owned))


def bulk_cost(item: ItemDefinition, owned: int, quantity: int, cost_multiplier: Decimal = ONE) -> Decimal:
    """Price of *quantity* units as a geometric series; infinite past the Decimal range."""
    if quantity <= 0:
        return ZERO
    first = item_cost(item, owned, cost_multiplier)
    factor = to_amount(item.cost_factor)
    if factor == ONE:
        return first * quantity
    try:
        return first * ((amount_pow(factor, quantity) - ONE) / (factor - ONE))
    except Overflow:
        return Decimal("Infinity")


def next_item_cost(state: GameState, item: ItemDefinition) -> Decimal:
    return item_cost(item, state.owned(item.id), building_cost_multiplier(state, item.id))


def max_affordable(state: GameState, item_id: str, limit: int = 1000) -> int:
    item = state.registry.find_item(item_id)
    if item is None:
        return 0
    mult = building_cost_multiplier(state, item_id)
    owned = state.owned(item_id)
    budget = state.store.currency
    count = 0
    while count < limit:
        price = item_cost(item, owned + count, mult)
        if price > budget:
            break
        budget -= price
        count += 1
    return count


def evaluate_achievements(state: GameState) -> List[str]:
    """Unlock every achievement whose requirement holds; never locks any."""
    unlocked: List[str] = []
    for achievement in state.registry.achievements:
        if achievement.id in state.achievements_unlocked:
            continue
        owns_items = all(state.owned(i) >= n for i, n in achievement.requires_items.items())
        meets_total = (
            not achievement.requires_total
            or state.store.total_harvested >= to_amount(achievement.requires_total)
        )
        if owns_items and meets_total:
            state.achievements_unlocked.add(achievement.id)
            unlocked.append(achievement.id)
    if unlocked:
        logger.debug("Achievements unlocked: %s", ", ".join(unlocked))
    return unlocked


def buy_item(state: GameState, item_id: str, quantity: int = 1, now: Optional[int] = None) -> bool:
    item = state.registry.find_item(item_id)
    if item is None or quantity < 1:
        return False
    owned = state.owned(item_id)
    total = bulk_cost(item, owned, quantity, building_cost_multiplier(state, item_id))
    if not state.store.spend(total):
        return False
    state.ownership[item_id] = owned + quantity
    evaluate_achievements(state)
    recalc_derived_values(state, now)
    logger.debug("Bought %d x %s for %s", quantity, item_id, total)
    return True


def buy_upgrade(state: GameState, upgrade_id: str, now: Optional[int] = None) -> bool:
    if upgrade_id in state.upgrades_owned:
        return False
    upgrade = state.registry.find_upgrade(upgrade_id)
    if upgrade is None or not requirements_satisfied(state, upgrade):
        return False
    if not state.store.spend(to_amount(upgrade.cost)):
        return False
    state.upgrades_owned.add(upgrade_id)
    evaluate_achievements(state)
    recalc_derived_values(state, now)
    logger.debug("Bought upgrade %s", upgrade_id)
    return True


def purchase_research(state: GameState, research_id: str, now: Optional[int] = None) -> bool:
    if research_id in state.research_owned:
        return False
    node = state.registry.find_research(research_id)
    if node is None or not research_requirements_met(state, node):
        return False
    if not can_afford_research(state, node):
        return False
    if node.cost_type == "seeds":
        state.prestige.seeds_banked -= int(node.cost)
        update_prestige_multiplier(state)
    elif not state.store.spend(to_amount(node.cost)):
        return False
    state.research_owned.append(research_id)
    recalc_derived_values(state, now)
    logger.debug("Researched %s", research_id)
    return True


def _tier_info(item: ItemDefinition, owned: int) -> TierInfo:
    size = item.tier_size if item.tier_size > 0 else 25
    stage = owned // size
    progress = owned % size
    return TierInfo(
        stage=stage,
        progress=progress,
        remaining=size - progress,
        size=size,
        next_threshold=(stage + 1) * size,
        bonus=item.tier_bonus,
    )


def shop_entries(state: GameState) -> List[ShopEntry]:
    entries: List[ShopEntry] = []
    for item in state.registry.items:
        owned = state.owned(item.id)
        cost = next_item_cost(state, item)
        delta = delta_production_next(state, item)
        roi = amount_to_float(cost / delta) if delta > ZERO else None
        entries.append(
            ShopEntry(
                item=item,
                owned=owned,
                cost=cost,
                delta_production=delta,
                roi=roi,
                unlocked=item_unlocked(state, item),
                affordable=state.store.can_afford(cost),
                tier=_tier_info(item, owned),
                order=item.order,
            )
        )
    return entries


def sorted_shop_entries(state: GameState) -> List[ShopEntry]:
    entries = shop_entries(state)
    mode = state.preferences.shop_sort_mode
    if mode == "bps":
        entries.sort(key=lambda e: (-amount_to_float(e.delta_production), e.order))
    elif mode == "roi":
        entries.sort(key=lambda e: (e.roi is None, e.roi or 0.0, e.order))
    else:
        entries.sort(key=lambda e: (e.cost, e.order))
    return entries
