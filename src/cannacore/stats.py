"""Derived production and click stats.

Recalculation order:
1. Research effects -> temp (research multipliers, cost multiplier, bonuses)
2. Upgrade effects (global, click, per-building production and cost)
3. Milestones latched and summarised
4. Kickstart resolved (expired runs are cleared)
5. Per building: base_rate * owned * building_mult * tier_mult
6. global = upgrade_global * achievements * prestige * milestone_global
7. production = sum * global * milestone_bps * kickstart_bps * research_bps
                * ability(bps) * event_bps
8. click = 1 * global * click_upgrades * milestone_bpc * kickstart_bpc
           * research_bpc * ability(bpc) * event_bpc

The pass only reads persistent state and overwrites derived fields, so
running it twice in a row yields identical results.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Optional

from cannacore.abilities import ability_multiplier, reapply_ability_effects
from cannacore.amounts import ONE, ZERO, amount_pow, to_amount
from cannacore.milestones import compute_milestones, resolve_kickstart
from cannacore.research import apply_research_effects
from cannacore.state import GameState, now_ms
from cannacore.types import ItemDefinition
from cannacore.upgrades import collect_upgrade_effects


def tier_multiplier(item: ItemDefinition, owned: int) -> Decimal:
    """``bonus ** tiers`` with the softcap factor replacing it past ``softcap_tier``."""
    size = item.tier_size if item.tier_size > 0 else 25
    bonus = to_amount(item.tier_bonus if item.tier_bonus > 0 else 1.15)
    tiers = max(0, int(owned)) // size
    if not item.softcap_tier or not item.softcap_mult or tiers <= item.softcap_tier:
        return amount_pow(bonus, tiers)
    pre = amount_pow(bonus, item.softcap_tier)
    post = amount_pow(to_amount(item.softcap_mult), tiers - item.softcap_tier)
    return pre * post


def achievement_multiplier(state: GameState) -> Decimal:
    result = ONE
    for achievement in state.registry.achievements:
        if achievement.id in state.achievements_unlocked and achievement.reward_multiplier:
            result *= to_amount(achievement.reward_multiplier, ONE)
    return result


def building_cost_multiplier(state: GameState, item_id: str) -> Decimal:
    """External multiplier applied to every unit cost of *item_id*."""
    temp = state.temp
    return temp.cost_multiplier * temp.building_cost_multipliers.get(item_id, ONE) * temp.kickstart.cost_mult


def recalc_derived_values(state: GameState, now: Optional[int] = None) -> None:
    if now is None:
        now = now_ms()
    temp = state.temp

    apply_research_effects(state)
    reapply_ability_effects(state)

    upgrades = collect_upgrade_effects(state)
    temp.building_multipliers = dict(upgrades.building_multipliers)
    temp.building_cost_multipliers = dict(upgrades.building_cost_multipliers)
    temp.auto_click_rate += upgrades.auto_click_rate

    _, milestones = compute_milestones(state)
    temp.milestones = milestones
    temp.kickstart = resolve_kickstart(state, now)

    production = ZERO
    temp.building_tier_multipliers = {}
    for item in state.registry.items:
        owned = state.owned(item.id)
        tier = tier_multiplier(item, owned)
        temp.building_tier_multipliers[item.id] = tier
        if owned <= 0:
            continue
        base = temp.building_multipliers.get(item.id, ONE)
        production += to_amount(item.bps) * owned * base * tier

    global_mult = (
        upgrades.global_multiplier
        * achievement_multiplier(state)
        * state.prestige.multiplier
        * milestones.global_mult
    )

    effect = temp.event_effect
    event_bps = effect.bps_multiplier if effect is not None else ONE
    event_bpc = effect.bpc_multiplier if effect is not None else ONE

    total_bps = (
        global_mult
        * milestones.bps_mult
        * temp.kickstart.bps_mult
        * temp.research_bps_mult
        * to_amount(ability_multiplier(state, "bps"), ONE)
        * event_bps
    )
    total_bpc = (
        global_mult
        * upgrades.click_multiplier
        * milestones.bpc_mult
        * temp.kickstart.bpc_mult
        * temp.research_bpc_mult
        * to_amount(ability_multiplier(state, "bpc"), ONE)
        * event_bpc
    )

    temp.total_bps_mult = total_bps
    temp.total_bpc_mult = total_bpc
    state.production_rate = production * total_bps
    state.click_yield = ONE * total_bpc


def delta_production_next(state: GameState, item: ItemDefinition) -> Decimal:
    """Production gained by buying one more unit of *item*, all multipliers applied."""
    owned = state.owned(item.id)
    per_unit = to_amount(item.bps) * state.temp.building_multipliers.get(item.id, ONE)
    now_total = per_unit * tier_multiplier(item, owned) * owned
    next_total = per_unit * tier_multiplier(item, owned + 1) * (owned + 1)
    return (next_total - now_total) * state.temp.total_bps_mult
