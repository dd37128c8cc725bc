"""One-time upgrades: requirement checks and bonus accumulation.

Effects of every owned upgrade are folded into a single
``UpgradeEffects`` summary:
  global_multiplier   product of global factors
  click_multiplier    product of click factors
  building_multipliers[id]       product of per-building production factors
  building_cost_multipliers[id]  product of per-building cost factors
  auto_click_rate     sum of automatic clicks per second
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict

from cannacore.amounts import ONE, to_amount
from cannacore.state import GameState
from cannacore.types import ItemDefinition, UpgradeDefinition


@dataclass
class UpgradeEffects:
    global_multiplier: Decimal = field(default=ONE)
    click_multiplier: Decimal = field(default=ONE)
    building_multipliers: Dict[str, Decimal] = field(default_factory=dict)
    building_cost_multipliers: Dict[str, Decimal] = field(default_factory=dict)
    auto_click_rate: float = 0.0


def requirements_satisfied(state: GameState, upgrade: UpgradeDefinition) -> bool:
    if upgrade.requires_total and state.store.total_harvested < to_amount(upgrade.requires_total):
        return False
    for item_id, amount in upgrade.requires_items.items():
        if state.owned(item_id) < amount:
            return False
    return True


def collect_upgrade_effects(state: GameState) -> UpgradeEffects:
    effects = UpgradeEffects()
    for upgrade in state.registry.upgrades:
        if upgrade.id not in state.upgrades_owned:
            continue
        for effect in upgrade.effects:
            value = to_amount(effect.value, ONE)
            if effect.type == "global_multiplier":
                effects.global_multiplier *= value
            elif effect.type == "click_multiplier":
                effects.click_multiplier *= value
            elif effect.type == "building_multiplier":
                for target in effect.targets:
                    current = effects.building_multipliers.get(target, ONE)
                    effects.building_multipliers[target] = current * value
            elif effect.type == "building_cost_multiplier":
                for target in effect.targets:
                    current = effects.building_cost_multipliers.get(target, ONE)
                    effects.building_cost_multipliers[target] = current * value
            elif effect.type == "auto_click":
                effects.auto_click_rate += effect.value
    return effects


def item_unlocked(state: GameState, item: ItemDefinition) -> bool:
    """Buildings share the upgrade requirement shape: a harvest total and item counts."""
    if item.unlock_total and state.store.total_harvested < to_amount(item.unlock_total):
        return False
    return all(state.owned(item_id) >= amount for item_id, amount in item.unlock_items.items())
