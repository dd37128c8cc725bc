"""Timed player abilities.

Each ability cycles Ready -> Active -> Cooldown -> Ready:
  activate (only when now >= ready_at)  active_until = now + duration
                                        ready_at = active_until + cooldown
  now >= active_until                   multiplier drops back to 1
  now >= ready_at                       may be activated again
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List

from cannacore.state import AbilityRuntime, GameState
from cannacore.types import AbilityDefinition

logger = logging.getLogger(__name__)


@dataclass
class AbilityProgress:
    id: str
    active: bool
    ready: bool
    remaining_sec: float
    ready_in_sec: float
    cooldown_sec: float
    multiplier: float


def ability_strength(state: GameState, ability: AbilityDefinition) -> float:
    if ability.applies_to == "bps":
        return ability.base_multiplier * (1.0 + state.temp.ability_power_bonus)
    return ability.base_multiplier


def is_ability_ready(state: GameState, ability_id: str, now: int) -> bool:
    runtime = state.abilities.get(ability_id)
    if runtime is None:
        return False
    if runtime.active and now < runtime.active_until:
        return False
    return runtime.ready_at <= now


def activate_ability(state: GameState, ability_id: str, now: int) -> bool:
    """Start an ability. Returns False, changing nothing, if it is not ready."""
    ability = state.registry.find_ability(ability_id)
    if ability is None or ability_id not in state.abilities:
        return False
    if not is_ability_ready(state, ability_id, now):
        return False
    runtime = state.abilities[ability_id]
    runtime.active = True
    runtime.multiplier = ability_strength(state, ability)
    runtime.active_until = now + int(ability.duration_sec * 1000)
    runtime.ready_at = runtime.active_until + int(ability.cooldown_sec * 1000)
    logger.debug("Ability %s active until %d (x%.2f)", ability_id, runtime.active_until, runtime.multiplier)
    return True


def update_ability_timers(state: GameState, now: int) -> bool:
    """Expire finished abilities. Returns True if any multiplier changed."""
    changed = False
    for ability in state.registry.abilities:
        runtime = state.abilities.get(ability.id)
        if runtime is None:
            continue
        if runtime.active and now >= runtime.active_until:
            runtime.active = False
            runtime.multiplier = 1.0
            changed = True
    return changed


def ability_multiplier(state: GameState, applies_to: str) -> float:
    result = 1.0
    for ability in state.registry.abilities:
        if ability.applies_to != applies_to:
            continue
        runtime = state.abilities.get(ability.id)
        if runtime is not None and runtime.active:
            result *= runtime.multiplier
    return result


def reapply_ability_effects(state: GameState) -> None:
    for ability in state.registry.abilities:
        runtime = state.abilities.get(ability.id)
        if runtime is None:
            continue
        runtime.multiplier = ability_strength(state, ability) if runtime.active else 1.0


def ability_progress(state: GameState, now: int) -> List[AbilityProgress]:
    snapshots: List[AbilityProgress] = []
    for ability in state.registry.abilities:
        runtime = state.abilities.get(ability.id) or AbilityRuntime()
        remaining = max(0, runtime.active_until - now) / 1000.0 if runtime.active else 0.0
        ready_in = max(0, runtime.ready_at - now) / 1000.0
        snapshots.append(
            AbilityProgress(
                id=ability.id,
                active=runtime.active,
                ready=is_ability_ready(state, ability.id, now),
                remaining_sec=remaining,
                ready_in_sec=ready_in,
                cooldown_sec=ability.cooldown_sec,
                multiplier=ability_strength(state, ability),
            )
        )
    return snapshots
