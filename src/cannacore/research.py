"""Research tree: unlock rules, purchase, and the effects owned nodes feed
into the stats pass."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

from cannacore.amounts import ONE, to_amount
from cannacore.state import GameState, PassiveSeedConfig
from cannacore.types import ResearchNode, UnlockCondition

logger = logging.getLogger(__name__)

MIN_COST_MULTIPLIER = Decimal("0.8")


@dataclass
class ResearchView:
    node: ResearchNode
    owned: bool
    affordable: bool
    blocked: bool
    lock_reason: Optional[str]  # exclusive | requires | unlock_all | unlock_any


def _positive_factor(value: float) -> Decimal:
    return to_amount(value) if value > 0 else ONE


def apply_research_effects(state: GameState) -> None:
    """Overwrite the research-derived fields of ``state.temp``."""
    registry = state.registry
    temp = state.temp
    bps = ONE
    bpc = ONE
    cost = ONE
    auto_clicks = 0.0
    ability_bonus = 0.0
    offline_bonus = 0
    seed_click_bonus = 0.0
    passive: Optional[PassiveSeedConfig] = None

    for research_id in state.research_owned:
        node = registry.find_research(research_id)
        if node is None:
            continue
        for effect in node.effects:
            if effect.id == "BPC_MULT":
                bpc *= _positive_factor(effect.value)
            elif effect.id == "BPS_MULT":
                bps *= _positive_factor(effect.value)
            elif effect.id == "COST_REDUCE_ALL":
                cost *= _positive_factor(effect.value)
            elif effect.id == "CLICK_AUTOMATION":
                auto_clicks += effect.value
            elif effect.id == "ABILITY_OVERDRIVE_PLUS":
                ability_bonus += effect.value
            elif effect.id == "OFFLINE_CAP_BONUS":
                offline_bonus += max(0, int(effect.value))
            elif effect.id == "SEED_CLICK_BONUS":
                seed_click_bonus += max(0.0, effect.value)
            elif effect.id == "SEED_PASSIVE":
                passive = PassiveSeedConfig(
                    interval_ms=max(1, effect.interval_ms),
                    chance=min(1.0, max(0.0, effect.chance)),
                    seeds=max(0, effect.seeds),
                )

    if cost < MIN_COST_MULTIPLIER:
        cost = MIN_COST_MULTIPLIER

    temp.research_bps_mult = bps
    temp.research_bpc_mult = bpc
    temp.cost_multiplier = cost
    temp.auto_click_rate = auto_clicks
    temp.ability_power_bonus = ability_bonus
    temp.offline_cap_ms = state.config.offline_cap_ms + offline_bonus
    temp.seed_click_bonus = seed_click_bonus
    temp.passive_seed = passive


def _meets_condition(state: GameState, condition: UnlockCondition) -> bool:
    if condition.type == "total_buds":
        return state.store.total_harvested >= to_amount(condition.value)
    if condition.type == "prestige_seeds":
        return state.prestige.seeds_banked >= condition.value
    return False


def _owns_exclusive_sibling(state: GameState, node: ResearchNode) -> bool:
    if not node.exclusive_group:
        return False
    for other_id in state.research_owned:
        if other_id == node.id:
            continue
        other = state.registry.find_research(other_id)
        if other is not None and other.exclusive_group == node.exclusive_group:
            return True
    return False


def lock_reason(state: GameState, node: ResearchNode) -> Optional[str]:
    if _owns_exclusive_sibling(state, node):
        return "exclusive"
    if not all(req in state.research_owned for req in node.requires):
        return "requires"
    if node.unlock_all and not all(_meets_condition(state, c) for c in node.unlock_all):
        return "unlock_all"
    if node.unlock_any and not any(_meets_condition(state, c) for c in node.unlock_any):
        return "unlock_any"
    return None


def requirements_met(state: GameState, node: ResearchNode) -> bool:
    return lock_reason(state, node) is None


def can_afford(state: GameState, node: ResearchNode) -> bool:
    if node.cost_type == "seeds":
        return state.prestige.seeds_banked >= node.cost
    return state.store.can_afford(to_amount(node.cost))


def research_list(state: GameState, only: str = "all") -> List[ResearchView]:
    views: List[ResearchView] = []
    for node in state.registry.research:
        owned = node.id in state.research_owned
        reason = None if owned else lock_reason(state, node)
        view = ResearchView(
            node=node,
            owned=owned,
            affordable=not owned and can_afford(state, node),
            blocked=reason is not None,
            lock_reason=reason,
        )
        if only == "available" and (view.owned or view.blocked):
            continue
        if only == "owned" and not view.owned:
            continue
        views.append(view)
    return views
