"""Prestige (soft reset) for seeds.

  seed gain   floor(coefficient * sqrt(prestige.lifetime_currency))
  multiplier  1 + step * seeds_banked

A reset keeps preferences, achievements, research, automation settings and
the all-time harvest total. It replaces everything else with defaults,
including milestones, synergy claims, the seed history and event statistics.
The highest kickstart level latched during the finished epoch starts running
immediately in the new one.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from cannacore.amounts import ONE, amount_sqrt, floor_amount, to_amount
from cannacore.milestones import activate_kickstart, compute_milestones
from cannacore.state import GameState, PrestigeState, create_default_state, now_ms
from cannacore.stats import recalc_derived_values

logger = logging.getLogger(__name__)


@dataclass
class PrestigePreview:
    current_seeds: int
    gain: int
    next_seeds: int
    current_multiplier: Decimal
    next_multiplier: Decimal
    requirement_met: bool


@dataclass
class PrestigeResult:
    seeds_gained: int
    seeds_banked: int
    multiplier: Decimal
    kickstart_level: int


def calculate_seed_gain(lifetime_currency: Decimal, coefficient: float) -> int:
    if lifetime_currency <= 0:
        return 0
    gain = floor_amount(to_amount(coefficient) * amount_sqrt(lifetime_currency))
    return max(0, int(gain))


def compute_prestige_multiplier(seeds: int, step: float) -> Decimal:
    return ONE + to_amount(step) * max(0, int(seeds))


def update_prestige_multiplier(state: GameState) -> None:
    state.prestige.multiplier = compute_prestige_multiplier(
        state.prestige.seeds_banked, state.config.prestige_multiplier_step
    )


def prestige_preview(state: GameState) -> PrestigePreview:
    config = state.config
    current = max(0, state.prestige.seeds_banked)
    requirement_met = state.store.total_harvested >= to_amount(config.prestige_min_requirement)
    gain = calculate_seed_gain(state.prestige.lifetime_currency, config.prestige_coefficient) if requirement_met else 0
    return PrestigePreview(
        current_seeds=current,
        gain=gain,
        next_seeds=current + gain,
        current_multiplier=compute_prestige_multiplier(current, config.prestige_multiplier_step),
        next_multiplier=compute_prestige_multiplier(current + gain, config.prestige_multiplier_step),
        requirement_met=requirement_met,
    )


def perform_prestige(state: GameState, now: Optional[int] = None) -> Optional[PrestigeResult]:
    """Reset the epoch in place. Returns None, changing nothing, if not allowed."""
    if now is None:
        now = now_ms()
    preview = prestige_preview(state)
    if not preview.requirement_met or preview.gain <= 0:
        return None

    _, summary = compute_milestones(state)
    kickstart_level = summary.highest_kickstart_level

    fresh = create_default_state(state.registry, state.config, now)
    fresh.preferences = state.preferences
    fresh.achievements_unlocked = set(state.achievements_unlocked)
    fresh.research_owned = list(state.research_owned)
    fresh.automation = state.automation
    fresh.store.lifetime_currency = state.store.lifetime_currency
    fresh.created_at = state.created_at
    fresh.prestige = PrestigeState(
        seeds_banked=preview.next_seeds,
        multiplier=preview.next_multiplier,
        lifetime_currency=state.prestige.lifetime_currency,
        last_reset_at=now,
    )

    for name in (
        "store", "production_rate", "click_yield", "ownership", "upgrades_owned",
        "research_owned", "achievements_unlocked", "prestige", "abilities",
        "automation", "meta", "preferences", "created_at", "temp",
    ):
        setattr(state, name, getattr(fresh, name))

    if kickstart_level:
        activate_kickstart(state, kickstart_level, now)
    recalc_derived_values(state, now)
    logger.info(
        "Prestige: +%d seeds (%d banked), multiplier x%s, kickstart level %d",
        preview.gain, preview.next_seeds, preview.next_multiplier, kickstart_level,
    )
    return PrestigeResult(
        seeds_gained=preview.gain,
        seeds_banked=preview.next_seeds,
        multiplier=preview.next_multiplier,
        kickstart_level=kickstart_level,
    )
