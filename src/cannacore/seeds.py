"""Seed micro-rewards outside of prestige.

Seeds trickle in from three sources besides prestige itself:

* click rolls: every manual harvest rolls ``base_chance + bonus``
* passive rolls: with the passive research owned, every whole interval of
  idle time rolls once; outstanding intervals are caught up in one batch
  and each interval index is rolled exactly once
* synergies: one-time rewards for owning a combination of buildings,
  research or upgrades

Click and passive rolls are suppressed while the trailing 60 minute earn
rate is at or above a cap that grows with lifetime currency. Each award is
appended to the history immediately, so it throttles any roll that follows
it in the same tick.
"""
from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import List

from cannacore.amounts import to_amount
from cannacore.prestige import update_prestige_multiplier
from cannacore.state import GameState, Notification, SeedGainEntry
from cannacore.types import SynergyDefinition

logger = logging.getLogger(__name__)


@dataclass
class ClickSeedResult:
    gained: int
    chance: float
    throttled: bool


@dataclass
class PassiveRollResult:
    attempts: int
    gained: int
    remainder_ms: int
    throttled: bool


def seed_rate_cap(state: GameState) -> int:
    config = state.config
    lifetime = state.prestige.lifetime_currency
    if lifetime < to_amount(config.seed_cap_low_threshold):
        return config.seed_cap_low
    if lifetime < to_amount(config.seed_cap_high_threshold):
        return config.seed_cap_mid
    return config.seed_cap_high


def update_seed_rate(state: GameState, now: int) -> float:
    """Prune history to the window and return the seeds-per-hour rate."""
    config = state.config
    cutoff = now - config.seed_history_window_ms
    kept: List[SeedGainEntry] = []
    total = 0
    earliest = now
    for entry in state.meta.seed_gain_history:
        if entry.amount <= 0 or entry.time <= 0 or entry.time < cutoff:
            continue
        kept.append(entry)
        total += entry.amount
        earliest = min(earliest, entry.time)

    limit = config.seed_history_max_entries
    state.meta.seed_gain_history = kept[-limit:] if len(kept) > limit else kept

    span = config.seed_history_window_ms if not kept else max(1, now - earliest)
    rate = (total * 3_600_000) / span if total else 0.0
    state.temp.seed_rate_per_hour = rate
    state.temp.seed_rate_cap = seed_rate_cap(state)
    return rate


def is_throttled(state: GameState) -> bool:
    cap = state.temp.seed_rate_cap
    return cap > 0 and state.temp.seed_rate_per_hour >= cap


def queue_notification(state: GameState, notification: Notification) -> None:
    # The deque is bounded; the oldest entry drops off first.
    state.temp.seed_notifications.append(notification)


def award_seeds(state: GameState, amount: int, source: str, now: int) -> int:
    safe = max(0, int(amount))
    if safe <= 0:
        return 0
    state.prestige.seeds_banked += safe
    update_prestige_multiplier(state)

    history = state.meta.seed_gain_history
    history.append(SeedGainEntry(time=now, amount=safe, source=source))
    limit = state.config.seed_history_max_entries
    if len(history) > limit:
        del history[: len(history) - limit]

    update_seed_rate(state, now)
    logger.debug("Awarded %d seed(s) from %s", safe, source)
    return safe


def record_interaction(state: GameState, now: int) -> None:
    state.meta.last_interaction_at = now
    state.meta.passive_idle_ms = 0
    state.meta.passive_rolls_done = 0


def click_chance(state: GameState) -> float:
    config = state.config
    bonus = min(config.seed_max_click_bonus, max(0.0, state.temp.seed_click_bonus))
    return min(1.0, config.seed_base_click_chance + bonus)


def maybe_roll_click_seed(state: GameState, rng: random.Random, now: int) -> ClickSeedResult:
    update_seed_rate(state, now)
    chance = click_chance(state)
    if is_throttled(state):
        return ClickSeedResult(gained=0, chance=chance, throttled=True)
    if rng.random() < chance:
        gained = award_seeds(state, 1, "click", now)
        if gained:
            queue_notification(state, Notification(kind="seed_awarded", seeds=gained, source="click"))
        return ClickSeedResult(gained=gained, chance=chance, throttled=False)
    return ClickSeedResult(gained=0, chance=chance, throttled=False)


def process_passive_rolls(state: GameState, rng: random.Random, now: int) -> PassiveRollResult:
    """Roll once for every idle interval not yet processed."""
    update_seed_rate(state, now)
    config = state.temp.passive_seed
    meta = state.meta
    if config is None:
        state.temp.passive_throttled = False
        state.temp.passive_progress = 0.0
        return PassiveRollResult(attempts=0, gained=0, remainder_ms=0, throttled=False)

    throttled = is_throttled(state)
    state.temp.passive_throttled = throttled
    if throttled:
        state.temp.passive_progress = 0.0
        return PassiveRollResult(attempts=0, gained=0, remainder_ms=meta.passive_idle_ms, throttled=True)

    interval = max(1, config.interval_ms)
    idle = max(0, now - meta.last_interaction_at)
    total_attempts = idle // interval
    remainder = idle % interval
    pending = max(0, total_attempts - meta.passive_rolls_done)
    meta.passive_idle_ms = remainder
    state.temp.passive_progress = min(1.0, remainder / interval)

    gained_total = 0
    for _ in range(pending):
        if rng.random() < config.chance:
            gained = award_seeds(state, config.seeds, "passive", now)
            if gained:
                gained_total += gained
                queue_notification(state, Notification(kind="seed_awarded", seeds=gained, source="passive"))
    meta.passive_rolls_done = total_attempts
    return PassiveRollResult(attempts=pending, gained=gained_total, remainder_ms=remainder, throttled=False)


def synergy_satisfied(state: GameState, synergy: SynergyDefinition) -> bool:
    if any(state.owned(i) < n for i, n in synergy.requires_items.items()):
        return False
    if any(r not in state.research_owned for r in synergy.requires_research):
        return False
    return all(u in state.upgrades_owned for u in synergy.requires_upgrades)


def check_seed_synergies(state: GameState, now: int) -> List[str]:
    """Claim every newly satisfied synergy once. Returns the claimed ids."""
    claimed: List[str] = []
    for synergy in state.registry.synergies:
        if synergy.id in state.meta.synergy_claims:
            continue
        if not synergy_satisfied(state, synergy):
            continue
        state.meta.synergy_claims.add(synergy.id)
        gained = award_seeds(state, synergy.seeds, "synergy", now)
        claimed.append(synergy.id)
        if gained:
            queue_notification(
                state, Notification(kind="synergy_claimed", seeds=gained, source=synergy.id)
            )
    if claimed:
        logger.info("Synergies claimed: %s", ", ".join(claimed))
    return claimed


def process_seed_systems(state: GameState, now: int, rng: random.Random) -> PassiveRollResult:
    """Per-tick seed work: passive catch-up first, then synergy claims."""
    result = process_passive_rolls(state, rng, now)
    check_seed_synergies(state, now)
    return result
