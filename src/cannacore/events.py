"""Random world events: golden bud, seed pack and lucky joint.

At most one event is on screen at a time. The spawner places it after a
random delay and removes it when its visibility window closes. Claiming
resolves the reward exactly once per token.

  golden_bud   production * 8 s (click yield * 8 when idle, at least 1)
  seed_pack    randint(1, max(1, round(prestige mult))) + randint(0, 3) seeds
  lucky_joint  x2 production and click for 20 s; a second claim refreshes
               the timer and never stacks
"""
from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Optional

from cannacore.amounts import ONE, ZERO, to_amount
from cannacore.scheduler import Scheduler
from cannacore.seeds import award_seeds
from cannacore.state import ActiveEvent, EventCounters, EventEffect, GameState
from cannacore.types import EventDefinition

logger = logging.getLogger(__name__)

SPAWN_TIMER = "events.spawn"
EXPIRE_TIMER = "events.expire"


@dataclass
class EventReward:
    id: str
    kind: str  # buds | seeds | multiplier
    buds: Decimal = ZERO
    seeds: int = 0
    multiplier: float = 1.0
    duration_ms: int = 0
    refreshed: bool = False
    requires_recalc: bool = False


def _counters(state: GameState, event_id: str) -> EventCounters:
    stats = state.meta.event_stats
    counters = stats.per_event.get(event_id)
    if counters is None:
        counters = EventCounters()
        stats.per_event[event_id] = counters
    return counters


def _rate(clicks: int, spawns: int) -> float:
    return clicks / spawns if spawns > 0 else 0.0


def record_spawn(state: GameState, event_id: str, now: int) -> None:
    stats = state.meta.event_stats
    stats.total_spawns += 1
    stats.last_spawn_at = now
    stats.click_rate = _rate(stats.total_clicks, stats.total_spawns)
    counters = _counters(state, event_id)
    counters.spawns += 1
    counters.last_spawn_at = now
    counters.click_rate = _rate(counters.clicks, counters.spawns)


def record_click(state: GameState, event_id: str, now: int) -> None:
    stats = state.meta.event_stats
    stats.total_clicks += 1
    stats.last_click_at = now
    stats.click_rate = _rate(stats.total_clicks, stats.total_spawns)
    counters = _counters(state, event_id)
    counters.clicks += 1
    counters.last_click_at = now
    counters.click_rate = _rate(counters.clicks, counters.spawns)


def record_expired(state: GameState, event_id: str) -> None:
    state.meta.event_stats.total_expired += 1
    _counters(state, event_id).expired += 1


def _golden_bud(state: GameState) -> EventReward:
    seconds = to_amount(state.config.golden_bud_seconds)
    gain = state.production_rate * seconds
    if gain <= ZERO:
        gain = max(ONE, state.click_yield * seconds)
    gained = state.harvest(gain)
    return EventReward(id="golden_bud", kind="buds", buds=gained)


def _seed_pack(state: GameState, rng: random.Random, now: int) -> EventReward:
    base = max(1, int(round(float(state.prestige.multiplier))))
    amount = rng.randint(1, base) + rng.randint(0, max(0, state.config.seed_pack_max_bonus))
    gained = award_seeds(state, amount, "event", now)
    return EventReward(id="seed_pack", kind="seeds", seeds=gained)


def _lucky_joint(state: GameState, now: int) -> EventReward:
    config = state.config
    refreshed = state.temp.event_effect is not None and state.temp.event_effect.expires_at > now
    multiplier = to_amount(config.lucky_joint_multiplier, ONE)
    state.temp.event_effect = EventEffect(
        id="lucky_joint",
        expires_at=now + config.lucky_joint_duration_ms,
        bps_multiplier=multiplier,
        bpc_multiplier=multiplier,
    )
    return EventReward(
        id="lucky_joint",
        kind="multiplier",
        multiplier=config.lucky_joint_multiplier,
        duration_ms=config.lucky_joint_duration_ms,
        refreshed=refreshed,
        requires_recalc=True,
    )


def claim_event(state: GameState, token: str, now: int, rng: random.Random) -> Optional[EventReward]:
    """Resolve the visible event. Returns None for a stale or unknown token."""
    active = state.temp.active_event
    if active is None or active.token != token or now >= active.expires_at:
        return None
    state.temp.active_event = None
    record_click(state, active.id, now)

    if active.id == "golden_bud":
        reward = _golden_bud(state)
    elif active.id == "seed_pack":
        reward = _seed_pack(state, rng, now)
    elif active.id == "lucky_joint":
        reward = _lucky_joint(state, now)
    else:
        logger.warning("Claimed event %s has no reward", active.id)
        return None
    logger.debug("Event %s claimed: %s", active.id, reward)
    return reward


def update_event_effect(state: GameState, now: int) -> bool:
    """Expire the event multiplier. Returns True if stats need a recalc."""
    effect = state.temp.event_effect
    if effect is not None and now >= effect.expires_at:
        state.temp.event_effect = None
        return True
    return False


def pick_event(definitions: list, rng: random.Random) -> Optional[EventDefinition]:
    pool = [d for d in definitions if d.weight > 0]
    if not pool:
        return None
    total = sum(d.weight for d in pool)
    roll = rng.random() * total
    for definition in pool:
        roll -= definition.weight
        if roll < 0:
            return definition
    return pool[-1]


@dataclass
class EventSpawnerHandle:
    start: Callable[[int], None]
    stop: Callable[[], None]


class EventSpawner:
    """Places events on a scheduler: wait, show, expire or claim, repeat."""

    def __init__(self, state: GameState, scheduler: Scheduler, rng: random.Random):
        self.state = state
        self.scheduler = scheduler
        self.rng = rng
        self.running = False
        self._serial = 0

    def handle(self) -> EventSpawnerHandle:
        return EventSpawnerHandle(start=self.start, stop=self.stop)

    def start(self, now: int) -> None:
        if self.running:
            return
        self.running = True
        self.schedule_next(now)

    def stop(self) -> None:
        self.running = False
        self.scheduler.cancel(SPAWN_TIMER)
        self.scheduler.cancel(EXPIRE_TIMER)
        self.state.temp.active_event = None

    def schedule_next(self, now: int) -> None:
        if not self.running:
            return
        config = self.state.config
        delay = self.rng.randint(config.event_spawn_delay_min_ms, config.event_spawn_delay_max_ms)
        self.scheduler.at(SPAWN_TIMER, now + delay, self._spawn)

    def resolved(self, now: int) -> None:
        """Called after a claim so the next event gets queued."""
        self.scheduler.cancel(EXPIRE_TIMER)
        self.schedule_next(now)

    def _next_token(self, event_id: str) -> str:
        self._serial += 1
        return f"{event_id}-{self._serial}-{self.rng.getrandbits(32):08x}"

    def _spawn(self, now: int) -> None:
        if self.state.temp.active_event is not None:
            self.schedule_next(now)
            return
        definition = pick_event(self.state.registry.events, self.rng)
        if definition is None:
            return
        config = self.state.config
        lifetime = self.rng.randint(config.event_lifetime_min_ms, config.event_lifetime_max_ms)
        event = ActiveEvent(
            id=definition.id,
            token=self._next_token(definition.id),
            spawned_at=now,
            expires_at=now + lifetime,
            x=self.rng.uniform(0.15, 0.85),
            y=self.rng.uniform(0.18, 0.85),
        )
        self.state.temp.active_event = event
        record_spawn(self.state, event.id, now)
        self.scheduler.at(EXPIRE_TIMER, event.expires_at, self._expire)
        logger.debug("Spawned event %s (%s) for %d ms", event.id, event.token, lifetime)

    def _expire(self, now: int) -> None:
        active = self.state.temp.active_event
        if active is not None and now >= active.expires_at:
            self.state.temp.active_event = None
            record_expired(self.state, active.id)
        self.schedule_next(now)
