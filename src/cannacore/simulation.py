from __future__ import annotations

import logging
import random
from dataclasses import asdict, dataclass, field, fields
from decimal import Decimal
from pathlib import Path
from typing import List, Optional

from cannacore.abilities import AbilityProgress, ability_progress, activate_ability, update_ability_timers
from cannacore.amounts import ZERO, to_amount
from cannacore.autobuy import run_auto_buy
from cannacore.catalog import Registry, UnknownContentError, load_registry
from cannacore.config import BalanceConfig, load_balance
from cannacore.events import EventReward, EventSpawner, EventSpawnerHandle, claim_event, update_event_effect
from cannacore.migrations import normalise_automation
from cannacore.milestones import MilestoneProgress, clear_expired_kickstart, milestone_progress
from cannacore.offline import take_offline_notification
from cannacore.prestige import PrestigePreview, PrestigeResult, perform_prestige, prestige_preview
from cannacore.save import InvalidSaveError, export_text, import_text, load_game, load_state, save_game
from cannacore.scheduler import Scheduler
from cannacore.seeds import ClickSeedResult, maybe_roll_click_seed, process_seed_systems, record_interaction
from cannacore.shop import buy_item, buy_upgrade, evaluate_achievements, purchase_research
from cannacore.state import (
    ActiveEvent,
    AutomationConfig,
    EventEffect,
    GameState,
    Notification,
    create_default_state,
    now_ms,
)
from cannacore.stats import recalc_derived_values

logger = logging.getLogger(__name__)

AUTO_BUY_TIMER = "automation.auto_buy"
AUTOSAVE_TIMER = "persistence.autosave"


@dataclass
class ClickResult:
    gain: Decimal
    seed: ClickSeedResult


@dataclass
class EventSnapshot:
    active: Optional[ActiveEvent]
    effect: Optional[EventEffect]
    effect_remaining_ms: int


@dataclass
class Simulation:
    """Command facade over a GameState.

    Tick pipeline:
    1. Clamp dt to ``max_tick_delta_sec``
    2. Harvest production and auto-clicks for dt
    3. Expire abilities, the event buff and the kickstart; recalc on change
    4. Passive seed rolls, then synergy claims
    5. Advance the scheduler: event spawn/expiry, auto-buy, autosave
    """
    state: GameState
    rng: random.Random = field(default_factory=random.Random)
    scheduler: Scheduler = field(default_factory=Scheduler)
    save_path: Optional[Path] = None
    now: int = 0
    spawner: Optional[EventSpawner] = field(default=None, repr=False)
    spawner_handle: Optional[EventSpawnerHandle] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if self.spawner is None:
            self.spawner = EventSpawner(self.state, self.scheduler, self.rng)
        if self.spawner_handle is None:
            self.spawner_handle = self.spawner.handle()

    @property
    def registry(self) -> Registry:
        return self.state.registry

    @property
    def config(self) -> BalanceConfig:
        return self.state.config

    # -- outbound values ------------------------------------------------------

    @property
    def production_rate(self) -> Decimal:
        return self.state.production_rate

    @property
    def click_yield(self) -> Decimal:
        return self.state.click_yield

    @property
    def currency(self) -> Decimal:
        return self.state.store.currency

    @property
    def total_harvested(self) -> Decimal:
        return self.state.store.total_harvested

    @property
    def lifetime_currency(self) -> Decimal:
        return self.state.prestige.lifetime_currency

    def ability_snapshots(self) -> List[AbilityProgress]:
        return ability_progress(self.state, self.now)

    def milestone_snapshots(self) -> List[MilestoneProgress]:
        return milestone_progress(self.state)

    def event_snapshot(self) -> EventSnapshot:
        effect = self.state.temp.event_effect
        remaining = max(0, effect.expires_at - self.now) if effect is not None else 0
        return EventSnapshot(active=self.state.temp.active_event, effect=effect, effect_remaining_ms=remaining)

    def prestige_preview(self) -> PrestigePreview:
        return prestige_preview(self.state)

    # -- lifecycle --------------------------------------------------------------

    def start(self, now: Optional[int] = None) -> None:
        """Arm the spawner and the periodic timers."""
        if now is not None:
            self.now = now
        self.scheduler.now = self.now
        config = self.config
        self.scheduler.every(AUTO_BUY_TIMER, int(config.auto_buy_interval_sec * 1000), self._auto_buy)
        if self.save_path is not None:
            self.scheduler.every(AUTOSAVE_TIMER, int(config.autosave_interval_sec * 1000), self._autosave)
        self.spawner_handle.start(self.now)

    def shutdown(self) -> None:
        self.spawner_handle.stop()
        self.scheduler.clear_all()
        if self.save_path is not None:
            self.save()
        logger.info("Simulation shut down")

    def _adopt(self, state: GameState) -> None:
        self.state = state
        self.spawner.state = state

    # -- commands ---------------------------------------------------------------

    def manual_action(self, now: Optional[int] = None, rng: Optional[random.Random] = None) -> ClickResult:
        """One manual harvest: credit the click yield and roll for a seed."""
        now = self._clock(now)
        state = self.state
        gain = state.harvest(state.click_yield)
        record_interaction(state, now)
        banked = state.prestige.seeds_banked
        seed = maybe_roll_click_seed(state, rng or self.rng, now)
        if evaluate_achievements(state) or state.prestige.seeds_banked != banked:
            recalc_derived_values(state, now)
        return ClickResult(gain=gain, seed=seed)

    def purchase(self, content_id: str, quantity: int = 1) -> bool:
        """Buy a building, upgrade or research node by id."""
        state = self.state
        registry = state.registry
        is_item = registry.find_item(content_id) is not None
        is_upgrade = registry.find_upgrade(content_id) is not None
        if not (is_item or is_upgrade or registry.find_research(content_id) is not None):
            raise UnknownContentError(content_id)
        record_interaction(state, self.now)
        if is_item:
            return buy_item(state, content_id, quantity, self.now)
        if is_upgrade:
            return buy_upgrade(state, content_id, self.now)
        return purchase_research(state, content_id, self.now)

    def activate_ability(self, ability_id: str) -> bool:
        record_interaction(self.state, self.now)
        if not activate_ability(self.state, ability_id, self.now):
            return False
        recalc_derived_values(self.state, self.now)
        return True

    def trigger_event_click(self, token: str) -> Optional[EventReward]:
        state = self.state
        record_interaction(state, self.now)
        banked = state.prestige.seeds_banked
        reward = claim_event(state, token, self.now, self.rng)
        if reward is None:
            return None
        if reward.requires_recalc or state.prestige.seeds_banked != banked:
            recalc_derived_values(state, self.now)
        self.spawner.resolved(self.now)
        return reward

    def perform_prestige(self) -> Optional[PrestigeResult]:
        result = perform_prestige(self.state, self.now)
        if result is not None:
            record_interaction(self.state, self.now)
        return result

    def set_automation_config(self, **partial: object) -> AutomationConfig:
        """Update auto-buy settings; values are clamped to their legal ranges."""
        known = {f.name for f in fields(AutomationConfig)}
        unknown = sorted(set(partial) - known)
        if unknown:
            raise TypeError(f"unknown automation setting(s): {', '.join(unknown)}")
        merged = asdict(self.state.automation)
        merged.update(partial)
        self.state.automation = AutomationConfig(**normalise_automation(merged))
        return self.state.automation

    def tick(self, dt: float, now: Optional[int] = None) -> None:
        state = self.state
        dt = max(0.0, min(float(dt), state.config.max_tick_delta_sec))
        if now is None:
            now = self.now + int(round(dt * 1000))
        self.now = now

        seconds = to_amount(dt)
        gain = state.production_rate * seconds
        rate = state.temp.auto_click_rate
        if rate > 0:
            clicks = rate * dt
            gain += state.click_yield * to_amount(clicks)
            state.temp.auto_click_progress = (state.temp.auto_click_progress + clicks) % 1.0
        if gain > ZERO:
            state.harvest(gain)

        changed = update_ability_timers(state, now)
        changed = update_event_effect(state, now) or changed
        changed = clear_expired_kickstart(state, now) or changed
        changed = bool(evaluate_achievements(state)) or changed

        banked = state.prestige.seeds_banked
        process_seed_systems(state, now, self.rng)
        if changed or state.prestige.seeds_banked != banked:
            recalc_derived_values(state, now)

        self.scheduler.advance(now)

    def drain_notifications(self) -> List[Notification]:
        """Pending notifications, offline gains first. Each is returned once."""
        drained: List[Notification] = []
        offline = take_offline_notification(self.state)
        if offline is not None:
            drained.append(offline)
        queue = self.state.temp.seed_notifications
        while queue:
            drained.append(queue.popleft())
        return drained

    # -- persistence ------------------------------------------------------------

    def export_text(self) -> str:
        return export_text(self.state)

    def import_text(self, text: str) -> bool:
        """Replace the running state with an imported save. False if unreadable."""
        try:
            data = import_text(text)
        except InvalidSaveError as e:
            logger.warning("Import rejected: %s", e)
            return False
        state = load_state(data, self.registry, self.config, self.now)
        if state is None:
            logger.warning("Import rejected: unsupported or corrupt save")
            return False
        self._adopt(state)
        logger.info("Imported save")
        return True

    def save(self, path: Optional[Path] = None) -> bool:
        target = path or self.save_path
        if target is None:
            return False
        return save_game(self.state, target, self.now)

    # -- scheduled handlers -------------------------------------------------

    def _auto_buy(self, now: int) -> None:
        run_auto_buy(self.state, now)

    def _autosave(self, now: int) -> None:
        self.save()

    def _clock(self, now: Optional[int]) -> int:
        if now is not None:
            self.now = now
        return self.now


def create_simulation(
    save_path: Optional[Path] = None,
    registry: Optional[Registry] = None,
    config: Optional[BalanceConfig] = None,
    now: Optional[int] = None,
    seed: Optional[int] = None,
) -> Simulation:
    """Load the save at *save_path* (or start fresh) and start the timers."""
    if registry is None:
        registry = load_registry()
    if config is None:
        config = load_balance()
    if now is None:
        now = now_ms()

    state = load_game(save_path, registry, config, now) if save_path is not None else None
    if state is None:
        state = create_default_state(registry, config, now)
        recalc_derived_values(state, now)

    sim = Simulation(state=state, rng=random.Random(seed), save_path=save_path, now=now)
    sim.start(now)
    return sim
