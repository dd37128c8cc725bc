"""Game state aggregate.

``GameState`` is the single mutable root owned by the host. Everything under
``temp`` is derived by the stats pass or is transient runtime data; it is
never persisted and takes no part in equality.
"""
from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Deque, Dict, List, Optional, Set

from cannacore.amounts import ONE, ZERO
from cannacore.catalog import Registry, load_registry
from cannacore.config import BalanceConfig
from cannacore.store import ResourceStore

SAVE_VERSION = 7

AUTO_BUY_ROI_MIN = 60
AUTO_BUY_ROI_MAX = 600
AUTO_BUY_ROI_DEFAULT = 180
AUTO_BUY_RESERVE_MIN = 0
AUTO_BUY_RESERVE_MAX = 30
AUTO_BUY_RESERVE_DEFAULT = 10

SHOP_SORT_MODES = ("price", "bps", "roi")
SEED_SOURCES = ("event", "click", "synergy", "passive")


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class KickstartState:
    level: int
    ends_at: int


@dataclass
class PrestigeState:
    seeds_banked: int = 0
    multiplier: Decimal = field(default=ONE)
    lifetime_currency: Decimal = field(default=ZERO)
    last_reset_at: int = 0
    # Latched for the current epoch; cleared by a prestige reset.
    milestones_unlocked: Set[str] = field(default_factory=set)
    kickstart: Optional[KickstartState] = None


@dataclass
class AbilityRuntime:
    active: bool = False
    active_until: int = 0
    ready_at: int = 0
    multiplier: float = field(default=1.0, compare=False)


@dataclass
class AutomationConfig:
    auto_buy_enabled: bool = False
    roi_enabled: bool = True
    roi_threshold_seconds: int = AUTO_BUY_ROI_DEFAULT
    reserve_enabled: bool = False
    reserve_percent: int = AUTO_BUY_RESERVE_DEFAULT


@dataclass
class SeedGainEntry:
    time: int
    amount: int
    source: str


@dataclass
class EventCounters:
    spawns: int = 0
    clicks: int = 0
    expired: int = 0
    click_rate: float = 0.0
    last_spawn_at: int = 0
    last_click_at: int = 0


@dataclass
class EventStats:
    total_spawns: int = 0
    total_clicks: int = 0
    total_expired: int = 0
    click_rate: float = 0.0
    last_spawn_at: int = 0
    last_click_at: int = 0
    per_event: Dict[str, EventCounters] = field(default_factory=dict)


@dataclass
class MetaState:
    last_seen_at: int = 0
    last_production_rate_at_save: Decimal = field(default=ZERO)
    seed_gain_history: List[SeedGainEntry] = field(default_factory=list)
    # One-time claims; cleared by a prestige reset.
    synergy_claims: Set[str] = field(default_factory=set)
    last_interaction_at: int = 0
    passive_idle_ms: int = 0
    passive_rolls_done: int = 0
    event_stats: EventStats = field(default_factory=EventStats)


@dataclass
class Preferences:
    locale: str = "en"
    muted: bool = False
    shop_sort_mode: str = "price"
    show_offline_earnings: bool = True


@dataclass
class PassiveSeedConfig:
    interval_ms: int
    chance: float
    seeds: int


@dataclass
class ActiveEvent:
    id: str
    token: str
    spawned_at: int
    expires_at: int
    x: float = 0.5
    y: float = 0.5


@dataclass
class EventEffect:
    id: str
    expires_at: int
    bps_multiplier: Decimal
    bpc_multiplier: Decimal


@dataclass
class MilestoneSummary:
    global_mult: Decimal = field(default=ONE)
    bps_mult: Decimal = field(default=ONE)
    bpc_mult: Decimal = field(default=ONE)
    active_count: int = 0
    highest_kickstart_level: int = 0


@dataclass
class KickstartSnapshot:
    level: int = 0
    active: bool = False
    remaining_ms: int = 0
    ends_at: int = 0
    bps_mult: Decimal = field(default=ONE)
    bpc_mult: Decimal = field(default=ONE)
    cost_mult: Decimal = field(default=ONE)


@dataclass
class OfflineResult:
    gain: Decimal
    duration_ms: int


@dataclass
class Notification:
    kind: str  # offline_gains | seed_awarded | synergy_claimed
    seeds: int = 0
    amount: Decimal = field(default=ZERO)
    source: str = ""
    duration_ms: int = 0


@dataclass
class TempState:
    research_bps_mult: Decimal = field(default=ONE)
    research_bpc_mult: Decimal = field(default=ONE)
    cost_multiplier: Decimal = field(default=ONE)
    building_multipliers: Dict[str, Decimal] = field(default_factory=dict)
    building_cost_multipliers: Dict[str, Decimal] = field(default_factory=dict)
    building_tier_multipliers: Dict[str, Decimal] = field(default_factory=dict)
    total_bps_mult: Decimal = field(default=ONE)
    total_bpc_mult: Decimal = field(default=ONE)
    auto_click_rate: float = 0.0
    ability_power_bonus: float = 0.0
    offline_cap_ms: int = 0
    seed_click_bonus: float = 0.0
    passive_seed: Optional[PassiveSeedConfig] = None
    milestones: MilestoneSummary = field(default_factory=MilestoneSummary)
    kickstart: KickstartSnapshot = field(default_factory=KickstartSnapshot)

    active_event: Optional[ActiveEvent] = None
    event_effect: Optional[EventEffect] = None
    seed_rate_per_hour: float = 0.0
    seed_rate_cap: int = 0
    passive_throttled: bool = False
    passive_progress: float = 0.0
    auto_click_progress: float = 0.0

    offline_result: Optional[OfflineResult] = None
    seed_notifications: Deque[Notification] = field(default_factory=lambda: deque(maxlen=5))


@dataclass
class GameState:
    store: ResourceStore = field(default_factory=ResourceStore)
    production_rate: Decimal = field(default=ZERO)
    click_yield: Decimal = field(default=ONE)
    ownership: Dict[str, int] = field(default_factory=dict)
    upgrades_owned: Set[str] = field(default_factory=set)
    research_owned: List[str] = field(default_factory=list)
    achievements_unlocked: Set[str] = field(default_factory=set)
    prestige: PrestigeState = field(default_factory=PrestigeState)
    abilities: Dict[str, AbilityRuntime] = field(default_factory=dict)
    automation: AutomationConfig = field(default_factory=AutomationConfig)
    meta: MetaState = field(default_factory=MetaState)
    preferences: Preferences = field(default_factory=Preferences)
    created_at: int = 0
    save_version: int = SAVE_VERSION

    temp: TempState = field(default_factory=TempState, repr=False, compare=False)
    registry: Registry = field(default_factory=load_registry, repr=False, compare=False)
    config: BalanceConfig = field(default_factory=BalanceConfig, repr=False, compare=False)

    def owned(self, item_id: str) -> int:
        return self.ownership.get(item_id, 0)

    def harvest(self, amount: Decimal) -> Decimal:
        """Credit produced currency to every running total."""
        gained = self.store.add_currency(amount)
        if gained > ZERO:
            self.prestige.lifetime_currency += gained
        return gained


def default_abilities(registry: Registry, now: int) -> Dict[str, AbilityRuntime]:
    return {a.id: AbilityRuntime(active_until=now, ready_at=now) for a in registry.abilities}


def create_default_state(
    registry: Optional[Registry] = None,
    config: Optional[BalanceConfig] = None,
    now: Optional[int] = None,
) -> GameState:
    if registry is None:
        registry = load_registry()
    if config is None:
        config = BalanceConfig()
    if now is None:
        now = now_ms()
    state = GameState(
        ownership={item_id: 0 for item_id in registry.item_ids},
        prestige=PrestigeState(last_reset_at=now),
        abilities=default_abilities(registry, now),
        meta=MetaState(last_seen_at=now, last_interaction_at=now),
        created_at=now,
        registry=registry,
        config=config,
    )
    state.temp = fresh_temp(config)
    return state


def fresh_temp(config: BalanceConfig) -> TempState:
    temp = TempState(offline_cap_ms=config.offline_cap_ms)
    temp.seed_notifications = deque(maxlen=max(1, config.seed_notification_limit))
    return temp
