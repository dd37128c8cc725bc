from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple


@dataclass
class ItemDefinition:
    id: str
    name: str
    base_cost: float
    cost_factor: float
    bps: float
    order: int = 0
    unlock_total: float = 0.0
    unlock_items: Dict[str, int] = field(default_factory=dict)
    tier_size: int = 25
    tier_bonus: float = 1.15
    softcap_tier: Optional[int] = None
    softcap_mult: Optional[float] = None


@dataclass
class UpgradeEffect:
    type: str  # global_multiplier | click_multiplier | building_multiplier | building_cost_multiplier | auto_click
    value: float
    targets: Tuple[str, ...] = ()


@dataclass
class UpgradeDefinition:
    id: str
    name: str
    cost: float
    effects: List[UpgradeEffect] = field(default_factory=list)
    requires_total: float = 0.0
    requires_items: Dict[str, int] = field(default_factory=dict)


@dataclass
class AchievementDefinition:
    id: str
    name: str
    reward_multiplier: float = 1.0
    requires_total: float = 0.0
    requires_items: Dict[str, int] = field(default_factory=dict)


@dataclass
class ResearchEffect:
    id: str  # BPC_MULT | BPS_MULT | COST_REDUCE_ALL | CLICK_AUTOMATION | ABILITY_OVERDRIVE_PLUS | ...
    value: float = 0.0
    interval_ms: int = 0
    chance: float = 0.0
    seeds: int = 0


@dataclass
class UnlockCondition:
    type: str  # total_buds | prestige_seeds
    value: float


@dataclass
class ResearchNode:
    id: str
    name: str
    cost_type: str  # buds | seeds
    cost: float
    requires: List[str] = field(default_factory=list)
    effects: List[ResearchEffect] = field(default_factory=list)
    exclusive_group: Optional[str] = None
    unlock_all: List[UnlockCondition] = field(default_factory=list)
    unlock_any: List[UnlockCondition] = field(default_factory=list)


@dataclass
class MilestoneRequirement:
    type: str  # unique_buildings | buildings_at_least | any_building_at_least | unlocked_and_any_at_least
    count: int = 0
    amount: int = 0


@dataclass
class MilestoneBonus:
    type: str  # global | bps | bpc
    value: float


@dataclass
class MilestoneDefinition:
    id: str
    requirement: MilestoneRequirement
    bonuses: List[MilestoneBonus] = field(default_factory=list)
    kickstart_level: int = 0


@dataclass
class KickstartLevel:
    level: int
    duration_ms: int
    bps_mult: float
    bpc_mult: float
    cost_mult: float = 1.0


@dataclass
class AbilityDefinition:
    id: str
    name: str
    duration_sec: float
    cooldown_sec: float
    base_multiplier: float
    applies_to: str  # bps | bpc
    legacy_keys: Tuple[str, ...] = ()


@dataclass
class SynergyDefinition:
    id: str
    seeds: int
    requires_items: Dict[str, int] = field(default_factory=dict)
    requires_research: List[str] = field(default_factory=list)
    requires_upgrades: List[str] = field(default_factory=list)


@dataclass
class EventDefinition:
    id: str
    weight: float
