"""Content registry: buildings, upgrades, achievements, research, milestones,
kickstart levels, abilities, seed synergies and world events.

Everything is read from ``data/content.json`` next to this module. The
registry is immutable after loading and is shared by every component.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional

from cannacore.types import (
    AbilityDefinition,
    AchievementDefinition,
    EventDefinition,
    ItemDefinition,
    KickstartLevel,
    MilestoneBonus,
    MilestoneDefinition,
    MilestoneRequirement,
    ResearchEffect,
    ResearchNode,
    SynergyDefinition,
    UnlockCondition,
    UpgradeDefinition,
    UpgradeEffect,
)

logger = logging.getLogger(__name__)


class UnknownContentError(KeyError):
    """A content id that is not part of the registry was referenced."""


def default_content_path() -> Path:
    return Path(__file__).resolve().parent / "data" / "content.json"


@dataclass
class Registry:
    items: List[ItemDefinition] = field(default_factory=list)
    upgrades: List[UpgradeDefinition] = field(default_factory=list)
    achievements: List[AchievementDefinition] = field(default_factory=list)
    research: List[ResearchNode] = field(default_factory=list)
    milestones: List[MilestoneDefinition] = field(default_factory=list)
    kickstart_levels: Dict[int, KickstartLevel] = field(default_factory=dict)
    abilities: List[AbilityDefinition] = field(default_factory=list)
    synergies: List[SynergyDefinition] = field(default_factory=list)
    events: List[EventDefinition] = field(default_factory=list)

    def __post_init__(self) -> None:
        self._items = {d.id: d for d in self.items}
        self._upgrades = {d.id: d for d in self.upgrades}
        self._research = {d.id: d for d in self.research}
        self._abilities = {d.id: d for d in self.abilities}

    def item(self, item_id: str) -> ItemDefinition:
        try:
            return self._items[item_id]
        except KeyError:
            raise UnknownContentError(item_id) from None

    def find_item(self, item_id: str) -> Optional[ItemDefinition]:
        return self._items.get(item_id)

    def find_upgrade(self, upgrade_id: str) -> Optional[UpgradeDefinition]:
        return self._upgrades.get(upgrade_id)

    def find_research(self, research_id: str) -> Optional[ResearchNode]:
        return self._research.get(research_id)

    def ability(self, ability_id: str) -> AbilityDefinition:
        try:
            return self._abilities[ability_id]
        except KeyError:
            raise UnknownContentError(ability_id) from None

    def find_ability(self, ability_id: str) -> Optional[AbilityDefinition]:
        return self._abilities.get(ability_id)

    def kickstart(self, level: int) -> Optional[KickstartLevel]:
        return self.kickstart_levels.get(level)

    @property
    def item_ids(self) -> List[str]:
        return [d.id for d in self.items]

    @property
    def upgrade_ids(self) -> List[str]:
        return [d.id for d in self.upgrades]

    @property
    def achievement_ids(self) -> List[str]:
        return [d.id for d in self.achievements]

    @property
    def research_ids(self) -> List[str]:
        return [d.id for d in self.research]

    @property
    def milestone_ids(self) -> List[str]:
        return [d.id for d in self.milestones]

    @property
    def ability_ids(self) -> List[str]:
        return [d.id for d in self.abilities]

    @property
    def synergy_ids(self) -> List[str]:
        return [d.id for d in self.synergies]

    @property
    def event_ids(self) -> List[str]:
        return [d.id for d in self.events]


def _requirement_items(raw: dict) -> Dict[str, int]:
    return {str(k): int(v) for k, v in (raw.get("items") or {}).items()}


def _parse_item(order: int, entry: dict) -> ItemDefinition:
    unlock = entry.get("unlock") or {}
    return ItemDefinition(
        id=entry["id"],
        name=entry.get("name", entry["id"]),
        base_cost=float(entry["base_cost"]),
        cost_factor=float(entry["cost_factor"]),
        bps=float(entry["bps"]),
        order=order,
        unlock_total=float(unlock.get("total", 0.0)),
        unlock_items=_requirement_items(unlock),
        tier_size=int(entry.get("tier_size", 25)),
        tier_bonus=float(entry.get("tier_bonus", 1.15)),
        softcap_tier=entry.get("softcap_tier"),
        softcap_mult=entry.get("softcap_mult"),
    )


def _parse_upgrade(entry: dict) -> UpgradeDefinition:
    requires = entry.get("requires") or {}
    effects = [
        UpgradeEffect(
            type=e["type"],
            value=float(e.get("value", 1.0)),
            targets=tuple(e.get("targets", ())),
        )
        for e in entry.get("effects", [])
    ]
    return UpgradeDefinition(
        id=entry["id"],
        name=entry.get("name", entry["id"]),
        cost=float(entry["cost"]),
        effects=effects,
        requires_total=float(requires.get("total", 0.0)),
        requires_items=_requirement_items(requires),
    )


def _parse_achievement(entry: dict) -> AchievementDefinition:
    requires = entry.get("requires") or {}
    return AchievementDefinition(
        id=entry["id"],
        name=entry.get("name", entry["id"]),
        reward_multiplier=float(entry.get("reward_multiplier", 1.0)),
        requires_total=float(requires.get("total", 0.0)),
        requires_items=_requirement_items(requires),
    )


def _parse_conditions(raw: list) -> List[UnlockCondition]:
    return [UnlockCondition(type=c["type"], value=float(c["value"])) for c in raw or []]


def _parse_research(entry: dict) -> ResearchNode:
    effects = [
        ResearchEffect(
            id=e["id"],
            value=float(e.get("value", 0.0)),
            interval_ms=int(e.get("interval_ms", 0)),
            chance=float(e.get("chance", 0.0)),
            seeds=int(e.get("seeds", 0)),
        )
        for e in entry.get("effects", [])
    ]
    return ResearchNode(
        id=entry["id"],
        name=entry.get("name", entry["id"]),
        cost_type=entry.get("cost_type", "buds"),
        cost=float(entry["cost"]),
        requires=list(entry.get("requires", [])),
        effects=effects,
        exclusive_group=entry.get("exclusive_group"),
        unlock_all=_parse_conditions(entry.get("unlock_all")),
        unlock_any=_parse_conditions(entry.get("unlock_any")),
    )


def _parse_milestone(entry: dict) -> MilestoneDefinition:
    req = entry["requirement"]
    return MilestoneDefinition(
        id=entry["id"],
        requirement=MilestoneRequirement(
            type=req["type"],
            count=int(req.get("count", 0)),
            amount=int(req.get("amount", 0)),
        ),
        bonuses=[MilestoneBonus(type=b["type"], value=float(b["value"])) for b in entry.get("bonuses", [])],
        kickstart_level=int(entry.get("kickstart_level", 0)),
    )


def parse_registry(raw: dict) -> Registry:
    return Registry(
        items=[_parse_item(i, e) for i, e in enumerate(raw.get("items", []))],
        upgrades=[_parse_upgrade(e) for e in raw.get("upgrades", [])],
        achievements=[_parse_achievement(e) for e in raw.get("achievements", [])],
        research=[_parse_research(e) for e in raw.get("research", [])],
        milestones=[_parse_milestone(e) for e in raw.get("milestones", [])],
        kickstart_levels={
            int(e["level"]): KickstartLevel(
                level=int(e["level"]),
                duration_ms=int(e["duration_ms"]),
                bps_mult=float(e["bps_mult"]),
                bpc_mult=float(e["bpc_mult"]),
                cost_mult=float(e.get("cost_mult", 1.0)),
            )
            for e in raw.get("kickstart_levels", [])
        },
        abilities=[
            AbilityDefinition(
                id=e["id"],
                name=e.get("name", e["id"]),
                duration_sec=float(e["duration_sec"]),
                cooldown_sec=float(e["cooldown_sec"]),
                base_multiplier=float(e["base_multiplier"]),
                applies_to=e["applies_to"],
                legacy_keys=tuple(e.get("legacy_keys", ())),
            )
            for e in raw.get("abilities", [])
        ],
        synergies=[
            SynergyDefinition(
                id=e["id"],
                seeds=int(e["seeds"]),
                requires_items=_requirement_items(e.get("requires") or {}),
                requires_research=list((e.get("requires") or {}).get("research", [])),
                requires_upgrades=list((e.get("requires") or {}).get("upgrades", [])),
            )
            for e in raw.get("synergies", [])
        ],
        events=[EventDefinition(id=e["id"], weight=float(e["weight"])) for e in raw.get("events", [])],
    )


@lru_cache(maxsize=None)
def _load_cached(path: Path) -> Registry:
    raw = json.loads(path.read_text(encoding="utf-8"))
    registry = parse_registry(raw)
    logger.debug(
        "Loaded content from %s: %d items, %d upgrades, %d research nodes",
        path, len(registry.items), len(registry.upgrades), len(registry.research),
    )
    return registry


def load_registry(path: Optional[Path] = None) -> Registry:
    if path is None:
        path = default_content_path()
    return _load_cached(path.resolve())
