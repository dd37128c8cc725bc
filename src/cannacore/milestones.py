"""Building milestones and the kickstart super-buff they unlock.

Milestones are evaluated on every stats pass. A milestone whose requirement
holds is latched into ``prestige.milestones_unlocked`` and stays there for
the rest of the epoch, even if the building counts later drop. Each latched
milestone contributes ``1 + value`` to its bonus layer (global, bps or bpc).

Milestones m5 to m10 carry a kickstart level. When the epoch ends the
highest such level becomes a timed multiplier for the next epoch.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

from cannacore.amounts import ONE, to_amount
from cannacore.state import GameState, KickstartSnapshot, KickstartState, MilestoneSummary
from cannacore.types import MilestoneDefinition, MilestoneRequirement
from cannacore.upgrades import item_unlocked


@dataclass
class MilestoneProgress:
    id: str
    definition: MilestoneDefinition
    achieved: bool
    progress: float
    current: int
    target: int


def _owned_counts(state: GameState) -> List[int]:
    return [state.owned(item.id) for item in state.registry.items]


def _evaluate(state: GameState, requirement: MilestoneRequirement) -> Tuple[bool, float, int, int]:
    """Return (completed, progress, current, target)."""
    counts = _owned_counts(state)
    best = max(counts, default=0)
    if requirement.type == "unique_buildings":
        owned = sum(1 for c in counts if c > 0)
        target = max(1, requirement.count)
        return owned >= target, owned / target, owned, target
    if requirement.type == "buildings_at_least":
        threshold = max(0, requirement.amount)
        satisfied = sum(1 for c in counts if c >= threshold)
        target = max(1, requirement.count)
        return satisfied >= target, satisfied / target, satisfied, target
    if requirement.type == "any_building_at_least":
        target = max(1, requirement.amount)
        return best >= target, best / target, best, target
    if requirement.type == "unlocked_and_any_at_least":
        unlocked = sum(1 for item in state.registry.items if item_unlocked(state, item))
        total = max(1, len(state.registry.items))
        target = max(1, requirement.amount)
        progress = min(unlocked / total, best / target)
        return unlocked >= total and best >= target, progress, best, target
    return False, 0.0, 0, 1


def compute_milestones(state: GameState) -> Tuple[List[MilestoneProgress], MilestoneSummary]:
    """Latch newly satisfied milestones and summarise their bonuses."""
    latched = state.prestige.milestones_unlocked
    summary = MilestoneSummary()
    progress: List[MilestoneProgress] = []

    for definition in state.registry.milestones:
        completed, fraction, current, target = _evaluate(state, definition.requirement)
        if completed:
            latched.add(definition.id)
        achieved = definition.id in latched
        progress.append(
            MilestoneProgress(
                id=definition.id,
                definition=definition,
                achieved=achieved,
                progress=1.0 if achieved else max(0.0, min(1.0, fraction)),
                current=target if achieved else current,
                target=target,
            )
        )
        if not achieved:
            continue
        summary.active_count += 1
        for bonus in definition.bonuses:
            factor = ONE + to_amount(max(0.0, bonus.value))
            if bonus.type == "global":
                summary.global_mult *= factor
            elif bonus.type == "bps":
                summary.bps_mult *= factor
            elif bonus.type == "bpc":
                summary.bpc_mult *= factor
        if definition.kickstart_level:
            summary.highest_kickstart_level = max(summary.highest_kickstart_level, definition.kickstart_level)

    return progress, summary


def activate_kickstart(state: GameState, level: int, now: int) -> Optional[KickstartState]:
    config = state.registry.kickstart(level)
    if config is None:
        state.prestige.kickstart = None
        return None
    state.prestige.kickstart = KickstartState(level=config.level, ends_at=now + config.duration_ms)
    return state.prestige.kickstart


def resolve_kickstart(state: GameState, now: int) -> KickstartSnapshot:
    """Snapshot the running kickstart, clearing it once expired."""
    runtime = state.prestige.kickstart
    if runtime is None:
        return KickstartSnapshot()
    config = state.registry.kickstart(runtime.level)
    if config is None or now >= runtime.ends_at:
        state.prestige.kickstart = None
        return KickstartSnapshot()
    return KickstartSnapshot(
        level=config.level,
        active=True,
        remaining_ms=max(0, runtime.ends_at - now),
        ends_at=runtime.ends_at,
        bps_mult=to_amount(config.bps_mult, ONE),
        bpc_mult=to_amount(config.bpc_mult, ONE),
        cost_mult=to_amount(config.cost_mult, ONE),
    )


def clear_expired_kickstart(state: GameState, now: int) -> bool:
    runtime = state.prestige.kickstart
    if runtime is not None and now >= runtime.ends_at:
        state.prestige.kickstart = None
        return True
    return False


def milestone_progress(state: GameState) -> List[MilestoneProgress]:
    progress, _ = compute_milestones(state)
    return progress
