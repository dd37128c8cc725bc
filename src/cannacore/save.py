"""Save/load and export/import of game state.

Auto-save: JSON written atomically to a local file (tmp + replace).
Export: base64-JSON of the same blob.
Import: accepts raw JSON or base64-JSON; any known generation is migrated.

A blob that cannot be read is never half-applied: loaders return None and
the caller keeps (or creates) a fresh state.
"""
from __future__ import annotations

import base64
import binascii
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from cannacore.amounts import ONE, amount_to_str, to_amount
from cannacore.catalog import Registry, load_registry
from cannacore.config import BalanceConfig
from cannacore.migrations import upgrade_save
from cannacore.offline import apply_offline_progress
from cannacore.prestige import update_prestige_multiplier
from cannacore.state import (
    SAVE_VERSION,
    AbilityRuntime,
    AutomationConfig,
    EventCounters,
    EventStats,
    GameState,
    KickstartState,
    MetaState,
    Preferences,
    PrestigeState,
    SeedGainEntry,
    create_default_state,
    now_ms,
)
from cannacore.stats import recalc_derived_values
from cannacore.store import ResourceStore

logger = logging.getLogger(__name__)


class InvalidSaveError(ValueError):
    """Import text that is neither a save blob nor base64 of one."""


def _event_counters_dict(counters: EventCounters) -> Dict[str, Any]:
    return {
        "spawns": counters.spawns,
        "clicks": counters.clicks,
        "expired": counters.expired,
        "click_rate": counters.click_rate,
        "last_spawn_at": counters.last_spawn_at,
        "last_click_at": counters.last_click_at,
    }


def encode_state(state: GameState) -> Dict[str, Any]:
    """Build a JSON-serializable current-generation blob."""
    prestige = state.prestige
    meta = state.meta
    stats = meta.event_stats
    kickstart = prestige.kickstart
    return {
        "version": SAVE_VERSION,
        "currency": amount_to_str(state.store.currency),
        "total_harvested": amount_to_str(state.store.total_harvested),
        "lifetime_currency": amount_to_str(state.store.lifetime_currency),
        "production_rate": amount_to_str(state.production_rate),
        "click_yield": amount_to_str(state.click_yield),
        "ownership": dict(state.ownership),
        "upgrades": sorted(state.upgrades_owned),
        "achievements": sorted(state.achievements_unlocked),
        "research_owned": list(state.research_owned),
        "prestige": {
            "seeds_banked": prestige.seeds_banked,
            "multiplier": amount_to_str(prestige.multiplier),
            "lifetime_currency": amount_to_str(prestige.lifetime_currency),
            "last_reset_at": prestige.last_reset_at,
            "milestones": sorted(prestige.milestones_unlocked),
            "kickstart": (
                {"level": kickstart.level, "ends_at": kickstart.ends_at} if kickstart is not None else None
            ),
        },
        "abilities": {
            ability_id: {
                "active": runtime.active,
                "active_until": runtime.active_until,
                "ready_at": runtime.ready_at,
            }
            for ability_id, runtime in state.abilities.items()
        },
        "automation": {
            "auto_buy_enabled": state.automation.auto_buy_enabled,
            "roi_enabled": state.automation.roi_enabled,
            "roi_threshold_seconds": state.automation.roi_threshold_seconds,
            "reserve_enabled": state.automation.reserve_enabled,
            "reserve_percent": state.automation.reserve_percent,
        },
        "preferences": {
            "locale": state.preferences.locale,
            "muted": state.preferences.muted,
            "shop_sort_mode": state.preferences.shop_sort_mode,
        },
        "settings": {"show_offline_earnings": state.preferences.show_offline_earnings},
        "meta": {
            "last_seen_at": meta.last_seen_at,
            "last_production_rate_at_save": amount_to_str(meta.last_production_rate_at_save),
            "seed_history": [
                {"time": e.time, "amount": e.amount, "source": e.source} for e in meta.seed_gain_history
            ],
            "synergy_claims": sorted(meta.synergy_claims),
            "last_interaction_at": meta.last_interaction_at,
            "passive_idle_ms": meta.passive_idle_ms,
            "passive_rolls_done": meta.passive_rolls_done,
            "event_stats": {
                "total_spawns": stats.total_spawns,
                "total_clicks": stats.total_clicks,
                "total_expired": stats.total_expired,
                "click_rate": stats.click_rate,
                "last_spawn_at": stats.last_spawn_at,
                "last_click_at": stats.last_click_at,
                "per_event": {k: _event_counters_dict(v) for k, v in sorted(stats.per_event.items())},
            },
        },
        "created_at": state.created_at,
    }


def decode_state(
    data: Dict[str, Any],
    registry: Optional[Registry] = None,
    config: Optional[BalanceConfig] = None,
) -> GameState:
    """Rebuild a GameState from a current-generation blob. Performs no migration."""
    if registry is None:
        registry = load_registry()
    state = create_default_state(registry, config, now=int(data.get("created_at", 0)))

    state.store = ResourceStore(
        currency=to_amount(data["currency"]),
        total_harvested=to_amount(data["total_harvested"]),
        lifetime_currency=to_amount(data["lifetime_currency"]),
    )
    state.production_rate = to_amount(data.get("production_rate"))
    state.click_yield = to_amount(data.get("click_yield"), ONE)
    state.ownership.update({str(k): int(v) for k, v in data["ownership"].items()})
    state.upgrades_owned = set(data["upgrades"])
    state.achievements_unlocked = set(data["achievements"])
    state.research_owned = list(data["research_owned"])

    prestige = data["prestige"]
    kickstart = prestige.get("kickstart")
    state.prestige = PrestigeState(
        seeds_banked=int(prestige["seeds_banked"]),
        multiplier=to_amount(prestige["multiplier"], ONE),
        lifetime_currency=to_amount(prestige["lifetime_currency"]),
        last_reset_at=int(prestige["last_reset_at"]),
        milestones_unlocked=set(prestige.get("milestones", [])),
        kickstart=(
            KickstartState(level=int(kickstart["level"]), ends_at=int(kickstart["ends_at"]))
            if kickstart else None
        ),
    )
    update_prestige_multiplier(state)

    for ability_id, entry in data["abilities"].items():
        state.abilities[ability_id] = AbilityRuntime(
            active=bool(entry["active"]),
            active_until=int(entry["active_until"]),
            ready_at=int(entry["ready_at"]),
        )

    state.automation = AutomationConfig(**data["automation"])
    preferences = data["preferences"]
    state.preferences = Preferences(
        locale=preferences["locale"],
        muted=bool(preferences["muted"]),
        shop_sort_mode=preferences["shop_sort_mode"],
        show_offline_earnings=bool(data["settings"]["show_offline_earnings"]),
    )

    meta = data["meta"]
    stats = meta["event_stats"]
    state.meta = MetaState(
        last_seen_at=int(meta["last_seen_at"]),
        last_production_rate_at_save=to_amount(meta["last_production_rate_at_save"]),
        seed_gain_history=[
            SeedGainEntry(time=int(e["time"]), amount=int(e["amount"]), source=str(e["source"]))
            for e in meta["seed_history"]
        ],
        synergy_claims=set(meta["synergy_claims"]),
        last_interaction_at=int(meta["last_interaction_at"]),
        passive_idle_ms=int(meta["passive_idle_ms"]),
        passive_rolls_done=int(meta["passive_rolls_done"]),
        event_stats=EventStats(
            total_spawns=int(stats["total_spawns"]),
            total_clicks=int(stats["total_clicks"]),
            total_expired=int(stats["total_expired"]),
            click_rate=float(stats["click_rate"]),
            last_spawn_at=int(stats["last_spawn_at"]),
            last_click_at=int(stats["last_click_at"]),
            per_event={k: EventCounters(**v) for k, v in stats["per_event"].items()},
        ),
    )
    state.created_at = int(data["created_at"])
    state.save_version = SAVE_VERSION
    return state


def load_state(
    data: Any,
    registry: Optional[Registry] = None,
    config: Optional[BalanceConfig] = None,
    now: Optional[int] = None,
) -> Optional[GameState]:
    """Migrate, decode, recalculate and credit offline time. None if unreadable."""
    if now is None:
        now = now_ms()
    if registry is None:
        registry = load_registry()
    blob = upgrade_save(data, registry, now)
    if blob is None:
        return None
    try:
        state = decode_state(blob, registry, config)
    except (KeyError, TypeError, ValueError) as e:
        logger.warning("Error restoring save data: %s", e)
        return None
    recalc_derived_values(state, now)
    apply_offline_progress(state, now)
    state.meta.last_seen_at = now
    return state


def export_text(state: GameState) -> str:
    raw = json.dumps(encode_state(state), separators=(",", ":"))
    return base64.b64encode(raw.encode("utf-8")).decode("ascii")


def import_text(encoded: str) -> Dict[str, Any]:
    """Parse import text as raw JSON or base64-JSON.

    Raises InvalidSaveError when neither yields a dict carrying a version.
    The blob is returned unmigrated.
    """
    text = encoded.strip() if isinstance(encoded, str) else ""
    if not text:
        raise InvalidSaveError("empty import text")

    try:
        data = json.loads(text)
        if isinstance(data, dict) and "version" in data:
            return data
    except RecursionError as e:
        raise InvalidSaveError("save blob nested too deeply") from e
    except (json.JSONDecodeError, ValueError):
        pass

    try:
        raw = base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidSaveError(f"not base64: {e}") from e
    try:
        data = json.loads(raw.decode("utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError, RecursionError) as e:
        raise InvalidSaveError(f"not a save blob: {e}") from e
    if not isinstance(data, dict) or "version" not in data:
        raise InvalidSaveError("save blob has no version")
    return data


def stamp_for_save(state: GameState, now: int) -> None:
    state.meta.last_seen_at = now
    state.meta.last_production_rate_at_save = state.production_rate


def save_game(state: GameState, path: Path, now: Optional[int] = None) -> bool:
    """Auto-save: write JSON atomically (tmp + replace)."""
    stamp_for_save(state, now if now is not None else now_ms())
    data = encode_state(state)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        tmp_path.replace(path)
    except OSError as e:
        logger.warning("Error saving game to %s: %s", path, e)
        return False
    logger.debug("Saved game to %s", path)
    return True


def load_game(
    path: Path,
    registry: Optional[Registry] = None,
    config: Optional[BalanceConfig] = None,
    now: Optional[int] = None,
) -> Optional[GameState]:
    """Auto-load: read JSON and restore. None on a missing or corrupt file."""
    if not path.exists():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError, UnicodeDecodeError, RecursionError) as e:
        logger.warning("Error loading save file %s: %s", path, e)
        return None
    state = load_state(data, registry, config, now)
    if state is None:
        logger.warning("Save file %s is not a readable save; starting fresh", path)
    return state
