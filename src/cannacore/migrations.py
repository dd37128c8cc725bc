"""Save format generations and the upgrade chain between them.

Every step takes a blob of generation N and returns a new blob of
generation N+1; the input is never mutated. Steps only add what their
generation introduced, and ``normalise_current`` then sanitises the final
generation-7 shape as a whole. Running the chain on a current blob is
therefore the same as normalising it, and normalising twice changes
nothing.

  1  currency totals, ownership, upgrades, achievements, time, locale, muted
  2  + research_owned, prestige block, abilities, last_seen_at
  3  + preferences, automation
  4  + settings, meta (last_seen_at, last_production_rate_at_save, seed_history)
  5  meta + synergy_claims, last_interaction_at, passive counters
  6  prestige + milestones, kickstart
  7  meta + event_stats
"""
from __future__ import annotations

import copy
import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional

from cannacore.amounts import ZERO, amount_to_str, parse_int, to_amount
from cannacore.catalog import Registry, load_registry
from cannacore.state import (
    AUTO_BUY_RESERVE_DEFAULT,
    AUTO_BUY_RESERVE_MAX,
    AUTO_BUY_RESERVE_MIN,
    AUTO_BUY_ROI_DEFAULT,
    AUTO_BUY_ROI_MAX,
    AUTO_BUY_ROI_MIN,
    SAVE_VERSION,
    SEED_SOURCES,
    SHOP_SORT_MODES,
    now_ms,
)

logger = logging.getLogger(__name__)

SEED_HISTORY_LIMIT = 200


@dataclass
class MigrationContext:
    registry: Registry
    now: int


Blob = Dict[str, Any]
Step = Callable[[Blob, MigrationContext], Blob]


# -- coercion helpers ---------------------------------------------------------

def _section(data: Blob, key: str) -> Blob:
    value = data.get(key)
    return value if isinstance(value, dict) else {}


def _bool(value: Any, default: bool) -> bool:
    return value if isinstance(value, bool) else default


def _timestamp(value: Any, default: int) -> int:
    return parse_int(value, default, minimum=0)


def _count(value: Any, default: int = 0) -> int:
    return parse_int(value, default, minimum=0)


def _amount(value: Any, default: str = "0") -> str:
    amount = to_amount(value, to_amount(default))
    if amount < ZERO:
        amount = ZERO
    return amount_to_str(amount)


def _clamp_round(value: Any, low: int, high: int, default: int) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if isinstance(value, float) and not math.isfinite(value):
        return default
    return int(min(high, max(low, math.floor(value + 0.5))))


def _rate(value: Any, default: float = 0.0) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if isinstance(value, float) and not math.isfinite(value):
        return default
    return float(min(1.0, max(0.0, value)))


def _id_set(value: Any, known: Iterable[str]) -> List[str]:
    """Accept a list of ids or an ``{id: true}`` map; keep known ids only."""
    allowed = set(known)
    if isinstance(value, dict):
        raw = [k for k, v in value.items() if v is True]
    elif isinstance(value, list):
        raw = value
    else:
        raw = []
    return sorted({v for v in raw if isinstance(v, str) and v in allowed})


def _ordered_ids(value: Any, known: Iterable[str]) -> List[str]:
    allowed = set(known)
    result: List[str] = []
    if not isinstance(value, list):
        return result
    for entry in value:
        if isinstance(entry, str) and entry in allowed and entry not in result:
            result.append(entry)
    return result


# -- section normalisers --------------------------------------------------------

def normalise_ownership(value: Any, registry: Registry) -> Dict[str, int]:
    raw = value if isinstance(value, dict) else {}
    return {item_id: _count(raw.get(item_id)) for item_id in registry.item_ids}


def normalise_abilities(value: Any, registry: Registry, now: int) -> Blob:
    raw = value if isinstance(value, dict) else {}
    result: Blob = {}
    for ability in registry.abilities:
        entry = raw.get(ability.id)
        if not isinstance(entry, dict):
            entry = next(
                (raw[k] for k in ability.legacy_keys if isinstance(raw.get(k), dict)),
                {},
            )
        # Older generations stored the end of the active window as ends_at.
        until = entry.get("active_until", entry.get("ends_at"))
        result[ability.id] = {
            "active": _bool(entry.get("active"), False),
            "active_until": _timestamp(until, now),
            "ready_at": _timestamp(entry.get("ready_at"), now),
        }
    return result


def normalise_kickstart(value: Any, registry: Registry, now: int) -> Optional[Blob]:
    if not isinstance(value, dict):
        return None
    level = parse_int(value.get("level"), 0, minimum=None)
    config = registry.kickstart(level) if level >= 1 else None
    if config is None:
        return None
    ends_at = _timestamp(value.get("ends_at"), 0)
    if ends_at <= now:
        return None
    return {"level": config.level, "ends_at": ends_at}


def normalise_prestige(value: Any, total_harvested: str, registry: Registry, now: int) -> Blob:
    raw = value if isinstance(value, dict) else {}
    return {
        "seeds_banked": _count(raw.get("seeds_banked")),
        "multiplier": _amount(raw.get("multiplier"), "1"),
        "lifetime_currency": _amount(raw.get("lifetime_currency"), total_harvested),
        "last_reset_at": _timestamp(raw.get("last_reset_at"), now),
        "milestones": _id_set(raw.get("milestones"), registry.milestone_ids),
        "kickstart": normalise_kickstart(raw.get("kickstart"), registry, now),
    }


def normalise_automation(value: Any) -> Blob:
    raw = value if isinstance(value, dict) else {}
    return {
        "auto_buy_enabled": _bool(raw.get("auto_buy_enabled"), False),
        "roi_enabled": _bool(raw.get("roi_enabled"), True),
        "roi_threshold_seconds": _clamp_round(
            raw.get("roi_threshold_seconds"), AUTO_BUY_ROI_MIN, AUTO_BUY_ROI_MAX, AUTO_BUY_ROI_DEFAULT
        ),
        "reserve_enabled": _bool(raw.get("reserve_enabled"), False),
        "reserve_percent": _clamp_round(
            raw.get("reserve_percent"), AUTO_BUY_RESERVE_MIN, AUTO_BUY_RESERVE_MAX, AUTO_BUY_RESERVE_DEFAULT
        ),
    }


def normalise_preferences(value: Any) -> Blob:
    raw = value if isinstance(value, dict) else {}
    locale = raw.get("locale")
    mode = raw.get("shop_sort_mode")
    return {
        "locale": locale if isinstance(locale, str) and locale else "en",
        "muted": _bool(raw.get("muted"), False),
        "shop_sort_mode": mode if mode in SHOP_SORT_MODES else "price",
    }


def normalise_settings(value: Any) -> Blob:
    raw = value if isinstance(value, dict) else {}
    return {"show_offline_earnings": _bool(raw.get("show_offline_earnings"), True)}


def normalise_seed_history(value: Any) -> List[Blob]:
    history: List[Blob] = []
    for entry in value if isinstance(value, list) else []:
        if not isinstance(entry, dict):
            continue
        time = _timestamp(entry.get("time"), 0)
        amount = _count(entry.get("amount"))
        if time <= 0 or amount <= 0:
            continue
        source = entry.get("source")
        history.append({
            "time": time,
            "amount": amount,
            "source": source if source in SEED_SOURCES else "event",
        })
    return history[-SEED_HISTORY_LIMIT:]


def _event_counters(value: Any) -> Blob:
    raw = value if isinstance(value, dict) else {}
    return {
        "spawns": _count(raw.get("spawns")),
        "clicks": _count(raw.get("clicks")),
        "expired": _count(raw.get("expired")),
        "click_rate": _rate(raw.get("click_rate")),
        "last_spawn_at": _timestamp(raw.get("last_spawn_at"), 0),
        "last_click_at": _timestamp(raw.get("last_click_at"), 0),
    }


def normalise_event_stats(value: Any, registry: Registry, last_seen: int) -> Blob:
    raw = value if isinstance(value, dict) else {}
    per_event_raw = raw.get("per_event") if isinstance(raw.get("per_event"), dict) else {}
    known = set(registry.event_ids)
    return {
        "total_spawns": _count(raw.get("total_spawns")),
        "total_clicks": _count(raw.get("total_clicks")),
        "total_expired": _count(raw.get("total_expired")),
        "click_rate": _rate(raw.get("click_rate")),
        "last_spawn_at": _timestamp(raw.get("last_spawn_at"), last_seen),
        "last_click_at": _timestamp(raw.get("last_click_at"), 0),
        "per_event": {
            key: _event_counters(entry)
            for key, entry in sorted(per_event_raw.items())
            if key in known and isinstance(entry, dict)
        },
    }


def normalise_meta(value: Any, fallback_last_seen: Optional[int], registry: Registry, now: int) -> Blob:
    raw = value if isinstance(value, dict) else {}
    last_seen = _timestamp(raw.get("last_seen_at"), fallback_last_seen or now)
    if last_seen <= 0:
        last_seen = now
    return {
        "last_seen_at": last_seen,
        "last_production_rate_at_save": _amount(raw.get("last_production_rate_at_save"), "0"),
        "seed_history": normalise_seed_history(raw.get("seed_history")),
        "synergy_claims": _id_set(raw.get("synergy_claims"), registry.synergy_ids),
        "last_interaction_at": _timestamp(raw.get("last_interaction_at"), last_seen),
        "passive_idle_ms": _count(raw.get("passive_idle_ms")),
        "passive_rolls_done": _count(raw.get("passive_rolls_done")),
        "event_stats": normalise_event_stats(raw.get("event_stats"), registry, last_seen),
    }


# -- generation steps -----------------------------------------------------------

def migrate_v1_to_v2(data: Blob, ctx: MigrationContext) -> Blob:
    result = copy.deepcopy(data)
    time = _timestamp(data.get("time"), ctx.now)
    total = _amount(data.get("total_harvested"))
    result["version"] = 2
    result["research_owned"] = []
    result["prestige"] = {
        "seeds_banked": 0,
        "multiplier": "1",
        "lifetime_currency": total,
        "last_reset_at": time,
    }
    result["abilities"] = normalise_abilities(data.get("abilities"), ctx.registry, ctx.now)
    result["last_seen_at"] = time
    return result


def migrate_v2_to_v3(data: Blob, ctx: MigrationContext) -> Blob:
    result = copy.deepcopy(data)
    result["version"] = 3
    preferences = dict(_section(data, "preferences"))
    # Locale and mute used to live at the top level.
    preferences.setdefault("locale", data.get("locale"))
    preferences.setdefault("muted", data.get("muted"))
    result.pop("locale", None)
    result.pop("muted", None)
    result["preferences"] = normalise_preferences(preferences)
    result["automation"] = normalise_automation(data.get("automation"))
    result["research_owned"] = _ordered_ids(data.get("research_owned"), ctx.registry.research_ids)
    return result


def migrate_v3_to_v4(data: Blob, ctx: MigrationContext) -> Blob:
    result = copy.deepcopy(data)
    result["version"] = 4
    result["settings"] = normalise_settings(data.get("settings"))
    last_seen = _timestamp(data.get("last_seen_at"), _timestamp(data.get("time"), ctx.now))
    meta = dict(_section(data, "meta"))
    meta.setdefault("last_seen_at", last_seen)
    meta.setdefault("last_production_rate_at_save", data.get("production_rate", "0"))
    meta.setdefault("seed_history", [])
    meta["seed_history"] = normalise_seed_history(meta.get("seed_history"))
    result["meta"] = meta
    result.pop("last_seen_at", None)
    return result


def migrate_v4_to_v5(data: Blob, ctx: MigrationContext) -> Blob:
    result = copy.deepcopy(data)
    result["version"] = 5
    meta = dict(_section(data, "meta"))
    meta["synergy_claims"] = _id_set(meta.get("synergy_claims"), ctx.registry.synergy_ids)
    meta.setdefault("last_interaction_at", _timestamp(meta.get("last_seen_at"), ctx.now))
    meta.setdefault("passive_idle_ms", 0)
    meta.setdefault("passive_rolls_done", 0)
    result["meta"] = meta
    return result


def migrate_v5_to_v6(data: Blob, ctx: MigrationContext) -> Blob:
    result = copy.deepcopy(data)
    result["version"] = 6
    prestige = dict(_section(data, "prestige"))
    prestige["milestones"] = _id_set(prestige.get("milestones"), ctx.registry.milestone_ids)
    prestige["kickstart"] = normalise_kickstart(prestige.get("kickstart"), ctx.registry, ctx.now)
    result["prestige"] = prestige
    return result


def migrate_v6_to_v7(data: Blob, ctx: MigrationContext) -> Blob:
    result = copy.deepcopy(data)
    result["version"] = 7
    meta = dict(_section(data, "meta"))
    last_seen = _timestamp(meta.get("last_seen_at"), ctx.now)
    meta["event_stats"] = normalise_event_stats(meta.get("event_stats"), ctx.registry, last_seen)
    result["meta"] = meta
    return result


MIGRATIONS: Dict[int, Step] = {
    1: migrate_v1_to_v2,
    2: migrate_v2_to_v3,
    3: migrate_v3_to_v4,
    4: migrate_v4_to_v5,
    5: migrate_v5_to_v6,
    6: migrate_v6_to_v7,
}


def normalise_current(data: Blob, registry: Registry, now: int) -> Blob:
    """Sanitise a generation-7 blob into its canonical form."""
    total = _amount(data.get("total_harvested"))
    fallback_seen = data.get("last_seen_at", data.get("time"))
    meta = normalise_meta(
        data.get("meta"),
        _timestamp(fallback_seen, now) if fallback_seen is not None else None,
        registry,
        now,
    )
    created_at = _timestamp(data.get("created_at"), _timestamp(data.get("time"), meta["last_seen_at"]))
    return {
        "version": SAVE_VERSION,
        "currency": _amount(data.get("currency")),
        "total_harvested": total,
        "lifetime_currency": _amount(data.get("lifetime_currency"), total),
        "production_rate": _amount(data.get("production_rate")),
        "click_yield": _amount(data.get("click_yield"), "1"),
        "ownership": normalise_ownership(data.get("ownership"), registry),
        "upgrades": _id_set(data.get("upgrades"), registry.upgrade_ids),
        "achievements": _id_set(data.get("achievements"), registry.achievement_ids),
        "research_owned": _ordered_ids(data.get("research_owned"), registry.research_ids),
        "prestige": normalise_prestige(data.get("prestige"), total, registry, now),
        "abilities": normalise_abilities(data.get("abilities"), registry, now),
        "automation": normalise_automation(data.get("automation")),
        "preferences": normalise_preferences(data.get("preferences")),
        "settings": normalise_settings(data.get("settings")),
        "meta": meta,
        "created_at": created_at,
    }


def detect_version(data: Any) -> Optional[int]:
    if not isinstance(data, dict):
        return None
    version = data.get("version")
    if isinstance(version, bool):
        return None
    if isinstance(version, float):
        if not math.isfinite(version) or version != int(version):
            return None
        version = int(version)
    if not isinstance(version, int):
        return None
    if version < 1 or version > SAVE_VERSION:
        return None
    return version


def upgrade_save(
    data: Any,
    registry: Optional[Registry] = None,
    now: Optional[int] = None,
) -> Optional[Blob]:
    """Bring any known generation up to the current one, or return None."""
    version = detect_version(data)
    if version is None:
        logger.warning("Unsupported save version: %r", data.get("version") if isinstance(data, dict) else data)
        return None
    ctx = MigrationContext(
        registry=registry if registry is not None else load_registry(),
        now=now if now is not None else now_ms(),
    )
    try:
        blob = data
        while version < SAVE_VERSION:
            blob = MIGRATIONS[version](blob, ctx)
            logger.info("Migrated save from version %d to %d", version, version + 1)
            version += 1
        return normalise_current(blob, ctx.registry, ctx.now)
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        logger.warning("Save migration failed: %s", exc)
        return None
