from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

BALANCE_ENV_VAR = "CANNACORE_BALANCE_FILE"

AUTOSAVE_MIN_INTERVAL_SEC = 5.0


def data_dir() -> Path:
    return Path(__file__).resolve().parent / "data"


def default_balance_path() -> Path:
    override = os.environ.get(BALANCE_ENV_VAR)
    if override:
        return Path(override)
    return data_dir() / "balance.json"


@dataclass
class BalanceConfig:
    offline_cap_ms: int = 8 * 60 * 60 * 1000
    offline_gain_ratio: float = 0.5

    prestige_coefficient: float = 0.001
    prestige_multiplier_step: float = 0.05
    prestige_min_requirement: float = 1_000_000.0

    seed_history_window_ms: int = 60 * 60 * 1000
    seed_history_max_entries: int = 200
    seed_base_click_chance: float = 0.01
    seed_max_click_bonus: float = 0.05
    seed_notification_limit: int = 5
    # Rolling seed rate caps, keyed by prestige lifetime currency.
    seed_cap_low_threshold: float = 10_000_000.0
    seed_cap_high_threshold: float = 3_000_000_000.0
    seed_cap_low: int = 25
    seed_cap_mid: int = 60
    seed_cap_high: int = 110

    golden_bud_seconds: float = 8.0
    lucky_joint_duration_ms: int = 20_000
    lucky_joint_multiplier: float = 2.0
    seed_pack_max_bonus: int = 3
    event_spawn_delay_min_ms: int = 10_000
    event_spawn_delay_max_ms: int = 20_000
    event_lifetime_min_ms: int = 7_000
    event_lifetime_max_ms: int = 12_000

    auto_buy_interval_sec: float = 0.5
    autosave_interval_sec: float = 10.0
    max_tick_delta_sec: float = 1.0

    def __post_init__(self) -> None:
        if self.autosave_interval_sec < AUTOSAVE_MIN_INTERVAL_SEC:
            self.autosave_interval_sec = AUTOSAVE_MIN_INTERVAL_SEC
        if not 0.0 <= self.offline_gain_ratio < 1.0:
            self.offline_gain_ratio = 0.5
        if self.offline_cap_ms < 0:
            self.offline_cap_ms = 0


def load_balance(path: Optional[Path] = None) -> BalanceConfig:
    if path is None:
        path = default_balance_path()
    if not path.exists():
        return BalanceConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Could not read balance file %s: %s", path, exc)
        return BalanceConfig()
    if not isinstance(data, dict):
        return BalanceConfig()
    known = {f.name for f in fields(BalanceConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        logger.warning("Ignoring unknown balance keys: %s", ", ".join(unknown))
    try:
        return BalanceConfig(**{k: v for k, v in data.items() if k in known})
    except TypeError:
        return BalanceConfig()


def save_balance(config: BalanceConfig, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(asdict(config), indent=2), encoding="utf-8")
