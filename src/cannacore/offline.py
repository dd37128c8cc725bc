"""Catch-up reward for time spent away.

The reward uses the production rate snapshotted at the last save, never a
fresh recalculation, so bonuses bought after the snapshot cannot inflate
past offline time.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

from cannacore.amounts import ZERO, floor_amount, to_amount
from cannacore.state import GameState, Notification, OfflineResult, now_ms

logger = logging.getLogger(__name__)


def offline_elapsed_ms(state: GameState, now: int) -> int:
    cap = max(0, state.temp.offline_cap_ms)
    raw = now - state.meta.last_seen_at
    return max(0, min(raw, cap))


def apply_offline_progress(state: GameState, now: Optional[int] = None) -> OfflineResult:
    if now is None:
        now = now_ms()
    elapsed = offline_elapsed_ms(state, now)
    rate = state.meta.last_production_rate_at_save
    if rate < ZERO:
        rate = ZERO
    seconds = Decimal(elapsed) / 1000
    gain = floor_amount(rate * seconds * to_amount(state.config.offline_gain_ratio))

    if gain <= ZERO:
        state.temp.offline_result = None
        return OfflineResult(gain=ZERO, duration_ms=elapsed)

    state.harvest(gain)
    result = OfflineResult(gain=gain, duration_ms=elapsed)
    state.temp.offline_result = result
    logger.info("Offline progress: %s buds over %.1f min", gain, elapsed / 60000.0)
    return result


def take_offline_notification(state: GameState) -> Optional[Notification]:
    """Consume the one-shot offline flag."""
    result = state.temp.offline_result
    if result is None:
        return None
    state.temp.offline_result = None
    if not state.preferences.show_offline_earnings:
        return None
    return Notification(kind="offline_gains", amount=result.gain, duration_ms=result.duration_ms)
