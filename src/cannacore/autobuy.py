from __future__ import annotations

import logging
import math
from decimal import Decimal
from typing import Optional

from cannacore.amounts import ZERO, to_amount
from cannacore.shop import ShopEntry, buy_item, shop_entries
from cannacore.state import GameState

logger = logging.getLogger(__name__)


def resolve_spendable_budget(state: GameState) -> Decimal:
    """Currency minus the reserve share, never negative."""
    automation = state.automation
    currency = state.store.currency
    if not automation.auto_buy_enabled or not automation.reserve_enabled:
        return currency
    percent = max(0, min(100, automation.reserve_percent))
    if percent <= 0:
        return currency
    spendable = currency - currency * to_amount(percent) / 100
    return spendable if spendable > ZERO else ZERO


def pick_best_target(state: GameState, budget: Decimal) -> Optional[ShopEntry]:
    automation = state.automation
    if not automation.roi_enabled:
        return None
    threshold = automation.roi_threshold_seconds
    candidates = [
        entry for entry in shop_entries(state)
        if entry.unlocked
        and entry.roi is not None
        and math.isfinite(entry.roi)
        and entry.roi <= threshold
        and entry.delta_production > ZERO
        and entry.cost <= budget
    ]
    if not candidates:
        return None
    return min(candidates, key=lambda e: (e.roi, e.cost, e.order))


def run_auto_buy(state: GameState, now: Optional[int] = None) -> Optional[str]:
    """Buy one unit of the best-ROI building. Returns its id, or None."""
    if not state.automation.auto_buy_enabled:
        return None
    budget = resolve_spendable_budget(state)
    if budget <= ZERO:
        return None
    target = pick_best_target(state, budget)
    if target is None:
        return None
    if not buy_item(state, target.item.id, 1, now):
        return None
    logger.debug("Auto-bought %s (roi %.1fs)", target.item.id, target.roi)
    return target.item.id
