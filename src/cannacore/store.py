from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from cannacore.amounts import ZERO, sub_clamped


@dataclass
class ResourceStore:
    currency: Decimal = field(default=ZERO)
    # Harvested during the current prestige epoch.
    total_harvested: Decimal = field(default=ZERO)
    # Harvested across all epochs; cleared only by a hard reset.
    lifetime_currency: Decimal = field(default=ZERO)

    def add_currency(self, amount: Decimal) -> Decimal:
        if amount <= ZERO:
            return ZERO
        self.currency += amount
        self.total_harvested += amount
        self.lifetime_currency += amount
        return amount

    def can_afford(self, cost: Decimal) -> bool:
        return self.currency >= cost

    def spend(self, cost: Decimal) -> bool:
        if cost < ZERO or self.currency < cost:
            return False
        self.currency = sub_clamped(self.currency, cost)
        return True
