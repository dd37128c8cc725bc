import random
import sys
from pathlib import Path

import pytest

# Ensure 'src' is on sys.path for test imports without installing the package
ROOT = Path(__file__).resolve().parents[1]
src = ROOT / "src"
if str(src) not in sys.path:
    sys.path.insert(0, str(src))

from cannacore.catalog import load_registry  # noqa: E402
from cannacore.config import BalanceConfig  # noqa: E402
from cannacore.state import create_default_state  # noqa: E402
from cannacore.stats import recalc_derived_values  # noqa: E402

NOW = 1_700_000_000_000


class FixedRandom(random.Random):
    """Always rolls the same value and counts how often it was asked."""

    def __init__(self, value: float) -> None:
        super().__init__(0)
        self.value = value
        self.calls = 0

    def random(self) -> float:
        self.calls += 1
        return self.value


@pytest.fixture
def now() -> int:
    return NOW


@pytest.fixture
def registry():
    return load_registry()


@pytest.fixture
def config() -> BalanceConfig:
    return BalanceConfig()


@pytest.fixture
def state(registry, config):
    s = create_default_state(registry, config, NOW)
    recalc_derived_values(s, NOW)
    return s


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)
