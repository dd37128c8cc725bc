from decimal import Decimal

import pytest

from cannacore.seeds import (
    award_seeds,
    check_seed_synergies,
    click_chance,
    maybe_roll_click_seed,
    process_passive_rolls,
    process_seed_systems,
    queue_notification,
    record_interaction,
    seed_rate_cap,
    update_seed_rate,
)
from cannacore.state import Notification, SeedGainEntry
from cannacore.stats import recalc_derived_values

from conftest import NOW, FixedRandom


@pytest.fixture
def drip_state(state):
    state.research_owned = ["r_start_click", "r_growth", "r_seed_drip"]
    recalc_derived_values(state, NOW)
    record_interaction(state, NOW)
    return state


def test_passive_rolls_once_per_whole_interval(drip_state):
    rng = FixedRandom(0.99)
    result = process_passive_rolls(drip_state, rng, NOW + 185_000)
    assert result.attempts == 3
    assert result.remainder_ms == 5_000
    assert rng.calls == 3
    assert drip_state.meta.passive_idle_ms == 5_000

    again = process_passive_rolls(drip_state, rng, NOW + 185_000)
    assert again.attempts == 0
    assert rng.calls == 3

    later = process_passive_rolls(drip_state, rng, NOW + 240_000)
    assert later.attempts == 1
    assert rng.calls == 4


def test_interaction_restarts_idle_count(drip_state):
    rng = FixedRandom(0.99)
    process_passive_rolls(drip_state, rng, NOW + 125_000)
    record_interaction(drip_state, NOW + 125_000)
    assert process_passive_rolls(drip_state, rng, NOW + 150_000).attempts == 0


def test_passive_batch_awards_every_success(drip_state):
    result = process_passive_rolls(drip_state, FixedRandom(0.0), NOW + 185_000)
    assert result.gained == 3
    assert drip_state.prestige.seeds_banked == 3
    assert [e.source for e in drip_state.meta.seed_gain_history] == ["passive"] * 3


def test_no_passive_research_means_no_rolls(state):
    rng = FixedRandom(0.0)
    assert process_passive_rolls(state, rng, NOW + 10 * 60_000).attempts == 0
    assert rng.calls == 0


def test_rate_cap_grows_with_lifetime_currency(state):
    assert seed_rate_cap(state) == 25
    state.prestige.lifetime_currency = Decimal(10_000_000)
    assert seed_rate_cap(state) == 60
    state.prestige.lifetime_currency = Decimal(3_000_000_000)
    assert seed_rate_cap(state) == 110


def test_rate_uses_the_trailing_window(state):
    state.meta.seed_gain_history = [
        SeedGainEntry(time=NOW - 3_600_001, amount=50, source="event"),
        SeedGainEntry(time=NOW - 1_800_000, amount=30, source="event"),
    ]
    assert update_seed_rate(state, NOW) == 60.0
    assert len(state.meta.seed_gain_history) == 1


def test_click_roll_is_throttled_at_cap(state):
    state.meta.seed_gain_history = [SeedGainEntry(time=NOW - 1_800_000, amount=30, source="event")]
    rng = FixedRandom(0.0)
    result = maybe_roll_click_seed(state, rng, NOW)
    assert result.throttled
    assert result.gained == 0
    assert rng.calls == 0


def test_click_roll_success_awards_and_notifies(state):
    result = maybe_roll_click_seed(state, FixedRandom(0.0), NOW)
    assert result.gained == 1
    assert result.chance == pytest.approx(0.01)
    assert state.prestige.seeds_banked == 1
    assert state.prestige.multiplier == Decimal("1.05")
    assert state.temp.seed_notifications[-1].source == "click"


def test_award_lands_in_history_before_next_roll(drip_state):
    process_passive_rolls(drip_state, FixedRandom(0.0), NOW + 185_000)
    # Three seeds within the same instant push the rate past the cap.
    assert maybe_roll_click_seed(drip_state, FixedRandom(0.0), NOW + 185_000).throttled


def test_click_chance_bonus_is_capped(state):
    state.temp.seed_click_bonus = 0.01
    assert click_chance(state) == pytest.approx(0.02)
    state.temp.seed_click_bonus = 0.5
    assert click_chance(state) == pytest.approx(0.06)


def test_award_ignores_non_positive_amounts(state):
    assert award_seeds(state, 0, "event", NOW) == 0
    assert award_seeds(state, -3, "event", NOW) == 0
    assert state.meta.seed_gain_history == []


def test_history_is_bounded(state):
    for i in range(210):
        award_seeds(state, 1, "event", NOW - 1000 + i)
    assert len(state.meta.seed_gain_history) == 200
    assert state.prestige.seeds_banked == 210


def test_synergy_is_claimed_once(state):
    state.ownership.update({"grow_tent": 1, "grow_light": 1, "co2_tank": 1})
    assert check_seed_synergies(state, NOW) == ["closed_loop"]
    assert state.prestige.seeds_banked == 3
    assert state.temp.seed_notifications[-1].kind == "synergy_claimed"
    assert check_seed_synergies(state, NOW + 1) == []
    assert state.prestige.seeds_banked == 3


def test_seed_systems_run_passive_then_synergies(drip_state):
    drip_state.ownership.update({"grow_tent": 1, "grow_light": 1, "co2_tank": 1})
    process_seed_systems(drip_state, NOW + 65_000, FixedRandom(0.0))
    sources = [e.source for e in drip_state.meta.seed_gain_history]
    assert sources == ["passive", "synergy"]


def test_notification_queue_keeps_latest_five(state):
    for i in range(7):
        queue_notification(state, Notification(kind="seed_awarded", seeds=i))
    assert [n.seeds for n in state.temp.seed_notifications] == [2, 3, 4, 5, 6]
