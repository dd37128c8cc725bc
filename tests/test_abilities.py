from cannacore.abilities import (
    ability_multiplier,
    ability_progress,
    activate_ability,
    is_ability_ready,
    update_ability_timers,
)
from cannacore.stats import recalc_derived_values

from conftest import NOW


def test_ability_cycles_ready_active_cooldown(state):
    assert is_ability_ready(state, "overdrive", NOW)
    assert activate_ability(state, "overdrive", NOW)
    runtime = state.abilities["overdrive"]
    assert runtime.active_until == NOW + 10_000
    assert runtime.ready_at == NOW + 70_000
    assert ability_multiplier(state, "bps") == 5.0

    assert not update_ability_timers(state, NOW + 9_999)
    assert update_ability_timers(state, NOW + 10_000)
    assert not runtime.active
    assert ability_multiplier(state, "bps") == 1.0

    assert not is_ability_ready(state, "overdrive", NOW + 69_999)
    assert is_ability_ready(state, "overdrive", NOW + 70_000)


def test_activation_while_not_ready_is_a_no_op(state):
    assert activate_ability(state, "burst", NOW)
    snapshot = (state.abilities["burst"].active_until, state.abilities["burst"].ready_at)
    assert not activate_ability(state, "burst", NOW + 1_000)
    assert (state.abilities["burst"].active_until, state.abilities["burst"].ready_at) == snapshot


def test_unknown_ability_is_rejected(state):
    assert not activate_ability(state, "time_warp", NOW)
    assert not is_ability_ready(state, "time_warp", NOW)


def test_research_bonus_strengthens_overdrive(state):
    state.research_owned = ["r_start_click", "r_growth", "r_overdrive_plus"]
    recalc_derived_values(state, NOW)
    activate_ability(state, "overdrive", NOW)
    assert ability_multiplier(state, "bps") == 6.0
    activate_ability(state, "burst", NOW)
    assert ability_multiplier(state, "bpc") == 20.0


def test_progress_snapshot(state):
    activate_ability(state, "burst", NOW)
    by_id = {p.id: p for p in ability_progress(state, NOW + 2_000)}
    burst = by_id["burst"]
    assert burst.active
    assert not burst.ready
    assert burst.remaining_sec == 3.0
    assert burst.ready_in_sec == 48.0
    assert by_id["overdrive"].ready
