from decimal import Decimal

from cannacore.offline import apply_offline_progress, offline_elapsed_ms, take_offline_notification
from cannacore.stats import recalc_derived_values

from conftest import NOW

HOUR = 60 * 60 * 1000


def _away(state, hours, rate=10):
    state.meta.last_seen_at = NOW - int(hours * HOUR)
    state.meta.last_production_rate_at_save = Decimal(rate)


def test_gain_is_capped_at_eight_hours(state):
    _away(state, 100)
    result = apply_offline_progress(state, NOW)
    assert result.duration_ms == 8 * HOUR
    assert result.gain == Decimal(144000)
    assert state.store.currency == Decimal(144000)
    assert state.store.total_harvested == Decimal(144000)
    assert state.prestige.lifetime_currency == Decimal(144000)


def test_uses_snapshot_rate_not_current_rate(state):
    _away(state, 1, rate=2)
    state.ownership["seedling"] = 1000
    recalc_derived_values(state, NOW)
    assert apply_offline_progress(state, NOW).gain == Decimal(3600)


def test_zero_rate_sets_no_flag(state):
    _away(state, 3, rate=0)
    result = apply_offline_progress(state, NOW)
    assert result.gain == 0
    assert state.temp.offline_result is None
    assert take_offline_notification(state) is None


def test_clock_going_backwards_gives_nothing(state):
    state.meta.last_seen_at = NOW + HOUR
    state.meta.last_production_rate_at_save = Decimal(10)
    assert offline_elapsed_ms(state, NOW) == 0
    assert apply_offline_progress(state, NOW).gain == 0


def test_night_shift_research_extends_the_cap(state):
    state.research_owned = ["r_start_click", "r_night_shift"]
    recalc_derived_values(state, NOW)
    _away(state, 100)
    result = apply_offline_progress(state, NOW)
    assert result.duration_ms == 12 * HOUR
    assert result.gain == Decimal(216000)


def test_notification_is_one_shot(state):
    _away(state, 1)
    apply_offline_progress(state, NOW)
    note = take_offline_notification(state)
    assert note.kind == "offline_gains"
    assert note.amount == Decimal(18000)
    assert take_offline_notification(state) is None


def test_notification_respects_preference(state):
    state.preferences.show_offline_earnings = False
    _away(state, 1)
    apply_offline_progress(state, NOW)
    assert take_offline_notification(state) is None
    assert state.store.currency == Decimal(18000)
