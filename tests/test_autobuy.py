from decimal import Decimal

from cannacore.autobuy import pick_best_target, resolve_spendable_budget, run_auto_buy

from conftest import NOW


def _enable(state, currency, **settings):
    state.automation.auto_buy_enabled = True
    for key, value in settings.items():
        setattr(state.automation, key, value)
    state.store.currency = Decimal(currency)
    return state


def test_disabled_automation_never_buys(state):
    state.store.currency = Decimal(1000)
    assert run_auto_buy(state, NOW) is None
    assert state.owned("seedling") == 0


def test_buys_one_unit_under_roi_threshold(state):
    _enable(state, 100)
    assert run_auto_buy(state, NOW) == "seedling"
    assert state.owned("seedling") == 1
    assert state.store.currency == Decimal(85)


def test_threshold_filters_slow_payback(state):
    _enable(state, 100, roi_threshold_seconds=60)
    assert run_auto_buy(state, NOW) is None


def test_roi_mode_off_disables_target_selection(state):
    _enable(state, 100, roi_enabled=False)
    assert pick_best_target(state, state.store.currency) is None
    assert run_auto_buy(state, NOW) is None


def test_reserve_is_kept_back(state):
    _enable(state, 100, reserve_enabled=True, reserve_percent=10)
    assert resolve_spendable_budget(state) == Decimal(90)

    _enable(state, 16, reserve_enabled=True, reserve_percent=10)
    assert run_auto_buy(state, NOW) is None
    state.automation.reserve_enabled = False
    assert run_auto_buy(state, NOW) == "seedling"


def test_picks_best_payback_among_unlocked(state):
    _enable(state, 2000)
    state.store.total_harvested = Decimal(1000)
    # seedling 150 s, planter 100 s, grow tent 137.5 s
    target = pick_best_target(state, state.store.currency)
    assert target.item.id == "planter"
    assert target.roi == 100.0


def test_locked_buildings_are_skipped(state):
    _enable(state, 10**6)
    target = pick_best_target(state, state.store.currency)
    assert target.item.id == "seedling"
