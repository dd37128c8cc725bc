from decimal import Decimal

from cannacore.events import (
    EXPIRE_TIMER,
    SPAWN_TIMER,
    EventSpawner,
    claim_event,
    pick_event,
    update_event_effect,
)
from cannacore.scheduler import Scheduler
from cannacore.state import ActiveEvent
from cannacore.stats import recalc_derived_values

from conftest import NOW, FixedRandom


def _show(state, event_id, expires_in=10_000):
    event = ActiveEvent(id=event_id, token=f"{event_id}-1-abc", spawned_at=NOW, expires_at=NOW + expires_in)
    state.temp.active_event = event
    return event


def test_golden_bud_pays_eight_seconds_of_production(state, rng):
    state.ownership["seedling"] = 10
    recalc_derived_values(state, NOW)
    event = _show(state, "golden_bud")
    reward = claim_event(state, event.token, NOW + 1, rng)
    assert reward.kind == "buds"
    assert reward.buds == Decimal(8)
    assert state.store.currency == Decimal(8)
    assert state.temp.active_event is None


def test_golden_bud_without_production_uses_click_yield(state, rng):
    event = _show(state, "golden_bud")
    assert claim_event(state, event.token, NOW, rng).buds == Decimal(8)


def test_token_is_claimed_exactly_once(state, rng):
    event = _show(state, "golden_bud")
    assert claim_event(state, "golden_bud-9-zzz", NOW, rng) is None
    assert claim_event(state, event.token, NOW, rng) is not None
    assert claim_event(state, event.token, NOW, rng) is None
    assert state.meta.event_stats.total_clicks == 1


def test_expired_event_cannot_be_claimed(state, rng):
    event = _show(state, "seed_pack", expires_in=500)
    assert claim_event(state, event.token, NOW + 500, rng) is None


def test_seed_pack_awards_seeds(state):
    event = _show(state, "seed_pack")
    reward = claim_event(state, event.token, NOW, FixedRandom(0.0))
    assert 1 <= reward.seeds <= 4
    assert state.prestige.seeds_banked == reward.seeds
    assert state.meta.seed_gain_history[-1].source == "event"


def test_lucky_joint_refreshes_instead_of_stacking(state, rng):
    event = _show(state, "lucky_joint")
    first = claim_event(state, event.token, NOW, rng)
    assert first.requires_recalc and not first.refreshed
    assert state.temp.event_effect.expires_at == NOW + 20_000

    event = _show(state, "lucky_joint")
    second = claim_event(state, event.token, NOW + 5_000, rng)
    assert second.refreshed
    assert state.temp.event_effect.expires_at == NOW + 25_000
    recalc_derived_values(state, NOW + 5_000)
    assert state.click_yield == 2

    assert not update_event_effect(state, NOW + 24_999)
    assert update_event_effect(state, NOW + 25_000)
    assert state.temp.event_effect is None


def test_pick_event_honours_weights(registry):
    assert pick_event(registry.events, FixedRandom(0.0)).id == "golden_bud"
    assert pick_event(registry.events, FixedRandom(0.99)).id == "lucky_joint"
    assert pick_event([], FixedRandom(0.5)) is None


def test_spawner_places_and_expires_events(state, rng):
    scheduler = Scheduler(now=NOW)
    spawner = EventSpawner(state, scheduler, rng)
    spawner.start(NOW)
    assert SPAWN_TIMER in scheduler.pending()

    scheduler.advance(NOW + 20_000)
    event = state.temp.active_event
    assert event is not None
    assert 7_000 <= event.expires_at - event.spawned_at <= 12_000
    assert 0.15 <= event.x <= 0.85
    assert EXPIRE_TIMER in scheduler.pending()
    assert state.meta.event_stats.total_spawns == 1

    scheduler.advance(event.expires_at)
    assert state.temp.active_event is None
    assert state.meta.event_stats.total_expired == 1
    assert SPAWN_TIMER in scheduler.pending()


def test_spawner_stop_clears_everything(state, rng):
    scheduler = Scheduler(now=NOW)
    spawner = EventSpawner(state, scheduler, rng)
    spawner.start(NOW)
    scheduler.advance(NOW + 20_000)
    spawner.stop()
    assert scheduler.pending() == []
    assert state.temp.active_event is None


def test_click_rate_statistics(state, rng):
    scheduler = Scheduler(now=NOW)
    spawner = EventSpawner(state, scheduler, rng)
    spawner.start(NOW)
    scheduler.advance(NOW + 20_000)
    event = state.temp.active_event
    assert claim_event(state, event.token, NOW + 20_000, rng) is not None
    spawner.resolved(NOW + 20_000)
    stats = state.meta.event_stats
    assert stats.click_rate == 1.0
    assert stats.per_event[event.id].clicks == 1
    assert EXPIRE_TIMER not in scheduler.pending()
